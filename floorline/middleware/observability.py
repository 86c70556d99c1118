from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from floorline.core.metrics import request_metrics
from floorline.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Request id propagation, timing, per-route counters and one access line per request."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        response = None
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            endpoint = _route_template(request)
            actor = getattr(request.state, "actor", None)
            user_id = str(actor.id) if actor is not None else None

            request_metrics.observe(
                endpoint=endpoint,
                method=request.method,
                status_code=status_code,
                duration_ms=duration_ms,
            )
            logger.info(
                "request completed",
                extra={
                    "request_id": request_id,
                    "user_id": user_id,
                    "role": actor.role if actor is not None else None,
                    "endpoint": endpoint,
                    "method": request.method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )

            if response is not None:
                response.headers["X-Request-ID"] = request_id
            clear_request_context()


def _route_template(request: Request) -> str:
    # /api/orders/{order_id} rather than one counter per order id
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path

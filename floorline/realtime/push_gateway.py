from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from floorline.core.config import PUSH_GATEWAY_TOKEN, PUSH_GATEWAY_URL, REALTIME_TIMEOUT_SECONDS
from floorline.realtime.base import safe_json

logger = logging.getLogger(__name__)

# The gateway reports a subscription the browser vendor no longer knows with one of these
GONE_STATUS_CODES = {404, 410}


@dataclass
class PushDelivery:
    endpoint: str
    status: str  # "sent" / "gone" / "failed" / "skipped"
    status_code: int | None = None
    error: str | None = None


class PushGateway:
    """Forwards web-push deliveries to an HTTP gateway holding the VAPID keys."""

    def __init__(
        self,
        url: str = PUSH_GATEWAY_URL,
        token: str = PUSH_GATEWAY_TOKEN,
        timeout: float = REALTIME_TIMEOUT_SECONDS,
    ) -> None:
        self.url = url
        self.token = token
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def send(self, *, endpoint: str, auth: str, p256dh: str, payload: dict[str, Any]) -> PushDelivery:
        if not self.configured:
            logger.info("push (no gateway) %s", safe_json(payload), extra={"event": "push"})
            return PushDelivery(endpoint=endpoint, status="skipped")

        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        body = {
            "subscription": {"endpoint": endpoint, "keys": {"auth": auth, "p256dh": p256dh}},
            "payload": payload,
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            return PushDelivery(endpoint=endpoint, status="failed", error=str(exc))

        if 200 <= response.status_code < 300:
            return PushDelivery(endpoint=endpoint, status="sent", status_code=response.status_code)
        if response.status_code in GONE_STATUS_CODES:
            return PushDelivery(endpoint=endpoint, status="gone", status_code=response.status_code)
        return PushDelivery(
            endpoint=endpoint,
            status="failed",
            status_code=response.status_code,
            error=response.text[:200],
        )


push_gateway = PushGateway()

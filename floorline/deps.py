from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from floorline.core.constants import ROLES
from floorline.core.request_context import set_request_context
from floorline.services.auth import decode_access_token
from floorline.services.errors import FloorlineError

bearer_scheme = HTTPBearer(auto_error=False)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    id: int
    role: str
    name: Optional[str] = None


def _extract_user_id(payload: Dict[str, Any]) -> Optional[int]:
    raw = payload.get("sub", payload.get("user_id"))
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    """Resolve the already-authenticated caller from its bearer token."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError:
        raise _unauthorized("Invalid or expired token")

    user_id = _extract_user_id(payload)
    if user_id is None:
        raise _unauthorized("Token has no subject")

    role = str(payload.get("role") or "").strip().upper()
    if role not in ROLES:
        raise _unauthorized("Token has no valid role")

    actor = Actor(id=user_id, role=role, name=payload.get("name"))
    request.state.actor = actor
    set_request_context(user_id=str(user_id), role=role)
    return actor


def require_role(roles: Iterable[str]):
    allowed = {role.strip().upper() for role in roles}

    def _dependency(request: Request, actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            logger.warning(
                "Access denied (role_denied): user_id=%s role=%s endpoint=%s %s",
                actor.id,
                actor.role,
                request.method,
                request.url.path,
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return actor

    return _dependency


def http_error(exc: FloorlineError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)

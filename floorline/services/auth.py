from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from floorline.core.config import JWT_ALGORITHM, JWT_SECRET_KEY

ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 12  # one shift


def create_access_token(
    user_id: int | str,
    *,
    role: str,
    name: Optional[str] = None,
    expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
) -> str:
    """Issue a token in the shape the PIN/admin login service produces.

    "sub" must be a string or jose rejects it on decode.
    """
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=expires_minutes)

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    if name:
        payload["name"] = name

    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Return the token claims or raise ValueError when invalid or expired."""
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired token") from exc

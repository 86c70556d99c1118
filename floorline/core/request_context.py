from __future__ import annotations

from contextvars import ContextVar


_REQUEST_ID_CTX: ContextVar[str | None] = ContextVar("request_id", default=None)
_USER_ID_CTX: ContextVar[str | None] = ContextVar("user_id", default=None)
_ROLE_CTX: ContextVar[str | None] = ContextVar("role", default=None)


def set_request_context(
    *, request_id: str | None = None, user_id: str | None = None, role: str | None = None
) -> None:
    if request_id is not None:
        _REQUEST_ID_CTX.set(request_id)
    if user_id is not None:
        _USER_ID_CTX.set(user_id)
    if role is not None:
        _ROLE_CTX.set(role)


def get_request_id() -> str | None:
    return _REQUEST_ID_CTX.get()


def get_user_id() -> str | None:
    return _USER_ID_CTX.get()


def get_role() -> str | None:
    return _ROLE_CTX.get()


def clear_request_context() -> None:
    for var in (_REQUEST_ID_CTX, _USER_ID_CTX, _ROLE_CTX):
        var.set(None)

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass
class PublishResult:
    status: str  # "sent" / "failed" / "skipped"
    channel: str
    event: str
    status_code: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "sent"


class RealtimeProvider(Protocol):
    def publish(self, *, channel: str, event: str, data: dict[str, Any]) -> PublishResult:
        ...


SENSITIVE_KEYS = {"authorization", "auth", "p256dh", "token", "key"}


def _mask_value(value: Any) -> Any:
    if value is None:
        return None
    text = str(value)
    if len(text) <= 4:
        return "****"
    return f"****{text[-4:]}"


def sanitize_payload(payload: dict[str, Any]) -> dict[str, Any]:
    def _sanitize(value: Any) -> Any:
        if isinstance(value, dict):
            return {key: _sanitize_value(key, inner) for key, inner in value.items()}
        if isinstance(value, list):
            return [_sanitize(item) for item in value]
        return value

    def _sanitize_value(key: str, value: Any) -> Any:
        if key.lower() in SENSITIVE_KEYS:
            return _mask_value(value)
        return _sanitize(value)

    return _sanitize(payload)


def safe_json(payload: dict[str, Any]) -> str:
    try:
        return json.dumps(payload, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return "{}"

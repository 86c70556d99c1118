from __future__ import annotations

import logging
from typing import Any

from floorline.realtime.base import PublishResult, RealtimeProvider, safe_json, sanitize_payload

logger = logging.getLogger(__name__)


class LoggingRealtimeProvider(RealtimeProvider):
    """Used when no relay is configured: events only reach the log."""

    def __init__(self) -> None:
        self.published: list[tuple[str, str, dict[str, Any]]] = []

    def publish(self, *, channel: str, event: str, data: dict[str, Any]) -> PublishResult:
        self.published.append((channel, event, data))
        logger.info(
            "realtime event (no relay) %s",
            safe_json(sanitize_payload(data)),
            extra={"channel": channel, "event": event},
        )
        return PublishResult(status="skipped", channel=channel, event=event)

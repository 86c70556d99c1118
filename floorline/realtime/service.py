from __future__ import annotations

import logging
from typing import Any

from floorline.core.metrics import request_metrics
from floorline.realtime.base import PublishResult, RealtimeProvider
from floorline.realtime.http_provider import HttpRelayProvider
from floorline.realtime.mock_provider import LoggingRealtimeProvider

logger = logging.getLogger(__name__)


class RealtimeService:
    def __init__(
        self,
        relay_provider: HttpRelayProvider | None = None,
        fallback_provider: RealtimeProvider | None = None,
    ) -> None:
        self._relay_provider = relay_provider or HttpRelayProvider()
        self._fallback_provider = fallback_provider or LoggingRealtimeProvider()

    def _select_provider(self) -> RealtimeProvider:
        if self._relay_provider.configured:
            return self._relay_provider
        return self._fallback_provider

    def publish(self, channel: str, event: str, data: dict[str, Any]) -> PublishResult:
        """Best-effort publish. Failures are logged and counted, never raised."""
        provider = self._select_provider()
        try:
            result = provider.publish(channel=channel, event=event, data=data)
        except Exception as exc:
            logger.exception("realtime publish crashed", extra={"channel": channel, "event": event})
            result = PublishResult(status="failed", channel=channel, event=event, error=str(exc))

        request_metrics.record_delivery(channel, result.status)
        if result.status == "failed":
            logger.warning(
                "realtime publish failed: %s",
                result.error,
                extra={"channel": channel, "event": event, "status_code": result.status_code},
            )
        return result


realtime_service = RealtimeService()

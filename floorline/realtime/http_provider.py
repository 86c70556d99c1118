from __future__ import annotations

import logging
from typing import Any

import httpx

from floorline.core.config import REALTIME_RELAY_KEY, REALTIME_RELAY_URL, REALTIME_TIMEOUT_SECONDS
from floorline.realtime.base import PublishResult, RealtimeProvider

logger = logging.getLogger(__name__)


class HttpRelayProvider(RealtimeProvider):
    """Posts events to a hosted pub/sub relay. One attempt, no retry."""

    def __init__(
        self,
        base_url: str = REALTIME_RELAY_URL,
        api_key: str = REALTIME_RELAY_KEY,
        timeout: float = REALTIME_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def publish(self, *, channel: str, event: str, data: dict[str, Any]) -> PublishResult:
        url = f"{self.base_url}/events"
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        body = {"channel": channel, "name": event, "data": data}

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            return PublishResult(status="failed", channel=channel, event=event, error=str(exc))

        if 200 <= response.status_code < 300:
            return PublishResult(status="sent", channel=channel, event=event, status_code=response.status_code)

        return PublishResult(
            status="failed",
            channel=channel,
            event=event,
            status_code=response.status_code,
            error=f"relay responded {response.status_code}: {response.text[:200]}",
        )

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol

import requests

from backend.core.config import Settings
from backend.core.logging import get_logger


logger = get_logger(__name__)


class EventSink(Protocol):
    def track(self, element_id: str, action: str, metadata: Optional[Mapping[str, Any]] = None) -> None:
        ...


class NullEventSink:
    """Drops every event."""

    def track(self, element_id: str, action: str, metadata: Optional[Mapping[str, Any]] = None) -> None:
        return None


class LoggingEventSink:
    """Writes click events to the structured log."""

    def track(self, element_id: str, action: str, metadata: Optional[Mapping[str, Any]] = None) -> None:
        logger.info(
            "click_tracked",
            extra={
                "event": "click_tracked",
                "element_id": element_id,
                "action": action,
                "metadata": dict(metadata or {}),
            },
        )


class HttpEventSink:
    """Posts click events as JSON to a collector endpoint."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 3.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not url:
            raise ValueError("Analytics URL is required for HTTP event delivery")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def track(self, element_id: str, action: str, metadata: Optional[Mapping[str, Any]] = None) -> None:
        payload = {
            "element_id": element_id,
            "action": action,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metadata": dict(metadata or {}),
        }
        resp = self.session.post(self.url, json=payload, timeout=self.timeout)
        resp.raise_for_status()


def build_event_sink(settings: Settings) -> EventSink:
    mode = (settings.analytics_mode or "").strip().lower()
    if mode in {"off", "none", "disabled"}:
        return NullEventSink()
    if mode == "http":
        return HttpEventSink(settings.analytics_url or "", timeout=settings.analytics_timeout_seconds)
    if mode != "log":
        logger.warning(
            "analytics_mode_unknown",
            extra={"event": "analytics_mode_unknown", "mode": settings.analytics_mode},
        )
    return LoggingEventSink()

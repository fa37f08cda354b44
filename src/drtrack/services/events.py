"""Change notifications and user-facing messages for the presentation layer."""

from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SEVERITIES = ("success", "warning", "error")

_SEVERITY_LEVELS = {
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

DataChangedListener = Callable[[str], None]
NotificationSink = Callable[[str, str], None]


class EventHub:
    """Fans ``data_changed`` out to registered listeners and routes notifications to one sink."""

    def __init__(self, notification_sink: Optional[NotificationSink] = None) -> None:
        self._listeners: list[DataChangedListener] = []
        self._notification_sink = notification_sink

    def subscribe(self, listener: DataChangedListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def data_changed(self, *collections: str) -> None:
        for collection in collections:
            for listener in list(self._listeners):
                try:
                    listener(collection)
                except Exception as e:
                    logger.error(f"Data-changed listener failed for {collection}: {e}")

    def notify(self, message: str, severity: str = "success") -> None:
        if severity not in SEVERITIES:
            raise ValueError(f"Severity must be one of: {', '.join(SEVERITIES)}")
        if self._notification_sink is None:
            logger.log(_SEVERITY_LEVELS[severity], message)
            return
        try:
            self._notification_sink(message, severity)
        except Exception as e:
            logger.error(f"Notification sink failed: {e}")

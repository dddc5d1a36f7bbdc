"""Notification sinks for advisories raised by the engine."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from plyer import notification as plyer_notification  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)

APP_NAME = "Focus Streak"


class NotificationSink(Protocol):
    def notify(self, title: str, message: str) -> None: ...


class LoggingNotifier:
    """Write advisories to the log instead of the desktop."""

    def notify(self, title: str, message: str) -> None:
        logger.info("%s: %s", title, message)


class DesktopNotifier:
    """Send a desktop notification in a non-blocking way."""

    def __init__(self, timeout: int = 5) -> None:
        self.timeout = timeout

    def notify(self, title: str, message: str) -> None:
        threading.Thread(
            target=self._deliver, args=(title, message), daemon=True
        ).start()

    def _deliver(self, title: str, message: str) -> None:
        try:
            plyer_notification.notify(
                title=title,
                message=message,
                timeout=self.timeout,
                app_name=APP_NAME,
            )
        except Exception:
            # Platforms without a notification backend still keep the advisory.
            logger.exception("Desktop notification failed; %s: %s", title, message)

"""
Transient user-facing notifications.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"


@dataclass
class Notification:
    message: str
    severity: str
    expires_at: float


class NotificationCenter:
    """
    Holds the notification currently on screen.

    A new notification replaces the previous one; each expires ``ttl``
    seconds after it is shown.
    """

    def __init__(self, ttl: float = 3.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._current: Optional[Notification] = None
        self.history: Deque[Notification] = deque(maxlen=50)

    def show(self, message: str, severity: str = SUCCESS) -> Notification:
        notification = Notification(message, severity, self._clock() + self.ttl)
        self._current = notification
        self.history.append(notification)

        log = logger.warning if severity == ERROR else logger.info
        log(f"Notification ({severity}): {message}")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            loop.call_later(self.ttl, self._dismiss, notification)
        return notification

    def error(self, message: str) -> Notification:
        return self.show(message, ERROR)

    def _dismiss(self, notification: Notification) -> None:
        if self._current is notification:
            self._current = None

    @property
    def current(self) -> Optional[Notification]:
        if self._current is not None and self._clock() >= self._current.expires_at:
            self._current = None
        return self._current

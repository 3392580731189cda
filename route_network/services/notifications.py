"""
Transient outcome notifications

Success notices auto-dismiss after 5s and errors after 10s (configurable).
Only one notification is visible at a time; a new one replaces the old.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from loguru import logger

from ..config import get_config

SUCCESS = "success"
ERROR = "error"


@dataclass
class Notification:
    kind: str
    message: str
    ttl: float
    created_at: float = field(default_factory=time.monotonic)

    @property
    def ok(self) -> bool:
        return self.kind == SUCCESS

    def expired(self, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        return now - self.created_at >= self.ttl


class Notifier:
    """Holds the current notification and a history of everything shown"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.config = get_config().persistence
        self.clock = clock
        self.current: Optional[Notification] = None
        self.history: List[Notification] = []

    def show(self, kind: str, message: str) -> Notification:
        ttl = self.config.success_notification_s if kind == SUCCESS else self.config.error_notification_s
        notification = Notification(kind=kind, message=message, ttl=ttl, created_at=self.clock())
        self.current = notification
        self.history.append(notification)
        if kind == SUCCESS:
            logger.info(message)
        else:
            logger.error(message)
        return notification

    def success(self, message: str) -> Notification:
        return self.show(SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.show(ERROR, message)

    def visible(self) -> Optional[Notification]:
        """The current notification, or None once it has auto-dismissed"""
        if self.current is not None and self.current.expired(self.clock()):
            self.current = None
        return self.current

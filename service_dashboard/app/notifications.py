"""
Dismissible user notifications (toasts) raised by mutations.
"""

import itertools
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, List, Optional

from shared.logging import get_logger


class NotificationVariant(str, Enum):
    """Visual weight of a notification."""
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    id: int
    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT
    created_at: float = field(default_factory=time.time)


NotificationSink = Callable[[Notification], None]


class Notifier:
    """Collects notifications and forwards them to the UI sink."""

    def __init__(self, sink: Optional[NotificationSink] = None, max_history: int = 50):
        self.sink = sink
        self.logger = get_logger("dashboard.notifications")
        self._history: Deque[Notification] = deque(maxlen=max_history)
        self._ids = itertools.count(1)

    def notify(self, title: str, description: str,
               variant: NotificationVariant = NotificationVariant.DEFAULT) -> Notification:
        notification = Notification(next(self._ids), title, description, variant)
        self._history.append(notification)
        self.logger.info(
            "Notification raised",
            title=title,
            description=description,
            variant=variant.value,
        )
        if self.sink is not None:
            try:
                self.sink(notification)
            except Exception as exc:
                self.logger.error("Notification sink failed", notification_id=notification.id,
                                  error=str(exc), error_type=type(exc).__name__)
        return notification

    def success(self, title: str, description: str) -> Notification:
        return self.notify(title, description)

    def error(self, title: str, description: str) -> Notification:
        return self.notify(title, description, NotificationVariant.DESTRUCTIVE)

    @property
    def history(self) -> List[Notification]:
        return list(self._history)

    @property
    def last(self) -> Optional[Notification]:
        return self._history[-1] if self._history else None

    def dismiss(self, notification_id: int) -> bool:
        for notification in self._history:
            if notification.id == notification_id:
                self._history.remove(notification)
                return True
        return False

    def clear(self) -> None:
        self._history.clear()

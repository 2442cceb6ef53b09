"""
STREAMHUE - Notification Bus

Publish/subscribe bus for engine lifecycle notifications (effects applied,
superseded, restored). Stream events themselves do not travel over this bus;
they enter through the orchestrator.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class NotificationType(Enum):
    """Types of notifications that can be published."""

    EVENT_RECEIVED = "event_received"
    EVENT_IGNORED = "event_ignored"
    EFFECT_APPLIED = "effect_applied"
    EFFECT_SUPERSEDED = "effect_superseded"
    EFFECT_RESTORED = "effect_restored"
    EFFECT_FAILED = "effect_failed"


@dataclass
class Notification:
    """Notification data structure."""

    type: NotificationType
    data: Dict[str, Any]
    timestamp: float

    @classmethod
    def create(cls, notification_type: NotificationType, **kwargs) -> "Notification":
        """
        Create a notification stamped with the current time.

        Args:
            notification_type: Type of notification
            **kwargs: Notification data

        Returns:
            Notification instance
        """
        return cls(type=notification_type, data=kwargs, timestamp=time.time())


Handler = Callable[[Notification], None]


class NotificationBus:
    """
    Thread-safe publish/subscribe bus.

    Handlers run on the publishing thread, outside the bus lock.
    A failing handler is logged and does not affect the others.
    """

    def __init__(self):
        self._handlers: Dict[NotificationType, List[Handler]] = {}
        self._lock = threading.RLock()

    def subscribe(self, notification_type: NotificationType, handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(notification_type, []).append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        """Subscribe one handler to every notification type."""
        for notification_type in NotificationType:
            self.subscribe(notification_type, handler)

    def unsubscribe(self, notification_type: NotificationType, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.get(notification_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, notification: Notification) -> None:
        with self._lock:
            handlers = list(self._handlers.get(notification.type, []))

        for handler in handlers:
            try:
                handler(notification)
            except Exception as e:
                logger.error(
                    f"Error in notification handler for {notification.type}: {e}", exc_info=True
                )

    def clear(self) -> None:
        """Clear all notification handlers."""
        with self._lock:
            self._handlers.clear()

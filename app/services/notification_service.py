"""
Domain Event Notification Hook
Publishes scheduling domain events to subscribers after a change is committed.
Delivery (email, push, polling) belongs to the subscribers, not to the engine.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Callable, Optional

from ..models import utcnow

logger = logging.getLogger(__name__)

EVENT_TIME_CHANGED = "event.time_changed"
EVENT_CANCELLED = "event.cancelled"
INVITATION_CREATED = "invitation.created"
INVITATION_RESPONDED = "invitation.responded"
INVITATION_REMINDER = "invitation.reminder"


@dataclass(frozen=True)
class DomainEvent:
    """Something observable happened to an event or invitation"""

    name: str
    event_id: str
    recipients: tuple[str, ...] = ()
    payload: dict = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)


Subscriber = Callable[[DomainEvent], None]


class NotificationHub:
    """Fan-out of domain events to registered subscribers"""

    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._lock = Lock()

    def subscribe(self, subscriber: Subscriber) -> Subscriber:
        with self._lock:
            self._subscribers.append(subscriber)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

    def publish(self, event: DomainEvent) -> dict:
        """
        Deliver ``event`` to every subscriber.

        Returns:
            Dict with delivered count and per-subscriber errors
        """
        with self._lock:
            subscribers = list(self._subscribers)

        result = {"delivered": 0, "errors": []}
        for subscriber in subscribers:
            try:
                subscriber(event)
                result["delivered"] += 1
            except Exception as e:
                result["errors"].append(str(e))
                logger.error(f"❌ Subscriber failed for {event.name} on event {event.event_id}: {e}")
        return result


def log_subscriber(event: DomainEvent) -> None:
    """Default subscriber: record the notification that would be delivered"""
    logger.info(
        f"📣 {event.name} for event {event.event_id} -> {len(event.recipients)} recipient(s)"
    )


_hub: Optional[NotificationHub] = None
_hub_lock = Lock()


def get_notification_hub() -> NotificationHub:
    """Process-wide hub with the logging subscriber attached"""
    global _hub
    with _hub_lock:
        if _hub is None:
            _hub = NotificationHub()
            _hub.subscribe(log_subscriber)
    return _hub

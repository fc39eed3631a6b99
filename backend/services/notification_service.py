# backend/services/notification_service.py
"""
Outbound notifications.

State transitions return a list of ``NotificationEvent``s; the dispatcher
drains that list after the transition has committed. A failing sink is
logged and skipped, it never undoes the business transition.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from pydantic import BaseModel, Field

from domain.errors import NotFoundError
from domain.ports import UnitOfWorkFactory
from domain.records import NotificationRecord

logger = logging.getLogger(__name__)

# event type -> persisted category
EVENT_CATEGORIES: Dict[str, str] = {
    "NEW_ORDER_RECEIVED": "ORDER_UPDATE",
    "ORDER_CREATED": "ORDER_UPDATE",
    "ORDER_CONFIRMED": "ORDER_UPDATE",
    "ORDER_COMPLETED": "ORDER_UPDATE",
    "ORDER_CANCELLED": "ORDER_UPDATE",
    "PRICE_PROPOSED": "ORDER_UPDATE",
    "NEW_DELIVERY_REQUEST": "DELIVERY_UPDATE",
    "PICKUP_AUTHORIZED": "DELIVERY_UPDATE",
    "ORDER_PICKED_UP": "DELIVERY_UPDATE",
    "ORDER_DELIVERED": "DELIVERY_UPDATE",
    "DELIVERY_FAILED": "DELIVERY_UPDATE",
    "DELIVERY_REASSIGNED": "DELIVERY_UPDATE",
    "DONATION_CLAIMED": "CLAIM_UPDATE",
    "DONATION_CLAIM_CREATED": "CLAIM_UPDATE",
    "DONATION_PICKUP_AUTHORIZED": "CLAIM_UPDATE",
    "DONATION_PICKED_UP": "CLAIM_UPDATE",
    "DONATION_COMPLETED": "CLAIM_UPDATE",
    "DONATION_DELIVERED": "CLAIM_UPDATE",
    "DONATION_DELIVERY_FAILED": "CLAIM_UPDATE",
    "DONATION_CLAIM_CANCELLED": "CLAIM_UPDATE",
    "NEW_DONATION_DELIVERY": "DELIVERY_UPDATE",
}


def category_for(event_type: str) -> str:
    return EVENT_CATEGORIES.get(event_type, event_type)


class NotificationEvent(BaseModel):
    recipient_id: int
    event_type: str
    message: str
    reference_id: Optional[int] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class NotificationSink(Protocol):
    def send(self, event: NotificationEvent) -> None: ...


class LoggingNotificationSink:
    def send(self, event: NotificationEvent) -> None:
        logger.info(
            f"notify user={event.recipient_id} type={event.event_type} "
            f"ref={event.reference_id}: {event.message}"
        )


class StoreNotificationSink:
    """Persists each event as a notification row, in its own unit of work."""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    def send(self, event: NotificationEvent) -> None:
        with self.uow_factory() as uow:
            if uow.users.get_user(event.recipient_id) is None:
                raise NotFoundError(f"User with ID {event.recipient_id} not found")
            uow.notifications.add(
                NotificationRecord(
                    recipient_id=event.recipient_id,
                    category=category_for(event.event_type),
                    event_type=event.event_type,
                    message=event.message,
                    reference_id=event.reference_id,
                    data=event.data,
                )
            )
            uow.commit()


class NotificationDispatcher:
    def __init__(self, sinks: Optional[Iterable[NotificationSink]] = None):
        self.sinks: List[NotificationSink] = list(sinks) if sinks is not None else [LoggingNotificationSink()]

    def dispatch(self, events: Iterable[NotificationEvent]) -> int:
        """Deliver events to every sink; returns how many deliveries succeeded."""
        delivered = 0
        for event in events:
            for sink in self.sinks:
                try:
                    sink.send(event)
                    delivered += 1
                except Exception:
                    logger.exception(
                        f"Notification {event.event_type} to user {event.recipient_id} failed"
                    )
        return delivered


class NotificationInbox:
    """Read side of persisted notifications."""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    def list_notifications(
        self, user_id: int, offset: int = 0, limit: int = 20, unread_only: bool = False
    ) -> List[NotificationRecord]:
        with self.uow_factory() as uow:
            return uow.notifications.list_for(user_id, unread_only=unread_only, offset=offset, limit=limit)

    def unread_count(self, user_id: int) -> int:
        with self.uow_factory() as uow:
            return uow.notifications.count_unread(user_id)

    def mark_read(self, user_id: int, notification_id: int) -> None:
        with self.uow_factory() as uow:
            if not uow.notifications.mark_read(notification_id, user_id):
                raise NotFoundError("Notification not found")
            uow.commit()

    def mark_all_read(self, user_id: int) -> int:
        with self.uow_factory() as uow:
            changed = uow.notifications.mark_all_read(user_id)
            uow.commit()
            return changed

# backend/domain/ports.py
"""Storage interfaces consumed by the services.

Two implementations exist: ``database.sql_store`` (SQLAlchemy) and
``database.memory_store`` (in-process, used by tests and demos).
"""

from datetime import datetime
from typing import Callable, List, Optional, Protocol

from domain.records import (
    CharityRecord,
    ClaimRecord,
    CourierRecord,
    DeliveryRecord,
    DeliveryStatus,
    FulfillmentKind,
    ListingRecord,
    ListingStatus,
    NotificationRecord,
    OrderRecord,
    UserRecord,
    VolunteerRecord,
)


class UserDirectory(Protocol):
    def get_user(self, user_id: int) -> Optional[UserRecord]: ...

    def get_charity_by_user(self, user_id: int) -> Optional[CharityRecord]: ...

    def list_verified_couriers(self) -> List[CourierRecord]: ...

    def list_active_volunteers(self, organization_id: int) -> List[VolunteerRecord]: ...


class ListingRepository(Protocol):
    def get(self, listing_id: int) -> Optional[ListingRecord]: ...

    def add(self, listing: ListingRecord) -> ListingRecord: ...

    def save(self, listing: ListingRecord) -> ListingRecord: ...

    def transition_status(
        self,
        listing_id: int,
        to_status: ListingStatus,
        expected: Optional[ListingStatus] = None,
    ) -> ListingRecord:
        """Apply ``to_status`` only if the stored status equals ``expected``.

        Raises NotFoundError when the listing is missing and InvalidStateError
        when ``expected`` is given and does not match.
        """
        ...

    def list_by_status(self, status: ListingStatus) -> List[ListingRecord]: ...

    def list_by_owner(self, owner_id: int) -> List[ListingRecord]: ...

    def search_active(
        self,
        now: datetime,
        q: Optional[str] = None,
        food_type: Optional[str] = None,
        is_donation: Optional[bool] = None,
        location: Optional[str] = None,
    ) -> List[ListingRecord]:
        """ACTIVE listings whose pickup window has not elapsed at ``now``, newest first.

        Text filters are case-insensitive substring matches.
        """
        ...


class OrderRepository(Protocol):
    def get(self, order_id: int) -> Optional[OrderRecord]: ...

    def add(self, order: OrderRecord) -> OrderRecord: ...

    def save(self, order: OrderRecord) -> OrderRecord: ...

    def list_by_buyer(self, buyer_id: int, offset: int = 0, limit: int = 20) -> List[OrderRecord]: ...

    def list_by_seller(self, seller_id: int, offset: int = 0, limit: int = 20) -> List[OrderRecord]: ...


class ClaimRepository(Protocol):
    def get(self, claim_id: int) -> Optional[ClaimRecord]: ...

    def add(self, claim: ClaimRecord) -> ClaimRecord: ...

    def save(self, claim: ClaimRecord) -> ClaimRecord: ...

    def find_pending_for_listing(self, listing_id: int) -> Optional[ClaimRecord]: ...

    def list_by_charity(self, charity_id: int, offset: int = 0, limit: int = 20) -> List[ClaimRecord]: ...

    def list_by_donor(self, donor_id: int, offset: int = 0, limit: int = 20) -> List[ClaimRecord]: ...


class DeliveryRepository(Protocol):
    def get_by_order(self, order_id: int) -> Optional[DeliveryRecord]: ...

    def get_by_claim(self, claim_id: int) -> Optional[DeliveryRecord]: ...

    def add(self, delivery: DeliveryRecord) -> DeliveryRecord: ...

    def save(self, delivery: DeliveryRecord) -> DeliveryRecord: ...

    def list_by_actor(
        self,
        actor_id: int,
        kind: Optional[FulfillmentKind] = None,
        status: Optional[DeliveryStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> List[DeliveryRecord]: ...


class NotificationRepository(Protocol):
    def add(self, notification: NotificationRecord) -> NotificationRecord: ...

    def list_for(
        self, recipient_id: int, unread_only: bool = False, offset: int = 0, limit: int = 20
    ) -> List[NotificationRecord]: ...

    def count_unread(self, recipient_id: int) -> int: ...

    def mark_read(self, notification_id: int, recipient_id: int) -> bool: ...

    def mark_all_read(self, recipient_id: int) -> int: ...


class UnitOfWork(Protocol):
    """One atomic unit against the backing store.

    Used as a context manager; leaving the block without ``commit()``
    (or through an exception) discards every write made inside it.
    """

    users: UserDirectory
    listings: ListingRepository
    orders: OrderRepository
    claims: ClaimRepository
    deliveries: DeliveryRepository
    notifications: NotificationRepository

    def __enter__(self) -> "UnitOfWork": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


UnitOfWorkFactory = Callable[[], UnitOfWork]

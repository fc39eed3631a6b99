# backend/database/memory_store.py
"""In-process implementation of the storage interfaces.

A unit of work holds the store lock for its whole lifetime and works on
private copies of every table; ``commit()`` publishes them in one step.
Concurrent units therefore serialize the same way the conditional UPDATE
serializes them on the SQL store.
"""

import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from domain.errors import InvalidStateError, NotFoundError
from domain.records import (
    CharityRecord,
    ClaimRecord,
    ClaimStatus,
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


_TABLES = (
    "users",
    "charities",
    "volunteers",
    "couriers",
    "listings",
    "orders",
    "claims",
    "deliveries",
    "notifications",
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _page(records: list, offset: int, limit: int) -> list:
    records = sorted(records, key=lambda r: r.id, reverse=True)
    return records[offset:offset + limit]


class _Tables:
    """Working copy of the store tables for one unit of work."""

    def __init__(self, tables: Dict[str, dict], counters: Dict[str, int]):
        self.tables = {name: dict(rows) for name, rows in tables.items()}
        self.counters = dict(counters)

    def get(self, table: str, key: int):
        row = self.tables[table].get(key)
        return row.model_copy(deep=True) if row is not None else None

    def rows(self, table: str) -> list:
        return [r.model_copy(deep=True) for r in self.tables[table].values()]

    def insert(self, table: str, record):
        self.counters[table] += 1
        record = record.model_copy(update={"id": self.counters[table]}, deep=True)
        self.tables[table][record.id] = record
        return record.model_copy(deep=True)

    def update(self, table: str, record):
        if record.id not in self.tables[table]:
            raise NotFoundError(f"{table[:-1].capitalize()} {record.id} not found")
        self.tables[table][record.id] = record.model_copy(deep=True)
        return record


class MemoryUserDirectory:
    def __init__(self, t: _Tables):
        self._t = t

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        return self._t.get("users", user_id)

    def get_charity_by_user(self, user_id: int) -> Optional[CharityRecord]:
        for charity in self._t.rows("charities"):
            if charity.user_id == user_id:
                return charity
        return None

    def list_verified_couriers(self) -> List[CourierRecord]:
        couriers = [c for c in self._t.rows("couriers") if c.is_id_verified]
        return sorted(couriers, key=lambda c: c.id)

    def list_active_volunteers(self, organization_id: int) -> List[VolunteerRecord]:
        volunteers = [
            v for v in self._t.rows("volunteers")
            if v.organization_id == organization_id and v.is_active
        ]
        return sorted(volunteers, key=lambda v: v.id)


class MemoryListingRepository:
    def __init__(self, t: _Tables):
        self._t = t

    def get(self, listing_id: int) -> Optional[ListingRecord]:
        return self._t.get("listings", listing_id)

    def add(self, listing: ListingRecord) -> ListingRecord:
        if listing.created_at is None:
            listing = listing.model_copy(update={"created_at": _now()})
        return self._t.insert("listings", listing)

    def save(self, listing: ListingRecord) -> ListingRecord:
        return self._t.update("listings", listing)

    def transition_status(
        self,
        listing_id: int,
        to_status: ListingStatus,
        expected: Optional[ListingStatus] = None,
    ) -> ListingRecord:
        listing = self.get(listing_id)
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found")
        if expected is not None and listing.status != expected:
            raise InvalidStateError(
                f"Listing {listing_id} is {listing.status.value}, expected {expected.value}"
            )
        listing.status = to_status
        return self._t.update("listings", listing)

    def list_by_status(self, status: ListingStatus) -> List[ListingRecord]:
        return [l for l in self._t.rows("listings") if l.status == status]

    def list_by_owner(self, owner_id: int) -> List[ListingRecord]:
        return [l for l in self._t.rows("listings") if l.owner_id == owner_id]

    def search_active(
        self,
        now: datetime,
        q: Optional[str] = None,
        food_type: Optional[str] = None,
        is_donation: Optional[bool] = None,
        location: Optional[str] = None,
    ) -> List[ListingRecord]:
        def matches(l: ListingRecord) -> bool:
            if l.status != ListingStatus.ACTIVE:
                return False
            if l.pickup_window_end is not None and now > l.pickup_window_end:
                return False
            if q and q.lower() not in " ".join([l.title, l.description, l.food_type]).lower():
                return False
            if food_type and food_type.lower() not in l.food_type.lower():
                return False
            if is_donation is not None and l.is_donation != is_donation:
                return False
            if location and location.lower() not in (l.pickup_location or "").lower():
                return False
            return True

        rows = [l for l in self._t.rows("listings") if matches(l)]
        return sorted(rows, key=lambda l: (l.created_at or now, l.id), reverse=True)


class MemoryOrderRepository:
    def __init__(self, t: _Tables):
        self._t = t

    def get(self, order_id: int) -> Optional[OrderRecord]:
        return self._t.get("orders", order_id)

    def add(self, order: OrderRecord) -> OrderRecord:
        now = _now()
        order = order.model_copy(update={"created_at": now, "updated_at": now})
        return self._t.insert("orders", order)

    def save(self, order: OrderRecord) -> OrderRecord:
        order.updated_at = _now()
        return self._t.update("orders", order)

    def list_by_buyer(self, buyer_id: int, offset: int = 0, limit: int = 20) -> List[OrderRecord]:
        return _page([o for o in self._t.rows("orders") if o.buyer_id == buyer_id], offset, limit)

    def list_by_seller(self, seller_id: int, offset: int = 0, limit: int = 20) -> List[OrderRecord]:
        return _page([o for o in self._t.rows("orders") if o.seller_id == seller_id], offset, limit)


class MemoryClaimRepository:
    def __init__(self, t: _Tables):
        self._t = t

    def get(self, claim_id: int) -> Optional[ClaimRecord]:
        return self._t.get("claims", claim_id)

    def add(self, claim: ClaimRecord) -> ClaimRecord:
        now = _now()
        claim = claim.model_copy(update={"created_at": now, "updated_at": now})
        return self._t.insert("claims", claim)

    def save(self, claim: ClaimRecord) -> ClaimRecord:
        claim.updated_at = _now()
        return self._t.update("claims", claim)

    def find_pending_for_listing(self, listing_id: int) -> Optional[ClaimRecord]:
        for claim in self._t.rows("claims"):
            if claim.listing_id == listing_id and claim.status == ClaimStatus.PENDING:
                return claim
        return None

    def list_by_charity(self, charity_id: int, offset: int = 0, limit: int = 20) -> List[ClaimRecord]:
        return _page([c for c in self._t.rows("claims") if c.charity_id == charity_id], offset, limit)

    def list_by_donor(self, donor_id: int, offset: int = 0, limit: int = 20) -> List[ClaimRecord]:
        return _page([c for c in self._t.rows("claims") if c.donor_id == donor_id], offset, limit)


class MemoryDeliveryRepository:
    def __init__(self, t: _Tables):
        self._t = t

    def get_by_order(self, order_id: int) -> Optional[DeliveryRecord]:
        for delivery in self._t.rows("deliveries"):
            if delivery.order_id == order_id:
                return delivery
        return None

    def get_by_claim(self, claim_id: int) -> Optional[DeliveryRecord]:
        for delivery in self._t.rows("deliveries"):
            if delivery.claim_id == claim_id:
                return delivery
        return None

    def add(self, delivery: DeliveryRecord) -> DeliveryRecord:
        if (delivery.order_id is None) == (delivery.claim_id is None):
            raise ValueError("A delivery belongs to exactly one order or one claim")
        delivery = delivery.model_copy(update={"updated_at": _now()})
        return self._t.insert("deliveries", delivery)

    def save(self, delivery: DeliveryRecord) -> DeliveryRecord:
        delivery.updated_at = _now()
        return self._t.update("deliveries", delivery)

    def list_by_actor(
        self,
        actor_id: int,
        kind: Optional[FulfillmentKind] = None,
        status: Optional[DeliveryStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> List[DeliveryRecord]:
        rows = [d for d in self._t.rows("deliveries") if d.actor_id == actor_id]
        if kind == FulfillmentKind.PURCHASE:
            rows = [d for d in rows if d.order_id is not None]
        elif kind == FulfillmentKind.DONATION:
            rows = [d for d in rows if d.claim_id is not None]
        if status is not None:
            rows = [d for d in rows if d.status == status]
        return _page(rows, offset, limit)


class MemoryNotificationRepository:
    def __init__(self, t: _Tables):
        self._t = t

    def add(self, notification: NotificationRecord) -> NotificationRecord:
        if notification.created_at is None:
            notification = notification.model_copy(update={"created_at": _now()})
        return self._t.insert("notifications", notification)

    def list_for(
        self, recipient_id: int, unread_only: bool = False, offset: int = 0, limit: int = 20
    ) -> List[NotificationRecord]:
        rows = [
            n for n in self._t.rows("notifications")
            if n.recipient_id == recipient_id and (not unread_only or not n.is_read)
        ]
        return _page(rows, offset, limit)

    def count_unread(self, recipient_id: int) -> int:
        return len(self.list_for(recipient_id, unread_only=True, limit=10**9))

    def mark_read(self, notification_id: int, recipient_id: int) -> bool:
        notification = self._t.get("notifications", notification_id)
        if notification is None or notification.recipient_id != recipient_id:
            return False
        notification.is_read = True
        self._t.update("notifications", notification)
        return True

    def mark_all_read(self, recipient_id: int) -> int:
        changed = 0
        for notification in self.list_for(recipient_id, unread_only=True, limit=10**9):
            notification.is_read = True
            self._t.update("notifications", notification)
            changed += 1
        return changed


class MemoryUnitOfWork:
    def __init__(self, store: "MemoryStore"):
        self._store = store
        self._committed = False

    def __enter__(self) -> "MemoryUnitOfWork":
        self._store._lock.acquire()
        self._begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None or not self._committed:
                self.rollback()
        finally:
            self._store._lock.release()

    def _begin(self) -> None:
        t = _Tables(self._store._tables, self._store._counters)
        self._t = t
        self.users = MemoryUserDirectory(t)
        self.listings = MemoryListingRepository(t)
        self.orders = MemoryOrderRepository(t)
        self.claims = MemoryClaimRepository(t)
        self.deliveries = MemoryDeliveryRepository(t)
        self.notifications = MemoryNotificationRepository(t)

    def commit(self) -> None:
        self._store._tables = self._t.tables
        self._store._counters = self._t.counters
        self._committed = True
        self._begin()

    def rollback(self) -> None:
        self._committed = False
        self._begin()


class MemoryStore:
    """Callable unit-of-work factory backed by plain dictionaries."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tables: Dict[str, dict] = {name: {} for name in _TABLES}
        self._counters: Dict[str, int] = {name: 0 for name in _TABLES}

    def __call__(self) -> MemoryUnitOfWork:
        return MemoryUnitOfWork(self)

    # ---------- seeding helpers (outside any unit of work) ----------

    def _seed(self, table: str, record):
        with self._lock:
            if record.id is None:
                self._counters[table] += 1
                record = record.model_copy(update={"id": self._counters[table]})
            else:
                self._counters[table] = max(self._counters[table], record.id)
            self._tables[table] = {**self._tables[table], record.id: record}
            return record.model_copy(deep=True)

    def add_user(self, user: UserRecord) -> UserRecord:
        return self._seed("users", user)

    def add_charity(self, charity: CharityRecord) -> CharityRecord:
        return self._seed("charities", charity)

    def add_volunteer(self, volunteer: VolunteerRecord) -> VolunteerRecord:
        return self._seed("volunteers", volunteer)

    def add_courier(self, courier: CourierRecord) -> CourierRecord:
        return self._seed("couriers", courier)

    def add_listing(self, listing: ListingRecord) -> ListingRecord:
        if listing.created_at is None:
            listing = listing.model_copy(update={"created_at": _now()})
        return self._seed("listings", listing)

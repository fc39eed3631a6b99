# backend/database/sql_store.py
"""SQLAlchemy implementation of the storage interfaces.

One ``Session`` per unit of work. The listing status change is a single
conditional UPDATE, so two units racing for the same ACTIVE listing cannot
both succeed.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session, sessionmaker

from domain.errors import InvalidStateError, NotFoundError
from domain.records import (
    AccountStatus,
    CharityRecord,
    ClaimRecord,
    ClaimStatus,
    CourierRecord,
    DeliveryPersonnelType,
    DeliveryRecord,
    DeliveryStatus,
    DeliveryType,
    FulfillmentKind,
    ListingRecord,
    ListingStatus,
    NotificationRecord,
    OrderRecord,
    OrderStatus,
    PaymentStatus,
    UserRecord,
    UserRole,
    VolunteerRecord,
)
from models.charity_model import CharityOrganization, OrganizationVolunteer
from models.claim_model import DonationClaim
from models.courier_model import IndependentCourier
from models.delivery_model import Delivery
from models.listing_model import FoodListing
from models.notification_model import Notification
from models.order_model import Order
from models.user_model import User

logger = logging.getLogger(__name__)


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timezone-aware columns back naive
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops the offset on write, so only UTC may reach the column
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value


def _now() -> datetime:
    return datetime.now(timezone.utc)


_LISTING_TIMES = ("cooked_at", "pickup_window_start", "pickup_window_end")


def _listing_columns(listing: ListingRecord) -> dict:
    columns = listing.model_dump(exclude={"id", "created_at"})
    for field in _LISTING_TIMES:
        columns[field] = _to_utc(columns[field])
    return columns


# ---------- ORM -> record ----------

def _user_out(u: User) -> UserRecord:
    return UserRecord(
        id=u.id,
        username=u.username,
        role=UserRole(u.role),
        email=u.email,
        phone=u.phone,
        account_status=AccountStatus(u.account_status or "ACTIVE"),
    )


def _listing_out(l: FoodListing) -> ListingRecord:
    return ListingRecord(
        id=l.id,
        owner_id=l.owner_id,
        title=l.title,
        description=l.description or "",
        food_type=l.food_type or "",
        cooked_at=_utc(l.cooked_at),
        pickup_window_start=_utc(l.pickup_window_start),
        pickup_window_end=_utc(l.pickup_window_end),
        pickup_location=l.pickup_location,
        is_donation=bool(l.is_donation),
        price=l.price,
        quantity=l.quantity,
        dietary_info=l.dietary_info,
        status=ListingStatus(l.status),
        image_path=l.image_path,
        created_at=_utc(l.created_at),
    )


def _order_out(o: Order) -> OrderRecord:
    return OrderRecord(
        id=o.id,
        buyer_id=o.buyer_id,
        seller_id=o.seller_id,
        listing_id=o.listing_id,
        delivery_type=DeliveryType(o.delivery_type),
        delivery_address=o.delivery_address or "",
        final_price=o.final_price,
        delivery_fee=o.delivery_fee or 0.0,
        pickup_code=o.pickup_code,
        status=OrderStatus(o.status),
        payment_status=PaymentStatus(o.payment_status),
        notes=o.notes,
        created_at=_utc(o.created_at),
        updated_at=_utc(o.updated_at),
    )


def _claim_out(c: DonationClaim) -> ClaimRecord:
    return ClaimRecord(
        id=c.id,
        charity_id=c.charity_id,
        donor_id=c.donor_id,
        listing_id=c.listing_id,
        delivery_type=DeliveryType(c.delivery_type),
        delivery_address=c.delivery_address,
        pickup_code=c.pickup_code,
        status=ClaimStatus(c.status),
        notes=c.notes,
        created_at=_utc(c.created_at),
        updated_at=_utc(c.updated_at),
    )


def _delivery_out(d: Delivery) -> DeliveryRecord:
    return DeliveryRecord(
        id=d.id,
        order_id=d.order_id,
        claim_id=d.claim_id,
        personnel_type=DeliveryPersonnelType(d.personnel_type),
        actor_id=d.actor_id,
        status=DeliveryStatus(d.status),
        failure_reason=d.failure_reason,
        updated_at=_utc(d.updated_at),
    )


def _notification_out(n: Notification) -> NotificationRecord:
    return NotificationRecord(
        id=n.id,
        recipient_id=n.recipient_id,
        category=n.category,
        event_type=n.event_type,
        message=n.message,
        reference_id=n.reference_id,
        is_read=bool(n.is_read),
        created_at=_utc(n.created_at),
        data=n.data or {},
    )


# ---------- repositories ----------

class SqlUserDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        u = self.db.get(User, user_id)
        return _user_out(u) if u else None

    def get_charity_by_user(self, user_id: int) -> Optional[CharityRecord]:
        c = self.db.query(CharityOrganization).filter(CharityOrganization.user_id == user_id).first()
        if not c:
            return None
        return CharityRecord(
            id=c.id,
            user_id=c.user_id,
            organization_name=c.organization_name,
            is_doc_verified=bool(c.is_doc_verified),
            address=c.address,
        )

    def list_verified_couriers(self) -> List[CourierRecord]:
        rows = (
            self.db.query(IndependentCourier)
            .filter(IndependentCourier.is_id_verified.is_(True))
            .order_by(IndependentCourier.id)
            .all()
        )
        return [
            CourierRecord(
                id=c.id,
                user_id=c.user_id,
                full_name=c.full_name,
                is_id_verified=bool(c.is_id_verified),
                operating_areas=list(c.operating_areas or []),
                rating=c.rating or 0.0,
            )
            for c in rows
        ]

    def list_active_volunteers(self, organization_id: int) -> List[VolunteerRecord]:
        rows = (
            self.db.query(OrganizationVolunteer)
            .filter(
                OrganizationVolunteer.organization_id == organization_id,
                OrganizationVolunteer.is_active.is_(True),
            )
            .order_by(OrganizationVolunteer.id)
            .all()
        )
        return [
            VolunteerRecord(
                id=v.id,
                user_id=v.user_id,
                organization_id=v.organization_id,
                volunteer_name=v.volunteer_name,
                contact_phone=v.contact_phone,
                is_active=bool(v.is_active),
            )
            for v in rows
        ]


class SqlListingRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, listing_id: int) -> Optional[ListingRecord]:
        l = self.db.get(FoodListing, listing_id)
        return _listing_out(l) if l else None

    def add(self, listing: ListingRecord) -> ListingRecord:
        l = FoodListing(**_listing_columns(listing))
        l.status = listing.status.value
        l.created_at = _to_utc(listing.created_at) or _now()
        self.db.add(l)
        self.db.flush()
        return _listing_out(l)

    def save(self, listing: ListingRecord) -> ListingRecord:
        l = self.db.get(FoodListing, listing.id)
        if not l:
            raise NotFoundError(f"Listing {listing.id} not found")
        for field, value in _listing_columns(listing).items():
            setattr(l, field, value)
        l.status = listing.status.value
        self.db.flush()
        return _listing_out(l)

    def transition_status(
        self,
        listing_id: int,
        to_status: ListingStatus,
        expected: Optional[ListingStatus] = None,
    ) -> ListingRecord:
        stmt = update(FoodListing).where(FoodListing.id == listing_id)
        if expected is not None:
            stmt = stmt.where(FoodListing.status == expected.value)
        result = self.db.execute(
            stmt.values(status=to_status.value).execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = self.db.get(FoodListing, listing_id)
            if current is None:
                raise NotFoundError(f"Listing {listing_id} not found")
            self.db.refresh(current)
            if expected is not None:
                message = f"Listing {listing_id} is {current.status}, expected {expected.value}"
            else:
                message = f"Listing {listing_id} is already {current.status}"
            logger.debug(f"Listing {listing_id} status change not applied: {message}")
            raise InvalidStateError(message)
        l = self.db.get(FoodListing, listing_id)
        self.db.refresh(l)
        return _listing_out(l)

    def list_by_status(self, status: ListingStatus) -> List[ListingRecord]:
        rows = self.db.query(FoodListing).filter(FoodListing.status == status.value).all()
        return [_listing_out(l) for l in rows]

    def list_by_owner(self, owner_id: int) -> List[ListingRecord]:
        rows = self.db.query(FoodListing).filter(FoodListing.owner_id == owner_id).all()
        return [_listing_out(l) for l in rows]

    def search_active(
        self,
        now: datetime,
        q: Optional[str] = None,
        food_type: Optional[str] = None,
        is_donation: Optional[bool] = None,
        location: Optional[str] = None,
    ) -> List[ListingRecord]:
        query = self.db.query(FoodListing).filter(
            FoodListing.status == ListingStatus.ACTIVE.value,
            or_(FoodListing.pickup_window_end.is_(None), FoodListing.pickup_window_end >= _to_utc(now)),
        )
        if q:
            like = f"%{q}%"
            query = query.filter(or_(
                FoodListing.title.ilike(like),
                FoodListing.description.ilike(like),
                FoodListing.food_type.ilike(like),
            ))
        if food_type:
            query = query.filter(FoodListing.food_type.ilike(f"%{food_type}%"))
        if is_donation is not None:
            query = query.filter(FoodListing.is_donation.is_(is_donation))
        if location:
            query = query.filter(FoodListing.pickup_location.ilike(f"%{location}%"))
        rows = query.order_by(FoodListing.created_at.desc(), FoodListing.id.desc()).all()
        return [_listing_out(l) for l in rows]


class SqlOrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: int) -> Optional[OrderRecord]:
        o = self.db.get(Order, order_id)
        return _order_out(o) if o else None

    def add(self, order: OrderRecord) -> OrderRecord:
        now = _now()
        o = Order(**order.model_dump(exclude={"id", "created_at", "updated_at"}, mode="json"))
        o.created_at = now
        o.updated_at = now
        self.db.add(o)
        self.db.flush()
        return _order_out(o)

    def save(self, order: OrderRecord) -> OrderRecord:
        o = self.db.get(Order, order.id)
        if not o:
            raise NotFoundError(f"Order {order.id} not found")
        for field, value in order.model_dump(exclude={"id", "created_at", "updated_at"}, mode="json").items():
            setattr(o, field, value)
        o.updated_at = _now()
        self.db.flush()
        return _order_out(o)

    def list_by_buyer(self, buyer_id: int, offset: int = 0, limit: int = 20) -> List[OrderRecord]:
        rows = (
            self.db.query(Order).filter(Order.buyer_id == buyer_id)
            .order_by(Order.id.desc()).offset(offset).limit(limit).all()
        )
        return [_order_out(o) for o in rows]

    def list_by_seller(self, seller_id: int, offset: int = 0, limit: int = 20) -> List[OrderRecord]:
        rows = (
            self.db.query(Order).filter(Order.seller_id == seller_id)
            .order_by(Order.id.desc()).offset(offset).limit(limit).all()
        )
        return [_order_out(o) for o in rows]


class SqlClaimRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, claim_id: int) -> Optional[ClaimRecord]:
        c = self.db.get(DonationClaim, claim_id)
        return _claim_out(c) if c else None

    def add(self, claim: ClaimRecord) -> ClaimRecord:
        now = _now()
        c = DonationClaim(**claim.model_dump(exclude={"id", "created_at", "updated_at"}, mode="json"))
        c.created_at = now
        c.updated_at = now
        self.db.add(c)
        self.db.flush()
        return _claim_out(c)

    def save(self, claim: ClaimRecord) -> ClaimRecord:
        c = self.db.get(DonationClaim, claim.id)
        if not c:
            raise NotFoundError(f"Donation claim {claim.id} not found")
        for field, value in claim.model_dump(exclude={"id", "created_at", "updated_at"}, mode="json").items():
            setattr(c, field, value)
        c.updated_at = _now()
        self.db.flush()
        return _claim_out(c)

    def find_pending_for_listing(self, listing_id: int) -> Optional[ClaimRecord]:
        c = (
            self.db.query(DonationClaim)
            .filter(
                DonationClaim.listing_id == listing_id,
                DonationClaim.status == ClaimStatus.PENDING.value,
            )
            .first()
        )
        return _claim_out(c) if c else None

    def list_by_charity(self, charity_id: int, offset: int = 0, limit: int = 20) -> List[ClaimRecord]:
        rows = (
            self.db.query(DonationClaim).filter(DonationClaim.charity_id == charity_id)
            .order_by(DonationClaim.id.desc()).offset(offset).limit(limit).all()
        )
        return [_claim_out(c) for c in rows]

    def list_by_donor(self, donor_id: int, offset: int = 0, limit: int = 20) -> List[ClaimRecord]:
        rows = (
            self.db.query(DonationClaim).filter(DonationClaim.donor_id == donor_id)
            .order_by(DonationClaim.id.desc()).offset(offset).limit(limit).all()
        )
        return [_claim_out(c) for c in rows]


class SqlDeliveryRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_order(self, order_id: int) -> Optional[DeliveryRecord]:
        d = self.db.query(Delivery).filter(Delivery.order_id == order_id).first()
        return _delivery_out(d) if d else None

    def get_by_claim(self, claim_id: int) -> Optional[DeliveryRecord]:
        d = self.db.query(Delivery).filter(Delivery.claim_id == claim_id).first()
        return _delivery_out(d) if d else None

    def add(self, delivery: DeliveryRecord) -> DeliveryRecord:
        if (delivery.order_id is None) == (delivery.claim_id is None):
            raise ValueError("A delivery belongs to exactly one order or one claim")
        d = Delivery(**delivery.model_dump(exclude={"id", "updated_at"}, mode="json"))
        d.updated_at = _now()
        self.db.add(d)
        self.db.flush()
        return _delivery_out(d)

    def save(self, delivery: DeliveryRecord) -> DeliveryRecord:
        d = self.db.get(Delivery, delivery.id)
        if not d:
            raise NotFoundError(f"Delivery {delivery.id} not found")
        for field, value in delivery.model_dump(exclude={"id", "updated_at"}, mode="json").items():
            setattr(d, field, value)
        d.updated_at = _now()
        self.db.flush()
        return _delivery_out(d)

    def list_by_actor(
        self,
        actor_id: int,
        kind: Optional[FulfillmentKind] = None,
        status: Optional[DeliveryStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> List[DeliveryRecord]:
        q = self.db.query(Delivery).filter(Delivery.actor_id == actor_id)
        if kind == FulfillmentKind.PURCHASE:
            q = q.filter(Delivery.order_id.isnot(None))
        elif kind == FulfillmentKind.DONATION:
            q = q.filter(Delivery.claim_id.isnot(None))
        if status is not None:
            q = q.filter(Delivery.status == status.value)
        rows = q.order_by(Delivery.id.desc()).offset(offset).limit(limit).all()
        return [_delivery_out(d) for d in rows]


class SqlNotificationRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, notification: NotificationRecord) -> NotificationRecord:
        n = Notification(**notification.model_dump(exclude={"id", "created_at"}))
        n.created_at = notification.created_at or _now()
        self.db.add(n)
        self.db.flush()
        return _notification_out(n)

    def _query(self, recipient_id: int, unread_only: bool):
        q = self.db.query(Notification).filter(Notification.recipient_id == recipient_id)
        if unread_only:
            q = q.filter(Notification.is_read.is_(False))
        return q

    def list_for(
        self, recipient_id: int, unread_only: bool = False, offset: int = 0, limit: int = 20
    ) -> List[NotificationRecord]:
        rows = (
            self._query(recipient_id, unread_only)
            .order_by(Notification.id.desc()).offset(offset).limit(limit).all()
        )
        return [_notification_out(n) for n in rows]

    def count_unread(self, recipient_id: int) -> int:
        return (
            self._query(recipient_id, unread_only=True)
            .with_entities(func.count(Notification.id))
            .scalar()
        ) or 0

    def mark_read(self, notification_id: int, recipient_id: int) -> bool:
        n = self.db.get(Notification, notification_id)
        if not n or n.recipient_id != recipient_id:
            return False
        n.is_read = True
        self.db.flush()
        return True

    def mark_all_read(self, recipient_id: int) -> int:
        result = self.db.execute(
            update(Notification)
            .where(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


# ---------- unit of work ----------

class SqlUnitOfWork:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self.db: Optional[Session] = None

    def __enter__(self) -> "SqlUnitOfWork":
        self.db = self._session_factory()
        self.users = SqlUserDirectory(self.db)
        self.listings = SqlListingRepository(self.db)
        self.orders = SqlOrderRepository(self.db)
        self.claims = SqlClaimRepository(self.db)
        self.deliveries = SqlDeliveryRepository(self.db)
        self.notifications = SqlNotificationRepository(self.db)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None:
                self.rollback()
            elif self.db.in_transaction():
                # anything not explicitly committed is discarded
                self.rollback()
        finally:
            self.db.close()
            self.db = None

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


class SqlStore:
    """Callable unit-of-work factory bound to a sessionmaker."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def __call__(self) -> SqlUnitOfWork:
        return SqlUnitOfWork(self.session_factory)

# backend/services/listing_service.py
"""
Listing lifecycle.

``transition_listing_status`` is the single mutator the fulfillment engine
goes through; it applies a status only if the listing exists (and, when
asked, only if the stored status is the expected one). Business checks such
as ownership are the caller's job.

Expiry is derived from the pickup window at read time. Reads and writes that
notice an elapsed ACTIVE listing reconcile it to EXPIRED; nothing sweeps
listings in the background.
"""

import logging
from datetime import datetime
from typing import List, Optional

from config.settings import SEARCH_MAX_LIMIT, SEARCH_PAGE_LIMIT
from domain.errors import (
    DomainRuleViolationError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from domain.ports import UnitOfWork, UnitOfWorkFactory
from domain.records import ListingRecord, ListingStatus, UserRole
from schemas.listings import (
    ListingCreate,
    ListingPage,
    ListingSearch,
    ListingView,
    PriceProposalOut,
    StatusChange,
)
from services.clock import Clock, utc_now
from services.notification_service import NotificationDispatcher, NotificationEvent
from services.pricing_service import discount_percent, listing_price

logger = logging.getLogger(__name__)

REMOVABLE_STATUSES = (ListingStatus.ACTIVE, ListingStatus.EXPIRED)


def is_expired(listing: ListingRecord, now: datetime) -> bool:
    return listing.pickup_window_end is not None and now > listing.pickup_window_end


def transition_listing_status(
    uow: UnitOfWork,
    listing_id: int,
    to_status: ListingStatus,
    expected: Optional[ListingStatus] = None,
) -> ListingRecord:
    listing = uow.listings.transition_status(listing_id, to_status, expected=expected)
    logger.info(f"Listing {listing_id} -> {to_status.value}")
    return listing


def reconcile_expiry(uow: UnitOfWork, listing: ListingRecord, now: datetime) -> ListingRecord:
    """Persist EXPIRED for an ACTIVE listing whose window has elapsed. Idempotent."""
    if listing.status == ListingStatus.ACTIVE and is_expired(listing, now):
        return transition_listing_status(
            uow, listing.id, ListingStatus.EXPIRED, expected=ListingStatus.ACTIVE
        )
    return listing


def to_view(listing: ListingRecord, now: datetime, **pricing) -> ListingView:
    price = listing_price(listing, now, **pricing)
    return ListingView(
        listing=listing,
        current_price=price,
        discount_percent=discount_percent(listing.price, price) if price is not None else 0,
        is_expired=listing.status == ListingStatus.EXPIRED or is_expired(listing, now),
    )


class ListingService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = utc_now,
        pricing: Optional[dict] = None,
    ):
        self.uow_factory = uow_factory
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.clock = clock
        self.pricing = pricing or {}

    # ---------- lifecycle ----------

    def transition_listing_status(
        self,
        listing_id: int,
        to_status: ListingStatus,
        expected: Optional[ListingStatus] = None,
    ) -> StatusChange:
        with self.uow_factory() as uow:
            current = uow.listings.get(listing_id)
            if current is None:
                raise NotFoundError(f"Listing {listing_id} not found")
            updated = transition_listing_status(uow, listing_id, to_status, expected=expected)
            uow.commit()
        return StatusChange(
            listing_id=listing_id, previous_status=current.status, new_status=updated.status
        )

    def create_listing(self, owner_id: int, data: ListingCreate) -> ListingRecord:
        if data.pickup_window_end is not None and data.pickup_window_end < data.pickup_window_start:
            raise DomainRuleViolationError("Pickup window end must not precede its start")
        if not data.is_donation and (data.price is None or data.price <= 0):
            raise DomainRuleViolationError("Sale listings need a price greater than 0")

        with self.uow_factory() as uow:
            owner = uow.users.get_user(owner_id)
            if owner is None:
                raise NotFoundError("User does not exist")
            if owner.role != UserRole.DONOR_SELLER:
                raise UnauthorizedError("Only donors/sellers can create food listings")

            listing = uow.listings.add(
                ListingRecord(
                    owner_id=owner_id,
                    title=data.title,
                    description=data.description,
                    food_type=data.food_type,
                    cooked_at=data.cooked_at,
                    pickup_window_start=data.pickup_window_start,
                    pickup_window_end=data.pickup_window_end,
                    pickup_location=data.pickup_location,
                    is_donation=data.is_donation,
                    price=None if data.is_donation else data.price,
                    quantity=data.quantity,
                    dietary_info=data.dietary_info,
                    image_path=data.image_path,
                    status=ListingStatus.ACTIVE,
                )
            )
            uow.commit()
        logger.info(f"Listing {listing.id} created by user {owner_id}")
        return listing

    def remove_listing(self, actor_id: int, listing_id: int) -> StatusChange:
        with self.uow_factory() as uow:
            actor = uow.users.get_user(actor_id)
            listing = uow.listings.get(listing_id)
            if listing is None:
                raise NotFoundError(f"Listing {listing_id} not found")
            if actor is None or (listing.owner_id != actor_id and actor.role != UserRole.ADMIN):
                raise UnauthorizedError("You can only remove your own listings")
            if listing.status not in REMOVABLE_STATUSES:
                raise InvalidStateError(
                    f"Listing in status {listing.status.value} has an open fulfillment and cannot be removed"
                )
            updated = transition_listing_status(
                uow, listing_id, ListingStatus.REMOVED, expected=listing.status
            )
            uow.commit()
        return StatusChange(
            listing_id=listing_id, previous_status=listing.status, new_status=updated.status
        )

    # ---------- reads ----------

    def get_listing(self, listing_id: int) -> ListingView:
        now = self.clock()
        with self.uow_factory() as uow:
            listing = uow.listings.get(listing_id)
            if listing is None or listing.status == ListingStatus.REMOVED:
                raise NotFoundError(f"Listing {listing_id} not found")
            reconciled = reconcile_expiry(uow, listing, now)
            if reconciled.status != listing.status:
                uow.commit()
        return to_view(reconciled, now, **self.pricing)

    def search_listings(self, filters: Optional[ListingSearch] = None) -> ListingPage:
        filters = filters or ListingSearch()
        now = self.clock()
        limit = min(filters.limit or SEARCH_PAGE_LIMIT, SEARCH_MAX_LIMIT)

        with self.uow_factory() as uow:
            candidates = uow.listings.search_active(
                now,
                q=filters.q,
                food_type=filters.food_type,
                is_donation=filters.is_donation,
                location=filters.location,
            )

        # current price depends on now, so price filters and sorting stay here
        views = [to_view(l, now, **self.pricing) for l in candidates]
        views = [v for v in views if self._in_price_range(v, filters)]

        reverse = filters.sort_order == "desc"
        if filters.sort_by == "price":
            views.sort(key=lambda v: v.current_price or 0.0, reverse=reverse)
        elif not reverse:
            views.reverse()

        total = len(views)
        page = views[filters.offset:filters.offset + limit]
        return ListingPage(
            listings=page,
            total=total,
            limit=limit,
            offset=filters.offset,
            has_more=filters.offset + limit < total,
        )

    @staticmethod
    def _in_price_range(view: ListingView, f: ListingSearch) -> bool:
        if f.min_price is not None or f.max_price is not None:
            if view.listing.is_donation:
                return False
            if f.min_price is not None and (view.current_price or 0) < f.min_price:
                return False
            if f.max_price is not None and (view.current_price or 0) > f.max_price:
                return False
        return True

    def list_my_listings(self, owner_id: int, status: Optional[ListingStatus] = None) -> List[ListingView]:
        now = self.clock()
        with self.uow_factory() as uow:
            listings = uow.listings.list_by_owner(owner_id)
        if status is not None:
            listings = [l for l in listings if l.status == status]
        else:
            listings = [l for l in listings if l.status != ListingStatus.REMOVED]
        listings.sort(key=lambda l: l.id, reverse=True)
        return [to_view(l, now, **self.pricing) for l in listings]

    # ---------- negotiation ----------

    def negotiate_price(self, buyer_id: int, listing_id: int, proposed_price: float) -> PriceProposalOut:
        """Forward a price proposal to the seller. No counter-approval step exists."""
        now = self.clock()
        with self.uow_factory() as uow:
            buyer = uow.users.get_user(buyer_id)
            if buyer is None:
                raise NotFoundError("User does not exist")
            if buyer.role != UserRole.BUYER:
                raise UnauthorizedError("Only buyers can negotiate prices")
            listing = uow.listings.get(listing_id)
            if listing is None:
                raise NotFoundError(f"Listing {listing_id} not found")
            if listing.is_donation:
                raise DomainRuleViolationError("Cannot negotiate price for donation items")
            if listing.status != ListingStatus.ACTIVE or is_expired(listing, now):
                raise InvalidStateError("Cannot negotiate price for inactive listings")
            if listing.owner_id == buyer_id:
                raise DomainRuleViolationError("Cannot negotiate price on your own listing")
            if proposed_price is None or proposed_price <= 0:
                raise DomainRuleViolationError("Proposed price must be greater than 0")

        price = listing_price(listing, now, **self.pricing) or 0.0
        proposal = PriceProposalOut(
            listing_id=listing_id,
            current_price=price,
            proposed_price=proposed_price,
            seller_id=listing.owner_id,
            buyer_id=buyer_id,
        )
        self.dispatcher.dispatch([
            NotificationEvent(
                recipient_id=listing.owner_id,
                event_type="PRICE_PROPOSED",
                message=f"A buyer proposed {proposed_price:.2f} for {listing.title} (current {price:.2f}).",
                reference_id=listing_id,
                data={"buyerId": buyer_id, "proposedPrice": proposed_price},
            )
        ])
        return proposal

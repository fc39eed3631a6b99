"""Tests for the listing lifecycle, reads and search."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from conftest import ADMIN, BUYER, NOW, SELLER, make_listing, stored_listing
from domain.errors import DomainRuleViolationError, InvalidStateError, NotFoundError, UnauthorizedError
from domain.records import ListingStatus
from schemas.listings import ListingCreate, ListingSearch


def new_listing(**overrides) -> ListingCreate:
    fields = dict(
        title="Lentil soup",
        description="Vegan lentil soup",
        food_type="Soup",
        cooked_at=NOW - timedelta(hours=1),
        pickup_window_start=NOW,
        pickup_window_end=NOW + timedelta(hours=4),
        pickup_location="Jerusalem, Jaffa St 1",
        is_donation=False,
        price=40.0,
    )
    fields.update(overrides)
    return ListingCreate(**fields)


class TestCreateListing:
    def test_seller_creates_active_listing(self, listing_service):
        listing = listing_service.create_listing(SELLER, new_listing())
        assert listing.id is not None
        assert listing.status == ListingStatus.ACTIVE
        assert listing.price == 40.0

    def test_donation_stores_no_price(self, listing_service):
        listing = listing_service.create_listing(SELLER, new_listing(is_donation=True, price=15.0))
        assert listing.price is None

    def test_buyer_cannot_create(self, listing_service):
        with pytest.raises(UnauthorizedError):
            listing_service.create_listing(BUYER, new_listing())

    def test_sale_needs_positive_price(self, listing_service):
        with pytest.raises(DomainRuleViolationError):
            listing_service.create_listing(SELLER, new_listing(price=0))

    def test_window_end_before_start(self, listing_service):
        with pytest.raises(DomainRuleViolationError):
            listing_service.create_listing(SELLER, new_listing(pickup_window_end=NOW - timedelta(hours=1)))

    def test_unknown_owner(self, listing_service):
        with pytest.raises(NotFoundError):
            listing_service.create_listing(999, new_listing())

    def test_naive_timestamps_rejected(self):
        with pytest.raises(ValidationError):
            new_listing(pickup_window_end=datetime(2025, 3, 1, 15, 0))

    def test_offset_timestamps_normalized_to_utc(self, listing_service):
        plus_five = timezone(timedelta(hours=5))
        data = new_listing(
            cooked_at=datetime(2025, 3, 1, 13, 0, tzinfo=plus_five),
            pickup_window_start=datetime(2025, 3, 1, 14, 0, tzinfo=plus_five),
            pickup_window_end=datetime(2025, 3, 1, 15, 0, tzinfo=plus_five),
        )
        assert data.pickup_window_end == NOW - timedelta(hours=2)
        assert data.pickup_window_end.utcoffset() == timedelta(0)

        listing = listing_service.create_listing(SELLER, data)
        view = listing_service.get_listing(listing.id)
        assert view.is_expired
        assert view.listing.status == ListingStatus.EXPIRED


class TestTransitionListingStatus:
    def test_applies_without_expectation(self, listing_service, store, sale_listing):
        change = listing_service.transition_listing_status(sale_listing.id, ListingStatus.CLAIMED)
        assert change.previous_status == ListingStatus.ACTIVE
        assert change.new_status == ListingStatus.CLAIMED
        assert stored_listing(store, sale_listing.id).status == ListingStatus.CLAIMED

    def test_expected_status_mismatch(self, listing_service, store, sale_listing):
        listing_service.transition_listing_status(sale_listing.id, ListingStatus.CLAIMED)
        with pytest.raises(InvalidStateError):
            listing_service.transition_listing_status(
                sale_listing.id, ListingStatus.CLAIMED, expected=ListingStatus.ACTIVE
            )

    def test_missing_listing(self, listing_service):
        with pytest.raises(NotFoundError):
            listing_service.transition_listing_status(404, ListingStatus.SOLD)


class TestRemoveListing:
    def test_owner_removes(self, listing_service, store, sale_listing):
        change = listing_service.remove_listing(SELLER, sale_listing.id)
        assert change.new_status == ListingStatus.REMOVED
        with pytest.raises(NotFoundError):
            listing_service.get_listing(sale_listing.id)

    def test_admin_removes(self, listing_service, sale_listing):
        assert listing_service.remove_listing(ADMIN, sale_listing.id).new_status == ListingStatus.REMOVED

    def test_stranger_cannot_remove(self, listing_service, sale_listing):
        with pytest.raises(UnauthorizedError):
            listing_service.remove_listing(BUYER, sale_listing.id)

    def test_claimed_listing_cannot_be_removed(self, listing_service, sale_listing):
        listing_service.transition_listing_status(sale_listing.id, ListingStatus.CLAIMED)
        with pytest.raises(InvalidStateError):
            listing_service.remove_listing(SELLER, sale_listing.id)


class TestGetListing:
    def test_view_carries_current_price(self, listing_service, sale_listing):
        view = listing_service.get_listing(sale_listing.id)
        assert view.current_price == 90.0
        assert view.discount_percent == 10
        assert not view.is_expired

    def test_elapsed_listing_reconciled_to_expired(self, listing_service, store, sale_listing, clock):
        clock.advance(hours=6)
        view = listing_service.get_listing(sale_listing.id)
        assert view.is_expired
        assert view.listing.status == ListingStatus.EXPIRED
        assert stored_listing(store, sale_listing.id).status == ListingStatus.EXPIRED

        # idempotent
        assert listing_service.get_listing(sale_listing.id).listing.status == ListingStatus.EXPIRED

    def test_open_ended_listing_never_expires(self, listing_service, store, clock):
        listing = store.add_listing(make_listing(pickup_window_end=None))
        clock.advance(days=30)
        assert listing_service.get_listing(listing.id).listing.status == ListingStatus.ACTIVE

    def test_missing(self, listing_service):
        with pytest.raises(NotFoundError):
            listing_service.get_listing(12345)


class TestSearchListings:
    @pytest.fixture
    def catalog(self, store):
        return [
            store.add_listing(make_listing(title="Pasta bake", food_type="Cooked meal", price=60.0,
                                           created_at=NOW - timedelta(hours=3))),
            store.add_listing(make_listing(title="Croissants", food_type="Bakery", price=30.0,
                                           pickup_location="Haifa, Port",
                                           created_at=NOW - timedelta(hours=2))),
            store.add_listing(make_listing(title="Hummus bowls", food_type="Cooked meal", is_donation=True,
                                           price=None, created_at=NOW - timedelta(hours=1))),
            store.add_listing(make_listing(title="Old salad", pickup_window_end=NOW - timedelta(minutes=1))),
            store.add_listing(make_listing(title="Sold cake", status=ListingStatus.SOLD)),
        ]

    def test_only_active_unexpired(self, listing_service, catalog):
        page = listing_service.search_listings()
        titles = [v.listing.title for v in page.listings]
        assert titles == ["Hummus bowls", "Croissants", "Pasta bake"]
        assert page.total == 3
        assert not page.has_more

    def test_text_query(self, listing_service, catalog):
        page = listing_service.search_listings(ListingSearch(q="CROISS"))
        assert [v.listing.title for v in page.listings] == ["Croissants"]

    def test_donation_filter(self, listing_service, catalog):
        page = listing_service.search_listings(ListingSearch(is_donation=True))
        assert [v.listing.title for v in page.listings] == ["Hummus bowls"]

    def test_price_range_uses_current_price(self, listing_service, catalog):
        # 2h after cooking: 60 -> 54, 30 -> 27
        page = listing_service.search_listings(ListingSearch(min_price=50, max_price=55))
        assert [v.listing.title for v in page.listings] == ["Pasta bake"]

    def test_location_filter(self, listing_service, catalog):
        page = listing_service.search_listings(ListingSearch(location="haifa"))
        assert [v.listing.title for v in page.listings] == ["Croissants"]

    def test_sort_by_price_ascending(self, listing_service, catalog):
        page = listing_service.search_listings(ListingSearch(is_donation=False, sort_by="price", sort_order="asc"))
        assert [v.current_price for v in page.listings] == [27.0, 54.0]

    def test_pagination(self, listing_service, catalog):
        page = listing_service.search_listings(ListingSearch(limit=2, offset=0))
        assert len(page.listings) == 2
        assert page.has_more
        rest = listing_service.search_listings(ListingSearch(limit=2, offset=2))
        assert len(rest.listings) == 1
        assert not rest.has_more

    def test_limit_is_capped(self, listing_service, catalog):
        assert listing_service.search_listings(ListingSearch(limit=500)).limit == 50


class TestListMyListings:
    def test_excludes_removed_by_default(self, listing_service, store, sale_listing):
        other = store.add_listing(make_listing(title="Removed one", status=ListingStatus.REMOVED))
        ids = [v.listing.id for v in listing_service.list_my_listings(SELLER)]
        assert sale_listing.id in ids
        assert other.id not in ids

    def test_status_filter(self, listing_service, store, sale_listing):
        removed = store.add_listing(make_listing(title="Removed one", status=ListingStatus.REMOVED))
        views = listing_service.list_my_listings(SELLER, ListingStatus.REMOVED)
        assert [v.listing.id for v in views] == [removed.id]


class TestNegotiatePrice:
    def test_proposal_forwarded_to_seller(self, listing_service, sink, sale_listing):
        proposal = listing_service.negotiate_price(BUYER, sale_listing.id, 70.0)
        assert proposal.current_price == 90.0
        assert proposal.seller_id == SELLER
        events = sink.of_type("PRICE_PROPOSED")
        assert len(events) == 1
        assert events[0].recipient_id == SELLER

    def test_non_positive_price(self, listing_service, sale_listing):
        with pytest.raises(DomainRuleViolationError):
            listing_service.negotiate_price(BUYER, sale_listing.id, 0)

    def test_donation_listing(self, listing_service, donation_listing):
        with pytest.raises(DomainRuleViolationError):
            listing_service.negotiate_price(BUYER, donation_listing.id, 10.0)

    def test_only_buyers(self, listing_service, sale_listing):
        with pytest.raises(UnauthorizedError):
            listing_service.negotiate_price(SELLER, sale_listing.id, 10.0)

    def test_inactive_listing(self, listing_service, sale_listing):
        listing_service.transition_listing_status(sale_listing.id, ListingStatus.CLAIMED)
        with pytest.raises(InvalidStateError):
            listing_service.negotiate_price(BUYER, sale_listing.id, 10.0)

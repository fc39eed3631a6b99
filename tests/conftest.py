"""Pytest fixtures for the fulfillment tests."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from database.memory_store import MemoryStore
from domain.records import (
    CharityRecord,
    CourierRecord,
    ListingRecord,
    UserRecord,
    UserRole,
    VolunteerRecord,
)
from services.donation_service import DonationService
from services.listing_service import ListingService
from services.notification_service import NotificationDispatcher, NotificationInbox
from services.order_service import OrderService

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

SELLER = 1
BUYER = 2
CHARITY = 3
COURIER = 4
VOLUNTEER = 5
VOLUNTEER_2 = 6
UNVERIFIED_CHARITY = 7
ADMIN = 8
COURIER_2 = 9
BUYER_2 = 10
CHARITY_NO_VOLUNTEERS = 11

CHARITY_ORG_ID = 1


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingSink:
    def __init__(self):
        self.events = []

    def send(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list:
        return [e for e in self.events if e.event_type == event_type]

    def for_user(self, user_id: int) -> list:
        return [e for e in self.events if e.recipient_id == user_id]


class FailingSink:
    def send(self, event) -> None:
        raise RuntimeError("sink is down")


def seed_world(store: MemoryStore) -> None:
    users = [
        (SELLER, "dana_bakery", UserRole.DONOR_SELLER),
        (BUYER, "yossi", UserRole.BUYER),
        (CHARITY, "food_for_all", UserRole.CHARITY_ORG),
        (COURIER, "fast_rider", UserRole.INDEP_DELIVERY),
        (VOLUNTEER, "noa_volunteer", UserRole.ORG_VOLUNTEER),
        (VOLUNTEER_2, "avi_volunteer", UserRole.ORG_VOLUNTEER),
        (UNVERIFIED_CHARITY, "new_charity", UserRole.CHARITY_ORG),
        (ADMIN, "admin", UserRole.ADMIN),
        (COURIER_2, "north_rider", UserRole.INDEP_DELIVERY),
        (BUYER_2, "miri", UserRole.BUYER),
        (CHARITY_NO_VOLUNTEERS, "small_charity", UserRole.CHARITY_ORG),
    ]
    for user_id, username, role in users:
        store.add_user(UserRecord(id=user_id, username=username, role=role, email=f"{username}@example.com"))

    store.add_charity(CharityRecord(id=CHARITY_ORG_ID, user_id=CHARITY, organization_name="Food For All",
                                    is_doc_verified=True, address="Tel Aviv, Herzl 5"))
    store.add_charity(CharityRecord(id=2, user_id=UNVERIFIED_CHARITY, organization_name="New Charity",
                                    is_doc_verified=False))
    store.add_charity(CharityRecord(id=3, user_id=CHARITY_NO_VOLUNTEERS, organization_name="Small Charity",
                                    is_doc_verified=True))

    store.add_volunteer(VolunteerRecord(id=1, user_id=VOLUNTEER, organization_id=CHARITY_ORG_ID,
                                        volunteer_name="Noa"))
    store.add_volunteer(VolunteerRecord(id=2, user_id=VOLUNTEER_2, organization_id=CHARITY_ORG_ID,
                                        volunteer_name="Avi"))

    store.add_courier(CourierRecord(id=1, user_id=COURIER, full_name="Fast Rider", is_id_verified=True,
                                    operating_areas=["Tel Aviv", "Ramat Gan"], rating=4.8))
    store.add_courier(CourierRecord(id=2, user_id=COURIER_2, full_name="North Rider", is_id_verified=True,
                                    operating_areas=["Haifa"]))


def make_listing(**overrides) -> ListingRecord:
    fields = dict(
        owner_id=SELLER,
        title="Shakshuka trays",
        description="Fresh shakshuka, serves 4",
        food_type="Cooked meal",
        cooked_at=NOW - timedelta(hours=2),
        pickup_window_start=NOW - timedelta(hours=3),
        pickup_window_end=NOW + timedelta(hours=5),
        pickup_location="Tel Aviv, Dizengoff 10",
        is_donation=False,
        price=100.0,
        quantity="4 trays",
        created_at=NOW - timedelta(hours=3),
    )
    fields.update(overrides)
    return ListingRecord(**fields)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def rng():
    return random.Random(7)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def dispatcher(sink):
    return NotificationDispatcher([sink])


@pytest.fixture
def store():
    store = MemoryStore()
    seed_world(store)
    return store


@pytest.fixture
def sale_listing(store):
    return store.add_listing(make_listing())


@pytest.fixture
def donation_listing(store):
    return store.add_listing(
        make_listing(
            title="Bread loaves",
            description="Day-old bread",
            food_type="Bakery",
            is_donation=True,
            price=None,
            pickup_location="Tel Aviv, Allenby 40",
        )
    )


@pytest.fixture
def listing_service(store, dispatcher, clock):
    return ListingService(store, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def order_service(store, dispatcher, clock, rng):
    return OrderService(store, dispatcher=dispatcher, clock=clock, rng=rng)


@pytest.fixture
def donation_service(store, dispatcher, clock, rng):
    return DonationService(store, dispatcher=dispatcher, clock=clock, rng=rng)


@pytest.fixture
def inbox(store):
    return NotificationInbox(store)


def stored_listing(store, listing_id):
    with store() as uow:
        return uow.listings.get(listing_id)


def stored_delivery_for_order(store, order_id):
    with store() as uow:
        return uow.deliveries.get_by_order(order_id)


def stored_delivery_for_claim(store, claim_id):
    with store() as uow:
        return uow.deliveries.get_by_claim(claim_id)

"""The SQLAlchemy store against in-memory SQLite."""

import random
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from conftest import (
    BUYER,
    CHARITY,
    COURIER,
    NOW,
    SELLER,
    VOLUNTEER,
    FixedClock,
    RecordingSink,
    make_listing,
)
from database.session import init_db
from database.sql_store import SqlStore
from domain.errors import InvalidStateError, NoMatchError, NotFoundError
from domain.records import (
    ClaimStatus,
    DeliveryStatus,
    DeliveryType,
    FulfillmentKind,
    ListingStatus,
    OrderStatus,
    PaymentStatus,
)
from models.charity_model import CharityOrganization, OrganizationVolunteer
from models.courier_model import IndependentCourier
from models.user_model import User
from schemas.claims import ClaimCreate
from schemas.listings import ListingCreate, ListingSearch
from schemas.orders import OrderCreate
from services.donation_service import DonationService
from services.listing_service import ListingService
from services.notification_service import NotificationDispatcher, NotificationInbox, StoreNotificationSink
from services.order_service import OrderService


@pytest.fixture
def sql_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(bind=engine)
    session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    db = session_factory()
    db.add_all([
        User(id=SELLER, username="dana_bakery", email="dana@example.com", role="DONOR_SELLER"),
        User(id=BUYER, username="yossi", email="yossi@example.com", role="BUYER"),
        User(id=CHARITY, username="food_for_all", email="ffa@example.com", role="CHARITY_ORG"),
        User(id=COURIER, username="fast_rider", email="rider@example.com", role="INDEP_DELIVERY"),
        User(id=VOLUNTEER, username="noa", email="noa@example.com", role="ORG_VOLUNTEER"),
    ])
    db.flush()
    db.add(CharityOrganization(id=1, user_id=CHARITY, organization_name="Food For All", is_doc_verified=True))
    db.flush()
    db.add(OrganizationVolunteer(user_id=VOLUNTEER, organization_id=1, volunteer_name="Noa"))
    db.add(IndependentCourier(user_id=COURIER, full_name="Fast Rider", is_id_verified=True,
                              operating_areas=["Tel Aviv"]))
    db.commit()
    db.close()

    yield SqlStore(session_factory)
    engine.dispose()


@pytest.fixture
def sql_listing(sql_store):
    with sql_store() as uow:
        listing = uow.listings.add(make_listing())
        uow.commit()
    return listing


@pytest.fixture
def sql_donation(sql_store):
    with sql_store() as uow:
        listing = uow.listings.add(make_listing(title="Bread", is_donation=True, price=None))
        uow.commit()
    return listing


def services(store, sink=None):
    dispatcher = NotificationDispatcher([sink or RecordingSink()])
    clock = FixedClock()
    return (
        ListingService(store, dispatcher=dispatcher, clock=clock),
        OrderService(store, dispatcher=dispatcher, clock=clock, rng=random.Random(3)),
        DonationService(store, dispatcher=dispatcher, clock=clock, rng=random.Random(3)),
    )


class TestSqlListings:
    def test_round_trip_keeps_timezone(self, sql_store, sql_listing):
        with sql_store() as uow:
            listing = uow.listings.get(sql_listing.id)
        assert listing.cooked_at == NOW - timedelta(hours=2)
        assert listing.cooked_at.tzinfo is not None
        assert listing.price == 100.0

    def test_conditional_transition(self, sql_store, sql_listing):
        with sql_store() as uow:
            claimed = uow.listings.transition_status(
                sql_listing.id, ListingStatus.CLAIMED, expected=ListingStatus.ACTIVE
            )
            uow.commit()
        assert claimed.status == ListingStatus.CLAIMED

        with sql_store() as uow:
            with pytest.raises(InvalidStateError):
                uow.listings.transition_status(sql_listing.id, ListingStatus.CLAIMED, expected=ListingStatus.ACTIVE)
            with pytest.raises(NotFoundError):
                uow.listings.transition_status(999, ListingStatus.SOLD)

    def test_uncommitted_work_is_discarded(self, sql_store, sql_listing):
        with sql_store() as uow:
            uow.listings.transition_status(sql_listing.id, ListingStatus.SOLD)
        with sql_store() as uow:
            assert uow.listings.get(sql_listing.id).status == ListingStatus.ACTIVE

    def test_get_and_search(self, sql_store, sql_listing):
        listing_service, _, _ = services(sql_store)
        assert listing_service.get_listing(sql_listing.id).current_price == 90.0
        assert listing_service.search_listings().total == 1

    def test_offset_timestamps_stored_as_utc(self, sql_store):
        listing_service, _, _ = services(sql_store)
        plus_five = timezone(timedelta(hours=5))
        created = listing_service.create_listing(SELLER, ListingCreate(
            title="Rice and beans",
            cooked_at=datetime(2025, 3, 1, 13, 0, tzinfo=plus_five),
            pickup_window_start=datetime(2025, 3, 1, 14, 0, tzinfo=plus_five),
            pickup_window_end=datetime(2025, 3, 1, 15, 0, tzinfo=plus_five),
            is_donation=False,
            price=50.0,
        ))

        with sql_store() as uow:
            stored = uow.listings.get(created.id)
        assert stored.pickup_window_end == NOW - timedelta(hours=2)
        assert stored.cooked_at == NOW - timedelta(hours=4)

        view = listing_service.get_listing(created.id)
        assert view.is_expired
        assert view.listing.status == ListingStatus.EXPIRED

    def test_seeded_offset_record_stored_as_utc(self, sql_store):
        plus_two = timezone(timedelta(hours=2))
        with sql_store() as uow:
            added = uow.listings.add(make_listing(pickup_window_end=datetime(2025, 3, 1, 13, 0, tzinfo=plus_two)))
            uow.commit()
        with sql_store() as uow:
            stored = uow.listings.get(added.id)
        assert stored.pickup_window_end == NOW - timedelta(hours=1)

    def test_search_filters_in_query(self, sql_store, sql_listing, sql_donation):
        with sql_store() as uow:
            uow.listings.add(make_listing(title="Old salad", pickup_window_end=NOW - timedelta(minutes=1)))
            uow.listings.add(make_listing(title="Haifa pita", pickup_location="Haifa, Port"))
            uow.listings.add(make_listing(title="Sold cake", status=ListingStatus.SOLD))
            uow.commit()
        listing_service, _, _ = services(sql_store)

        titles = [v.listing.title for v in listing_service.search_listings().listings]
        assert sorted(titles) == ["Bread", "Haifa pita", "Shakshuka trays"]
        assert [v.listing.title for v in listing_service.search_listings(ListingSearch(q="PITA")).listings] == [
            "Haifa pita"
        ]
        assert [v.listing.title for v in listing_service.search_listings(ListingSearch(location="haifa")).listings] == [
            "Haifa pita"
        ]
        assert [v.listing.title for v in listing_service.search_listings(ListingSearch(is_donation=True)).listings] == [
            "Bread"
        ]

    def test_unapplied_transition_without_expectation(self, sql_store, sql_listing, monkeypatch):
        with sql_store() as uow:
            real_execute = uow.db.execute

            def execute_matching_nothing(statement, *args, **kwargs):
                if statement.is_dml:
                    return SimpleNamespace(rowcount=0)
                return real_execute(statement, *args, **kwargs)

            monkeypatch.setattr(uow.db, "execute", execute_matching_nothing)
            with pytest.raises(InvalidStateError):
                uow.listings.transition_status(sql_listing.id, ListingStatus.ACTIVE)


class TestSqlOrders:
    def test_home_delivery_lifecycle(self, sql_store, sql_listing):
        _, order_service, _ = services(sql_store)

        created = order_service.create_order(
            BUYER,
            OrderCreate(listing_id=sql_listing.id, delivery_type=DeliveryType.HOME_DELIVERY,
                        delivery_address="Tel Aviv, Rothschild 1"),
        )
        assert created.delivery_person_id == COURIER
        assert created.estimated_total == 140.0

        order = order_service.authorize_pickup(SELLER, created.order_id, created.pickup_code)
        assert order.status == OrderStatus.CONFIRMED
        assert order.delivery.status == DeliveryStatus.IN_TRANSIT

        order = order_service.complete_delivery(BUYER, created.order_id)
        assert order.status == OrderStatus.COMPLETED
        assert order.payment_status == PaymentStatus.PAID
        with sql_store() as uow:
            assert uow.listings.get(sql_listing.id).status == ListingStatus.SOLD

    def test_no_match_rolls_back(self, sql_store):
        with sql_store() as uow:
            listing = uow.listings.add(make_listing(pickup_location="Eilat"))
            uow.commit()
        _, order_service, _ = services(sql_store)

        with pytest.raises(NoMatchError):
            order_service.create_order(
                BUYER,
                OrderCreate(listing_id=listing.id, delivery_type=DeliveryType.HOME_DELIVERY,
                            delivery_address="Eilat"),
            )

        assert order_service.list_my_orders(BUYER) == []
        with sql_store() as uow:
            assert uow.listings.get(listing.id).status == ListingStatus.ACTIVE

    def test_second_order_conflicts(self, sql_store, sql_listing):
        _, order_service, _ = services(sql_store)
        request = OrderCreate(listing_id=sql_listing.id, delivery_type=DeliveryType.SELF_PICKUP)
        order_service.create_order(BUYER, request)
        with pytest.raises(InvalidStateError):
            order_service.create_order(BUYER, request)
        assert len(order_service.list_my_orders(BUYER)) == 1


class TestSqlDonations:
    def test_failure_and_cancel(self, sql_store, sql_donation):
        _, _, donation_service = services(sql_store)

        created = donation_service.create_donation_claim(
            CHARITY,
            ClaimCreate(listing_id=sql_donation.id, delivery_type=DeliveryType.HOME_DELIVERY,
                        delivery_address="Tel Aviv, Herzl 5"),
        )
        assert created.volunteer_id == VOLUNTEER

        donation_service.authorize_donation_pickup(SELLER, created.claim_id, created.pickup_code)
        failed = donation_service.report_donation_delivery_failure(VOLUNTEER, created.claim_id, "Road closed")
        assert failed.status == ClaimStatus.PENDING
        assert failed.delivery.failure_reason == "Road closed"

        cancelled = donation_service.cancel_donation_claim(CHARITY, created.claim_id)
        assert cancelled.status == ClaimStatus.CANCELLED
        with sql_store() as uow:
            assert uow.listings.get(sql_donation.id).status == ListingStatus.ACTIVE


class TestSqlNotifications:
    def test_persisted_notifications(self, sql_store, sql_listing):
        sink = StoreNotificationSink(sql_store)
        _, order_service, _ = services(sql_store, sink=sink)
        order_service.create_order(
            BUYER, OrderCreate(listing_id=sql_listing.id, delivery_type=DeliveryType.SELF_PICKUP)
        )

        inbox = NotificationInbox(sql_store)
        seller_rows = inbox.list_notifications(SELLER)
        assert [n.event_type for n in seller_rows] == ["NEW_ORDER_RECEIVED"]
        assert seller_rows[0].category == "ORDER_UPDATE"
        assert inbox.unread_count(BUYER) == 1
        assert inbox.mark_all_read(BUYER) == 1
        assert inbox.unread_count(BUYER) == 0


class TestDemoData:
    def test_seeds_once(self):
        from database.demo_data import create_demo_data

        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
        session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

        assert create_demo_data(session_factory, bind=engine) is True
        assert create_demo_data(session_factory, bind=engine) is False

        store = SqlStore(session_factory)
        with store() as uow:
            assert len(uow.users.list_verified_couriers()) == 1
            assert len(uow.listings.list_by_status(ListingStatus.ACTIVE)) == 2
        engine.dispose()


class TestSqlDeliveryLists:
    def test_filters_applied_before_paging(self, sql_store):
        with sql_store() as uow:
            listings = [uow.listings.add(make_listing(title=f"Tray {i}")) for i in range(3)]
            uow.commit()
        _, order_service, _ = services(sql_store)
        created = [
            order_service.create_order(BUYER, OrderCreate(
                listing_id=l.id, delivery_type=DeliveryType.HOME_DELIVERY, delivery_address="Tel Aviv, Rothschild 1",
            ))
            for l in listings
        ]
        for c in created[1:]:
            order_service.authorize_pickup(SELLER, c.order_id, c.pickup_code)

        scheduled = order_service.list_my_deliveries(COURIER, status=DeliveryStatus.SCHEDULED, limit=2)
        assert [o.id for o in scheduled] == [created[0].order_id]

        with sql_store() as uow:
            assert uow.deliveries.list_by_actor(COURIER, kind=FulfillmentKind.DONATION) == []
            in_transit = uow.deliveries.list_by_actor(
                COURIER, kind=FulfillmentKind.PURCHASE, status=DeliveryStatus.IN_TRANSIT, limit=5
            )
        assert [d.order_id for d in in_transit] == [created[2].order_id, created[1].order_id]

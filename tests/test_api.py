"""Tests for the FastAPI gateway."""

import random

import pytest
from fastapi.testclient import TestClient

from conftest import BUYER, CHARITY, COURIER, SELLER, UNVERIFIED_CHARITY, VOLUNTEER, FixedClock
from services.notification_service import StoreNotificationSink

BASE = "/api/v1/gateway"


@pytest.fixture
def api_client(store):
    from main import create_app

    app = create_app(
        uow_factory=store,
        sinks=[StoreNotificationSink(store)],
        clock=FixedClock(),
        rng=random.Random(11),
    )
    return TestClient(app)


class TestHealthCheck:
    def test_health(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "in-memory"


class TestListingsApi:
    def test_search_and_get(self, api_client, sale_listing, donation_listing):
        response = api_client.get(f"{BASE}/listings/", params={"is_donation": "false"})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["listings"][0]["current_price"] == 90.0

        response = api_client.get(f"{BASE}/listings/{donation_listing.id}")
        assert response.status_code == 200
        assert response.json()["listing"]["is_donation"] is True

    def test_missing_listing_is_404(self, api_client):
        response = api_client.get(f"{BASE}/listings/4040")
        assert response.status_code == 404
        assert response.json()["kind"] == "NotFound"

    def test_create_and_remove(self, api_client):
        body = {
            "title": "Falafel",
            "cooked_at": "2025-03-01T11:00:00Z",
            "pickup_window_start": "2025-03-01T11:30:00Z",
            "pickup_window_end": "2025-03-01T15:00:00Z",
            "pickup_location": "Tel Aviv",
            "is_donation": False,
            "price": 20,
        }
        response = api_client.post(f"{BASE}/listings/", params={"user_id": SELLER}, json=body)
        assert response.status_code == 201
        listing_id = response.json()["id"]

        response = api_client.get(f"{BASE}/listings/mine", params={"user_id": SELLER})
        assert listing_id in [v["listing"]["id"] for v in response.json()]

        response = api_client.delete(f"{BASE}/listings/{listing_id}", params={"user_id": BUYER})
        assert response.status_code == 403

        response = api_client.delete(f"{BASE}/listings/{listing_id}", params={"user_id": SELLER})
        assert response.status_code == 200
        assert response.json()["new_status"] == "REMOVED"

    def test_create_requires_timezone(self, api_client):
        body = {
            "title": "Falafel",
            "cooked_at": "2025-03-01T11:00:00",
            "pickup_window_start": "2025-03-01T11:30:00",
            "is_donation": True,
        }
        response = api_client.post(f"{BASE}/listings/", params={"user_id": SELLER}, json=body)
        assert response.status_code == 422

    def test_negotiate(self, api_client, sale_listing):
        response = api_client.post(
            f"{BASE}/listings/{sale_listing.id}/negotiate",
            params={"user_id": BUYER},
            json={"proposed_price": 70},
        )
        assert response.status_code == 200
        assert response.json()["seller_id"] == SELLER

        response = api_client.get(f"{BASE}/notifications/", params={"user_id": SELLER})
        assert [n["event_type"] for n in response.json()] == ["PRICE_PROPOSED"]


class TestOrdersApi:
    def test_home_delivery_flow(self, api_client, sale_listing):
        response = api_client.post(
            f"{BASE}/orders/",
            params={"user_id": BUYER},
            json={"listing_id": sale_listing.id, "delivery_type": "HOME_DELIVERY",
                  "delivery_address": "Tel Aviv, Rothschild 1"},
        )
        assert response.status_code == 201
        created = response.json()
        assert created["estimated_total"] == 140.0
        assert created["delivery_person_id"] == COURIER
        order_id = created["order_id"]

        response = api_client.post(
            f"{BASE}/orders/{order_id}/authorize-pickup",
            params={"user_id": SELLER},
            json={"pickup_code": "WRONG000"},
        )
        assert response.status_code == 422
        assert response.json()["kind"] == "CodeMismatch"

        response = api_client.post(
            f"{BASE}/orders/{order_id}/authorize-pickup",
            params={"user_id": SELLER},
            json={"pickup_code": created["pickup_code"]},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "CONFIRMED"

        response = api_client.get(f"{BASE}/orders/deliveries", params={"user_id": COURIER})
        assert [o["id"] for o in response.json()] == [order_id]

        response = api_client.post(f"{BASE}/orders/{order_id}/complete-delivery", params={"user_id": BUYER})
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"

        response = api_client.post(f"{BASE}/orders/{order_id}/cancel", params={"user_id": BUYER})
        assert response.status_code == 409
        assert response.json()["kind"] == "InvalidState"

    def test_wrong_role_is_403(self, api_client, sale_listing):
        response = api_client.post(
            f"{BASE}/orders/",
            params={"user_id": SELLER},
            json={"listing_id": sale_listing.id},
        )
        assert response.status_code == 403
        assert response.json()["kind"] == "Unauthorized"

    def test_cancel_with_reason(self, api_client, sale_listing):
        created = api_client.post(
            f"{BASE}/orders/", params={"user_id": BUYER}, json={"listing_id": sale_listing.id}
        ).json()
        response = api_client.post(
            f"{BASE}/orders/{created['order_id']}/cancel",
            params={"user_id": BUYER},
            json={"reason": "Found something else"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

        response = api_client.get(f"{BASE}/listings/{sale_listing.id}")
        assert response.json()["listing"]["status"] == "ACTIVE"


class TestDonationsApi:
    def test_claim_flow(self, api_client, donation_listing):
        response = api_client.post(
            f"{BASE}/donations/claims",
            params={"user_id": CHARITY},
            json={"listing_id": donation_listing.id, "delivery_type": "HOME_DELIVERY",
                  "delivery_address": "Tel Aviv, Herzl 5"},
        )
        assert response.status_code == 201
        created = response.json()
        assert created["volunteer_id"] == VOLUNTEER
        claim_id = created["claim_id"]

        response = api_client.post(
            f"{BASE}/donations/claims/{claim_id}/authorize-pickup",
            params={"user_id": SELLER},
            json={"pickup_code": created["pickup_code"]},
        )
        assert response.json()["status"] == "APPROVED"

        response = api_client.post(
            f"{BASE}/donations/claims/{claim_id}/complete-delivery", params={"user_id": VOLUNTEER}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"

        response = api_client.get(f"{BASE}/donations/stats", params={"user_id": CHARITY})
        assert response.json()["completed"] == 1

    def test_unverified_charity_is_403(self, api_client, donation_listing):
        response = api_client.post(
            f"{BASE}/donations/claims",
            params={"user_id": UNVERIFIED_CHARITY},
            json={"listing_id": donation_listing.id},
        )
        assert response.status_code == 403


class TestNotificationsApi:
    def test_inbox(self, api_client, sale_listing):
        api_client.post(f"{BASE}/orders/", params={"user_id": BUYER}, json={"listing_id": sale_listing.id})

        response = api_client.get(f"{BASE}/notifications/unread-count", params={"user_id": SELLER})
        assert response.json()["unread_count"] == 1

        notification_id = api_client.get(
            f"{BASE}/notifications/", params={"user_id": SELLER}
        ).json()[0]["id"]
        response = api_client.post(f"{BASE}/notifications/{notification_id}/read", params={"user_id": SELLER})
        assert response.status_code == 200

        response = api_client.get(
            f"{BASE}/notifications/", params={"user_id": SELLER, "unread_only": "true"}
        )
        assert response.json() == []

        response = api_client.post(f"{BASE}/notifications/read-all", params={"user_id": BUYER})
        assert response.json()["updated"] == 1

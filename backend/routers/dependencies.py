# backend/routers/dependencies.py
from fastapi import Request

from services.donation_service import DonationService
from services.listing_service import ListingService
from services.notification_service import NotificationInbox
from services.order_service import OrderService


def get_listing_service(request: Request) -> ListingService:
    return request.app.state.listing_service


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_donation_service(request: Request) -> DonationService:
    return request.app.state.donation_service


def get_notification_inbox(request: Request) -> NotificationInbox:
    return request.app.state.notification_inbox

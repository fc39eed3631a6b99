# backend/gateway/gateway_router.py
from fastapi import APIRouter

from routers.donations_router import router as donations_router
from routers.listings_router import router as listings_router
from routers.notifications_router import router as notifications_router
from routers.orders_router import router as orders_router

gateway_router = APIRouter(prefix="/gateway", tags=["gateway"])

gateway_router.include_router(listings_router)       # /gateway/listings/...
gateway_router.include_router(orders_router)         # /gateway/orders/...
gateway_router.include_router(donations_router)      # /gateway/donations/...
gateway_router.include_router(notifications_router)  # /gateway/notifications/...

# backend/main.py
import logging
import os
import random
from contextlib import asynccontextmanager
from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import LOG_LEVEL
from database.session import SessionLocal, engine, init_db
from database.sql_store import SqlStore
from domain.errors import ErrorKind, FulfillmentError
from domain.ports import UnitOfWorkFactory
from gateway.gateway_router import gateway_router
from services.clock import Clock, utc_now
from services.donation_service import DonationService
from services.listing_service import ListingService
from services.notification_service import (
    LoggingNotificationSink,
    NotificationDispatcher,
    NotificationInbox,
    NotificationSink,
    StoreNotificationSink,
)
from services.order_service import OrderService

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.NO_MATCH: 422,
    ErrorKind.CODE_MISMATCH: 422,
    ErrorKind.DOMAIN_RULE_VIOLATION: 422,
}


def _check_database() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


@asynccontextmanager
async def sql_lifespan(app: FastAPI):
    logger.info("FastAPI is starting")
    if _check_database():
        init_db()
        logger.info("Database connected")
    yield
    logger.info("Shutting down")


def create_app(
    uow_factory: Optional[UnitOfWorkFactory] = None,
    sinks: Optional[Iterable[NotificationSink]] = None,
    clock: Clock = utc_now,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    logging.basicConfig(level=LOG_LEVEL)

    use_sql = uow_factory is None
    if use_sql:
        uow_factory = SqlStore(SessionLocal)
    if sinks is None:
        sinks = [LoggingNotificationSink(), StoreNotificationSink(uow_factory)]

    app = FastAPI(
        title="Surplus Food Fulfillment API",
        description="Listings, purchase orders and donation claims for surplus food",
        version="1.0.0",
        lifespan=sql_lifespan if use_sql else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    dispatcher = NotificationDispatcher(sinks)
    app.state.uow_factory = uow_factory
    app.state.listing_service = ListingService(uow_factory, dispatcher=dispatcher, clock=clock)
    app.state.order_service = OrderService(uow_factory, dispatcher=dispatcher, clock=clock, rng=rng)
    app.state.donation_service = DonationService(uow_factory, dispatcher=dispatcher, clock=clock, rng=rng)
    app.state.notification_inbox = NotificationInbox(uow_factory)

    @app.exception_handler(FulfillmentError)
    async def fulfillment_error_handler(request: Request, exc: FulfillmentError):
        return JSONResponse(status_code=STATUS_BY_KIND.get(exc.kind, 400), content=exc.to_dict())

    @app.get("/health")
    async def health():
        status = {"status": "healthy", "service": "surplus-food-api", "version": "1.0.0"}
        if use_sql:
            if _check_database():
                status["database"] = "connected"
            else:
                status["database"] = "error"
                status["status"] = "degraded"
        else:
            status["database"] = "in-memory"
        return status

    @app.get("/")
    async def root():
        return {
            "message": "Surplus Food Fulfillment API",
            "version": "1.0.0",
            "gateway_base": "/api/v1/gateway",
            "docs": "/docs",
        }

    app.include_router(gateway_router, prefix="/api/v1")

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    log_level = "debug" if os.getenv("DEBUG", "False").lower() == "true" else "info"

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=log_level,
    )

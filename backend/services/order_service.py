# backend/services/order_service.py
"""Purchase orders on sale listings."""

import logging
import random
from typing import Callable, List, Optional

from config.settings import HOME_DELIVERY_FEE
from domain.ports import UnitOfWorkFactory
from domain.records import DeliveryStatus, FulfillmentKind
from schemas.orders import (
    OrderCreate,
    OrderCreated,
    OrderResponse,
    order_response,
)
from services.clock import Clock, utc_now
from services.fulfillment_engine import FulfillmentEngine, TransitionResult
from services.fulfillment_kinds import FulfillmentRequest, PurchasePolicy
from services.notification_service import NotificationDispatcher
from services.pickup_code_service import generate_pickup_code

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = utc_now,
        rng: Optional[random.Random] = None,
        code_generator: Callable[[], str] = generate_pickup_code,
        delivery_fee: float = HOME_DELIVERY_FEE,
        pricing: Optional[dict] = None,
    ):
        self.uow_factory = uow_factory
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.policy = PurchasePolicy(delivery_fee=delivery_fee, pricing=pricing)
        self.engine = FulfillmentEngine(uow_factory, clock=clock, rng=rng, code_generator=code_generator)

    def _publish(self, result: TransitionResult) -> TransitionResult:
        delivered = self.dispatcher.dispatch(result.events)
        logger.debug(f"{self.policy.label} {result.record.id}: {delivered} notification deliveries")
        return result

    # ---------- transitions ----------

    def create_order(self, buyer_id: int, data: OrderCreate) -> OrderCreated:
        result = self._publish(
            self.engine.create(
                self.policy,
                buyer_id,
                data.listing_id,
                FulfillmentRequest(
                    delivery_type=data.delivery_type,
                    delivery_address=data.delivery_address,
                    proposed_price=data.proposed_price,
                    notes=data.notes,
                ),
            )
        )
        order = result.record
        return OrderCreated(
            order_id=order.id,
            status=order.status,
            pickup_code=order.pickup_code,
            final_price=order.final_price,
            delivery_fee=order.delivery_fee,
            estimated_total=round(order.final_price + order.delivery_fee, 2),
            seller_id=order.seller_id,
            delivery_person_id=result.delivery.actor_id if result.delivery else None,
        )

    def authorize_pickup(self, seller_id: int, order_id: int, pickup_code: str) -> OrderResponse:
        result = self._publish(self.engine.authorize_pickup(self.policy, seller_id, order_id, pickup_code))
        return order_response(result.record, result.listing, result.delivery)

    def complete_delivery(self, buyer_id: int, order_id: int) -> OrderResponse:
        result = self._publish(self.engine.complete_delivery(self.policy, buyer_id, order_id))
        return order_response(result.record, result.listing, result.delivery)

    def report_delivery_failure(self, courier_id: int, order_id: int, reason: str) -> OrderResponse:
        result = self._publish(
            self.engine.report_delivery_failure(self.policy, courier_id, order_id, reason)
        )
        return order_response(result.record, result.listing, result.delivery)

    def reassign_order_delivery(self, buyer_id: int, order_id: int) -> OrderResponse:
        result = self._publish(self.engine.reassign_delivery(self.policy, buyer_id, order_id))
        return order_response(result.record, result.listing, result.delivery)

    def cancel_order(self, user_id: int, order_id: int, reason: Optional[str] = None) -> OrderResponse:
        result = self._publish(self.engine.cancel(self.policy, user_id, order_id, reason))
        return order_response(result.record, result.listing, result.delivery)

    # ---------- reads ----------

    def get_order(self, user_id: int, order_id: int) -> OrderResponse:
        result = self.engine.get(self.policy, user_id, order_id)
        return order_response(result.record, result.listing, result.delivery)

    def list_my_orders(self, buyer_id: int, offset: int = 0, limit: int = 20) -> List[OrderResponse]:
        with self.uow_factory() as uow:
            orders = uow.orders.list_by_buyer(buyer_id, offset=offset, limit=limit)
            return [
                order_response(o, uow.listings.get(o.listing_id), uow.deliveries.get_by_order(o.id))
                for o in orders
            ]

    def list_my_sales(self, seller_id: int, offset: int = 0, limit: int = 20) -> List[OrderResponse]:
        with self.uow_factory() as uow:
            orders = uow.orders.list_by_seller(seller_id, offset=offset, limit=limit)
            return [
                order_response(o, uow.listings.get(o.listing_id), uow.deliveries.get_by_order(o.id))
                for o in orders
            ]

    def list_my_deliveries(
        self,
        courier_id: int,
        status: Optional[DeliveryStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> List[OrderResponse]:
        """Orders whose delivery is assigned to ``courier_id``."""
        with self.uow_factory() as uow:
            deliveries = uow.deliveries.list_by_actor(
                courier_id, kind=FulfillmentKind.PURCHASE, status=status, offset=offset, limit=limit
            )
            out: List[OrderResponse] = []
            for d in deliveries:
                order = uow.orders.get(d.order_id)
                out.append(order_response(order, uow.listings.get(order.listing_id), d))
            return out

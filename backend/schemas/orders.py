# backend/schemas/orders.py
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from domain.records import (
    DeliveryRecord,
    DeliveryType,
    ListingRecord,
    OrderRecord,
    OrderStatus,
    PaymentStatus,
)


class OrderCreate(BaseModel):
    listing_id: int = Field(gt=0)
    delivery_type: DeliveryType = DeliveryType.SELF_PICKUP
    delivery_address: Optional[str] = None
    proposed_price: Optional[float] = None
    notes: Optional[str] = None


class PickupAuthorization(BaseModel):
    pickup_code: str = Field(min_length=1)


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class FailureReport(BaseModel):
    reason: str = Field(min_length=1)


class OrderResponse(BaseModel):
    id: int
    listing_id: int
    listing_title: Optional[str] = None
    buyer_id: int
    seller_id: int
    status: OrderStatus
    payment_status: PaymentStatus
    delivery_type: DeliveryType
    delivery_address: str = ""
    final_price: float
    delivery_fee: float = 0.0
    total_amount: float = 0.0
    pickup_code: str
    delivery: Optional[DeliveryRecord] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderCreated(BaseModel):
    order_id: int
    status: OrderStatus
    pickup_code: str
    final_price: float
    delivery_fee: float
    estimated_total: float
    seller_id: int
    delivery_person_id: Optional[int] = None
    message: str = "Order created successfully"


def order_response(
    order: OrderRecord,
    listing: Optional[ListingRecord] = None,
    delivery: Optional[DeliveryRecord] = None,
) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        listing_id=order.listing_id,
        listing_title=listing.title if listing else None,
        buyer_id=order.buyer_id,
        seller_id=order.seller_id,
        status=order.status,
        payment_status=order.payment_status,
        delivery_type=order.delivery_type,
        delivery_address=order.delivery_address,
        final_price=order.final_price,
        delivery_fee=order.delivery_fee,
        total_amount=round(order.final_price + order.delivery_fee, 2),
        pickup_code=order.pickup_code,
        delivery=delivery,
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


class OrderPage(BaseModel):
    orders: List[OrderResponse] = []
    offset: int = 0
    limit: int = 20

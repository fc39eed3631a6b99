# backend/routers/orders_router.py
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from domain.records import DeliveryStatus
from routers.dependencies import get_order_service
from schemas.orders import (
    CancelRequest,
    FailureReport,
    OrderCreate,
    OrderCreated,
    OrderResponse,
    PickupAuthorization,
)
from services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderCreated, status_code=201)
def create_order(
    order: OrderCreate,
    user_id: int,
    service: OrderService = Depends(get_order_service),
):
    return service.create_order(user_id, order)


@router.get("/mine", response_model=List[OrderResponse])
def get_my_orders(
    user_id: int,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, gt=0, le=100),
    service: OrderService = Depends(get_order_service),
):
    return service.list_my_orders(user_id, offset=offset, limit=limit)


@router.get("/sales", response_model=List[OrderResponse])
def get_my_sales(
    user_id: int,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, gt=0, le=100),
    service: OrderService = Depends(get_order_service),
):
    return service.list_my_sales(user_id, offset=offset, limit=limit)


@router.get("/deliveries", response_model=List[OrderResponse])
def get_my_deliveries(
    user_id: int,
    status: Optional[DeliveryStatus] = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, gt=0, le=100),
    service: OrderService = Depends(get_order_service),
):
    return service.list_my_deliveries(user_id, status=status, offset=offset, limit=limit)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, user_id: int, service: OrderService = Depends(get_order_service)):
    return service.get_order(user_id, order_id)


@router.post("/{order_id}/authorize-pickup", response_model=OrderResponse)
def authorize_pickup(
    order_id: int,
    body: PickupAuthorization,
    user_id: int,
    service: OrderService = Depends(get_order_service),
):
    return service.authorize_pickup(user_id, order_id, body.pickup_code)


@router.post("/{order_id}/complete-delivery", response_model=OrderResponse)
def complete_delivery(order_id: int, user_id: int, service: OrderService = Depends(get_order_service)):
    return service.complete_delivery(user_id, order_id)


@router.post("/{order_id}/delivery-failure", response_model=OrderResponse)
def report_delivery_failure(
    order_id: int,
    body: FailureReport,
    user_id: int,
    service: OrderService = Depends(get_order_service),
):
    return service.report_delivery_failure(user_id, order_id, body.reason)


@router.post("/{order_id}/reassign-delivery", response_model=OrderResponse)
def reassign_delivery(order_id: int, user_id: int, service: OrderService = Depends(get_order_service)):
    return service.reassign_order_delivery(user_id, order_id)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: int,
    user_id: int,
    body: Optional[CancelRequest] = None,
    service: OrderService = Depends(get_order_service),
):
    return service.cancel_order(user_id, order_id, body.reason if body else None)

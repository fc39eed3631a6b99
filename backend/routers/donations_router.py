# backend/routers/donations_router.py
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from domain.records import DeliveryStatus
from routers.dependencies import get_donation_service
from schemas.claims import ClaimCreate, ClaimCreated, ClaimResponse, DonationStats
from schemas.orders import CancelRequest, FailureReport, PickupAuthorization
from services.donation_service import DonationService

router = APIRouter(prefix="/donations", tags=["donations"])


@router.post("/claims", response_model=ClaimCreated, status_code=201)
def create_donation_claim(
    claim: ClaimCreate,
    user_id: int,
    service: DonationService = Depends(get_donation_service),
):
    return service.create_donation_claim(user_id, claim)


@router.get("/claims/mine", response_model=List[ClaimResponse])
def get_my_claims(
    user_id: int,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, gt=0, le=100),
    service: DonationService = Depends(get_donation_service),
):
    return service.list_my_donation_claims(user_id, offset=offset, limit=limit)


@router.get("/offers", response_model=List[ClaimResponse])
def get_my_offers(
    user_id: int,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, gt=0, le=100),
    service: DonationService = Depends(get_donation_service),
):
    return service.list_my_donation_offers(user_id, offset=offset, limit=limit)


@router.get("/deliveries", response_model=List[ClaimResponse])
def get_my_deliveries(
    user_id: int,
    status: Optional[DeliveryStatus] = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, gt=0, le=100),
    service: DonationService = Depends(get_donation_service),
):
    return service.list_my_donation_deliveries(user_id, status=status, offset=offset, limit=limit)


@router.get("/stats", response_model=DonationStats)
def get_stats(user_id: int, service: DonationService = Depends(get_donation_service)):
    return service.get_donation_stats(user_id)


@router.get("/claims/{claim_id}", response_model=ClaimResponse)
def get_claim(claim_id: int, user_id: int, service: DonationService = Depends(get_donation_service)):
    return service.get_donation_claim(user_id, claim_id)


@router.post("/claims/{claim_id}/authorize-pickup", response_model=ClaimResponse)
def authorize_pickup(
    claim_id: int,
    body: PickupAuthorization,
    user_id: int,
    service: DonationService = Depends(get_donation_service),
):
    return service.authorize_donation_pickup(user_id, claim_id, body.pickup_code)


@router.post("/claims/{claim_id}/complete-pickup", response_model=ClaimResponse)
def complete_pickup(claim_id: int, user_id: int, service: DonationService = Depends(get_donation_service)):
    return service.complete_donation_pickup(user_id, claim_id)


@router.post("/claims/{claim_id}/complete-delivery", response_model=ClaimResponse)
def complete_delivery(claim_id: int, user_id: int, service: DonationService = Depends(get_donation_service)):
    return service.complete_donation_delivery(user_id, claim_id)


@router.post("/claims/{claim_id}/delivery-failure", response_model=ClaimResponse)
def report_delivery_failure(
    claim_id: int,
    body: FailureReport,
    user_id: int,
    service: DonationService = Depends(get_donation_service),
):
    return service.report_donation_delivery_failure(user_id, claim_id, body.reason)


@router.post("/claims/{claim_id}/reassign-delivery", response_model=ClaimResponse)
def reassign_delivery(claim_id: int, user_id: int, service: DonationService = Depends(get_donation_service)):
    return service.reassign_donation_delivery(user_id, claim_id)


@router.post("/claims/{claim_id}/cancel", response_model=ClaimResponse)
def cancel_claim(
    claim_id: int,
    user_id: int,
    body: Optional[CancelRequest] = None,
    service: DonationService = Depends(get_donation_service),
):
    return service.cancel_donation_claim(user_id, claim_id, body.reason if body else None)

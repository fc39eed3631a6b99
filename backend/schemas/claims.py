# backend/schemas/claims.py
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from domain.records import ClaimRecord, ClaimStatus, DeliveryRecord, DeliveryType, ListingRecord


class ClaimCreate(BaseModel):
    listing_id: int = Field(gt=0)
    delivery_type: DeliveryType = DeliveryType.SELF_PICKUP
    delivery_address: Optional[str] = None
    notes: Optional[str] = None


class ClaimResponse(BaseModel):
    id: int
    listing_id: int
    listing_title: Optional[str] = None
    charity_id: int
    donor_id: int
    status: ClaimStatus
    delivery_type: DeliveryType
    delivery_address: Optional[str] = None
    pickup_code: str
    delivery: Optional[DeliveryRecord] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClaimCreated(BaseModel):
    claim_id: int
    status: ClaimStatus
    pickup_code: str
    donor_id: int
    volunteer_id: Optional[int] = None
    message: str = "Donation claim created successfully"


class DonationStats(BaseModel):
    total_claims: int = 0
    pending: int = 0
    approved: int = 0
    completed: int = 0
    cancelled: int = 0
    self_pickup: int = 0
    home_delivery: int = 0


def claim_response(
    claim: ClaimRecord,
    listing: Optional[ListingRecord] = None,
    delivery: Optional[DeliveryRecord] = None,
) -> ClaimResponse:
    return ClaimResponse(
        id=claim.id,
        listing_id=claim.listing_id,
        listing_title=listing.title if listing else None,
        charity_id=claim.charity_id,
        donor_id=claim.donor_id,
        status=claim.status,
        delivery_type=claim.delivery_type,
        delivery_address=claim.delivery_address,
        pickup_code=claim.pickup_code,
        delivery=delivery,
        notes=claim.notes,
        created_at=claim.created_at,
        updated_at=claim.updated_at,
    )


class ClaimPage(BaseModel):
    claims: List[ClaimResponse] = []
    offset: int = 0
    limit: int = 20

# backend/routers/listings_router.py
from fastapi import APIRouter, Depends, Query
from typing import List, Literal, Optional

from domain.records import ListingRecord, ListingStatus
from routers.dependencies import get_listing_service
from schemas.listings import (
    ListingCreate,
    ListingPage,
    ListingSearch,
    ListingView,
    PriceProposal,
    PriceProposalOut,
    StatusChange,
)
from services.listing_service import ListingService

router = APIRouter(prefix="/listings", tags=["listings"])


@router.post("/", response_model=ListingRecord, status_code=201)
def create_listing(
    body: ListingCreate,
    user_id: int,
    service: ListingService = Depends(get_listing_service),
):
    return service.create_listing(user_id, body)


@router.get("/", response_model=ListingPage)
def search_listings(
    q: Optional[str] = Query(default=None),
    food_type: Optional[str] = Query(default=None),
    is_donation: Optional[bool] = Query(default=None),
    min_price: Optional[float] = Query(default=None, ge=0),
    max_price: Optional[float] = Query(default=None, ge=0),
    location: Optional[str] = Query(default=None),
    sort_by: Literal["created_at", "price"] = Query(default="created_at"),
    sort_order: Literal["asc", "desc"] = Query(default="desc"),
    limit: Optional[int] = Query(default=None, gt=0),
    offset: int = Query(default=0, ge=0),
    service: ListingService = Depends(get_listing_service),
):
    return service.search_listings(
        ListingSearch(
            q=q,
            food_type=food_type,
            is_donation=is_donation,
            min_price=min_price,
            max_price=max_price,
            location=location,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
    )


@router.get("/mine", response_model=List[ListingView])
def list_my_listings(
    user_id: int,
    status: Optional[ListingStatus] = Query(default=None),
    service: ListingService = Depends(get_listing_service),
):
    return service.list_my_listings(user_id, status)


@router.get("/{listing_id}", response_model=ListingView)
def get_listing(listing_id: int, service: ListingService = Depends(get_listing_service)):
    return service.get_listing(listing_id)


@router.delete("/{listing_id}", response_model=StatusChange)
def remove_listing(
    listing_id: int,
    user_id: int,
    service: ListingService = Depends(get_listing_service),
):
    return service.remove_listing(user_id, listing_id)


@router.post("/{listing_id}/negotiate", response_model=PriceProposalOut)
def negotiate_price(
    listing_id: int,
    body: PriceProposal,
    user_id: int,
    service: ListingService = Depends(get_listing_service),
):
    return service.negotiate_price(user_id, listing_id, body.proposed_price)

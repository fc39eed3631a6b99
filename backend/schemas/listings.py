# backend/schemas/listings.py
from datetime import timezone
from typing import List, Literal, NewType, Optional

from pydantic import AwareDatetime, BaseModel, Field, constr, field_validator

from domain.records import ListingRecord, ListingStatus

TitleStr = NewType("TitleStr", constr(strip_whitespace=True, min_length=1, max_length=150))


class ListingCreate(BaseModel):
    title: TitleStr
    description: str = ""
    food_type: str = ""
    cooked_at: AwareDatetime
    pickup_window_start: AwareDatetime
    pickup_window_end: Optional[AwareDatetime] = None
    pickup_location: Optional[str] = None
    is_donation: bool = True
    price: Optional[float] = None
    quantity: Optional[str] = None
    dietary_info: Optional[str] = None
    image_path: Optional[str] = None

    @field_validator("cooked_at", "pickup_window_start", "pickup_window_end")
    @classmethod
    def to_utc(cls, v):
        return v.astimezone(timezone.utc) if v is not None else v


class ListingSearch(BaseModel):
    q: Optional[str] = None
    food_type: Optional[str] = None
    is_donation: Optional[bool] = None
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    sort_by: Literal["created_at", "price"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    limit: Optional[int] = Field(default=None, gt=0)
    offset: int = Field(default=0, ge=0)


class ListingView(BaseModel):
    listing: ListingRecord
    current_price: Optional[float] = None
    discount_percent: int = 0
    is_expired: bool = False


class ListingPage(BaseModel):
    listings: List[ListingView] = []
    total: int = 0
    limit: int
    offset: int
    has_more: bool = False


class StatusChange(BaseModel):
    listing_id: int
    previous_status: ListingStatus
    new_status: ListingStatus


class PriceProposal(BaseModel):
    proposed_price: float = Field(gt=0)


class PriceProposalOut(BaseModel):
    listing_id: int
    current_price: float
    proposed_price: float
    seller_id: int
    buyer_id: int
    message: str = "Price negotiation request sent to seller"

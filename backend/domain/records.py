# backend/domain/records.py
"""Storage-agnostic records shared by the engine and every store."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    DONOR_SELLER = "DONOR_SELLER"
    CHARITY_ORG = "CHARITY_ORG"
    BUYER = "BUYER"
    INDEP_DELIVERY = "INDEP_DELIVERY"
    ORG_VOLUNTEER = "ORG_VOLUNTEER"
    ADMIN = "ADMIN"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    PENDING = "PENDING"


class ListingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLAIMED = "CLAIMED"
    SOLD = "SOLD"
    EXPIRED = "EXPIRED"
    REMOVED = "REMOVED"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ClaimStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class DeliveryType(str, Enum):
    SELF_PICKUP = "SELF_PICKUP"
    HOME_DELIVERY = "HOME_DELIVERY"


class DeliveryStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class DeliveryPersonnelType(str, Enum):
    INDEPENDENT = "INDEPENDENT"
    ORG_VOLUNTEER = "ORG_VOLUNTEER"


class FulfillmentKind(str, Enum):
    PURCHASE = "PURCHASE"
    DONATION = "DONATION"


# ---------- actors ----------

class UserRecord(BaseModel):
    id: int
    username: str
    role: UserRole
    email: Optional[str] = None
    phone: Optional[str] = None
    account_status: AccountStatus = AccountStatus.ACTIVE


class CharityRecord(BaseModel):
    id: int
    user_id: int
    organization_name: str
    is_doc_verified: bool = False
    address: Optional[str] = None


class VolunteerRecord(BaseModel):
    id: int
    user_id: int
    organization_id: int
    volunteer_name: str
    contact_phone: Optional[str] = None
    is_active: bool = True


class CourierRecord(BaseModel):
    id: int
    user_id: int
    full_name: str
    is_id_verified: bool = False
    operating_areas: List[str] = Field(default_factory=list)
    rating: float = 0.0


# ---------- aggregates ----------

class ListingRecord(BaseModel):
    id: Optional[int] = None
    owner_id: int
    title: str
    description: str = ""
    food_type: str = ""
    cooked_at: datetime
    pickup_window_start: datetime
    pickup_window_end: Optional[datetime] = None
    pickup_location: Optional[str] = None
    is_donation: bool = True
    price: Optional[float] = None
    quantity: Optional[str] = None
    dietary_info: Optional[str] = None
    status: ListingStatus = ListingStatus.ACTIVE
    image_path: Optional[str] = None
    created_at: Optional[datetime] = None


class OrderRecord(BaseModel):
    id: Optional[int] = None
    buyer_id: int
    seller_id: int
    listing_id: int
    delivery_type: DeliveryType
    delivery_address: str = ""
    final_price: float
    delivery_fee: float = 0.0
    pickup_code: str
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def requester_id(self) -> int:
        return self.buyer_id

    @property
    def provider_id(self) -> int:
        return self.seller_id


class ClaimRecord(BaseModel):
    id: Optional[int] = None
    charity_id: int
    donor_id: int
    listing_id: int
    delivery_type: DeliveryType
    delivery_address: Optional[str] = None
    pickup_code: str
    status: ClaimStatus = ClaimStatus.PENDING
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def requester_id(self) -> int:
        return self.charity_id

    @property
    def provider_id(self) -> int:
        return self.donor_id


class DeliveryRecord(BaseModel):
    id: Optional[int] = None
    order_id: Optional[int] = None
    claim_id: Optional[int] = None
    personnel_type: DeliveryPersonnelType
    actor_id: Optional[int] = None
    status: DeliveryStatus = DeliveryStatus.SCHEDULED
    failure_reason: Optional[str] = None
    updated_at: Optional[datetime] = None


class NotificationRecord(BaseModel):
    id: Optional[int] = None
    recipient_id: int
    category: str
    event_type: str
    message: str
    reference_id: Optional[int] = None
    is_read: bool = False
    created_at: Optional[datetime] = None
    data: Dict[str, Any] = Field(default_factory=dict)

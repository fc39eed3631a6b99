# backend/schemas/__init__.py

# listings
from .listings import (
    ListingCreate, ListingSearch, ListingView, ListingPage,
    StatusChange, PriceProposal, PriceProposalOut,
)

# orders
from .orders import (
    OrderCreate, OrderCreated, OrderResponse, OrderPage,
    PickupAuthorization, CancelRequest, FailureReport,
)

# donation claims
from .claims import ClaimCreate, ClaimCreated, ClaimResponse, ClaimPage, DonationStats

__all__ = [
    # listings
    "ListingCreate", "ListingSearch", "ListingView", "ListingPage",
    "StatusChange", "PriceProposal", "PriceProposalOut",
    # orders
    "OrderCreate", "OrderCreated", "OrderResponse", "OrderPage",
    "PickupAuthorization", "CancelRequest", "FailureReport",
    # donation claims
    "ClaimCreate", "ClaimCreated", "ClaimResponse", "ClaimPage", "DonationStats",
]

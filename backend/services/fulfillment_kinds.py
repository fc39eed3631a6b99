# backend/services/fulfillment_kinds.py
"""
Kind-specific hooks for the fulfillment engine.

``PurchasePolicy`` drives orders against sale listings, ``DonationPolicy``
drives donation claims by verified charities. Everything that differs
between the two lives here; the state machine itself is shared.
"""

import random
from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel

from config.settings import HOME_DELIVERY_FEE
from domain.errors import DomainRuleViolationError, InvalidStateError, UnauthorizedError
from domain.ports import UnitOfWork
from domain.records import (
    ClaimRecord,
    ClaimStatus,
    DeliveryPersonnelType,
    DeliveryRecord,
    DeliveryStatus,
    DeliveryType,
    FulfillmentKind,
    ListingRecord,
    ListingStatus,
    OrderRecord,
    OrderStatus,
    PaymentStatus,
    UserRecord,
    UserRole,
)
from services.matching_service import match_courier, match_volunteer
from services.notification_service import NotificationEvent
from services.pricing_service import listing_price

FulfillmentRecord = Union[OrderRecord, ClaimRecord]


class FulfillmentRequest(BaseModel):
    delivery_type: DeliveryType
    delivery_address: Optional[str] = None
    proposed_price: Optional[float] = None
    notes: Optional[str] = None


class FulfillmentPolicy:
    kind: FulfillmentKind
    label: str
    personnel_type: DeliveryPersonnelType

    pending: Any
    authorized: Any
    completed: Any
    cancelled: Any

    # listing status once the fulfillment completes
    completion_listing_status: ListingStatus
    # self-pickup authorization completes the fulfillment in one step
    completes_on_self_pickup: bool
    # a failed delivery sends the fulfillment back to pending
    revert_on_delivery_failure: bool

    def repository(self, uow: UnitOfWork):
        raise NotImplementedError

    def get_delivery(self, uow: UnitOfWork, record_id: int) -> Optional[DeliveryRecord]:
        raise NotImplementedError

    def new_delivery(self, record_id: int, actor_id: int) -> DeliveryRecord:
        raise NotImplementedError

    def check_requester(self, uow: UnitOfWork, user: UserRecord) -> Any:
        """Raise UnauthorizedError unless ``user`` may open this kind; returns kind context."""
        raise NotImplementedError

    def check_listing(self, listing: ListingRecord) -> None:
        raise NotImplementedError

    def validate_request(self, uow: UnitOfWork, listing: ListingRecord, request: FulfillmentRequest) -> None:
        if request.delivery_type == DeliveryType.HOME_DELIVERY and not (request.delivery_address or "").strip():
            raise DomainRuleViolationError("Delivery address is required for home delivery")

    def match_delivery(
        self,
        uow: UnitOfWork,
        listing: ListingRecord,
        context: Any,
        rng: random.Random,
        exclude_user_ids: List[int] = (),
    ) -> Optional[int]:
        """User id of the matched delivery actor, or None."""
        raise NotImplementedError

    def no_match_reason(self) -> str:
        raise NotImplementedError

    def build_record(
        self,
        requester: UserRecord,
        listing: ListingRecord,
        request: FulfillmentRequest,
        pickup_code: str,
        now: datetime,
    ) -> FulfillmentRecord:
        raise NotImplementedError

    def may_complete_delivery(
        self, record: FulfillmentRecord, delivery: Optional[DeliveryRecord], actor_id: int
    ) -> bool:
        raise NotImplementedError

    def check_cancellable(self, record: FulfillmentRecord, delivery: Optional[DeliveryRecord]) -> None:
        raise NotImplementedError

    def mark_completed(self, record: FulfillmentRecord) -> None:
        record.status = self.completed

    # ---------- notifications ----------

    def created_events(self, record, listing, delivery, requester, context) -> List[NotificationEvent]:
        raise NotImplementedError

    def authorized_events(self, record, listing, delivery) -> List[NotificationEvent]:
        raise NotImplementedError

    def completed_events(self, record, listing, delivery) -> List[NotificationEvent]:
        raise NotImplementedError

    def failure_events(self, record, listing, delivery, reason: str) -> List[NotificationEvent]:
        raise NotImplementedError

    def cancelled_events(self, record, listing, canceller_id: int, reason: Optional[str]) -> List[NotificationEvent]:
        raise NotImplementedError

    def reassigned_events(self, record, listing, delivery) -> List[NotificationEvent]:
        return [
            NotificationEvent(
                recipient_id=delivery.actor_id,
                event_type="DELIVERY_REASSIGNED",
                message=f"You have been assigned the delivery for {self.label.lower()} #{record.id}.",
                reference_id=record.id,
            ),
            NotificationEvent(
                recipient_id=record.provider_id,
                event_type="DELIVERY_REASSIGNED",
                message=f"A new delivery person was assigned to {self.label.lower()} #{record.id}.",
                reference_id=record.id,
            ),
        ]


def _reason_suffix(reason: Optional[str]) -> str:
    return f" Reason: {reason}" if reason else ""


class PurchasePolicy(FulfillmentPolicy):
    kind = FulfillmentKind.PURCHASE
    label = "Order"
    personnel_type = DeliveryPersonnelType.INDEPENDENT

    pending = OrderStatus.PENDING
    authorized = OrderStatus.CONFIRMED
    completed = OrderStatus.COMPLETED
    cancelled = OrderStatus.CANCELLED

    completion_listing_status = ListingStatus.SOLD
    completes_on_self_pickup = True
    revert_on_delivery_failure = False

    def __init__(self, delivery_fee: float = HOME_DELIVERY_FEE, pricing: Optional[dict] = None):
        self.delivery_fee = delivery_fee
        self.pricing = pricing or {}

    def repository(self, uow: UnitOfWork):
        return uow.orders

    def get_delivery(self, uow: UnitOfWork, record_id: int) -> Optional[DeliveryRecord]:
        return uow.deliveries.get_by_order(record_id)

    def new_delivery(self, record_id: int, actor_id: int) -> DeliveryRecord:
        return DeliveryRecord(
            order_id=record_id,
            personnel_type=self.personnel_type,
            actor_id=actor_id,
            status=DeliveryStatus.SCHEDULED,
        )

    def check_requester(self, uow: UnitOfWork, user: UserRecord) -> None:
        if user.role != UserRole.BUYER:
            raise UnauthorizedError("Only buyers can create orders")
        return None

    def check_listing(self, listing: ListingRecord) -> None:
        if listing.is_donation:
            raise DomainRuleViolationError(
                "Cannot create purchase order for donation items. Use donation claim instead."
            )

    def validate_request(self, uow: UnitOfWork, listing: ListingRecord, request: FulfillmentRequest) -> None:
        super().validate_request(uow, listing, request)
        if request.proposed_price is not None and request.proposed_price <= 0:
            raise DomainRuleViolationError("Proposed price must be greater than 0")
        if request.delivery_type == DeliveryType.HOME_DELIVERY and not (listing.pickup_location or "").strip():
            raise DomainRuleViolationError("Listing has no pickup location for home delivery")

    def match_delivery(self, uow, listing, context, rng, exclude_user_ids=()) -> Optional[int]:
        courier = match_courier(
            uow.users.list_verified_couriers(),
            listing.pickup_location,
            rng=rng,
            exclude_user_ids=exclude_user_ids,
        )
        return courier.user_id if courier else None

    def no_match_reason(self) -> str:
        return "No delivery personnel available in your area"

    def build_record(self, requester, listing, request, pickup_code, now) -> OrderRecord:
        if request.proposed_price is not None:
            final_price = round(request.proposed_price, 2)
        else:
            final_price = listing_price(listing, now, **self.pricing) or 0.0
        home = request.delivery_type == DeliveryType.HOME_DELIVERY
        return OrderRecord(
            buyer_id=requester.id,
            seller_id=listing.owner_id,
            listing_id=listing.id,
            delivery_type=request.delivery_type,
            delivery_address=request.delivery_address or "",
            final_price=final_price,
            delivery_fee=self.delivery_fee if home else 0.0,
            pickup_code=pickup_code,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            notes=request.notes,
        )

    def may_complete_delivery(self, record, delivery, actor_id) -> bool:
        return record.buyer_id == actor_id

    def check_cancellable(self, record, delivery) -> None:
        if record.status == OrderStatus.COMPLETED:
            raise InvalidStateError("Cannot cancel completed order")
        if record.status == OrderStatus.CONFIRMED:
            raise InvalidStateError("Cannot cancel order that has been picked up")
        if record.status != OrderStatus.PENDING:
            raise InvalidStateError(f"Order is already {record.status.value.lower()}")

    def mark_completed(self, record: OrderRecord) -> None:
        record.status = OrderStatus.COMPLETED
        record.payment_status = PaymentStatus.PAID

    # ---------- notifications ----------

    def created_events(self, record, listing, delivery, requester, context):
        events = [
            NotificationEvent(
                recipient_id=record.seller_id,
                event_type="NEW_ORDER_RECEIVED",
                message=f"New order received for {listing.title}. Pickup code: {record.pickup_code}",
                reference_id=record.id,
            ),
            NotificationEvent(
                recipient_id=record.buyer_id,
                event_type="ORDER_CREATED",
                message=f"Order created successfully. Order ID: {record.id}",
                reference_id=record.id,
            ),
        ]
        if delivery is not None:
            events.append(
                NotificationEvent(
                    recipient_id=delivery.actor_id,
                    event_type="NEW_DELIVERY_REQUEST",
                    message=f"New delivery request for order #{record.id}. Pickup code: {record.pickup_code}",
                    reference_id=record.id,
                    data={"pickupLocation": listing.pickup_location, "deliveryAddress": record.delivery_address},
                )
            )
        return events

    def authorized_events(self, record, listing, delivery):
        if record.delivery_type == DeliveryType.HOME_DELIVERY:
            return [
                NotificationEvent(
                    recipient_id=delivery.actor_id,
                    event_type="PICKUP_AUTHORIZED",
                    message=f"Pickup authorized for order #{record.id}. Please deliver to customer.",
                    reference_id=record.id,
                ),
                NotificationEvent(
                    recipient_id=record.buyer_id,
                    event_type="ORDER_PICKED_UP",
                    message=f"Your order #{record.id} has been picked up by delivery personnel and is on the way.",
                    reference_id=record.id,
                ),
            ]
        return [
            NotificationEvent(
                recipient_id=record.buyer_id,
                event_type="ORDER_COMPLETED",
                message=f"Your order #{record.id} has been completed via self-pickup.",
                reference_id=record.id,
            )
        ]

    def completed_events(self, record, listing, delivery):
        events = [
            NotificationEvent(
                recipient_id=record.seller_id,
                event_type="ORDER_COMPLETED",
                message=f"Order #{record.id} has been completed and delivered.",
                reference_id=record.id,
            )
        ]
        if delivery is not None and delivery.actor_id is not None:
            events.append(
                NotificationEvent(
                    recipient_id=delivery.actor_id,
                    event_type="ORDER_DELIVERED",
                    message=f"The buyer confirmed delivery of order #{record.id}.",
                    reference_id=record.id,
                )
            )
        return events

    def failure_events(self, record, listing, delivery, reason):
        message = f"Delivery failed for order #{record.id}.{_reason_suffix(reason)}"
        return [
            NotificationEvent(recipient_id=record.buyer_id, event_type="DELIVERY_FAILED",
                              message=message, reference_id=record.id),
            NotificationEvent(recipient_id=record.seller_id, event_type="DELIVERY_FAILED",
                              message=message, reference_id=record.id),
        ]

    def cancelled_events(self, record, listing, canceller_id, reason):
        role = "buyer" if canceller_id == record.buyer_id else "seller"
        other = record.seller_id if role == "buyer" else record.buyer_id
        return [
            NotificationEvent(
                recipient_id=other,
                event_type="ORDER_CANCELLED",
                message=f"Order #{record.id} has been cancelled by the {role}.{_reason_suffix(reason)}",
                reference_id=record.id,
                data={"cancellerRole": role, "reason": reason},
            )
        ]


class DonationPolicy(FulfillmentPolicy):
    kind = FulfillmentKind.DONATION
    label = "Donation claim"
    personnel_type = DeliveryPersonnelType.ORG_VOLUNTEER

    pending = ClaimStatus.PENDING
    authorized = ClaimStatus.APPROVED
    completed = ClaimStatus.COMPLETED
    cancelled = ClaimStatus.CANCELLED

    completion_listing_status = ListingStatus.CLAIMED
    completes_on_self_pickup = False
    revert_on_delivery_failure = True

    def repository(self, uow: UnitOfWork):
        return uow.claims

    def get_delivery(self, uow: UnitOfWork, record_id: int) -> Optional[DeliveryRecord]:
        return uow.deliveries.get_by_claim(record_id)

    def new_delivery(self, record_id: int, actor_id: int) -> DeliveryRecord:
        return DeliveryRecord(
            claim_id=record_id,
            personnel_type=self.personnel_type,
            actor_id=actor_id,
            status=DeliveryStatus.SCHEDULED,
        )

    def check_requester(self, uow: UnitOfWork, user: UserRecord):
        if user.role != UserRole.CHARITY_ORG:
            raise UnauthorizedError("Only charity organizations can create donation claims")
        charity = uow.users.get_charity_by_user(user.id)
        if charity is None or not charity.is_doc_verified:
            raise UnauthorizedError("Organization must be verified by admin to claim donations")
        return charity

    def check_listing(self, listing: ListingRecord) -> None:
        if not listing.is_donation:
            raise DomainRuleViolationError(
                "Cannot create donation claim for non-donation items. Use purchase order instead."
            )

    def validate_request(self, uow: UnitOfWork, listing: ListingRecord, request: FulfillmentRequest) -> None:
        super().validate_request(uow, listing, request)
        if request.proposed_price is not None:
            raise DomainRuleViolationError("Donation claims carry no price")
        if uow.claims.find_pending_for_listing(listing.id) is not None:
            raise InvalidStateError("There is already a pending claim for this donation")

    def match_delivery(self, uow, listing, context, rng, exclude_user_ids=()) -> Optional[int]:
        volunteer = match_volunteer(
            uow.users.list_active_volunteers(context.id),
            context.id,
            exclude_user_ids=exclude_user_ids,
        )
        return volunteer.user_id if volunteer else None

    def no_match_reason(self) -> str:
        return "No volunteers available for delivery in your organization"

    def build_record(self, requester, listing, request, pickup_code, now) -> ClaimRecord:
        return ClaimRecord(
            charity_id=requester.id,
            donor_id=listing.owner_id,
            listing_id=listing.id,
            delivery_type=request.delivery_type,
            delivery_address=request.delivery_address,
            pickup_code=pickup_code,
            status=ClaimStatus.PENDING,
            notes=request.notes,
        )

    def may_complete_delivery(self, record, delivery, actor_id) -> bool:
        return delivery is not None and delivery.actor_id == actor_id

    def check_cancellable(self, record, delivery) -> None:
        if record.status == ClaimStatus.COMPLETED:
            raise InvalidStateError("Cannot cancel completed donation delivery")
        if record.status in (ClaimStatus.CANCELLED, ClaimStatus.REJECTED):
            raise InvalidStateError(f"Donation claim is already {record.status.value.lower()}")
        if delivery is not None and delivery.status in (DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED):
            raise InvalidStateError("Cannot cancel donation claim that is in transit or delivered")

    # ---------- notifications ----------

    def created_events(self, record, listing, delivery, requester, context):
        org_name = context.organization_name
        events = [
            NotificationEvent(
                recipient_id=record.donor_id,
                event_type="DONATION_CLAIMED",
                message=(
                    f'Your donation "{listing.title}" has been claimed by {org_name}. '
                    f"Pickup code: {record.pickup_code}"
                ),
                reference_id=record.id,
                data={"organizationName": org_name, "deliveryType": record.delivery_type.value},
            ),
            NotificationEvent(
                recipient_id=record.charity_id,
                event_type="DONATION_CLAIM_CREATED",
                message=f'Donation claim created successfully for "{listing.title}". Claim ID: {record.id}',
                reference_id=record.id,
            ),
        ]
        if delivery is not None:
            events.append(
                NotificationEvent(
                    recipient_id=delivery.actor_id,
                    event_type="NEW_DONATION_DELIVERY",
                    message=(
                        f"New donation delivery assigned. Claim ID: {record.id}. "
                        f"Pickup code: {record.pickup_code}"
                    ),
                    reference_id=record.id,
                    data={
                        "pickupLocation": listing.pickup_location,
                        "deliveryAddress": record.delivery_address,
                        "organizationName": org_name,
                    },
                )
            )
        return events

    def authorized_events(self, record, listing, delivery):
        events = []
        if delivery is not None:
            events.append(
                NotificationEvent(
                    recipient_id=delivery.actor_id,
                    event_type="DONATION_PICKUP_AUTHORIZED",
                    message=f"Donation pickup authorized for claim #{record.id}. Please deliver to organization.",
                    reference_id=record.id,
                )
            )
            message = f"Your claimed donation #{record.id} has been picked up by a volunteer and is on the way."
        else:
            message = f"Pickup of donation #{record.id} was authorized by the donor."
        events.append(
            NotificationEvent(
                recipient_id=record.charity_id,
                event_type="DONATION_PICKED_UP",
                message=message,
                reference_id=record.id,
                data={"donationTitle": listing.title},
            )
        )
        return events

    def completed_events(self, record, listing, delivery):
        return [
            NotificationEvent(
                recipient_id=record.charity_id,
                event_type="DONATION_COMPLETED",
                message=f"Your claimed donation #{record.id} has been received successfully.",
                reference_id=record.id,
                data={"donationTitle": listing.title},
            ),
            NotificationEvent(
                recipient_id=record.donor_id,
                event_type="DONATION_DELIVERED",
                message=f"Your donation #{record.id} has been successfully handed over.",
                reference_id=record.id,
                data={"donationTitle": listing.title},
            ),
        ]

    def failure_events(self, record, listing, delivery, reason):
        message = f"Donation delivery failed for claim #{record.id}.{_reason_suffix(reason)}"
        data = {"donationTitle": listing.title, "failureReason": reason}
        return [
            NotificationEvent(recipient_id=record.charity_id, event_type="DONATION_DELIVERY_FAILED",
                              message=message, reference_id=record.id, data=data),
            NotificationEvent(recipient_id=record.donor_id, event_type="DONATION_DELIVERY_FAILED",
                              message=message, reference_id=record.id, data=data),
        ]

    def cancelled_events(self, record, listing, canceller_id, reason):
        role = "donor" if canceller_id == record.donor_id else "charity organization"
        other = record.charity_id if canceller_id == record.donor_id else record.donor_id
        return [
            NotificationEvent(
                recipient_id=other,
                event_type="DONATION_CLAIM_CANCELLED",
                message=f"Donation claim #{record.id} has been cancelled by the {role}.{_reason_suffix(reason)}",
                reference_id=record.id,
                data={"donationTitle": listing.title, "cancellerRole": role, "reason": reason},
            )
        ]

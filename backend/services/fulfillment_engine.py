# backend/services/fulfillment_engine.py
"""
One state machine for orders and donation claims.

Every operation runs inside a single unit of work: the fulfillment row, its
delivery row and the listing status change commit together or not at all.
The listing is moved off ACTIVE with a conditional transition, so two
requests racing for the same listing cannot both succeed.

Operations return a ``TransitionResult``; its ``events`` are meant to be
dispatched by the caller once the transition has committed.
"""

import logging
import random
from typing import Callable, List, Optional, Union

from pydantic import BaseModel

from domain.errors import (
    DomainRuleViolationError,
    FulfillmentError,
    InvalidStateError,
    NoMatchError,
    NotFoundError,
    UnauthorizedError,
)
from domain.ports import UnitOfWork, UnitOfWorkFactory
from domain.records import (
    ClaimRecord,
    DeliveryRecord,
    DeliveryStatus,
    DeliveryType,
    ListingRecord,
    ListingStatus,
    OrderRecord,
    UserRecord,
)
from services.clock import Clock, utc_now
from services.fulfillment_kinds import FulfillmentPolicy, FulfillmentRequest
from services.listing_service import is_expired, reconcile_expiry, transition_listing_status
from services.notification_service import NotificationEvent
from services.pickup_code_service import generate_pickup_code, verify_pickup_code

logger = logging.getLogger(__name__)

OPEN_DELIVERY_STATUSES = (DeliveryStatus.SCHEDULED, DeliveryStatus.IN_TRANSIT)


class TransitionResult(BaseModel):
    record: Union[OrderRecord, ClaimRecord]
    listing: Optional[ListingRecord] = None
    delivery: Optional[DeliveryRecord] = None
    events: List[NotificationEvent] = []


class FulfillmentEngine:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Clock = utc_now,
        rng: Optional[random.Random] = None,
        code_generator: Callable[[], str] = generate_pickup_code,
    ):
        self.uow_factory = uow_factory
        self.clock = clock
        self.rng = rng or random.Random()
        self.code_generator = code_generator

    # ---------- helpers ----------

    @staticmethod
    def _get_user(uow: UnitOfWork, user_id: int) -> UserRecord:
        user = uow.users.get_user(user_id)
        if user is None:
            raise NotFoundError("User does not exist")
        return user

    @staticmethod
    def _get_listing(uow: UnitOfWork, listing_id: int) -> ListingRecord:
        listing = uow.listings.get(listing_id)
        if listing is None:
            raise NotFoundError("Food listing not found")
        return listing

    @staticmethod
    def _get_record(policy: FulfillmentPolicy, uow: UnitOfWork, record_id: int):
        record = policy.repository(uow).get(record_id)
        if record is None:
            raise NotFoundError(f"{policy.label} not found")
        return record

    def _reject(self, policy: FulfillmentPolicy, operation: str, record_id, error: FulfillmentError):
        logger.warning(
            f"{policy.label} {operation} rejected (id={record_id}): {error.kind.value}: {error.reason}"
        )

    # ---------- creation ----------

    def create(
        self,
        policy: FulfillmentPolicy,
        requester_id: int,
        listing_id: int,
        request: FulfillmentRequest,
    ) -> TransitionResult:
        now = self.clock()
        try:
            with self.uow_factory() as uow:
                requester = self._get_user(uow, requester_id)
                context = policy.check_requester(uow, requester)
                listing = self._get_listing(uow, listing_id)

                if listing.status == ListingStatus.ACTIVE and is_expired(listing, now):
                    reconcile_expiry(uow, listing, now)
                    uow.commit()
                    raise InvalidStateError("Listing pickup window has elapsed")
                if listing.status != ListingStatus.ACTIVE:
                    raise InvalidStateError("Food listing is not available")
                policy.check_listing(listing)
                if listing.owner_id == requester_id:
                    raise DomainRuleViolationError("Cannot request your own listing")
                policy.validate_request(uow, listing, request)

                actor_id = None
                if request.delivery_type == DeliveryType.HOME_DELIVERY:
                    actor_id = policy.match_delivery(uow, listing, context, self.rng)
                    if actor_id is None:
                        raise NoMatchError(policy.no_match_reason())

                record = policy.build_record(requester, listing, request, self.code_generator(), now)
                record = policy.repository(uow).add(record)
                listing = transition_listing_status(
                    uow, listing.id, ListingStatus.CLAIMED, expected=ListingStatus.ACTIVE
                )
                delivery = None
                if actor_id is not None:
                    delivery = uow.deliveries.add(policy.new_delivery(record.id, actor_id))
                uow.commit()
        except FulfillmentError as e:
            self._reject(policy, "creation", f"listing {listing_id}", e)
            raise

        logger.info(
            f"{policy.label} {record.id} created on listing {listing.id} "
            f"({record.delivery_type.value}) by user {requester_id}"
        )
        return TransitionResult(
            record=record,
            listing=listing,
            delivery=delivery,
            events=policy.created_events(record, listing, delivery, requester, context),
        )

    # ---------- pickup ----------

    def authorize_pickup(
        self, policy: FulfillmentPolicy, provider_id: int, record_id: int, pickup_code: str
    ) -> TransitionResult:
        try:
            with self.uow_factory() as uow:
                record = self._get_record(policy, uow, record_id)
                if record.provider_id != provider_id:
                    raise UnauthorizedError(f"You can only authorize pickup for your own {policy.label.lower()}s")
                if record.status != policy.pending:
                    raise InvalidStateError(
                        f"{policy.label} is {record.status.value}, pickup can only be authorized while pending"
                    )
                verify_pickup_code(record.pickup_code, pickup_code)

                delivery = policy.get_delivery(uow, record.id)
                listing = uow.listings.get(record.listing_id)
                if record.delivery_type == DeliveryType.HOME_DELIVERY:
                    if delivery is None or delivery.status != DeliveryStatus.SCHEDULED:
                        raise InvalidStateError("No scheduled delivery to hand over to")
                    record.status = policy.authorized
                    delivery.status = DeliveryStatus.IN_TRANSIT
                    delivery = uow.deliveries.save(delivery)
                elif policy.completes_on_self_pickup:
                    policy.mark_completed(record)
                    listing = transition_listing_status(
                        uow, record.listing_id, policy.completion_listing_status
                    )
                else:
                    record.status = policy.authorized
                record = policy.repository(uow).save(record)
                uow.commit()
        except FulfillmentError as e:
            self._reject(policy, "pickup authorization", record_id, e)
            raise

        logger.info(f"{policy.label} {record.id} pickup authorized -> {record.status.value}")
        return TransitionResult(
            record=record,
            listing=listing,
            delivery=delivery,
            events=policy.authorized_events(record, listing, delivery),
        )

    def complete_pickup(self, policy: FulfillmentPolicy, requester_id: int, record_id: int) -> TransitionResult:
        """Requester confirms receipt of an authorized self-pickup."""
        try:
            with self.uow_factory() as uow:
                record = self._get_record(policy, uow, record_id)
                if record.requester_id != requester_id:
                    raise UnauthorizedError(f"You can only complete your own {policy.label.lower()}s")
                if record.delivery_type != DeliveryType.SELF_PICKUP:
                    raise InvalidStateError(f"{policy.label} is not a self-pickup")
                if record.status != policy.authorized:
                    raise InvalidStateError(
                        f"{policy.label} is {record.status.value}, pickup must be authorized first"
                    )
                policy.mark_completed(record)
                record = policy.repository(uow).save(record)
                listing = transition_listing_status(uow, record.listing_id, policy.completion_listing_status)
                uow.commit()
        except FulfillmentError as e:
            self._reject(policy, "pickup completion", record_id, e)
            raise

        logger.info(f"{policy.label} {record.id} completed via self-pickup")
        return TransitionResult(
            record=record,
            listing=listing,
            events=policy.completed_events(record, listing, None),
        )

    # ---------- delivery ----------

    def complete_delivery(self, policy: FulfillmentPolicy, actor_id: int, record_id: int) -> TransitionResult:
        try:
            with self.uow_factory() as uow:
                record = self._get_record(policy, uow, record_id)
                delivery = policy.get_delivery(uow, record.id)
                if not policy.may_complete_delivery(record, delivery, actor_id):
                    raise UnauthorizedError(f"You cannot complete delivery of this {policy.label.lower()}")
                if record.delivery_type != DeliveryType.HOME_DELIVERY or delivery is None:
                    raise InvalidStateError(f"{policy.label} is not a home delivery")
                if record.status != policy.authorized or delivery.status != DeliveryStatus.IN_TRANSIT:
                    raise InvalidStateError(
                        f"{policy.label} is {record.status.value} with delivery {delivery.status.value}, "
                        "only an in-transit delivery can be completed"
                    )
                policy.mark_completed(record)
                record = policy.repository(uow).save(record)
                delivery.status = DeliveryStatus.DELIVERED
                delivery = uow.deliveries.save(delivery)
                listing = transition_listing_status(uow, record.listing_id, policy.completion_listing_status)
                uow.commit()
        except FulfillmentError as e:
            self._reject(policy, "delivery completion", record_id, e)
            raise

        logger.info(f"{policy.label} {record.id} delivered")
        return TransitionResult(
            record=record,
            listing=listing,
            delivery=delivery,
            events=policy.completed_events(record, listing, delivery),
        )

    def report_delivery_failure(
        self, policy: FulfillmentPolicy, actor_id: int, record_id: int, reason: str
    ) -> TransitionResult:
        try:
            with self.uow_factory() as uow:
                record = self._get_record(policy, uow, record_id)
                delivery = policy.get_delivery(uow, record.id)
                if delivery is None or delivery.actor_id != actor_id:
                    raise UnauthorizedError("You are not assigned to this delivery")
                if delivery.status not in OPEN_DELIVERY_STATUSES:
                    raise InvalidStateError(f"Delivery is already {delivery.status.value}")
                delivery.status = DeliveryStatus.FAILED
                delivery.failure_reason = reason
                delivery = uow.deliveries.save(delivery)
                if policy.revert_on_delivery_failure and record.status == policy.authorized:
                    record.status = policy.pending
                    record = policy.repository(uow).save(record)
                listing = uow.listings.get(record.listing_id)
                uow.commit()
        except FulfillmentError as e:
            self._reject(policy, "delivery failure report", record_id, e)
            raise

        logger.info(f"{policy.label} {record.id} delivery failed: {reason}")
        return TransitionResult(
            record=record,
            listing=listing,
            delivery=delivery,
            events=policy.failure_events(record, listing, delivery, reason),
        )

    def reassign_delivery(self, policy: FulfillmentPolicy, requester_id: int, record_id: int) -> TransitionResult:
        """Match a new delivery actor for a pending fulfillment whose delivery failed."""
        try:
            with self.uow_factory() as uow:
                record = self._get_record(policy, uow, record_id)
                if record.requester_id != requester_id:
                    raise UnauthorizedError(f"You can only reassign your own {policy.label.lower()}s")
                delivery = policy.get_delivery(uow, record.id)
                if delivery is None or delivery.status != DeliveryStatus.FAILED:
                    raise InvalidStateError("Only a failed delivery can be reassigned")
                if record.status != policy.pending:
                    raise InvalidStateError(f"{policy.label} is {record.status.value}")

                requester = self._get_user(uow, requester_id)
                context = policy.check_requester(uow, requester)
                listing = self._get_listing(uow, record.listing_id)
                actor_id = policy.match_delivery(
                    uow, listing, context, self.rng, exclude_user_ids=[delivery.actor_id]
                )
                if actor_id is None:
                    raise NoMatchError(policy.no_match_reason())
                delivery.actor_id = actor_id
                delivery.status = DeliveryStatus.SCHEDULED
                delivery.failure_reason = None
                delivery = uow.deliveries.save(delivery)
                uow.commit()
        except FulfillmentError as e:
            self._reject(policy, "delivery reassignment", record_id, e)
            raise

        logger.info(f"{policy.label} {record.id} delivery reassigned to user {delivery.actor_id}")
        return TransitionResult(
            record=record,
            listing=listing,
            delivery=delivery,
            events=policy.reassigned_events(record, listing, delivery),
        )

    # ---------- cancellation ----------

    def cancel(
        self, policy: FulfillmentPolicy, actor_id: int, record_id: int, reason: Optional[str] = None
    ) -> TransitionResult:
        try:
            with self.uow_factory() as uow:
                record = self._get_record(policy, uow, record_id)
                if actor_id not in (record.requester_id, record.provider_id):
                    raise UnauthorizedError(f"You can only cancel your own {policy.label.lower()}s")
                delivery = policy.get_delivery(uow, record.id)
                policy.check_cancellable(record, delivery)

                record.status = policy.cancelled
                record = policy.repository(uow).save(record)
                if delivery is not None and delivery.status != DeliveryStatus.FAILED:
                    delivery.status = DeliveryStatus.FAILED
                    delivery.failure_reason = reason or "Cancelled"
                    delivery = uow.deliveries.save(delivery)
                listing = transition_listing_status(uow, record.listing_id, ListingStatus.ACTIVE)
                uow.commit()
        except FulfillmentError as e:
            self._reject(policy, "cancellation", record_id, e)
            raise

        logger.info(f"{policy.label} {record.id} cancelled by user {actor_id}")
        return TransitionResult(
            record=record,
            listing=listing,
            delivery=delivery,
            events=policy.cancelled_events(record, listing, actor_id, reason),
        )

    # ---------- reads ----------

    def get(self, policy: FulfillmentPolicy, user_id: int, record_id: int) -> TransitionResult:
        """Fulfillment with its listing and delivery, visible to its parties only."""
        with self.uow_factory() as uow:
            record = self._get_record(policy, uow, record_id)
            delivery = policy.get_delivery(uow, record.id)
            parties = {record.requester_id, record.provider_id}
            if delivery is not None and delivery.actor_id is not None:
                parties.add(delivery.actor_id)
            if user_id not in parties:
                raise UnauthorizedError(f"You can only view your own {policy.label.lower()}s")
            listing = uow.listings.get(record.listing_id)
        return TransitionResult(record=record, listing=listing, delivery=delivery)

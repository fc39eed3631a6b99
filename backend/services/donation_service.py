# backend/services/donation_service.py
"""Donation claims by verified charity organizations."""

import logging
import random
from typing import Callable, List, Optional

from domain.errors import NotFoundError, UnauthorizedError
from domain.ports import UnitOfWorkFactory
from domain.records import ClaimStatus, DeliveryStatus, DeliveryType, FulfillmentKind, UserRole
from schemas.claims import (
    ClaimCreate,
    ClaimCreated,
    ClaimResponse,
    DonationStats,
    claim_response,
)
from services.clock import Clock, utc_now
from services.fulfillment_engine import FulfillmentEngine, TransitionResult
from services.fulfillment_kinds import DonationPolicy, FulfillmentRequest
from services.notification_service import NotificationDispatcher
from services.pickup_code_service import generate_pickup_code

logger = logging.getLogger(__name__)


class DonationService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = utc_now,
        rng: Optional[random.Random] = None,
        code_generator: Callable[[], str] = generate_pickup_code,
    ):
        self.uow_factory = uow_factory
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.policy = DonationPolicy()
        self.engine = FulfillmentEngine(uow_factory, clock=clock, rng=rng, code_generator=code_generator)

    def _publish(self, result: TransitionResult) -> TransitionResult:
        delivered = self.dispatcher.dispatch(result.events)
        logger.debug(f"{self.policy.label} {result.record.id}: {delivered} notification deliveries")
        return result

    def _respond(self, result: TransitionResult) -> ClaimResponse:
        return claim_response(result.record, result.listing, result.delivery)

    # ---------- transitions ----------

    def create_donation_claim(self, charity_user_id: int, data: ClaimCreate) -> ClaimCreated:
        result = self._publish(
            self.engine.create(
                self.policy,
                charity_user_id,
                data.listing_id,
                FulfillmentRequest(
                    delivery_type=data.delivery_type,
                    delivery_address=data.delivery_address,
                    notes=data.notes,
                ),
            )
        )
        claim = result.record
        return ClaimCreated(
            claim_id=claim.id,
            status=claim.status,
            pickup_code=claim.pickup_code,
            donor_id=claim.donor_id,
            volunteer_id=result.delivery.actor_id if result.delivery else None,
        )

    def authorize_donation_pickup(self, donor_id: int, claim_id: int, pickup_code: str) -> ClaimResponse:
        return self._respond(
            self._publish(self.engine.authorize_pickup(self.policy, donor_id, claim_id, pickup_code))
        )

    def complete_donation_pickup(self, charity_user_id: int, claim_id: int) -> ClaimResponse:
        return self._respond(self._publish(self.engine.complete_pickup(self.policy, charity_user_id, claim_id)))

    def complete_donation_delivery(self, volunteer_user_id: int, claim_id: int) -> ClaimResponse:
        return self._respond(
            self._publish(self.engine.complete_delivery(self.policy, volunteer_user_id, claim_id))
        )

    def report_donation_delivery_failure(self, volunteer_user_id: int, claim_id: int, reason: str) -> ClaimResponse:
        return self._respond(
            self._publish(self.engine.report_delivery_failure(self.policy, volunteer_user_id, claim_id, reason))
        )

    def reassign_donation_delivery(self, charity_user_id: int, claim_id: int) -> ClaimResponse:
        return self._respond(
            self._publish(self.engine.reassign_delivery(self.policy, charity_user_id, claim_id))
        )

    def cancel_donation_claim(self, user_id: int, claim_id: int, reason: Optional[str] = None) -> ClaimResponse:
        return self._respond(self._publish(self.engine.cancel(self.policy, user_id, claim_id, reason)))

    # ---------- reads ----------

    def get_donation_claim(self, user_id: int, claim_id: int) -> ClaimResponse:
        return self._respond(self.engine.get(self.policy, user_id, claim_id))

    def list_my_donation_claims(self, charity_user_id: int, offset: int = 0, limit: int = 20) -> List[ClaimResponse]:
        with self.uow_factory() as uow:
            claims = uow.claims.list_by_charity(charity_user_id, offset=offset, limit=limit)
            return [
                claim_response(c, uow.listings.get(c.listing_id), uow.deliveries.get_by_claim(c.id))
                for c in claims
            ]

    def list_my_donation_offers(self, donor_id: int, offset: int = 0, limit: int = 20) -> List[ClaimResponse]:
        with self.uow_factory() as uow:
            claims = uow.claims.list_by_donor(donor_id, offset=offset, limit=limit)
            return [
                claim_response(c, uow.listings.get(c.listing_id), uow.deliveries.get_by_claim(c.id))
                for c in claims
            ]

    def list_my_donation_deliveries(
        self,
        volunteer_user_id: int,
        status: Optional[DeliveryStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> List[ClaimResponse]:
        with self.uow_factory() as uow:
            deliveries = uow.deliveries.list_by_actor(
                volunteer_user_id, kind=FulfillmentKind.DONATION, status=status, offset=offset, limit=limit
            )
            out: List[ClaimResponse] = []
            for d in deliveries:
                claim = uow.claims.get(d.claim_id)
                out.append(claim_response(claim, uow.listings.get(claim.listing_id), d))
            return out

    def get_donation_stats(self, user_id: int) -> DonationStats:
        """Claim counts of a charity, or counts of the claims made on a donor's offers."""
        with self.uow_factory() as uow:
            user = uow.users.get_user(user_id)
            if user is None:
                raise NotFoundError("User does not exist")
            if user.role == UserRole.CHARITY_ORG:
                claims = uow.claims.list_by_charity(user_id, offset=0, limit=10**9)
            elif user.role == UserRole.DONOR_SELLER:
                claims = uow.claims.list_by_donor(user_id, offset=0, limit=10**9)
            else:
                raise UnauthorizedError("Donation statistics exist for charities and donors only")

        def count(status: ClaimStatus) -> int:
            return sum(1 for c in claims if c.status == status)

        return DonationStats(
            total_claims=len(claims),
            pending=count(ClaimStatus.PENDING),
            approved=count(ClaimStatus.APPROVED),
            completed=count(ClaimStatus.COMPLETED),
            cancelled=count(ClaimStatus.CANCELLED),
            self_pickup=sum(1 for c in claims if c.delivery_type == DeliveryType.SELF_PICKUP),
            home_delivery=sum(1 for c in claims if c.delivery_type == DeliveryType.HOME_DELIVERY),
        )

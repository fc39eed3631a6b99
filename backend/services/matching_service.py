# backend/services/matching_service.py
"""
Delivery matching.

Availability-first: no load balancing and no distance ranking. A courier
qualifies when one of their operating areas and the pickup location
contain each other (case-insensitive substring in either direction).
"""

import logging
import random
from typing import Iterable, List, Optional

from domain.records import CourierRecord, VolunteerRecord

logger = logging.getLogger(__name__)


def area_covers(area: str, pickup_location: str) -> bool:
    area = (area or "").strip().lower()
    location = (pickup_location or "").strip().lower()
    if not area or not location:
        return False
    return area in location or location in area


def eligible_couriers(couriers: Iterable[CourierRecord], pickup_location: str) -> List[CourierRecord]:
    return [
        c for c in couriers
        if c.is_id_verified and any(area_covers(a, pickup_location) for a in c.operating_areas)
    ]


def match_courier(
    couriers: Iterable[CourierRecord],
    pickup_location: str,
    rng: Optional[random.Random] = None,
    exclude_user_ids: Iterable[int] = (),
) -> Optional[CourierRecord]:
    """Pick a verified courier operating around ``pickup_location`` uniformly at random."""
    candidates = eligible_couriers(couriers, pickup_location)
    excluded = set(exclude_user_ids)
    preferred = [c for c in candidates if c.user_id not in excluded]
    pool = preferred or candidates
    if not pool:
        logger.info(f"No courier operating around '{pickup_location}'")
        return None
    return (rng or random).choice(pool)


def match_volunteer(
    volunteers: Iterable[VolunteerRecord],
    organization_id: int,
    exclude_user_ids: Iterable[int] = (),
) -> Optional[VolunteerRecord]:
    """First active volunteer of the organization, skipping excluded users when possible."""
    active = [v for v in volunteers if v.is_active and v.organization_id == organization_id]
    excluded = set(exclude_user_ids)
    for volunteer in active:
        if volunteer.user_id not in excluded:
            return volunteer
    if active:
        return active[0]
    logger.info(f"No active volunteer in organization {organization_id}")
    return None

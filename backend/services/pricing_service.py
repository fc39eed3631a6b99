# backend/services/pricing_service.py
"""Time-decayed pricing for sale listings.

The price is derived on every read from the listing's own timestamps; it
is never stored back on the listing.
"""

from datetime import datetime
from typing import Optional

from config.settings import DISCOUNT_RATE_PER_HOUR, DISCOUNT_WINDOW_HOURS, MAX_DISCOUNT_FRACTION
from domain.records import ListingRecord


def in_pickup_window(now: datetime, window_start: datetime, window_end: Optional[datetime]) -> bool:
    if now < window_start:
        return False
    return window_end is None or now <= window_end


def current_price(
    base_price: float,
    cooked_at: datetime,
    window_start: datetime,
    window_end: Optional[datetime],
    now: datetime,
    rate_per_hour: float = DISCOUNT_RATE_PER_HOUR,
    max_discount: float = MAX_DISCOUNT_FRACTION,
    window_hours: float = DISCOUNT_WINDOW_HOURS,
) -> float:
    """
    Linear decay of ``base_price`` since cooking, floored at
    ``base_price * (1 - max_discount)``.

    The discount applies only while ``now`` is inside the pickup window and
    within ``window_hours`` of ``cooked_at``; otherwise the base price is
    returned unchanged.
    """
    if base_price is None or base_price <= 0:
        raise ValueError("Dynamic pricing needs a positive base price")

    hours_since_cooked = (now - cooked_at).total_seconds() / 3600
    if hours_since_cooked < 0 or hours_since_cooked > window_hours:
        return round(base_price, 2)
    if not in_pickup_window(now, window_start, window_end):
        return round(base_price, 2)

    floor = base_price * (1 - max_discount)
    discount = min(hours_since_cooked * rate_per_hour * base_price, base_price * max_discount)
    return round(max(base_price - discount, floor), 2)


def listing_price(listing: ListingRecord, now: datetime, **kwargs) -> Optional[float]:
    """Current price of a listing, or None for donations and unpriced listings."""
    if listing.is_donation or not listing.price or listing.price <= 0:
        return None
    return current_price(
        listing.price,
        listing.cooked_at,
        listing.pickup_window_start,
        listing.pickup_window_end,
        now,
        **kwargs,
    )


def discount_percent(base_price: float, price: float) -> int:
    if not base_price:
        return 0
    return int(round((1 - price / base_price) * 100))

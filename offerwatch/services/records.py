"""Plain records passed between the mapper, matcher, stores and sinks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Offer:
    """One observed product listing.

    Zero prices and percentages mean "unknown/none". discount_percentage is
    never derived from the prices and never part of the wire format.
    """

    product_name: str
    price: float = 0.0
    original_price: float = 0.0
    details: str = ""
    cashback_percentage: int = 0
    discount_percentage: int = 0
    source: str = ""
    received_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class WishlistCriterion:
    """A user's standing rule for being notified about a product."""

    id: int
    telegram_id: int
    product_name: str
    target_price: float | None = None
    discount_percentage: int | None = None
    created_at: datetime | None = None


class MatchType(str, Enum):
    PRICE = "price"
    DISCOUNT = "discount"


@dataclass(frozen=True)
class MatchNotification:
    """One criterion satisfied by one offer."""

    telegram_id: int
    product_name: str
    price: float
    original_price: float
    discount_percentage: int
    cashback_percentage: int
    wishlist_id: int
    match_type: MatchType

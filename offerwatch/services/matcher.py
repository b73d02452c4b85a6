"""Offer vs wishlist matching.

For every criterion (independently, no early exit):
1. Product-name gate: case-insensitive containment either way, otherwise at
   least `word_overlap_threshold` of the criterion's words must be a
   substring of (or contain) some word of the offer name.
2. Thresholds: target price (0 < price <= target) then minimum discount
   (0 < discount >= minimum). Discount is evaluated last and wins when both
   hold.

At most one notification per criterion per offer. Pure apart from logging,
so it is safe to call concurrently for independent offers.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from offerwatch.services.records import MatchNotification, MatchType, Offer, WishlistCriterion
from offerwatch.settings import get_settings

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class MatchPolicy:
    """Tunable matching constants."""

    word_overlap_threshold: float = 0.5


DEFAULT_POLICY = MatchPolicy()


def policy_from_settings() -> MatchPolicy:
    return MatchPolicy(word_overlap_threshold=get_settings().match_word_overlap_threshold)


def product_matches(
    offer_name: str,
    criterion_name: str,
    threshold: float = DEFAULT_POLICY.word_overlap_threshold,
) -> bool:
    """Check whether an offer's product name satisfies a wishlist product name."""
    offer_lower = offer_name.lower()
    criterion_lower = criterion_name.lower()

    criterion_words = criterion_lower.split()
    # A blank criterion would otherwise pass the containment check trivially.
    if not criterion_words:
        return False

    if criterion_lower in offer_lower or offer_lower in criterion_lower:
        return True

    offer_words = offer_lower.split()
    match_count = 0
    for criterion_word in criterion_words:
        for offer_word in offer_words:
            if criterion_word in offer_word or offer_word in criterion_word:
                match_count += 1
                break

    return match_count / len(criterion_words) >= threshold


def evaluate_thresholds(offer: Offer, criterion: WishlistCriterion) -> MatchType | None:
    """Return the satisfied threshold kind, if any."""
    match_type: MatchType | None = None

    if criterion.target_price is not None and offer.price > 0:
        if offer.price <= criterion.target_price:
            match_type = MatchType.PRICE

    # Evaluated after price: discount wins when both hold.
    if criterion.discount_percentage is not None and offer.discount_percentage > 0:
        if offer.discount_percentage >= criterion.discount_percentage:
            match_type = MatchType.DISCOUNT

    return match_type


def match_offer(
    offer: Offer,
    criteria: Iterable[WishlistCriterion],
    *,
    policy: MatchPolicy = DEFAULT_POLICY,
) -> list[MatchNotification]:
    """Match one offer against wishlist criteria.

    Args:
        offer: Incoming offer.
        criteria: Wishlist criteria of any number of users.
        policy: Matching constants.

    Returns:
        One notification per matching criterion (unordered).
    """
    notifications: list[MatchNotification] = []

    for criterion in criteria:
        if not product_matches(offer.product_name, criterion.product_name, policy.word_overlap_threshold):
            continue

        match_type = evaluate_thresholds(offer, criterion)
        if match_type is None:
            continue

        notifications.append(
            MatchNotification(
                telegram_id=criterion.telegram_id,
                product_name=offer.product_name,
                price=offer.price,
                original_price=offer.original_price,
                discount_percentage=offer.discount_percentage,
                cashback_percentage=offer.cashback_percentage,
                wishlist_id=criterion.id,
                match_type=match_type,
            )
        )
        logger.info(
            f"Match found: product={offer.product_name!r} user={criterion.telegram_id} "
            f"wishlist={criterion.id} type={match_type.value}"
        )

    return notifications

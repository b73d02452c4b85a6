"""Offer handling: persist -> load wishlists -> match -> notify.

Each offer is handled on its own: a failure surfaces to the caller of that
offer only and never affects subsequent offers.
"""

import logging
from typing import Protocol

from offerwatch.services.matcher import DEFAULT_POLICY, MatchPolicy, match_offer, policy_from_settings
from offerwatch.services.notifier import Notifier, build_notifier
from offerwatch.services.offer_store import SqlOfferStore
from offerwatch.services.records import MatchNotification, Offer
from offerwatch.services.wishlist_cache import WishlistCacheReader, get_wishlist_reader

logger = logging.getLogger("uvicorn.error")


class OfferStore(Protocol):
    async def save(self, offer: Offer) -> int: ...


class OfferPipeline:
    def __init__(
        self,
        offer_store: OfferStore,
        wishlists: WishlistCacheReader,
        notifier: Notifier,
        policy: MatchPolicy = DEFAULT_POLICY,
    ):
        self.offer_store = offer_store
        self.wishlists = wishlists
        self.notifier = notifier
        self.policy = policy

    async def handle_offer(self, offer: Offer) -> list[MatchNotification]:
        """Process one offer and return the notifications sent for it.

        Raises:
            StoreError: If the offer cannot be saved or wishlists cannot be loaded.
            NotificationError: If delivering a notification fails.
        """
        logger.info(f"Processing offer: {offer.product_name} - R$ {offer.price:.2f}")

        await self.offer_store.save(offer)

        criteria = await self.wishlists.get_all()
        notifications = match_offer(offer, criteria, policy=self.policy)

        if notifications:
            await self.notifier.send(notifications)
            logger.info(f"Sent {len(notifications)} notifications for offer: {offer.product_name}")

        return notifications

    async def emit(self, offer: Offer) -> None:
        """Offer sink interface used by the import runner."""
        await self.handle_offer(offer)


_pipeline: OfferPipeline | None = None


def get_offer_pipeline() -> OfferPipeline:
    """Get offer pipeline singleton wired to the production stores."""
    global _pipeline
    if _pipeline is None:
        _pipeline = OfferPipeline(
            SqlOfferStore(),
            get_wishlist_reader(),
            build_notifier(),
            policy=policy_from_settings(),
        )
    return _pipeline

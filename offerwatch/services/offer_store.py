"""Append-only offer persistence."""

import logging

from offerwatch.errors import StoreError
from offerwatch.models import OfferRecord
from offerwatch.services.records import Offer
from offerwatch.stores.postgres import DB_ERRORS, get_session

logger = logging.getLogger("uvicorn.error")


class SqlOfferStore:
    """Writes offers to the `offers` table. Rows are never updated."""

    async def save(self, offer: Offer) -> int:
        """Insert one offer and return its row id.

        Raises:
            StoreError: If the insert fails.
        """
        row = OfferRecord(
            product_name=offer.product_name,
            price=offer.price,
            original_price=offer.original_price,
            details=offer.details,
            discount_percentage=offer.discount_percentage,
            cashback_percentage=offer.cashback_percentage,
            source=offer.source,
            received_at=offer.received_at,
        )
        try:
            async with get_session() as session:
                session.add(row)
                await session.flush()
                offer_id = row.id
        except DB_ERRORS as e:
            raise StoreError(f"Failed to save offer {offer.product_name!r}: {e}") from e
        return offer_id

"""Authoritative wishlist storage (PostgreSQL).

Reads feed the wishlist cache; writes are the contract used by whichever
user-facing surface creates or deletes criteria. Callers must invalidate the
wishlist cache after a write.
"""

import logging

from sqlalchemy import delete, select

from offerwatch.errors import StoreError
from offerwatch.models import Wishlist
from offerwatch.services.records import WishlistCriterion
from offerwatch.stores.postgres import DB_ERRORS, get_session

logger = logging.getLogger("uvicorn.error")


def _to_criterion(row: Wishlist) -> WishlistCriterion:
    return WishlistCriterion(
        id=row.id,
        telegram_id=row.telegram_id,
        product_name=row.product_name,
        target_price=row.target_price,
        discount_percentage=row.discount_percentage,
        created_at=row.created_at,
    )


class SqlWishlistStore:
    """Wishlist criteria backed by the `wishlists` table."""

    async def list_all(self) -> list[WishlistCriterion]:
        stmt = select(Wishlist).order_by(Wishlist.created_at.desc())
        try:
            async with get_session() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except DB_ERRORS as e:
            raise StoreError(f"Failed to query wishlists: {e}") from e
        return [_to_criterion(r) for r in rows]

    async def list_for_user(self, telegram_id: int) -> list[WishlistCriterion]:
        stmt = (
            select(Wishlist)
            .where(Wishlist.telegram_id == telegram_id)
            .order_by(Wishlist.created_at.desc())
        )
        try:
            async with get_session() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except DB_ERRORS as e:
            raise StoreError(f"Failed to query wishlists for user {telegram_id}: {e}") from e
        return [_to_criterion(r) for r in rows]

    async def add(
        self,
        telegram_id: int,
        product_name: str,
        target_price: float | None = None,
        discount_percentage: int | None = None,
    ) -> WishlistCriterion:
        row = Wishlist(
            telegram_id=telegram_id,
            product_name=product_name,
            target_price=target_price,
            discount_percentage=discount_percentage,
        )
        try:
            async with get_session() as session:
                session.add(row)
                await session.flush()
                await session.refresh(row)
        except DB_ERRORS as e:
            raise StoreError(f"Failed to add wishlist item: {e}") from e
        logger.info(f"Wishlist item {row.id} added for user {telegram_id}: {product_name!r}")
        return _to_criterion(row)

    async def delete(self, telegram_id: int, wishlist_id: int) -> bool:
        """Delete one of the user's criteria. Returns False if it did not exist."""
        stmt = delete(Wishlist).where(
            Wishlist.id == wishlist_id,
            Wishlist.telegram_id == telegram_id,
        )
        try:
            async with get_session() as session:
                result = await session.execute(stmt)
        except DB_ERRORS as e:
            raise StoreError(f"Failed to delete wishlist item {wishlist_id}: {e}") from e
        return result.rowcount > 0

"""Read-through cache for wishlist criteria.

Keys:
- wishlists:all            every criterion (matching path)
- wishlist:{telegram_id}   one user's criteria

Entries expire after the configured TTL (5 minutes by default) unless
invalidated earlier. Writers call invalidate()/invalidate_all() right after
adding or deleting criteria.

The cache is only a latency optimization: when the backend is unreachable
every operation falls through to the authoritative store. Store failures
(StoreError) do propagate.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Protocol

from offerwatch.errors import CacheUnavailable
from offerwatch.services.records import WishlistCriterion
from offerwatch.services.wishlist_store import SqlWishlistStore
from offerwatch.settings import get_settings
from offerwatch.stores.redis import KEY_WISHLISTS_ALL, TTL_WISHLISTS, RedisCache, wishlist_user_key

logger = logging.getLogger("uvicorn.error")


class Cache(Protocol):
    """Minimal key-value capability. Backends raise CacheUnavailable."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def delete(self, *keys: str) -> None: ...


class WishlistStore(Protocol):
    async def list_all(self) -> list[WishlistCriterion]: ...

    async def list_for_user(self, telegram_id: int) -> list[WishlistCriterion]: ...


def encode_criteria(criteria: list[WishlistCriterion]) -> str:
    payload: list[dict[str, Any]] = [
        {
            "id": c.id,
            "telegram_id": c.telegram_id,
            "product_name": c.product_name,
            "target_price": c.target_price,
            "discount_percentage": c.discount_percentage,
            "created_at": c.created_at.isoformat() if c.created_at else None,
        }
        for c in criteria
    ]
    return json.dumps(payload, ensure_ascii=False)


def decode_criteria(raw: str) -> list[WishlistCriterion]:
    """Decode a cached payload.

    Raises:
        ValueError: If the payload is not a list of criterion objects.
    """
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("cached wishlists payload is not a list")

    criteria: list[WishlistCriterion] = []
    for item in data:
        try:
            created_at = item.get("created_at")
            target_price = item.get("target_price")
            discount = item.get("discount_percentage")
            criteria.append(
                WishlistCriterion(
                    id=int(item["id"]),
                    telegram_id=int(item["telegram_id"]),
                    product_name=str(item["product_name"]),
                    target_price=float(target_price) if target_price is not None else None,
                    discount_percentage=int(discount) if discount is not None else None,
                    created_at=datetime.fromisoformat(created_at) if created_at else None,
                )
            )
        except (AttributeError, KeyError, TypeError) as e:
            raise ValueError(f"malformed cached wishlist entry: {e}") from e
    return criteria


class WishlistCacheReader:
    """Wishlist criteria with a read-through cache in front of the store."""

    def __init__(self, store: WishlistStore, cache: Cache, ttl: int = TTL_WISHLISTS):
        self._store = store
        self._cache = cache
        self._ttl = ttl

    async def get_all(self) -> list[WishlistCriterion]:
        cached = await self._read(KEY_WISHLISTS_ALL)
        if cached is not None:
            return cached

        criteria = await self._store.list_all()
        await self._write(KEY_WISHLISTS_ALL, criteria)
        return criteria

    async def get_for_user(self, telegram_id: int) -> list[WishlistCriterion]:
        key = wishlist_user_key(telegram_id)
        cached = await self._read(key)
        if cached is not None:
            return cached

        criteria = await self._store.list_for_user(telegram_id)
        await self._write(key, criteria)
        return criteria

    async def invalidate(self, telegram_id: int) -> None:
        """Drop the user's entry and the global list (which contains it)."""
        await self._delete(wishlist_user_key(telegram_id), KEY_WISHLISTS_ALL)

    async def invalidate_all(self) -> None:
        await self._delete(KEY_WISHLISTS_ALL)

    async def _read(self, key: str) -> list[WishlistCriterion] | None:
        try:
            raw = await self._cache.get(key)
        except CacheUnavailable as e:
            logger.warning(f"Wishlist cache read failed, using database: {e}")
            return None
        if raw is None:
            return None

        try:
            return decode_criteria(raw)
        except ValueError as e:
            logger.warning(f"Discarding undecodable wishlist cache entry {key}: {e}")
            return None

    async def _write(self, key: str, criteria: list[WishlistCriterion]) -> None:
        try:
            await self._cache.set(key, encode_criteria(criteria), self._ttl)
        except CacheUnavailable as e:
            logger.warning(f"Wishlist cache write failed: {e}")

    async def _delete(self, *keys: str) -> None:
        try:
            await self._cache.delete(*keys)
        except CacheUnavailable as e:
            logger.warning(f"Wishlist cache invalidation failed: {e}")


_reader: WishlistCacheReader | None = None


def get_wishlist_reader() -> WishlistCacheReader:
    """Get wishlist reader singleton (PostgreSQL store, Redis cache)."""
    global _reader
    if _reader is None:
        _reader = WishlistCacheReader(
            SqlWishlistStore(),
            RedisCache(),
            ttl=get_settings().wishlist_cache_ttl_seconds,
        )
    return _reader

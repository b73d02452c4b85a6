"""In-memory fakes for the cache, stores and sinks."""

from types import SimpleNamespace

import pytest

from offerwatch.errors import CacheUnavailable
from offerwatch.services.records import MatchNotification, Offer, WishlistCriterion


class FakeCache:
    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)


class DownCache:
    async def get(self, key: str) -> str | None:
        raise CacheUnavailable("connection refused")

    async def set(self, key: str, value: str, ttl: int) -> None:
        raise CacheUnavailable("connection refused")

    async def delete(self, *keys: str) -> None:
        raise CacheUnavailable("connection refused")


class FakeWishlistStore:
    def __init__(self, criteria: list[WishlistCriterion] | None = None):
        self.criteria = list(criteria or [])
        self.calls = 0

    async def list_all(self) -> list[WishlistCriterion]:
        self.calls += 1
        return list(self.criteria)

    async def list_for_user(self, telegram_id: int) -> list[WishlistCriterion]:
        self.calls += 1
        return [c for c in self.criteria if c.telegram_id == telegram_id]


class FakeOfferStore:
    def __init__(self):
        self.saved: list[Offer] = []

    async def save(self, offer: Offer) -> int:
        self.saved.append(offer)
        return len(self.saved)


class CollectingNotifier:
    def __init__(self):
        self.sent: list[MatchNotification] = []

    async def send(self, notifications: list[MatchNotification]) -> None:
        self.sent.extend(notifications)


def make_template(template_id: int, name: str, url: str, schema: str) -> SimpleNamespace:
    return SimpleNamespace(id=template_id, name=name, source_url=url, mapping_schema=schema)


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def criteria() -> list[WishlistCriterion]:
    return [
        WishlistCriterion(id=1, telegram_id=10, product_name="iPhone 15", target_price=5000.0),
        WishlistCriterion(id=2, telegram_id=20, product_name="Galaxy Watch", discount_percentage=25),
        WishlistCriterion(id=3, telegram_id=10, product_name="PlayStation 5", target_price=3000.0),
    ]

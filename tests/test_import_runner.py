import asyncio
import json

import httpx
import pytest

from conftest import make_template
from offerwatch.errors import FetchError, StoreError
from offerwatch.services import import_runner as runner_module
from offerwatch.services.feed_client import FeedClient
from offerwatch.services.import_runner import ImportRunner, run_imports_single_flight

SCHEMA = json.dumps({"ProductName": "title", "Price": "price"})


class FakeTemplates:
    def __init__(self, templates, fail_mark_run: bool = False):
        self.templates = templates
        self.marked: list[int] = []
        self.fail_mark_run = fail_mark_run

    async def list_active(self):
        return list(self.templates)

    async def mark_run(self, template_id: int) -> None:
        if self.fail_mark_run:
            raise StoreError("update failed")
        self.marked.append(template_id)


class FakeFetcher:
    def __init__(self, documents: dict):
        self.documents = documents
        self.fetched: list[str] = []

    async def fetch_json(self, url: str):
        self.fetched.append(url)
        doc = self.documents[url]
        if isinstance(doc, Exception):
            raise doc
        return doc


class CollectingSink:
    def __init__(self, fail_on: set[str] | None = None):
        self.offers = []
        self.fail_on = fail_on or set()

    async def emit(self, offer) -> None:
        if offer.product_name in self.fail_on:
            raise StoreError("insert failed")
        self.offers.append(offer)


@pytest.mark.asyncio
async def test_array_document_skips_bad_element():
    templates = FakeTemplates([make_template(1, "feed", "http://feed/a", SCHEMA)])
    fetcher = FakeFetcher(
        {"http://feed/a": [{"title": "A", "price": 10}, {"price": 20}, {"title": "C", "price": "30"}]}
    )
    sink = CollectingSink()

    summary = await ImportRunner(templates, fetcher, sink).run_once()

    assert [o.product_name for o in sink.offers] == ["A", "C"]
    assert (summary.attempted, summary.succeeded, summary.emitted) == (1, 1, 2)
    assert templates.marked == [1]


@pytest.mark.asyncio
async def test_failed_templates_do_not_block_others():
    templates = FakeTemplates(
        [
            make_template(1, "down", "http://feed/down", SCHEMA),
            make_template(2, "bad-schema", "http://feed/ok", "{not json"),
            make_template(3, "scalar", "http://feed/scalar", SCHEMA),
            make_template(4, "good", "http://feed/ok", SCHEMA),
        ]
    )
    fetcher = FakeFetcher(
        {
            "http://feed/down": FetchError("status 503"),
            "http://feed/ok": {"title": "Solo", "price": 99},
            "http://feed/scalar": 42,
        }
    )
    sink = CollectingSink()

    summary = await ImportRunner(templates, fetcher, sink).run_once()

    assert (summary.attempted, summary.succeeded, summary.emitted) == (4, 1, 1)
    assert templates.marked == [4]
    assert sink.offers[0].product_name == "Solo"


@pytest.mark.asyncio
async def test_array_with_no_mappable_elements_still_succeeds():
    templates = FakeTemplates([make_template(1, "empty", "http://feed/e", SCHEMA)])
    fetcher = FakeFetcher({"http://feed/e": [{"price": 1}, {"price": 2}]})

    summary = await ImportRunner(templates, fetcher, CollectingSink()).run_once()

    assert (summary.attempted, summary.succeeded, summary.emitted) == (1, 1, 0)
    assert templates.marked == [1]


@pytest.mark.asyncio
async def test_unmappable_single_object_fails_template():
    templates = FakeTemplates(
        [
            make_template(1, "no-title", "http://feed/e", SCHEMA),
            make_template(2, "good", "http://feed/ok", SCHEMA),
        ]
    )
    fetcher = FakeFetcher({"http://feed/e": {"price": 1}, "http://feed/ok": {"title": "A"}})

    summary = await ImportRunner(templates, fetcher, CollectingSink()).run_once()

    assert (summary.attempted, summary.succeeded, summary.emitted) == (2, 1, 1)
    assert templates.marked == [2]


@pytest.mark.asyncio
async def test_sink_failure_on_single_object_fails_template():
    templates = FakeTemplates([make_template(1, "feed", "http://feed/a", SCHEMA)])
    fetcher = FakeFetcher({"http://feed/a": {"title": "B"}})

    summary = await ImportRunner(templates, fetcher, CollectingSink(fail_on={"B"})).run_once()

    assert (summary.attempted, summary.succeeded, summary.emitted) == (1, 0, 0)
    assert templates.marked == []


@pytest.mark.asyncio
async def test_malformed_source_url_does_not_block_later_templates():
    templates = FakeTemplates(
        [
            make_template(1, "bad-port", "http://example.com:abc/feed.json", SCHEMA),
            make_template(2, "good", "http://example.com/feed.json", SCHEMA),
        ]
    )
    feed = FeedClient(timeout=5)
    feed._http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[{"title": "A"}]))
    )
    sink = CollectingSink()

    summary = await ImportRunner(templates, feed, sink).run_once()

    assert (summary.attempted, summary.succeeded, summary.emitted) == (2, 1, 1)
    assert templates.marked == [2]
    await feed.close()


@pytest.mark.asyncio
async def test_sink_failure_skips_only_that_offer():
    templates = FakeTemplates([make_template(1, "feed", "http://feed/a", SCHEMA)])
    fetcher = FakeFetcher({"http://feed/a": [{"title": "A"}, {"title": "B"}, {"title": "C"}]})
    sink = CollectingSink(fail_on={"B"})

    summary = await ImportRunner(templates, fetcher, sink).run_once()

    assert [o.product_name for o in sink.offers] == ["A", "C"]
    assert summary.emitted == 2
    assert summary.succeeded == 1


@pytest.mark.asyncio
async def test_mark_run_failure_is_logged_not_fatal():
    templates = FakeTemplates([make_template(1, "feed", "http://feed/a", SCHEMA)], fail_mark_run=True)
    fetcher = FakeFetcher({"http://feed/a": {"title": "A"}})

    summary = await ImportRunner(templates, fetcher, CollectingSink()).run_once()

    assert summary.succeeded == 1


@pytest.mark.asyncio
async def test_default_source_is_applied():
    templates = FakeTemplates([make_template(1, "feed", "http://feed/a", SCHEMA)])
    fetcher = FakeFetcher({"http://feed/a": {"title": "A"}})
    sink = CollectingSink()

    await ImportRunner(templates, fetcher, sink, default_source="partner-x").run_once()

    assert sink.offers[0].source == "partner-x"


@pytest.mark.asyncio
async def test_rerun_emits_duplicates():
    templates = FakeTemplates([make_template(1, "feed", "http://feed/a", SCHEMA)])
    fetcher = FakeFetcher({"http://feed/a": {"title": "A"}})
    sink = CollectingSink()
    runner = ImportRunner(templates, fetcher, sink)

    await runner.run_once()
    await runner.run_once()

    assert [o.product_name for o in sink.offers] == ["A", "A"]


@pytest.mark.asyncio
async def test_stop_event_ends_run_between_templates():
    templates = FakeTemplates(
        [
            make_template(1, "first", "http://feed/a", SCHEMA),
            make_template(2, "second", "http://feed/b", SCHEMA),
        ]
    )
    stop = asyncio.Event()

    class StoppingSink(CollectingSink):
        async def emit(self, offer) -> None:
            await super().emit(offer)
            stop.set()

    fetcher = FakeFetcher({"http://feed/a": {"title": "A"}, "http://feed/b": {"title": "B"}})
    summary = await ImportRunner(templates, fetcher, StoppingSink()).run_once(stop)

    assert summary.attempted == 1
    assert fetcher.fetched == ["http://feed/a"]


@pytest.mark.asyncio
async def test_template_store_failure_returns_empty_summary():
    class BrokenTemplates(FakeTemplates):
        async def list_active(self):
            raise StoreError("db down")

    summary = await ImportRunner(BrokenTemplates([]), FakeFetcher({}), CollectingSink()).run_once()

    assert (summary.attempted, summary.succeeded, summary.emitted) == (0, 0, 0)


@pytest.mark.asyncio
async def test_single_flight_skips_when_locked(monkeypatch: pytest.MonkeyPatch):
    async def fake_acquire_lock(key: str, ttl: int = 0) -> bool:
        return False

    monkeypatch.setattr(runner_module, "acquire_lock", fake_acquire_lock)
    runner = ImportRunner(FakeTemplates([]), FakeFetcher({}), CollectingSink())

    assert await run_imports_single_flight(runner) is None


@pytest.mark.asyncio
async def test_single_flight_releases_lock(monkeypatch: pytest.MonkeyPatch):
    released: list[str] = []

    async def fake_acquire_lock(key: str, ttl: int = 0) -> bool:
        return True

    async def fake_release_lock(key: str) -> None:
        released.append(key)

    monkeypatch.setattr(runner_module, "acquire_lock", fake_acquire_lock)
    monkeypatch.setattr(runner_module, "release_lock", fake_release_lock)
    templates = FakeTemplates([make_template(1, "feed", "http://feed/a", SCHEMA)])
    runner = ImportRunner(templates, FakeFetcher({"http://feed/a": {"title": "A"}}), CollectingSink())

    summary = await run_imports_single_flight(runner)

    assert summary.emitted == 1
    assert released == ["import-run"]


@pytest.mark.asyncio
async def test_single_flight_runs_without_redis():
    # Redis is never initialized in tests: the lock is unavailable.
    templates = FakeTemplates([make_template(1, "feed", "http://feed/a", SCHEMA)])
    runner = ImportRunner(templates, FakeFetcher({"http://feed/a": {"title": "A"}}), CollectingSink())

    summary = await run_imports_single_flight(runner)

    assert summary is not None
    assert summary.emitted == 1

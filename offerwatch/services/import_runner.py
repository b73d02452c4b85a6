"""Import runner: active templates -> remote JSON -> field mapper -> offer sink.

Flow (per run, templates processed sequentially):
1. Load active import templates
2. Fetch each template's remote document
3. Parse the template's mapping schema
4. Map every element (object or array) into an Offer
5. Emit each offer to the sink (in-process offer pipeline by default)
6. Stamp last_run_at once the template attempt completed

One bad template, element or offer never aborts the run. Re-running against
an unchanged feed emits the same offers again: there is no deduplication.

Runs must not overlap; run_imports_single_flight() guards scheduled and
on-demand runs with a Redis lock. run_once() checks `stop` between templates,
an in-flight fetch finishes (or times out) on its own.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from redis.exceptions import RedisError

from offerwatch.errors import OfferwatchError, StoreError
from offerwatch.models import ImportTemplate
from offerwatch.services.feed_client import get_feed_client
from offerwatch.services.field_mapper import DEFAULT_SOURCE, map_document, parse_mapping_schema
from offerwatch.services.offer_pipeline import get_offer_pipeline
from offerwatch.services.records import Offer
from offerwatch.services.template_store import SqlTemplateStore
from offerwatch.settings import get_settings
from offerwatch.stores.redis import acquire_lock, release_lock

logger = logging.getLogger("uvicorn.error")

IMPORT_LOCK_KEY = "import-run"


@dataclass
class RunSummary:
    """Outcome of one import run."""

    attempted: int = 0
    succeeded: int = 0
    emitted: int = 0


class TemplateStore(Protocol):
    async def list_active(self) -> list[ImportTemplate]: ...

    async def mark_run(self, template_id: int) -> None: ...


class DocumentFetcher(Protocol):
    async def fetch_json(self, url: str) -> Any: ...


class OfferSink(Protocol):
    async def emit(self, offer: Offer) -> None: ...


class ImportRunner:
    def __init__(
        self,
        templates: TemplateStore,
        fetcher: DocumentFetcher,
        sink: OfferSink,
        *,
        default_source: str = DEFAULT_SOURCE,
    ):
        self.templates = templates
        self.fetcher = fetcher
        self.sink = sink
        self.default_source = default_source

    async def run_once(self, stop: asyncio.Event | None = None) -> RunSummary:
        """Process every active template once.

        Args:
            stop: Optional event; when set, the run ends before the next template.

        Returns:
            Templates attempted/succeeded and total offers emitted.
        """
        summary = RunSummary()
        logger.info("Running imports...")

        try:
            templates = await self.templates.list_active()
        except StoreError as e:
            logger.error(f"Error fetching active templates: {e}")
            return summary

        if not templates:
            logger.info("No active import templates found")
            return summary

        logger.info(f"Found {len(templates)} active templates to process")

        for template in templates:
            if stop is not None and stop.is_set():
                logger.info("Import run stopped before completing all templates")
                break

            summary.attempted += 1
            try:
                emitted = await self.run_template(template)
            except OfferwatchError as e:
                logger.error(f"Error processing template {template.name}: {e}")
                continue

            summary.emitted += emitted
            summary.succeeded += 1
            try:
                await self.templates.mark_run(template.id)
            except StoreError as e:
                logger.error(f"Error updating last_run_at for template {template.name}: {e}")

        logger.info(
            f"Completed import run: {summary.succeeded}/{summary.attempted} templates, "
            f"{summary.emitted} offers emitted"
        )
        return summary

    async def run_template(self, template: ImportTemplate) -> int:
        """Fetch, map and emit one template's document. Returns offers emitted.

        In an array document a failing element or offer is skipped. A single
        object document is all-or-nothing: its failure fails the template.

        Raises:
            FetchError: If the document cannot be fetched.
            SchemaError: If the template's mapping schema is invalid.
            InvalidDocument: If the document is not an object or array.
            MappingError: If a single object document cannot be mapped.
            OfferwatchError: If the sink rejects a single object document's offer.
        """
        logger.info(f"Processing template: {template.name} (URL: {template.source_url})")

        document = await self.fetcher.fetch_json(template.source_url)
        schema = parse_mapping_schema(template.mapping_schema)
        is_batch = isinstance(document, list)

        emitted = 0
        for outcome in map_document(document, schema, default_source=self.default_source):
            if outcome.offer is None:
                if not is_batch:
                    raise outcome.error
                logger.warning(
                    f"Skipping element {outcome.index} of template {template.name}: {outcome.error}"
                )
                continue
            try:
                await self.sink.emit(outcome.offer)
            except OfferwatchError as e:
                if not is_batch:
                    raise
                logger.error(f"Error emitting offer {outcome.offer.product_name!r}: {e}")
                continue
            emitted += 1

        logger.info(f"Produced {emitted} offers from template {template.name}")
        return emitted


def build_import_runner() -> ImportRunner:
    """Runner wired to PostgreSQL templates, the HTTP feed client and the offer pipeline."""
    return ImportRunner(
        SqlTemplateStore(),
        get_feed_client(),
        get_offer_pipeline(),
        default_source=get_settings().import_default_source,
    )


async def run_imports_single_flight(
    runner: ImportRunner,
    stop: asyncio.Event | None = None,
) -> RunSummary | None:
    """Run once unless another run holds the import lock.

    Returns:
        The run summary, or None when another run is in progress.
    """
    ttl = get_settings().import_lock_ttl_seconds
    try:
        acquired = await acquire_lock(IMPORT_LOCK_KEY, ttl=ttl)
    except (RedisError, OSError, RuntimeError) as e:
        # Without Redis there is no cross-process guard; run anyway.
        logger.warning(f"Import lock unavailable, running unguarded: {e}")
        return await runner.run_once(stop)

    if not acquired:
        logger.info("Import run already in progress, skipping")
        return None

    try:
        return await runner.run_once(stop)
    finally:
        try:
            await release_lock(IMPORT_LOCK_KEY)
        except (RedisError, OSError, RuntimeError) as e:
            logger.warning(f"Failed to release import lock: {e}")

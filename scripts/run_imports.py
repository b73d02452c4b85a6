#!/usr/bin/env python3
"""Feed import job (cron or long-running worker).

Behavior:
- Runs every active import template once: fetch the remote JSON, map it with the
  template's schema, push each offer through the offer pipeline (save, match,
  notify).
- With IMPORT_INTERVAL_MINUTES > 0 keeps running, one import run per interval.
  SIGINT/SIGTERM stop the loop after the template currently being processed.
- Runs are single-flight across processes via a Redis lock.

Run:
  python -m scripts.run_imports

Optional env vars:
  IMPORT_INTERVAL_MINUTES=15
  IMPORT_FETCH_TIMEOUT_SECONDS=30
"""

import asyncio
import logging
import os
import signal
import sys
from dataclasses import asdict


# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from offerwatch.services.feed_client import get_feed_client  # noqa: E402
from offerwatch.services.import_runner import build_import_runner, run_imports_single_flight  # noqa: E402
from offerwatch.settings import get_settings  # noqa: E402
from offerwatch.stores.postgres import close_db, init_db, ping_db  # noqa: E402
from offerwatch.stores.redis import close_redis, init_redis  # noqa: E402

logger = logging.getLogger("uvicorn.error")


def _install_stop_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = get_settings()

    await init_db()
    await ping_db()
    try:
        await init_redis()
    except Exception:
        # Still runnable without Redis: no wishlist cache, no cross-process lock.
        logger.exception("Redis init failed")

    stop = asyncio.Event()
    _install_stop_handlers(stop)
    runner = build_import_runner()

    try:
        while True:
            summary = await run_imports_single_flight(runner, stop)
            print({"ok": True, "summary": asdict(summary) if summary else None})

            if settings.import_interval_minutes <= 0 or stop.is_set():
                break
            try:
                await asyncio.wait_for(stop.wait(), timeout=settings.import_interval_minutes * 60)
            except asyncio.TimeoutError:
                continue
            break
    finally:
        await get_feed_client().close()
        await close_redis()
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())

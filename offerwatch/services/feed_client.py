"""HTTP client for remote feed documents (S3 objects or any JSON URL)."""

import logging
from typing import Any

import httpx

from offerwatch.errors import FetchError
from offerwatch.settings import get_settings

logger = logging.getLogger("uvicorn.error")


class FeedClient:
    """Fetches and parses JSON feed documents."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout or get_settings().import_fetch_timeout_seconds
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def fetch_json(self, url: str) -> Any:
        """Download a document and parse it as JSON.

        Raises:
            FetchError: On a malformed URL, transport failure, non-2xx status
                or a non-JSON body.
        """
        client = await self._get_client()
        try:
            resp = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"Failed to fetch {url}: {e}") from e

        if not resp.is_success:
            logger.error(f"Feed {url} returned status {resp.status_code}: {resp.text[:200]}")
            raise FetchError(f"Feed {url} returned status {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise FetchError(f"Feed {url} did not return valid JSON: {e}") from e


_client: FeedClient | None = None


def get_feed_client() -> FeedClient:
    """Get feed client singleton."""
    global _client
    if _client is None:
        _client = FeedClient()
    return _client

"""Delivery of match notifications.

The notification channel is external: WebhookNotifier POSTs each match (wire
shape plus the rendered text) to a configured endpoint, e.g. the bot service
that forwards it to Telegram. Without an endpoint, LogNotifier only logs.
"""

import logging
from typing import Protocol

import httpx

from offerwatch.errors import NotificationError
from offerwatch.schemas.offers import MatchNotificationPayload
from offerwatch.services.notification_format import format_notification
from offerwatch.services.records import MatchNotification
from offerwatch.settings import get_settings

logger = logging.getLogger("uvicorn.error")


class Notifier(Protocol):
    async def send(self, notifications: list[MatchNotification]) -> None: ...


class LogNotifier:
    async def send(self, notifications: list[MatchNotification]) -> None:
        for n in notifications:
            logger.info(f"Notification for user {n.telegram_id}:\n{format_notification(n)}")


class WebhookNotifier:
    """POST notifications to a webhook endpoint."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def send(self, notifications: list[MatchNotification]) -> None:
        """Deliver every notification; the first failure aborts the batch.

        Raises:
            NotificationError: On transport failure or non-2xx response.
        """
        client = await self._get_client()
        for n in notifications:
            body = MatchNotificationPayload.from_notification(n).model_dump()
            body["text"] = format_notification(n)
            try:
                resp = await client.post(self.url, json=body)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                raise NotificationError(
                    f"Failed to deliver notification for wishlist {n.wishlist_id}: {e}"
                ) from e


def build_notifier() -> Notifier:
    settings = get_settings()
    if settings.notification_webhook_url:
        return WebhookNotifier(
            settings.notification_webhook_url,
            timeout=settings.notification_timeout_seconds,
        )
    logger.warning("NOTIFICATION_WEBHOOK_URL is not set - notifications are only logged")
    return LogNotifier()

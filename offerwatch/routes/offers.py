"""Offer ingestion endpoint.

POST /v1/offers accepts one offer in the feed wire shape, persists it,
matches it against all wishlists and sends the resulting notifications.
A failure only affects the offer being posted.
"""

import logging

from fastapi import APIRouter, HTTPException

from offerwatch.errors import NotificationError, StoreError
from offerwatch.schemas.offers import MatchNotificationPayload, OfferIngestResponse, OfferPayload
from offerwatch.services.offer_pipeline import get_offer_pipeline

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.post("", response_model=OfferIngestResponse)
async def ingest_offer(payload: OfferPayload) -> OfferIngestResponse:
    try:
        notifications = await get_offer_pipeline().handle_offer(payload.to_offer())
    except StoreError as e:
        logger.error(f"Offer {payload.product_name!r} failed: {e}")
        raise HTTPException(status_code=503, detail=f"Storage unavailable: {e}")
    except NotificationError as e:
        logger.error(f"Offer {payload.product_name!r} notification failed: {e}")
        raise HTTPException(status_code=502, detail=f"Notification delivery failed: {e}")

    return OfferIngestResponse(
        notifications=[MatchNotificationPayload.from_notification(n) for n in notifications]
    )

"""Pydantic schemas for API request/response validation."""

from offerwatch.schemas.common import ErrorDetail, ErrorResponse
from offerwatch.schemas.offers import MatchNotificationPayload, OfferIngestResponse, OfferPayload

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "MatchNotificationPayload",
    "OfferIngestResponse",
    "OfferPayload",
]

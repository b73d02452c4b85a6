"""Wire shapes for offers and match notifications."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from offerwatch.services.records import MatchNotification, Offer


class OfferPayload(BaseModel):
    """Offer as exchanged with feeds and the ingestion endpoint.

    discount_percentage is internal and never serialized.
    """

    product_name: str = Field(alias="titulo", min_length=1)
    price: float = Field(default=0, ge=0)
    original_price: float = Field(alias="oldPrice", default=0, ge=0)
    details: str = ""
    cashback_percentage: int = Field(alias="percentCashback", default=0, ge=0, le=100)
    source: str = ""
    received_at: datetime | None = None

    model_config = {"populate_by_name": True}

    def to_offer(self) -> Offer:
        return Offer(
            product_name=self.product_name,
            price=self.price,
            original_price=self.original_price,
            details=self.details,
            cashback_percentage=self.cashback_percentage,
            source=self.source,
            received_at=self.received_at or datetime.now(timezone.utc),
        )

    @classmethod
    def from_offer(cls, offer: Offer) -> "OfferPayload":
        return cls(
            product_name=offer.product_name,
            price=offer.price,
            original_price=offer.original_price,
            details=offer.details,
            cashback_percentage=offer.cashback_percentage,
            source=offer.source,
            received_at=offer.received_at,
        )


class MatchNotificationPayload(BaseModel):
    """Match notification as emitted to the notification channel."""

    telegram_id: int
    product_name: str
    price: float
    original_price: float
    discount_percentage: int
    cashback_percentage: int
    wishlist_id: int
    match_type: str

    @classmethod
    def from_notification(cls, notification: MatchNotification) -> "MatchNotificationPayload":
        return cls(
            telegram_id=notification.telegram_id,
            product_name=notification.product_name,
            price=notification.price,
            original_price=notification.original_price,
            discount_percentage=notification.discount_percentage,
            cashback_percentage=notification.cashback_percentage,
            wishlist_id=notification.wishlist_id,
            match_type=notification.match_type.value,
        )


class OfferIngestResponse(BaseModel):
    """Response from the offer ingestion endpoint."""

    notifications: list[MatchNotificationPayload]

"""Offer model.

Append-only record of one observed product listing, as received from a feed
import or the offer ingestion endpoint. Rows are never updated by the core.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from offerwatch.stores.postgres import Base


class OfferRecord(Base):
    """Persisted offer row."""

    __tablename__ = "offers"

    id: Mapped[int] = mapped_column(primary_key=True)

    product_name: Mapped[str] = mapped_column(Text)

    # Pricing (0 = unknown)
    price: Mapped[float] = mapped_column(default=0)
    original_price: Mapped[float] = mapped_column(default=0)
    discount_percentage: Mapped[int] = mapped_column(default=0)
    cashback_percentage: Mapped[int] = mapped_column(default=0)

    details: Mapped[str] = mapped_column(Text, default="")

    # Source tracking
    source: Mapped[str] = mapped_column(String(100), default="", index=True)

    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<OfferRecord {self.id} {self.product_name!r} {self.price:.2f}>"

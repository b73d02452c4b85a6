"""Wishlist model.

One user's standing rule for being notified about a product: a target price,
a minimum discount percentage, both, or (degenerate) neither.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from offerwatch.stores.postgres import Base


class Wishlist(Base):
    """Wishlist criterion owned by a Telegram user."""

    __tablename__ = "wishlists"

    id: Mapped[int] = mapped_column(primary_key=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, index=True)
    product_name: Mapped[str] = mapped_column(Text)

    target_price: Mapped[float | None] = mapped_column()
    discount_percentage: Mapped[int | None] = mapped_column()

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Wishlist {self.id} user={self.telegram_id} {self.product_name!r}>"

"""SQLAlchemy ORM models.

Models represent database tables:
- offers: Append-only offers received from feeds and ingestion
- wishlists: Per-user wishlist criteria
- import_templates: Feed URLs with their JSON-path mapping schema
"""

from offerwatch.models.import_template import ImportTemplate
from offerwatch.models.offer import OfferRecord
from offerwatch.models.wishlist import Wishlist

__all__ = ["ImportTemplate", "OfferRecord", "Wishlist"]

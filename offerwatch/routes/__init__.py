"""API routes."""

from fastapi import APIRouter

from offerwatch.routes import admin, offers, wishlists

api_router = APIRouter()

# Offer ingestion (match + notify)
api_router.include_router(offers.router, prefix="/v1/offers", tags=["offers"])

# Wishlist criteria read/write contract
api_router.include_router(wishlists.router, prefix="/v1/wishlists", tags=["wishlists"])

# Admin endpoints (import templates, import runs)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"])

"""Wishlist criteria endpoints.

Reads go through the wishlist cache; every write invalidates the affected
cache entries before returning.
"""

from fastapi import APIRouter, HTTPException

from offerwatch.errors import StoreError
from offerwatch.schemas.admin import WishlistIn, WishlistOut
from offerwatch.services.wishlist_cache import get_wishlist_reader
from offerwatch.services.wishlist_store import SqlWishlistStore

router = APIRouter()


@router.get("/{telegram_id}", response_model=list[WishlistOut])
async def list_wishlist(telegram_id: int) -> list[WishlistOut]:
    try:
        criteria = await get_wishlist_reader().get_for_user(telegram_id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return [WishlistOut.from_criterion(c) for c in criteria]


@router.post("", response_model=WishlistOut, status_code=201)
async def add_wishlist(request: WishlistIn) -> WishlistOut:
    try:
        criterion = await SqlWishlistStore().add(
            telegram_id=request.telegram_id,
            product_name=request.product_name,
            target_price=request.target_price,
            discount_percentage=request.discount_percentage,
        )
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    await get_wishlist_reader().invalidate(request.telegram_id)
    return WishlistOut.from_criterion(criterion)


@router.delete("/{telegram_id}/{wishlist_id}", status_code=204)
async def delete_wishlist(telegram_id: int, wishlist_id: int) -> None:
    try:
        deleted = await SqlWishlistStore().delete(telegram_id, wishlist_id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if not deleted:
        raise HTTPException(status_code=404, detail="Wishlist item not found")
    await get_wishlist_reader().invalidate(telegram_id)

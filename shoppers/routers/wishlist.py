from typing import Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session

from shoppers.core.responses import ApiModel, envelope
from shoppers.db.session import get_session
from shoppers.models.user import User
from shoppers.routers.auth import get_current_user
from shoppers.services.wishlist import WishlistService

router = APIRouter()

class WishlistAdd(ApiModel):
    product_id: int
    variant_id: Optional[int] = None

def get_wishlist_service(session: Session = Depends(get_session)) -> WishlistService:
    return WishlistService(session)

@router.get("/")
def read_wishlist(current_user: User = Depends(get_current_user),
                  service: WishlistService = Depends(get_wishlist_service)):
    items = service.list_items(current_user.id)
    return envelope("Wishlist retrieved successfully", {"items": items, "count": len(items)})

@router.post("/", status_code=201)
def add_to_wishlist(
    data: WishlistAdd,
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service)
):
    item = service.add_item(current_user.id, data.product_id, data.variant_id)
    return envelope("Added to wishlist", {"id": item.id, "productId": item.product_id, "variantId": item.variant_id})

@router.delete("/{product_id}")
def remove_from_wishlist(
    product_id: int,
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service)
):
    service.remove_item(current_user.id, product_id)
    return envelope("Removed from wishlist")

@router.delete("/")
def clear_wishlist(current_user: User = Depends(get_current_user),
                   service: WishlistService = Depends(get_wishlist_service)):
    service.clear(current_user.id)
    return envelope("Wishlist cleared")

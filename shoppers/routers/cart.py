from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import Field
from sqlmodel import Session

from shoppers.core.responses import ApiModel, envelope
from shoppers.db.session import get_session
from shoppers.models.cart import Cart
from shoppers.models.user import User
from shoppers.routers.auth import get_current_user
from shoppers.services.cart import CartService

router = APIRouter()

class CartItemCreate(ApiModel):
    product_id: int
    variant_id: int
    quantity: int = Field(default=1, ge=1)
    size: Optional[str] = None

class CartItemUpdate(ApiModel):
    quantity: Optional[int] = None
    is_selected: Optional[bool] = None

def get_cart_service(session: Session = Depends(get_session)) -> CartService:
    return CartService(session)

def _cart_data(service: CartService, cart: Cart) -> dict:
    return cart.as_api(service.products_for(cart))

@router.get("/")
def read_cart(current_user: User = Depends(get_current_user), service: CartService = Depends(get_cart_service)):
    cart = service.get_cart(current_user.id)
    return envelope("Cart retrieved successfully", _cart_data(service, cart))

@router.post("/items", status_code=201)
def add_to_cart(
    item: CartItemCreate,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    cart = service.add_item(current_user.id, item.product_id, item.variant_id, item.quantity, item.size)
    return envelope("Item added to cart", _cart_data(service, cart))

@router.put("/items/{item_id}")
def update_cart_item(
    item_id: int,
    item: CartItemUpdate,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    cart = service.update_item(current_user.id, item_id, item.quantity, item.is_selected)
    return envelope("Cart updated", _cart_data(service, cart))

@router.delete("/items/{item_id}")
def remove_from_cart(
    item_id: int,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    cart = service.remove_item(current_user.id, item_id)
    return envelope("Item removed from cart", _cart_data(service, cart))

@router.post("/items/{item_id}/move-to-wishlist")
def move_to_wishlist(
    item_id: int,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    cart = service.move_to_wishlist(current_user.id, item_id)
    return envelope("Item moved to wishlist", _cart_data(service, cart))

@router.delete("/")
def clear_cart(current_user: User = Depends(get_current_user), service: CartService = Depends(get_cart_service)):
    cart = service.clear_cart(current_user.id)
    return envelope("Cart cleared", _cart_data(service, cart))

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional
from fastapi import HTTPException
from sqlmodel import Session, select

from shoppers.core.config import settings
from shoppers.domain import coupons as coupon_rules
from shoppers.models.cart import Cart, CartItem, WishlistItem
from shoppers.models.coupon import Coupon
from shoppers.models.product import Product, ProductVariant

logger = logging.getLogger(__name__)


@dataclass
class CartContext:
    """What coupon rules need to know about a cart."""
    total: float
    category_ids: List[int] = field(default_factory=list)
    product_ids: List[int] = field(default_factory=list)


class CartService:
    def __init__(self, session: Session):
        self.session = session

    def get_cart(self, user_id: int) -> Cart:
        cart = self.session.exec(select(Cart).where(Cart.user_id == user_id)).first()
        if cart is None:
            cart = Cart(user_id=user_id)
            self.session.add(cart)
            self.session.commit()
            self.session.refresh(cart)
        return cart

    def products_for(self, cart: Cart) -> Dict[int, Product]:
        ids = {i.product_id for i in cart.items}
        if not ids:
            return {}
        return {p.id: p for p in self.session.exec(select(Product).where(Product.id.in_(ids))).all()}

    def context(self, cart: Cart) -> CartContext:
        products = self.products_for(cart)
        category_ids, product_ids = set(), set()
        for item in cart.selected_items:
            product_ids.add(item.product_id)
            product = products.get(item.product_id)
            if product is None:
                continue
            for cid in (product.category_id, product.sub_category_id, product.sub_sub_category_id):
                if cid is not None:
                    category_ids.add(cid)
        return CartContext(cart.totals()["totalAmount"], sorted(category_ids), sorted(product_ids))

    def add_item(self, user_id: int, product_id: int, variant_id: int, quantity: int = 1,
                 size: Optional[str] = None) -> Cart:
        product = self.session.get(Product, product_id)
        if not product or not product.is_active:
            raise HTTPException(status_code=404, detail="Product not found or unavailable")
        variant = self.session.get(ProductVariant, variant_id)
        if not variant or variant.product_id != product.id:
            raise HTTPException(status_code=404, detail="Product variant not found")

        size = size or variant.size
        cart = self.get_cart(user_id)
        existing = next((i for i in cart.items if i.variant_id == variant_id and i.size == size), None)
        new_quantity = quantity + (existing.quantity if existing else 0)
        self._check_quantity(new_quantity, variant)

        if existing:
            existing.quantity = new_quantity
            existing.price = variant.price
            existing.original_price = variant.original_price
            existing.updated_at = datetime.now(timezone.utc)
        else:
            cart.items.append(CartItem(
                product_id=product.id,
                variant_id=variant.id,
                quantity=quantity,
                size=size,
                price=variant.price,
                original_price=variant.original_price,
            ))
        return self._save(cart)

    def update_item(self, user_id: int, item_id: int, quantity: Optional[int] = None,
                    is_selected: Optional[bool] = None) -> Cart:
        cart = self.get_cart(user_id)
        item = self._find_item(cart, item_id)

        if quantity is not None:
            if quantity <= 0:
                cart.items.remove(item)
                return self._save(cart)
            self._check_quantity(quantity, self.session.get(ProductVariant, item.variant_id))
            item.quantity = quantity
        if is_selected is not None:
            item.is_selected = is_selected
        item.updated_at = datetime.now(timezone.utc)
        return self._save(cart)

    def remove_item(self, user_id: int, item_id: int) -> Cart:
        cart = self.get_cart(user_id)
        cart.items.remove(self._find_item(cart, item_id))
        return self._save(cart)

    def clear_cart(self, user_id: int) -> Cart:
        cart = self.get_cart(user_id)
        cart.items.clear()
        cart.applied_coupon = None
        cart.coupon_discount = 0.0
        return self._save(cart)

    def move_to_wishlist(self, user_id: int, item_id: int) -> Cart:
        cart = self.get_cart(user_id)
        item = self._find_item(cart, item_id)
        exists = self.session.exec(
            select(WishlistItem).where(WishlistItem.user_id == user_id, WishlistItem.product_id == item.product_id)
        ).first()
        if not exists:
            self.session.add(WishlistItem(user_id=user_id, product_id=item.product_id, variant_id=item.variant_id))
        cart.items.remove(item)
        return self._save(cart)

    def remove_ordered_items(self, cart: Cart):
        """Drop the selected items after checkout. Caller commits."""
        for item in list(cart.selected_items):
            cart.items.remove(item)
        cart.applied_coupon = None
        cart.coupon_discount = 0.0
        cart.updated_at = datetime.now(timezone.utc)
        self.session.add(cart)

    def _find_item(self, cart: Cart, item_id: int) -> CartItem:
        item = next((i for i in cart.items if i.id == item_id), None)
        if item is None:
            raise HTTPException(status_code=404, detail="Cart item not found")
        return item

    def _check_quantity(self, quantity: int, variant: Optional[ProductVariant]):
        if quantity > settings.MAX_CART_ITEM_QUANTITY:
            raise HTTPException(
                status_code=400,
                detail=f"Maximum quantity per item is {settings.MAX_CART_ITEM_QUANTITY}",
            )
        if variant is None or quantity > variant.stock:
            available = variant.stock if variant else 0
            raise HTTPException(status_code=400, detail=f"Only {available} items available in stock")

    def _refresh_coupon(self, cart: Cart):
        """Re-price the applied coupon against the current contents, dropping it when no longer valid."""
        if not cart.applied_coupon:
            return
        coupon = self.session.exec(select(Coupon).where(Coupon.code == cart.applied_coupon)).first()
        ctx = self.context(cart)
        check = coupon_rules.evaluate(coupon, ctx.total, ctx.category_ids, ctx.product_ids) if coupon else None
        if check is None or not check.valid:
            logger.info("Dropping coupon %s from cart %s", cart.applied_coupon, cart.id)
            cart.applied_coupon = None
            cart.coupon_discount = 0.0
        else:
            cart.coupon_discount = check.discount

    def _save(self, cart: Cart) -> Cart:
        self.session.flush()
        self._refresh_coupon(cart)
        cart.updated_at = datetime.now(timezone.utc)
        self.session.add(cart)
        self.session.commit()
        self.session.refresh(cart)
        return cart

from typing import List, Optional
from fastapi import HTTPException
from sqlmodel import Session, select, delete

from shoppers.models.cart import WishlistItem
from shoppers.models.product import Product, ProductVariant

class WishlistService:
    def __init__(self, session: Session):
        self.session = session

    def list_items(self, user_id: int) -> List[dict]:
        items = self.session.exec(
            select(WishlistItem).where(WishlistItem.user_id == user_id).order_by(WishlistItem.added_at.desc())
        ).all()
        result = []
        for item in items:
            product = self.session.get(Product, item.product_id)
            if product:
                result.append(item.as_api(product))
        return result

    def add_item(self, user_id: int, product_id: int, variant_id: Optional[int] = None) -> WishlistItem:
        product = self.session.get(Product, product_id)
        if not product or not product.is_active:
            raise HTTPException(status_code=404, detail="Product not found")
        if variant_id is not None:
            variant = self.session.get(ProductVariant, variant_id)
            if not variant or variant.product_id != product_id:
                raise HTTPException(status_code=404, detail="Product variant not found")

        existing = self.session.exec(
            select(WishlistItem).where(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
        ).first()
        if existing:
            return existing

        item = WishlistItem(user_id=user_id, product_id=product_id, variant_id=variant_id)
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def remove_item(self, user_id: int, product_id: int):
        item = self.session.exec(
            select(WishlistItem).where(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
        ).first()
        if not item:
            raise HTTPException(status_code=404, detail="Item not in wishlist")
        self.session.delete(item)
        self.session.commit()

    def clear(self, user_id: int):
        self.session.exec(delete(WishlistItem).where(WishlistItem.user_id == user_id))
        self.session.commit()

from typing import List, Optional
from datetime import datetime, timezone
from sqlmodel import Field, Relationship, SQLModel

from shoppers.core.money import round_money

class Cart(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)

    # Applied coupon
    applied_coupon: Optional[str] = None
    coupon_discount: float = Field(default=0.0)

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    items: List["CartItem"] = Relationship(
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "CartItem.id"}
    )

    @property
    def selected_items(self) -> List["CartItem"]:
        return [i for i in self.items if i.is_selected]

    def totals(self) -> dict:
        selected = self.selected_items
        subtotal = round_money(sum(i.original_price * i.quantity for i in selected))
        total_amount = round_money(sum(i.price * i.quantity for i in selected))
        coupon_discount = self.coupon_discount or 0.0
        return {
            "subtotal": subtotal,
            "totalAmount": total_amount,
            "totalDiscount": round_money(subtotal - total_amount),
            "couponDiscount": coupon_discount,
            "finalAmount": round_money(max(0.0, total_amount - coupon_discount)),
            "itemCount": sum(i.quantity for i in self.items),
            "selectedCount": sum(i.quantity for i in selected),
        }

    def as_api(self, products: Optional[dict] = None):
        products = products or {}
        return {
            "id": self.id,
            "userId": self.user_id,
            "items": [i.as_api(products.get(i.product_id)) for i in self.items],
            "appliedCoupon": self.applied_coupon,
            **self.totals(),
            "updatedAt": self.updated_at,
        }


class CartItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    cart_id: int = Field(foreign_key="cart.id", index=True)
    product_id: int = Field(foreign_key="product.id")
    variant_id: int = Field(foreign_key="productvariant.id")

    # Cart Details
    quantity: int = Field(default=1, ge=1)
    size: Optional[str] = None
    price: float
    original_price: float
    is_selected: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_api(self, product=None):
        return {
            "id": self.id,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "quantity": self.quantity,
            "size": self.size,
            "price": self.price,
            "originalPrice": self.original_price,
            "isSelected": self.is_selected,
            "product": product.as_api(with_variants=False) if product is not None else None,
        }


class WishlistItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    variant_id: Optional[int] = Field(default=None, foreign_key="productvariant.id")
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_api(self, product=None):
        return {
            "id": self.id,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "addedAt": self.added_at,
            "product": product.as_api(with_variants=False) if product is not None else None,
        }

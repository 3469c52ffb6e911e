from typing import List, Optional
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import JSON
from datetime import datetime, timezone

from shoppers.domain.inventory import stock_status

class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    name: str = Field(index=True)
    slug: str = Field(index=True, unique=True)
    description: str = ""
    brand: Optional[str] = Field(default=None, index=True)

    # Category placement, one column per tree level
    category_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)
    sub_category_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)
    sub_sub_category_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)

    images: List[str] = Field(default=[], sa_column=Column(JSON))
    tags: List[str] = Field(default=[], sa_column=Column(JSON))

    # Lowest variant price, kept in sync so listings can filter and sort on it
    price: float = Field(default=0.0, index=True)
    original_price: float = Field(default=0.0)

    # Metadata
    is_active: bool = Field(default=True)
    is_featured: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    variants: List["ProductVariant"] = Relationship(
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "ProductVariant.id"}
    )

    @property
    def total_stock(self) -> int:
        return sum(v.stock for v in self.variants)

    def refresh_price(self):
        if self.variants:
            cheapest = min(self.variants, key=lambda v: v.price)
            self.price = cheapest.price
            self.original_price = cheapest.original_price

    def as_api(self, with_variants: bool = True):
        data = {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "brand": self.brand,
            "category": self.category_id,
            "subCategory": self.sub_category_id,
            "subSubCategory": self.sub_sub_category_id,
            "images": self.images or [],
            "tags": self.tags or [],
            "price": self.price,
            "originalPrice": self.original_price,
            "totalStock": self.total_stock,
            "isActive": self.is_active,
            "isFeatured": self.is_featured,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if with_variants:
            data["variants"] = [v.as_api() for v in self.variants]
        return data


class ProductVariant(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="product.id", index=True)

    color: Optional[str] = None
    size: Optional[str] = None
    sku: str = Field(unique=True, index=True)

    # Pricing
    price: float
    original_price: float

    # Inventory
    stock: int = Field(default=0, ge=0)

    images: List[str] = Field(default=[], sa_column=Column(JSON))

    def as_api(self):
        return {
            "id": self.id,
            "productId": self.product_id,
            "color": self.color,
            "size": self.size,
            "sku": self.sku,
            "price": self.price,
            "originalPrice": self.original_price,
            "stock": self.stock,
            "stockStatus": stock_status(self.stock),
            "images": self.images or [],
        }

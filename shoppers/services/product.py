import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import func
from sqlmodel import Session, select

from shoppers.core.filters import FilterBuilder, ilike_contains, to_clause
from shoppers.core.pagination import Page
from shoppers.domain.categories import slugify
from shoppers.models.category import Category
from shoppers.models.order import Order, OrderItem, OrderStatus
from shoppers.models.product import Product, ProductVariant
from shoppers.services.category import CategoryService

logger = logging.getLogger(__name__)

SORTS = {
    "newest": (Product.created_at.desc(),),
    "oldest": (Product.created_at.asc(),),
    "price_asc": (Product.price.asc(), Product.id.asc()),
    "price_desc": (Product.price.desc(), Product.id.asc()),
    "name": (Product.name.asc(),),
}

VARIANT_FIELDS = ("color", "size", "sku", "price", "original_price", "stock", "images")

class ProductService:
    def __init__(self, session: Session, categories: Optional[CategoryService] = None):
        self.session = session
        self.categories = categories or CategoryService(session)

    def get_product(self, product_id: int, active_only: bool = False) -> Product:
        product = self.session.get(Product, product_id)
        if not product or (active_only and not product.is_active):
            raise HTTPException(status_code=404, detail="Product not found")
        return product

    def get_by_slug(self, slug: str) -> Product:
        product = self.session.exec(select(Product).where(Product.slug == slug, Product.is_active == True)).first()
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        return product

    def list_products(self, page: Page, search: Optional[str] = None, category_id: Optional[int] = None,
                      brand: Optional[str] = None, min_price: Optional[float] = None,
                      max_price: Optional[float] = None, is_active: Optional[bool] = True,
                      is_featured: Optional[bool] = None, sort: str = "newest") -> tuple[List[Product], int]:
        builder = (
            FilterBuilder()
            .text(search, "name", "description", "brand")
            .equals("brand", brand)
            .range("price", min_price, max_price)
            .equals("is_active", is_active)
            .equals("is_featured", is_featured)
        )
        if category_id is not None:
            builder.add(self.categories.scope_for(category_id))
        clause = to_clause(builder.build(), Product)

        total = self.session.exec(select(func.count()).select_from(Product).where(clause)).one()
        order_by = SORTS.get(sort, SORTS["newest"])
        products = self.session.exec(
            select(Product).where(clause).order_by(*order_by).offset(page.offset).limit(page.limit)
        ).all()
        return products, total

    def featured(self, limit: int = 8) -> List[Product]:
        return self.session.exec(
            select(Product).where(Product.is_featured == True, Product.is_active == True)
            .order_by(Product.created_at.desc()).limit(limit)
        ).all()

    def brands(self) -> List[str]:
        rows = self.session.exec(
            select(Product.brand).where(Product.brand != None, Product.is_active == True).distinct()
        ).all()
        return sorted(rows)

    def suggestions(self, q: str, limit: int = 10) -> dict:
        q = (q or "").strip()
        if len(q) < 2:
            return {"products": [], "brands": [], "categories": []}
        products = self.session.exec(
            select(Product).where(Product.is_active == True, ilike_contains(Product.name, q))
            .order_by(Product.name).limit(limit)
        ).all()
        brands = self.session.exec(
            select(Product.brand).where(Product.is_active == True, ilike_contains(Product.brand, q)).distinct().limit(5)
        ).all()
        categories = self.session.exec(
            select(Category).where(Category.is_active == True, ilike_contains(Category.name, q)).limit(5)
        ).all()
        return {
            "products": [{"id": p.id, "name": p.name, "slug": p.slug, "price": p.price} for p in products],
            "brands": list(brands),
            "categories": [{"id": c.id, "name": c.name, "slug": c.slug, "level": c.level} for c in categories],
        }

    def autocomplete(self, q: str, limit: int = 10) -> dict:
        found = self.suggestions(q, limit=max(1, limit // 2))
        suggestions = [
            {"id": p["id"], "text": p["name"], "type": "product", "price": p["price"]}
            for p in found["products"]
        ]
        suggestions += [
            {"id": c["id"], "text": c["name"], "type": "category", "category": c["slug"]}
            for c in found["categories"][:max(1, limit // 4)]
        ]
        suggestions += [{"id": b, "text": b, "type": "brand"} for b in found["brands"]]
        return {"suggestions": suggestions[:limit], "popularSearches": self.trending(5)}

    def trending(self, limit: int = 8, days: int = 30) -> List[str]:
        """Names of the most-ordered products over the last `days` days."""
        since = datetime.now(timezone.utc) - timedelta(days=days)
        ordered = func.sum(OrderItem.quantity)
        rows = self.session.exec(
            select(OrderItem.product_id, ordered)
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.created_at >= since, Order.status != OrderStatus.CANCELLED.value)
            .group_by(OrderItem.product_id)
            .order_by(ordered.desc(), OrderItem.product_id)
            .limit(limit)
        ).all()
        names = {p.id: p.name for p in self.session.exec(
            select(Product).where(Product.id.in_([r[0] for r in rows]), Product.is_active == True)
        ).all()} if rows else {}
        return [names[product_id] for product_id, _ in rows if product_id in names]

    def create_product(self, data: dict, variants: List[dict]) -> Product:
        if not variants:
            raise HTTPException(status_code=400, detail="At least one variant is required")
        self._check_skus([v["sku"] for v in variants])

        placement = self.categories.placement_for(data["category_id"])
        product = Product(
            name=data["name"].strip(),
            slug=self._unique_slug(data["name"]),
            description=data.get("description") or "",
            brand=data.get("brand"),
            images=data.get("images") or [],
            tags=data.get("tags") or [],
            is_active=data.get("is_active", True),
            is_featured=data.get("is_featured", False),
            **placement,
        )
        for v in variants:
            product.variants.append(self._build_variant(v))
        product.refresh_price()

        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        logger.info("Created product %s with %d variants", product.slug, len(product.variants))
        return product

    def update_product(self, product_id: int, changes: dict, variants: Optional[List[dict]] = None) -> Product:
        product = self.get_product(product_id)

        if changes.get("category_id") is not None:
            for name, value in self.categories.placement_for(changes["category_id"]).items():
                setattr(product, name, value)
        if changes.get("name") and changes["name"].strip() != product.name:
            product.name = changes["name"].strip()
            product.slug = self._unique_slug(product.name, exclude_id=product.id)
        for field in ("description", "brand", "images", "tags", "is_active", "is_featured"):
            if changes.get(field) is not None:
                setattr(product, field, changes[field])

        if variants is not None:
            self._replace_variants(product, variants)

        product.updated_at = datetime.now(timezone.utc)
        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        return product

    def toggle_status(self, product_id: int, is_active: Optional[bool] = None) -> Product:
        product = self.get_product(product_id)
        product.is_active = (not product.is_active) if is_active is None else is_active
        product.updated_at = datetime.now(timezone.utc)
        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        return product

    def bulk_set_status(self, product_ids: List[int], is_active: bool) -> dict:
        if not product_ids:
            raise HTTPException(status_code=400, detail="Product IDs are required")
        found = self.session.exec(select(Product).where(Product.id.in_(product_ids))).all()
        now = datetime.now(timezone.utc)
        for product in found:
            product.is_active = is_active
            product.updated_at = now
            self.session.add(product)
        self.session.commit()

        updated = {p.id for p in found}
        missing = [pid for pid in dict.fromkeys(product_ids) if pid not in updated]
        logger.info("Bulk product status -> %s: %d updated, %d missing", is_active, len(updated), len(missing))
        return {"updated": len(updated), "notFound": missing}

    def delete_product(self, product_id: int):
        product = self.get_product(product_id)
        self.session.delete(product)
        self.session.commit()
        logger.info("Deleted product %s", product_id)

    def _replace_variants(self, product: Product, variants: List[dict]):
        if not variants:
            raise HTTPException(status_code=400, detail="At least one variant is required")
        existing = {v.sku: v for v in product.variants}
        incoming = [v["sku"] for v in variants]
        self._check_skus([s for s in incoming if s not in existing], own=incoming)

        for v in list(product.variants):
            if v.sku not in incoming:
                product.variants.remove(v)
        for data in variants:
            variant = existing.get(data["sku"])
            if variant is None:
                product.variants.append(self._build_variant(data))
            else:
                for field in VARIANT_FIELDS:
                    if data.get(field) is not None:
                        setattr(variant, field, data[field])
        product.refresh_price()

    def _build_variant(self, data: dict) -> ProductVariant:
        if data["price"] > data["original_price"]:
            raise HTTPException(status_code=400, detail=f"Variant {data['sku']}: price cannot exceed original price")
        return ProductVariant(**{k: data[k] for k in VARIANT_FIELDS if data.get(k) is not None})

    def _check_skus(self, skus: List[str], own: Optional[List[str]] = None):
        own = own if own is not None else skus
        if len(set(own)) != len(own):
            raise HTTPException(status_code=400, detail="Duplicate SKU in variants")
        if not skus:
            return
        taken = self.session.exec(select(ProductVariant.sku).where(ProductVariant.sku.in_(skus))).all()
        if taken:
            raise HTTPException(status_code=409, detail=f"SKU already exists: {', '.join(sorted(taken))}")

    def _unique_slug(self, name: str, exclude_id: Optional[int] = None) -> str:
        base = slugify(name) or "product"
        slug, n = base, 1
        while True:
            existing = self.session.exec(select(Product).where(Product.slug == slug)).first()
            if not existing or existing.id == exclude_id:
                return slug
            n += 1
            slug = f"{base}-{n}"

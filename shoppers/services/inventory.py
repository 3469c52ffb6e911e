import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlmodel import Session, select

from shoppers.core.config import settings
from shoppers.core.filters import FilterBuilder, ilike_contains, matches, to_clause
from shoppers.core.pagination import Page
from shoppers.domain import inventory as rules
from shoppers.models.order import Order, OrderItem, OrderStatus
from shoppers.models.product import Product, ProductVariant
from shoppers.services.category import CategoryService

logger = logging.getLogger(__name__)

class InventoryService:
    def __init__(self, session: Session, categories: Optional[CategoryService] = None):
        self.session = session
        self.categories = categories or CategoryService(session)

    def _get_variant(self, product_id: int, variant_id: int) -> tuple[Product, ProductVariant]:
        product = self.session.get(Product, product_id)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        variant = next((v for v in product.variants if v.id == variant_id), None)
        if variant is None:
            raise HTTPException(status_code=404, detail="Product variant not found")
        return product, variant

    def _apply(self, product: Product, variant: ProductVariant, quantity: int, operation: str,
               reason: Optional[str] = None) -> int:
        """Adjust one variant in the session and return its previous stock. Caller commits."""
        previous = variant.stock
        try:
            variant.stock = rules.apply_adjustment(previous, quantity, operation)
        except rules.StockAdjustmentError as e:
            raise HTTPException(status_code=400, detail=str(e))

        self._sync_activation(product)
        product.updated_at = datetime.now(timezone.utc)
        self.session.add(variant)
        self.session.add(product)
        logger.info(
            "Stock updated for %s: %d -> %d (%s %d%s). Total product stock: %d",
            variant.sku, previous, variant.stock, operation, quantity,
            f", {reason}" if reason else "", product.total_stock,
        )
        return previous

    def _sync_activation(self, product: Product):
        total = product.total_stock
        if total == 0 and product.is_active:
            product.is_active = False
            logger.info("Product %s (%s) automatically deactivated - total stock is zero", product.name, product.id)
        elif total > 0 and not product.is_active:
            product.is_active = True
            logger.info("Product %s (%s) automatically reactivated - stock available", product.name, product.id)

    def update_variant_stock(self, product_id: int, variant_id: int, quantity: int,
                             operation: str = rules.SET, reason: Optional[str] = None) -> tuple[ProductVariant, int]:
        product, variant = self._get_variant(product_id, variant_id)
        previous = self._apply(product, variant, quantity, operation, reason)
        self.session.commit()
        self.session.refresh(variant)
        return variant, previous

    def bulk_update(self, updates: List[dict]) -> dict:
        """Set stock by sku. Each entry stands alone: bad entries are reported, good ones are kept."""
        successful = 0
        failed = []
        for update in updates:
            sku = update.get("sku") if isinstance(update, dict) else None
            new_stock = update.get("newStock", update.get("new_stock")) if isinstance(update, dict) else None

            if not isinstance(sku, str) or not sku.strip():
                failed.append({"sku": sku, "error": "sku is required"})
                continue
            if isinstance(new_stock, bool) or not isinstance(new_stock, int) or new_stock < 0:
                failed.append({"sku": sku, "error": "newStock must be a non-negative integer"})
                continue

            variant = self.session.exec(select(ProductVariant).where(ProductVariant.sku == sku)).first()
            if variant is None:
                failed.append({"sku": sku, "error": "Product not found"})
                continue
            product = self.session.get(Product, variant.product_id)
            self._apply(product, variant, new_stock, rules.SET, "bulk update")
            self.session.commit()
            successful += 1

        total = len(updates)
        logger.info("Bulk stock update: %d/%d succeeded", successful, total)
        return {
            "successful": successful,
            "failed": failed,
            "total": total,
            "successRate": f"{(successful / total * 100) if total else 0:.1f}%",
        }

    def _all_variants(self) -> List[tuple[Product, ProductVariant]]:
        rows = self.session.exec(
            select(Product, ProductVariant).where(ProductVariant.product_id == Product.id)
            .order_by(Product.name, ProductVariant.id)
        ).all()
        return list(rows)

    def overview(self) -> dict:
        rows = self._all_variants()
        counts = {rules.OUT_OF_STOCK: 0, rules.CRITICAL: 0, rules.LOW: 0, rules.IN_STOCK: 0}
        for _, variant in rows:
            counts[rules.stock_status(variant.stock)] += 1

        total_products = self.session.exec(select(func.count()).select_from(Product)).one()
        active_products = self.session.exec(
            select(func.count()).select_from(Product).where(Product.is_active == True)
        ).one()

        sold = self.session.exec(
            select(OrderItem.variant_id, func.sum(OrderItem.quantity).label("sold"))
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.status != OrderStatus.CANCELLED.value)
            .group_by(OrderItem.variant_id)
            .order_by(func.sum(OrderItem.quantity).desc())
            .limit(10)
        ).all()
        by_variant = {v.id: (p, v) for p, v in rows}
        top = []
        for variant_id, quantity in sold:
            if variant_id in by_variant:
                product, variant = by_variant[variant_id]
                top.append({
                    "productId": product.id,
                    "productName": product.name,
                    "variantId": variant.id,
                    "sku": variant.sku,
                    "stock": variant.stock,
                    "sold": quantity,
                })

        return {
            "totalProducts": total_products,
            "activeProducts": active_products,
            "totalVariants": len(rows),
            "totalStock": sum(v.stock for _, v in rows),
            "lowStockItems": counts[rules.LOW],
            "criticalStockItems": counts[rules.CRITICAL],
            "outOfStockItems": counts[rules.OUT_OF_STOCK],
            "topSellingVariants": top,
        }

    def low_stock_alerts(self) -> List[dict]:
        alerts = []
        for product, variant in self._all_variants():
            severity = rules.stock_status(variant.stock)
            if severity == rules.IN_STOCK:
                continue
            alerts.append({
                "productId": product.id,
                "productName": product.name,
                "variantId": variant.id,
                "variant": {
                    "color": variant.color,
                    "size": variant.size,
                    "sku": variant.sku,
                    "currentStock": variant.stock,
                },
                "threshold": settings.CRITICAL_STOCK_THRESHOLD if severity == rules.CRITICAL else settings.LOW_STOCK_THRESHOLD,
                "severity": severity,
            })
        alerts.sort(key=lambda a: rules.SEVERITY_ORDER[a["severity"]])
        return alerts

    def detailed(self, page: Page, search: Optional[str] = None, category_id: Optional[int] = None,
                 stock_status: Optional[str] = None) -> dict:
        builder = FilterBuilder()
        if category_id is not None:
            builder.add(self.categories.scope_for(category_id))
        clause = to_clause(builder.build(), Product)
        if search:
            sku_match = select(ProductVariant.product_id).where(ilike_contains(ProductVariant.sku, search))
            clause = clause & or_(
                ilike_contains(Product.name, search),
                ilike_contains(Product.brand, search),
                Product.id.in_(sku_match),
            )
        variant_filter = FilterBuilder().equals("stockStatus", stock_status).build()

        query = select(Product).where(clause).order_by(Product.name)
        if stock_status:
            # Status is derived from stock, so the page is cut after matching variants.
            rows = []
            for product in self.session.exec(query).all():
                variants = [v.as_api() for v in product.variants]
                if any(matches(variant_filter, v) for v in variants):
                    rows.append((product, variants))
            total = len(rows)
            rows = rows[page.offset:page.offset + page.limit]
        else:
            total = self.session.exec(select(func.count()).select_from(Product).where(clause)).one()
            products = self.session.exec(query.offset(page.offset).limit(page.limit)).all()
            rows = [(p, [v.as_api() for v in p.variants]) for p in products]

        data = []
        for product, variants in rows:
            data.append({
                "id": product.id,
                "name": product.name,
                "brand": product.brand,
                "category": product.category_id,
                "subCategory": product.sub_category_id,
                "isActive": product.is_active,
                "totalStock": product.total_stock,
                "variants": [v for v in variants if matches(variant_filter, v)],
                "variantCount": len(variants),
                "lowStockVariants": sum(1 for v in variants if v["stockStatus"] in (rules.LOW, rules.CRITICAL)),
                "outOfStockVariants": sum(1 for v in variants if v["stockStatus"] == rules.OUT_OF_STOCK),
            })
        return {"products": data, "pagination": page.meta(total)}

    def check_stock(self, items: Iterable[dict]) -> dict:
        items = list(items)
        unavailable = []
        for item in items:
            variant = self.session.get(ProductVariant, item["variant_id"])
            if variant is None or variant.product_id != item["product_id"] or variant.stock < item["quantity"]:
                unavailable.append({
                    "productId": item["product_id"],
                    "variantId": item["variant_id"],
                    "requested": item["quantity"],
                    "available": variant.stock if variant is not None and variant.product_id == item["product_id"] else 0,
                })
        missing = {(u["productId"], u["variantId"]) for u in unavailable}
        return {
            "inStock": not unavailable,
            "unavailableItems": unavailable,
            "availableItems": [
                {"productId": i["product_id"], "variantId": i["variant_id"], "quantity": i["quantity"]}
                for i in items if (i["product_id"], i["variant_id"]) not in missing
            ],
        }

    def reserve(self, items: Iterable[dict], reason: str = "order placement"):
        """Decrease stock for each item. Caller commits, or rolls back on error."""
        for item in items:
            product, variant = self._get_variant(item["product_id"], item["variant_id"])
            self._apply(product, variant, item["quantity"], rules.DECREASE, reason)

    def release(self, items: Iterable[dict], reason: str = "order cancellation"):
        for item in items:
            variant = self.session.get(ProductVariant, item["variant_id"])
            if variant is None or variant.product_id != item["product_id"]:
                logger.warning("Cannot release stock for missing variant %s", item["variant_id"])
                continue
            product = self.session.get(Product, variant.product_id)
            self._apply(product, variant, item["quantity"], rules.INCREASE, reason)

    def reorder_suggestions(self, threshold: int = settings.LOW_STOCK_THRESHOLD) -> List[dict]:
        suggestions = []
        # includes products switched off after running out of stock
        for product in self.session.exec(select(Product).order_by(Product.name)).all():
            low = [v for v in product.variants if v.stock <= threshold]
            if not low:
                continue
            suggestions.append({
                "id": product.id,
                "name": product.name,
                "brand": product.brand,
                "category": product.category_id,
                "lowStockVariants": [
                    {
                        "id": v.id,
                        "color": v.color,
                        "size": v.size,
                        "sku": v.sku,
                        "currentStock": v.stock,
                        "suggestedReorder": rules.suggested_reorder(v.stock),
                        "priority": rules.reorder_priority(v.stock),
                    }
                    for v in sorted(low, key=lambda v: v.stock)
                ],
            })
        return suggestions

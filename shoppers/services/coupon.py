import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional
from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from shoppers.core.filters import FilterBuilder, to_clause
from shoppers.core.money import round_money
from shoppers.core.pagination import Page
from shoppers.domain import coupons as rules
from shoppers.models.coupon import Coupon, CouponType
from shoppers.services.cart import CartService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "description", "discount_type", "discount_value", "min_order_amount", "max_discount_amount",
    "usage_limit", "valid_from", "valid_until", "applicable_categories", "applicable_products", "is_active",
)

class CouponService:
    def __init__(self, session: Session, carts: Optional[CartService] = None):
        self.session = session
        self.carts = carts or CartService(session)

    def get_by_code(self, code: str) -> Optional[Coupon]:
        return self.session.exec(select(Coupon).where(Coupon.code == rules.normalize_code(code))).first()

    def get_coupon(self, coupon_id: int) -> Coupon:
        coupon = self.session.get(Coupon, coupon_id)
        if not coupon:
            raise HTTPException(status_code=404, detail="Coupon not found")
        return coupon

    # Customer side

    def validate_for_user(self, code: str, user_id: int) -> tuple[rules.CouponCheck, Optional[Coupon]]:
        coupon = self.get_by_code(code)
        if not coupon:
            return rules.CouponCheck(False, "Invalid coupon code"), None

        cart = self.carts.get_cart(user_id)
        if not cart.items:
            return rules.CouponCheck(False, "Cart is empty"), coupon

        ctx = self.carts.context(cart)
        return rules.evaluate(coupon, ctx.total, ctx.category_ids, ctx.product_ids), coupon

    def apply_coupon(self, code: str, user_id: int) -> dict:
        check, coupon = self.validate_for_user(code, user_id)
        if not check.valid:
            raise HTTPException(status_code=400, detail=check.reason)

        cart = self.carts.get_cart(user_id)
        cart.applied_coupon = coupon.code
        cart.coupon_discount = check.discount
        cart.updated_at = datetime.now(timezone.utc)
        self.session.add(cart)
        self.session.commit()
        self.session.refresh(cart)

        totals = cart.totals()
        return {
            "discount": check.discount,
            "finalAmount": totals["finalAmount"],
            "coupon": {
                "code": coupon.code,
                "discountType": coupon.discount_type,
                "discountValue": coupon.discount_value,
            },
        }

    def remove_coupon(self, user_id: int):
        cart = self.carts.get_cart(user_id)
        cart.applied_coupon = None
        cart.coupon_discount = 0.0
        cart.updated_at = datetime.now(timezone.utc)
        self.session.add(cart)
        self.session.commit()

    def active_coupons(self) -> List[Coupon]:
        now = datetime.now(timezone.utc)
        return self.session.exec(
            select(Coupon).where(
                Coupon.is_active == True,
                Coupon.valid_from <= now,
                Coupon.valid_until >= now,
                Coupon.used_count < Coupon.usage_limit,
            ).order_by(Coupon.created_at.desc())
        ).all()

    def available_for_user(self, user_id: int) -> List[Coupon]:
        cart = self.carts.get_cart(user_id)
        coupons = self.active_coupons()
        if not cart.items:
            return coupons
        ctx = self.carts.context(cart)
        return [c for c in coupons if rules.can_be_used(c, ctx.total, ctx.category_ids, ctx.product_ids).valid]

    # Admin side

    def list_coupons(self, page: Page, is_active: Optional[bool] = None, discount_type: Optional[str] = None,
                     search: Optional[str] = None) -> tuple[List[Coupon], int]:
        clause = to_clause(
            FilterBuilder().equals("is_active", is_active).equals("discount_type", discount_type)
            .text(search, "code", "description").build(),
            Coupon,
        )
        total = self.session.exec(select(func.count()).select_from(Coupon).where(clause)).one()
        coupons = self.session.exec(
            select(Coupon).where(clause).order_by(Coupon.created_at.desc()).offset(page.offset).limit(page.limit)
        ).all()
        return coupons, total

    def create_coupon(self, data: dict) -> Coupon:
        code = rules.normalize_code(data.get("code"))
        check = rules.validate_code(code)
        if not check:
            raise HTTPException(status_code=400, detail=check.error)
        if self.get_by_code(code):
            raise HTTPException(status_code=409, detail="Coupon code already exists")

        fields = {k: data[k] for k in EDITABLE_FIELDS if data.get(k) is not None}
        coupon = Coupon(code=code, **fields)
        self._validate(coupon)

        self.session.add(coupon)
        self.session.commit()
        self.session.refresh(coupon)
        logger.info("Created coupon %s", coupon.code)
        return coupon

    def update_coupon(self, coupon_id: int, changes: dict) -> Coupon:
        coupon = self.get_coupon(coupon_id)

        if changes.get("code"):
            code = rules.normalize_code(changes["code"])
            check = rules.validate_code(code)
            if not check:
                raise HTTPException(status_code=400, detail=check.error)
            other = self.get_by_code(code)
            if other and other.id != coupon.id:
                raise HTTPException(status_code=409, detail="Coupon code already exists")
            coupon.code = code

        for field in EDITABLE_FIELDS:
            if field in changes and (changes[field] is not None or field == "max_discount_amount"):
                setattr(coupon, field, changes[field])
        self._validate(coupon)
        coupon.updated_at = datetime.now(timezone.utc)

        self.session.add(coupon)
        self.session.commit()
        self.session.refresh(coupon)
        return coupon

    def delete_coupon(self, coupon_id: int):
        coupon = self.get_coupon(coupon_id)
        self.session.delete(coupon)
        self.session.commit()
        logger.info("Deleted coupon %s", coupon.code)

    def toggle_status(self, coupon_id: int) -> Coupon:
        coupon = self.get_coupon(coupon_id)
        coupon.is_active = not coupon.is_active
        coupon.updated_at = datetime.now(timezone.utc)
        self.session.add(coupon)
        self.session.commit()
        self.session.refresh(coupon)
        return coupon

    def bulk_create(self, items: List[dict], parse: Callable[[dict], dict]) -> dict:
        """Create each coupon independently; failures are reported, not rolled back."""
        successful = 0
        failed = []
        for raw in items:
            code = raw.get("code") if isinstance(raw, dict) else None
            try:
                self.create_coupon(parse(raw))
                successful += 1
            except HTTPException as e:
                failed.append({"code": code or "unknown", "error": e.detail})
            except IntegrityError:
                self.session.rollback()
                failed.append({"code": code or "unknown", "error": "Coupon code already exists"})
            except ValueError as e:
                failed.append({"code": code or "unknown", "error": str(e)})

        total = len(items)
        logger.info("Bulk coupon create: %d/%d succeeded", successful, total)
        return {
            "successful": successful,
            "failed": failed,
            "total": total,
            "successRate": f"{(successful / total * 100) if total else 0:.1f}%",
        }

    def generate_codes(self, count: int = 10, prefix: str = "", length: int = 8) -> List[str]:
        try:
            return rules.generate_codes(count, prefix, length, exists=lambda c: self.get_by_code(c) is not None)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    def analytics(self) -> dict:
        now = datetime.now(timezone.utc)
        total = self.session.exec(select(func.count()).select_from(Coupon)).one()
        active = self.session.exec(
            select(func.count()).select_from(Coupon).where(Coupon.is_active == True, Coupon.valid_until >= now)
        ).one()
        expired = self.session.exec(
            select(func.count()).select_from(Coupon).where(or_(Coupon.is_active == False, Coupon.valid_until < now))
        ).one()
        usage = self.session.exec(select(func.coalesce(func.sum(Coupon.used_count), 0))).one()
        top = self.session.exec(select(Coupon).order_by(Coupon.used_count.desc()).limit(10)).all()
        return {
            "totalCoupons": total,
            "activeCoupons": active,
            "expiredCoupons": expired,
            "totalUsage": usage,
            "topCoupons": [
                {"code": c.code, "usedCount": c.used_count, "discountType": c.discount_type,
                 "discountValue": c.discount_value}
                for c in top
            ],
        }

    # Usage bookkeeping; the caller owns the commit

    def increment_usage(self, code: str) -> Optional[Coupon]:
        coupon = self.get_by_code(code)
        if coupon is None:
            return None
        if coupon.used_count >= coupon.usage_limit:
            raise HTTPException(status_code=400, detail="Coupon usage limit exceeded")
        coupon.used_count += 1
        coupon.updated_at = datetime.now(timezone.utc)
        self.session.add(coupon)
        logger.info("Coupon %s used_count -> %d", coupon.code, coupon.used_count)
        return coupon

    def decrement_usage(self, code: str) -> Optional[Coupon]:
        coupon = self.get_by_code(code)
        if coupon is None:
            return None
        coupon.used_count = max(0, coupon.used_count - 1)
        coupon.updated_at = datetime.now(timezone.utc)
        self.session.add(coupon)
        logger.info("Coupon %s used_count -> %d", coupon.code, coupon.used_count)
        return coupon

    def _validate(self, coupon: Coupon):
        check = rules.validate_coupon_definition(
            coupon.discount_type, coupon.discount_value, coupon.valid_from, coupon.valid_until
        )
        if not check:
            raise HTTPException(status_code=400, detail=check.error)
        if coupon.usage_limit < 1:
            raise HTTPException(status_code=400, detail="Usage limit must be at least 1")
        if coupon.used_count > coupon.usage_limit:
            raise HTTPException(status_code=400, detail="Usage limit cannot be below the current usage count")
        if coupon.discount_type == CouponType.FIXED.value:
            coupon.max_discount_amount = None
        coupon.min_order_amount = round_money(coupon.min_order_amount or 0)

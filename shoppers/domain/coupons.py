"""Coupon eligibility and discount rules.

Everything here works on plain attribute access so it can be fed a stored
`Coupon` row or any object with the same fields.
"""
import random
import re
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from shoppers.core.money import round_money
from shoppers.domain.result import Result

PERCENTAGE = "percentage"
FIXED = "fixed"

CODE_PATTERN = re.compile(r"^[A-Z0-9]{3,20}$")
CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class CouponCheck:
    valid: bool
    reason: Optional[str] = None
    discount: Optional[float] = None


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def validate_code(code: str) -> Result:
    if not CODE_PATTERN.match(normalize_code(code)):
        return Result.failure("Coupon code must be 3-20 uppercase letters or digits")
    return Result.success()


def validate_coupon_definition(discount_type: str, discount_value: float,
                               valid_from: Optional[datetime], valid_until: Optional[datetime]) -> Result:
    if discount_type not in (PERCENTAGE, FIXED):
        return Result.failure("discountType must be 'percentage' or 'fixed'")
    if discount_value is None or discount_value < 0:
        return Result.failure("Discount value cannot be negative")
    if discount_type == PERCENTAGE and discount_value > 100:
        return Result.failure("Percentage discount cannot exceed 100%")
    if valid_from is not None and valid_until is not None and valid_until <= valid_from:
        return Result.failure("Valid until date must be after valid from date")
    return Result.success()


def _intersects(allowed: Iterable, given: Optional[Iterable]) -> bool:
    allowed_ids = {str(i) for i in allowed}
    return any(str(i) in allowed_ids for i in (given or ()))


def can_be_used(coupon, order_amount: float, category_ids: Optional[Iterable] = None,
                product_ids: Optional[Iterable] = None, now: Optional[datetime] = None) -> CouponCheck:
    now = now or datetime.now(timezone.utc)
    category_ids = list(category_ids or ())
    product_ids = list(product_ids or ())

    if not coupon.is_active:
        return CouponCheck(False, "Coupon is not active")
    if now < coupon.valid_from:
        return CouponCheck(False, "Coupon is not yet valid")
    if now > coupon.valid_until:
        return CouponCheck(False, "Coupon has expired")
    if coupon.used_count >= coupon.usage_limit:
        return CouponCheck(False, "Coupon usage limit exceeded")
    if order_amount < (coupon.min_order_amount or 0):
        return CouponCheck(False, f"Minimum order amount of {coupon.min_order_amount:g} required")

    if coupon.applicable_categories:
        if not category_ids:
            return CouponCheck(False, "Coupon not applicable to cart items")
        if not _intersects(coupon.applicable_categories, category_ids):
            return CouponCheck(False, "Coupon not applicable to selected categories")

    if coupon.applicable_products:
        if not product_ids:
            return CouponCheck(False, "Coupon not applicable to cart items")
        if not _intersects(coupon.applicable_products, product_ids):
            return CouponCheck(False, "Coupon not applicable to selected products")

    return CouponCheck(True)


def calculate_discount(coupon, order_amount: float) -> float:
    if order_amount <= 0:
        return 0.0

    if coupon.discount_type == PERCENTAGE:
        discount = order_amount * coupon.discount_value / 100
        if coupon.max_discount_amount is not None:
            discount = min(discount, coupon.max_discount_amount)
    elif coupon.discount_type == FIXED:
        discount = coupon.discount_value
    else:
        discount = 0.0

    return round_money(max(0.0, min(discount, order_amount)))


def evaluate(coupon, order_amount: float, category_ids: Optional[Iterable] = None,
             product_ids: Optional[Iterable] = None, now: Optional[datetime] = None) -> CouponCheck:
    check = can_be_used(coupon, order_amount, category_ids, product_ids, now)
    if not check.valid:
        return check
    return CouponCheck(True, discount=calculate_discount(coupon, order_amount))


def is_currently_valid(coupon, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return (coupon.is_active and coupon.valid_from <= now <= coupon.valid_until
            and coupon.used_count < coupon.usage_limit)


def remaining_uses(coupon) -> int:
    return max(0, coupon.usage_limit - coupon.used_count)


def generate_codes(count: int, prefix: str = "", length: int = 8,
                   exists: Callable[[str], bool] = lambda code: False,
                   rng: Optional[random.Random] = None) -> List[str]:
    """Random unique codes; `exists` reports codes already taken in storage."""
    if count > 100:
        raise ValueError("Cannot generate more than 100 codes at once")
    prefix = normalize_code(prefix)
    if len(prefix) > 5:
        raise ValueError("Prefix cannot be longer than 5 characters")
    if not 4 <= length <= 15 or length <= len(prefix):
        raise ValueError("Code length must be between 4 and 15 and longer than the prefix")
    if len(CODE_ALPHABET) ** (length - len(prefix)) < count:
        raise ValueError("Not enough distinct codes for this prefix and length")

    rng = rng or random.SystemRandom()
    codes: List[str] = []
    seen = set()
    while len(codes) < count:
        code = prefix + "".join(rng.choice(CODE_ALPHABET) for _ in range(length - len(prefix)))
        if code in seen or exists(code):
            continue
        seen.add(code)
        codes.append(code)
    return codes

import time
from dataclasses import dataclass

from shoppers.core.config import settings
from shoppers.core.money import round_money

RETURN_WINDOW_DAYS = 30


@dataclass(frozen=True)
class OrderAmounts:
    subtotal: float
    discount: float
    coupon_discount: float
    delivery_fee: float
    platform_fee: float
    total_amount: float


def delivery_fee(amount: float) -> float:
    if amount >= settings.FREE_DELIVERY_MIN_AMOUNT:
        return 0.0
    return settings.DELIVERY_FEE


def platform_fee(amount: float) -> float:
    return settings.PLATFORM_FEE if amount > 0 else 0.0


def order_amounts(subtotal: float, discounted: float, coupon_discount: float = 0.0) -> OrderAmounts:
    """Fees are charged on the amount after item discounts, before the coupon."""
    delivery = delivery_fee(discounted)
    platform = platform_fee(discounted)
    coupon_discount = min(coupon_discount or 0.0, discounted)
    total = discounted - coupon_discount + delivery + platform
    return OrderAmounts(
        subtotal=round_money(subtotal),
        discount=round_money(subtotal - discounted),
        coupon_discount=round_money(coupon_discount),
        delivery_fee=round_money(delivery),
        platform_fee=round_money(platform),
        total_amount=round_money(total),
    )


def generate_order_number(sequence: int) -> str:
    return f"ORD{int(time.time() * 1000)}{sequence:04d}"

from typing import List, Optional
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON
from enum import Enum

from shoppers.domain import coupons as rules

class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"

class Coupon(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Coupon Details
    code: str = Field(unique=True, index=True)  # e.g., "SAVE10"
    description: str = ""

    # Discount
    discount_type: str = Field(default=CouponType.PERCENTAGE.value)
    discount_value: float  # Percentage (0-100) or fixed amount
    min_order_amount: float = Field(default=0.0)
    max_discount_amount: Optional[float] = None  # Cap for percentage coupons

    # Usage Limits
    usage_limit: int = Field(default=1)
    used_count: int = Field(default=0)

    # Validity
    valid_from: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    valid_until: datetime

    # Restrictions, empty means unrestricted
    applicable_categories: List[int] = Field(default=[], sa_column=Column(JSON))
    applicable_products: List[int] = Field(default=[], sa_column=Column(JSON))

    # Status
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "discountType": self.discount_type,
            "discountValue": self.discount_value,
            "minOrderAmount": self.min_order_amount,
            "maxDiscountAmount": self.max_discount_amount,
            "usageLimit": self.usage_limit,
            "usedCount": self.used_count,
            "remainingUses": rules.remaining_uses(self),
            "validFrom": self.valid_from,
            "validUntil": self.valid_until,
            "applicableCategories": self.applicable_categories or [],
            "applicableProducts": self.applicable_products or [],
            "isActive": self.is_active,
            "isCurrentlyValid": rules.is_currently_valid(self),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def as_public(self):
        return {
            "code": self.code,
            "description": self.description,
            "discountType": self.discount_type,
            "discountValue": self.discount_value,
            "minOrderAmount": self.min_order_amount,
            "maxDiscountAmount": self.max_discount_amount,
            "validUntil": self.valid_until,
        }

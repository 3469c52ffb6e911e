from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlmodel import Session

from shoppers.core.pagination import Page
from shoppers.core.responses import ApiModel, UtcDatetime, envelope
from shoppers.db.session import get_session
from shoppers.models.coupon import Coupon, CouponType
from shoppers.models.user import User
from shoppers.routers.auth import get_admin_user, get_verified_user
from shoppers.services.coupon import CouponService

router = APIRouter()

class ApplyCoupon(ApiModel):
    code: str = Field(min_length=3, max_length=20)

class CouponCreate(ApiModel):
    code: str = Field(min_length=3, max_length=20)
    description: str = Field(default="", max_length=500)
    discount_type: CouponType
    discount_value: float = Field(ge=0)
    min_order_amount: float = Field(default=0, ge=0)
    max_discount_amount: Optional[float] = Field(default=None, ge=0)
    usage_limit: int = Field(default=1, ge=1)
    valid_from: Optional[UtcDatetime] = None
    valid_until: UtcDatetime
    applicable_categories: List[int] = []
    applicable_products: List[int] = []
    is_active: bool = True

class CouponUpdate(ApiModel):
    code: Optional[str] = Field(default=None, min_length=3, max_length=20)
    description: Optional[str] = Field(default=None, max_length=500)
    discount_type: Optional[CouponType] = None
    discount_value: Optional[float] = Field(default=None, ge=0)
    min_order_amount: Optional[float] = Field(default=None, ge=0)
    max_discount_amount: Optional[float] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, ge=1)
    valid_from: Optional[UtcDatetime] = None
    valid_until: Optional[UtcDatetime] = None
    applicable_categories: Optional[List[int]] = None
    applicable_products: Optional[List[int]] = None
    is_active: Optional[bool] = None

class BulkCreate(ApiModel):
    coupons: List[dict] = Field(min_length=1, max_length=50)

class GenerateCodes(ApiModel):
    count: int = Field(default=10, ge=1, le=100)
    prefix: str = Field(default="", max_length=5)
    length: int = Field(default=8, ge=4, le=15)

def get_coupon_service(session: Session = Depends(get_session)) -> CouponService:
    return CouponService(session)

def _coupon_fields(data: ApiModel, **kwargs) -> dict:
    fields = data.model_dump(**kwargs)
    if isinstance(fields.get("discount_type"), CouponType):
        fields["discount_type"] = fields["discount_type"].value
    return fields

def _parse_bulk_item(raw: dict) -> dict:
    return _coupon_fields(CouponCreate.model_validate(raw))

def _summary(coupon: Optional[Coupon]) -> Optional[dict]:
    if coupon is None:
        return None
    return {
        "code": coupon.code,
        "description": coupon.description,
        "discountType": coupon.discount_type,
        "discountValue": coupon.discount_value,
        "minOrderAmount": coupon.min_order_amount,
        "maxDiscountAmount": coupon.max_discount_amount,
    }

# Customer routes

@router.post("/apply")
def apply_coupon(
    data: ApplyCoupon,
    current_user: User = Depends(get_verified_user),
    service: CouponService = Depends(get_coupon_service)
):
    return envelope("Coupon applied successfully", service.apply_coupon(data.code, current_user.id))

@router.delete("/remove")
def remove_coupon(current_user: User = Depends(get_verified_user),
                  service: CouponService = Depends(get_coupon_service)):
    service.remove_coupon(current_user.id)
    return envelope("Coupon removed successfully")

@router.get("/validate/{code}")
def validate_coupon(
    code: str,
    current_user: User = Depends(get_verified_user),
    service: CouponService = Depends(get_coupon_service)
):
    check, coupon = service.validate_for_user(code, current_user.id)
    return envelope("Coupon is valid" if check.valid else "Coupon is invalid", {
        "valid": check.valid,
        "discount": check.discount or 0,
        "reason": check.reason,
        "coupon": _summary(coupon),
    })

@router.get("/available")
def available_coupons(current_user: User = Depends(get_verified_user),
                      service: CouponService = Depends(get_coupon_service)):
    coupons = service.available_for_user(current_user.id)
    return envelope("Available coupons retrieved successfully", {
        "coupons": [c.as_public() for c in coupons],
        "count": len(coupons),
    })

@router.get("/public")
def public_coupons(service: CouponService = Depends(get_coupon_service)):
    coupons = service.active_coupons()
    return envelope("Active coupons retrieved successfully", {
        "coupons": [c.as_public() for c in coupons],
        "count": len(coupons),
    })

# Admin routes

@router.post("/", status_code=201)
def create_coupon(
    data: CouponCreate,
    admin: User = Depends(get_admin_user),
    service: CouponService = Depends(get_coupon_service)
):
    coupon = service.create_coupon(_coupon_fields(data))
    return envelope("Coupon created successfully", coupon.as_api())

@router.get("/")
def read_coupons(
    page: int = 1,
    limit: int = 10,
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    discount_type: Optional[CouponType] = Query(default=None, alias="discountType"),
    search: Optional[str] = None,
    admin: User = Depends(get_admin_user),
    service: CouponService = Depends(get_coupon_service)
):
    paging = Page(page, limit)
    coupons, total = service.list_coupons(
        paging, is_active=is_active, discount_type=discount_type.value if discount_type else None, search=search
    )
    return envelope("Coupons retrieved successfully", {
        "coupons": [c.as_api() for c in coupons],
        "pagination": paging.meta(total),
    })

@router.get("/analytics")
def coupon_analytics(admin: User = Depends(get_admin_user), service: CouponService = Depends(get_coupon_service)):
    return envelope("Coupon analytics retrieved successfully", service.analytics())

@router.post("/bulk")
def bulk_create_coupons(
    data: BulkCreate,
    admin: User = Depends(get_admin_user),
    service: CouponService = Depends(get_coupon_service)
):
    result = service.bulk_create(data.coupons, _parse_bulk_item)
    return envelope(f"Bulk creation completed: {result['successful']} successful, {len(result['failed'])} failed", result)

@router.post("/generate-codes")
def generate_coupon_codes(
    data: GenerateCodes,
    admin: User = Depends(get_admin_user),
    service: CouponService = Depends(get_coupon_service)
):
    codes = service.generate_codes(data.count, data.prefix, data.length)
    return envelope("Coupon codes generated successfully", {"codes": codes, "count": len(codes)})

@router.get("/{coupon_id}")
def read_coupon(coupon_id: int, admin: User = Depends(get_admin_user),
                service: CouponService = Depends(get_coupon_service)):
    return envelope("Coupon retrieved successfully", service.get_coupon(coupon_id).as_api())

@router.put("/{coupon_id}")
def update_coupon(
    coupon_id: int,
    data: CouponUpdate,
    admin: User = Depends(get_admin_user),
    service: CouponService = Depends(get_coupon_service)
):
    coupon = service.update_coupon(coupon_id, _coupon_fields(data, exclude_unset=True))
    return envelope("Coupon updated successfully", coupon.as_api())

@router.delete("/{coupon_id}")
def delete_coupon(coupon_id: int, admin: User = Depends(get_admin_user),
                  service: CouponService = Depends(get_coupon_service)):
    service.delete_coupon(coupon_id)
    return envelope("Coupon deleted successfully")

@router.patch("/{coupon_id}/toggle")
def toggle_coupon(coupon_id: int, admin: User = Depends(get_admin_user),
                  service: CouponService = Depends(get_coupon_service)):
    coupon = service.toggle_status(coupon_id)
    return envelope(f"Coupon {'activated' if coupon.is_active else 'deactivated'} successfully", coupon.as_api())

from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import Field
from sqlmodel import Session

from shoppers.core.pagination import Page
from shoppers.core.responses import ApiModel, envelope
from shoppers.db.session import get_session
from shoppers.models.order import PaymentMethod
from shoppers.models.user import User
from shoppers.routers.auth import get_current_user
from shoppers.services.order import OrderService

router = APIRouter()

class ShippingAddress(ApiModel):
    name: str
    phone: str = Field(pattern=r"^\+?[0-9]{10,13}$")
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    pincode: str = Field(pattern=r"^[0-9]{6}$")
    landmark: Optional[str] = None

class OrderCreate(ApiModel):
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = PaymentMethod.COD
    coupon_code: Optional[str] = None

class CancelRequest(ApiModel):
    reason: Optional[str] = Field(default=None, max_length=500)

class ReturnRequest(ApiModel):
    reason: str = Field(min_length=3, max_length=500)

def get_order_service(session: Session = Depends(get_session)) -> OrderService:
    return OrderService(session)

@router.post("/", status_code=201)
def create_order(
    data: OrderCreate,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    order = service.create_order(
        current_user, data.shipping_address.model_dump(), data.payment_method.value, data.coupon_code
    )
    return envelope("Order placed successfully", order.as_api())

@router.get("/")
def read_my_orders(
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    paging = Page(page, limit)
    orders, total = service.list_user_orders(current_user.id, paging, status)
    return envelope("Orders retrieved successfully", {
        "orders": [o.as_api() for o in orders],
        "pagination": paging.meta(total),
    })

@router.get("/{order_number}")
def read_order(
    order_number: str,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    return envelope("Order retrieved successfully", service.get_order(order_number, current_user.id).as_api())

@router.put("/{order_number}/cancel")
def cancel_order(
    order_number: str,
    data: Optional[CancelRequest] = None,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    order = service.cancel_order(current_user.id, order_number, data.reason if data else None)
    return envelope("Order cancelled successfully", order.as_api())

@router.post("/{order_number}/return")
def request_return(
    order_number: str,
    data: ReturnRequest,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    order = service.request_return(current_user.id, order_number, data.reason)
    return envelope("Return requested successfully", order.as_api())

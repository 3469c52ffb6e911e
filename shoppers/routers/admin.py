import logging
import time
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from shoppers.core.pagination import Page
from shoppers.core.responses import ApiModel, UtcDatetime, envelope
from shoppers.db.session import get_session
from shoppers.models.order import OrderStatus, PaymentStatus
from shoppers.models.user import User, UserRole
from shoppers.routers.auth import get_admin_user
from shoppers.services.order import OrderService
from shoppers.services.payment import PaymentService
from shoppers.services.product import ProductService
from shoppers.services.user import UserService

logger = logging.getLogger(__name__)

router = APIRouter()

STARTED_AT = time.monotonic()

class UserUpdate(ApiModel):
    is_active: Optional[bool] = None
    role: Optional[UserRole] = None

class OrderStatusUpdate(ApiModel):
    status: OrderStatus
    tracking_number: Optional[str] = None

class PaymentStatusUpdate(ApiModel):
    payment_status: PaymentStatus
    payment_id: Optional[str] = None

class RefundRequest(ApiModel):
    reason: Optional[str] = Field(default=None, max_length=500)

def get_user_service(session: Session = Depends(get_session)) -> UserService:
    return UserService(session)

def get_order_service(session: Session = Depends(get_session)) -> OrderService:
    return OrderService(session)

def get_payment_service(session: Session = Depends(get_session)) -> PaymentService:
    return PaymentService(session)

def get_product_service(session: Session = Depends(get_session)) -> ProductService:
    return ProductService(session)

@router.get("/me")
def get_current_admin(admin: User = Depends(get_admin_user)):
    """Get current admin profile"""
    return envelope("Admin profile", admin.as_api())

# Users

@router.get("/users")
def read_users(
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    admin: User = Depends(get_admin_user),
    service: UserService = Depends(get_user_service)
):
    paging = Page(page, limit)
    users, total = service.list_users(paging, search, role.value if role else None, is_active)
    return envelope("Users retrieved successfully", {
        "users": [u.as_api() for u in users],
        "pagination": paging.meta(total),
    })

@router.get("/users/{user_id}")
def read_user(user_id: int, admin: User = Depends(get_admin_user),
              service: UserService = Depends(get_user_service)):
    return envelope("User retrieved successfully", service.get_user_by_id(user_id).as_api())

@router.patch("/users/{user_id}")
def update_user(
    user_id: int,
    data: UserUpdate,
    admin: User = Depends(get_admin_user),
    service: UserService = Depends(get_user_service)
):
    user = service.update_user_status(user_id, data.is_active, data.role.value if data.role else None)
    return envelope("User updated successfully", user.as_api())

# Catalog

@router.get("/products")
def read_all_products(
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    category: Optional[int] = None,
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    sort: str = "newest",
    admin: User = Depends(get_admin_user),
    service: ProductService = Depends(get_product_service)
):
    """Product listing including inactive products."""
    paging = Page(page, limit)
    products, total = service.list_products(
        paging, search=search, category_id=category, is_active=is_active, sort=sort
    )
    return envelope("Products retrieved successfully", {
        "products": [p.as_api() for p in products],
        "pagination": paging.meta(total),
    })

@router.get("/products/{product_id}")
def read_any_product(product_id: int, admin: User = Depends(get_admin_user),
                     service: ProductService = Depends(get_product_service)):
    return envelope("Product retrieved successfully", service.get_product(product_id).as_api())

# Orders

@router.get("/orders")
def read_orders(
    page: int = 1,
    limit: int = 20,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = Query(default=None, alias="paymentStatus"),
    search: Optional[str] = None,
    admin: User = Depends(get_admin_user),
    service: OrderService = Depends(get_order_service)
):
    paging = Page(page, limit)
    orders, total = service.list_orders(
        paging,
        status=status.value if status else None,
        payment_status=payment_status.value if payment_status else None,
        search=search,
    )
    return envelope("Orders retrieved successfully", {
        "orders": [o.as_api() for o in orders],
        "pagination": paging.meta(total),
    })

@router.get("/orders/{order_number}")
def read_order(order_number: str, admin: User = Depends(get_admin_user),
               service: OrderService = Depends(get_order_service)):
    return envelope("Order retrieved successfully", service.get_order(order_number).as_api())

@router.put("/orders/{order_number}/status")
def update_order_status(
    order_number: str,
    data: OrderStatusUpdate,
    admin: User = Depends(get_admin_user),
    service: OrderService = Depends(get_order_service)
):
    order = service.update_status(order_number, data.status.value, data.tracking_number)
    return envelope("Order status updated successfully", order.as_api())

@router.put("/orders/{order_number}/payment")
def update_order_payment(
    order_number: str,
    data: PaymentStatusUpdate,
    admin: User = Depends(get_admin_user),
    service: OrderService = Depends(get_order_service)
):
    order = service.update_payment(order_number, data.payment_status.value, data.payment_id)
    return envelope("Payment status updated successfully", order.as_api())

@router.post("/orders/{order_number}/refund")
def refund_order(
    order_number: str,
    data: Optional[RefundRequest] = None,
    admin: User = Depends(get_admin_user),
    service: PaymentService = Depends(get_payment_service)
):
    order = service.refund(order_number, data.reason if data else None)
    return envelope("Order refunded successfully", order.as_api())

# Bulk operations

class BulkOrderStatus(ApiModel):
    order_numbers: List[str] = Field(min_length=1, max_length=100)
    status: OrderStatus

class BulkProductStatus(ApiModel):
    product_ids: List[int] = Field(min_length=1, max_length=100)
    is_active: bool

@router.post("/bulk/orders/update-status")
def bulk_update_order_status(
    data: BulkOrderStatus,
    admin: User = Depends(get_admin_user),
    service: OrderService = Depends(get_order_service)
):
    result = service.bulk_update_status(data.order_numbers, data.status.value)
    return envelope(f"{result['successful']} of {result['total']} orders updated", result)

@router.post("/bulk/products/update-status")
def bulk_update_product_status(
    data: BulkProductStatus,
    admin: User = Depends(get_admin_user),
    service: ProductService = Depends(get_product_service)
):
    result = service.bulk_set_status(data.product_ids, data.is_active)
    return envelope(f"{result['updated']} products updated successfully", result)

# Exports

@router.get("/export/orders")
def export_orders(
    start_date: Optional[UtcDatetime] = Query(default=None, alias="startDate"),
    end_date: Optional[UtcDatetime] = Query(default=None, alias="endDate"),
    admin: User = Depends(get_admin_user),
    service: OrderService = Depends(get_order_service)
):
    orders = service.export_orders(start_date, end_date)
    return envelope("Orders exported successfully", {"orders": orders, "count": len(orders)})

@router.get("/export/users")
def export_users(admin: User = Depends(get_admin_user), service: UserService = Depends(get_user_service)):
    users = [u.as_api() for u in service.export_users()]
    return envelope("Users exported successfully", {"users": users, "count": len(users)})

# System

@router.get("/system/health")
def system_health(admin: User = Depends(get_admin_user), session: Session = Depends(get_session)):
    try:
        session.connection().execute(text("SELECT 1")).scalar_one()
        database = "connected"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        database = "disconnected"
    return envelope("System health", {
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
        "uptime": f"{int((time.monotonic() - STARTED_AT) // 60)} minutes",
        "timestamp": datetime.now(timezone.utc),
    })

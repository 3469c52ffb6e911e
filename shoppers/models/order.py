from typing import List, Optional
from datetime import datetime, timezone
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import JSON
from enum import Enum

class PaymentMethod(str, Enum):
    COD = "cod"
    CARD = "card"
    UPI = "upi"
    NETBANKING = "netbanking"
    WALLET = "wallet"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURN_REQUESTED = "return_requested"
    RETURNED = "returned"

# Orders the customer may still cancel
CANCELLABLE_STATUSES = (
    OrderStatus.PENDING.value,
    OrderStatus.CONFIRMED.value,
    OrderStatus.PROCESSING.value,
)

class OrderItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    product_id: int = Field(foreign_key="product.id")
    variant_id: int = Field(foreign_key="productvariant.id")
    name: str = ""
    sku: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    quantity: int
    price: float
    original_price: float

    def as_api(self):
        return {
            "id": self.id,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "name": self.name,
            "sku": self.sku,
            "size": self.size,
            "color": self.color,
            "quantity": self.quantity,
            "price": self.price,
            "originalPrice": self.original_price,
        }

class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    # e.g. ORD1734512345001
    order_number: str = Field(unique=True, index=True)

    # Amounts
    subtotal: float = Field(default=0.0)
    discount: float = Field(default=0.0)
    coupon_code: Optional[str] = None
    coupon_discount: float = Field(default=0.0)
    delivery_fee: float = Field(default=0.0)
    platform_fee: float = Field(default=0.0)
    total_amount: float = Field(default=0.0)

    # Payment Info
    payment_method: str = Field(default=PaymentMethod.COD.value)
    payment_status: str = Field(default=PaymentStatus.PENDING.value, index=True)
    payment_id: Optional[str] = None

    # Order Status
    status: str = Field(default=OrderStatus.PENDING.value, index=True)
    cancellation_reason: Optional[str] = None
    return_reason: Optional[str] = None
    return_requested_at: Optional[datetime] = None

    # Shipping
    tracking_number: Optional[str] = None
    shipping_address: dict = Field(default={}, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    # Relationships
    items: List["OrderItem"] = Relationship(
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "OrderItem.id"}
    )

    def as_api(self):
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "userId": self.user_id,
            "items": [i.as_api() for i in self.items],
            "subtotal": self.subtotal,
            "discount": self.discount,
            "couponCode": self.coupon_code,
            "couponDiscount": self.coupon_discount,
            "deliveryFee": self.delivery_fee,
            "platformFee": self.platform_fee,
            "totalAmount": self.total_amount,
            "paymentMethod": self.payment_method,
            "paymentStatus": self.payment_status,
            "paymentId": self.payment_id,
            "status": self.status,
            "cancellationReason": self.cancellation_reason,
            "returnReason": self.return_reason,
            "returnRequestedAt": self.return_requested_at,
            "trackingNumber": self.tracking_number,
            "shippingAddress": self.shipping_address or {},
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "deliveredAt": self.delivered_at,
            "cancelledAt": self.cancelled_at,
        }

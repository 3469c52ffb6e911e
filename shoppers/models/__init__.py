# Import all models to register them with SQLModel
from shoppers.models.user import User, UserRole, ADMIN_ROLES
from shoppers.models.category import Category
from shoppers.models.product import Product, ProductVariant
from shoppers.models.cart import Cart, CartItem, WishlistItem
from shoppers.models.coupon import Coupon, CouponType
from shoppers.models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus, CANCELLABLE_STATUSES
from shoppers.models.payment import Payment
from shoppers.models.shipping import ShippingProvider, ShippingRate, Shipment, TrackingEvent
from shoppers.models.support import SupportTicket, SupportMessage
from shoppers.models.banner import Banner, DisplayType

__all__ = [
    "User",
    "UserRole",
    "ADMIN_ROLES",
    "Category",
    "Product",
    "ProductVariant",
    "Cart",
    "CartItem",
    "WishlistItem",
    "Coupon",
    "CouponType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "CANCELLABLE_STATUSES",
    "Payment",
    "ShippingProvider",
    "ShippingRate",
    "Shipment",
    "TrackingEvent",
    "SupportTicket",
    "SupportMessage",
    "Banner",
    "DisplayType",
]

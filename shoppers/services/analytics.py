from datetime import datetime, timedelta, timezone
from typing import Optional
from sqlalchemy import func
from sqlmodel import Session, select

from shoppers.core.money import round_money
from shoppers.domain.support import SupportStatus
from shoppers.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from shoppers.models.product import Product
from shoppers.models.support import SupportTicket
from shoppers.models.user import User
from shoppers.services.coupon import CouponService
from shoppers.services.inventory import InventoryService

OPEN_TICKET_STATUSES = (
    SupportStatus.OPEN.value,
    SupportStatus.IN_PROGRESS.value,
    SupportStatus.WAITING_FOR_CUSTOMER.value,
)

class AnalyticsService:
    def __init__(self, session: Session):
        self.session = session

    def _count(self, model, *where) -> int:
        return self.session.exec(select(func.count()).select_from(model).where(*where)).one()

    def _revenue(self, *where) -> float:
        total = self.session.exec(
            select(func.coalesce(func.sum(Order.total_amount), 0))
            .where(Order.status != OrderStatus.CANCELLED.value, *where)
        ).one()
        return round_money(total)

    def dashboard(self) -> dict:
        """Headline counts for the admin landing page."""
        thirty_days_ago = datetime.now(timezone.utc) - timedelta(days=30)
        sixty_days_ago = datetime.now(timezone.utc) - timedelta(days=60)

        monthly_revenue = self._revenue(Order.created_at >= thirty_days_ago)
        previous_revenue = self._revenue(Order.created_at >= sixty_days_ago, Order.created_at < thirty_days_ago)
        growth = ((monthly_revenue - previous_revenue) / previous_revenue * 100) if previous_revenue else 0.0

        recent = self.session.exec(select(Order).order_by(Order.created_at.desc()).limit(5)).all()
        inventory = InventoryService(self.session).overview()

        return {
            "totalUsers": self._count(User, User.is_active == True),
            "totalProducts": self._count(Product, Product.is_active == True),
            "totalOrders": self._count(Order),
            "pendingOrders": self._count(Order, Order.status == OrderStatus.PENDING.value),
            "pendingPayments": self._count(Order, Order.payment_status == PaymentStatus.PENDING.value,
                                           Order.status != OrderStatus.CANCELLED.value),
            "openTickets": self._count(SupportTicket, SupportTicket.status.in_(OPEN_TICKET_STATUSES)),
            "totalRevenue": self._revenue(),
            "monthlyRevenue": monthly_revenue,
            "monthlyGrowth": round_money(growth),
            "lowStockItems": inventory["lowStockItems"] + inventory["criticalStockItems"],
            "outOfStockItems": inventory["outOfStockItems"],
            "recentOrders": [
                {
                    "orderNumber": o.order_number,
                    "totalAmount": o.total_amount,
                    "status": o.status,
                    "paymentStatus": o.payment_status,
                    "createdAt": o.created_at,
                }
                for o in recent
            ],
        }

    def sales(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
        where = []
        if start:
            where.append(Order.created_at >= start)
        if end:
            where.append(Order.created_at <= end)

        by_status = {s.value: 0 for s in OrderStatus}
        rows = self.session.exec(
            select(Order.status, func.count()).where(*where).group_by(Order.status)
        ).all()
        by_status.update({status: count for status, count in rows})

        revenue = self._revenue(*where)
        placed = sum(by_status.values()) - by_status[OrderStatus.CANCELLED.value]
        discounts = self.session.exec(
            select(func.coalesce(func.sum(Order.coupon_discount), 0))
            .where(Order.status != OrderStatus.CANCELLED.value, *where)
        ).one()

        top = self.session.exec(
            select(OrderItem.product_id, OrderItem.name, func.sum(OrderItem.quantity),
                   func.sum(OrderItem.quantity * OrderItem.price))
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.status != OrderStatus.CANCELLED.value, *where)
            .group_by(OrderItem.product_id, OrderItem.name)
            .order_by(func.sum(OrderItem.quantity).desc())
            .limit(10)
        ).all()

        return {
            "totalRevenue": revenue,
            "totalOrders": placed,
            "averageOrderValue": round_money(revenue / placed) if placed else 0.0,
            "couponDiscounts": round_money(discounts),
            "ordersByStatus": by_status,
            "topProducts": [
                {"productId": pid, "name": name, "quantity": qty, "revenue": round_money(amount)}
                for pid, name, qty, amount in top
            ],
        }

    def coupons(self) -> dict:
        return CouponService(self.session).analytics()

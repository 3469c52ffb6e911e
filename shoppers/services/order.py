import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import func
from sqlmodel import Session, select

from shoppers.core.filters import FilterBuilder, to_clause
from shoppers.core.pagination import Page
from shoppers.domain import checkout
from shoppers.domain import coupons as coupon_rules
from shoppers.models.order import (
    CANCELLABLE_STATUSES, Order, OrderItem, OrderStatus, PaymentStatus,
)
from shoppers.models.user import User
from shoppers.services.cart import CartService
from shoppers.services.coupon import CouponService
from shoppers.services.inventory import InventoryService

logger = logging.getLogger(__name__)

class OrderService:
    def __init__(self, session: Session, carts: Optional[CartService] = None,
                 coupons: Optional[CouponService] = None, inventory: Optional[InventoryService] = None):
        self.session = session
        self.carts = carts or CartService(session)
        self.coupons = coupons or CouponService(session, self.carts)
        self.inventory = inventory or InventoryService(session)

    def create_order(self, user: User, shipping_address: dict, payment_method: str,
                     coupon_code: Optional[str] = None) -> Order:
        cart = self.carts.get_cart(user.id)
        selected = cart.selected_items
        if not selected:
            raise HTTPException(status_code=400, detail="Cart is empty")

        products = self.carts.products_for(cart)
        for item in selected:
            product = products.get(item.product_id)
            if product is None or not product.is_active:
                raise HTTPException(status_code=400, detail="Some items in your cart are no longer available")

        ctx = self.carts.context(cart)
        code = coupon_code or cart.applied_coupon
        coupon_discount = 0.0
        coupon = None
        if code:
            coupon = self.coupons.get_by_code(code)
            if coupon is None:
                raise HTTPException(status_code=400, detail="Invalid coupon code")
            check = coupon_rules.evaluate(coupon, ctx.total, ctx.category_ids, ctx.product_ids)
            if not check.valid:
                raise HTTPException(status_code=400, detail=check.reason)
            coupon_discount = check.discount

        totals = cart.totals()
        amounts = checkout.order_amounts(totals["subtotal"], totals["totalAmount"], coupon_discount)

        sequence = self.session.exec(select(func.count()).select_from(Order)).one() + 1
        order = Order(
            user_id=user.id,
            order_number=checkout.generate_order_number(sequence),
            subtotal=amounts.subtotal,
            discount=amounts.discount,
            coupon_code=coupon.code if coupon else None,
            coupon_discount=amounts.coupon_discount,
            delivery_fee=amounts.delivery_fee,
            platform_fee=amounts.platform_fee,
            total_amount=amounts.total_amount,
            payment_method=payment_method,
            shipping_address=shipping_address,
        )
        for item in selected:
            product = products[item.product_id]
            variant = next((v for v in product.variants if v.id == item.variant_id), None)
            order.items.append(OrderItem(
                product_id=item.product_id,
                variant_id=item.variant_id,
                name=product.name,
                sku=variant.sku if variant else None,
                size=item.size,
                color=variant.color if variant else None,
                quantity=item.quantity,
                price=item.price,
                original_price=item.original_price,
            ))

        try:
            self.inventory.reserve(self._stock_items(order))
            if coupon:
                self.coupons.increment_usage(coupon.code)
            self.carts.remove_ordered_items(cart)
            self.session.add(order)
            self.session.commit()
        except HTTPException:
            self.session.rollback()
            raise

        self.session.refresh(order)
        logger.info("Order %s placed by user %s: total %.2f", order.order_number, user.id, order.total_amount)
        return order

    def list_user_orders(self, user_id: int, page: Page, status: Optional[str] = None) -> tuple[List[Order], int]:
        return self._list(page, FilterBuilder().equals("user_id", user_id).equals("status", status))

    def list_orders(self, page: Page, status: Optional[str] = None, payment_status: Optional[str] = None,
                    search: Optional[str] = None) -> tuple[List[Order], int]:
        return self._list(
            page,
            FilterBuilder().equals("status", status).equals("payment_status", payment_status)
            .text(search, "order_number"),
        )

    def _list(self, page: Page, builder: FilterBuilder) -> tuple[List[Order], int]:
        clause = to_clause(builder.build(), Order)
        total = self.session.exec(select(func.count()).select_from(Order).where(clause)).one()
        orders = self.session.exec(
            select(Order).where(clause).order_by(Order.created_at.desc(), Order.id.desc())
            .offset(page.offset).limit(page.limit)
        ).all()
        return orders, total

    def get_order(self, order_number: str, user_id: Optional[int] = None) -> Order:
        query = select(Order).where(Order.order_number == order_number)
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        order = self.session.exec(query).first()
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        return order

    def cancel_order(self, user_id: int, order_number: str, reason: Optional[str] = None) -> Order:
        order = self.get_order(order_number, user_id)
        if order.status not in CANCELLABLE_STATUSES:
            raise HTTPException(status_code=400, detail="Order cannot be cancelled at this stage")
        self._cancel(order, reason or "Cancelled by customer")
        self.session.commit()
        self.session.refresh(order)
        return order

    def update_status(self, order_number: str, status: str, tracking_number: Optional[str] = None) -> Order:
        order = self.get_order(order_number)
        if order.status == OrderStatus.CANCELLED.value and status != OrderStatus.CANCELLED.value:
            raise HTTPException(status_code=400, detail="Cancelled orders cannot be updated")

        if status == OrderStatus.CANCELLED.value:
            if order.status != OrderStatus.CANCELLED.value:
                self._cancel(order, "Cancelled by admin")
        else:
            order.status = status
            if status == OrderStatus.DELIVERED.value:
                order.delivered_at = datetime.now(timezone.utc)
                order.payment_status = PaymentStatus.COMPLETED.value

        if tracking_number:
            order.tracking_number = tracking_number
        order.updated_at = datetime.now(timezone.utc)
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        logger.info("Order %s status -> %s", order.order_number, order.status)
        return order

    def bulk_update_status(self, order_numbers: List[str], status: str) -> dict:
        """Apply one status to many orders; an order that can't move is reported and skipped."""
        if not order_numbers:
            raise HTTPException(status_code=400, detail="Order numbers are required")
        successful = 0
        failed = []
        for order_number in order_numbers:
            try:
                self.update_status(order_number, status)
            except HTTPException as exc:
                self.session.rollback()
                failed.append({"orderNumber": order_number, "error": exc.detail})
                continue
            successful += 1

        total = len(order_numbers)
        logger.info("Bulk order status -> %s: %d/%d succeeded", status, successful, total)
        return {
            "successful": successful,
            "failed": failed,
            "total": total,
            "successRate": f"{(successful / total * 100) if total else 0:.1f}%",
        }

    def export_orders(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[dict]:
        query = select(Order, User).where(Order.user_id == User.id)
        if start is not None:
            query = query.where(Order.created_at >= start)
        if end is not None:
            query = query.where(Order.created_at <= end)
        rows = self.session.exec(query.order_by(Order.created_at.desc(), Order.id.desc())).all()
        exported = []
        for order, customer in rows:
            data = order.as_api()
            data["customer"] = {"name": customer.name, "email": customer.email, "phone": customer.phone}
            exported.append(data)
        return exported

    def update_payment(self, order_number: str, payment_status: str, payment_id: Optional[str] = None,
                       user_id: Optional[int] = None) -> Order:
        order = self.get_order(order_number, user_id)
        if order.status == OrderStatus.CANCELLED.value and payment_status == PaymentStatus.COMPLETED.value:
            raise HTTPException(status_code=400, detail="Cannot take payment for a cancelled order")

        order.payment_status = payment_status
        if payment_id:
            order.payment_id = payment_id
        if payment_status == PaymentStatus.COMPLETED.value and order.status == OrderStatus.PENDING.value:
            order.status = OrderStatus.CONFIRMED.value
        order.updated_at = datetime.now(timezone.utc)
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order

    def request_return(self, user_id: int, order_number: str, reason: str) -> Order:
        order = self.get_order(order_number, user_id)
        if order.status != OrderStatus.DELIVERED.value:
            raise HTTPException(status_code=400, detail="Only delivered orders can be returned")
        if order.return_requested_at:
            raise HTTPException(status_code=400, detail="Return already requested for this order")
        if order.delivered_at and datetime.now(timezone.utc) - order.delivered_at > timedelta(days=checkout.RETURN_WINDOW_DAYS):
            raise HTTPException(status_code=400, detail=f"Return window has expired ({checkout.RETURN_WINDOW_DAYS} days)")

        order.status = OrderStatus.RETURN_REQUESTED.value
        order.return_reason = reason
        order.return_requested_at = datetime.now(timezone.utc)
        order.updated_at = datetime.now(timezone.utc)
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order

    def _cancel(self, order: Order, reason: str):
        """Cancel in the session: restock items and give the coupon use back. Caller commits."""
        self.inventory.release(self._stock_items(order))
        if order.coupon_code:
            self.coupons.decrement_usage(order.coupon_code)
        order.status = OrderStatus.CANCELLED.value
        order.cancellation_reason = reason
        order.cancelled_at = datetime.now(timezone.utc)
        if order.payment_status == PaymentStatus.COMPLETED.value:
            order.payment_status = PaymentStatus.REFUNDED.value
        order.updated_at = datetime.now(timezone.utc)
        self.session.add(order)
        logger.info("Order %s cancelled: %s", order.order_number, reason)

    @staticmethod
    def _stock_items(order: Order) -> List[dict]:
        return [
            {"product_id": i.product_id, "variant_id": i.variant_id, "quantity": i.quantity}
            for i in order.items
        ]

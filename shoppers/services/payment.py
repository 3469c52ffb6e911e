import logging
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import HTTPException
from sqlmodel import Session, select

from shoppers.core.config import settings
from shoppers.core.money import round_money
from shoppers.domain import checkout
from shoppers.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from shoppers.models.payment import Payment
from shoppers.services.order import OrderService

logger = logging.getLogger(__name__)

METHOD_NAMES = {
    PaymentMethod.COD: "Cash on Delivery",
    PaymentMethod.CARD: "Credit / Debit Card",
    PaymentMethod.UPI: "UPI",
    PaymentMethod.NETBANKING: "Net Banking",
    PaymentMethod.WALLET: "Wallet",
}

class PaymentService:
    def __init__(self, session: Session, orders: Optional[OrderService] = None):
        self.session = session
        self.orders = orders or OrderService(session)

    def methods(self) -> List[dict]:
        return [{"id": m.value, "name": METHOD_NAMES[m], "enabled": True} for m in PaymentMethod]

    def calculate_charges(self, amount: float) -> dict:
        delivery = checkout.delivery_fee(amount)
        platform = checkout.platform_fee(amount)
        return {
            "amount": round_money(amount),
            "deliveryFee": delivery,
            "platformFee": platform,
            "totalAmount": round_money(amount + delivery + platform),
            "freeDeliveryMinAmount": settings.FREE_DELIVERY_MIN_AMOUNT,
        }

    def verify_payment(self, user_id: int, order_number: str, payment_id: str,
                       payment_method: Optional[str] = None) -> Order:
        """Record a payment reported by the client and confirm the order."""
        order = self.orders.get_order(order_number, user_id)
        if order.payment_status == PaymentStatus.COMPLETED.value:
            raise HTTPException(status_code=400, detail="Order is already paid")
        if order.status == OrderStatus.CANCELLED.value:
            raise HTTPException(status_code=400, detail="Cannot take payment for a cancelled order")

        payment = Payment(
            order_id=order.id,
            payment_id=payment_id,
            amount=order.total_amount,
            payment_method=payment_method or order.payment_method,
            payment_status=PaymentStatus.COMPLETED.value,
        )
        self.session.add(payment)
        self.session.commit()
        logger.info("Payment %s recorded for order %s", payment_id, order_number)

        return self.orders.update_payment(order_number, PaymentStatus.COMPLETED.value, payment_id, user_id)

    def refund(self, order_number: str, reason: Optional[str] = None) -> Order:
        order = self.orders.get_order(order_number)
        if order.payment_status != PaymentStatus.COMPLETED.value:
            raise HTTPException(status_code=400, detail="Only completed payments can be refunded")

        payment = self.session.exec(
            select(Payment).where(Payment.order_id == order.id).order_by(Payment.created_at.desc())
        ).first()
        if payment:
            payment.payment_status = PaymentStatus.REFUNDED.value
            payment.error_message = reason
            payment.updated_at = datetime.now(timezone.utc)
            self.session.add(payment)
            self.session.commit()

        logger.info("Refunded order %s", order_number)
        return self.orders.update_payment(order_number, PaymentStatus.REFUNDED.value)

    def status(self, user_id: int, order_number: str) -> dict:
        order = self.orders.get_order(order_number, user_id)
        payments = self.session.exec(
            select(Payment).where(Payment.order_id == order.id).order_by(Payment.created_at)
        ).all()
        return {
            "orderNumber": order.order_number,
            "paymentStatus": order.payment_status,
            "paymentId": order.payment_id,
            "paymentMethod": order.payment_method,
            "amount": order.total_amount,
            "payments": [p.as_api() for p in payments],
        }

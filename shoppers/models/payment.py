from typing import Optional
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel

from shoppers.models.order import PaymentMethod, PaymentStatus

class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    order_id: int = Field(foreign_key="order.id", index=True)

    # Reference supplied by the payer, e.g. a UPI transaction id
    payment_id: Optional[str] = Field(default=None, index=True)

    # Payment Details
    amount: float
    payment_method: str = Field(default=PaymentMethod.COD.value)
    payment_status: str = Field(default=PaymentStatus.PENDING.value)

    # Metadata
    error_message: Optional[str] = None  # For failed payments

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_api(self):
        return {
            "id": self.id,
            "orderId": self.order_id,
            "paymentId": self.payment_id,
            "amount": self.amount,
            "paymentMethod": self.payment_method,
            "paymentStatus": self.payment_status,
            "errorMessage": self.error_message,
            "createdAt": self.created_at,
        }

from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import Field
from sqlmodel import Session

from shoppers.core.responses import ApiModel, envelope
from shoppers.db.session import get_session
from shoppers.models.order import PaymentMethod
from shoppers.models.user import User
from shoppers.routers.auth import get_current_user
from shoppers.services.payment import PaymentService

router = APIRouter()

class ChargesRequest(ApiModel):
    amount: float = Field(ge=0)

class PaymentVerify(ApiModel):
    order_number: str
    payment_id: str = Field(min_length=1)
    payment_method: Optional[PaymentMethod] = None

def get_payment_service(session: Session = Depends(get_session)) -> PaymentService:
    return PaymentService(session)

@router.get("/methods")
def read_payment_methods(service: PaymentService = Depends(get_payment_service)):
    return envelope("Payment methods retrieved successfully", service.methods())

@router.post("/calculate")
def calculate_charges(data: ChargesRequest, service: PaymentService = Depends(get_payment_service)):
    return envelope("Charges calculated successfully", service.calculate_charges(data.amount))

@router.post("/verify")
def verify_payment(
    data: PaymentVerify,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    """Record a completed payment against one of the user's orders."""
    method = data.payment_method.value if data.payment_method else None
    order = service.verify_payment(current_user.id, data.order_number, data.payment_id, method)
    return envelope("Payment verified successfully", order.as_api())

@router.get("/status/{order_number}")
def read_payment_status(
    order_number: str,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    return envelope("Payment status retrieved successfully", service.status(current_user.id, order_number))

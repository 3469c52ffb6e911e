from typing import Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session

from shoppers.core.responses import UtcDatetime, envelope
from shoppers.db.session import get_session
from shoppers.models.user import User
from shoppers.routers.auth import get_admin_user
from shoppers.services.analytics import AnalyticsService

router = APIRouter()

def get_analytics_service(session: Session = Depends(get_session)) -> AnalyticsService:
    return AnalyticsService(session)

@router.get("/dashboard")
def dashboard(admin: User = Depends(get_admin_user), service: AnalyticsService = Depends(get_analytics_service)):
    return envelope("Dashboard statistics retrieved successfully", service.dashboard())

@router.get("/sales")
def sales(
    start: Optional[UtcDatetime] = None,
    end: Optional[UtcDatetime] = None,
    admin: User = Depends(get_admin_user),
    service: AnalyticsService = Depends(get_analytics_service)
):
    return envelope("Sales summary retrieved successfully", service.sales(start, end))

@router.get("/coupons")
def coupons(admin: User = Depends(get_admin_user), service: AnalyticsService = Depends(get_analytics_service)):
    return envelope("Coupon analytics retrieved successfully", service.coupons())

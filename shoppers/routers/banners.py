from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlmodel import Session

from shoppers.core.pagination import Page
from shoppers.core.responses import ApiModel, UtcDatetime, envelope
from shoppers.db.session import get_session
from shoppers.models.banner import DisplayType
from shoppers.models.user import User
from shoppers.routers.auth import get_admin_user
from shoppers.services.banner import BannerService

router = APIRouter()

class BannerCreate(ApiModel):
    title: str = Field(min_length=1, max_length=100)
    subtitle: Optional[str] = Field(default=None, max_length=150)
    description: Optional[str] = Field(default=None, max_length=300)
    image: str = Field(min_length=1)
    link: Optional[str] = None
    button_text: Optional[str] = Field(default=None, max_length=30)
    display_type: DisplayType = DisplayType.CAROUSEL
    category_id: Optional[int] = None
    is_active: bool = True
    sort_order: int = Field(default=0, ge=0, alias="order")
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None

class BannerUpdate(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    subtitle: Optional[str] = Field(default=None, max_length=150)
    description: Optional[str] = Field(default=None, max_length=300)
    image: Optional[str] = None
    link: Optional[str] = None
    button_text: Optional[str] = Field(default=None, max_length=30)
    display_type: Optional[DisplayType] = None
    category_id: Optional[int] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = Field(default=None, ge=0, alias="order")
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None

class ReorderRequest(ApiModel):
    banner_ids: List[int] = Field(min_length=1)

def get_banner_service(session: Session = Depends(get_session)) -> BannerService:
    return BannerService(session)

def _banner_fields(data: ApiModel, **kwargs) -> dict:
    fields = data.model_dump(**kwargs)
    if isinstance(fields.get("display_type"), DisplayType):
        fields["display_type"] = fields["display_type"].value
    return fields

@router.get("/active")
def read_active_banners(
    display_type: Optional[DisplayType] = Query(default=None, alias="displayType"),
    service: BannerService = Depends(get_banner_service)
):
    banners = service.active_banners(display_type.value if display_type else None)
    return envelope("Active banners retrieved successfully", [b.as_api() for b in banners])

@router.get("/")
def read_banners(
    page: int = 1,
    limit: int = 20,
    admin: User = Depends(get_admin_user),
    service: BannerService = Depends(get_banner_service)
):
    paging = Page(page, limit)
    banners, total = service.list_banners(paging)
    return envelope("Banners retrieved successfully", {
        "banners": [b.as_api() for b in banners],
        "pagination": paging.meta(total),
    })

@router.post("/", status_code=201)
def create_banner(
    data: BannerCreate,
    admin: User = Depends(get_admin_user),
    service: BannerService = Depends(get_banner_service)
):
    return envelope("Banner created successfully", service.create_banner(_banner_fields(data)).as_api())

@router.put("/reorder")
def reorder_banners(
    data: ReorderRequest,
    admin: User = Depends(get_admin_user),
    service: BannerService = Depends(get_banner_service)
):
    banners = service.reorder(data.banner_ids)
    return envelope("Banners reordered successfully", [b.as_api() for b in banners])

@router.get("/{banner_id}")
def read_banner(banner_id: int, admin: User = Depends(get_admin_user),
                service: BannerService = Depends(get_banner_service)):
    return envelope("Banner retrieved successfully", service.get_banner(banner_id).as_api())

@router.put("/{banner_id}")
def update_banner(
    banner_id: int,
    data: BannerUpdate,
    admin: User = Depends(get_admin_user),
    service: BannerService = Depends(get_banner_service)
):
    banner = service.update_banner(banner_id, _banner_fields(data, exclude_unset=True))
    return envelope("Banner updated successfully", banner.as_api())

@router.patch("/{banner_id}/toggle")
def toggle_banner(banner_id: int, admin: User = Depends(get_admin_user),
                  service: BannerService = Depends(get_banner_service)):
    banner = service.toggle_status(banner_id)
    return envelope(f"Banner {'activated' if banner.is_active else 'deactivated'} successfully", banner.as_api())

@router.delete("/{banner_id}")
def delete_banner(banner_id: int, admin: User = Depends(get_admin_user),
                  service: BannerService = Depends(get_banner_service)):
    service.delete_banner(banner_id)
    return envelope("Banner deleted successfully")

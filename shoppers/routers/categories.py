from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlmodel import Session

from shoppers.core.responses import ApiModel, envelope
from shoppers.db.session import get_session
from shoppers.models.user import User
from shoppers.routers.auth import get_admin_user
from shoppers.services.category import CategoryService

router = APIRouter()

class CategoryCreate(ApiModel):
    name: str = Field(min_length=2, max_length=50)
    parent_id: Optional[int] = None
    description: Optional[str] = Field(default=None, max_length=500)
    image: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True

class CategoryUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    parent_id: Optional[int] = None
    description: Optional[str] = Field(default=None, max_length=500)
    image: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None

class StatusUpdate(ApiModel):
    is_active: Optional[bool] = None

def get_category_service(session: Session = Depends(get_session)) -> CategoryService:
    return CategoryService(session)

@router.get("/")
def read_categories(
    level: Optional[int] = Query(default=None, ge=1, le=3),
    parent_id: Optional[int] = Query(default=None, alias="parentId"),
    service: CategoryService = Depends(get_category_service)
):
    categories = service.list_categories(level=level, parent_id=parent_id, is_active=True)
    return envelope("Categories retrieved successfully", [c.as_api() for c in categories])

@router.get("/tree")
def read_category_tree(service: CategoryService = Depends(get_category_service)):
    return envelope("Category tree retrieved successfully", service.category_tree())

@router.get("/slug/{slug}")
def read_category_by_slug(slug: str, service: CategoryService = Depends(get_category_service)):
    return envelope("Category retrieved successfully", service.get_by_slug(slug).as_api())

@router.get("/{category_id}")
def read_category(category_id: int, service: CategoryService = Depends(get_category_service)):
    return envelope("Category retrieved successfully", service.get_category(category_id).as_api())

@router.post("/", status_code=201)
def create_category(
    data: CategoryCreate,
    admin: User = Depends(get_admin_user),
    service: CategoryService = Depends(get_category_service)
):
    category = service.create_category(**data.model_dump())
    return envelope("Category created successfully", category.as_api())

@router.put("/{category_id}")
def update_category(
    category_id: int,
    data: CategoryUpdate,
    admin: User = Depends(get_admin_user),
    service: CategoryService = Depends(get_category_service)
):
    category = service.update_category(category_id, data.model_dump(exclude_unset=True))
    return envelope("Category updated successfully", category.as_api())

@router.patch("/{category_id}/status")
def toggle_category_status(
    category_id: int,
    data: StatusUpdate,
    admin: User = Depends(get_admin_user),
    service: CategoryService = Depends(get_category_service)
):
    category = service.toggle_status(category_id, data.is_active)
    return envelope("Category status updated successfully", category.as_api())

@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    admin: User = Depends(get_admin_user),
    service: CategoryService = Depends(get_category_service)
):
    service.delete_category(category_id)
    return envelope("Category deleted successfully")

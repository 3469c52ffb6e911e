from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import Field, model_validator
from sqlmodel import Session

from shoppers.core.pagination import Page
from shoppers.core.responses import ApiModel, envelope
from shoppers.db.session import get_session
from shoppers.models.user import User
from shoppers.routers.auth import get_admin_user
from shoppers.services.product import ProductService

router = APIRouter()

class VariantIn(ApiModel):
    color: Optional[str] = None
    size: Optional[str] = None
    sku: str = Field(min_length=1)
    price: float = Field(ge=0)
    original_price: float = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    images: List[str] = []

    @model_validator(mode="after")
    def normalize_sku(self):
        self.sku = self.sku.strip().upper()
        return self

class ProductCreate(ApiModel):
    name: str = Field(min_length=2, max_length=200)
    description: Optional[str] = None
    brand: Optional[str] = None
    category_id: int
    images: List[str] = []
    tags: List[str] = []
    is_active: bool = True
    is_featured: bool = False
    variants: List[VariantIn] = Field(min_length=1)

class ProductUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    description: Optional[str] = None
    brand: Optional[str] = None
    category_id: Optional[int] = None
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    variants: Optional[List[VariantIn]] = None

class StatusUpdate(ApiModel):
    is_active: Optional[bool] = None

def get_product_service(session: Session = Depends(get_session)) -> ProductService:
    return ProductService(session)

@router.get("/")
def read_products(
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    category: Optional[int] = None,
    brand: Optional[str] = None,
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    featured: Optional[bool] = None,
    sort: str = "newest",
    service: ProductService = Depends(get_product_service)
):
    paging = Page(page, limit)
    products, total = service.list_products(
        paging, search=search, category_id=category, brand=brand, min_price=min_price,
        max_price=max_price, is_featured=featured, sort=sort,
    )
    return envelope("Products retrieved successfully", {
        "products": [p.as_api() for p in products],
        "pagination": paging.meta(total),
    })

@router.get("/featured")
def read_featured(limit: int = 8, service: ProductService = Depends(get_product_service)):
    return envelope("Featured products", [p.as_api() for p in service.featured(limit)])

@router.get("/brands")
def read_brands(service: ProductService = Depends(get_product_service)):
    return envelope("Brands retrieved successfully", service.brands())

@router.get("/slug/{slug}")
def read_product_by_slug(slug: str, service: ProductService = Depends(get_product_service)):
    return envelope("Product retrieved successfully", service.get_by_slug(slug).as_api())

@router.get("/{product_id}")
def read_product(product_id: int, service: ProductService = Depends(get_product_service)):
    return envelope("Product retrieved successfully", service.get_product(product_id, active_only=True).as_api())

@router.post("/", status_code=201)
def create_product(
    data: ProductCreate,
    admin: User = Depends(get_admin_user),
    service: ProductService = Depends(get_product_service)
):
    product = service.create_product(
        data.model_dump(exclude={"variants"}), [v.model_dump() for v in data.variants]
    )
    return envelope("Product created successfully", product.as_api())

@router.put("/{product_id}")
def update_product(
    product_id: int,
    data: ProductUpdate,
    admin: User = Depends(get_admin_user),
    service: ProductService = Depends(get_product_service)
):
    variants = [v.model_dump() for v in data.variants] if data.variants is not None else None
    product = service.update_product(product_id, data.model_dump(exclude={"variants"}, exclude_unset=True), variants)
    return envelope("Product updated successfully", product.as_api())

@router.patch("/{product_id}/status")
def toggle_product_status(
    product_id: int,
    data: StatusUpdate,
    admin: User = Depends(get_admin_user),
    service: ProductService = Depends(get_product_service)
):
    product = service.toggle_status(product_id, data.is_active)
    return envelope("Product status updated successfully", product.as_api(with_variants=False))

@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    admin: User = Depends(get_admin_user),
    service: ProductService = Depends(get_product_service)
):
    service.delete_product(product_id)
    return envelope("Product deleted successfully")

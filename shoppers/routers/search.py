from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from shoppers.core.pagination import Page
from shoppers.core.responses import envelope
from shoppers.db.session import get_session
from shoppers.services.product import ProductService

router = APIRouter()

def get_product_service(session: Session = Depends(get_session)) -> ProductService:
    return ProductService(session)

@router.get("/")
def search_products(
    q: str = Query(min_length=1),
    page: int = 1,
    limit: int = 20,
    category: Optional[int] = None,
    sort: str = "newest",
    service: ProductService = Depends(get_product_service)
):
    paging = Page(page, limit)
    products, total = service.list_products(paging, search=q, category_id=category, sort=sort)
    return envelope("Search results retrieved successfully", {
        "query": q,
        "products": [p.as_api() for p in products],
        "pagination": paging.meta(total),
    })

@router.get("/suggestions")
def search_suggestions(q: str = "", service: ProductService = Depends(get_product_service)):
    return envelope("Search suggestions retrieved successfully", service.suggestions(q))

@router.get("/autocomplete")
def search_autocomplete(
    q: str = Query(default="", max_length=100),
    limit: int = Query(default=10, ge=1, le=20),
    service: ProductService = Depends(get_product_service)
):
    return envelope("Autocomplete suggestions retrieved successfully", service.autocomplete(q, limit))

@router.get("/trending")
def trending_searches(service: ProductService = Depends(get_product_service)):
    return envelope("Trending searches retrieved successfully", {"searches": service.trending()})

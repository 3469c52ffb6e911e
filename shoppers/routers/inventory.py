from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlmodel import Session

from shoppers.core.config import settings
from shoppers.core.pagination import Page
from shoppers.core.responses import ApiModel, envelope
from shoppers.db.session import get_session
from shoppers.domain import inventory as rules
from shoppers.models.user import User
from shoppers.routers.auth import get_admin_user
from shoppers.services.inventory import InventoryService

router = APIRouter()

class StockUpdate(ApiModel):
    stock: int = Field(ge=0)
    operation: Literal["set", "increase", "decrease"] = rules.SET
    reason: Optional[str] = Field(default=None, max_length=200)

class BulkStockUpdate(ApiModel):
    # Entries are checked one by one so a bad row does not reject the batch
    updates: List[dict] = Field(min_length=1, max_length=100)

class StockItem(ApiModel):
    product_id: int
    variant_id: int
    quantity: int = Field(ge=1)

class StockCheck(ApiModel):
    items: List[StockItem] = Field(min_length=1)

def get_inventory_service(session: Session = Depends(get_session)) -> InventoryService:
    return InventoryService(session)

@router.put("/products/{product_id}/variants/{variant_id}/stock")
def update_variant_stock(
    product_id: int,
    variant_id: int,
    data: StockUpdate,
    admin: User = Depends(get_admin_user),
    service: InventoryService = Depends(get_inventory_service)
):
    variant, previous = service.update_variant_stock(product_id, variant_id, data.stock, data.operation, data.reason)
    return envelope("Stock updated successfully", {
        "variant": variant.as_api(),
        "previousStock": previous,
        "newStock": variant.stock,
        "operation": data.operation,
    })

@router.post("/bulk-update")
def bulk_update_stock(
    data: BulkStockUpdate,
    admin: User = Depends(get_admin_user),
    service: InventoryService = Depends(get_inventory_service)
):
    result = service.bulk_update(data.updates)
    return envelope(f"Bulk update completed: {result['successful']} successful, {len(result['failed'])} failed", result)

@router.get("/overview")
def inventory_overview(admin: User = Depends(get_admin_user),
                       service: InventoryService = Depends(get_inventory_service)):
    return envelope("Inventory report generated successfully", service.overview())

@router.get("/alerts")
def low_stock_alerts(admin: User = Depends(get_admin_user),
                     service: InventoryService = Depends(get_inventory_service)):
    alerts = service.low_stock_alerts()
    return envelope("Low stock alerts retrieved successfully", {"alerts": alerts, "count": len(alerts)})

@router.get("/detailed")
def detailed_inventory(
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    category: Optional[int] = None,
    stock_status: Optional[Literal["out_of_stock", "critical", "low", "in_stock"]] = Query(
        default=None, alias="stockStatus"
    ),
    admin: User = Depends(get_admin_user),
    service: InventoryService = Depends(get_inventory_service)
):
    data = service.detailed(Page(page, limit), search=search, category_id=category, stock_status=stock_status)
    return envelope("Detailed inventory retrieved successfully", data)

@router.get("/reorder-suggestions")
def reorder_suggestions(
    threshold: int = Query(default=settings.LOW_STOCK_THRESHOLD, ge=0),
    admin: User = Depends(get_admin_user),
    service: InventoryService = Depends(get_inventory_service)
):
    suggestions = service.reorder_suggestions(threshold)
    return envelope("Reorder suggestions generated successfully", {
        "suggestions": suggestions,
        "count": len(suggestions),
    })

@router.post("/check-stock")
def check_stock(data: StockCheck, service: InventoryService = Depends(get_inventory_service)):
    result = service.check_stock(item.model_dump() for item in data.items)
    return envelope("All items are available" if result["inStock"] else "Some items are unavailable", result)

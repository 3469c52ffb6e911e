from typing import List, Literal, Optional
from fastapi import APIRouter, Depends
from pydantic import Field
from sqlmodel import Session

from shoppers.core.pagination import Page
from shoppers.core.responses import ApiModel, UtcDatetime, envelope
from shoppers.db.session import get_session
from shoppers.models.user import User
from shoppers.routers.auth import get_admin_user
from shoppers.services.shipping import ShippingService

router = APIRouter()

ServiceType = Literal["standard", "express", "overnight", "same_day"]
RateType = Literal["flat", "weight_based", "distance_based", "value_based"]
ShipmentStatus = Literal[
    "pending", "picked_up", "in_transit", "out_for_delivery", "delivered", "failed_delivery", "returned"
]

class ServiceArea(ApiModel):
    name: str
    pincodes: List[str] = []
    is_active: bool = True

class ProviderCreate(ApiModel):
    name: str = Field(min_length=2, max_length=100)
    code: str = Field(min_length=2, max_length=10)
    description: Optional[str] = None
    tracking_url: Optional[str] = None
    service_areas: List[ServiceArea] = []
    priority: int = 0
    is_active: bool = True

class ProviderUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = None
    tracking_url: Optional[str] = None
    service_areas: Optional[List[ServiceArea]] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None

class WeightRange(ApiModel):
    min_weight: float = Field(ge=0)
    max_weight: float = Field(gt=0)
    rate: float = Field(ge=0)

class Zone(ApiModel):
    name: str
    pincodes: List[str] = []
    multiplier: float = Field(default=1.0, gt=0)

class RateCreate(ApiModel):
    provider_id: int
    name: str = Field(min_length=2, max_length=100)
    service_type: ServiceType = "standard"
    rate_type: RateType = "flat"
    base_rate: float = Field(default=0, ge=0)
    weight_ranges: List[WeightRange] = []
    value_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    zones: List[Zone] = []
    free_shipping_threshold: Optional[float] = Field(default=None, ge=0)
    max_weight: float = Field(default=50, gt=0)
    max_value: float = Field(default=100000, gt=0)
    delivery_min: int = Field(default=3, ge=0)
    delivery_max: int = Field(default=7, ge=0)
    is_active: bool = True

class RateUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    service_type: Optional[ServiceType] = None
    rate_type: Optional[RateType] = None
    base_rate: Optional[float] = Field(default=None, ge=0)
    weight_ranges: Optional[List[WeightRange]] = None
    value_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    zones: Optional[List[Zone]] = None
    free_shipping_threshold: Optional[float] = Field(default=None, ge=0)
    max_weight: Optional[float] = Field(default=None, gt=0)
    max_value: Optional[float] = Field(default=None, gt=0)
    delivery_min: Optional[int] = Field(default=None, ge=0)
    delivery_max: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

class QuoteRequest(ApiModel):
    weight: float = Field(gt=0)
    value: float = Field(ge=0)
    to_pincode: str = Field(pattern=r"^[0-9]{6}$")
    service_type: Optional[ServiceType] = None
    provider_id: Optional[int] = None

class PackageDetails(ApiModel):
    weight: float = Field(gt=0)
    value: float = Field(ge=0)
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None

class ShipmentCreate(ApiModel):
    order_number: str
    provider_id: int
    service_type: ServiceType = "standard"
    package_details: PackageDetails
    notes: Optional[str] = Field(default=None, max_length=500)

class TrackingUpdate(ApiModel):
    status: ShipmentStatus
    location: str = Field(min_length=1)
    description: str = Field(min_length=1)
    estimated_delivery: Optional[UtcDatetime] = None

def get_shipping_service(session: Session = Depends(get_session)) -> ShippingService:
    return ShippingService(session)

# Public

@router.post("/calculate")
def calculate_shipping(data: QuoteRequest, service: ShippingService = Depends(get_shipping_service)):
    options = service.calculate_options(
        data.weight, data.value, data.to_pincode, data.service_type, data.provider_id
    )
    return envelope("Shipping options calculated successfully", {"options": options, "count": len(options)})

@router.get("/track/{tracking_number}")
def track_shipment(tracking_number: str, service: ShippingService = Depends(get_shipping_service)):
    return envelope("Tracking information retrieved successfully", service.track(tracking_number))

# Providers

@router.get("/providers")
def read_providers(
    include_inactive: bool = False,
    admin: User = Depends(get_admin_user),
    service: ShippingService = Depends(get_shipping_service)
):
    providers = service.list_providers(active_only=not include_inactive)
    return envelope("Shipping providers retrieved successfully", [p.as_api() for p in providers])

@router.post("/providers", status_code=201)
def create_provider(
    data: ProviderCreate,
    admin: User = Depends(get_admin_user),
    service: ShippingService = Depends(get_shipping_service)
):
    return envelope("Shipping provider created successfully", service.create_provider(data.model_dump()).as_api())

@router.get("/providers/{provider_id}")
def read_provider(provider_id: int, admin: User = Depends(get_admin_user),
                  service: ShippingService = Depends(get_shipping_service)):
    provider = service.get_provider(provider_id)
    data = provider.as_api()
    data["rates"] = [r.as_api() for r in service.list_rates(provider_id, active_only=False)]
    return envelope("Shipping provider retrieved successfully", data)

@router.put("/providers/{provider_id}")
def update_provider(
    provider_id: int,
    data: ProviderUpdate,
    admin: User = Depends(get_admin_user),
    service: ShippingService = Depends(get_shipping_service)
):
    provider = service.update_provider(provider_id, data.model_dump(exclude_unset=True))
    return envelope("Shipping provider updated successfully", provider.as_api())

@router.delete("/providers/{provider_id}")
def delete_provider(provider_id: int, admin: User = Depends(get_admin_user),
                    service: ShippingService = Depends(get_shipping_service)):
    service.delete_provider(provider_id)
    return envelope("Shipping provider deleted successfully")

# Rates

@router.get("/providers/{provider_id}/rates")
def read_rates(provider_id: int, admin: User = Depends(get_admin_user),
               service: ShippingService = Depends(get_shipping_service)):
    service.get_provider(provider_id)
    rates = service.list_rates(provider_id, active_only=False)
    return envelope("Shipping rates retrieved successfully", [r.as_api() for r in rates])

@router.post("/rates", status_code=201)
def create_rate(
    data: RateCreate,
    admin: User = Depends(get_admin_user),
    service: ShippingService = Depends(get_shipping_service)
):
    return envelope("Shipping rate created successfully", service.create_rate(data.model_dump()).as_api())

@router.put("/rates/{rate_id}")
def update_rate(
    rate_id: int,
    data: RateUpdate,
    admin: User = Depends(get_admin_user),
    service: ShippingService = Depends(get_shipping_service)
):
    rate = service.update_rate(rate_id, data.model_dump(exclude_unset=True))
    return envelope("Shipping rate updated successfully", rate.as_api())

@router.delete("/rates/{rate_id}")
def delete_rate(rate_id: int, admin: User = Depends(get_admin_user),
                service: ShippingService = Depends(get_shipping_service)):
    service.delete_rate(rate_id)
    return envelope("Shipping rate deleted successfully")

# Shipments

@router.post("/shipments", status_code=201)
def create_shipment(
    data: ShipmentCreate,
    admin: User = Depends(get_admin_user),
    service: ShippingService = Depends(get_shipping_service)
):
    shipment = service.create_shipment(
        data.order_number, data.provider_id, data.service_type, data.package_details.model_dump(), data.notes
    )
    return envelope("Shipment created successfully", shipment.as_api())

@router.get("/shipments")
def read_shipments(
    page: int = 1,
    limit: int = 20,
    status: Optional[ShipmentStatus] = None,
    provider_id: Optional[int] = None,
    admin: User = Depends(get_admin_user),
    service: ShippingService = Depends(get_shipping_service)
):
    paging = Page(page, limit)
    shipments, total = service.list_shipments(paging, status, provider_id)
    return envelope("Shipments retrieved successfully", {
        "shipments": [s.as_api() for s in shipments],
        "pagination": paging.meta(total),
    })

@router.get("/shipments/order/{order_number}")
def read_order_shipments(order_number: str, admin: User = Depends(get_admin_user),
                         service: ShippingService = Depends(get_shipping_service)):
    shipments = service.order_shipments(order_number)
    return envelope("Order shipments retrieved successfully", [s.as_api() for s in shipments])

@router.get("/shipments/{shipment_id}")
def read_shipment(shipment_id: str, admin: User = Depends(get_admin_user),
                  service: ShippingService = Depends(get_shipping_service)):
    return envelope("Shipment retrieved successfully", service.get_shipment(shipment_id).as_api())

@router.post("/shipments/{shipment_id}/tracking")
def add_tracking_event(
    shipment_id: str,
    data: TrackingUpdate,
    admin: User = Depends(get_admin_user),
    service: ShippingService = Depends(get_shipping_service)
):
    shipment = service.add_tracking_event(
        shipment_id, data.status, data.location, data.description, data.estimated_delivery
    )
    return envelope("Tracking updated successfully", shipment.as_api())

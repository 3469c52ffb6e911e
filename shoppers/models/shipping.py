from typing import List, Optional
from datetime import datetime, timezone
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import JSON

class ShippingProvider(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    code: str = Field(unique=True, index=True)
    description: Optional[str] = None
    tracking_url: Optional[str] = None
    # list of {name, pincodes: [...], is_active}
    service_areas: list = Field(default=[], sa_column=Column(JSON))
    priority: int = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "trackingUrl": self.tracking_url,
            "serviceAreas": [
                {"name": a.get("name"), "pincodes": a.get("pincodes", []), "isActive": a.get("is_active", True)}
                for a in self.service_areas or []
            ],
            "priority": self.priority,
            "isActive": self.is_active,
            "createdAt": self.created_at,
        }


class ShippingRate(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    provider_id: int = Field(foreign_key="shippingprovider.id", index=True)
    name: str
    service_type: str = Field(default="standard")

    # flat | weight_based | distance_based | value_based
    rate_type: str = Field(default="flat")
    base_rate: float = Field(default=0.0)
    # list of {min_weight, max_weight, rate}
    weight_ranges: list = Field(default=[], sa_column=Column(JSON))
    value_percentage: Optional[float] = None
    # list of {name, pincodes: [...], multiplier}
    zones: list = Field(default=[], sa_column=Column(JSON))

    free_shipping_threshold: Optional[float] = None
    max_weight: float = Field(default=50.0)
    max_value: float = Field(default=100000.0)
    delivery_min: int = Field(default=3)
    delivery_max: int = Field(default=7)

    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_api(self):
        return {
            "id": self.id,
            "providerId": self.provider_id,
            "name": self.name,
            "serviceType": self.service_type,
            "rateType": self.rate_type,
            "baseRate": self.base_rate,
            "weightRanges": [
                {"minWeight": r["min_weight"], "maxWeight": r["max_weight"], "rate": r["rate"]}
                for r in self.weight_ranges or []
            ],
            "valuePercentage": self.value_percentage,
            "zones": self.zones or [],
            "freeShippingThreshold": self.free_shipping_threshold,
            "maxWeight": self.max_weight,
            "maxValue": self.max_value,
            "deliveryTime": {"min": self.delivery_min, "max": self.delivery_max},
            "isActive": self.is_active,
        }


class Shipment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    shipment_id: str = Field(unique=True, index=True)
    order_number: str = Field(index=True)
    provider_id: int = Field(foreign_key="shippingprovider.id")
    tracking_number: str = Field(unique=True, index=True)
    service_type: str = Field(default="standard")

    status: str = Field(default="pending", index=True)
    shipping_address: dict = Field(default={}, sa_column=Column(JSON))
    # weight, value, description, dimensions
    package_details: dict = Field(default={}, sa_column=Column(JSON))
    shipping_cost: float = Field(default=0.0)
    notes: Optional[str] = None

    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    tracking_events: List["TrackingEvent"] = Relationship(
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "TrackingEvent.id"}
    )

    @property
    def current_location(self) -> Optional[str]:
        if not self.tracking_events:
            return None
        return self.tracking_events[-1].location

    def as_api(self):
        return {
            "id": self.id,
            "shipmentId": self.shipment_id,
            "orderNumber": self.order_number,
            "providerId": self.provider_id,
            "trackingNumber": self.tracking_number,
            "serviceType": self.service_type,
            "status": self.status,
            "currentLocation": self.current_location,
            "shippingAddress": self.shipping_address or {},
            "packageDetails": self.package_details or {},
            "shippingCost": self.shipping_cost,
            "notes": self.notes,
            "estimatedDelivery": self.estimated_delivery,
            "actualDelivery": self.actual_delivery,
            "trackingEvents": [e.as_api() for e in self.tracking_events],
            "createdAt": self.created_at,
        }


class TrackingEvent(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    shipment_id: int = Field(foreign_key="shipment.id", index=True)
    status: str
    location: str = ""
    description: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_api(self):
        return {
            "status": self.status,
            "location": self.location,
            "description": self.description,
            "timestamp": self.timestamp,
        }

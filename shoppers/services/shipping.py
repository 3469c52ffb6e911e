import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import func
from sqlmodel import Session, select

from shoppers.core.filters import FilterBuilder, to_clause
from shoppers.core.pagination import Page
from shoppers.domain import shipping as rules
from shoppers.models.order import Order, OrderStatus
from shoppers.models.shipping import Shipment, ShippingProvider, ShippingRate, TrackingEvent

logger = logging.getLogger(__name__)

class ShippingService:
    def __init__(self, session: Session):
        self.session = session

    # Providers

    def list_providers(self, active_only: bool = True) -> List[ShippingProvider]:
        query = select(ShippingProvider)
        if active_only:
            query = query.where(ShippingProvider.is_active == True)
        return self.session.exec(query.order_by(ShippingProvider.priority.desc(), ShippingProvider.name)).all()

    def get_provider(self, provider_id: int) -> ShippingProvider:
        provider = self.session.get(ShippingProvider, provider_id)
        if not provider:
            raise HTTPException(status_code=404, detail="Shipping provider not found")
        return provider

    def create_provider(self, data: dict) -> ShippingProvider:
        code = data["code"].strip().upper()
        if self.session.exec(select(ShippingProvider).where(ShippingProvider.code == code)).first():
            raise HTTPException(status_code=409, detail="Provider code already exists")
        provider = ShippingProvider(**{**data, "code": code})
        self.session.add(provider)
        self.session.commit()
        self.session.refresh(provider)
        return provider

    def update_provider(self, provider_id: int, changes: dict) -> ShippingProvider:
        provider = self.get_provider(provider_id)
        for field, value in changes.items():
            if value is not None and field != "code":
                setattr(provider, field, value)
        provider.updated_at = datetime.now(timezone.utc)
        self.session.add(provider)
        self.session.commit()
        self.session.refresh(provider)
        return provider

    def delete_provider(self, provider_id: int):
        provider = self.get_provider(provider_id)
        in_use = self.session.exec(
            select(func.count()).select_from(Shipment).where(Shipment.provider_id == provider_id)
        ).one()
        if in_use:
            raise HTTPException(status_code=409, detail="Provider has shipments; deactivate it instead")
        for rate in self.session.exec(select(ShippingRate).where(ShippingRate.provider_id == provider_id)).all():
            self.session.delete(rate)
        self.session.delete(provider)
        self.session.commit()

    # Rates

    def list_rates(self, provider_id: int, active_only: bool = True) -> List[ShippingRate]:
        query = select(ShippingRate).where(ShippingRate.provider_id == provider_id)
        if active_only:
            query = query.where(ShippingRate.is_active == True)
        return self.session.exec(query.order_by(ShippingRate.service_type, ShippingRate.name)).all()

    def get_rate(self, rate_id: int) -> ShippingRate:
        rate = self.session.get(ShippingRate, rate_id)
        if not rate:
            raise HTTPException(status_code=404, detail="Shipping rate not found")
        return rate

    def create_rate(self, data: dict) -> ShippingRate:
        self.get_provider(data["provider_id"])
        rate = ShippingRate(**data)
        self._validate_rate(rate)
        self.session.add(rate)
        self.session.commit()
        self.session.refresh(rate)
        return rate

    def update_rate(self, rate_id: int, changes: dict) -> ShippingRate:
        rate = self.get_rate(rate_id)
        for field, value in changes.items():
            if value is not None and field != "provider_id":
                setattr(rate, field, value)
        self._validate_rate(rate)
        rate.updated_at = datetime.now(timezone.utc)
        self.session.add(rate)
        self.session.commit()
        self.session.refresh(rate)
        return rate

    def delete_rate(self, rate_id: int):
        self.session.delete(self.get_rate(rate_id))
        self.session.commit()

    def _validate_rate(self, rate: ShippingRate):
        if rate.rate_type not in rules.RATE_TYPES:
            raise HTTPException(status_code=400, detail=f"Unknown rate type '{rate.rate_type}'")
        check = rules.validate_weight_ranges(rate.weight_ranges)
        if not check:
            raise HTTPException(status_code=400, detail=check.error)
        if rate.delivery_min > rate.delivery_max:
            raise HTTPException(status_code=400, detail="Minimum delivery time cannot exceed maximum")

    # Quotes

    def calculate_options(self, weight: float, value: float, to_pincode: str,
                          service_type: Optional[str] = None, provider_id: Optional[int] = None) -> List[dict]:
        providers = self.list_providers()
        if provider_id is not None:
            providers = [p for p in providers if p.id == provider_id]

        options = []
        for provider in providers:
            if not rules.serves(provider, to_pincode):
                continue
            query = to_clause(
                FilterBuilder().equals("provider_id", provider.id).equals("is_active", True)
                .equals("service_type", service_type).range("max_weight", low=weight)
                .range("max_value", low=value).build(),
                ShippingRate,
            )
            for rate in self.session.exec(select(ShippingRate).where(query)).all():
                cost = rules.rate_cost(rate, weight, value, to_pincode)
                if cost is None:
                    continue
                free = rules.is_free(rate, value)
                options.append({
                    "providerId": provider.id,
                    "providerName": provider.name,
                    "rateId": rate.id,
                    "serviceType": rate.service_type,
                    "serviceName": rate.name,
                    "cost": 0.0 if free else cost,
                    "isFreeShipping": free,
                    "estimatedDays": rate.delivery_max,
                    "deliveryTime": {"min": rate.delivery_min, "max": rate.delivery_max},
                    "estimatedDelivery": datetime.now(timezone.utc) + timedelta(days=rate.delivery_max),
                })
        return rules.sort_options(options)

    # Shipments

    def create_shipment(self, order_number: str, provider_id: int, service_type: str,
                        package_details: dict, notes: Optional[str] = None) -> Shipment:
        order = self.session.exec(select(Order).where(Order.order_number == order_number)).first()
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        if order.status == OrderStatus.CANCELLED.value:
            raise HTTPException(status_code=400, detail="Cannot ship a cancelled order")

        provider = self.session.get(ShippingProvider, provider_id)
        if not provider or not provider.is_active:
            raise HTTPException(status_code=404, detail="Shipping provider not found or inactive")

        weight = package_details.get("weight", 0)
        value = package_details.get("value", 0)
        rate = self.session.exec(
            select(ShippingRate).where(
                ShippingRate.provider_id == provider_id,
                ShippingRate.service_type == service_type,
                ShippingRate.is_active == True,
                ShippingRate.max_weight >= weight,
                ShippingRate.max_value >= value,
            )
        ).first()
        if not rate:
            raise HTTPException(status_code=400, detail="No suitable shipping rate found")

        pincode = (order.shipping_address or {}).get("pincode")
        cost = rules.rate_cost(rate, weight, value, pincode)
        if cost is None:
            raise HTTPException(status_code=400, detail="Unable to calculate shipping cost")

        shipment = Shipment(
            shipment_id=rules.generate_shipment_id(),
            order_number=order.order_number,
            provider_id=provider.id,
            tracking_number=rules.generate_tracking_number(provider.code),
            service_type=service_type,
            shipping_address=order.shipping_address or {},
            package_details=package_details,
            shipping_cost=cost,
            notes=notes,
            estimated_delivery=datetime.now(timezone.utc) + timedelta(days=rate.delivery_max),
        )
        shipment.tracking_events.append(TrackingEvent(
            status="pending", location="Warehouse", description="Shipment created and ready for pickup",
        ))
        order.tracking_number = shipment.tracking_number
        order.updated_at = datetime.now(timezone.utc)

        self.session.add(shipment)
        self.session.add(order)
        self.session.commit()
        self.session.refresh(shipment)
        logger.info("Shipment %s created for order %s", shipment.shipment_id, order_number)
        return shipment

    def get_shipment(self, shipment_id: str) -> Shipment:
        shipment = self.session.exec(select(Shipment).where(Shipment.shipment_id == shipment_id)).first()
        if not shipment:
            raise HTTPException(status_code=404, detail="Shipment not found")
        return shipment

    def add_tracking_event(self, shipment_id: str, status: str, location: str, description: str,
                           estimated_delivery: Optional[datetime] = None) -> Shipment:
        if status not in rules.SHIPMENT_STATUSES:
            raise HTTPException(status_code=400, detail=f"Unknown shipment status '{status}'")
        shipment = self.get_shipment(shipment_id)

        shipment.tracking_events.append(TrackingEvent(status=status, location=location, description=description))
        shipment.status = status
        if estimated_delivery:
            shipment.estimated_delivery = estimated_delivery
        if status == "delivered":
            shipment.actual_delivery = datetime.now(timezone.utc)
            order = self.session.exec(select(Order).where(Order.order_number == shipment.order_number)).first()
            if order and order.status != OrderStatus.CANCELLED.value:
                order.status = OrderStatus.DELIVERED.value
                order.delivered_at = shipment.actual_delivery
                self.session.add(order)
        elif status in rules.IN_TRANSIT_STATUSES:
            order = self.session.exec(select(Order).where(Order.order_number == shipment.order_number)).first()
            if order and order.status in (OrderStatus.CONFIRMED.value, OrderStatus.PROCESSING.value, OrderStatus.PENDING.value):
                order.status = OrderStatus.SHIPPED.value
                self.session.add(order)

        shipment.updated_at = datetime.now(timezone.utc)
        self.session.add(shipment)
        self.session.commit()
        self.session.refresh(shipment)
        logger.info("Shipment %s -> %s", shipment.shipment_id, status)
        return shipment

    def track(self, tracking_number: str) -> dict:
        shipment = self.session.exec(select(Shipment).where(Shipment.tracking_number == tracking_number)).first()
        if not shipment:
            raise HTTPException(status_code=404, detail="Tracking information not found")
        provider = self.session.get(ShippingProvider, shipment.provider_id)
        return {
            "shipmentId": shipment.shipment_id,
            "trackingNumber": shipment.tracking_number,
            "status": shipment.status,
            "currentLocation": shipment.current_location,
            "estimatedDelivery": shipment.estimated_delivery,
            "actualDelivery": shipment.actual_delivery,
            "trackingEvents": [e.as_api() for e in shipment.tracking_events],
            "providerInfo": {
                "name": provider.name if provider else None,
                "trackingUrl": provider.tracking_url if provider else None,
            },
        }

    def order_shipments(self, order_number: str) -> List[Shipment]:
        return self.session.exec(
            select(Shipment).where(Shipment.order_number == order_number, Shipment.is_active == True)
            .order_by(Shipment.created_at.desc())
        ).all()

    def list_shipments(self, page: Page, status: Optional[str] = None,
                       provider_id: Optional[int] = None) -> tuple[List[Shipment], int]:
        clause = to_clause(
            FilterBuilder().equals("is_active", True).equals("status", status)
            .equals("provider_id", provider_id).build(),
            Shipment,
        )
        total = self.session.exec(select(func.count()).select_from(Shipment).where(clause)).one()
        shipments = self.session.exec(
            select(Shipment).where(clause).order_by(Shipment.created_at.desc()).offset(page.offset).limit(page.limit)
        ).all()
        return shipments, total

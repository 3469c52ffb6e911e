import random
import string
import time
from typing import List, Optional

from shoppers.core.money import round_money
from shoppers.domain.result import Result

FLAT = "flat"
WEIGHT_BASED = "weight_based"
DISTANCE_BASED = "distance_based"
VALUE_BASED = "value_based"
RATE_TYPES = (FLAT, WEIGHT_BASED, DISTANCE_BASED, VALUE_BASED)

SERVICE_TYPES = ("standard", "express", "overnight", "same_day")

SHIPMENT_STATUSES = (
    "pending", "picked_up", "in_transit", "out_for_delivery",
    "delivered", "failed_delivery", "returned",
)
IN_TRANSIT_STATUSES = ("picked_up", "in_transit", "out_for_delivery")


def _zone_for(rate, pincode: Optional[str]) -> Optional[dict]:
    if not pincode:
        return None
    for zone in rate.zones or []:
        if pincode in (zone.get("pincodes") or []):
            return zone
    return None


def rate_cost(rate, weight: float, value: float, to_pincode: Optional[str] = None) -> Optional[float]:
    """Shipping cost for one rate, or None when the rate cannot carry the package."""
    cost = rate.base_rate
    zone = _zone_for(rate, to_pincode)

    if rate.rate_type == FLAT:
        pass
    elif rate.rate_type == WEIGHT_BASED:
        if rate.weight_ranges:
            band = next((r for r in rate.weight_ranges
                         if r["min_weight"] <= weight <= r["max_weight"]), None)
            if band is None:
                return None
            cost = band["rate"]
    elif rate.rate_type == DISTANCE_BASED:
        if zone:
            cost = rate.base_rate * zone.get("multiplier", 1)
    elif rate.rate_type == VALUE_BASED:
        if rate.value_percentage:
            cost = value * rate.value_percentage / 100
    else:
        return None

    if zone and rate.rate_type != DISTANCE_BASED:
        cost *= zone.get("multiplier", 1)

    return round_money(cost)


def is_free(rate, value: float) -> bool:
    return bool(rate.free_shipping_threshold) and value >= rate.free_shipping_threshold


def sort_options(options: List[dict]) -> List[dict]:
    return sorted(options, key=lambda o: (not o["isFreeShipping"], o["cost"]))


def validate_weight_ranges(ranges) -> Result:
    for band in ranges or []:
        try:
            low, high = band["min_weight"], band["max_weight"]
            band["rate"]
        except (KeyError, TypeError):
            return Result.failure("Weight ranges need minWeight, maxWeight and rate")
        if low >= high:
            return Result.failure("Invalid weight range: minWeight must be less than maxWeight")
    return Result.success()


def serves(provider, pincode: str) -> bool:
    for area in provider.service_areas or []:
        if area.get("is_active", True) and pincode in (area.get("pincodes") or []):
            return True
    return False


def generate_tracking_number(provider_code: str) -> str:
    stamp = str(int(time.time() * 1000))[-6:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"{provider_code.upper()}{stamp}{suffix}"


def generate_shipment_id() -> str:
    stamp = str(int(time.time() * 1000))[-8:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"SHP{stamp}{suffix}"

from typing import Optional

from shoppers.core.config import settings

SET = "set"
INCREASE = "increase"
DECREASE = "decrease"
OPERATIONS = (SET, INCREASE, DECREASE)

OUT_OF_STOCK = "out_of_stock"
CRITICAL = "critical"
LOW = "low"
IN_STOCK = "in_stock"

SEVERITY_ORDER = {OUT_OF_STOCK: 0, CRITICAL: 1, LOW: 2, IN_STOCK: 3}


class StockAdjustmentError(ValueError):
    pass


class InsufficientStock(StockAdjustmentError):
    def __init__(self, available: int, requested: int):
        super().__init__(f"Insufficient stock. Available: {available}, Requested: {requested}")
        self.available = available
        self.requested = requested


def stock_status(stock: int, low: Optional[int] = None, critical: Optional[int] = None) -> str:
    low = settings.LOW_STOCK_THRESHOLD if low is None else low
    critical = settings.CRITICAL_STOCK_THRESHOLD if critical is None else critical
    if stock <= 0:
        return OUT_OF_STOCK
    if stock <= critical:
        return CRITICAL
    if stock <= low:
        return LOW
    return IN_STOCK


def apply_adjustment(current: int, quantity: int, operation: str) -> int:
    if operation not in OPERATIONS:
        raise StockAdjustmentError(f"Unknown stock operation '{operation}'")
    if quantity < 0:
        raise StockAdjustmentError("Stock must be a non-negative number")

    if operation == SET:
        return quantity
    if operation == INCREASE:
        return current + quantity
    if quantity > current:
        raise InsufficientStock(current, quantity)
    return current - quantity


def reorder_priority(stock: int) -> str:
    if stock <= 0:
        return "urgent"
    if stock <= settings.CRITICAL_STOCK_THRESHOLD:
        return "high"
    return "medium"


def suggested_reorder(stock: int) -> int:
    return max(50, stock * 5)

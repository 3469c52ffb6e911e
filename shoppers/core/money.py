from decimal import Decimal, ROUND_HALF_UP


def D(x) -> Decimal:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def round_money(x) -> float:
    return float(D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

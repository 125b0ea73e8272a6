"""Hour quantities are kept to one decimal place (Numeric(10, 1) columns)."""

from decimal import ROUND_HALF_UP, Decimal

HOURS_QUANTUM = Decimal("0.1")


def to_hours(val) -> Decimal:
    if val is None:
        return Decimal("0.0")
    d = val if isinstance(val, Decimal) else Decimal(str(val))
    return d.quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)

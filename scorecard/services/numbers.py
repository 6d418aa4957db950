import math

from ..errors import InvalidInput


def parse_amount(value, field: str = "value") -> float:
    """Parse a non-negative finite number from a number or numeric string."""
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f"{field} must be a valid number")
    try:
        num = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field} must be a valid number")
    if not math.isfinite(num):
        raise InvalidInput(f"{field} must be a finite number")
    if num < 0:
        raise InvalidInput(f"{field} must not be negative")
    return num

"""
Conveyance expense calculations.

Derived values are computed once at submission and stored at full
precision. Rounding happens only when an amount is displayed.
"""

import math
from decimal import Decimal, ROUND_HALF_UP

from .errors import InvalidAmount, InvalidRoute


def compute_total_km(from_km: float, to_km: float) -> float:
    """Distance travelled between two odometer readings.

    Args:
        from_km: Starting reading
        to_km: Ending reading

    Returns:
        ``to_km - from_km``

    Raises:
        InvalidAmount: If either reading is not a finite number
        InvalidRoute: If the ending reading is below the starting one
    """
    total_km = to_km - from_km
    if not math.isfinite(total_km):
        raise InvalidAmount("KM readings must be finite numbers")
    if total_km < 0:
        raise InvalidRoute(from_km, to_km)
    return total_km


def compute_subtotal(
    total_km: float,
    rate_per_km: float,
    fooding_cost: float = 0,
    loading_cost: float = 0,
    other_cost: float = 0,
) -> float:
    """Claim amount: distance at the given rate plus the extra costs."""
    return (total_km * rate_per_km) + fooding_cost + loading_cost + other_cost


def format_amount(amount: float) -> str:
    """Format an amount for display with two decimals, half rounded up."""
    rounded = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{rounded:,.2f}"

"""Price rounding and business-rule clamping"""

import math
from decimal import ROUND_HALF_UP, Decimal

from ..config.defaults import PricingParams


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(value).to_integral_value(rounding=ROUND_HALF_UP))


def clamp_price(raw_price: float, base_price: float, params: PricingParams) -> float:
    lower = base_price * params.min_price_ratio
    upper = base_price * params.max_price_ratio
    return max(lower, min(upper, raw_price))


def round_price(price: float, base_price: float, params: PricingParams) -> int:
    """
    Round a clamped price to its display granularity.

    Prices above the threshold go to the nearest step, everything else to the
    nearest integer. A rounded value that would leave the clamp bounds is
    moved one unit back inside them.
    """
    lower = base_price * params.min_price_ratio
    upper = base_price * params.max_price_ratio

    if price > params.rounding_threshold:
        step = params.rounding_step
        rounded = round_half_away(price / step) * step
        if rounded > upper:
            rounded -= step
        elif rounded < lower:
            rounded += step
        return rounded

    rounded = round_half_away(price)
    if rounded > upper:
        rounded = math.floor(upper)
    elif rounded < lower:
        rounded = math.ceil(lower)
    return rounded

"""
Display formatting for prices, distances, durations and pickup times.

French conventions: decimal comma, euro sign after the amount.
"""
import math
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[int, float, Decimal]


def _is_missing(value: Optional[Number]) -> bool:
    if value is None:
        return True
    if isinstance(value, Decimal):
        return not value.is_finite()
    return math.isnan(value) or math.isinf(value)


def _fixed(value: Number, places: int) -> str:
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{rounded:.{places}f}".replace(".", ",")


def format_price(price: Optional[Number], currency: str = "EUR") -> str:
    if _is_missing(price):
        price = 0
    formatted = _fixed(price, 2)
    if currency == "EUR":
        return f"{formatted} €"
    return f"{formatted} {currency}"


def format_distance(distance_km: Optional[Number]) -> str:
    if _is_missing(distance_km):
        return "0 km"
    return f"{_fixed(distance_km, 1)} km"


def format_duration(minutes: Optional[Number]) -> str:
    """``"25 min"`` below an hour, otherwise ``"1 h"`` or ``"1 h 30 min"``."""
    if _is_missing(minutes):
        return "0 min"

    total = int(Decimal(str(minutes)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    if total < 60:
        return f"{total} min"

    hours, mins = divmod(total, 60)
    if mins == 0:
        return f"{hours} h"
    return f"{hours} h {mins} min"


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def format_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%H:%M")


def format_date_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return f"{format_date(value)} à {format_time(value)}"

"""
Trip classification and fare calculation.

Prices are computed in Decimal at full precision and rounded half-up to
the cent once, on the final total.
"""
import logging
import math
import warnings
from datetime import datetime, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from app.schemas.schemas import (
    EstimationResult, LineItem, LineItemCode, NightWindow, RateTable, TripRequest
)
from app.services.formatting import format_distance
from app.services.reference import generate_booking_reference

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MINUTES_PER_HOUR = Decimal(60)


class InvalidTripError(Exception):
    pass


class UnknownVehicleClassWarning(UserWarning):
    pass


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _mentions_any(addresses: Iterable[Optional[str]], keywords: Iterable[str]) -> bool:
    haystacks = [a.lower() for a in addresses if isinstance(a, str) and a]
    if not haystacks:
        return False
    return any(
        keyword.lower() in haystack
        for keyword in keywords if keyword
        for haystack in haystacks
    )


def is_airport_transfer(
    pickup: Optional[str], destination: Optional[str], keywords: Iterable[str]
) -> bool:
    """True if either address contains an airport keyword (case-insensitive)."""
    return _mentions_any((pickup, destination), keywords)


def is_station_transfer(
    pickup: Optional[str], destination: Optional[str], keywords: Iterable[str]
) -> bool:
    """True if either address contains a station keyword (case-insensitive)."""
    return _mentions_any((pickup, destination), keywords)


def is_night_fare(pickup_datetime: Optional[datetime], night_window: NightWindow) -> bool:
    """
    Night pricing applies when the pickup hour is >= start_hour or < end_hour,
    so a 22 -> 6 window spans midnight. A window that does not wrap
    (start_hour <= end_hour) is the half-open range [start_hour, end_hour).
    Only the pickup hour counts.
    """
    if pickup_datetime is None:
        return False
    hour = pickup_datetime.hour
    start, end = night_window.start_hour, night_window.end_hour
    if start > end:
        return hour >= start or hour < end
    return start <= hour < end


def parse_pickup_datetime(
    value: Union[str, datetime, None], tz: Optional[tzinfo] = None
) -> datetime:
    """
    Accepts an ISO-8601 string or a datetime. Aware values are converted to
    ``tz`` so that ``.hour`` is the local wall-clock hour; naive values are
    taken as already local.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise InvalidTripError(f"Unparseable pickup datetime: {value!r}")
    else:
        raise InvalidTripError(f"Missing or invalid pickup datetime: {value!r}")

    if tz is not None and parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz)
    return parsed


# ---------------------------------------------------------------------------
# Fare calculation
# ---------------------------------------------------------------------------

def round_currency(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_vehicle_class(vehicle_class: Optional[str], rates: RateTable) -> tuple[str, bool]:
    """
    Returns (effective_class, substituted). Classes missing from the rate
    table fall back to the default class with an UnknownVehicleClassWarning.
    """
    if vehicle_class in rates.price_per_km and vehicle_class in rates.minimum_fare:
        return vehicle_class, False

    logger.warning(
        "Unknown vehicle class %r, pricing as %r", vehicle_class, rates.default_vehicle_class
    )
    warnings.warn(
        f"Unknown vehicle class {vehicle_class!r}, using {rates.default_vehicle_class!r}",
        UnknownVehicleClassWarning,
        stacklevel=3,
    )
    return rates.default_vehicle_class, True


def calculate_surcharges(
    rates: RateTable,
    *,
    is_airport: bool = False,
    is_station: bool = False,
    is_night: bool = False,
    waiting_minutes: float = 0,
) -> list[LineItem]:
    """
    Supplements in billing order: airport or station (never both), night,
    then waiting time billed pro rata at the hourly rate.
    """
    if waiting_minutes is not None and not math.isfinite(waiting_minutes):
        raise InvalidTripError(f"waiting_minutes must be finite, got {waiting_minutes}")

    surcharges: list[LineItem] = []

    if is_airport:
        surcharges.append(LineItem(
            code=LineItemCode.airport, label="Supplément aéroport", amount=rates.airport_supplement,
        ))
    elif is_station:
        surcharges.append(LineItem(
            code=LineItemCode.station, label="Supplément gare", amount=rates.station_supplement,
        ))

    if is_night:
        window = rates.night_window
        surcharges.append(LineItem(
            code=LineItemCode.night,
            label=f"Supplément nuit ({window.start_hour}h-{window.end_hour}h)",
            amount=rates.night_supplement,
        ))

    if waiting_minutes and waiting_minutes > 0:
        cost = Decimal(str(waiting_minutes)) / MINUTES_PER_HOUR * rates.waiting_price_per_hour
        surcharges.append(LineItem(
            code=LineItemCode.waiting,
            label=f"Temps d'attente ({math.ceil(waiting_minutes)} min)",
            amount=cost,
        ))

    return surcharges


def estimate_trip(
    trip: TripRequest,
    rates: RateTable,
    reference_prefix: str = "APS",
) -> EstimationResult:
    """
    Classifies the trip and returns the itemised estimation.

    total = max(base + distance + supplements, minimum_fare[class]),
    rounded to the cent at the end.
    """
    if not math.isfinite(trip.distance_km) or trip.distance_km <= 0:
        raise InvalidTripError(f"distance_km must be > 0, got {trip.distance_km}")

    vehicle_class, substituted = resolve_vehicle_class(trip.vehicle_class, rates)

    distance_cost = Decimal(str(trip.distance_km)) * rates.price_per_km[vehicle_class]

    airport = is_airport_transfer(trip.pickup_address, trip.destination_address, rates.airport_keywords)
    station = is_station_transfer(trip.pickup_address, trip.destination_address, rates.station_keywords)
    night = is_night_fare(trip.pickup_datetime, rates.night_window)

    surcharges = calculate_surcharges(
        rates,
        is_airport=airport,
        is_station=station,
        is_night=night,
        waiting_minutes=trip.waiting_minutes,
    )
    line_items = [
        LineItem(code=LineItemCode.base, label="Tarif de base", amount=rates.base_fare),
        LineItem(
            code=LineItemCode.distance,
            label=f"Distance ({format_distance(trip.distance_km)})",
            amount=distance_cost,
        ),
        *surcharges,
    ]

    raw_total = sum((item.amount for item in line_items), Decimal(0))
    minimum_fare = rates.minimum_fare[vehicle_class]
    minimum_applied = raw_total < minimum_fare
    total = minimum_fare if minimum_applied else raw_total

    return EstimationResult(
        is_airport_transfer=airport,
        is_station_transfer=station,
        is_night_fare=night,
        line_items=tuple(line_items),
        minimum_fare=minimum_fare,
        minimum_fare_applied=minimum_applied,
        total_price=round_currency(total),
        booking_reference=generate_booking_reference(reference_prefix),
        vehicle_class=vehicle_class,
        vehicle_class_substituted=substituted,
        distance_km=trip.distance_km,
        duration_minutes=trip.duration_minutes,
    )

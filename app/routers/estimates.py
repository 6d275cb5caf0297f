"""
Estimates router — POST /v1/estimates
"""
import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends

from app.config import get_rate_table, get_settings
from app.redis_client import distance_cache_enabled, get_redis
from app.schemas.schemas import (
    DistanceEstimate, DistanceSourceEnum, EstimateRequest, EstimateResponse,
    EstimationResult, LineItemResponse, RateTable, TripRequest,
)
from app.services.distance import DistanceProvider, build_distance_provider
from app.services.formatting import format_date_time, format_distance, format_duration, format_price
from app.services.pricing import estimate_trip, parse_pickup_datetime

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/v1/estimates", tags=["Estimates"])


async def get_distance_provider() -> DistanceProvider:
    redis = await get_redis() if distance_cache_enabled() else None
    return build_distance_provider(settings, get_rate_table(), redis)


@router.post("", response_model=EstimateResponse)
async def create_estimate(
    payload: EstimateRequest,
    provider: DistanceProvider = Depends(get_distance_provider),
    rates: RateTable = Depends(get_rate_table),
):
    """
    Price a trip:
      1. Parse the pickup time into the service timezone
      2. Use the caller's distance if given, else ask the distance provider
      3. Run the fare engine and format the result for display
    """
    pickup = parse_pickup_datetime(payload.pickup_datetime, ZoneInfo(settings.timezone))

    if payload.distance_km is not None:
        distance = DistanceEstimate(
            distance_km=payload.distance_km,
            duration_minutes=payload.duration_minutes or 0,
            source=DistanceSourceEnum.client,
        )
    else:
        distance = await provider.estimate(payload.pickup_address, payload.destination_address)

    trip = TripRequest(
        pickup_address=payload.pickup_address,
        destination_address=payload.destination_address,
        distance_km=distance.distance_km,
        duration_minutes=distance.duration_minutes,
        vehicle_class=payload.vehicle_class,
        pickup_datetime=pickup,
        waiting_minutes=payload.waiting_minutes,
    )
    estimation = estimate_trip(trip, rates, reference_prefix=settings.booking_reference_prefix)

    logger.info(
        "Estimate %s: %.1f km (%s) %s EUR",
        estimation.booking_reference, distance.distance_km, distance.source.value, estimation.total_price,
    )
    return _to_response(estimation, distance.source, pickup)


def _to_response(
    estimation: EstimationResult, source: DistanceSourceEnum, pickup: datetime
) -> EstimateResponse:
    return EstimateResponse(
        booking_reference=estimation.booking_reference,
        vehicle_class=estimation.vehicle_class,
        vehicle_class_substituted=estimation.vehicle_class_substituted,
        is_airport_transfer=estimation.is_airport_transfer,
        is_station_transfer=estimation.is_station_transfer,
        is_night_fare=estimation.is_night_fare,
        line_items=[
            LineItemResponse(
                code=item.code,
                label=item.label,
                amount=float(item.amount),
                formatted_amount=format_price(item.amount),
            )
            for item in estimation.line_items
        ],
        minimum_fare=float(estimation.minimum_fare),
        minimum_fare_applied=estimation.minimum_fare_applied,
        total_price=float(estimation.total_price),
        formatted_total_price=format_price(estimation.total_price, estimation.currency),
        distance_km=round(estimation.distance_km, 3),
        formatted_distance=format_distance(estimation.distance_km),
        duration_minutes=round(estimation.duration_minutes, 1),
        formatted_duration=format_duration(estimation.duration_minutes),
        distance_source=source,
        pickup_datetime=pickup,
        formatted_pickup_datetime=format_date_time(pickup),
        currency=estimation.currency,
    )

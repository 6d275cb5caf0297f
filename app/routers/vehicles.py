"""
Vehicles router — GET /v1/vehicles
"""
from fastapi import APIRouter, Depends

from app.config import VEHICLE_TYPES, get_rate_table
from app.schemas.schemas import RateTable, VehicleResponse
from app.services.formatting import format_price

router = APIRouter(prefix="/v1/vehicles", tags=["Vehicles"])


@router.get("", response_model=list[VehicleResponse])
async def list_vehicles(rates: RateTable = Depends(get_rate_table)):
    """Catalogue with the current per-km rate and minimum fare of each class."""
    return [
        VehicleResponse(
            id=vehicle.id.value,
            name=vehicle.name,
            description=vehicle.description,
            passengers=vehicle.capacity.passengers,
            luggage=vehicle.capacity.luggage,
            features=list(vehicle.features),
            price_per_km=float(rates.price_per_km[vehicle.id.value]),
            minimum_fare=float(rates.minimum_fare[vehicle.id.value]),
            formatted_minimum_fare=format_price(rates.minimum_fare[vehicle.id.value]),
        )
        for vehicle in VEHICLE_TYPES
        if vehicle.id.value in rates.price_per_km and vehicle.id.value in rates.minimum_fare
    ]

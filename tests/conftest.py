from datetime import datetime

import pytest

from app.schemas.schemas import RateTable, TripRequest


@pytest.fixture
def rates() -> RateTable:
    return RateTable()


@pytest.fixture
def make_trip():
    def _make(**overrides) -> TripRequest:
        fields = {
            "pickup_address": "Mairie de Palaiseau, Palaiseau",
            "destination_address": "Centre Commercial Evry 2, Evry",
            "distance_km": 10.0,
            "duration_minutes": 20.0,
            "vehicle_class": "berline",
            "pickup_datetime": datetime(2026, 10, 20, 14, 0),
        }
        fields.update(overrides)
        return TripRequest(**fields)

    return _make

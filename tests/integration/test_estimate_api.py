"""
Integration tests for the estimation API.
Uses pytest-asyncio + HTTPX async client against the ASGI app.
"""
import pytest
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.routers.estimates import get_distance_provider
from app.schemas.schemas import DistanceEstimate, DistanceSourceEnum


class StubProvider:
    def __init__(self, distance_km: float = 10.0, duration_minutes: float = 22.0):
        self.calls = []
        self.result = DistanceEstimate(
            distance_km=distance_km, duration_minutes=duration_minutes, source=DistanceSourceEnum.live
        )

    async def estimate(self, origin: str, destination: str) -> DistanceEstimate:
        self.calls.append((origin, destination))
        return self.result


@pytest.fixture
def provider():
    stub = StubProvider()
    app.dependency_overrides[get_distance_provider] = lambda: stub
    yield stub
    app.dependency_overrides.pop(get_distance_provider, None)


@pytest.fixture
def payload():
    return {
        "pickup_address": "Mairie de Palaiseau, Palaiseau",
        "destination_address": "Centre Commercial Evry 2, Evry",
        "pickup_datetime": "2026-10-20T14:00:00",
        "vehicle_class": "berline",
        "passengers": 2,
        "luggage": 1,
    }


async def post_estimate(body: dict):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        return await c.post("/v1/estimates", json=body)


@pytest.mark.asyncio
class TestHealthAndVehicles:
    async def test_health_check(self):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            resp = await c.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_vehicle_catalogue(self):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            resp = await c.get("/v1/vehicles")
        assert resp.status_code == 200
        vehicles = {v["id"]: v for v in resp.json()}
        assert set(vehicles) == {"berline", "electrique", "van"}
        assert vehicles["van"]["passengers"] == 7
        assert vehicles["berline"]["price_per_km"] == 1.8
        assert vehicles["electrique"]["formatted_minimum_fare"] == "18,00 €"


@pytest.mark.asyncio
class TestEstimateAPI:
    async def test_estimate_uses_distance_provider(self, provider, payload):
        resp = await post_estimate(payload)
        assert resp.status_code == 200
        body = resp.json()
        assert provider.calls == [(payload["pickup_address"], payload["destination_address"])]
        assert body["total_price"] == 23.0
        assert body["formatted_total_price"] == "23,00 €"
        assert body["distance_source"] == "live"
        assert body["formatted_distance"] == "10,0 km"
        assert body["formatted_duration"] == "22 min"
        assert body["formatted_pickup_datetime"] == "20/10/2026 à 14:00"
        assert body["booking_reference"].startswith("APS-")
        assert [item["code"] for item in body["line_items"]] == ["base", "distance"]

    async def test_client_supplied_distance_skips_provider(self, provider, payload):
        resp = await post_estimate({**payload, "distance_km": 2.0, "duration_minutes": 6})
        assert resp.status_code == 200
        body = resp.json()
        assert provider.calls == []
        assert body["distance_source"] == "client"
        assert body["minimum_fare_applied"] is True
        assert body["total_price"] == 15.0

    async def test_airport_night_trip(self, provider, payload):
        body = {
            **payload,
            "destination_address": "Aéroport d'Orly, Orly",
            "pickup_datetime": "2026-10-20T23:00:00",
            "distance_km": 5,
        }
        resp = await post_estimate(body)
        data = resp.json()
        assert data["is_airport_transfer"] and data["is_night_fare"]
        assert data["total_price"] == 29.0
        labels = [item["label"] for item in data["line_items"]]
        assert "Supplément aéroport" in labels
        assert "Supplément nuit (22h-6h)" in labels

    async def test_waiting_time_line_item(self, provider, payload):
        resp = await post_estimate({**payload, "waiting_minutes": 30})
        data = resp.json()
        assert data["total_price"] == 38.0
        assert data["line_items"][-1]["formatted_amount"] == "15,00 €"

    async def test_unknown_vehicle_is_substituted(self, provider, payload):
        resp = await post_estimate({**payload, "vehicle_class": "limousine"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["vehicle_class"] == "berline"
        assert data["vehicle_class_substituted"] is True

    async def test_zero_distance_rejected(self, provider, payload):
        resp = await post_estimate({**payload, "distance_km": 0})
        assert resp.status_code == 422
        assert "distance_km" in resp.json()["detail"]

    async def test_unparseable_pickup_datetime(self, provider, payload):
        resp = await post_estimate({**payload, "pickup_datetime": "demain soir"})
        assert resp.status_code == 422
        assert "pickup datetime" in resp.json()["detail"]

    async def test_same_pickup_and_destination(self, provider, payload):
        resp = await post_estimate({**payload, "destination_address": payload["pickup_address"]})
        assert resp.status_code == 422

    async def test_too_many_passengers(self, provider, payload):
        resp = await post_estimate({**payload, "passengers": 9})
        assert resp.status_code == 422

    @pytest.mark.parametrize("field", ["waiting_minutes", "duration_minutes"])
    async def test_infinite_minutes_rejected(self, provider, payload, field):
        resp = await post_estimate({**payload, "distance_km": 10, field: "inf"})
        assert resp.status_code == 422

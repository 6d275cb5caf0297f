"""
Distance providers.

Every provider resolves an origin/destination pair to a DistanceEstimate,
so the pricing engine never knows which one answered:

  LiveProvider      – Google Distance Matrix API over httpx, with retries
  SimulatedProvider – uniform random draw by trip category
  CachedProvider    – Redis cache-aside in front of a live provider
  FallbackProvider  – primary provider, simulator when it fails
"""
import asyncio
import hashlib
import json
import logging
import random
from typing import Optional, Protocol

import httpx
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.config import Settings
from app.redis_client import cache_get, cache_set
from app.schemas.schemas import DistanceEstimate, DistanceSourceEnum, RateTable
from app.services.pricing import is_airport_transfer, is_station_transfer

logger = logging.getLogger(__name__)

# (min, max) ranges used by the simulator: distance km, duration minutes
AIRPORT_RANGE = ((25.0, 40.0), (30.0, 60.0))
STATION_RANGE = ((12.0, 25.0), (20.0, 40.0))
LOCAL_RANGE = ((5.0, 25.0), (10.0, 40.0))


class DistanceProviderError(Exception):
    pass


class DistanceProvider(Protocol):
    async def estimate(self, origin: str, destination: str) -> DistanceEstimate:
        ...


# ---------------------------------------------------------------------------
# Google Distance Matrix
# ---------------------------------------------------------------------------

class LiveProvider:
    def __init__(
        self,
        api_key: str,
        url: str = "https://maps.googleapis.com/maps/api/distancematrix/json",
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self.max_attempts = max(max_attempts, 1)
        self.backoff_seconds = backoff_seconds
        self._client = client

    async def estimate(self, origin: str, destination: str) -> DistanceEstimate:
        if not self.api_key:
            raise DistanceProviderError("Google Maps API key is not configured")

        if self._client is not None:
            return await self._estimate_with(self._client, origin, destination)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._estimate_with(client, origin, destination)

    async def _estimate_with(
        self, client: httpx.AsyncClient, origin: str, destination: str
    ) -> DistanceEstimate:
        """Retries transport errors and 5xx responses with exponential backoff."""
        params = {
            "origins": origin,
            "destinations": destination,
            "mode": "driving",
            "units": "metric",
            "key": self.api_key,
        }
        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = await client.get(self.url, params=params)
                resp.raise_for_status()
                payload = resp.json()
            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500 or attempt == self.max_attempts:
                    raise DistanceProviderError(f"Distance Matrix HTTP {e.response.status_code}") from e
            except httpx.TransportError as e:
                if attempt == self.max_attempts:
                    raise DistanceProviderError(f"Distance Matrix unreachable: {e}") from e
            except ValueError as e:
                raise DistanceProviderError("Distance Matrix returned invalid JSON") from e
            else:
                return self._parse(payload)
            logger.info("Distance Matrix attempt %d/%d failed, retrying", attempt, self.max_attempts)
            await asyncio.sleep(self.backoff_seconds * 2 ** (attempt - 1))

        raise DistanceProviderError("Distance Matrix lookup failed")

    @staticmethod
    def _parse(payload: dict) -> DistanceEstimate:
        status = payload.get("status")
        if status != "OK":
            raise DistanceProviderError(f"Distance Matrix error: {status}")
        try:
            element = payload["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise DistanceProviderError("Malformed Distance Matrix response") from e
        if element.get("status") != "OK":
            raise DistanceProviderError(f"Route error: {element.get('status')}")

        return DistanceEstimate(
            distance_km=element["distance"]["value"] / 1000,
            duration_minutes=element["duration"]["value"] / 60,
            source=DistanceSourceEnum.live,
        )


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

class SimulatedProvider:
    """Plausible random distances for when no mapping provider is reachable."""

    def __init__(self, rates: RateTable, rng: Optional[random.Random] = None) -> None:
        self.rates = rates
        self.rng = rng or random.Random()

    async def estimate(self, origin: str, destination: str) -> DistanceEstimate:
        if is_airport_transfer(origin, destination, self.rates.airport_keywords):
            (d_min, d_max), (t_min, t_max) = AIRPORT_RANGE
        elif is_station_transfer(origin, destination, self.rates.station_keywords):
            (d_min, d_max), (t_min, t_max) = STATION_RANGE
        else:
            (d_min, d_max), (t_min, t_max) = LOCAL_RANGE

        return DistanceEstimate(
            distance_km=self.rng.uniform(d_min, d_max),
            duration_minutes=self.rng.uniform(t_min, t_max),
            source=DistanceSourceEnum.simulated,
        )


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

class CachedProvider:
    def __init__(self, inner: DistanceProvider, redis: aioredis.Redis, ttl: int) -> None:
        self.inner = inner
        self.redis = redis
        self.ttl = ttl

    @staticmethod
    def cache_key(origin: str, destination: str) -> str:
        raw = f"{origin.strip().lower()}|{destination.strip().lower()}"
        return f"distance:{hashlib.sha1(raw.encode('utf-8')).hexdigest()}"

    async def estimate(self, origin: str, destination: str) -> DistanceEstimate:
        key = self.cache_key(origin, destination)

        try:
            cached = await cache_get(self.redis, key)
        except RedisError as e:
            logger.warning("Distance cache read failed: %s", e)
            cached = None
        if cached:
            try:
                data = json.loads(cached)
                return DistanceEstimate(
                    distance_km=data["distance_km"],
                    duration_minutes=data["duration_minutes"],
                    source=DistanceSourceEnum.cached,
                )
            except (ValueError, KeyError, TypeError) as e:
                logger.warning("Ignoring unreadable distance cache entry %s: %s", key, e)

        result = await self.inner.estimate(origin, destination)
        if result.source == DistanceSourceEnum.live:
            try:
                await cache_set(self.redis, key, result.model_dump_json(), ttl=self.ttl)
            except RedisError as e:
                logger.warning("Distance cache write failed: %s", e)
        return result


class FallbackProvider:
    def __init__(self, primary: DistanceProvider, fallback: DistanceProvider) -> None:
        self.primary = primary
        self.fallback = fallback

    async def estimate(self, origin: str, destination: str) -> DistanceEstimate:
        try:
            return await self.primary.estimate(origin, destination)
        except DistanceProviderError as e:
            logger.warning("Distance lookup failed (%s), using simulated distance", e)
            return await self.fallback.estimate(origin, destination)


def build_distance_provider(
    settings: Settings,
    rates: RateTable,
    redis: Optional[aioredis.Redis] = None,
) -> DistanceProvider:
    """Simulator only when no API key is configured, else live with simulated fallback."""
    simulated = SimulatedProvider(rates)
    if not settings.google_maps_api_key:
        return simulated

    live: DistanceProvider = LiveProvider(
        api_key=settings.google_maps_api_key,
        url=settings.distance_matrix_url,
        timeout=settings.distance_timeout_seconds,
        max_attempts=settings.distance_max_attempts,
        backoff_seconds=settings.distance_retry_backoff_seconds,
    )
    if redis is not None and settings.distance_cache_ttl_seconds > 0:
        live = CachedProvider(live, redis, settings.distance_cache_ttl_seconds)
    return FallbackProvider(live, simulated)

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.schemas.schemas import RateTable, VehicleCapacity, VehicleClassEnum, VehicleType


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # App
    app_name: str = "APS TAXIS Fare Estimation"
    env: str = "development"
    log_level: str = "INFO"
    timezone: str = "Europe/Paris"
    booking_reference_prefix: str = "APS"

    # Google Distance Matrix (empty key = simulated distances only)
    google_maps_api_key: str = ""
    distance_matrix_url: str = "https://maps.googleapis.com/maps/api/distancematrix/json"
    distance_timeout_seconds: float = 10.0
    distance_max_attempts: int = 3
    distance_retry_backoff_seconds: float = 0.5

    # Redis (distance lookup cache, 0 TTL disables it)
    redis_url: str = "redis://localhost:6379/0"
    distance_cache_ttl_seconds: int = 0

    # New Relic
    new_relic_license_key: str = ""
    new_relic_app_name: str = "APS-Taxis-Fares"

    # Tariff, e.g. PRICING__BASE_FARE=6 or PRICING__PRICE_PER_KM='{"berline": 1.9, ...}'
    pricing: RateTable = Field(default_factory=RateTable)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_rate_table() -> RateTable:
    return get_settings().pricing


VEHICLE_TYPES: tuple[VehicleType, ...] = (
    VehicleType(
        id=VehicleClassEnum.sedan,
        name="Berline",
        description="Mercedes Classe E ou équivalent",
        capacity=VehicleCapacity(passengers=3, luggage=3),
        features=("Climatisation", "WiFi gratuit", "Bouteilles d'eau", "Prises USB"),
    ),
    VehicleType(
        id=VehicleClassEnum.electric,
        name="Électrique",
        description="Tesla Model 3 ou équivalent",
        capacity=VehicleCapacity(passengers=4, luggage=3),
        features=("Zéro émission", "WiFi gratuit", "Climatisation", "Écran tactile"),
    ),
    VehicleType(
        id=VehicleClassEnum.van,
        name="Van",
        description="Mercedes Viano ou équivalent",
        capacity=VehicleCapacity(passengers=7, luggage=7),
        features=("Espace généreux", "Climatisation", "WiFi gratuit", "Prises USB"),
    ),
)

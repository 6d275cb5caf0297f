from datetime import datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional
from zoneinfo import ZoneInfo
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class VehicleClassEnum(str, Enum):
    sedan = "berline"
    electric = "electrique"
    van = "van"


class LineItemCode(str, Enum):
    base = "base"
    distance = "distance"
    airport = "airport"
    station = "station"
    night = "night"
    waiting = "waiting"


class DistanceSourceEnum(str, Enum):
    live = "live"
    simulated = "simulated"
    cached = "cached"
    client = "client"


class BookingStepEnum(str, Enum):
    FORM = "FORM"
    ESTIMATION = "ESTIMATION"
    CONFIRMATION = "CONFIRMATION"


# ---------------------------------------------------------------------------
# Rate table
# ---------------------------------------------------------------------------

class NightWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_hour: int = Field(22, ge=0, le=23)
    end_hour: int = Field(6, ge=0, le=23)


class RateTable(BaseModel):
    """Tariff loaded once at startup. Amounts are EUR."""

    model_config = ConfigDict(frozen=True)

    base_fare: Decimal = Decimal("5")
    price_per_km: Mapping[str, Decimal] = Field(
        default_factory=lambda: {
            "berline": Decimal("1.8"),
            "electrique": Decimal("2.0"),
            "van": Decimal("2.3"),
        },
        validate_default=True,
    )
    minimum_fare: Mapping[str, Decimal] = Field(
        default_factory=lambda: {
            "berline": Decimal("15"),
            "electrique": Decimal("18"),
            "van": Decimal("25"),
        },
        validate_default=True,
    )
    airport_supplement: Decimal = Decimal("10")
    station_supplement: Decimal = Decimal("5")
    night_supplement: Decimal = Decimal("5")
    night_window: NightWindow = NightWindow()
    waiting_price_per_hour: Decimal = Decimal("30")
    airport_keywords: frozenset[str] = frozenset(
        {"aéroport", "airport", "orly", "roissy", "cdg", "charles de gaulle"}
    )
    station_keywords: frozenset[str] = frozenset({"gare", "station", "tgv", "ter", "sncf"})
    default_vehicle_class: str = VehicleClassEnum.sedan.value

    @field_validator("price_per_km", "minimum_fare")
    @classmethod
    def read_only_rates(cls, v: Mapping[str, Decimal]) -> Mapping[str, Decimal]:
        return MappingProxyType(dict(v))

    @field_serializer("price_per_km", "minimum_fare")
    def rates_as_dict(self, v: Mapping[str, Decimal]) -> dict[str, Decimal]:
        return dict(v)

    @field_validator("airport_keywords", "station_keywords")
    @classmethod
    def lowercase_keywords(cls, v: frozenset[str]) -> frozenset[str]:
        return frozenset(k.lower() for k in v if k)

    @model_validator(mode="after")
    def default_class_is_priced(self) -> "RateTable":
        if self.default_vehicle_class not in self.price_per_km:
            raise ValueError(f"default vehicle class {self.default_vehicle_class!r} has no per-km rate")
        if self.default_vehicle_class not in self.minimum_fare:
            raise ValueError(f"default vehicle class {self.default_vehicle_class!r} has no minimum fare")
        return self


# ---------------------------------------------------------------------------
# Estimation values
# ---------------------------------------------------------------------------

class TripRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    pickup_address: Optional[str] = None
    destination_address: Optional[str] = None
    distance_km: float
    duration_minutes: float = Field(0, ge=0, allow_inf_nan=False)
    # raw id: unknown classes are substituted by the engine, not rejected here
    vehicle_class: str = VehicleClassEnum.sedan.value
    pickup_datetime: datetime
    waiting_minutes: float = Field(0, ge=0, allow_inf_nan=False)

    @field_validator("vehicle_class", mode="before")
    @classmethod
    def vehicle_class_id(cls, v):
        return v.value if isinstance(v, Enum) else v

    @field_validator("pickup_datetime", mode="before")
    @classmethod
    def local_pickup_datetime(cls, v):
        # night pricing reads the local wall-clock hour
        from app.config import get_settings
        from app.services.pricing import InvalidTripError, parse_pickup_datetime

        try:
            return parse_pickup_datetime(v, ZoneInfo(get_settings().timezone))
        except InvalidTripError as e:
            raise ValueError(str(e)) from e


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: LineItemCode
    label: str
    amount: Decimal


class EstimationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_airport_transfer: bool
    is_station_transfer: bool
    is_night_fare: bool
    line_items: tuple[LineItem, ...]
    minimum_fare: Decimal
    minimum_fare_applied: bool
    total_price: Decimal
    booking_reference: str
    vehicle_class: str
    vehicle_class_substituted: bool = False
    distance_km: float
    duration_minutes: float
    currency: str = "EUR"

    @property
    def surcharges(self) -> tuple[LineItem, ...]:
        return tuple(
            item for item in self.line_items
            if item.code not in (LineItemCode.base, LineItemCode.distance)
        )


class DistanceEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    distance_km: float
    duration_minutes: float
    source: DistanceSourceEnum


# ---------------------------------------------------------------------------
# Vehicle catalogue
# ---------------------------------------------------------------------------

class VehicleCapacity(BaseModel):
    passengers: int
    luggage: int


class VehicleType(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: VehicleClassEnum
    name: str
    description: str
    capacity: VehicleCapacity
    features: tuple[str, ...] = ()


class VehicleResponse(BaseModel):
    id: str
    name: str
    description: str
    passengers: int
    luggage: int
    features: list[str]
    price_per_km: float
    minimum_fare: float
    formatted_minimum_fare: str


# ---------------------------------------------------------------------------
# Estimate API schemas
# ---------------------------------------------------------------------------

class EstimateRequest(BaseModel):
    pickup_address: str = Field(..., min_length=5, max_length=255)
    destination_address: str = Field(..., min_length=5, max_length=255)
    # parsed by the pricing service so unparseable values surface as InvalidTripError
    pickup_datetime: str
    vehicle_class: str = VehicleClassEnum.sedan.value
    passengers: int = Field(1, ge=1, le=7)
    luggage: int = Field(0, ge=0, le=7)
    waiting_minutes: float = Field(0, ge=0, allow_inf_nan=False)
    distance_km: Optional[float] = None
    duration_minutes: Optional[float] = Field(None, ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def destination_differs_from_pickup(self) -> "EstimateRequest":
        if self.pickup_address.strip().lower() == self.destination_address.strip().lower():
            raise ValueError("destination_address must differ from pickup_address")
        return self


class LineItemResponse(BaseModel):
    code: LineItemCode
    label: str
    amount: float
    formatted_amount: str


class EstimateResponse(BaseModel):
    booking_reference: str
    vehicle_class: str
    vehicle_class_substituted: bool
    is_airport_transfer: bool
    is_station_transfer: bool
    is_night_fare: bool
    line_items: list[LineItemResponse]
    minimum_fare: float
    minimum_fare_applied: bool
    total_price: float
    formatted_total_price: str
    distance_km: float
    formatted_distance: str
    duration_minutes: float
    formatted_duration: str
    distance_source: DistanceSourceEnum
    pickup_datetime: datetime
    formatted_pickup_datetime: str
    currency: str = "EUR"

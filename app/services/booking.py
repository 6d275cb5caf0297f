"""
Booking wizard state machine.

  FORM ──request_estimate──▶ ESTIMATION ──confirm──▶ CONFIRMATION
    ▲                          │   ▲ │
    └──────────edit────────────┘   └─┘ request_estimate (re-quote)

restart() returns to FORM from any step and discards the trip and quote.
"""
import logging
from typing import Optional

from app.schemas.schemas import BookingStepEnum, EstimationResult, RateTable, TripRequest
from app.services.pricing import estimate_trip

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[BookingStepEnum, set[BookingStepEnum]] = {
    BookingStepEnum.FORM: {BookingStepEnum.ESTIMATION},
    BookingStepEnum.ESTIMATION: {
        BookingStepEnum.ESTIMATION,
        BookingStepEnum.FORM,
        BookingStepEnum.CONFIRMATION,
    },
    BookingStepEnum.CONFIRMATION: set(),
}


class InvalidTransitionError(Exception):
    pass


def is_valid_transition(current: BookingStepEnum, next_step: BookingStepEnum) -> bool:
    return next_step in VALID_TRANSITIONS.get(current, set())


class BookingWorkflow:
    def __init__(self, rates: RateTable, reference_prefix: str = "APS") -> None:
        self.rates = rates
        self.reference_prefix = reference_prefix
        self.step = BookingStepEnum.FORM
        self.trip: Optional[TripRequest] = None
        self.estimation: Optional[EstimationResult] = None

    def _move(self, next_step: BookingStepEnum) -> None:
        if not is_valid_transition(self.step, next_step):
            raise InvalidTransitionError(f"Cannot go from {self.step.value} to {next_step.value}")
        logger.debug("Booking step %s -> %s", self.step.value, next_step.value)
        self.step = next_step

    def request_estimate(self, trip: TripRequest) -> EstimationResult:
        """
        Prices the trip and moves to ESTIMATION. An InvalidTripError leaves
        the workflow where it was.
        """
        if not is_valid_transition(self.step, BookingStepEnum.ESTIMATION):
            raise InvalidTransitionError(f"Cannot estimate from {self.step.value}")

        estimation = estimate_trip(trip, self.rates, reference_prefix=self.reference_prefix)
        self._move(BookingStepEnum.ESTIMATION)
        self.trip = trip
        self.estimation = estimation
        return estimation

    def edit(self) -> Optional[TripRequest]:
        """Back to the form; the trip is kept to prefill it, the quote is dropped."""
        self._move(BookingStepEnum.FORM)
        self.estimation = None
        return self.trip

    def confirm(self) -> EstimationResult:
        self._move(BookingStepEnum.CONFIRMATION)
        assert self.estimation is not None
        logger.info(
            "Booking %s confirmed: %s EUR", self.estimation.booking_reference, self.estimation.total_price
        )
        return self.estimation

    def restart(self) -> None:
        self.step = BookingStepEnum.FORM
        self.trip = None
        self.estimation = None

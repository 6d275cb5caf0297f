import random
import secrets
import string
import time
from typing import Optional

_ALPHABET = string.digits + string.ascii_uppercase
_system_random = secrets.SystemRandom()


def generate_booking_reference(
    prefix: str = "APS",
    now: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Returns e.g. ``APS-482913XQ7``: last 6 digits of the epoch-millisecond
    clock followed by 3 random base-36 characters.

    Collision-improbable within a session, not unique.
    """
    epoch_ms = int((time.time() if now is None else now) * 1000)
    rng = rng or _system_random
    random_chars = "".join(rng.choice(_ALPHABET) for _ in range(3))
    return f"{prefix}-{epoch_ms % 1_000_000:06d}{random_chars}"

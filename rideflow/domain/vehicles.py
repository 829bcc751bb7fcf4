"""Vehicle number validation (``NB-1985``: 2-3 letters, hyphen, 4 digits)."""

import re

from .errors import InvalidVehicleNumber

VEHICLE_NUMBER_RE = re.compile(r"^[A-Z]{2,3}-\d{4}$")


def normalize_vehicle_number(raw: str) -> str:
    number = (raw or "").strip().upper()
    if not VEHICLE_NUMBER_RE.match(number):
        raise InvalidVehicleNumber(
            f"Invalid vehicle number {raw!r} (expected format NB-1985)"
        )
    return number

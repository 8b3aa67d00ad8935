import math
from typing import Any, Mapping

from bizlicense.errors import InvalidProfileError
from bizlicense.models import BusinessProfile

FLAG_FIELDS = ("gas", "serves_meat", "deliveries")


def _is_number(value: Any) -> bool:
    # bool is an int subclass, but True is not an area
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # Large ints overflow float conversion but are finite
    return isinstance(value, int) or math.isfinite(value)


def validate_profile(payload: Any) -> BusinessProfile:
    """
    Validate raw business input and build a BusinessProfile.

    Any `serves_food` key in the payload is ignored: food service is derived
    from meat service during matching, never taken from the user.

    Args:
        payload (Any): Raw input, e.g. a decoded JSON body. Anything that is
                       not a mapping is rejected.

    Returns:
        BusinessProfile: The validated profile.

    Raises:
        InvalidProfileError: Naming the first field that failed.
    """
    if not isinstance(payload, Mapping):
        raise InvalidProfileError("body", "request body must be a JSON object")

    area_m2 = payload.get("area_m2")
    if not _is_number(area_m2) or area_m2 <= 0:
        raise InvalidProfileError("area_m2", "area_m2 must be a positive number")

    seats = payload.get("seats")
    if not _is_number(seats) or seats < 0:
        raise InvalidProfileError("seats", "seats must be a non-negative number")

    for name in FLAG_FIELDS:
        if not isinstance(payload.get(name), bool):
            raise InvalidProfileError(name, f"{name} must be a boolean")

    return BusinessProfile(
        area_m2=area_m2,
        seats=seats,
        gas=payload["gas"],
        serves_meat=payload["serves_meat"],
        deliveries=payload["deliveries"],
    )

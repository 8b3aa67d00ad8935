import pytest

from bizlicense.errors import InvalidProfileError
from bizlicense.models import BusinessProfile
from bizlicense.profile_validation import validate_profile

VALID = {"area_m2": 120.5, "seats": 40, "gas": True, "serves_meat": False, "deliveries": True}


def test_valid_payload_builds_profile():
    assert validate_profile(VALID) == BusinessProfile(
        area_m2=120.5, seats=40, gas=True, serves_meat=False, deliveries=True
    )


def test_zero_seats_allowed():
    assert validate_profile({**VALID, "seats": 0}).seats == 0


def test_user_supplied_serves_food_is_ignored():
    assert validate_profile({**VALID, "serves_food": True}).serves_food is None


@pytest.mark.parametrize("field, value, message", [
    ("area_m2", 0, "area_m2 must be a positive number"),
    ("area_m2", -3, "area_m2 must be a positive number"),
    ("area_m2", "50", "area_m2 must be a positive number"),
    ("area_m2", True, "area_m2 must be a positive number"),
    ("area_m2", float("nan"), "area_m2 must be a positive number"),
    ("area_m2", float("inf"), "area_m2 must be a positive number"),
    ("area_m2", -10**400, "area_m2 must be a positive number"),
    ("seats", -1, "seats must be a non-negative number"),
    ("seats", None, "seats must be a non-negative number"),
    ("gas", "true", "gas must be a boolean"),
    ("serves_meat", 1, "serves_meat must be a boolean"),
    ("deliveries", None, "deliveries must be a boolean"),
])
def test_invalid_field_is_named(field, value, message):
    with pytest.raises(InvalidProfileError) as excinfo:
        validate_profile({**VALID, field: value})

    assert excinfo.value.field == field
    assert str(excinfo.value) == message


def test_missing_field_rejected():
    payload = dict(VALID)
    del payload["gas"]

    with pytest.raises(InvalidProfileError, match="gas must be a boolean"):
        validate_profile(payload)


def test_huge_integer_area_is_accepted():
    profile = validate_profile({**VALID, "area_m2": 10**400, "seats": 10**400})

    assert profile.area_m2 == 10**400
    assert profile.seats == 10**400


@pytest.mark.parametrize("payload", [[VALID], "area_m2=50", None, 42])
def test_non_mapping_payload_rejected(payload):
    with pytest.raises(InvalidProfileError) as excinfo:
        validate_profile(payload)

    assert excinfo.value.field == "body"
    assert str(excinfo.value) == "request body must be a JSON object"

from datetime import UTC

import pytest

from pyparkinggate.exceptions import ValidationError
from pyparkinggate.util import (
    normalize_license_plate,
    parse_timestamp,
    require_id,
    validate_user_type,
)


def test_normalize_license_plate() -> None:
    assert normalize_license_plate(" abc-123 ") == "ABC123"


def test_normalize_license_plate_invalid() -> None:
    with pytest.raises(ValidationError):
        normalize_license_plate("!!!")


def test_parse_timestamp_converts_offset() -> None:
    parsed = parse_timestamp("2024-01-01T12:00:00+02:00")
    assert parsed.tzinfo == UTC
    assert parsed.hour == 10


def test_parse_timestamp_requires_timezone() -> None:
    with pytest.raises(ValidationError):
        parse_timestamp("2024-01-01T12:00:00")


def test_require_id_strips_whitespace() -> None:
    assert require_id(" gate_1 ", "gate_id") == "gate_1"
    with pytest.raises(ValidationError):
        require_id("   ", "gate_id")


def test_validate_user_type() -> None:
    assert validate_user_type("visitor") == "visitor"
    with pytest.raises(ValidationError):
        validate_user_type("staff")

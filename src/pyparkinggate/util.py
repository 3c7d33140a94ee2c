"""Shared utilities for validation and normalization."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from .exceptions import ValidationError
from .models import UserType

_LICENSE_PLATE_RE = re.compile(r"[^A-Z0-9]")
_USER_TYPES: tuple[UserType, ...] = ("visitor", "subscriber")


def require_id(value: Any, field: str) -> str:
    if value is None:
        raise ValidationError(f"{field} is required.")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required.")
    return text


def validate_user_type(value: Any) -> UserType:
    if value not in _USER_TYPES:
        raise ValidationError("user_type must be 'visitor' or 'subscriber'.")
    return value


def normalize_license_plate(plate: str) -> str:
    if not isinstance(plate, str):
        raise ValidationError("License plate must be a string.")
    normalized = _LICENSE_PLATE_RE.sub("", plate.upper())
    if not normalized:
        raise ValidationError("License plate is empty after normalization.")
    return normalized


def parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str) or not value:
        raise ValidationError("Timestamp must be a non-empty string.")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError("Timestamp is not a valid ISO 8601 value.") from exc
    if parsed.tzinfo is None:
        raise ValidationError("Timestamp must include timezone information.")
    return parsed.astimezone(UTC)


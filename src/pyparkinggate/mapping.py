"""Mapping of authority JSON payloads to public models.

REST responses and push-channel payloads share these mappers so the zone
store only ever sees one shape of ``Zone``.
"""

from __future__ import annotations

import math
from typing import Any

from .exceptions import RemoteError
from .models import (
    AuditEntry,
    BillingSegment,
    Car,
    Category,
    CheckoutReceipt,
    Gate,
    LoginResult,
    OpenCheckin,
    ParkingStateReport,
    RushHour,
    Subscription,
    Ticket,
    User,
    Vacation,
    Zone,
)

_TICKET_TYPES = ("visitor", "subscriber")
_RATE_MODES = ("normal", "special")


def map_zone(data: Any) -> Zone:
    """Map a ZoneSnapshot.

    Every field is required. A partial or mistyped snapshot raises
    ``RemoteError`` so it never replaces a good one in the store.
    """
    data = _require_object(data, "zone")
    return Zone(
        id=_coerce_id(data.get("id"), "zone id"),
        name=_require_field(data, "name", str),
        category_id=_require_field(data, "categoryId", str),
        gate_ids=_require_str_tuple(data, "gateIds"),
        total_slots=_require_int(data, "totalSlots"),
        occupied=_require_int(data, "occupied"),
        free=_require_int(data, "free"),
        reserved=_require_int(data, "reserved"),
        available_for_visitors=_require_int(data, "availableForVisitors"),
        available_for_subscribers=_require_int(data, "availableForSubscribers"),
        rate_normal=_require_float(data, "rateNormal"),
        rate_special=_require_float(data, "rateSpecial"),
        open=_require_field(data, "open", bool),
    )


def map_zone_list(data: Any) -> list[Zone]:
    return [map_zone(item) for item in _require_list(data, "zones")]


def map_gate(data: Any) -> Gate:
    data = _require_object(data, "gate")
    return Gate(
        id=_coerce_id(data.get("id"), "gate id"),
        name=_coerce_str(data.get("name")),
        location=_coerce_str(data.get("location")),
        zone_ids=_coerce_str_tuple(data.get("zoneIds"), "gate zoneIds"),
    )


def map_gate_list(data: Any) -> list[Gate]:
    return [map_gate(item) for item in _require_list(data, "gates")]


def map_category(data: Any) -> Category:
    data = _require_object(data, "category")
    description = data.get("description")
    return Category(
        id=_coerce_id(data.get("id"), "category id"),
        name=_coerce_str(data.get("name")),
        rate_normal=_parse_float(data.get("rateNormal")),
        rate_special=_parse_float(data.get("rateSpecial")),
        description=str(description) if description is not None else None,
    )


def map_category_list(data: Any) -> list[Category]:
    return [map_category(item) for item in _require_list(data, "categories")]


def map_subscription(data: Any) -> Subscription:
    data = _require_object(data, "subscription")
    cars: list[Car] = []
    for item in _optional_list(data.get("cars"), "subscription cars"):
        if not isinstance(item, dict):
            continue
        cars.append(
            Car(
                plate=_coerce_str(item.get("plate")),
                brand=_coerce_str(item.get("brand")),
                model=_coerce_str(item.get("model")),
                color=_coerce_str(item.get("color")),
            )
        )
    checkins: list[OpenCheckin] = []
    for item in _optional_list(data.get("currentCheckins"), "subscription checkins"):
        if not isinstance(item, dict):
            continue
        checkins.append(
            OpenCheckin(
                ticket_id=_coerce_id(item.get("ticketId"), "checkin ticket id"),
                zone_id=_coerce_str(item.get("zoneId")),
                checkin_at=_coerce_str(item.get("checkinAt")),
            )
        )
    return Subscription(
        id=_coerce_id(data.get("id"), "subscription id"),
        user_name=_coerce_str(data.get("userName")),
        active=data.get("active") is True,
        category_id=_coerce_str(data.get("category")),
        cars=tuple(cars),
        current_checkins=tuple(checkins),
        starts_at=_optional_str(data.get("startsAt")),
        expires_at=_optional_str(data.get("expiresAt")),
    )


def map_subscription_list(data: Any) -> list[Subscription]:
    return [map_subscription(item) for item in _require_list(data, "subscriptions")]


def map_ticket(data: Any) -> Ticket:
    data = _require_object(data, "ticket")
    ticket_type = data.get("type")
    if ticket_type not in _TICKET_TYPES:
        raise RemoteError("Response included an invalid ticket type.")
    return Ticket(
        id=_coerce_id(data.get("id"), "ticket id"),
        type=ticket_type,
        zone_id=_coerce_str(data.get("zoneId")),
        gate_id=_coerce_str(data.get("gateId")),
        checkin_at=_coerce_str(data.get("checkinAt")),
        checkout_at=_optional_str(data.get("checkoutAt")),
    )


def map_checkin_response(data: Any) -> Ticket:
    data = _require_object(data, "check-in")
    if "ticket" not in data:
        raise RemoteError("Response missing ticket.")
    return map_ticket(data["ticket"])


def map_receipt(data: Any) -> CheckoutReceipt:
    data = _require_object(data, "checkout")
    segments: list[BillingSegment] = []
    # Segment order is chronological as sent by the authority; keep it.
    for item in _optional_list(data.get("breakdown"), "checkout breakdown"):
        item = _require_object(item, "breakdown segment")
        rate_mode = item.get("rateMode")
        if rate_mode not in _RATE_MODES:
            raise RemoteError("Response included an invalid rate mode.")
        segments.append(
            BillingSegment(
                start=_coerce_str(item.get("from")),
                end=_coerce_str(item.get("to")),
                hours=_parse_float(item.get("hours")),
                rate_mode=rate_mode,
                rate=_parse_float(item.get("rate")),
                amount=_parse_float(item.get("amount")),
            )
        )
    zone_state = data.get("zoneState")
    return CheckoutReceipt(
        ticket_id=_coerce_id(data.get("ticketId"), "receipt ticket id"),
        checkin_at=_coerce_str(data.get("checkinAt")),
        checkout_at=_coerce_str(data.get("checkoutAt")),
        duration_hours=_parse_float(data.get("durationHours")),
        breakdown=tuple(segments),
        amount=_parse_float(data.get("amount")),
        zone_state=map_zone(zone_state) if zone_state is not None else None,
    )


def map_login(data: Any) -> LoginResult:
    data = _require_object(data, "login")
    token = data.get("token")
    if not isinstance(token, str) or not token:
        raise RemoteError("Response missing token.")
    user = _require_object(data.get("user"), "user")
    return LoginResult(
        user=User(
            id=_coerce_id(user.get("id"), "user id"),
            username=_coerce_str(user.get("username")),
            name=_coerce_str(user.get("name")),
            role=_coerce_str(user.get("role")),
        ),
        token=token,
    )


def map_audit_entry(data: Any) -> AuditEntry:
    data = _require_object(data, "audit entry")
    return AuditEntry(
        admin_id=_coerce_id(data.get("adminId"), "audit admin id"),
        action=_coerce_id(data.get("action"), "audit action"),
        target_type=_coerce_str(data.get("targetType")),
        target_id=_coerce_str(data.get("targetId")),
        timestamp=_coerce_str(data.get("timestamp")),
        details=data.get("details"),
    )


def map_parking_state_list(data: Any) -> list[ParkingStateReport]:
    reports: list[ParkingStateReport] = []
    for item in _require_list(data, "parking state"):
        item = _require_object(item, "parking state")
        reports.append(
            ParkingStateReport(
                zone_id=_coerce_id(item.get("zoneId"), "report zone id"),
                name=_coerce_str(item.get("name")),
                total_slots=_parse_int(item.get("totalSlots")),
                occupied=_parse_int(item.get("occupied")),
                free=_parse_int(item.get("free")),
                reserved=_parse_int(item.get("reserved")),
                available_for_visitors=_parse_int(item.get("availableForVisitors")),
                available_for_subscribers=_parse_int(item.get("availableForSubscribers")),
                subscriber_count=_parse_int(item.get("subscriberCount")),
                open=item.get("open") is True,
            )
        )
    return reports


def map_rush_hour(data: Any) -> RushHour:
    data = _require_object(data, "rush hour")
    return RushHour(
        id=_coerce_id(data.get("id"), "rush hour id"),
        week_day=_parse_int(data.get("weekDay")),
        start=_coerce_str(data.get("from")),
        end=_coerce_str(data.get("to")),
    )


def map_vacation(data: Any) -> Vacation:
    data = _require_object(data, "vacation")
    return Vacation(
        id=_coerce_id(data.get("id"), "vacation id"),
        name=_coerce_str(data.get("name")),
        start=_coerce_str(data.get("from")),
        end=_coerce_str(data.get("to")),
    )


def _require_object(data: Any, label: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise RemoteError(f"Response included invalid {label} data.")
    return data


def _require_list(data: Any, label: str) -> list[Any]:
    if not isinstance(data, list):
        raise RemoteError(f"Response included invalid {label}.")
    return data


def _optional_list(data: Any, label: str) -> list[Any]:
    if data is None:
        return []
    return _require_list(data, label)


def _coerce_id(value: Any, field: str) -> str:
    if value is None:
        raise RemoteError(f"Response missing {field}.")
    text = str(value).strip()
    if not text:
        raise RemoteError(f"Response missing {field}.")
    return text


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _coerce_str_tuple(value: Any, label: str) -> tuple[str, ...]:
    return tuple(str(item) for item in _optional_list(value, label) if item is not None)


def _parse_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise RemoteError("Response included a non-finite number.")
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return 0
        try:
            return int(stripped)
        except ValueError:
            return 0
    return 0


def _parse_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        parsed = float(value)
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if not math.isfinite(parsed):
        raise RemoteError("Response included a non-finite number.")
    return parsed


def _require_field(data: dict[str, Any], key: str, expected: type) -> Any:
    value = data.get(key)
    if not isinstance(value, expected):
        raise RemoteError(f"Response included invalid {key}.")
    return value


def _require_str_tuple(data: dict[str, Any], key: str) -> tuple[str, ...]:
    items = _require_field(data, key, list)
    if not all(isinstance(item, str) for item in items):
        raise RemoteError(f"Response included invalid {key}.")
    return tuple(items)


def _require_int(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise RemoteError(f"Response included invalid {key}.")
    if isinstance(value, float) and not (math.isfinite(value) and value.is_integer()):
        raise RemoteError(f"Response included invalid {key}.")
    return int(value)


def _require_float(data: dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise RemoteError(f"Response included invalid {key}.")
    if not math.isfinite(value):
        raise RemoteError(f"Response included invalid {key}.")
    return float(value)

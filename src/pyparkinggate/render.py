"""Plain-text rendering of tickets and checkout receipts."""

from __future__ import annotations

import math

from .const import DEFAULT_CURRENCY
from .exceptions import ValidationError
from .models import CheckoutReceipt, Gate, Ticket, Zone
from .util import parse_timestamp

_TICKET_TYPE_LABELS = {"visitor": "Visitor", "subscriber": "Subscriber"}
_RATE_MODE_LABELS = {"normal": "Normal", "special": "Special"}


def format_currency(amount: float, currency: str = DEFAULT_CURRENCY) -> str:
    return f"{amount:,.2f} {currency}"


def format_duration(hours: float) -> str:
    if hours < 0 or math.isnan(hours):
        raise ValidationError("hours must be a non-negative number.")
    whole = math.floor(hours)
    minutes = round((hours - whole) * 60)
    if minutes == 60:
        whole += 1
        minutes = 0
    if whole == 0:
        return f"{minutes} min"
    if minutes == 0:
        return f"{whole} h"
    return f"{whole} h {minutes} min"


def format_timestamp(value: str | None) -> str:
    if not value:
        return "-"
    try:
        parsed = parse_timestamp(value)
    except ValidationError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M UTC")


def render_ticket(
    ticket: Ticket,
    *,
    gate: Gate | None = None,
    zone: Zone | None = None,
) -> list[str]:
    lines = [
        f"Ticket: {ticket.id}",
        f"Type: {_TICKET_TYPE_LABELS.get(ticket.type, ticket.type)}",
        f"Gate: {gate.name if gate is not None else ticket.gate_id}",
        f"Zone: {zone.name if zone is not None else ticket.zone_id}",
        f"Check-in: {format_timestamp(ticket.checkin_at)}",
    ]
    if ticket.checkout_at is not None:
        lines.append(f"Checked out: {format_timestamp(ticket.checkout_at)}")
    return lines


def render_receipt(receipt: CheckoutReceipt, *, currency: str = DEFAULT_CURRENCY) -> list[str]:
    """Render a receipt with its breakdown in the order it was received."""
    lines = [
        f"Ticket: {receipt.ticket_id}",
        f"Check-in: {format_timestamp(receipt.checkin_at)}",
        f"Checkout: {format_timestamp(receipt.checkout_at)}",
        f"Duration: {format_duration(receipt.duration_hours)}",
        "Breakdown:",
    ]
    for segment in receipt.breakdown:
        mode = _RATE_MODE_LABELS.get(segment.rate_mode, segment.rate_mode)
        lines.append(
            f"  {format_timestamp(segment.start)} - {format_timestamp(segment.end)} | "
            f"{format_duration(segment.hours)} | {mode} "
            f"{format_currency(segment.rate, currency)}/h | "
            f"{format_currency(segment.amount, currency)}"
        )
    lines.append(f"Total: {format_currency(receipt.amount, currency)}")
    if receipt.zone_state is not None:
        zone = receipt.zone_state
        lines.append(f"Zone {zone.name}: {zone.occupied}/{zone.total_slots} occupied")
    return lines

"""Public data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

UserType = Literal["visitor", "subscriber"]
RateMode = Literal["normal", "special"]


@dataclass(frozen=True, slots=True)
class Zone:
    id: str
    name: str
    category_id: str
    gate_ids: tuple[str, ...]
    total_slots: int
    occupied: int
    free: int
    reserved: int
    available_for_visitors: int
    available_for_subscribers: int
    rate_normal: float
    rate_special: float
    open: bool

    def available_for(self, user_type: UserType) -> int:
        if user_type == "subscriber":
            return self.available_for_subscribers
        return self.available_for_visitors


@dataclass(frozen=True, slots=True)
class Gate:
    id: str
    name: str
    location: str
    zone_ids: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    name: str
    rate_normal: float
    rate_special: float
    description: str | None = None


@dataclass(frozen=True, slots=True)
class Car:
    plate: str
    brand: str
    model: str
    color: str


@dataclass(frozen=True, slots=True)
class OpenCheckin:
    ticket_id: str
    zone_id: str
    checkin_at: str


@dataclass(frozen=True, slots=True)
class Subscription:
    id: str
    user_name: str
    active: bool
    category_id: str
    cars: tuple[Car, ...]
    current_checkins: tuple[OpenCheckin, ...]
    starts_at: str | None = None
    expires_at: str | None = None

    def has_open_ticket(self, ticket_id: str) -> bool:
        return any(checkin.ticket_id == ticket_id for checkin in self.current_checkins)


@dataclass(frozen=True, slots=True)
class Ticket:
    id: str
    type: UserType
    zone_id: str
    gate_id: str
    checkin_at: str
    checkout_at: str | None = None

    @property
    def checked_out(self) -> bool:
        return self.checkout_at is not None


@dataclass(frozen=True, slots=True)
class BillingSegment:
    start: str
    end: str
    hours: float
    rate_mode: RateMode
    rate: float
    amount: float


@dataclass(frozen=True, slots=True)
class CheckoutReceipt:
    ticket_id: str
    checkin_at: str
    checkout_at: str
    duration_hours: float
    breakdown: tuple[BillingSegment, ...]
    amount: float
    zone_state: Zone | None


@dataclass(frozen=True, slots=True)
class User:
    id: str
    username: str
    name: str
    role: str


@dataclass(frozen=True, slots=True)
class LoginResult:
    user: User
    token: str


@dataclass(frozen=True, slots=True)
class AuditEntry:
    admin_id: str
    action: str
    target_type: str
    target_id: str
    timestamp: str
    details: Any = None


@dataclass(frozen=True, slots=True)
class ParkingStateReport:
    zone_id: str
    name: str
    total_slots: int
    occupied: int
    free: int
    reserved: int
    available_for_visitors: int
    available_for_subscribers: int
    subscriber_count: int
    open: bool


@dataclass(frozen=True, slots=True)
class RushHour:
    id: str
    week_day: int
    start: str
    end: str


@dataclass(frozen=True, slots=True)
class Vacation:
    id: str
    name: str
    start: str
    end: str


@dataclass(frozen=True, slots=True)
class ZoneUpdate:
    """Push message carrying a fresh zone snapshot."""

    zone: Zone


@dataclass(frozen=True, slots=True)
class AdminUpdate:
    """Push message carrying an admin audit entry."""

    entry: AuditEntry


PushMessage = ZoneUpdate | AdminUpdate


@dataclass(frozen=True, slots=True)
class CheckinRequest:
    gate_id: str
    zone_id: str
    type: UserType
    subscription_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "gateId": self.gate_id,
            "zoneId": self.zone_id,
            "type": self.type,
        }
        if self.subscription_id is not None:
            payload["subscriptionId"] = self.subscription_id
        return payload

"""pyparkinggate package."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .admin import AuditLog
from .api import ApiClient
from .checkpoint import CheckoutWorkflow
from .client import Client
from .connection import ConnectionManager, ConnectionState
from .exceptions import (
    AuthError,
    InactiveSubscriptionError,
    NetworkError,
    NotFoundError,
    PreconditionFailedError,
    PyParkingGateError,
    RemoteError,
    ValidationError,
)
from .gate import CheckinState, CheckinWorkflow, GateTerminal
from .models import (
    AdminUpdate,
    AuditEntry,
    BillingSegment,
    Car,
    Category,
    CheckoutReceipt,
    Gate,
    Subscription,
    Ticket,
    Zone,
    ZoneUpdate,
)
from .store import ZoneStore

try:
    __version__ = version("pyparkinggate")
except PackageNotFoundError:  # pragma: no cover - not installed
    __version__ = "0.0.0"

__all__ = [
    "AdminUpdate",
    "ApiClient",
    "AuditEntry",
    "AuditLog",
    "AuthError",
    "BillingSegment",
    "Car",
    "Category",
    "CheckinState",
    "CheckinWorkflow",
    "CheckoutReceipt",
    "CheckoutWorkflow",
    "Client",
    "ConnectionManager",
    "ConnectionState",
    "Gate",
    "GateTerminal",
    "InactiveSubscriptionError",
    "NetworkError",
    "NotFoundError",
    "PreconditionFailedError",
    "PyParkingGateError",
    "RemoteError",
    "Subscription",
    "Ticket",
    "ValidationError",
    "Zone",
    "ZoneStore",
    "ZoneUpdate",
    "__version__",
]

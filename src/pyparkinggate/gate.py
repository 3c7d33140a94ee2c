"""Gate check-in workflow and gate view lifetime."""

from __future__ import annotations

import logging
from enum import Enum
from typing import NoReturn

from .api import ApiClient
from .connection import ConnectionManager
from .exceptions import (
    InactiveSubscriptionError,
    NetworkError,
    NotFoundError,
    PreconditionFailedError,
    PyParkingGateError,
    RemoteError,
    ValidationError,
)
from .models import CheckinRequest, Gate, Subscription, Ticket, UserType, Zone, ZoneUpdate
from .store import ZoneStore
from .util import require_id, validate_user_type

_LOGGER = logging.getLogger(__name__)


class CheckinState(Enum):
    IDLE = "idle"
    VERIFYING = "verifying"
    ZONE_SELECTING = "zone-selecting"
    ZONE_SELECTED = "zone-selected"
    SUBMITTING = "submitting"
    TICKET_ISSUED = "ticket-issued"


_BUSY_STATES = (CheckinState.VERIFYING, CheckinState.SUBMITTING)
_SELECTION_STATES = (
    CheckinState.IDLE,
    CheckinState.ZONE_SELECTING,
    CheckinState.ZONE_SELECTED,
)


class CheckinWorkflow:
    """Admits a vehicle through one gate.

    Visitors go straight to zone selection. Subscribers must verify an active
    subscription first and can only pick zones of their category. Zone
    eligibility is always read from the store at the moment it is checked,
    so push updates that arrive between selection and submission are honored.

    A failed verification leaves the workflow in ``IDLE`` with ``error`` set.
    Remote failures keep the current state so the operator can retry.
    """

    def __init__(self, api: ApiClient, store: ZoneStore, gate_id: str) -> None:
        self._api = api
        self._store = store
        self._gate_id = require_id(gate_id, "gate_id")
        self._user_type: UserType = "visitor"
        self._state = CheckinState.IDLE
        self._subscription_id = ""
        self._subscription: Subscription | None = None
        self._selected_zone_id: str | None = None
        self._ticket: Ticket | None = None
        self._ticket_zone: Zone | None = None
        self._error: str | None = None

    @property
    def gate_id(self) -> str:
        return self._gate_id

    @property
    def state(self) -> CheckinState:
        return self._state

    @property
    def user_type(self) -> UserType:
        return self._user_type

    @property
    def subscription_id(self) -> str:
        """Last subscription id typed by the operator, kept across failures."""
        return self._subscription_id

    @property
    def subscription(self) -> Subscription | None:
        return self._subscription

    @property
    def selected_zone(self) -> Zone | None:
        if self._selected_zone_id is None:
            return None
        return self._store.get(self._selected_zone_id)

    @property
    def ticket(self) -> Ticket | None:
        return self._ticket

    @property
    def ticket_zone(self) -> Zone | None:
        return self._ticket_zone

    @property
    def error(self) -> str | None:
        return self._error

    def select_tab(self, user_type: UserType) -> None:
        """Switch between the visitor and subscriber tabs."""
        user_type = validate_user_type(user_type)
        if self._state in _BUSY_STATES:
            raise PreconditionFailedError("Cannot switch tabs while a request is in flight.")
        self._user_type = user_type
        self._subscription = None
        self._selected_zone_id = None
        self._ticket = None
        self._ticket_zone = None
        self._error = None
        if user_type == "visitor":
            self._state = CheckinState.ZONE_SELECTING
        else:
            self._state = CheckinState.IDLE

    async def verify_subscription(self, subscription_id: str) -> Subscription:
        if self._user_type != "subscriber":
            raise PreconditionFailedError("Subscription verification needs the subscriber tab.")
        if self._state in _BUSY_STATES or self._state == CheckinState.TICKET_ISSUED:
            raise PreconditionFailedError(
                f"Cannot verify a subscription while {self._state.value}."
            )
        self._subscription_id = subscription_id if isinstance(subscription_id, str) else ""
        try:
            subscription_id_value = require_id(subscription_id, "subscription_id")
        except ValidationError as exc:
            self._error = str(exc)
            raise
        self._subscription = None
        self._selected_zone_id = None
        self._state = CheckinState.VERIFYING
        _LOGGER.debug("Verifying subscription %s at gate %s", subscription_id_value, self._gate_id)
        try:
            subscription = await self._api.get_subscription(subscription_id_value)
        except PyParkingGateError as exc:
            self._state = CheckinState.IDLE
            self._error = "Subscription not found."
            status = exc.status if isinstance(exc, RemoteError | NetworkError) else None
            raise NotFoundError(self._error, status=status) from exc
        if not subscription.active:
            self._state = CheckinState.IDLE
            self._error = "Subscription is not active."
            raise InactiveSubscriptionError(self._error)
        self._subscription = subscription
        self._error = None
        self._state = CheckinState.ZONE_SELECTING
        return subscription

    def gate_zones(self) -> list[Zone]:
        """All zones reachable through the gate, selectable or not."""
        return self._store.zones_for_gate(self._gate_id)

    def selectable_zones(self) -> list[Zone]:
        return [zone for zone in self.gate_zones() if self._is_eligible(zone)]

    def select_zone(self, zone_id: str) -> bool:
        """Select a zone. Ineligible zones are ignored and return ``False``."""
        if self._state not in _SELECTION_STATES:
            return False
        zone = self._store.get(zone_id)
        if zone is None or self._gate_id not in zone.gate_ids or not self._is_eligible(zone):
            _LOGGER.debug("Ignoring selection of zone %s", zone_id)
            return False
        self._selected_zone_id = zone.id
        self._state = CheckinState.ZONE_SELECTED
        self._error = None
        return True

    def clear_selection(self) -> None:
        if self._state != CheckinState.ZONE_SELECTED:
            return
        self._selected_zone_id = None
        self._state = CheckinState.ZONE_SELECTING

    async def submit(self) -> Ticket:
        """Submit the check-in for the selected zone."""
        if self._state in _BUSY_STATES:
            self._fail_precondition(f"Cannot submit while {self._state.value}.")
        if self._selected_zone_id is None:
            self._fail_precondition("Select a zone before checking in.")
        subscription = self._subscription
        if self._user_type == "subscriber" and subscription is None:
            self._fail_precondition("Verify the subscription before checking in.")
        zone = self._store.get(self._selected_zone_id)
        if zone is None or not self._is_eligible(zone):
            self._fail_precondition(f"Zone {self._selected_zone_id} is no longer available.")
        request = CheckinRequest(
            gate_id=self._gate_id,
            zone_id=zone.id,
            type=self._user_type,
            subscription_id=subscription.id if subscription is not None else None,
        )
        self._state = CheckinState.SUBMITTING
        try:
            ticket = await self._api.checkin(request)
        except PyParkingGateError as exc:
            self._state = CheckinState.ZONE_SELECTED
            self._error = str(exc)
            raise
        self._ticket = ticket
        self._ticket_zone = zone
        self._selected_zone_id = None
        self._subscription = None
        self._subscription_id = ""
        self._error = None
        self._state = CheckinState.TICKET_ISSUED
        _LOGGER.info("Ticket %s issued for zone %s at gate %s", ticket.id, zone.id, self._gate_id)
        return ticket

    def acknowledge_ticket(self) -> None:
        """Close the issued ticket and return to ``IDLE``."""
        if self._state != CheckinState.TICKET_ISSUED:
            return
        self._ticket = None
        self._ticket_zone = None
        self._state = CheckinState.IDLE

    def _is_eligible(self, zone: Zone) -> bool:
        if self._user_type == "subscriber":
            if self._subscription is None:
                return False
            return self._store.eligibility(
                zone,
                "subscriber",
                category_id=self._subscription.category_id,
            )
        return self._store.eligibility(zone, "visitor")

    def _fail_precondition(self, message: str) -> NoReturn:
        self._error = message
        raise PreconditionFailedError(message)


class GateTerminal:
    """Owns everything a gate view needs for its lifetime.

    ``open()`` loads the gate and its zones, then connects the real-time
    channel and keeps the store current. ``close()`` detaches listeners and
    closes the channel; call it before opening a terminal for another gate.
    """

    def __init__(
        self,
        api: ApiClient,
        connection: ConnectionManager,
        gate_id: str,
        *,
        store: ZoneStore | None = None,
    ) -> None:
        self._api = api
        self._connection = connection
        self._gate_id = require_id(gate_id, "gate_id")
        self._store = store if store is not None else ZoneStore()
        self._gate: Gate | None = None
        self._connected = False
        self._opened = False
        self.workflow = CheckinWorkflow(api, self._store, self._gate_id)

    async def __aenter__(self) -> GateTerminal:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def gate(self) -> Gate | None:
        return self._gate

    @property
    def store(self) -> ZoneStore:
        return self._store

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def connected(self) -> bool:
        return self._connected

    async def open(self) -> None:
        if self._opened:
            return
        _LOGGER.debug("Opening gate terminal %s", self._gate_id)
        gates = await self._api.get_gates()
        gate = next((item for item in gates if item.id == self._gate_id), None)
        if gate is None:
            raise NotFoundError(f"Gate {self._gate_id} was not found.")
        self._gate = gate
        await self.refresh()
        self._connection.on(ZoneUpdate, self._on_zone_update)
        self._connection.on_connection_change(self._on_connection_change)
        self._opened = True
        try:
            await self._connection.connect()
        except NetworkError as exc:
            _LOGGER.warning("Gate %s running without live updates: %s", self._gate_id, exc)
        # Tracked even while offline so a later reconnect subscribes.
        await self._connection.subscribe(self._gate_id)
        self._connected = self._connection.connected

    async def refresh(self) -> None:
        """Reload the zone snapshot over REST."""
        zones = await self._api.get_zones(self._gate_id)
        self._store.load_snapshot(zones)

    async def close(self) -> None:
        if not self._opened:
            return
        self._opened = False
        self._connection.off(ZoneUpdate, self._on_zone_update)
        self._connection.off_connection_change(self._on_connection_change)
        await self._connection.unsubscribe(self._gate_id)
        await self._connection.disconnect()
        self._connected = False
        self._store.clear()
        _LOGGER.debug("Closed gate terminal %s", self._gate_id)

    def _on_zone_update(self, message: ZoneUpdate) -> None:
        self._store.apply_update(message.zone)

    def _on_connection_change(self, connected: bool) -> None:
        self._connected = connected

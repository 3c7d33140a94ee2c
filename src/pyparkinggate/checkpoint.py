"""Checkpoint checkout workflow."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import NoReturn

from .api import ApiClient
from .const import DEFAULT_PROBE_SUBSCRIPTION_IDS
from .exceptions import PreconditionFailedError, PyParkingGateError, ValidationError
from .models import CheckoutReceipt, Subscription, Ticket
from .util import normalize_license_plate, require_id

_LOGGER = logging.getLogger(__name__)


class CheckoutWorkflow:
    """Looks up a ticket, shows its subscription and checks the vehicle out."""

    def __init__(
        self,
        api: ApiClient,
        *,
        probe_subscription_ids: Iterable[str] = DEFAULT_PROBE_SUBSCRIPTION_IDS,
    ) -> None:
        self._api = api
        self._probe_subscription_ids = tuple(probe_subscription_ids)
        self._ticket_id = ""
        self._ticket: Ticket | None = None
        self._subscription: Subscription | None = None
        self._receipt: CheckoutReceipt | None = None
        self._error: str | None = None

    @property
    def ticket_id(self) -> str:
        """Last ticket id typed by the operator, kept across failures."""
        return self._ticket_id

    @property
    def ticket(self) -> Ticket | None:
        return self._ticket

    @property
    def subscription(self) -> Subscription | None:
        return self._subscription

    @property
    def receipt(self) -> CheckoutReceipt | None:
        return self._receipt

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def can_checkout(self) -> bool:
        return self._ticket is not None and not self._ticket.checked_out

    async def lookup_ticket(self, ticket_id: str) -> Ticket:
        self._ticket_id = ticket_id if isinstance(ticket_id, str) else ""
        try:
            ticket_id_value = require_id(ticket_id, "ticket_id")
        except ValidationError as exc:
            self._error = str(exc)
            raise
        self._error = None
        try:
            ticket = await self._api.get_ticket(ticket_id_value)
        except PyParkingGateError as exc:
            self._ticket = None
            self._subscription = None
            self._error = str(exc)
            raise
        self._ticket = ticket
        self._subscription = None
        if ticket.type == "subscriber":
            self._subscription = await self._find_subscription(ticket.id)
        if ticket.checked_out:
            _LOGGER.info("Ticket %s was already checked out at %s", ticket.id, ticket.checkout_at)
        return ticket

    async def checkout(
        self,
        ticket_id: str | None = None,
        *,
        force_convert_to_visitor: bool = False,
    ) -> CheckoutReceipt:
        """Check a ticket out, by default the one that was looked up.

        ``force_convert_to_visitor`` bills a subscriber stay at visitor rates,
        for vehicles whose plate is not on the subscription. It is ignored for a
        looked-up visitor ticket.
        """
        ticket = self._ticket
        if ticket_id is None:
            if ticket is None:
                self._fail_precondition("Look up a ticket before checking out.")
            ticket_id_value = ticket.id
        else:
            try:
                ticket_id_value = require_id(ticket_id, "ticket_id")
            except ValidationError as exc:
                self._error = str(exc)
                raise
        if ticket is not None and ticket.id == ticket_id_value and ticket.checked_out:
            self._fail_precondition(f"Ticket {ticket.id} was already checked out.")
        if ticket is not None and ticket.id == ticket_id_value and ticket.type == "visitor":
            force_convert_to_visitor = False
        try:
            receipt = await self._api.checkout(
                ticket_id_value,
                force_convert_to_visitor=force_convert_to_visitor,
            )
        except PyParkingGateError as exc:
            self._error = str(exc)
            raise
        self._receipt = receipt
        self._ticket = None
        self._subscription = None
        self._ticket_id = ""
        self._error = None
        return receipt

    def plate_matches(self, license_plate: str) -> bool:
        """Return whether a plate is registered on the shown subscription."""
        if self._subscription is None:
            return False
        plate = normalize_license_plate(license_plate)
        for car in self._subscription.cars:
            try:
                if normalize_license_plate(car.plate) == plate:
                    return True
            except ValidationError:
                continue
        return False

    def reset(self) -> None:
        self._ticket_id = ""
        self._ticket = None
        self._subscription = None
        self._receipt = None
        self._error = None

    async def _find_subscription(self, ticket_id: str) -> Subscription | None:
        # TODO: replace probing with a ticket -> subscription lookup once the
        # authority exposes one; subscriptions outside the probe list are missed.
        for candidate in self._probe_subscription_ids:
            try:
                subscription = await self._api.get_subscription(candidate)
            except PyParkingGateError as exc:
                _LOGGER.debug("Probe of subscription %s failed: %s", candidate, exc)
                continue
            if subscription.has_open_ticket(ticket_id):
                return subscription
        _LOGGER.info("No probed subscription holds ticket %s", ticket_id)
        return None

    def _fail_precondition(self, message: str) -> NoReturn:
        self._error = message
        raise PreconditionFailedError(message)

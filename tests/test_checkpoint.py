from __future__ import annotations

import pytest

from pyparkinggate.checkpoint import CheckoutWorkflow
from pyparkinggate.exceptions import (
    NetworkError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from pyparkinggate.models import (
    BillingSegment,
    Car,
    CheckoutReceipt,
    OpenCheckin,
    Subscription,
    Ticket,
)


def _ticket(ticket_id: str = "t_100", **overrides: object) -> Ticket:
    values: dict[str, object] = {
        "id": ticket_id,
        "type": "subscriber",
        "zone_id": "zone_A",
        "gate_id": "gate_1",
        "checkin_at": "2024-01-01T10:00:00Z",
        "checkout_at": None,
    }
    values.update(overrides)
    return Ticket(**values)  # type: ignore[arg-type]


def _subscription(subscription_id: str, *ticket_ids: str) -> Subscription:
    return Subscription(
        id=subscription_id,
        user_name="Sara",
        active=True,
        category_id="cat_premium",
        cars=(Car(plate="ABC-123", brand="Toyota", model="Camry", color="White"),),
        current_checkins=tuple(
            OpenCheckin(ticket_id=ticket_id, zone_id="zone_A", checkin_at="2024-01-01T10:00:00Z")
            for ticket_id in ticket_ids
        ),
    )


def _receipt(ticket_id: str) -> CheckoutReceipt:
    return CheckoutReceipt(
        ticket_id=ticket_id,
        checkin_at="2024-01-01T10:00:00Z",
        checkout_at="2024-01-01T12:00:00Z",
        duration_hours=2.0,
        breakdown=(
            BillingSegment(
                start="2024-01-01T10:00:00Z",
                end="2024-01-01T12:00:00Z",
                hours=2.0,
                rate_mode="normal",
                rate=5.0,
                amount=10.0,
            ),
        ),
        amount=10.0,
        zone_state=None,
    )


class _FakeApi:
    def __init__(
        self,
        *,
        tickets: dict[str, Ticket] | None = None,
        subscriptions: dict[str, Subscription] | None = None,
        failing_subscriptions: set[str] | None = None,
    ) -> None:
        self.tickets = tickets or {}
        self.subscriptions = subscriptions or {}
        self.failing_subscriptions = failing_subscriptions or set()
        self.subscription_lookups: list[str] = []
        self.checkouts: list[tuple[str, bool]] = []

    async def get_ticket(self, ticket_id: str) -> Ticket:
        if ticket_id not in self.tickets:
            raise NotFoundError("Ticket not found")
        return self.tickets[ticket_id]

    async def get_subscription(self, subscription_id: str) -> Subscription:
        self.subscription_lookups.append(subscription_id)
        if subscription_id in self.failing_subscriptions:
            raise NetworkError("Network error occurred.")
        if subscription_id not in self.subscriptions:
            raise NotFoundError("Subscription not found")
        return self.subscriptions[subscription_id]

    async def checkout(
        self,
        ticket_id: str,
        *,
        force_convert_to_visitor: bool = False,
    ) -> CheckoutReceipt:
        self.checkouts.append((ticket_id, force_convert_to_visitor))
        return _receipt(ticket_id)


def _workflow(api: _FakeApi) -> CheckoutWorkflow:
    return CheckoutWorkflow(api)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_subscriber_ticket_without_subscription_match() -> None:
    api = _FakeApi(
        tickets={"t_100": _ticket()},
        subscriptions={"sub_001": _subscription("sub_001", "t_999")},
    )
    workflow = _workflow(api)
    await workflow.lookup_ticket("t_100")

    assert workflow.subscription is None
    assert api.subscription_lookups == ["sub_001", "sub_002", "sub_003", "sub_004", "sub_005"]

    receipt = await workflow.checkout()
    assert receipt.ticket_id == "t_100"
    assert api.checkouts == [("t_100", False)]
    assert workflow.ticket is None
    assert workflow.subscription is None
    assert workflow.receipt == receipt


@pytest.mark.asyncio
async def test_subscription_search_stops_at_first_match_and_skips_errors() -> None:
    api = _FakeApi(
        tickets={"t_100": _ticket()},
        subscriptions={
            "sub_003": _subscription("sub_003", "t_100"),
            "sub_004": _subscription("sub_004", "t_100"),
        },
        failing_subscriptions={"sub_002"},
    )
    workflow = _workflow(api)
    await workflow.lookup_ticket("t_100")

    assert workflow.subscription is not None
    assert workflow.subscription.id == "sub_003"
    assert api.subscription_lookups == ["sub_001", "sub_002", "sub_003"]
    assert workflow.plate_matches("abc 123") is True
    assert workflow.plate_matches("XYZ-999") is False


@pytest.mark.asyncio
async def test_force_convert_only_when_requested() -> None:
    api = _FakeApi(tickets={"t_100": _ticket()})
    workflow = _workflow(api)
    await workflow.lookup_ticket("t_100")
    await workflow.checkout(force_convert_to_visitor=True)
    assert api.checkouts == [("t_100", True)]


@pytest.mark.asyncio
async def test_force_convert_is_dropped_for_visitor_ticket() -> None:
    api = _FakeApi(tickets={"t_1": _ticket("t_1", type="visitor")})
    workflow = _workflow(api)
    await workflow.lookup_ticket("t_1")
    await workflow.checkout(force_convert_to_visitor=True)
    assert api.checkouts == [("t_1", False)]


@pytest.mark.asyncio
async def test_visitor_ticket_skips_subscription_search() -> None:
    api = _FakeApi(tickets={"t_1": _ticket("t_1", type="visitor")})
    workflow = _workflow(api)
    await workflow.lookup_ticket("t_1")
    assert api.subscription_lookups == []
    assert workflow.can_checkout is True


@pytest.mark.asyncio
async def test_checked_out_ticket_is_shown_but_not_checked_out() -> None:
    api = _FakeApi(
        tickets={"t_1": _ticket("t_1", type="visitor", checkout_at="2024-01-01T12:00:00Z")}
    )
    workflow = _workflow(api)
    ticket = await workflow.lookup_ticket("t_1")

    assert workflow.ticket == ticket
    assert workflow.can_checkout is False
    with pytest.raises(PreconditionFailedError):
        await workflow.checkout()
    assert api.checkouts == []
    assert workflow.ticket == ticket


@pytest.mark.asyncio
async def test_lookup_requires_ticket_id() -> None:
    workflow = _workflow(_FakeApi())
    with pytest.raises(ValidationError):
        await workflow.lookup_ticket("")
    assert workflow.error is not None


@pytest.mark.asyncio
async def test_lookup_unknown_ticket_raises_not_found() -> None:
    workflow = _workflow(_FakeApi())
    with pytest.raises(NotFoundError):
        await workflow.lookup_ticket("t_missing")
    assert workflow.ticket is None
    assert workflow.ticket_id == "t_missing"
    assert workflow.error == "Ticket not found"


@pytest.mark.asyncio
async def test_checkout_without_lookup_needs_ticket_id() -> None:
    api = _FakeApi()
    workflow = _workflow(api)
    with pytest.raises(PreconditionFailedError):
        await workflow.checkout()
    await workflow.checkout("t_7")
    assert api.checkouts == [("t_7", False)]


@pytest.mark.asyncio
async def test_reset_clears_state() -> None:
    api = _FakeApi(tickets={"t_1": _ticket("t_1", type="visitor")})
    workflow = _workflow(api)
    await workflow.lookup_ticket("t_1")
    await workflow.checkout()
    workflow.reset()
    assert workflow.receipt is None
    assert workflow.ticket_id == ""

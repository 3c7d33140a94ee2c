from __future__ import annotations

from typing import Any

import aiohttp
import pytest

from pyparkinggate.api import ApiClient
from pyparkinggate.exceptions import (
    AuthError,
    NetworkError,
    NotFoundError,
    RemoteError,
    ValidationError,
)
from pyparkinggate.models import CheckinRequest

ZONE_SAMPLE = {
    "id": "zone_A",
    "name": "Zone A",
    "categoryId": "cat_premium",
    "gateIds": ["gate_1", "gate_2"],
    "totalSlots": 10,
    "occupied": 8,
    "free": 2,
    "reserved": 1,
    "availableForVisitors": 1,
    "availableForSubscribers": 2,
    "rateNormal": 5.5,
    "rateSpecial": 9,
    "open": True,
}

TICKET_SAMPLE = {
    "id": "t_100",
    "type": "visitor",
    "zoneId": "zone_A",
    "gateId": "gate_1",
    "checkinAt": "2024-01-01T10:00:00Z",
    "checkoutAt": None,
}

RECEIPT_SAMPLE = {
    "ticketId": "t_100",
    "checkinAt": "2024-01-01T10:00:00Z",
    "checkoutAt": "2024-01-01T13:30:00Z",
    "durationHours": 3.5,
    "breakdown": [
        {
            "from": "2024-01-01T10:00:00Z",
            "to": "2024-01-01T12:00:00Z",
            "hours": 2,
            "rateMode": "normal",
            "rate": 5,
            "amount": 10,
        },
        {
            "from": "2024-01-01T12:00:00Z",
            "to": "2024-01-01T13:30:00Z",
            "hours": 1.5,
            "rateMode": "special",
            "rate": 8,
            "amount": 12,
        },
    ],
    "amount": 22,
    "zoneState": ZONE_SAMPLE,
}


class _FakeResponse:
    def __init__(
        self,
        payload: Any = None,
        *,
        status: int = 200,
        json_error: Exception | None = None,
    ) -> None:
        self.status = status
        self._payload = payload
        self._json_error = json_error

    async def json(self) -> Any:
        if self._json_error is not None:
            raise self._json_error
        return self._payload


class _FakeRequestContext:
    def __init__(self, response: _FakeResponse) -> None:
        self._response = response

    async def __aenter__(self) -> _FakeResponse:
        return self._response

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _SequenceSession:
    def __init__(self, responses: list[object]) -> None:
        self._responses = responses
        self.calls: list[dict[str, Any]] = []
        self._index = 0

    def request(self, method: str, url: str, **kwargs: Any) -> _FakeRequestContext:
        self.calls.append({"method": method, "url": url, "kwargs": kwargs})
        response = self._responses[self._index]
        self._index += 1
        if isinstance(response, Exception):
            raise response
        return _FakeRequestContext(response)


def _client(session: object, **kwargs: Any) -> ApiClient:
    return ApiClient(session, base_url="https://example/", **kwargs)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_get_zones_passes_gate_and_maps_snapshot() -> None:
    session = _SequenceSession([_FakeResponse([ZONE_SAMPLE])])
    zones = await _client(session).get_zones("gate_1")

    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://example/api/v1/master/zones"
    assert call["kwargs"]["params"] == {"gateId": "gate_1"}
    zone = zones[0]
    assert zone.gate_ids == ("gate_1", "gate_2")
    assert zone.available_for_visitors == 1
    assert zone.rate_special == 9.0
    assert zone.open is True


@pytest.mark.asyncio
async def test_get_zones_rejects_non_finite_numbers() -> None:
    session = _SequenceSession([_FakeResponse([{**ZONE_SAMPLE, "totalSlots": float("nan")}])])
    with pytest.raises(RemoteError):
        await _client(session).get_zones("gate_1")


@pytest.mark.asyncio
async def test_checkin_posts_payload_and_returns_ticket() -> None:
    session = _SequenceSession([_FakeResponse({"ticket": TICKET_SAMPLE})])
    ticket = await _client(session).checkin(
        CheckinRequest(gate_id="gate_1", zone_id="zone_A", type="visitor")
    )

    assert session.calls[0]["url"].endswith("/tickets/checkin")
    assert session.calls[0]["kwargs"]["json"] == {
        "gateId": "gate_1",
        "zoneId": "zone_A",
        "type": "visitor",
    }
    assert ticket.id == "t_100"
    assert ticket.checked_out is False


@pytest.mark.asyncio
async def test_checkout_only_sends_force_flag_when_requested() -> None:
    session = _SequenceSession([_FakeResponse(RECEIPT_SAMPLE), _FakeResponse(RECEIPT_SAMPLE)])
    client = _client(session)

    receipt = await client.checkout("t_100")
    await client.checkout("t_100", force_convert_to_visitor=True)

    assert session.calls[0]["kwargs"]["json"] == {"ticketId": "t_100"}
    assert session.calls[1]["kwargs"]["json"] == {
        "ticketId": "t_100",
        "forceConvertToVisitor": True,
    }
    assert [segment.rate_mode for segment in receipt.breakdown] == ["normal", "special"]
    assert receipt.amount == 22.0
    assert receipt.zone_state is not None
    assert receipt.zone_state.id == "zone_A"


@pytest.mark.asyncio
async def test_missing_ticket_raises_not_found() -> None:
    session = _SequenceSession([_FakeResponse({"message": "Ticket not found"}, status=404)])
    with pytest.raises(NotFoundError, match="Ticket not found"):
        await _client(session).get_ticket("t_404")


@pytest.mark.asyncio
async def test_structured_error_raises_remote_error() -> None:
    session = _SequenceSession(
        [_FakeResponse({"message": "Zone is full", "errors": {"zoneId": "full"}}, status=409)]
    )
    with pytest.raises(RemoteError, match="Zone is full") as exc_info:
        await _client(session).checkin(
            CheckinRequest(gate_id="gate_1", zone_id="zone_A", type="visitor")
        )
    assert exc_info.value.status == 409
    assert exc_info.value.errors == {"zoneId": "full"}


@pytest.mark.asyncio
async def test_unstructured_error_raises_network_error() -> None:
    session = _SequenceSession([_FakeResponse(status=502, json_error=ValueError("html"))])
    with pytest.raises(NetworkError) as exc_info:
        await _client(session).get_gates()
    assert exc_info.value.status == 502


@pytest.mark.asyncio
async def test_transport_error_raises_network_error() -> None:
    session = _SequenceSession([aiohttp.ClientConnectionError("refused")])
    with pytest.raises(NetworkError) as exc_info:
        await _client(session).get_gates()
    assert exc_info.value.status == 0


@pytest.mark.asyncio
async def test_get_requests_are_retried() -> None:
    session = _SequenceSession([aiohttp.ClientConnectionError("refused"), _FakeResponse([])])
    gates = await _client(session, retry_count=1).get_gates()
    assert gates == []
    assert len(session.calls) == 2


@pytest.mark.asyncio
async def test_post_requests_are_not_retried() -> None:
    session = _SequenceSession([aiohttp.ClientConnectionError("refused"), _FakeResponse({})])
    with pytest.raises(NetworkError):
        await _client(session, retry_count=3).checkout("t_100")
    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_invalid_json_raises_remote_error() -> None:
    session = _SequenceSession([_FakeResponse(json_error=ValueError("bad"))])
    with pytest.raises(RemoteError, match="valid JSON"):
        await _client(session).get_categories()


@pytest.mark.asyncio
async def test_admin_endpoints_require_token() -> None:
    session = _SequenceSession([])
    with pytest.raises(AuthError):
        await _client(session).get_parking_state()
    assert session.calls == []


@pytest.mark.asyncio
async def test_login_token_is_used_for_admin_calls() -> None:
    session = _SequenceSession(
        [
            _FakeResponse(
                {
                    "user": {"id": "u1", "username": "admin", "name": "Admin", "role": "admin"},
                    "token": "abc",
                }
            ),
            _FakeResponse({**ZONE_SAMPLE, "open": False}),
        ]
    )
    client = _client(session)
    result = await client.login("admin", "secret")
    zone = await client.update_zone_status("zone_A", False)

    assert result.user.role == "admin"
    assert client.token == "abc"
    assert session.calls[1]["kwargs"]["headers"]["Authorization"] == "Bearer abc"
    assert session.calls[1]["kwargs"]["json"] == {"open": False}
    assert session.calls[1]["url"].endswith("/admin/zones/zone_A/open")
    assert zone is not None
    assert zone.open is False


@pytest.mark.asyncio
async def test_login_failure_raises_auth_error() -> None:
    session = _SequenceSession([_FakeResponse({"message": "Invalid credentials"}, status=401)])
    client = _client(session)
    with pytest.raises(AuthError, match="Invalid credentials"):
        await client.login("admin", "wrong")
    assert client.token is None


@pytest.mark.asyncio
async def test_add_rush_hour_validates_week_day() -> None:
    client = _client(_SequenceSession([]), token="abc")
    with pytest.raises(ValidationError):
        await client.add_rush_hour(7, "07:00", "09:00")


@pytest.mark.asyncio
async def test_empty_ids_are_rejected_locally() -> None:
    session = _SequenceSession([])
    client = _client(session)
    with pytest.raises(ValidationError):
        await client.get_subscription(" ")
    with pytest.raises(ValidationError):
        await client.get_ticket("")
    assert session.calls == []


def test_build_url_requires_base_url() -> None:
    client = ApiClient(_SequenceSession([]))  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        client._build_url("/master/gates")

import aiohttp
import pytest

from pyparkinggate import Client
from pyparkinggate.exceptions import ValidationError


@pytest.mark.asyncio
async def test_client_does_not_close_injected_session() -> None:
    session = aiohttp.ClientSession()
    client = Client(session=session)
    await client.aclose()

    assert session.closed is False
    await session.close()


@pytest.mark.asyncio
async def test_ws_url_is_derived_from_base_url() -> None:
    async with Client(base_url="https://parking.example/") as client:
        assert client.ws_url == "wss://parking.example/api/v1/ws"
    async with Client(base_url="http://localhost:3000", api_uri="") as client:
        assert client.ws_url == "ws://localhost:3000/ws"
    async with Client(ws_url="ws://other/ws") as client:
        assert client.ws_url == "ws://other/ws"


@pytest.mark.asyncio
async def test_gate_terminals_get_their_own_connection() -> None:
    async with Client(base_url="http://localhost:3000") as client:
        first = client.gate_terminal("gate_1")
        second = client.gate_terminal("gate_2")
        assert first.connection is not second.connection
        assert client.checkout_workflow() is not client.checkout_workflow()


def test_ws_url_requires_base_url() -> None:
    client = Client()
    with pytest.raises(ValidationError):
        _ = client.ws_url

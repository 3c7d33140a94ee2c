"""Client facade wiring the REST client, channel and workflows."""

from __future__ import annotations

import aiohttp

from .api import ApiClient
from .checkpoint import CheckoutWorkflow
from .connection import ConnectionManager
from .const import (
    DEFAULT_API_URI,
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_RECONNECT_DELAY,
    DEFAULT_WS_PATH,
)
from .exceptions import ValidationError
from .gate import GateTerminal

_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)


def _derive_ws_url(base_url: str, api_uri: str) -> str:
    base = base_url.strip().rstrip("/")
    if base.startswith("https://"):
        base = f"wss://{base.removeprefix('https://')}"
    elif base.startswith("http://"):
        base = f"ws://{base.removeprefix('http://')}"
    else:
        raise ValidationError("base_url must start with http:// or https://.")
    uri = api_uri.strip().strip("/")
    prefix = f"/{uri}" if uri else ""
    return f"{base}{prefix}{DEFAULT_WS_PATH}"


class Client:
    """Entry point for a terminal: one HTTP session, fresh objects per view."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        base_url: str | None = None,
        ws_url: str | None = None,
        api_uri: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
        token: str | None = None,
        max_reconnect_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._base_url = base_url
        self._api_uri = DEFAULT_API_URI if api_uri is None else api_uri
        self._ws_url = ws_url
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)
        self._token = token
        self._max_reconnect_attempts = max_reconnect_attempts
        self._reconnect_delay = reconnect_delay
        self._api: ApiClient | None = None

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._api = None

    @property
    def api(self) -> ApiClient:
        if self._api is None:
            self._api = ApiClient(
                self._ensure_session(),
                base_url=self._base_url,
                api_uri=self._api_uri,
                timeout=self._timeout,
                retry_count=self._retry_count,
                token=self._token,
            )
        return self._api

    @property
    def ws_url(self) -> str:
        if self._ws_url:
            return self._ws_url
        if not self._base_url:
            raise ValidationError("base_url or ws_url is required for the real-time channel.")
        return _derive_ws_url(self._base_url, self._api_uri)

    def create_connection(self) -> ConnectionManager:
        """Return a new, unconnected channel owned by the caller."""
        return ConnectionManager(
            self._ensure_session(),
            self.ws_url,
            max_reconnect_attempts=self._max_reconnect_attempts,
            reconnect_delay=self._reconnect_delay,
        )

    def gate_terminal(self, gate_id: str) -> GateTerminal:
        return GateTerminal(self.api, self.create_connection(), gate_id)

    def checkout_workflow(self) -> CheckoutWorkflow:
        return CheckoutWorkflow(self.api)

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

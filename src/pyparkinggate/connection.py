"""Real-time channel to the parking authority."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, TypeVar

import aiohttp

from .const import (
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_RECONNECT_DELAY,
    MESSAGE_ADMIN_UPDATE,
    MESSAGE_SUBSCRIBE,
    MESSAGE_UNSUBSCRIBE,
    MESSAGE_ZONE_UPDATE,
)
from .exceptions import NetworkError, RemoteError, ValidationError
from .mapping import map_audit_entry, map_zone
from .models import AdminUpdate, PushMessage, ZoneUpdate
from .util import require_id

_LOGGER = logging.getLogger(__name__)

MessageT = TypeVar("MessageT", ZoneUpdate, AdminUpdate)
MessageListener = Callable[[Any], None]
ConnectionListener = Callable[[bool], None]

_CLOSE_TYPES = (
    aiohttp.WSMsgType.CLOSE,
    aiohttp.WSMsgType.CLOSING,
    aiohttp.WSMsgType.CLOSED,
    aiohttp.WSMsgType.ERROR,
)


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


def decode_message(raw: str) -> PushMessage | None:
    """Decode a ``{type, payload}`` frame.

    Returns ``None`` for message types this client does not handle. Raises
    ``RemoteError`` for frames that cannot be decoded.
    """
    try:
        frame = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise RemoteError("Push frame is not valid JSON.") from exc
    if not isinstance(frame, dict):
        raise RemoteError("Push frame must be a JSON object.")
    message_type = frame.get("type")
    payload = frame.get("payload")
    if message_type == MESSAGE_ZONE_UPDATE:
        return ZoneUpdate(zone=map_zone(payload))
    if message_type == MESSAGE_ADMIN_UPDATE:
        return AdminUpdate(entry=map_audit_entry(payload))
    return None


def encode_directive(message_type: str, gate_id: str) -> str:
    return json.dumps({"type": message_type, "payload": {"gateId": gate_id}})


class ConnectionManager:
    """Owns one websocket to the authority.

    Reconnects with linear backoff after an unexpected close and restores the
    tracked gate subscription on every successful (re)connect.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        url: str,
        *,
        max_reconnect_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        heartbeat: float | None = None,
    ) -> None:
        if session is None:
            raise ValidationError("Session is required.")
        if not isinstance(url, str) or not url.strip():
            raise ValidationError("url must be a non-empty string.")
        self._session = session
        self._url = url.strip()
        self._max_reconnect_attempts = max(0, max_reconnect_attempts)
        self._reconnect_delay = max(0.0, reconnect_delay)
        self._heartbeat = heartbeat
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._reconnect_attempts = 0
        self._listeners: dict[type, set[MessageListener]] = {
            ZoneUpdate: set(),
            AdminUpdate: set(),
        }
        self._connection_listeners: set[ConnectionListener] = set()
        self._gate_id: str | None = None
        self._state = ConnectionState.DISCONNECTED
        self._connected = False
        self._closing = False

    async def __aenter__(self) -> ConnectionManager:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def subscribed_gate_id(self) -> str | None:
        return self._gate_id

    async def connect(self) -> None:
        """Open the channel.

        Raises ``NetworkError`` when this handshake fails; background
        reconnects are still scheduled in that case.
        """
        self._closing = False
        await self._cancel_reconnect()
        try:
            await self._open()
        except NetworkError:
            self._state = ConnectionState.DISCONNECTED
            self._schedule_reconnect()
            raise

    async def disconnect(self) -> None:
        """Close the channel for good; no reconnect follows."""
        self._closing = True
        self._gate_id = None
        await self._cancel_reconnect()
        reader, self._reader = self._reader, None
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            await ws.close()
        self._state = ConnectionState.CLOSED
        self._set_connected(False)
        _LOGGER.debug("Real-time channel closed")

    async def subscribe(self, gate_id: str) -> None:
        gate_id_value = require_id(gate_id, "gate_id")
        self._gate_id = gate_id_value
        if self._connected:
            await self._send_directive(MESSAGE_SUBSCRIBE, gate_id_value)

    async def unsubscribe(self, gate_id: str) -> None:
        gate_id_value = require_id(gate_id, "gate_id")
        if self._gate_id == gate_id_value:
            self._gate_id = None
        if self._connected:
            await self._send_directive(MESSAGE_UNSUBSCRIBE, gate_id_value)

    async def send(self, data: Any) -> None:
        """Send a JSON frame. Raises ``NetworkError`` when not connected."""
        ws = self._ws
        if ws is None or ws.closed or not self._connected:
            raise NetworkError("Real-time channel is not connected.")
        try:
            await ws.send_str(json.dumps(data))
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise NetworkError("Sending on the real-time channel failed.") from exc

    def on(self, message_type: type[MessageT], listener: Callable[[MessageT], None]) -> None:
        self._listeners_for(message_type).add(listener)

    def off(self, message_type: type[MessageT], listener: Callable[[MessageT], None]) -> None:
        self._listeners_for(message_type).discard(listener)

    def on_connection_change(self, listener: ConnectionListener) -> None:
        self._connection_listeners.add(listener)

    def off_connection_change(self, listener: ConnectionListener) -> None:
        self._connection_listeners.discard(listener)

    def _listeners_for(self, message_type: type) -> set[MessageListener]:
        listeners = self._listeners.get(message_type)
        if listeners is None:
            raise ValidationError("message_type must be ZoneUpdate or AdminUpdate.")
        return listeners

    async def _open(self) -> None:
        if self._ws is not None and not self._ws.closed:
            return
        self._state = ConnectionState.CONNECTING
        _LOGGER.debug("Connecting to %s", self._url)
        try:
            ws = await self._session.ws_connect(self._url, heartbeat=self._heartbeat)
        except (aiohttp.ClientError, TimeoutError, OSError) as exc:
            raise NetworkError("Real-time channel connection failed.") from exc
        self._ws = ws
        self._reconnect_attempts = 0
        self._state = ConnectionState.CONNECTED
        self._set_connected(True)
        _LOGGER.info("Real-time channel connected")
        if self._gate_id is not None:
            try:
                await self._send_directive(MESSAGE_SUBSCRIBE, self._gate_id)
            except asyncio.CancelledError:
                # No reader owns this socket yet.
                self._ws = None
                self._state = ConnectionState.DISCONNECTED
                self._set_connected(False)
                await ws.close()
                raise
        # Started last so a close seen by the reader always finds this
        # reconnect cycle finished.
        self._reader = asyncio.create_task(self._read_loop(ws))

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            while True:
                message = await ws.receive()
                if message.type == aiohttp.WSMsgType.TEXT:
                    self._handle_frame(message.data)
                elif message.type in _CLOSE_TYPES:
                    break
                else:
                    _LOGGER.warning("Dropping unsupported frame type %s", message.type)
        except (aiohttp.ClientError, ConnectionError) as exc:
            _LOGGER.warning("Real-time channel read failed: %s", exc)
        await self._handle_closed(ws)

    async def _handle_closed(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        if self._ws is ws:
            self._ws = None
            self._reader = None
        if not ws.closed:
            await ws.close()
        if self._closing:
            return
        _LOGGER.info("Real-time channel lost")
        self._state = ConnectionState.DISCONNECTED
        self._set_connected(False)
        self._schedule_reconnect()

    def _handle_frame(self, raw: Any) -> None:
        try:
            message = decode_message(raw)
        except (RemoteError, ValueError, OverflowError) as exc:
            _LOGGER.warning("Dropping malformed push frame: %s", exc)
            return
        if message is None:
            _LOGGER.debug("Ignoring push frame with unhandled type")
            return
        for listener in list(self._listeners[type(message)]):
            try:
                listener(message)
            except Exception:
                _LOGGER.exception("Push listener failed for %s", type(message).__name__)

    def _schedule_reconnect(self) -> None:
        if self._closing:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        if self._reconnect_attempts >= self._max_reconnect_attempts:
            _LOGGER.warning(
                "Giving up on the real-time channel after %s attempts",
                self._reconnect_attempts,
            )
            return
        self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        while not self._closing and self._reconnect_attempts < self._max_reconnect_attempts:
            self._reconnect_attempts += 1
            self._state = ConnectionState.RECONNECTING
            delay = self._reconnect_attempts * self._reconnect_delay
            _LOGGER.info(
                "Reconnecting in %.1fs (%s/%s)",
                delay,
                self._reconnect_attempts,
                self._max_reconnect_attempts,
            )
            await asyncio.sleep(delay)
            if self._closing:
                return
            try:
                await self._open()
            except NetworkError as exc:
                _LOGGER.warning("Reconnect attempt %s failed: %s", self._reconnect_attempts, exc)
                self._state = ConnectionState.DISCONNECTED
                continue
            return
        if not self._closing:
            _LOGGER.warning(
                "Giving up on the real-time channel after %s attempts",
                self._reconnect_attempts,
            )

    async def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _send_directive(self, message_type: str, gate_id: str) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            return
        try:
            await ws.send_str(encode_directive(message_type, gate_id))
        except (aiohttp.ClientError, ConnectionError) as exc:
            _LOGGER.warning("Sending %s for gate %s failed: %s", message_type, gate_id, exc)
            return
        _LOGGER.debug("Sent %s for gate %s", message_type, gate_id)

    def _set_connected(self, connected: bool) -> None:
        if self._connected == connected:
            return
        self._connected = connected
        for listener in list(self._connection_listeners):
            try:
                listener(connected)
            except Exception:
                _LOGGER.exception("Connection listener failed")

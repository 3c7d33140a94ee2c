"""REST client for the parking authority."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from .const import (
    ADMIN_CATEGORY_ENDPOINT,
    ADMIN_PARKING_STATE_ENDPOINT,
    ADMIN_RUSH_HOURS_ENDPOINT,
    ADMIN_SUBSCRIPTIONS_ENDPOINT,
    ADMIN_VACATIONS_ENDPOINT,
    ADMIN_ZONE_OPEN_ENDPOINT,
    CATEGORIES_ENDPOINT,
    CHECKIN_ENDPOINT,
    CHECKOUT_ENDPOINT,
    DEFAULT_API_URI,
    DEFAULT_HEADERS,
    GATES_ENDPOINT,
    LOGIN_ENDPOINT,
    SUBSCRIPTION_ENDPOINT,
    TICKET_ENDPOINT,
    ZONES_ENDPOINT,
)
from .exceptions import AuthError, NetworkError, NotFoundError, RemoteError, ValidationError
from .mapping import (
    map_category,
    map_category_list,
    map_checkin_response,
    map_gate_list,
    map_login,
    map_parking_state_list,
    map_receipt,
    map_rush_hour,
    map_subscription,
    map_subscription_list,
    map_ticket,
    map_vacation,
    map_zone,
    map_zone_list,
)
from .models import (
    Category,
    CheckinRequest,
    CheckoutReceipt,
    Gate,
    LoginResult,
    ParkingStateReport,
    RushHour,
    Subscription,
    Ticket,
    Vacation,
    Zone,
)
from .util import require_id

_LOGGER = logging.getLogger(__name__)
_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)


class ApiClient:
    """Typed access to the authority's REST endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        base_url: str | None = None,
        api_uri: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
        token: str | None = None,
    ) -> None:
        if session is None:
            raise ValidationError("Session is required.")
        self._session = session
        self._base_url = self._normalize_base_url(base_url)
        self._api_uri = self._normalize_api_uri(DEFAULT_API_URI if api_uri is None else api_uri)
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)
        self._token = token

    @property
    def token(self) -> str | None:
        return self._token

    @token.setter
    def token(self, value: str | None) -> None:
        self._token = value or None

    async def login(self, username: str, password: str) -> LoginResult:
        """Authenticate and keep the returned bearer token."""
        if not username:
            raise ValidationError("username is required.")
        if not password:
            raise ValidationError("password is required.")
        _LOGGER.debug("login started for %s", username)
        data = await self._request_json(
            "POST",
            LOGIN_ENDPOINT,
            json={"username": username, "password": password},
        )
        result = map_login(data)
        self._token = result.token
        _LOGGER.debug("login completed role=%s", result.user.role)
        return result

    async def get_gates(self) -> list[Gate]:
        return map_gate_list(await self._request_json("GET", GATES_ENDPOINT))

    async def get_zones(self, gate_id: str | None = None) -> list[Zone]:
        params = {"gateId": gate_id} if gate_id else None
        data = await self._request_json("GET", ZONES_ENDPOINT, params=params)
        zones = map_zone_list(data)
        _LOGGER.debug("get_zones gate=%s count=%s", gate_id, len(zones))
        return zones

    async def get_categories(self) -> list[Category]:
        return map_category_list(await self._request_json("GET", CATEGORIES_ENDPOINT))

    async def get_subscription(self, subscription_id: str) -> Subscription:
        subscription_id_value = require_id(subscription_id, "subscription_id")
        data = await self._request_json(
            "GET",
            SUBSCRIPTION_ENDPOINT.format(subscription_id=subscription_id_value),
        )
        return map_subscription(data)

    async def checkin(self, request: CheckinRequest) -> Ticket:
        """Ask the authority to admit a vehicle and return the issued ticket."""
        _LOGGER.debug(
            "checkin started gate=%s zone=%s type=%s",
            request.gate_id,
            request.zone_id,
            request.type,
        )
        data = await self._request_json("POST", CHECKIN_ENDPOINT, json=request.to_payload())
        ticket = map_checkin_response(data)
        _LOGGER.debug("checkin completed ticket=%s", ticket.id)
        return ticket

    async def checkout(
        self,
        ticket_id: str,
        *,
        force_convert_to_visitor: bool = False,
    ) -> CheckoutReceipt:
        """Close a ticket and return the authority's fee breakdown."""
        ticket_id_value = require_id(ticket_id, "ticket_id")
        payload: dict[str, Any] = {"ticketId": ticket_id_value}
        if force_convert_to_visitor:
            payload["forceConvertToVisitor"] = True
        _LOGGER.debug("checkout started ticket=%s", ticket_id_value)
        data = await self._request_json("POST", CHECKOUT_ENDPOINT, json=payload)
        receipt = map_receipt(data)
        _LOGGER.debug("checkout completed ticket=%s amount=%s", receipt.ticket_id, receipt.amount)
        return receipt

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket_id_value = require_id(ticket_id, "ticket_id")
        data = await self._request_json("GET", TICKET_ENDPOINT.format(ticket_id=ticket_id_value))
        return map_ticket(data)

    async def get_parking_state(self) -> list[ParkingStateReport]:
        data = await self._request_json("GET", ADMIN_PARKING_STATE_ENDPOINT, auth_required=True)
        return map_parking_state_list(data)

    async def update_category(
        self,
        category_id: str,
        *,
        rate_normal: float | None = None,
        rate_special: float | None = None,
        name: str | None = None,
        description: str | None = None,
    ) -> Category:
        category_id_value = require_id(category_id, "category_id")
        payload: dict[str, Any] = {}
        if rate_normal is not None:
            payload["rateNormal"] = rate_normal
        if rate_special is not None:
            payload["rateSpecial"] = rate_special
        if name is not None:
            payload["name"] = name
        if description is not None:
            payload["description"] = description
        if not payload:
            raise ValidationError("At least one category field is required.")
        data = await self._request_json(
            "PUT",
            ADMIN_CATEGORY_ENDPOINT.format(category_id=category_id_value),
            json=payload,
            auth_required=True,
        )
        return map_category(data)

    async def update_zone_status(self, zone_id: str, open_: bool) -> Zone | None:
        """Open or close a zone. Returns the zone when the authority echoes it."""
        zone_id_value = require_id(zone_id, "zone_id")
        data = await self._request_json(
            "PUT",
            ADMIN_ZONE_OPEN_ENDPOINT.format(zone_id=zone_id_value),
            json={"open": bool(open_)},
            auth_required=True,
        )
        if isinstance(data, dict) and "id" in data:
            return map_zone(data)
        return None

    async def add_rush_hour(self, week_day: int, start: str, end: str) -> RushHour:
        if isinstance(week_day, bool) or not isinstance(week_day, int) or not 0 <= week_day <= 6:
            raise ValidationError("week_day must be an integer between 0 and 6.")
        if not start or not end:
            raise ValidationError("start and end are required.")
        data = await self._request_json(
            "POST",
            ADMIN_RUSH_HOURS_ENDPOINT,
            json={"weekDay": week_day, "from": start, "to": end},
            auth_required=True,
        )
        return map_rush_hour(data)

    async def add_vacation(self, name: str, start: str, end: str) -> Vacation:
        if not name:
            raise ValidationError("name is required.")
        if not start or not end:
            raise ValidationError("start and end are required.")
        data = await self._request_json(
            "POST",
            ADMIN_VACATIONS_ENDPOINT,
            json={"name": name, "from": start, "to": end},
            auth_required=True,
        )
        return map_vacation(data)

    async def list_subscriptions(self) -> list[Subscription]:
        data = await self._request_json("GET", ADMIN_SUBSCRIPTIONS_ENDPOINT, auth_required=True)
        return map_subscription_list(data)

    def _build_url(self, path: str) -> str:
        if not isinstance(path, str) or not path:
            raise ValidationError("Path must be a non-empty string.")
        if path.startswith("http://") or path.startswith("https://"):
            raise ValidationError("Use relative paths when building requests.")
        if self._base_url is None:
            raise ValidationError("base_url is required to build requests.")
        normalized_path = path if path.startswith("/") else f"/{path}"
        return f"{self._base_url}{self._api_uri}{normalized_path}"

    def _build_headers(self, *, auth_required: bool) -> dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        if auth_required:
            if not self._token:
                raise AuthError("Authentication required.")
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: Mapping[str, Any] | None = None,
        auth_required: bool = False,
    ) -> Any:
        url = self._build_url(path)
        headers = self._build_headers(auth_required=auth_required)
        request_kwargs: dict[str, Any] = {"headers": headers}
        if json is not None:
            request_kwargs["json"] = json
        if params is not None:
            request_kwargs["params"] = params
        return await self._request(method, url, **request_kwargs)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        retries = self._retry_count if method.upper() == "GET" else 0
        attempts = retries + 1
        for attempt in range(attempts):
            try:
                async with self._session.request(
                    method,
                    url,
                    timeout=self._timeout,
                    **kwargs,
                ) as response:
                    await self._raise_for_status(response)
                    try:
                        return await response.json()
                    except (aiohttp.ContentTypeError, ValueError) as exc:
                        raise RemoteError(
                            "Response did not contain valid JSON.",
                            status=response.status,
                        ) from exc
            except (aiohttp.ClientError, TimeoutError) as exc:
                if attempt >= attempts - 1:
                    raise NetworkError("Network error occurred.") from exc
                _LOGGER.warning(
                    "%s %s failed (attempt %s/%s), retrying",
                    method,
                    url,
                    attempt + 1,
                    attempts,
                )
        raise NetworkError("Network error occurred.")

    async def _raise_for_status(self, response: aiohttp.ClientResponse) -> None:
        if 200 <= response.status < 300:
            return
        message, errors = await self._error_details_from_response(response)
        if response.status in (401, 403):
            raise AuthError(
                message or "Authentication failed.",
                status=response.status,
                errors=errors,
            )
        if response.status == 404:
            raise NotFoundError(message or "Not found.", status=response.status, errors=errors)
        if message:
            raise RemoteError(message, status=response.status, errors=errors)
        raise NetworkError(f"HTTP {response.status}", status=response.status)

    async def _error_details_from_response(
        self,
        response: aiohttp.ClientResponse,
    ) -> tuple[str | None, Any]:
        try:
            data = await response.json()
        except (aiohttp.ContentTypeError, ValueError):
            return None, None
        if not isinstance(data, dict):
            return None, None
        message = data.get("message")
        if not isinstance(message, str) or not message.strip():
            message = None
        return message, data.get("errors")

    def _normalize_base_url(self, base_url: str | None) -> str | None:
        if base_url is None:
            return None
        if not isinstance(base_url, str) or not base_url.strip():
            raise ValidationError("base_url must be a non-empty string.")
        return base_url.strip().rstrip("/")

    def _normalize_api_uri(self, api_uri: str) -> str:
        if not isinstance(api_uri, str):
            raise ValidationError("api_uri must be a string.")
        normalized = api_uri.strip().strip("/")
        if not normalized:
            return ""
        return f"/{normalized}"

"""Async HTTP client for the SmartSwitch device.

Every call is one independent GET. Nothing is retried or cached here;
callers decide what a failure means for the page.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from smartswitch.common.logging_config import TRACE
from smartswitch.constants import DEVICE_URL, HTTP_TIMEOUT_S
from smartswitch.state import CommandKind, DeviceState
from smartswitch.validation import format_bool_param

_LOGGER = logging.getLogger(__name__)

STATUS_PATH = "/status"
ADDRESS_PATH = "/ip"

# GET /status keys -> DeviceState fields
_STATUS_FIELDS: dict[str, tuple[str, type]] = {
    "isLightOn": ("is_light_on", bool),
    "isAutoResetEnabled": ("is_auto_reset_enabled", bool),
    "onAngle": ("on_angle", int),
    "offAngle": ("off_angle", int),
    "autoResetAngle": ("auto_reset_angle", int),
}


class DeviceClientError(Exception):
    """Base exception for device client errors."""


class DeviceConnectionError(DeviceClientError):
    """Request could not complete (refused, unreachable, timed out)."""


class DeviceStatusError(DeviceClientError):
    """Device answered with a non-success HTTP status."""

    def __init__(self, path: str, status_code: int, body: str = "") -> None:
        super().__init__(f"{path} failed: HTTP {status_code}" + (f" ({body})" if body else ""))
        self.path = path
        self.status_code = status_code
        self.body = body


class DeviceResponseError(DeviceClientError):
    """Device answered but the body could not be understood."""


def parse_status(data: Any) -> DeviceState:
    """Build a DeviceState from the GET /status JSON object.

    Raises:
        DeviceResponseError: if a key is missing or carries the wrong type.

    """
    if not isinstance(data, dict):
        raise DeviceResponseError(f"Status payload is not an object: {data!r}")
    values: dict[str, Any] = {}
    for key, (name, kind) in _STATUS_FIELDS.items():
        if key not in data:
            raise DeviceResponseError(f"Status payload missing {key!r}")
        value = data[key]
        # bool is an int subclass; never accept it as an angle
        if kind is int and (isinstance(value, bool) or not isinstance(value, int)):
            raise DeviceResponseError(f"Status field {key!r} is not an integer: {value!r}")
        if kind is bool and not isinstance(value, bool):
            raise DeviceResponseError(f"Status field {key!r} is not a boolean: {value!r}")
        values[name] = value
    return DeviceState(**values)


def _check_status(path: str, response: httpx.Response) -> None:
    if response.is_success:
        return
    raise DeviceStatusError(path, response.status_code, response.text.strip())


class DeviceClient:
    """Thin async wrapper around the device's GET endpoints."""

    def __init__(
        self,
        base_url: str = DEVICE_URL,
        timeout: float = HTTP_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport
        self._session: httpx.AsyncClient | None = None

    def _client(self) -> httpx.AsyncClient:
        # Created on first use so CLI overrides of base_url/timeout still apply
        if self._session is None or self._session.is_closed:
            self._session = httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.is_closed:
            await self._session.aclose()
        self._session = None

    async def _get(self, path: str, params: dict[str, str | int] | None = None) -> httpx.Response:
        _LOGGER.debug("GET %s %s", path, params or "")
        try:
            response = await self._client().get(path, params=params)
        except httpx.TimeoutException as e:
            raise DeviceConnectionError(f"{path} timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise DeviceConnectionError(f"{path} failed: {e}") from e
        _LOGGER.log(TRACE, "%s -> %s %r", path, response.status_code, response.text)
        return response

    # ---- Reads ----

    async def get_status(self) -> DeviceState:
        response = await self._get(STATUS_PATH)
        _check_status(STATUS_PATH, response)
        try:
            data = response.json()
        except ValueError as e:
            raise DeviceResponseError(f"Status body is not JSON: {response.text!r}") from e
        return parse_status(data)

    async def get_address(self) -> str:
        response = await self._get(ADDRESS_PATH)
        _check_status(ADDRESS_PATH, response)
        address = response.text.strip()
        if not address:
            raise DeviceResponseError("Empty address body")
        return address

    # ---- Light commands: the body token is the answer, status is not checked ----

    async def turn_light_on(self, angle: int) -> str:
        return await self._light(CommandKind.TURN_LIGHT_ON, angle)

    async def turn_light_off(self, angle: int) -> str:
        return await self._light(CommandKind.TURN_LIGHT_OFF, angle)

    async def _light(self, kind: CommandKind, angle: int) -> str:
        response = await self._get(kind.value, {"angle": angle})
        return response.text.strip()

    # ---- Config commands: success is the HTTP status only ----

    async def set_on_angle(self, angle: int) -> None:
        await self._config(CommandKind.SET_ON_ANGLE, {"angle": angle})

    async def set_off_angle(self, angle: int) -> None:
        await self._config(CommandKind.SET_OFF_ANGLE, {"angle": angle})

    async def toggle_auto_reset(self, enable: bool) -> None:
        await self._config(CommandKind.TOGGLE_AUTO_RESET, {"enable": format_bool_param(enable)})

    async def set_auto_reset_angle(self, angle: int) -> None:
        await self._config(CommandKind.SET_AUTO_RESET_ANGLE, {"angle": angle})

    async def _config(self, kind: CommandKind, params: dict[str, str | int]) -> None:
        response = await self._get(kind.value, params)
        _check_status(kind.value, response)


# Module-level singleton instance
client = DeviceClient()

"""Remote client used to reach the Alexa web API.

The rest of the package depends only on the ``RemoteClient`` protocol and on a
``Connector`` that turns stored credentials into a logged in client. The
alexapy implementation lives here as well.
"""

import logging
import pathlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from alexapy import AlexaAPI, AlexaLogin
from alexapy.errors import AlexapyConnectionError, AlexapyLoginError

from alexa_media_controller.config import AlexaSettings
from alexa_media_controller.errors import ConnectionFailed, RemoteError

RESUME = "resume"
PAUSE = "pause"
NEXT = "next"
PREVIOUS = "previous"
VOLUME = "volume"
SPEAK = "speak"
ANNOUNCEMENT = "announcement"
TEXT_COMMAND = "textCommand"
ROUTINE = "routine"


@dataclass(frozen=True)
class Credentials:
    """Stored session secrets.

    Attributes:
        cookie: Cookie string in ``name=value; name2=value2`` form.
        csrf: Optional csrf token, sent as the csrf cookie.
    """

    cookie: str
    csrf: str | None = None


class RemoteClient(Protocol):
    """Capabilities the controller needs from the remote service."""

    async def list_devices(self) -> list[dict[str, Any]]: ...

    async def send_command(self, serial: str, command: str, payload: Any = None) -> None: ...

    async def player_info(self, serial: str) -> dict[str, Any] | None: ...

    async def close(self) -> None: ...


@dataclass
class ConnectResult:
    """Outcome of a successful connect.

    Attributes:
        client: Logged in remote client.
        refreshed_cookie: New cookie string if the service rotated it, else None.
    """

    client: RemoteClient
    refreshed_cookie: str | None = None


Connector = Callable[[Credentials], Awaitable[ConnectResult]]


def parse_cookie_string(cookie_string: str) -> dict[str, str]:
    """Parse a cookie string like 'name=value; name2=value2' into a dict."""
    cookies: dict[str, str] = {}
    for part in cookie_string.split(";"):
        part = part.strip()
        if "=" in part:
            name, value = part.split("=", 1)
            cookies[name.strip()] = value.strip()
    return cookies


def format_cookie_string(cookies: dict[str, str]) -> str:
    return "; ".join(f"{name}={value}" for name, value in cookies.items())


class DeviceHandle:
    """Adapter exposing a listing entry with the attributes AlexaAPI reads."""

    def __init__(self, device_dict: dict[str, Any]) -> None:
        self._device_type = device_dict.get("deviceType", "")
        self._device_family = device_dict.get("deviceFamily", "")
        self.device_serial_number = device_dict.get("serialNumber", "")
        self._locale = device_dict.get("locale", "en-US")
        self._cluster_members = device_dict.get("clusterMembers", [])


class AlexaRemoteClient:
    """RemoteClient backed by an alexapy login.

    Attributes:
        login: Logged in alexapy session.
    """

    def __init__(self, login: AlexaLogin, logger: logging.Logger) -> None:
        self.login = login
        self.logger = logger
        self._devices: dict[str, dict[str, Any]] = {}

    async def list_devices(self) -> list[dict[str, Any]]:
        try:
            devices = await AlexaAPI.get_devices(self.login)
        except (AlexapyConnectionError, AlexapyLoginError) as e:
            raise RemoteError(f"Failed to list devices: {e}", cause=e) from e
        devices = devices or []
        self._devices = {d.get("serialNumber", ""): d for d in devices}
        return devices

    async def _api_for(self, serial: str) -> AlexaAPI:
        if serial not in self._devices:
            await self.list_devices()
        if serial not in self._devices:
            raise RemoteError(f"Unknown device serial: {serial}")
        return AlexaAPI(DeviceHandle(self._devices[serial]), self.login)

    async def send_command(self, serial: str, command: str, payload: Any = None) -> None:
        api = await self._api_for(serial)
        self.logger.debug("Sending %s to %s", command, serial)
        try:
            if command == RESUME:
                await api.play()
            elif command == PAUSE:
                await api.pause()
            elif command == NEXT:
                await api.next()
            elif command == PREVIOUS:
                await api.previous()
            elif command == VOLUME:
                # alexapy expects a fraction between 0 and 1
                await api.set_volume(int(payload) / 100)
            elif command == SPEAK:
                await api.send_tts(str(payload))
            elif command == ANNOUNCEMENT:
                await api.send_announcement(str(payload), method="speak")
            elif command == TEXT_COMMAND:
                await api.run_custom(str(payload))
            elif command == ROUTINE:
                await api.run_routine(str(payload))
            else:
                raise ValueError(f"Unsupported command: {command}")
        except (AlexapyConnectionError, AlexapyLoginError) as e:
            raise RemoteError(f"Failed: {e}", cause=e) from e

    async def player_info(self, serial: str) -> dict[str, Any] | None:
        api = await self._api_for(serial)
        try:
            return await api.get_state()
        except (AlexapyConnectionError, AlexapyLoginError) as e:
            raise RemoteError(f"Failed to read player state: {e}", cause=e) from e

    async def close(self) -> None:
        await self.login.close()


def alexa_connector(settings: AlexaSettings, cache_dir: pathlib.Path, logger: logging.Logger) -> Connector:
    """Build a Connector that logs in to Alexa with stored cookies.

    Args:
        settings: Account settings.
        cache_dir: Directory alexapy may write its own cookie cache to.
        logger: Logger for connection steps.

    Returns:
        Async callable turning Credentials into a ConnectResult.
    """

    def outputpath(filename: str) -> str:
        return str(cache_dir / filename)

    async def connect(credentials: Credentials) -> ConnectResult:
        cookies = parse_cookie_string(credentials.cookie)
        if credentials.csrf:
            cookies.setdefault("csrf", credentials.csrf)
        if not cookies:
            raise ConnectionFailed("stored cookie is empty")

        cache_dir.mkdir(parents=True, exist_ok=True)
        login = AlexaLogin(
            url=settings.amazon_domain,
            email=settings.email,
            password="",
            outputpath=outputpath,
            debug=settings.debug,
        )
        logger.debug("Logging in to alexa.%s with %d stored cookies", settings.amazon_domain, len(cookies))
        try:
            try:
                await login.login(cookies=cookies)
            except (AlexapyConnectionError, AlexapyLoginError) as e:
                raise ConnectionFailed(e) from e
            if not (login.status and login.status.get("login_successful")):
                raise ConnectionFailed("stored cookie was rejected")
        except BaseException:
            await login.close()
            raise

        refreshed = None
        if login.session is not None:
            current = {cookie.key: cookie.value for cookie in login.session.cookie_jar}
            if credentials.csrf:
                current.pop("csrf", None)
            cookie_string = format_cookie_string(current)
            if current and cookie_string != credentials.cookie:
                refreshed = cookie_string
        return ConnectResult(client=AlexaRemoteClient(login, logger), refreshed_cookie=refreshed)

    return connect

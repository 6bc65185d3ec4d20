"""Command verbs.

Each verb resolves its target device and issues one remote call. ``broadcast``
is the only verb that talks to several devices at once.
"""

import asyncio
import logging

from alexa_media_controller import remote_client
from alexa_media_controller.credential_store import COOKIE_KEY, CSRF_KEY, DEFAULT_DEVICE_KEY, CredentialStore
from alexa_media_controller.devices import list_controllable, resolve
from alexa_media_controller.errors import ControllerError, RemoteError
from alexa_media_controller.models import BroadcastResult, Device, PlayerStatus
from alexa_media_controller.session import Session

logger = logging.getLogger(__name__)

MIN_VOLUME = 0
MAX_VOLUME = 100

MUSIC_SERVICES = {
    "applemusic": "play {query} on Apple Music",
    "spotify": "play {query} on Spotify",
    "amazon": "play {query}",
}


async def _send(session: Session, device: Device, command: str, payload: object = None) -> None:
    try:
        await session.client.send_command(device.serial, command, payload)
    except ControllerError:
        raise
    except Exception as e:
        logger.error("Sending %s to %s failed: %s", command, device.account_name, e)
        raise RemoteError(f"Failed: {e}", cause=e) from e


def save_credentials(store: CredentialStore, cookie: str, csrf: str | None = None) -> None:
    """Store credentials captured by an external login helper."""
    if not cookie.strip():
        raise ValueError("Cookie must not be empty")
    store.set(COOKIE_KEY, cookie.strip())
    if csrf:
        store.set(CSRF_KEY, csrf)


def logout(store: CredentialStore) -> None:
    store.clear()


async def set_default(session: Session, name: str) -> Device:
    """Resolve name and remember the device's serial as the default."""
    device = await resolve(session, name)
    session.store.set(DEFAULT_DEVICE_KEY, device.serial)
    logger.info("Default device set to %s (%s)", device.account_name, device.serial)
    return device


def build_play_text(query: str, service: str) -> str:
    """Build the utterance that starts query on a music service."""
    try:
        template = MUSIC_SERVICES[service]
    except KeyError:
        raise ValueError(f"Unknown music service: {service}") from None
    return template.format(query=query)


async def play(
    session: Session,
    query: str | None = None,
    service: str = "applemusic",
    device_name: str | None = None,
) -> Device:
    """Play query on a music service, or resume playback without a query."""
    text = build_play_text(query, service) if query else None
    device = await resolve(session, device_name)
    if text is None:
        await _send(session, device, remote_client.RESUME)
    else:
        await _send(session, device, remote_client.TEXT_COMMAND, text)
    return device


async def pause(session: Session, device_name: str | None = None) -> Device:
    device = await resolve(session, device_name)
    await _send(session, device, remote_client.PAUSE)
    return device


async def next_track(session: Session, device_name: str | None = None) -> Device:
    device = await resolve(session, device_name)
    await _send(session, device, remote_client.NEXT)
    return device


async def previous_track(session: Session, device_name: str | None = None) -> Device:
    device = await resolve(session, device_name)
    await _send(session, device, remote_client.PREVIOUS)
    return device


async def set_volume(session: Session, level: int, device_name: str | None = None) -> Device:
    """Set the volume of the target device.

    Args:
        session: Established session.
        level: Volume between 0 and 100.
        device_name: Optional device name or serial.

    Raises:
        ValueError: level is outside 0-100.
    """
    if not MIN_VOLUME <= level <= MAX_VOLUME:
        raise ValueError("Volume must be 0-100")
    device = await resolve(session, device_name)
    await _send(session, device, remote_client.VOLUME, level)
    return device


async def mute(session: Session, device_name: str | None = None) -> Device:
    return await set_volume(session, 0, device_name)


async def speak(session: Session, text: str, device_name: str | None = None) -> Device:
    device = await resolve(session, device_name)
    await _send(session, device, remote_client.SPEAK, text)
    return device


async def text_command(session: Session, text: str, device_name: str | None = None) -> Device:
    """Send text as if it had been spoken to the device."""
    device = await resolve(session, device_name)
    await _send(session, device, remote_client.TEXT_COMMAND, text)
    return device


async def run_routine(session: Session, routine_name: str, device_name: str | None = None) -> Device:
    device = await resolve(session, device_name)
    await _send(session, device, remote_client.ROUTINE, routine_name)
    return device


async def status(session: Session, device_name: str | None = None) -> tuple[Device, PlayerStatus | None]:
    """Read the playback state of the target device.

    Returns:
        The device and its status, or None when the device reports nothing.
    """
    device = await resolve(session, device_name)
    try:
        info = await session.client.player_info(device.serial)
    except ControllerError:
        raise
    except Exception as e:
        raise RemoteError(f"Failed: {e}", cause=e) from e
    payload = PlayerStatus.unwrap(info)
    if not payload:
        return device, None
    return device, PlayerStatus.from_player_info(payload)


async def broadcast(session: Session, text: str, command: str = remote_client.ANNOUNCEMENT) -> list[BroadcastResult]:
    """Send one command to every controllable device concurrently.

    A failing device never stops the others. The call returns once every send
    has finished.

    Args:
        session: Established session.
        text: Payload for the command.
        command: Command name, an announcement by default.

    Returns:
        One result per device, in listing order.

    Raises:
        RemoteError: The device listing failed.
    """
    devices = await list_controllable(session)
    results = [BroadcastResult(device=device) for device in devices]

    async def send_one(result: BroadcastResult) -> None:
        try:
            await session.client.send_command(result.device.serial, command, text)
        except Exception as e:
            logger.warning("Broadcast to %s failed: %s", result.device.account_name, e)
            result.error = e

    # AIDEV-NOTE: send_one never raises, so the task group never cancels sibling sends
    async with asyncio.TaskGroup() as task_group:
        for result in results:
            task_group.create_task(send_one(result))

    logger.debug(
        "Broadcast finished: %d of %d devices succeeded", sum(result.ok for result in results), len(results)
    )
    return results

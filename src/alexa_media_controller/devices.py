"""Device discovery and target resolution.

Nothing here is cached: every call lists devices again so renamed or
re-provisioned devices are picked up on the next command.
"""

import logging
from collections.abc import Sequence

from alexa_media_controller.credential_store import DEFAULT_DEVICE_KEY
from alexa_media_controller.errors import AmbiguousTarget, ControllerError, DeviceNotFound, RemoteError
from alexa_media_controller.models import Device
from alexa_media_controller.session import Session

logger = logging.getLogger(__name__)


async def list_controllable(session: Session) -> list[Device]:
    """List the devices media commands can target, in service order.

    A device qualifies if it advertises audio playback or belongs to the basic
    Echo family.

    Args:
        session: Established session.

    Returns:
        Controllable devices, possibly empty.

    Raises:
        RemoteError: The listing call failed.
    """
    try:
        raw_devices = await session.client.list_devices()
    except ControllerError:
        raise
    except Exception as e:
        logger.error("Failed to list devices: %s", e)
        raise RemoteError(f"Failed to list devices: {e}", cause=e) from e

    devices = [Device.from_raw(raw) for raw in raw_devices]
    controllable = [device for device in devices if device.is_controllable]
    logger.debug("%d of %d devices are controllable", len(controllable), len(devices))
    return controllable


def match_default(devices: Sequence[Device], default: str) -> Device | None:
    """Find the device a stored default refers to.

    Matches the serial exactly or the account name ignoring case. Substrings do
    not count.
    """
    wanted = default.lower()
    for device in devices:
        if device.serial == default or device.account_name.lower() == wanted:
            return device
    return None


def find_device(devices: Sequence[Device], name: str) -> Device | None:
    """Find the first device whose name contains name (ignoring case) or whose serial equals it."""
    # AIDEV-NOTE: first match in listing order wins, even if a later name matches exactly
    wanted = name.lower()
    for device in devices:
        if wanted in device.account_name.lower() or device.serial == name:
            return device
    return None


def is_default(device: Device, default: str | None) -> bool:
    """Whether device is the one the stored default names."""
    if not default:
        return False
    return match_default([device], default) is device


async def resolve(session: Session, requested_name: str | None = None) -> Device:
    """Pick exactly one target device.

    Without a name the stored default is used, then the only device if there is
    just one. With a name the first device whose name contains it, or whose
    serial equals it, is returned.

    Args:
        session: Established session.
        requested_name: Name or serial given by the user.

    Returns:
        The target device.

    Raises:
        DeviceNotFound: No device matches, or there are no controllable devices.
        AmbiguousTarget: No name, no usable default and several devices.
        RemoteError: The listing call failed.
    """
    devices = await list_controllable(session)
    if not devices:
        raise DeviceNotFound(requested_name, message="No playback-capable devices found.")

    if not requested_name:
        default = session.store.get(DEFAULT_DEVICE_KEY)
        if default:
            found = match_default(devices, str(default))
            if found is not None:
                logger.debug("Using default device %s", found.account_name)
                return found
            logger.debug("Default device %s is not among the controllable devices", default)
        if len(devices) == 1:
            return devices[0]
        raise AmbiguousTarget()

    found = find_device(devices, requested_name)
    if found is None:
        raise DeviceNotFound(requested_name)
    logger.debug("Resolved %r to %s (%s)", requested_name, found.account_name, found.serial)
    return found

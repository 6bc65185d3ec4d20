"""Data models for the controller.

Device snapshots and player status are pydantic models; the credential table
used by the database store is an SQLModel class.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict
from sqlmodel import Field, SQLModel

# Some Echo models omit the AUDIO_PLAYER capability but can all play audio
AUDIO_PLAYER_CAPABILITY = "AUDIO_PLAYER"
BASIC_SPEAKER_FAMILY = "ECHO"


class Device(BaseModel):
    """Snapshot of one Alexa device as returned by the device listing.

    Attributes:
        serial: Device serial number, the stable identifier.
        account_name: Name the user gave the device.
        device_family: Family tag such as ECHO or KNIGHT.
        device_type: Amazon device type code, needed to address the device.
        online: Whether Amazon reports the device as reachable.
        capabilities: Interface names the device advertises.
        raw: Listing entry the snapshot was built from.
    """

    model_config = ConfigDict(frozen=True)

    serial: str
    account_name: str = ""
    device_family: str = ""
    device_type: str = ""
    online: bool = False
    capabilities: tuple[str, ...] = ()
    raw: dict[str, Any] = {}

    @property
    def supports_audio(self) -> bool:
        return AUDIO_PLAYER_CAPABILITY in self.capabilities

    @property
    def is_controllable(self) -> bool:
        """Whether media commands can target this device."""
        return self.supports_audio or self.device_family == BASIC_SPEAKER_FAMILY

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> "Device":
        """Build a device from a devices-v2 listing entry.

        Capabilities come either as plain strings or as objects with an
        ``interfaceName`` key depending on the endpoint.
        """
        capabilities = []
        for capability in data.get("capabilities") or []:
            if isinstance(capability, dict):
                name = capability.get("interfaceName")
            else:
                name = capability
            if name:
                capabilities.append(str(name))
        return cls(
            serial=data.get("serialNumber") or "",
            account_name=data.get("accountName") or "",
            device_family=data.get("deviceFamily") or "",
            device_type=data.get("deviceType") or "",
            online=bool(data.get("online", False)),
            capabilities=tuple(capabilities),
            raw=data,
        )


class PlayerStatus(BaseModel):
    """Playback state of a device."""

    state: str = "UNKNOWN"
    title: str | None = None
    artist: str | None = None
    volume: int | None = None

    @staticmethod
    def unwrap(info: dict[str, Any] | None) -> dict[str, Any]:
        """Return the player fields of an /api/np/player payload, empty if nothing is loaded."""
        if not info:
            return {}
        # AIDEV-NOTE: the endpoint wraps everything in playerInfo, which is null when idle; older payloads are flat
        if "playerInfo" in info:
            return info["playerInfo"] or {}
        return info

    @classmethod
    def from_player_info(cls, info: dict[str, Any]) -> "PlayerStatus":
        """Build the status from the /api/np/player payload."""
        info = cls.unwrap(info)
        info_text = info.get("infoText") or {}
        volume = info.get("volume") or {}
        state = info.get("state")
        if isinstance(state, dict):
            state = state.get("status")
        return cls(
            state=state or "UNKNOWN",
            title=info_text.get("title"),
            artist=info_text.get("subText1"),
            volume=volume.get("volume"),
        )


@dataclass
class BroadcastResult:
    """Outcome of sending one broadcast command to one device.

    Attributes:
        device: Device the command was sent to.
        error: Exception raised by the send, None on success.
    """

    device: Device
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CredentialEntry(SQLModel, table=True):
    """Database row holding one credential store value.

    Attributes:
        key: Store key such as cookie or defaultDevice.
        value: JSON encoded value.
    """

    __tablename__ = "credential_entry"

    key: str = Field(primary_key=True)
    value: str

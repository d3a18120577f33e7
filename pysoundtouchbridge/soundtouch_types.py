"""
Type definitions for the SoundTouch bridge.

This module defines data structures and type hints used throughout the SoundTouch bridge.
"""

from typing import Dict, Any, Callable, Optional, Union, List, Protocol, Awaitable, Mapping
from dataclasses import dataclass, field

from .constants import (
    PRESET_COUNT, PRESET_KEY_TEMPLATE, AUX_KEY, AUX_SOURCE,
    DEFAULT_MOMENTARY_RESET_DELAY, DEFAULT_REQUEST_TIMEOUT
)
from .exceptions import ConfigurationError


@dataclass(frozen=True)
class ContentItem:
    """A playable item or input, identified by source, account and location."""
    source: str = ""
    source_account: str = ""
    location: str = ""
    item_name: str = ""

    def matches(self, other: Optional["ContentItem"]) -> bool:
        """
        Check whether two content items address the same content.

        Only the identifying tuple is compared; the display name is ignored.

        Args:
            other: Content item to compare against

        Returns:
            bool: True if source, source account and location are all equal
        """
        if other is None:
            return False
        return (
            self.source == other.source
            and self.source_account == other.source_account
            and self.location == other.location
        )


@dataclass(frozen=True)
class Preset:
    """A stored station slot on the device."""
    index: int
    content_item: ContentItem


@dataclass(frozen=True)
class NowPlaying:
    """Snapshot of what the device is currently playing."""
    source: str
    content_item: Optional[ContentItem] = None
    track: str = ""
    artist: str = ""
    play_status: str = ""


@dataclass(frozen=True)
class VolumeStatus:
    """Volume information reported by the device."""
    actual_volume: int
    target_volume: int
    muted: bool = False


@dataclass(frozen=True)
class DeviceInfo:
    """Identity information reported by the device."""
    device_id: str
    name: str
    device_type: str = ""
    address: str = ""


class DeviceHandle(Protocol):
    """Protocol for the network-control interface of a speaker."""

    name: str
    address: str

    async def get_volume(self) -> VolumeStatus: ...

    async def set_volume(self, level: int) -> None: ...

    async def is_alive(self) -> bool: ...

    async def power_on(self) -> bool: ...

    async def power_off(self) -> None: ...

    async def play(self) -> None: ...

    async def get_presets(self) -> List[Preset]: ...

    async def get_now_playing(self) -> NowPlaying: ...

    async def press_key(self, key: str) -> None: ...


# Type aliases for callbacks
DeviceListener = Callable[[DeviceHandle], Union[None, Awaitable[None]]]
GetCallback = Callable[[Optional[BaseException], Any], None]
SetCallback = Callable[[Optional[BaseException]], None]
GetHandler = Callable[[GetCallback], Awaitable[None]]
SetHandler = Callable[[Any, SetCallback], Awaitable[None]]
ChangeListener = Callable[[str, Any, Any], Union[None, Awaitable[None]]]


class DiscoveryService(Protocol):
    """Protocol for services announcing speakers on the local network."""

    async def search(self, on_found: DeviceListener, on_lost: DeviceListener) -> None: ...

    async def stop_searching(self) -> None: ...


# Configuration types
@dataclass
class AccessoryConfig:
    """Configuration for one SoundTouch accessory."""
    room: str = ""
    name: str = ""
    preset_count: int = PRESET_COUNT
    preset_key_template: str = PRESET_KEY_TEMPLATE
    aux_key: str = AUX_KEY
    aux_source: str = AUX_SOURCE
    momentary_reset: bool = False
    momentary_reset_delay: float = DEFAULT_MOMENTARY_RESET_DELAY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    port: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.room:
            raise ConfigurationError('You must provide a config value for "room".')
        if not self.name:
            self.name = self.room

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AccessoryConfig":
        """
        Build a configuration from a framework-provided mapping.

        Unknown keys are kept in ``extra``. Numbers and flags given as
        strings are converted.

        Args:
            data: Configuration mapping, e.g. parsed from the host's config file

        Returns:
            AccessoryConfig: The validated configuration

        Raises:
            ConfigurationError: If ``room`` is missing or a value has the wrong type
        """
        known = {
            "room": "room",
            "name": "name",
            "preset_count": "preset_count",
            "presetCount": "preset_count",
            "preset_key_template": "preset_key_template",
            "aux_key": "aux_key",
            "aux_source": "aux_source",
            "momentary_reset": "momentary_reset",
            "momentaryReset": "momentary_reset",
            "momentary_reset_delay": "momentary_reset_delay",
            "request_timeout": "request_timeout",
            "port": "port",
        }
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            if key in known:
                kwargs[known[key]] = value
            else:
                extra[key] = value

        for key, convert in _CONVERTERS.items():
            if key in kwargs:
                kwargs[key] = convert(key, kwargs[key])

        return cls(extra=extra, **kwargs)

    def preset_key(self, index: int) -> str:
        """Return the remote key name for a preset slot."""
        return self.preset_key_template.format(index=index)


_TRUE_STRINGS = ("true", "yes", "on", "1")
_FALSE_STRINGS = ("false", "no", "off", "0")


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ConfigurationError(f"Invalid value for {key!r}: {value!r}")


def _to_int(key: str, value: Any) -> Optional[int]:
    if value is None and key == "port":
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid value for {key!r}: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {key!r}: {value!r}") from e


def _to_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid value for {key!r}: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {key!r}: {value!r}") from e


_CONVERTERS: Dict[str, Callable[[str, Any], Any]] = {
    "preset_count": _to_int,
    "port": _to_int,
    "momentary_reset": _to_bool,
    "momentary_reset_delay": _to_float,
    "request_timeout": _to_float,
}

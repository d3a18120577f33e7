"""
Property definitions and the in-memory property surface.

This module describes the controllable properties an accessory exposes
(volume, mute, preset toggles, the AUX toggle and the IP address) as a table
of parameterized definitions, and provides a small property surface that
caches values, routes get/set requests to registered handlers and notifies
listeners of value changes.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional, List, Tuple, Iterator, Protocol

from .constants import (
    PROPERTY_VOLUME, PROPERTY_MUTE, PROPERTY_AUX, PROPERTY_IP_ADDRESS,
    PRESET_PROPERTY_TEMPLATE, VOLUME_UUID, MUTE_UUID, AUX_UUID, IP_ADDRESS_UUID,
    PRESET_UUID_TEMPLATE, FORMAT_BOOL, FORMAT_UINT8, FORMAT_STRING,
    PERM_READ, PERM_WRITE, PERM_NOTIFY, VOLUME_MIN, VOLUME_MAX, SPEAKER_SERVICE,
    PRESET_COUNT
)
from .exceptions import PropertyValueError
from .soundtouch_types import GetCallback, SetCallback, GetHandler, SetHandler, ChangeListener

_LOGGER = logging.getLogger(__name__)

READ_WRITE_NOTIFY = (PERM_READ, PERM_WRITE, PERM_NOTIFY)
READ_NOTIFY = (PERM_READ, PERM_NOTIFY)


@dataclass(frozen=True)
class PropertyDefinition:
    """Identity, format and permissions of one controllable property."""
    name: str
    identifier: str
    format: str
    perms: Tuple[str, ...] = READ_WRITE_NOTIFY
    preset_index: Optional[int] = None
    min_value: Optional[int] = None
    max_value: Optional[int] = None

    @property
    def is_preset(self) -> bool:
        return self.preset_index is not None

    @property
    def default_value(self) -> Any:
        if self.format == FORMAT_BOOL:
            return False
        if self.format == FORMAT_STRING:
            return ""
        return self.min_value or 0


VOLUME = PropertyDefinition(
    PROPERTY_VOLUME, VOLUME_UUID, FORMAT_UINT8, min_value=VOLUME_MIN, max_value=VOLUME_MAX
)
MUTE = PropertyDefinition(PROPERTY_MUTE, MUTE_UUID, FORMAT_BOOL)
AUX = PropertyDefinition(PROPERTY_AUX, AUX_UUID, FORMAT_BOOL)
IP_ADDRESS = PropertyDefinition(PROPERTY_IP_ADDRESS, IP_ADDRESS_UUID, FORMAT_STRING, perms=READ_NOTIFY)


def preset_definition(index: int) -> PropertyDefinition:
    """
    Build the definition of a preset toggle.

    Args:
        index: Preset slot, starting at 1

    Returns:
        PropertyDefinition: Boolean toggle named ``Preset<index>``
    """
    return PropertyDefinition(
        PRESET_PROPERTY_TEMPLATE.format(index=index),
        PRESET_UUID_TEMPLATE.format(index=index),
        FORMAT_BOOL,
        preset_index=index,
    )


def build_definitions(preset_count: int = PRESET_COUNT) -> List[PropertyDefinition]:
    """
    Build the definition table of a speaker accessory.

    Args:
        preset_count: Number of preset slots to expose

    Returns:
        List[PropertyDefinition]: Volume, mute, AUX, presets 1..n and IP address
    """
    definitions = [VOLUME, MUTE, AUX]
    definitions.extend(preset_definition(index) for index in range(1, preset_count + 1))
    definitions.append(IP_ADDRESS)
    return definitions


def validate_value(definition: PropertyDefinition, value: Any) -> Any:
    """
    Check a value against a property's format.

    Args:
        definition: Property definition
        value: Candidate value

    Returns:
        Any: The value coerced to the property's format

    Raises:
        PropertyValueError: If the value does not fit the format
    """
    if definition.format == FORMAT_BOOL:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise PropertyValueError(f"{definition.name} expects a boolean, got {value!r}")

    if definition.format == FORMAT_UINT8:
        if isinstance(value, bool) or not isinstance(value, int):
            raise PropertyValueError(f"{definition.name} expects an integer, got {value!r}")
        if definition.min_value is not None and value < definition.min_value:
            raise PropertyValueError(f"{definition.name} must be >= {definition.min_value}")
        if definition.max_value is not None and value > definition.max_value:
            raise PropertyValueError(f"{definition.name} must be <= {definition.max_value}")
        return value

    if not isinstance(value, str):
        raise PropertyValueError(f"{definition.name} expects a string, got {value!r}")
    return value


class Property:
    """
    A single property on the surface.

    The property keeps the last known value. Reads and writes requested by a
    client go through the registered handlers; ``update_value`` pushes a new
    value without a client request.
    """

    def __init__(self, definition: PropertyDefinition) -> None:
        self.definition = definition
        self.value: Any = definition.default_value
        self._get_handler: Optional[GetHandler] = None
        self._set_handler: Optional[SetHandler] = None
        self._listeners: List[ChangeListener] = []

    def __repr__(self) -> str:
        return f"Property({self.name!r}, value={self.value!r})"

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def identifier(self) -> str:
        return self.definition.identifier

    @property
    def writable(self) -> bool:
        return PERM_WRITE in self.definition.perms

    def on_get(self, handler: GetHandler) -> "Property":
        """Register the handler answering client reads."""
        self._get_handler = handler
        return self

    def on_set(self, handler: SetHandler) -> "Property":
        """Register the handler carrying out client writes."""
        self._set_handler = handler
        return self

    def add_listener(self, listener: ChangeListener) -> None:
        """Add a listener called with (name, old_value, new_value) on changes."""
        self._listeners.append(listener)

    async def get(self, callback: GetCallback) -> None:
        """
        Serve a client read.

        Without a handler the cached value is returned. With a handler the
        call completes once the handler has invoked its callback; a
        successful result is cached.

        Args:
            callback: Called with (error, value)
        """
        if self._get_handler is None:
            callback(None, self.value)
            return

        future: "asyncio.Future[Tuple[Optional[BaseException], Any]]" = (
            asyncio.get_running_loop().create_future()
        )

        def _complete(error: Optional[BaseException], value: Any = None) -> None:
            if not future.done():
                future.set_result((error, value))

        await self._get_handler(_complete)
        error, value = await future
        if error is None:
            await self._store(value)
        callback(error, value)

    async def set(self, value: Any, callback: SetCallback) -> None:
        """
        Serve a client write.

        Args:
            value: Requested value
            callback: Called with the error, or None on success
        """
        if not self.writable:
            callback(PropertyValueError(f"{self.name} is read-only"))
            return
        try:
            value = validate_value(self.definition, value)
        except PropertyValueError as e:
            callback(e)
            return

        if self._set_handler is None:
            await self._store(value)
            callback(None)
            return

        future: "asyncio.Future[Optional[BaseException]]" = (
            asyncio.get_running_loop().create_future()
        )

        def _complete(error: Optional[BaseException] = None) -> None:
            if not future.done():
                future.set_result(error)

        await self._set_handler(value, _complete)
        error = await future
        if error is None:
            await self._store(value)
        callback(error)

    async def update_value(self, value: Any) -> None:
        """
        Push a new value without a client request.

        Args:
            value: New value

        Raises:
            PropertyValueError: If the value does not fit the property's format
        """
        await self._store(validate_value(self.definition, value))

    async def _store(self, value: Any) -> None:
        old_value = self.value
        if old_value == value:
            return
        self.value = value
        _LOGGER.debug("Property changed: %s = %s (was %s)", self.name, value, old_value)

        for listener in list(self._listeners):
            try:
                result = listener(self.name, old_value, value)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                _LOGGER.error("Error in property listener: %s", e)


class PropertySurface(Protocol):
    """Protocol for framework services holding an accessory's properties."""

    def add_property(self, definition: PropertyDefinition) -> Property: ...

    def get_property(self, key: str) -> Property: ...


class Service:
    """
    In-memory property surface of one accessory service.

    Properties are addressable by name or identifier.
    """

    def __init__(self, display_name: str, service_type: str = SPEAKER_SERVICE) -> None:
        self.display_name = display_name
        self.service_type = service_type
        self._properties: Dict[str, Property] = {}
        self._by_identifier: Dict[str, Property] = {}
        self._listeners: List[ChangeListener] = []

    def __iter__(self) -> Iterator[Property]:
        return iter(list(self._properties.values()))

    def __len__(self) -> int:
        return len(self._properties)

    def __contains__(self, key: object) -> bool:
        return key in self._properties or key in self._by_identifier

    def add_property(self, definition: PropertyDefinition) -> Property:
        """
        Add a property built from its definition.

        Adding a definition whose name already exists returns the existing property.

        Args:
            definition: Property definition

        Returns:
            Property: The property on this service
        """
        existing = self._properties.get(definition.name)
        if existing is not None:
            return existing

        prop = Property(definition)
        for listener in self._listeners:
            prop.add_listener(listener)
        self._properties[definition.name] = prop
        self._by_identifier[definition.identifier] = prop
        return prop

    def get_property(self, key: str) -> Property:
        """
        Look up a property by name or identifier.

        Raises:
            KeyError: If no such property exists
        """
        if key in self._properties:
            return self._properties[key]
        return self._by_identifier[key]

    def add_listener(self, listener: ChangeListener) -> None:
        """Add a change listener to every current and future property."""
        self._listeners.append(listener)
        for prop in self._properties.values():
            prop.add_listener(listener)

    def values(self) -> Dict[str, Any]:
        """Return the cached value of every property by name."""
        return {name: prop.value for name, prop in self._properties.items()}

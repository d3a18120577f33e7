"""
SoundTouch Accessory Controller

This module provides the accessory controller bridging a smart-home
framework's properties to a SoundTouch speaker. It binds the speaker once it
is discovered and mediates every property read and write through it,
including the reconciliation of sibling input toggles after an input has
been selected.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Optional, List, Dict, Set, Tuple, Callable, Awaitable, Mapping, Union

from .constants import (
    PROPERTY_VOLUME, PROPERTY_MUTE, PROPERTY_AUX, PROPERTY_IP_ADDRESS, MANUFACTURER, MODEL
)
from .exceptions import NotDiscoveredError
from .network import SoundTouchDiscovery
from .properties import Property, PropertyDefinition, PropertySurface, Service, build_definitions
from .soundtouch_types import (
    AccessoryConfig, DeviceHandle, DiscoveryService, GetCallback, SetCallback
)

_LOGGER = logging.getLogger(__name__)

Operation = Callable[..., Awaitable[Any]]


class SoundTouchAccessory:
    """
    Accessory controller for one SoundTouch speaker.

    The accessory starts unbound. The first discovered speaker whose name
    equals the configured room is bound for the rest of the process
    lifetime; every property operation fails with NotDiscoveredError until
    then.

    Attributes:
        config (AccessoryConfig): Accessory configuration
        name (str): Display name
        room (str): Room name the speaker must announce
        device (Optional[DeviceHandle]): Bound speaker, None until discovered
        service (PropertySurface): Properties exposed to the framework
    """

    def __init__(
        self,
        config: Union[AccessoryConfig, Mapping[str, Any]],
        discovery: Optional[DiscoveryService] = None,
        service: Optional[PropertySurface] = None,
        definitions: Optional[List[PropertyDefinition]] = None
    ):
        """
        Initialize the accessory.

        Args:
            config: Accessory configuration or a mapping to build it from
            discovery: Service announcing speakers on the network; an mDNS discovery
                built from the config when omitted
            service: Property surface to register on; an in-memory Service when omitted
            definitions: Property definitions; built from the config when omitted

        Raises:
            ConfigurationError: If the configuration has no room
        """
        if not isinstance(config, AccessoryConfig):
            config = AccessoryConfig.from_dict(config)

        self.config = config
        self.name = config.name
        self.room = config.room
        self.device: Optional[DeviceHandle] = None
        self._owned_discovery: Optional[SoundTouchDiscovery] = None
        if discovery is None:
            discovery = self._owned_discovery = SoundTouchDiscovery(
                timeout=config.request_timeout, port=config.port
            )
        self.discovery: DiscoveryService = discovery
        self.service: PropertySurface = service if service is not None else Service(self.name)

        self._definitions = definitions if definitions is not None else build_definitions(config.preset_count)
        self._preset_properties: Dict[int, Property] = {}
        self._aux_property: Optional[Property] = None
        self._reset_tasks: Set[asyncio.Task] = set()

        self._register_properties()
        if config.extra:
            _LOGGER.debug("Ignoring unknown config keys: %s", ", ".join(sorted(config.extra)))
        _LOGGER.debug("Initialized SoundTouchAccessory %s for room %s", self.name, self.room)

    @property
    def bound(self) -> bool:
        """Whether a speaker has been bound."""
        return self.device is not None

    def _register_properties(self) -> None:
        """Add every defined property to the surface and route it to its operations."""
        for definition in self._definitions:
            getter, setter = self._operations_for(definition)
            prop = self.service.add_property(definition)
            prop.on_get(partial(self._handle_get, definition.name, getter))
            if setter is not None:
                prop.on_set(partial(self._handle_set, definition.name, setter))

            if definition.is_preset:
                self._preset_properties[definition.preset_index] = prop
            elif definition.name == PROPERTY_AUX:
                self._aux_property = prop

    def _operations_for(self, definition: PropertyDefinition) -> Tuple[Operation, Optional[Operation]]:
        if definition.is_preset:
            return (
                partial(self.get_preset_active, definition.preset_index),
                partial(self.set_preset_active, definition.preset_index),
            )
        operations: Dict[str, Tuple[Operation, Optional[Operation]]] = {
            PROPERTY_VOLUME: (self.get_volume, self.set_volume),
            PROPERTY_MUTE: (self.is_muted, self.set_mute),
            PROPERTY_AUX: (self.get_aux_active, self.set_aux_active),
            PROPERTY_IP_ADDRESS: (self.get_ip_address, None),
        }
        try:
            return operations[definition.name]
        except KeyError:
            raise ValueError(f"No operations for property {definition.name!r}") from None

    # Framework-facing handlers

    async def _run(self, property_name: str, operation: Operation, *args: Any) -> Tuple[Optional[BaseException], Any]:
        """
        Run an operation and capture its outcome instead of raising.

        Returns:
            Tuple[Optional[BaseException], Any]: (error, result)
        """
        try:
            return None, await operation(*args)
        except NotDiscoveredError as e:
            _LOGGER.warning("Ignoring request for %s; %s", property_name, e)
            return e, None
        except Exception as e:
            _LOGGER.error("Request for %s failed: %s", property_name, e)
            return e, None

    async def _handle_get(self, property_name: str, operation: Operation, callback: GetCallback) -> None:
        error, value = await self._run(property_name, operation)
        callback(error, value)

    async def _handle_set(
        self, property_name: str, operation: Operation, value: Any, callback: SetCallback
    ) -> None:
        error, _ = await self._run(property_name, operation, value)
        callback(error)

    def _require_device(self) -> DeviceHandle:
        if self.device is None:
            raise NotDiscoveredError("SoundTouch has not been discovered yet.")
        return self.device

    # Discovery binding

    async def search(self) -> None:
        """Start looking for the speaker announcing this accessory's room."""
        _LOGGER.debug("Searching for SoundTouch device in room %s", self.room)
        await self.discovery.search(self._on_device_found, self._on_device_lost)

    async def _on_device_found(self, device: DeviceHandle) -> None:
        if device.name != self.room:
            _LOGGER.info(
                "Ignoring device %s because it does not match the desired room %s",
                device.name, self.room
            )
            return

        if self.device is not None:
            _LOGGER.debug("Ignoring repeated discovery of %s; already bound", device.name)
            return

        self.device = device
        await self._configure_device(device)
        _LOGGER.info("Found Bose SoundTouch device: %s (%s)", device.name, device.address)
        await self.discovery.stop_searching()

    async def _configure_device(self, device: DeviceHandle) -> None:
        """Apply the configured request timeout and port to a device that supports it."""
        configure = getattr(device, "configure", None)
        if configure is not None:
            await self._await_if_needed(
                configure(timeout=self.config.request_timeout, port=self.config.port)
            )

    async def _on_device_lost(self, device: DeviceHandle) -> None:
        _LOGGER.info("Bose SoundTouch device goes offline: %s", device.name)

    # Volume

    async def get_volume(self) -> int:
        """
        Read the speaker's current volume.

        Returns:
            int: Actual volume
        """
        device = self._require_device()
        status = await device.get_volume()
        volume = int(status.actual_volume)
        _LOGGER.debug("Current volume: %s", volume)
        return volume

    async def set_volume(self, volume: int) -> None:
        """
        Set the speaker's volume.

        Args:
            volume: Volume level, range checking is left to the speaker
        """
        device = self._require_device()
        await device.set_volume(volume)
        _LOGGER.info("Setting volume to %s", volume)

    # Power and mute

    async def is_muted(self) -> bool:
        """Return True when the speaker is not playing."""
        device = self._require_device()
        is_on = await device.is_alive()
        _LOGGER.debug("Check if is playing: %s", is_on)
        return not is_on

    async def set_power(self, on: bool) -> None:
        """
        Switch the speaker on and start playback, or put it into standby.

        Playback is only requested after power-on has completed.

        Args:
            on: True to power on and play, False to power off
        """
        device = self._require_device()
        if on:
            turned_on = await device.power_on()
            _LOGGER.info("Power on" if turned_on else "Was already powered on")
            await device.play()
            _LOGGER.info("Playing...")
        else:
            await device.power_off()
            _LOGGER.info("Powering off...")

    async def set_mute(self, muted: bool) -> None:
        """Mute by powering off, unmute by powering on."""
        await self.set_power(not muted)

    # Presets and AUX

    async def get_preset_active(self, index: int) -> bool:
        """
        Check whether a preset is the content currently playing.

        Args:
            index: Preset slot

        Returns:
            bool: True if the slot exists and its content matches now-playing
        """
        device = self._require_device()
        results = await asyncio.gather(
            device.get_presets(), device.get_now_playing(), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        presets, now_playing = results

        preset = next((p for p in presets if p.index == index), None)
        if preset is None:
            _LOGGER.debug("Preset %d is not stored on %s", index, device.name)
            return False

        return preset.content_item.matches(now_playing.content_item)

    async def set_preset_active(self, index: int, active: bool) -> None:
        """
        Select a preset and clear every other input toggle.

        Deactivating a preset does nothing; presets are momentary.

        Args:
            index: Preset slot
            active: Requested toggle state
        """
        device = self._require_device()
        if not active:
            return

        await device.press_key(self.config.preset_key(index))
        _LOGGER.info("Selected preset %d", index)

        pressed = self._preset_properties.get(index)
        siblings = [prop for prop in self._input_properties() if prop is not pressed]
        await self._reconcile(siblings)
        self._schedule_momentary_reset(pressed)

    async def get_aux_active(self) -> bool:
        """Return True when the speaker is playing its AUX input."""
        device = self._require_device()
        now_playing = await device.get_now_playing()
        return now_playing.source == self.config.aux_source

    async def set_aux_active(self, active: bool) -> None:
        """
        Select the AUX input and clear every preset toggle.

        Deactivating AUX does nothing; the toggle is momentary.

        Args:
            active: Requested toggle state
        """
        device = self._require_device()
        if not active:
            return

        await device.press_key(self.config.aux_key)
        _LOGGER.info("Selected AUX input")

        await self._reconcile(list(self._preset_properties.values()))
        self._schedule_momentary_reset(self._aux_property)

    async def get_ip_address(self) -> str:
        """Return the address of the bound speaker."""
        return self._require_device().address

    def _input_properties(self) -> List[Property]:
        """Preset toggles in slot order followed by the AUX toggle."""
        props = [self._preset_properties[index] for index in sorted(self._preset_properties)]
        if self._aux_property is not None:
            props.append(self._aux_property)
        return props

    async def _reconcile(self, props: List[Property]) -> None:
        """Push False to each toggle, one after the other."""
        for prop in props:
            await self._push(prop, False)

    @classmethod
    async def _push(cls, prop: Property, value: Any) -> None:
        await cls._await_if_needed(prop.update_value(value))

    @staticmethod
    async def _await_if_needed(result: Any) -> Any:
        if asyncio.iscoroutine(result):
            return await result
        return result

    def _schedule_momentary_reset(self, prop: Optional[Property]) -> None:
        """Settle a pressed toggle back to False when configured to do so."""
        if prop is None or not self.config.momentary_reset:
            return

        async def _reset() -> None:
            await asyncio.sleep(self.config.momentary_reset_delay)
            await self._push(prop, False)

        task = asyncio.ensure_future(_reset())
        self._reset_tasks.add(task)
        task.add_done_callback(self._reset_tasks.discard)

    # Accessory information

    def get_information(self) -> Dict[str, str]:
        """Return the accessory information record."""
        return {
            "Name": self.name,
            "Manufacturer": MANUFACTURER,
            "Model": MODEL,
            "SerialNumber": self.room,
        }

    def get_services(self) -> List[Any]:
        """Return the speaker service and the information record."""
        return [self.service, self.get_information()]

    def identify(self) -> None:
        """Handle an identify request."""
        _LOGGER.info("Identify request")

    async def close(self) -> None:
        """Cancel pending toggle resets and release the bound device and owned discovery."""
        for task in list(self._reset_tasks):
            task.cancel()
        close = getattr(self.device, "close", None)
        if close is not None:
            await self._await_if_needed(close())
        if self._owned_discovery is not None:
            await self._owned_discovery.close()

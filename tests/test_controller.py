"""Test cases for pysoundtouchbridge.controller module."""

import asyncio
import logging
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from pysoundtouchbridge.controller import SoundTouchAccessory
from pysoundtouchbridge.exceptions import (
    ConfigurationError, NotDiscoveredError, DeviceCommunicationError
)
from pysoundtouchbridge.network import SoundTouchDevice, SoundTouchDiscovery
from pysoundtouchbridge.properties import Service
from pysoundtouchbridge.soundtouch_types import (
    AccessoryConfig, ContentItem, NowPlaying, VolumeStatus
)


def station(index):
    """Content item of the radio station stored in a preset slot."""
    return ContentItem("INTERNET_RADIO", "", f"station-{index}", item_name=f"Station {index}")


PRESET_NAMES = [f"Preset{index}" for index in range(1, 7)]
TOGGLE_NAMES = PRESET_NAMES + ["AUX"]


def found(name, address="192.168.1.50"):
    """Build a discovered device stub."""
    device = AsyncMock()
    device.name = name
    device.address = address
    return device


async def switch_all_toggles_on(service):
    for name in TOGGLE_NAMES:
        await service.get_property(name).update_value(True)


class TestSoundTouchAccessoryInit:
    """Test cases for SoundTouchAccessory initialization."""

    def test_init_values(self, accessory, mock_discovery, service):
        """Test accessory initialization."""
        assert accessory.name == "Kitchen Speaker"
        assert accessory.room == "Kitchen"
        assert accessory.device is None
        assert accessory.bound is False
        assert accessory.discovery is mock_discovery
        assert accessory.service is service

    def test_init_registers_properties(self, accessory, service):
        """Test that every property is added to the surface."""
        names = [prop.name for prop in service]
        assert names == ["Volume", "Mute", "AUX"] + PRESET_NAMES + ["IP Address"]

    def test_init_from_mapping(self, mock_discovery):
        """Test initialization from a framework-provided mapping."""
        accessory = SoundTouchAccessory({"name": "Den", "room": "Living Room"}, mock_discovery)

        assert accessory.name == "Den"
        assert accessory.room == "Living Room"
        assert isinstance(accessory.service, Service)

    def test_init_missing_room(self, mock_discovery):
        """Test that a missing room is fatal before discovery starts."""
        with pytest.raises(ConfigurationError):
            SoundTouchAccessory({"name": "Den"}, mock_discovery)

        mock_discovery.search.assert_not_called()

    def test_init_custom_preset_count(self, mock_discovery):
        """Test that the preset count drives the toggles registered."""
        accessory = SoundTouchAccessory(AccessoryConfig(room="Den", preset_count=3), mock_discovery)

        names = [prop.name for prop in accessory.service]
        assert "Preset3" in names
        assert "Preset4" not in names

    def test_default_discovery_uses_config(self):
        """Test that the discovery built for the accessory carries the timeout and port."""
        accessory = SoundTouchAccessory({"room": "Kitchen", "request_timeout": "2", "port": 9000})

        assert isinstance(accessory.discovery, SoundTouchDiscovery)
        assert accessory.discovery._timeout == 2.0
        assert accessory.discovery._port == 9000

    @pytest.mark.asyncio
    async def test_close_closes_own_discovery(self):
        """Test that a discovery created by the accessory is closed with it."""
        accessory = SoundTouchAccessory({"room": "Kitchen"})

        with patch.object(accessory.discovery, "close", AsyncMock()) as close:
            await accessory.close()

        close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_leaves_injected_discovery(self, accessory, mock_discovery):
        await accessory.close()

        mock_discovery.close.assert_not_called()

    def test_unknown_keys_logged(self, mock_discovery, caplog):
        """Test that unknown config keys are reported at debug level."""
        with caplog.at_level(logging.DEBUG, logger="pysoundtouchbridge.controller"):
            SoundTouchAccessory(
                {"accessory": "BoseSoundTouch", "platform": "x", "room": "Kitchen"}, mock_discovery
            )

        assert "Ignoring unknown config keys: accessory, platform" in caplog.text


class TestDiscoveryBinding:
    """Test cases for binding the discovered speaker."""

    @pytest.mark.asyncio
    async def test_search_registers_handlers(self, accessory, mock_discovery):
        """Test that search subscribes to found and lost events."""
        await accessory.search()

        mock_discovery.search.assert_awaited_once_with(
            accessory._on_device_found, accessory._on_device_lost
        )

    @pytest.mark.asyncio
    async def test_binds_matching_device(self, accessory, mock_discovery):
        """Test that a device named like the room is bound."""
        device = found("Kitchen")

        await accessory._on_device_found(device)

        assert accessory.device is device
        assert accessory.bound is True
        mock_discovery.stop_searching.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["Bedroom", "kitchen", "Kitchen ", ""])
    async def test_ignores_other_devices(self, accessory, mock_discovery, name):
        """Test that only an exact, case-sensitive match binds."""
        await accessory._on_device_found(found(name))

        assert accessory.device is None
        mock_discovery.stop_searching.assert_not_called()

    @pytest.mark.asyncio
    async def test_arrival_order_does_not_matter(self, accessory):
        """Test that non-matching devices before and after do not bind."""
        kitchen = found("Kitchen")

        await accessory._on_device_found(found("Bedroom"))
        await accessory._on_device_found(kitchen)
        await accessory._on_device_found(found("Office"))

        assert accessory.device is kitchen

    @pytest.mark.asyncio
    async def test_second_match_is_ignored(self, accessory, mock_discovery):
        """Test that binding happens at most once."""
        first = found("Kitchen", "192.168.1.50")
        second = found("Kitchen", "192.168.1.99")

        await accessory._on_device_found(first)
        await accessory._on_device_found(second)

        assert accessory.device is first
        mock_discovery.stop_searching.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lost_keeps_binding(self, bound_accessory, mock_device):
        """Test that a lost notification does not unbind."""
        await bound_accessory._on_device_lost(mock_device)

        assert bound_accessory.device is mock_device

    @pytest.mark.asyncio
    async def test_bound_device_gets_configured_timeout_and_port(self, mock_discovery):
        """Test that the configured timeout and port reach the bound device."""
        config = AccessoryConfig.from_dict({"room": "Kitchen", "request_timeout": 2, "port": 9000})
        accessory = SoundTouchAccessory(config, mock_discovery)
        device = SoundTouchDevice("Kitchen", "192.168.1.50")

        await accessory._on_device_found(device)

        assert accessory.device is device
        assert device.timeout == 2.0
        assert device.port == 9000
        assert device.base_url == "http://192.168.1.50:9000"

    @pytest.mark.asyncio
    async def test_bound_device_keeps_advertised_port(self, accessory):
        """Test that the advertised port is kept when no port is configured."""
        device = SoundTouchDevice("Kitchen", "192.168.1.50", port=8091)

        await accessory._on_device_found(device)

        assert device.port == 8091
        assert device.timeout == 10.0

    @pytest.mark.asyncio
    async def test_ignored_device_not_configured(self, mock_discovery):
        config = AccessoryConfig(room="Kitchen", request_timeout=2)
        accessory = SoundTouchAccessory(config, mock_discovery)
        device = SoundTouchDevice("Bedroom", "192.168.1.51")

        await accessory._on_device_found(device)

        assert device.timeout == 10.0
        assert await bound_accessory.get_volume() == 42


class TestGuard:
    """Test cases for operations attempted before discovery."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["Volume", "Mute", "AUX", "Preset1", "Preset6", "IP Address"])
    async def test_get_unbound(self, accessory, service, name):
        """Test that reads fail with NotDiscoveredError while unbound."""
        callback = MagicMock()

        await service.get_property(name).get(callback)

        callback.assert_called_once()
        error, value = callback.call_args[0]
        assert isinstance(error, NotDiscoveredError)
        assert value is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,value", [
        ("Volume", 50), ("Mute", True), ("Mute", False),
        ("AUX", True), ("AUX", False), ("Preset3", True), ("Preset3", False),
    ])
    async def test_set_unbound(self, accessory, service, name, value):
        """Test that writes fail with NotDiscoveredError while unbound."""
        callback = MagicMock()

        await service.get_property(name).set(value, callback)

        callback.assert_called_once()
        assert isinstance(callback.call_args[0][0], NotDiscoveredError)

    @pytest.mark.asyncio
    async def test_unbound_issues_no_device_calls(self, accessory, service, mock_device):
        """Test that a device discovered later saw no calls from earlier requests."""
        callback = MagicMock()

        await service.get_property("Volume").set(50, callback)
        await service.get_property("Preset1").set(True, callback)
        await service.get_property("Mute").get(callback)
        accessory.device = mock_device

        assert mock_device.mock_calls == []

    @pytest.mark.asyncio
    async def test_set_volume_unbound_scenario(self, accessory, service):
        """Test that setting volume unbound reports an error and keeps the cache."""
        callback = MagicMock()
        volume = service.get_property("Volume")

        await volume.set(50, callback)

        assert isinstance(callback.call_args[0][0], NotDiscoveredError)
        assert volume.value == 0

    @pytest.mark.asyncio
    async def test_direct_call_unbound_raises(self, accessory):
        """Test that library callers get the error raised."""
        with pytest.raises(NotDiscoveredError):
            await accessory.get_volume()

        with pytest.raises(NotDiscoveredError):
            await accessory.set_preset_active(1, False)


class TestVolume:
    """Test cases for volume operations."""

    @pytest.mark.asyncio
    async def test_get_volume(self, bound_accessory, service, mock_device):
        """Test that the actual volume is reported as a number."""
        callback = MagicMock()

        await service.get_property("Volume").get(callback)

        callback.assert_called_once_with(None, 42)
        mock_device.get_volume.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_volume_coerces_string(self, bound_accessory, mock_device):
        """Test that a textual volume is coerced to int."""
        mock_device.get_volume.return_value = VolumeStatus(actual_volume="42", target_volume="42")

        volume = await bound_accessory.get_volume()

        assert volume == 42
        assert isinstance(volume, int)

    @pytest.mark.asyncio
    async def test_get_volume_is_live(self, bound_accessory, mock_device):
        """Test that every read goes to the device."""
        await bound_accessory.get_volume()
        mock_device.get_volume.return_value = VolumeStatus(actual_volume=10, target_volume=10)

        assert await bound_accessory.get_volume() == 10
        assert mock_device.get_volume.await_count == 2

    @pytest.mark.asyncio
    async def test_set_volume(self, bound_accessory, service, mock_device):
        """Test that setting the volume forwards the level."""
        callback = MagicMock()

        await service.get_property("Volume").set(30, callback)

        callback.assert_called_once_with(None)
        mock_device.set_volume.assert_awaited_once_with(30)
        assert service.get_property("Volume").value == 30

    @pytest.mark.asyncio
    async def test_set_volume_out_of_range_passes_through(self, bound_accessory, mock_device):
        """Test that the controller leaves range checks to the device."""
        await bound_accessory.set_volume(150)

        mock_device.set_volume.assert_awaited_once_with(150)

    @pytest.mark.asyncio
    async def test_set_volume_failure(self, bound_accessory, service, mock_device):
        """Test that a device error reaches the callback unchanged."""
        failure = DeviceCommunicationError("connection refused")
        mock_device.set_volume.side_effect = failure
        callback = MagicMock()

        await service.get_property("Volume").set(30, callback)

        callback.assert_called_once_with(failure)
        assert service.get_property("Volume").value == 0


class TestPowerAndMute:
    """Test cases for power and mute operations."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("alive,muted", [(True, False), (False, True)])
    async def test_is_muted(self, bound_accessory, service, mock_device, alive, muted):
        """Test that mute is the negation of liveness."""
        mock_device.is_alive.return_value = alive
        callback = MagicMock()

        await service.get_property("Mute").get(callback)

        callback.assert_called_once_with(None, muted)

    @pytest.mark.asyncio
    async def test_mute_powers_off(self, bound_accessory, service, mock_device):
        """Test that muting issues exactly one power off and no play."""
        callback = MagicMock()

        await service.get_property("Mute").set(True, callback)

        callback.assert_called_once_with(None)
        mock_device.power_off.assert_awaited_once()
        mock_device.play.assert_not_called()
        mock_device.power_on.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("turned_on", [True, False])
    async def test_unmute_powers_on_then_plays(self, bound_accessory, service, mock_device, turned_on):
        """Test that play follows power on whether or not it was already on."""
        mock_device.power_on.return_value = turned_on
        callback = MagicMock()

        await service.get_property("Mute").set(False, callback)

        callback.assert_called_once_with(None)
        assert [c[0] for c in mock_device.mock_calls] == ["power_on", "play"]

    @pytest.mark.asyncio
    async def test_play_waits_for_power_on(self, bound_accessory, mock_device):
        """Test that play is not issued before power on completes."""
        power_on_done = asyncio.Event()

        async def _power_on():
            await asyncio.sleep(0)
            assert not mock_device.play.called
            power_on_done.set()
            return True

        async def _play():
            assert power_on_done.is_set()

        mock_device.power_on.side_effect = _power_on
        mock_device.play.side_effect = _play

        await bound_accessory.set_power(True)

        mock_device.play.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_power_on_failure_skips_play(self, bound_accessory, service, mock_device):
        """Test that a failed power on stops the sequence."""
        failure = DeviceCommunicationError("timeout")
        mock_device.power_on.side_effect = failure
        callback = MagicMock()

        await service.get_property("Mute").set(False, callback)

        callback.assert_called_once_with(failure)
        mock_device.play.assert_not_called()


class TestPresets:
    """Test cases for preset toggles."""

    @pytest.mark.asyncio
    async def test_get_preset_active_matching(self, bound_accessory, service):
        """Test that the playing preset reads as on."""
        callback = MagicMock()

        await service.get_property("Preset2").get(callback)

        callback.assert_called_once_with(None, True)

    @pytest.mark.asyncio
    async def test_get_preset_inactive(self, bound_accessory, service):
        """Test that other presets read as off."""
        callback = MagicMock()

        await service.get_property("Preset1").get(callback)

        callback.assert_called_once_with(None, False)

    @pytest.mark.asyncio
    async def test_get_preset_fetches_both(self, bound_accessory, mock_device):
        """Test that presets and now-playing are both fetched per read."""
        await bound_accessory.get_preset_active(2)

        mock_device.get_presets.assert_awaited_once()
        mock_device.get_now_playing.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_preset_missing_slot(self, bound_accessory, mock_device, sample_presets):
        """Test that an empty slot reads as off without error."""
        mock_device.get_presets.return_value = sample_presets[:1]

        assert await bound_accessory.get_preset_active(2) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("playing", [
        ContentItem("TUNEIN", "", "station-2"),
        ContentItem("INTERNET_RADIO", "account", "station-2"),
        ContentItem("INTERNET_RADIO", "", "station-3"),
    ])
    async def test_get_preset_any_field_differs(self, bound_accessory, mock_device, playing):
        """Test that every tuple field has to match."""
        mock_device.get_now_playing.return_value = NowPlaying(source=playing.source, content_item=playing)

        assert await bound_accessory.get_preset_active(2) is False

    @pytest.mark.asyncio
    async def test_get_preset_ignores_item_name(self, bound_accessory, mock_device):
        """Test that the display name does not take part in the comparison."""
        playing = ContentItem("INTERNET_RADIO", "", "station-2", item_name="Renamed")
        mock_device.get_now_playing.return_value = NowPlaying(source="INTERNET_RADIO", content_item=playing)

        assert await bound_accessory.get_preset_active(2) is True

    @pytest.mark.asyncio
    async def test_get_preset_standby(self, bound_accessory, mock_device):
        """Test that nothing matches while in standby."""
        mock_device.get_now_playing.return_value = NowPlaying(source="STANDBY", content_item=None)

        assert await bound_accessory.get_preset_active(2) is False

    @pytest.mark.asyncio
    async def test_get_preset_both_reads_fail(self, bound_accessory, service, mock_device):
        """Test that the first failure is reported once both reads have finished."""
        presets_error = DeviceCommunicationError("presets")
        mock_device.get_presets.side_effect = presets_error
        mock_device.get_now_playing.side_effect = DeviceCommunicationError("now playing")
        callback = MagicMock()

        await service.get_property("Preset2").get(callback)

        callback.assert_called_once_with(presets_error, None)
        mock_device.get_presets.assert_awaited_once()
        mock_device.get_now_playing.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_preset_now_playing_fails(self, bound_accessory, mock_device):
        error = DeviceCommunicationError("now playing")
        mock_device.get_now_playing.side_effect = error

        with pytest.raises(DeviceCommunicationError) as excinfo:
            await bound_accessory.get_preset_active(2)

        assert excinfo.value is error

    @pytest.mark.asyncio
    async def test_set_preset_presses_key_once(self, bound_accessory, service, mock_device):
        """Test that selecting a preset presses its key exactly once."""
        callback = MagicMock()

        await service.get_property("Preset3").set(True, callback)

        callback.assert_called_once_with(None)
        mock_device.press_key.assert_awaited_once_with("PRESET_3")

    @pytest.mark.asyncio
    async def test_set_preset_reconciles_siblings(self, bound_accessory, service):
        """Test that every other input toggle reads false afterwards."""
        await switch_all_toggles_on(service)
        callback = MagicMock()

        await service.get_property("Preset3").set(True, callback)

        callback.assert_called_once_with(None)
        for name in TOGGLE_NAMES:
            if name != "Preset3":
                assert service.get_property(name).value is False, name
        assert service.get_property("Preset3").value is True

    @pytest.mark.asyncio
    async def test_set_preset_callback_after_reconciliation(self, bound_accessory, service):
        """Test that completion is reported only after all siblings were reset."""
        await switch_all_toggles_on(service)
        observed = []

        def _callback(error):
            observed.append({name: service.get_property(name).value for name in TOGGLE_NAMES})

        await service.get_property("Preset1").set(True, _callback)

        assert len(observed) == 1
        assert not any(value for name, value in observed[0].items() if name != "Preset1")

    @pytest.mark.asyncio
    async def test_set_preset_reconciles_in_order(self, bound_accessory, service):
        """Test that siblings are reset one after the other in slot order."""
        await switch_all_toggles_on(service)
        order = []
        service.add_listener(lambda name, old, new: order.append(name))

        await bound_accessory.set_preset_active(4, True)

        assert order == ["Preset1", "Preset2", "Preset3", "Preset5", "Preset6", "AUX"]

    @pytest.mark.asyncio
    async def test_reconciliation_waits_for_key_press(self, bound_accessory, service, mock_device):
        """Test that sibling toggles are untouched until the key press completes."""
        await switch_all_toggles_on(service)

        async def _press_key(key):
            await asyncio.sleep(0)
            assert service.get_property("AUX").value is True

        mock_device.press_key.side_effect = _press_key

        await bound_accessory.set_preset_active(1, True)

        assert service.get_property("AUX").value is False

    @pytest.mark.asyncio
    async def test_set_preset_false_is_noop(self, bound_accessory, service, mock_device):
        """Test that switching a preset off does nothing on the device."""
        await switch_all_toggles_on(service)
        callback = MagicMock()

        await service.get_property("Preset2").set(False, callback)

        callback.assert_called_once_with(None)
        assert mock_device.mock_calls == []
        assert service.get_property("AUX").value is True

    @pytest.mark.asyncio
    async def test_set_preset_key_failure(self, bound_accessory, service, mock_device):
        """Test that a failed key press leaves sibling toggles alone."""
        await switch_all_toggles_on(service)
        failure = DeviceCommunicationError("refused")
        mock_device.press_key.side_effect = failure
        callback = MagicMock()

        await service.get_property("Preset2").set(True, callback)

        callback.assert_called_once_with(failure)
        assert service.get_property("Preset1").value is True

    @pytest.mark.asyncio
    async def test_custom_key_template(self, mock_discovery, mock_device):
        """Test that the key naming follows the configuration."""
        config = AccessoryConfig(room="Kitchen", preset_key_template="PRESET{index}")
        accessory = SoundTouchAccessory(config, mock_discovery)
        accessory.device = mock_device

        await accessory.set_preset_active(5, True)

        mock_device.press_key.assert_awaited_once_with("PRESET5")


class TestAux:
    """Test cases for the AUX toggle."""

    @pytest.mark.asyncio
    async def test_get_aux_active(self, bound_accessory, service, mock_device):
        """Test that AUX reads as on while the AUX source plays."""
        mock_device.get_now_playing.return_value = NowPlaying(
            source="AUX", content_item=ContentItem("AUX", "AUX", "")
        )
        callback = MagicMock()

        await service.get_property("AUX").get(callback)

        callback.assert_called_once_with(None, True)

    @pytest.mark.asyncio
    async def test_get_aux_inactive(self, bound_accessory, service):
        """Test that AUX reads as off for other sources."""
        callback = MagicMock()

        await service.get_property("AUX").get(callback)

        callback.assert_called_once_with(None, False)

    @pytest.mark.asyncio
    async def test_set_aux_presses_key_once(self, bound_accessory, service, mock_device):
        """Test that selecting AUX presses the AUX key exactly once."""
        callback = MagicMock()

        await service.get_property("AUX").set(True, callback)

        callback.assert_called_once_with(None)
        mock_device.press_key.assert_awaited_once_with("AUX_INPUT")

    @pytest.mark.asyncio
    async def test_set_aux_reconciles_presets(self, bound_accessory, service):
        """Test that every preset toggle reads false afterwards."""
        await switch_all_toggles_on(service)

        await service.get_property("AUX").set(True, MagicMock())

        for name in PRESET_NAMES:
            assert service.get_property(name).value is False, name
        assert service.get_property("AUX").value is True

    @pytest.mark.asyncio
    async def test_set_aux_false_is_noop(self, bound_accessory, service, mock_device):
        """Test that switching AUX off does nothing on the device."""
        callback = MagicMock()

        await service.get_property("AUX").set(False, callback)

        callback.assert_called_once_with(None)
        mock_device.press_key.assert_not_called()


class TestMomentaryReset:
    """Test cases for settling pressed toggles back to false."""

    @pytest.fixture
    def resetting_accessory(self, mock_discovery, mock_device):
        config = AccessoryConfig(room="Kitchen", momentary_reset=True, momentary_reset_delay=0.01)
        accessory = SoundTouchAccessory(config, mock_discovery)
        accessory.device = mock_device
        return accessory

    @pytest.mark.asyncio
    async def test_pressed_preset_settles(self, resetting_accessory):
        """Test that the pressed preset returns to false after the delay."""
        prop = resetting_accessory.service.get_property("Preset2")

        await prop.set(True, MagicMock())
        assert prop.value is True

        await asyncio.sleep(0.05)
        assert prop.value is False

    @pytest.mark.asyncio
    async def test_pressed_aux_settles(self, resetting_accessory):
        """Test that the AUX toggle returns to false after the delay."""
        prop = resetting_accessory.service.get_property("AUX")

        await prop.set(True, MagicMock())
        await asyncio.sleep(0.05)

        assert prop.value is False

    @pytest.mark.asyncio
    async def test_disabled_by_string_flag(self, mock_discovery, mock_device):
        """Test that a host config value of "false" keeps the reset off."""
        accessory = SoundTouchAccessory(
            {"room": "Kitchen", "momentary_reset": "false", "momentary_reset_delay": 0.01},
            mock_discovery,
        )
        accessory.device = mock_device
        prop = accessory.service.get_property("Preset2")

        await prop.set(True, MagicMock())
        await asyncio.sleep(0.05)

        assert prop.value is True

    @pytest.mark.asyncio
    async def test_enabled_by_string_flag(self, mock_discovery, mock_device):
        accessory = SoundTouchAccessory(
            {"room": "Kitchen", "momentaryReset": "true", "momentary_reset_delay": "0.01"},
            mock_discovery,
        )
        accessory.device = mock_device
        prop = accessory.service.get_property("Preset2")

        await prop.set(True, MagicMock())
        await asyncio.sleep(0.05)

        assert prop.value is False

    @pytest.mark.asyncio
    async def test_disabled_by_default(self, bound_accessory, service):
        """Test that the pressed toggle stays on without the option."""
        prop = service.get_property("Preset2")

        await prop.set(True, MagicMock())
        await asyncio.sleep(0.05)

        assert prop.value is True

    @pytest.mark.asyncio
    async def test_close_cancels_pending_reset(self, resetting_accessory, mock_device):
        """Test that closing cancels resets and releases the device."""
        config = resetting_accessory.config
        config.momentary_reset_delay = 10
        prop = resetting_accessory.service.get_property("Preset2")

        await prop.set(True, MagicMock())
        await resetting_accessory.close()
        await asyncio.sleep(0)

        assert prop.value is True
        mock_device.close.assert_awaited_once()


class TestInformation:
    """Test cases for accessory information."""

    def test_get_information(self, accessory):
        """Test the information record."""
        assert accessory.get_information() == {
            "Name": "Kitchen Speaker",
            "Manufacturer": "Bose SoundTouch",
            "Model": "1.0.0",
            "SerialNumber": "Kitchen",
        }

    def test_get_services(self, accessory, service):
        """Test that the speaker service comes first."""
        services = accessory.get_services()

        assert services[0] is service
        assert services[1]["SerialNumber"] == "Kitchen"

    def test_identify(self, accessory):
        """Test that identify succeeds."""
        assert accessory.identify() is None

    @pytest.mark.asyncio
    async def test_ip_address(self, bound_accessory, service):
        """Test that the bound device's address is reported."""
        callback = MagicMock()

        await service.get_property("IP Address").get(callback)

        callback.assert_called_once_with(None, "192.168.1.50")

    @pytest.mark.asyncio
    async def test_ip_address_read_only(self, bound_accessory, service):
        """Test that the address cannot be written."""
        callback = MagicMock()

        await service.get_property("IP Address").set("10.0.0.1", callback)

        assert callback.call_args[0][0] is not None

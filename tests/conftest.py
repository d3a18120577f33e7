"""Pytest configuration and common fixtures for pysoundtouchbridge tests."""

import pytest
from unittest.mock import AsyncMock

from pysoundtouchbridge.controller import SoundTouchAccessory
from pysoundtouchbridge.properties import Service
from pysoundtouchbridge.soundtouch_types import (
    AccessoryConfig, ContentItem, NowPlaying, Preset, VolumeStatus
)


# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)


def station(index):
    """Content item of the radio station stored in a preset slot."""
    return ContentItem(
        source="INTERNET_RADIO",
        source_account="",
        location=f"station-{index}",
        item_name=f"Station {index}",
    )


@pytest.fixture
def sample_presets():
    """Six stored presets, one radio station each."""
    return [Preset(index=index, content_item=station(index)) for index in range(1, 7)]


@pytest.fixture
def mock_device(sample_presets):
    """Create a mock SoundTouch device handle playing preset 2."""
    device = AsyncMock()
    device.name = "Kitchen"
    device.address = "192.168.1.50"
    device.get_volume.return_value = VolumeStatus(actual_volume=42, target_volume=42)
    device.is_alive.return_value = True
    device.power_on.return_value = True
    device.get_presets.return_value = sample_presets
    device.get_now_playing.return_value = NowPlaying(
        source="INTERNET_RADIO", content_item=station(2)
    )
    return device


@pytest.fixture
def mock_discovery():
    """Create a mock discovery service."""
    return AsyncMock()


@pytest.fixture
def config():
    """Accessory configuration for the kitchen speaker."""
    return AccessoryConfig(room="Kitchen", name="Kitchen Speaker")


@pytest.fixture
def service(config):
    """In-memory property surface."""
    return Service(config.name)


@pytest.fixture
def accessory(config, mock_discovery, service):
    """An accessory that has not discovered its speaker yet."""
    return SoundTouchAccessory(config, mock_discovery, service=service)


@pytest.fixture
def bound_accessory(accessory, mock_device):
    """An accessory bound to the mock device."""
    accessory.device = mock_device
    return accessory

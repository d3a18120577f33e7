"""
Python library bridging smart-home accessory properties to Bose SoundTouch speakers.

This library allows you to discover a SoundTouch speaker by its room name and
control its volume, power, presets and AUX input through accessory properties.
"""

from .soundtouch_types import AccessoryConfig, ContentItem, NowPlaying, Preset
from .controller import SoundTouchAccessory
from .exceptions import SoundTouchError, NotDiscoveredError, ConfigurationError
from .network import SoundTouchDevice, SoundTouchDiscovery
from .properties import Property, PropertyDefinition, Service

__version__ = "0.1.0"
__all__ = [
    "SoundTouchAccessory", "SoundTouchDevice", "SoundTouchDiscovery",
    "SoundTouchError", "NotDiscoveredError", "ConfigurationError",
    "AccessoryConfig", "ContentItem", "NowPlaying", "Preset",
    "Property", "PropertyDefinition", "Service",
]

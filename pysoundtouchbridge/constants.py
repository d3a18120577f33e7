"""
Constants for the SoundTouch bridge.

This module defines constants used throughout the SoundTouch bridge.
"""

# Network
DEFAULT_PORT = 8090
SERVICE_TYPE = "_soundtouch._tcp.local."
KEY_SENDER = "Gabbo"

# Timeout settings
DEFAULT_REQUEST_TIMEOUT = 10.0  # seconds
DEFAULT_SERVICE_INFO_TIMEOUT = 3000  # milliseconds
DEFAULT_MOMENTARY_RESET_DELAY = 1.0  # seconds

# Remote key vocabulary
PRESET_COUNT = 6
PRESET_KEY_TEMPLATE = "PRESET_{index}"
AUX_KEY = "AUX_INPUT"
POWER_KEY = "POWER"
PLAY_KEY = "PLAY"

# Now-playing sources
AUX_SOURCE = "AUX"
STANDBY_SOURCE = "STANDBY"

# Web API endpoints
ENDPOINT_INFO = "/info"
ENDPOINT_VOLUME = "/volume"
ENDPOINT_NOW_PLAYING = "/now_playing"
ENDPOINT_PRESETS = "/presets"
ENDPOINT_KEY = "/key"

# Accessory information
MANUFACTURER = "Bose SoundTouch"
MODEL = "1.0.0"

# Property names
PROPERTY_VOLUME = "Volume"
PROPERTY_MUTE = "Mute"
PROPERTY_AUX = "AUX"
PROPERTY_IP_ADDRESS = "IP Address"
PRESET_PROPERTY_TEMPLATE = "Preset{index}"

# Property identifiers
VOLUME_UUID = "00000119-0000-1000-8000-0026BB765291"
MUTE_UUID = "0000011A-0000-1000-8000-0026BB765291"
AUX_UUID = "00000074-0100-1000-8000-0026BB765291"
IP_ADDRESS_UUID = "00000074-0200-1000-8000-0026BB765291"
PRESET_UUID_TEMPLATE = "00000074-{index}000-1000-8000-0026BB765291"

# Property formats
FORMAT_BOOL = "bool"
FORMAT_UINT8 = "uint8"
FORMAT_STRING = "string"

# Property permissions
PERM_READ = "pr"
PERM_WRITE = "pw"
PERM_NOTIFY = "ev"

VOLUME_MIN = 0
VOLUME_MAX = 100

SPEAKER_SERVICE = "Speaker"

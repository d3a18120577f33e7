"""
Exceptions for the SoundTouch bridge.

This module defines custom exceptions used throughout the SoundTouch bridge.
"""


class SoundTouchError(Exception):
    """Base exception for all SoundTouch-related errors."""
    pass


class ConfigurationError(SoundTouchError):
    """Exception raised when the accessory configuration is incomplete."""
    pass


class NotDiscoveredError(SoundTouchError):
    """Exception raised when an operation runs before the device was discovered."""
    pass


class DeviceCommunicationError(SoundTouchError):
    """Exception raised when a request to the device fails."""
    pass


class CommandTimeoutError(DeviceCommunicationError):
    """Exception raised when a request to the device times out."""
    pass


class InvalidResponseError(SoundTouchError):
    """Exception raised when a response cannot be parsed."""
    pass


class PropertyValueError(SoundTouchError):
    """Exception raised when a property receives a value of the wrong format."""
    pass

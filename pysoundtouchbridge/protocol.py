"""
Protocol implementation for the SoundTouch Web API.

This module handles the XML request bodies sent to SoundTouch speakers and the
parsing of their XML responses into the bridge's data types.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, Any, Optional, List, Union

from .constants import KEY_SENDER, STANDBY_SOURCE
from .exceptions import InvalidResponseError, DeviceCommunicationError
from .soundtouch_types import ContentItem, Preset, NowPlaying, VolumeStatus, DeviceInfo

_LOGGER = logging.getLogger(__name__)


class RequestFormatter:
    """
    Formats request bodies for SoundTouch devices.

    This class provides methods for formatting the XML documents posted to
    the SoundTouch Web API.
    """

    @staticmethod
    def format_volume_request(level: int) -> str:
        """
        Format a volume request.

        Args:
            level: Volume level to set

        Returns:
            str: XML request body
        """
        root = ET.Element("volume")
        root.text = str(level)
        return ET.tostring(root, encoding="unicode")

    @staticmethod
    def format_key_request(key: str, state: str) -> str:
        """
        Format a remote key request.

        Args:
            key: Remote key name, e.g. ``PRESET_1``
            state: Key state, ``press`` or ``release``

        Returns:
            str: XML request body
        """
        root = ET.Element("key", {"state": state, "sender": KEY_SENDER})
        root.text = key
        return ET.tostring(root, encoding="unicode")


class ResponseParser:
    """
    Parses responses from SoundTouch devices.

    This class provides methods for parsing XML responses from SoundTouch
    devices into structured data.
    """

    @staticmethod
    def parse_document(xml_data: Union[str, bytes], expected_tag: Optional[str] = None) -> ET.Element:
        """
        Parse an XML response and check its root element.

        Args:
            xml_data: XML response data
            expected_tag: Root tag the response must carry, if any

        Returns:
            ET.Element: Root element of the response

        Raises:
            InvalidResponseError: If the response is not valid XML or has the wrong root
            DeviceCommunicationError: If the device answered with an error document
        """
        if isinstance(xml_data, bytes):
            xml_data = xml_data.decode("utf-8", errors="ignore")

        try:
            root = ET.fromstring(xml_data)
        except ET.ParseError as e:
            raise InvalidResponseError(f"Invalid XML: {e}")

        if root.tag == "errors":
            raise DeviceCommunicationError(ResponseParser._format_errors(root))

        if expected_tag is not None and root.tag != expected_tag:
            raise InvalidResponseError(
                f"Unexpected response type: {root.tag} (expected {expected_tag})"
            )

        return root

    @staticmethod
    def _format_errors(root: ET.Element) -> str:
        """Build a readable message from an ``<errors>`` document."""
        messages = []
        for error in root.findall("error"):
            name = error.get("name", "UNKNOWN")
            value = error.get("value", "")
            text = (error.text or "").strip()
            messages.append(f"{name} ({value}): {text}" if text else f"{name} ({value})")
        return "; ".join(messages) or "Device returned an error"

    @staticmethod
    def _child_text(element: ET.Element, tag: str, default: str = "") -> str:
        """Get the text content of a child element."""
        child = element.find(tag)
        if child is None or child.text is None:
            return default
        return child.text.strip()

    @staticmethod
    def parse_content_item(element: Optional[ET.Element]) -> Optional[ContentItem]:
        """
        Parse a ``<ContentItem>`` element.

        Args:
            element: ContentItem element, or None

        Returns:
            Optional[ContentItem]: Parsed content item, None if absent
        """
        if element is None:
            return None
        return ContentItem(
            source=element.get("source", ""),
            source_account=element.get("sourceAccount", ""),
            location=element.get("location", ""),
            item_name=ResponseParser._child_text(element, "itemName"),
        )

    @staticmethod
    def parse_volume(xml_data: Union[str, bytes]) -> VolumeStatus:
        """
        Parse a ``/volume`` response.

        Args:
            xml_data: XML response data

        Returns:
            VolumeStatus: Actual and target volume with the mute flag

        Raises:
            InvalidResponseError: If the volume values are missing or not numeric
        """
        root = ResponseParser.parse_document(xml_data, "volume")
        try:
            actual = int(ResponseParser._child_text(root, "actualvolume"))
            target = int(ResponseParser._child_text(root, "targetvolume", str(actual)))
        except ValueError as e:
            raise InvalidResponseError(f"Invalid volume response: {e}")
        muted = ResponseParser._child_text(root, "muteenabled", "false").lower() == "true"
        return VolumeStatus(actual_volume=actual, target_volume=target, muted=muted)

    @staticmethod
    def parse_now_playing(xml_data: Union[str, bytes]) -> NowPlaying:
        """
        Parse a ``/now_playing`` response.

        Args:
            xml_data: XML response data

        Returns:
            NowPlaying: Snapshot of the active source and content
        """
        root = ResponseParser.parse_document(xml_data, "nowPlaying")
        content_item = ResponseParser.parse_content_item(root.find("ContentItem"))
        source = root.get("source") or (content_item.source if content_item else STANDBY_SOURCE)
        return NowPlaying(
            source=source,
            content_item=content_item,
            track=ResponseParser._child_text(root, "track"),
            artist=ResponseParser._child_text(root, "artist"),
            play_status=ResponseParser._child_text(root, "playStatus"),
        )

    @staticmethod
    def parse_presets(xml_data: Union[str, bytes]) -> List[Preset]:
        """
        Parse a ``/presets`` response.

        Presets without an id or content item are skipped.

        Args:
            xml_data: XML response data

        Returns:
            List[Preset]: Presets ordered by slot index
        """
        root = ResponseParser.parse_document(xml_data, "presets")
        presets = []
        for element in root.findall("preset"):
            content_item = ResponseParser.parse_content_item(element.find("ContentItem"))
            try:
                index = int(element.get("id", ""))
            except ValueError:
                _LOGGER.debug("Skipping preset without a numeric id: %s", element.attrib)
                continue
            if content_item is None:
                _LOGGER.debug("Skipping preset %d without content", index)
                continue
            presets.append(Preset(index=index, content_item=content_item))
        return sorted(presets, key=lambda preset: preset.index)

    @staticmethod
    def parse_info(xml_data: Union[str, bytes]) -> DeviceInfo:
        """
        Parse an ``/info`` response.

        Args:
            xml_data: XML response data

        Returns:
            DeviceInfo: Device identity
        """
        root = ResponseParser.parse_document(xml_data, "info")
        address = ""
        for network_info in root.findall("networkInfo"):
            address = ResponseParser._child_text(network_info, "ipAddress")
            if address:
                break
        return DeviceInfo(
            device_id=root.get("deviceID", ""),
            name=ResponseParser._child_text(root, "name"),
            device_type=ResponseParser._child_text(root, "type"),
            address=address,
        )

    @staticmethod
    def parse_status(xml_data: Union[str, bytes]) -> Dict[str, Any]:
        """
        Parse the ``<status>`` acknowledgement returned by write requests.

        Args:
            xml_data: XML response data, may be empty

        Returns:
            Dict[str, Any]: ``{"status": <text>}``
        """
        if isinstance(xml_data, bytes):
            xml_data = xml_data.decode("utf-8", errors="ignore")
        if not xml_data.strip():
            return {"status": ""}
        root = ResponseParser.parse_document(xml_data)
        return {"status": (root.text or "").strip()}

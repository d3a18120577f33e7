"""
Network communication for the SoundTouch bridge.

This module provides the HTTP client used to control a SoundTouch speaker and
the mDNS discovery service announcing speakers on the local network.
"""

import asyncio
import logging
from typing import Optional, Dict, Set, List, Any

import aiohttp
from zeroconf import IPVersion, ServiceStateChange, Zeroconf
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from .constants import (
    DEFAULT_PORT, DEFAULT_REQUEST_TIMEOUT, DEFAULT_SERVICE_INFO_TIMEOUT, SERVICE_TYPE,
    ENDPOINT_INFO, ENDPOINT_VOLUME, ENDPOINT_NOW_PLAYING, ENDPOINT_PRESETS, ENDPOINT_KEY,
    POWER_KEY, PLAY_KEY, STANDBY_SOURCE
)
from .exceptions import DeviceCommunicationError, CommandTimeoutError, InvalidResponseError
from .protocol import RequestFormatter, ResponseParser
from .soundtouch_types import (
    DeviceInfo, DeviceListener, NowPlaying, Preset, VolumeStatus
)

_LOGGER = logging.getLogger(__name__)


class SoundTouchDevice:
    """
    HTTP client for a single SoundTouch speaker.

    This class implements the device handle used by the accessory controller
    on top of the SoundTouch Web API (XML over HTTP).

    Attributes:
        name (str): Name the speaker announces, i.e. its room
        address (str): IP address or host name of the speaker
        port (int): Web API port
    """

    def __init__(
        self,
        name: str,
        address: str,
        port: int = DEFAULT_PORT,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT
    ) -> None:
        """
        Initialize the device client.

        Args:
            name: Name the speaker announces
            address: IP address or host name of the speaker
            port: Web API port
            session: Shared HTTP session; a private one is created when omitted
            timeout: Per-request timeout in seconds
        """
        self.name = name
        self.address = address
        self.port = port
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout

    def __repr__(self) -> str:
        return f"SoundTouchDevice(name={self.name!r}, address={self.address!r}, port={self.port})"

    @property
    def timeout(self) -> float:
        """Per-request timeout in seconds."""
        return self._timeout

    def configure(self, timeout: Optional[float] = None, port: Optional[int] = None) -> None:
        """
        Override the request timeout and Web API port.

        Args:
            timeout: Per-request timeout in seconds; unchanged when None
            port: Web API port; unchanged when None
        """
        if timeout is not None:
            self._timeout = timeout
        if port is not None:
            self.port = port
        _LOGGER.debug("Configured %r with timeout %ss", self, self._timeout)

    @property
    def base_url(self) -> str:
        """Base URL of the speaker's Web API."""
        return f"http://{self.address}:{self.port}"

    async def __aenter__(self) -> "SoundTouchDevice":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, path: str, data: Optional[str] = None) -> str:
        """
        Send a request to the speaker and return the response body.

        Args:
            method: HTTP method
            path: Endpoint path, e.g. ``/volume``
            data: XML request body for POST requests

        Returns:
            str: Response body

        Raises:
            CommandTimeoutError: If the request times out
            DeviceCommunicationError: If the request fails or the device reports an error
        """
        url = f"{self.base_url}{path}"
        session = self._get_session()
        _LOGGER.debug("%s %s %s", method, url, data or "")

        try:
            async with session.request(
                method, url, data=data, timeout=aiohttp.ClientTimeout(total=self._timeout)
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    self._raise_for_error(url, resp.status, text)
                return text
        except asyncio.TimeoutError as e:
            raise CommandTimeoutError(f"Request to {url} timed out") from e
        except aiohttp.ClientError as e:
            raise DeviceCommunicationError(f"Request to {url} failed: {e}") from e

    @staticmethod
    def _raise_for_error(url: str, status: int, text: str) -> None:
        try:
            ResponseParser.parse_document(text)
        except InvalidResponseError:
            pass
        raise DeviceCommunicationError(f"HTTP {status} from {url}")

    async def get_info(self) -> DeviceInfo:
        """Get the speaker's identity information."""
        return ResponseParser.parse_info(await self._request("GET", ENDPOINT_INFO))

    async def get_volume(self) -> VolumeStatus:
        """Get the speaker's current volume."""
        return ResponseParser.parse_volume(await self._request("GET", ENDPOINT_VOLUME))

    async def set_volume(self, level: int) -> None:
        """
        Set the speaker's volume.

        Args:
            level: Volume level, passed through unchanged
        """
        body = RequestFormatter.format_volume_request(level)
        ResponseParser.parse_status(await self._request("POST", ENDPOINT_VOLUME, body))

    async def get_now_playing(self) -> NowPlaying:
        """Get a snapshot of what the speaker is playing."""
        return ResponseParser.parse_now_playing(await self._request("GET", ENDPOINT_NOW_PLAYING))

    async def get_presets(self) -> List[Preset]:
        """Get the stored presets ordered by slot."""
        return ResponseParser.parse_presets(await self._request("GET", ENDPOINT_PRESETS))

    async def press_key(self, key: str) -> None:
        """
        Press and release a remote key.

        Args:
            key: Remote key name, e.g. ``POWER`` or ``PRESET_3``
        """
        for state in ("press", "release"):
            body = RequestFormatter.format_key_request(key, state)
            ResponseParser.parse_status(await self._request("POST", ENDPOINT_KEY, body))
        _LOGGER.debug("Pressed key %s on %s", key, self.name)

    async def is_alive(self) -> bool:
        """Return True unless the speaker is in standby."""
        now_playing = await self.get_now_playing()
        return now_playing.source != STANDBY_SOURCE

    async def power_on(self) -> bool:
        """
        Turn the speaker on.

        Returns:
            bool: True if the speaker was switched on, False if it already was
        """
        if await self.is_alive():
            return False
        await self.press_key(POWER_KEY)
        return True

    async def power_off(self) -> None:
        """Put the speaker into standby."""
        if await self.is_alive():
            await self.press_key(POWER_KEY)

    async def play(self) -> None:
        """Resume playback."""
        await self.press_key(PLAY_KEY)


class SoundTouchDiscovery:
    """
    Discovers SoundTouch speakers via mDNS.

    This class browses for ``_soundtouch._tcp`` services and reports every
    speaker found or lost to the registered listeners.
    """

    def __init__(
        self,
        aiozc: Optional[AsyncZeroconf] = None,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        port: Optional[int] = None
    ) -> None:
        """
        Initialize the discovery service.

        Args:
            aiozc: Shared zeroconf instance; a private one is created when omitted
            session: HTTP session handed to discovered devices
            timeout: Request timeout handed to discovered devices
            port: Web API port of discovered devices; the advertised port when omitted
        """
        self._aiozc = aiozc
        self._owns_zeroconf = aiozc is None
        self._session = session
        self._timeout = timeout
        self._port = port
        self._browser: Optional[AsyncServiceBrowser] = None
        self._searching = False
        self._on_found: Optional[DeviceListener] = None
        self._on_lost: Optional[DeviceListener] = None
        self._devices: Dict[str, SoundTouchDevice] = {}
        self._pending: Set[asyncio.Task] = set()

    @property
    def searching(self) -> bool:
        """Whether found events are still being delivered."""
        return self._searching

    async def search(self, on_found: DeviceListener, on_lost: DeviceListener) -> None:
        """
        Start browsing for speakers.

        Args:
            on_found: Called with a SoundTouchDevice for each speaker found
            on_lost: Called with a SoundTouchDevice for each speaker that disappears
        """
        if self._browser is not None:
            _LOGGER.debug("Discovery already running")
            return

        self._on_found = on_found
        self._on_lost = on_lost
        self._searching = True

        if self._aiozc is None:
            self._aiozc = AsyncZeroconf()
            self._owns_zeroconf = True

        _LOGGER.debug("Browsing for %s", SERVICE_TYPE)
        self._browser = AsyncServiceBrowser(
            self._aiozc.zeroconf, [SERVICE_TYPE], handlers=[self._on_service_state_change]
        )

    async def stop_searching(self) -> None:
        """Stop delivering found events and cancel the browser."""
        self._searching = False
        if self._browser is not None:
            await self._browser.async_cancel()
            self._browser = None
            _LOGGER.debug("Stopped browsing for %s", SERVICE_TYPE)

    async def close(self) -> None:
        """Stop searching and release the zeroconf instance if owned."""
        await self.stop_searching()
        for task in list(self._pending):
            task.cancel()
        if self._owns_zeroconf and self._aiozc is not None:
            await self._aiozc.async_close()
            self._aiozc = None

    def _on_service_state_change(
        self,
        zeroconf: Zeroconf,
        service_type: str,
        name: str,
        state_change: ServiceStateChange
    ) -> None:
        task = asyncio.ensure_future(self._handle_state_change(service_type, name, state_change))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _handle_state_change(
        self, service_type: str, name: str, state_change: ServiceStateChange
    ) -> None:
        """
        Translate a zeroconf state change into a found or lost event.

        Args:
            service_type: Browsed service type
            name: Full service instance name
            state_change: Kind of change reported by zeroconf
        """
        if state_change is ServiceStateChange.Added:
            if not self._searching:
                return
            device = await self._resolve(service_type, name)
            if device is None or not self._searching:
                return
            self._devices[name] = device
            _LOGGER.debug("Discovered %r", device)
            await self._dispatch(self._on_found, device)
        elif state_change is ServiceStateChange.Removed:
            device = self._devices.pop(name, None)
            if device is None:
                device = SoundTouchDevice(self.instance_name(name, service_type), "")
            await self._dispatch(self._on_lost, device)

    async def _resolve(self, service_type: str, name: str) -> Optional[SoundTouchDevice]:
        """Resolve a service instance into a device client."""
        if self._aiozc is None:
            return None
        info = AsyncServiceInfo(service_type, name)
        if not await info.async_request(self._aiozc.zeroconf, DEFAULT_SERVICE_INFO_TIMEOUT):
            _LOGGER.warning("Could not resolve service %s", name)
            return None

        addresses = info.parsed_addresses(IPVersion.V4Only) or info.parsed_addresses()
        if not addresses:
            _LOGGER.warning("Service %s has no address", name)
            return None

        return SoundTouchDevice(
            self.instance_name(name, service_type),
            addresses[0],
            port=self._port or info.port or DEFAULT_PORT,
            session=self._session,
            timeout=self._timeout,
        )

    @staticmethod
    def instance_name(name: str, service_type: str = SERVICE_TYPE) -> str:
        """
        Strip the service type from a full service instance name.

        Args:
            name: Full instance name, e.g. ``Kitchen._soundtouch._tcp.local.``
            service_type: Service type suffix

        Returns:
            str: The speaker name, e.g. ``Kitchen``
        """
        suffix = "." + service_type
        if name.endswith(suffix):
            return name[:-len(suffix)]
        return name

    @staticmethod
    async def _dispatch(listener: Optional[DeviceListener], device: SoundTouchDevice) -> None:
        if listener is None:
            return
        try:
            result: Any = listener(device)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            _LOGGER.error("Error in discovery listener for %s: %s", device.name, e)

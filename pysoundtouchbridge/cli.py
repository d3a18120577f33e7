"""
Command-line interface for the pysoundtouchbridge package.

This module provides a command-line interface for controlling a SoundTouch
speaker through the same accessory properties a smart-home framework uses.
"""

import argparse
import logging
import asyncio
from typing import Optional, Any, List, Sequence

from .constants import (
    PROPERTY_VOLUME, PROPERTY_MUTE, PROPERTY_AUX, PROPERTY_IP_ADDRESS, PRESET_COUNT,
    PRESET_PROPERTY_TEMPLATE
)
from .controller import SoundTouchAccessory
from .exceptions import SoundTouchError, NotDiscoveredError
from .network import SoundTouchDiscovery
from .properties import Property, Service
from .soundtouch_types import AccessoryConfig, DeviceHandle

_LOGGER = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="soundtouch-bridge",
        description="Control a Bose SoundTouch speaker from the command line"
    )

    parser.add_argument(
        "--room",
        help="Room name the speaker announces (required for all commands but discover)"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Seconds to wait for discovery and for each request"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser(
        "discover",
        help="List the speakers announcing themselves on the network"
    )

    subparsers.add_parser(
        "status",
        help="Show volume, power and active input"
    )

    volume_parser = subparsers.add_parser(
        "volume",
        help="Show or set the volume"
    )
    volume_parser.add_argument(
        "level",
        type=int,
        nargs="?",
        help="Volume level (0-100); omit to show the current volume"
    )

    power_parser = subparsers.add_parser(
        "power",
        help="Control speaker power"
    )
    power_parser.add_argument(
        "state",
        choices=["on", "off", "status"],
        help="Power state to set or query"
    )

    preset_parser = subparsers.add_parser(
        "preset",
        help="Select a stored preset"
    )
    preset_parser.add_argument(
        "index",
        type=int,
        choices=range(1, PRESET_COUNT + 1),
        help=f"Preset slot (1-{PRESET_COUNT})"
    )

    subparsers.add_parser(
        "aux",
        help="Select the AUX input"
    )

    return parser


async def read_property(prop: Property) -> Any:
    """
    Read a property the way a framework client would.

    Raises:
        Exception: Whatever error the property reported
    """
    result: List[Any] = []

    def _callback(error: Optional[BaseException], value: Any) -> None:
        result.append((error, value))

    await prop.get(_callback)
    error, value = result[0]
    if error is not None:
        raise error
    return value


async def write_property(prop: Property, value: Any) -> None:
    """
    Write a property the way a framework client would.

    Raises:
        Exception: Whatever error the property reported
    """
    result: List[Optional[BaseException]] = []
    await prop.set(value, result.append)
    if result[0] is not None:
        raise result[0]


async def wait_until_bound(accessory: SoundTouchAccessory, timeout: float) -> None:
    """
    Wait for the accessory to bind its speaker.

    Raises:
        NotDiscoveredError: If no matching speaker shows up in time
    """
    async def _poll() -> None:
        while not accessory.bound:
            await asyncio.sleep(0.1)

    try:
        await asyncio.wait_for(_poll(), timeout)
    except asyncio.TimeoutError:
        raise NotDiscoveredError(
            f"No SoundTouch device named {accessory.room!r} found within {timeout:g}s"
        )


async def do_discover(discovery: SoundTouchDiscovery, timeout: float) -> int:
    """List the speakers found within the timeout."""
    found: List[DeviceHandle] = []

    def _on_found(device: DeviceHandle) -> None:
        found.append(device)
        print(f"  {device.name} ({device.address})")

    def _on_lost(device: DeviceHandle) -> None:
        _LOGGER.debug("Device went away during discovery: %s", device.name)

    print("Discovered devices:")
    await discovery.search(_on_found, _on_lost)
    await asyncio.sleep(timeout)
    await discovery.stop_searching()

    if not found:
        print("  (none)")
        return 1
    return 0


async def do_status(service: Service) -> int:
    """Print volume, power and the active input."""
    volume = await read_property(service.get_property(PROPERTY_VOLUME))
    muted = await read_property(service.get_property(PROPERTY_MUTE))
    address = await read_property(service.get_property(PROPERTY_IP_ADDRESS))

    active = "none"
    for prop in service:
        if prop.definition.is_preset or prop.name == PROPERTY_AUX:
            if await read_property(prop):
                active = prop.name
                break

    print(f"Device Status ({address}):")
    print("-" * 40)
    print(f"  Power: {'OFF' if muted else 'ON'}")
    print(f"  Volume: {volume}")
    print(f"  Input: {active}")
    print("-" * 40)
    return 0


async def do_volume(service: Service, level: Optional[int]) -> int:
    """Show or set the volume."""
    prop = service.get_property(PROPERTY_VOLUME)
    if level is None:
        print(f"Volume: {await read_property(prop)}")
    else:
        await write_property(prop, level)
        print(f"Volume set to {level}")
    return 0


async def do_power(service: Service, state: str) -> int:
    """Switch power or report it."""
    prop = service.get_property(PROPERTY_MUTE)
    if state == "status":
        muted = await read_property(prop)
        print(f"Power status: {'OFF' if muted else 'ON'}")
    else:
        await write_property(prop, state == "off")
        print(f"Power {state}")
    return 0


async def do_input(service: Service, name: str) -> int:
    """Select an input by switching its toggle on."""
    await write_property(service.get_property(name), True)
    print(f"Selected {name}")
    return 0


async def async_main(argv: Optional[Sequence[str]] = None) -> int:
    """Async main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not args.command:
        print("No command specified. Use --help for usage information.")
        return 1

    discovery = SoundTouchDiscovery(timeout=args.timeout)
    accessory: Optional[SoundTouchAccessory] = None
    try:
        if args.command == "discover":
            return await do_discover(discovery, args.timeout)

        config = AccessoryConfig(room=args.room or "", request_timeout=args.timeout)
        service = Service(config.name)
        accessory = SoundTouchAccessory(config, discovery, service=service)
        await accessory.search()
        await wait_until_bound(accessory, args.timeout)

        if args.command == "status":
            return await do_status(service)
        elif args.command == "volume":
            return await do_volume(service, args.level)
        elif args.command == "power":
            return await do_power(service, args.state)
        elif args.command == "preset":
            return await do_input(service, PRESET_PROPERTY_TEMPLATE.format(index=args.index))
        elif args.command == "aux":
            return await do_input(service, PROPERTY_AUX)

        print("No command specified. Use --help for usage information.")
        return 1

    except SoundTouchError as e:
        print(f"Error: {e}")
        return 1
    except Exception as e:
        _LOGGER.exception("Unexpected error")
        print(f"Unexpected error: {e}")
        return 1
    finally:
        if accessory is not None:
            await accessory.close()
        await discovery.close()


def main() -> int:
    """Main entry point for the CLI."""
    return asyncio.run(async_main())


if __name__ == "__main__":
    raise SystemExit(main())

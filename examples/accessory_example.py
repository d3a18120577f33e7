#!/usr/bin/env python
"""
Accessory Example

This example shows how a smart-home host drives a SoundTouchAccessory: it
builds the accessory from a host configuration, waits for the speaker to be
discovered, listens for property changes and selects a preset the way a
framework client would.
"""

import asyncio
import logging
import sys
from typing import Any

from pysoundtouchbridge.controller import SoundTouchAccessory
from pysoundtouchbridge.network import SoundTouchDiscovery
from pysoundtouchbridge.properties import Service

# Set up logging
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
_LOGGER = logging.getLogger(__name__)

ROOM = sys.argv[1] if len(sys.argv) > 1 else "Kitchen"


def on_property_changed(name: str, old_value: Any, new_value: Any) -> None:
    """Log every value the accessory pushes to the host."""
    _LOGGER.info("%s: %s -> %s", name, old_value, new_value)


async def main() -> None:
    discovery = SoundTouchDiscovery()
    service = Service(ROOM)
    service.add_listener(on_property_changed)

    accessory = SoundTouchAccessory(
        {"accessory": "BoseSoundTouch", "name": f"{ROOM} Speaker", "room": ROOM},
        discovery,
        service=service,
    )
    _LOGGER.info("Accessory information: %s", accessory.get_information())

    try:
        await accessory.search()
        for _ in range(100):
            if accessory.bound:
                break
            await asyncio.sleep(0.1)
        else:
            _LOGGER.error("No speaker found for room %s", ROOM)
            return

        def on_volume(error, value):
            if error:
                _LOGGER.error("Volume read failed: %s", error)
            else:
                _LOGGER.info("Current volume: %s", value)

        await service.get_property("Volume").get(on_volume)

        def on_selected(error):
            if error is None:
                _LOGGER.info("Preset 1 selected")
            else:
                _LOGGER.error("Selection failed: %s", error)

        await service.get_property("Preset1").set(True, on_selected)
        _LOGGER.info("Property values: %s", service.values())
    finally:
        await accessory.close()
        await discovery.close()


if __name__ == "__main__":
    asyncio.run(main())

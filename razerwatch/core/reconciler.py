"""Merge extracted log events into the device registry."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from razerwatch.core.model import Device, DeviceRegistry, MatchRecord

LOGGER = logging.getLogger(__name__)


def is_selected(handle: str, device_show: str) -> bool:
    return device_show == "" or device_show == handle


def _position(matches: Mapping[str, MatchRecord], handle: str) -> int:
    record = matches.get(handle)
    return record.position if record is not None else -1


def reconcile(
    registry: DeviceRegistry,
    battery_matches: Mapping[str, MatchRecord],
    loaded_matches: Mapping[str, MatchRecord],
    removed_matches: Mapping[str, MatchRecord],
    device_show: str,
    *,
    create_missing: bool = False,
) -> DeviceRegistry:
    """Apply the latest events of one log text to ``registry`` in place.

    Battery events overwrite name, level, charge and selection fields. The
    connection flag is decided per handle by whichever of the last load and
    last remove record sits later in the text; a handle with neither keeps its
    previous value. Devices are never removed.

    Load/remove events for a handle without a registry entry are dropped unless
    ``create_missing`` is set, in which case an entry with zeroed battery fields
    is created for it.
    """
    for handle, record in battery_matches.items():
        previous = registry.get(handle)
        registry[handle] = Device(
            name=record.fields["name"],
            handle=handle,
            battery_percentage=int(record.fields["level"]),
            is_charging=int(record.fields["charging"]) != 0,
            is_connected=previous.is_connected if previous is not None else False,
            is_selected=is_selected(handle, device_show),
        )

    for handle in loaded_matches.keys() | removed_matches.keys():
        loaded_pos = _position(loaded_matches, handle)
        removed_pos = _position(removed_matches, handle)
        device = registry.get(handle)
        if device is None:
            if not create_missing:
                LOGGER.debug("Ignoring connection event for unknown device handle %s", handle)
                continue
            source = loaded_matches[handle] if loaded_pos > removed_pos else removed_matches[handle]
            device = Device(
                name=source.fields["name"],
                handle=handle,
                battery_percentage=0,
                is_charging=False,
                is_connected=False,
                is_selected=is_selected(handle, device_show),
            )
            registry[handle] = device
        device.is_connected = loaded_pos > removed_pos

    return registry

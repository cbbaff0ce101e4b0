"""Presentation sink that prints device state to the terminal."""

from __future__ import annotations

from collections.abc import Mapping

import typer

from razerwatch.core.model import Device


def format_device(device: Device) -> str:
    connection = "connected" if device.is_connected else "disconnected"
    charging = " charging" if device.is_charging else ""
    return f"{device.handle} {device.name}: {device.battery_percentage}%{charging} ({connection})"


class ConsoleSink:
    def __init__(self, *, show_unselected: bool = False) -> None:
        self.show_unselected = show_unselected

    def on_device_update(self, registry: Mapping[str, Device]) -> None:
        devices = [
            device
            for _, device in sorted(registry.items())
            if device.is_selected or self.show_unselected
        ]
        if not devices:
            typer.echo("No devices found")
            return
        for device in devices:
            typer.echo(format_device(device))

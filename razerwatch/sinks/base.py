"""Presentation sink interfaces."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from razerwatch.core.model import Device


class PresentationSink(Protocol):
    def on_device_update(self, registry: Mapping[str, Device]) -> None:
        """Receive a read-only snapshot of every known device after a reparse."""

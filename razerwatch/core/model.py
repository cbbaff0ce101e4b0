"""Core data models used across extractor, reconciler, watcher, and CLI."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


@dataclass
class Device:
    name: str
    handle: str
    battery_percentage: int
    is_charging: bool
    is_connected: bool
    is_selected: bool


DeviceRegistry = dict[str, Device]


@dataclass(frozen=True)
class MatchRecord:
    """Last occurrence of one event kind for a handle.

    ``position`` is the character offset of the record in the scanned text and
    is only meaningful relative to other records from the same text.
    """

    handle: str
    fields: Mapping[str, str]
    position: int


@dataclass(frozen=True)
class ExtractedEvents:
    battery: dict[str, MatchRecord]
    loaded: dict[str, MatchRecord]
    removed: dict[str, MatchRecord]


@dataclass(frozen=True)
class Settings:
    polling_throttle_seconds: float = 1.0
    device_show: str = ""
    log_path: Path | None = None


class WatchState(Enum):
    STOPPED = "stopped"
    WATCHING = "watching"

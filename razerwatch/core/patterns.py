"""Extraction of per-device events from Synapse log text."""

from __future__ import annotations

import re
from enum import Enum

from razerwatch.core.model import ExtractedEvents, MatchRecord

# A line that opens a new log record, e.g. "2023-05-01 10:00:00.1234 INFO 12 ...".
_RECORD_START = r"[^\n]*? (?:TRACE|DEBUG|INFO|WARN|ERROR|FATAL) "
# Any run of text that does not cross into the next record.
_GAP = r"(?:(?!\n" + _RECORD_START + r")[\s\S])*?"
_NAME = r"Name: (?P<name>[^\r\n]*)"
_HANDLE = r"Handle: (?P<handle>\d+)"


def _event_pattern(marker: str, *tail: str) -> re.Pattern[str]:
    parts = [rf"^(?P<timestamp>[^\n]+?) INFO [^\n]*?{re.escape(marker)}", _NAME, _HANDLE, *tail]
    return re.compile(_GAP.join(parts), re.MULTILINE)


BATTERY_LEVEL_PATTERN = _event_pattern(
    "_OnBatteryLevelChanged",
    r"level (?P<level>\d+) state (?P<charging>\d+)",
)
DEVICE_LOADED_PATTERN = _event_pattern("_OnDeviceLoaded")
DEVICE_REMOVED_PATTERN = _event_pattern("_OnDeviceRemoved")


class EventKind(Enum):
    BATTERY_LEVEL = "battery_level"
    DEVICE_LOADED = "device_loaded"
    DEVICE_REMOVED = "device_removed"

    @property
    def pattern(self) -> re.Pattern[str]:
        return _PATTERNS[self]


_PATTERNS = {
    EventKind.BATTERY_LEVEL: BATTERY_LEVEL_PATTERN,
    EventKind.DEVICE_LOADED: DEVICE_LOADED_PATTERN,
    EventKind.DEVICE_REMOVED: DEVICE_REMOVED_PATTERN,
}


def extract_last_by_handle(pattern: re.Pattern[str], text: str) -> dict[str, MatchRecord]:
    """Return the textually last match of ``pattern`` for every handle in ``text``."""
    matches: dict[str, MatchRecord] = {}
    for match in pattern.finditer(text):
        fields = {key: value.strip() for key, value in match.groupdict().items() if value is not None}
        handle = fields["handle"]
        matches[handle] = MatchRecord(handle=handle, fields=fields, position=match.start())
    return matches


def extract_events(text: str) -> ExtractedEvents:
    return ExtractedEvents(
        battery=extract_last_by_handle(EventKind.BATTERY_LEVEL.pattern, text),
        loaded=extract_last_by_handle(EventKind.DEVICE_LOADED.pattern, text),
        removed=extract_last_by_handle(EventKind.DEVICE_REMOVED.pattern, text),
    )

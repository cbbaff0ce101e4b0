"""Stable public API for building tooling on top of razerwatch.

This module is the supported integration surface for third-party callers such
as tray icons or status bars. Avoid importing from internal modules unless
intentionally depending on non-stable internals.
"""

from __future__ import annotations

from razerwatch.core.bridge import SettingsBridge
from razerwatch.core.change_source import ChangeSource, StatPollChangeSource
from razerwatch.core.errors import (
    LogReadError,
    RazerwatchError,
    SettingsError,
    SettingsValidationError,
)
from razerwatch.core.model import Device, DeviceRegistry, MatchRecord, Settings, WatchState
from razerwatch.core.patterns import EventKind, extract_events, extract_last_by_handle
from razerwatch.core.reconciler import is_selected, reconcile
from razerwatch.core.settings import SettingsProvider, SettingsStore
from razerwatch.core.throttle import Throttle
from razerwatch.core.watcher import DeviceWatcher, scan_log_file
from razerwatch.sinks.base import PresentationSink

__all__ = [
    "RazerwatchError",
    "LogReadError",
    "SettingsError",
    "SettingsValidationError",
    "Device",
    "DeviceRegistry",
    "MatchRecord",
    "Settings",
    "WatchState",
    "EventKind",
    "extract_events",
    "extract_last_by_handle",
    "is_selected",
    "reconcile",
    "ChangeSource",
    "StatPollChangeSource",
    "Throttle",
    "SettingsProvider",
    "SettingsStore",
    "PresentationSink",
    "DeviceWatcher",
    "SettingsBridge",
    "scan_log_file",
]

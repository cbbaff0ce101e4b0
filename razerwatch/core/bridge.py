"""Restart the watcher whenever a setting it depends on changes."""

from __future__ import annotations

import logging
from typing import Any

from razerwatch.core.settings import DEVICE_SHOW, POLLING_THROTTLE_SECONDS, SettingsProvider
from razerwatch.core.watcher import DeviceWatcher

LOGGER = logging.getLogger(__name__)

WATCHED_KEYS = (POLLING_THROTTLE_SECONDS, DEVICE_SHOW)


class SettingsBridge:
    def __init__(self, watcher: DeviceWatcher, settings: SettingsProvider) -> None:
        self.watcher = watcher
        self._unsubscribers = [settings.subscribe(key, self._on_setting_changed) for key in WATCHED_KEYS]

    async def _on_setting_changed(self, key: str, value: Any) -> None:
        LOGGER.debug("Restarting watcher after %s changed", key)
        self.watcher.stop()
        await self.watcher.start()

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

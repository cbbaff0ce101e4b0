"""Watch loop that keeps the device registry in sync with the vendor log."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType

from razerwatch.core.change_source import ChangeSource, StatPollChangeSource
from razerwatch.core.errors import LogReadError, SettingsError
from razerwatch.core.model import Device, DeviceRegistry, Settings, WatchState
from razerwatch.core.patterns import extract_events
from razerwatch.core.reconciler import reconcile
from razerwatch.core.settings import SettingsProvider
from razerwatch.core.throttle import Throttle
from razerwatch.sinks.base import PresentationSink

LOGGER = logging.getLogger(__name__)

ChangeSourceFactory = Callable[[Path, Callable[[], None]], ChangeSource]


def read_log_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise LogReadError(f"Could not read log file {path}: {exc}") from exc


def apply_log_text(
    registry: DeviceRegistry,
    text: str,
    device_show: str,
    *,
    create_missing: bool = False,
) -> DeviceRegistry:
    events = extract_events(text)
    LOGGER.debug(
        "Extracted %d battery, %d loaded, %d removed records",
        len(events.battery),
        len(events.loaded),
        len(events.removed),
    )
    return reconcile(
        registry,
        events.battery,
        events.loaded,
        events.removed,
        device_show,
        create_missing=create_missing,
    )


def snapshot(registry: Mapping[str, Device]) -> list[Device]:
    return [replace(registry[handle]) for handle in sorted(registry)]


def scan_log_file(
    path: Path,
    device_show: str = "",
    *,
    registry: DeviceRegistry | None = None,
    create_missing: bool = False,
) -> list[Device]:
    """Parse ``path`` once and return the resulting devices."""
    registry = {} if registry is None else registry
    apply_log_text(registry, read_log_text(Path(path)), device_show, create_missing=create_missing)
    return snapshot(registry)


class DeviceWatcher:
    """Owns a device registry and re-parses the log whenever it may have changed.

    Reparse cycles are throttled to one per ``pollingThrottleSeconds`` window
    (leading and trailing edge) and never overlap. The registry survives
    ``stop()``/``start()`` so a settings change does not forget devices.
    """

    def __init__(
        self,
        log_path: Path,
        settings: SettingsProvider,
        sink: PresentationSink | None = None,
        *,
        registry: DeviceRegistry | None = None,
        change_source_factory: ChangeSourceFactory = StatPollChangeSource,
        create_missing: bool = False,
    ) -> None:
        self.log_path = Path(log_path)
        self.sink = sink
        self.create_missing = create_missing
        self._settings_provider = settings
        self._registry: DeviceRegistry = {} if registry is None else registry
        self._change_source_factory = change_source_factory
        self._state = WatchState.STOPPED
        self._settings: Settings | None = None
        self._throttle: Throttle | None = None
        self._source: ChangeSource | None = None
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def registry(self) -> Mapping[str, Device]:
        return MappingProxyType(self._registry)

    @property
    def settings(self) -> Settings | None:
        return self._settings

    def list_devices(self) -> list[Device]:
        return snapshot(self._registry)

    async def start(self) -> None:
        if self._state is WatchState.WATCHING:
            return
        generation = self._generation
        try:
            settings = await self._settings_provider.get_settings()
        except SettingsError:
            raise
        except Exception as exc:
            raise SettingsError(f"Could not fetch settings: {exc}") from exc
        if generation != self._generation:
            LOGGER.debug("Watcher stopped while fetching settings; not starting")
            return

        self._settings = settings
        self._throttle = Throttle(self._run_cycle, settings.polling_throttle_seconds)
        self._source = self._change_source_factory(self.log_path, self._throttle)
        self._source.start()
        self._state = WatchState.WATCHING
        LOGGER.info(
            "Watching %s (throttle %.2fs, showing %s)",
            self.log_path,
            settings.polling_throttle_seconds,
            settings.device_show or "all devices",
        )
        await self._run_cycle()

    def stop(self) -> None:
        self._generation += 1
        if self._source is not None:
            self._source.close()
            self._source = None
        if self._throttle is not None:
            self._throttle.cancel()
            self._throttle = None
        if self._state is WatchState.WATCHING:
            LOGGER.info("Stopped watching %s", self.log_path)
        self._state = WatchState.STOPPED

    async def reparse(self, device_show: str | None = None) -> list[Device]:
        """Read the whole log, reconcile it into the registry and publish.

        Raises ``LogReadError`` when the file cannot be read; the registry is
        left untouched in that case.
        """
        if device_show is None:
            device_show = self._settings.device_show if self._settings is not None else ""
        async with self._lock:
            text = await asyncio.to_thread(read_log_text, self.log_path)
            apply_log_text(self._registry, text, device_show, create_missing=self.create_missing)
            devices = self.list_devices()
        LOGGER.debug("Registry after reparse: %s", devices)
        self._publish()
        return devices

    async def _run_cycle(self) -> None:
        try:
            await self.reparse()
        except LogReadError as exc:
            LOGGER.warning("%s; keeping previous device state", exc)

    def _publish(self) -> None:
        if self.sink is None:
            return
        devices = {device.handle: device for device in self.list_devices()}
        try:
            self.sink.on_device_update(MappingProxyType(devices))
        except Exception:
            LOGGER.exception("Presentation sink failed to handle device update")

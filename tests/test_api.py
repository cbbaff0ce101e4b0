from __future__ import annotations

import asyncio
from collections.abc import Mapping
from pathlib import Path

from razerwatch import api


def test_public_api_exports_resolve() -> None:
    for name in api.__all__:
        assert getattr(api, name) is not None


def test_public_watcher_round_trip(tmp_path: Path) -> None:
    log = tmp_path / "synapse.log"
    log.write_text(
        "2023-05-01 10:00:00.0001 INFO 12 Razer.Synapse3.DeviceManager _OnBatteryLevelChanged:\n"
        "Name: Razer Viper\nHandle: 100\nBattery level 42 state 0\n",
        encoding="utf-8",
    )
    updates: list[Mapping[str, api.Device]] = []

    class Sink:
        def on_device_update(self, registry: Mapping[str, api.Device]) -> None:
            updates.append(registry)

    store = api.SettingsStore(tmp_path / "settings.yaml")
    watcher = api.DeviceWatcher(log, store, Sink())

    async def scenario() -> None:
        await watcher.start()
        assert watcher.state is api.WatchState.WATCHING
        watcher.stop()

    asyncio.run(scenario())

    assert updates[0]["100"].battery_percentage == 42
    assert watcher.list_devices()[0].name == "Razer Viper"

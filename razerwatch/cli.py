"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import asdict
from functools import partial
from pathlib import Path
from typing import Any

import typer

from razerwatch.core.bridge import SettingsBridge
from razerwatch.core.change_source import StatPollChangeSource
from razerwatch.core.errors import RazerwatchError, SettingsError
from razerwatch.core.model import Settings
from razerwatch.core.settings import DEVICE_SHOW, LOG_PATH, POLLING_THROTTLE_SECONDS, SettingsStore
from razerwatch.core.watcher import DeviceWatcher, scan_log_file
from razerwatch.sinks.console import ConsoleSink, format_device

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Track Razer peripheral battery and connection state from the Synapse log")
config_app = typer.Typer(help="Show or change razerwatch settings")
app.add_typer(config_app, name="config")


def default_log_path() -> Path:
    local_app_data = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData/Local"))
    return local_app_data / "Razer/Synapse3/Log/Razer Synapse 3.log"


def _build_store() -> SettingsStore:
    return SettingsStore()


def _resolve_log_path(option: Path | None, settings: Settings) -> Path:
    return option or settings.log_path or default_log_path()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("scan")
def scan(
    log: Path | None = typer.Option(None, "--log", help="Path to the Synapse log file"),
    show: str | None = typer.Option(None, "--show", help="Only mark this device handle as selected"),
    as_json: bool = typer.Option(False, "--json", help="Print devices as JSON"),
    create_missing: bool = typer.Option(
        False, "--create-missing", help="Track devices seen only in load/remove events"
    ),
) -> None:
    """Parse the log once and print every known device."""
    try:
        settings = _build_store().load()
        device_show = settings.device_show if show is None else show
        devices = scan_log_file(
            _resolve_log_path(log, settings),
            device_show,
            create_missing=create_missing,
        )
        if as_json:
            typer.echo(json.dumps([asdict(device) for device in devices], indent=2))
            return
        if not devices:
            typer.echo("No devices found")
            return
        for device in devices:
            marker = "*" if device.is_selected else " "
            typer.echo(f"{marker} {format_device(device)}")
    except RazerwatchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


async def _reload_settings(store: SettingsStore) -> None:
    try:
        await store.reload()
    except SettingsError as exc:
        LOGGER.warning("Ignoring settings change: %s", exc)


async def _watch(
    store: SettingsStore,
    log_path: Path,
    create_missing: bool,
    *,
    poll_interval_s: float = 0.5,
) -> None:
    watcher = DeviceWatcher(
        log_path,
        store,
        ConsoleSink(),
        change_source_factory=partial(StatPollChangeSource, interval_s=poll_interval_s),
        create_missing=create_missing,
    )
    bridge = SettingsBridge(watcher, store)
    reloads: set[asyncio.Task[None]] = set()

    def on_settings_file_changed() -> None:
        task = asyncio.get_running_loop().create_task(_reload_settings(store))
        reloads.add(task)
        task.add_done_callback(reloads.discard)

    settings_source = StatPollChangeSource(store.path, on_settings_file_changed, interval_s=poll_interval_s)
    try:
        await watcher.start()
        settings_source.start()
        await asyncio.Event().wait()
    finally:
        settings_source.close()
        bridge.close()
        watcher.stop()


@app.command("watch")
def watch(
    log: Path | None = typer.Option(None, "--log", help="Path to the Synapse log file"),
    create_missing: bool = typer.Option(
        False, "--create-missing", help="Track devices seen only in load/remove events"
    ),
    poll_interval: float = typer.Option(
        0.5, "--poll-interval", min=0.01, help="Seconds between checks of the log and settings files"
    ),
) -> None:
    """Follow the log and print device state whenever it changes."""
    try:
        store = _build_store()
        log_path = _resolve_log_path(log, store.load())
        typer.echo(f"Watching {log_path} (Ctrl-C to stop)")
        asyncio.run(_watch(store, log_path, create_missing, poll_interval_s=poll_interval))
    except KeyboardInterrupt:
        typer.echo("Stopped")
    except RazerwatchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@config_app.command("show")
def config_show() -> None:
    """Print the effective settings."""
    try:
        store = _build_store()
        settings = store.load()
        typer.echo(f"file: {store.path}")
        typer.echo(f"{POLLING_THROTTLE_SECONDS}: {settings.polling_throttle_seconds:g}")
        typer.echo(f"{DEVICE_SHOW}: {settings.device_show or '<all>'}")
        typer.echo(f"{LOG_PATH}: {_resolve_log_path(None, settings)}")
    except RazerwatchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def _coerce_value(key: str, raw: str) -> Any:
    if key == POLLING_THROTTLE_SECONDS:
        try:
            return float(raw)
        except ValueError:
            return raw
    if key == LOG_PATH:
        return raw or None
    return raw.strip()


@config_app.command("set")
def config_set(key: str, value: str = typer.Argument("")) -> None:
    """Change one setting; an empty VALUE resets deviceShow to show all devices."""
    try:
        store = _build_store()
        asyncio.run(store.set(key, _coerce_value(key, value)))
        typer.echo(f"Set {key} in {store.path}")
    except RazerwatchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()

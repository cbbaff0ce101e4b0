from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from razerwatch import cli

_TS = "2023-05-01 10:00:00.0001"

runner = CliRunner()


def _write_log(path: Path) -> None:
    path.write_text(
        f"{_TS} INFO 12 Razer.Synapse3.DeviceManager _OnDeviceLoaded:\nName: Razer Viper\nHandle: 100\n"
        f"{_TS} INFO 12 Razer.Synapse3.DeviceManager _OnBatteryLevelChanged:\n"
        "Name: Razer Viper\nHandle: 100\nBattery level 80 state 1\n"
        f"{_TS} INFO 12 Razer.Synapse3.DeviceManager _OnBatteryLevelChanged:\n"
        "Name: Razer Kraken\nHandle: 200\nBattery level 15 state 0\n",
        encoding="utf-8",
    )


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))


def test_scan_command(tmp_path: Path) -> None:
    log = tmp_path / "synapse.log"
    _write_log(log)
    result = runner.invoke(cli.app, ["scan", "--log", str(log)])
    assert result.exit_code == 0
    assert "* 100 Razer Viper: 80% charging (connected)" in result.stdout
    assert "* 200 Razer Kraken: 15% (disconnected)" in result.stdout


def test_scan_command_json_with_filter(tmp_path: Path) -> None:
    log = tmp_path / "synapse.log"
    _write_log(log)
    result = runner.invoke(cli.app, ["scan", "--log", str(log), "--show", "200", "--json"])
    assert result.exit_code == 0
    devices = json.loads(result.stdout)
    assert [(d["handle"], d["is_selected"]) for d in devices] == [("100", False), ("200", True)]
    assert devices[0]["battery_percentage"] == 80


def test_scan_uses_log_path_from_settings(tmp_path: Path) -> None:
    log = tmp_path / "synapse.log"
    _write_log(log)
    settings_file = tmp_path / "cfg" / "razerwatch" / "settings.yaml"
    settings_file.parent.mkdir(parents=True)
    settings_file.write_text(f"logPath: '{log}'\ndeviceShow: '100'\n", encoding="utf-8")

    result = runner.invoke(cli.app, ["scan"])
    assert result.exit_code == 0
    assert "* 100 Razer Viper" in result.stdout
    assert "  200 Razer Kraken" in result.stdout


def test_scan_missing_log_error_is_clean(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["scan", "--log", str(tmp_path / "missing.log")])
    assert result.exit_code == 1
    assert "Error: Could not read log file" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_scan_empty_log(tmp_path: Path) -> None:
    log = tmp_path / "synapse.log"
    log.write_text("", encoding="utf-8")
    result = runner.invoke(cli.app, ["scan", "--log", str(log)])
    assert result.exit_code == 0
    assert "No devices found" in result.stdout


def test_config_set_and_show(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["config", "set", "pollingThrottleSeconds", "3"])
    assert result.exit_code == 0
    result = runner.invoke(cli.app, ["config", "set", "deviceShow", "100"])
    assert result.exit_code == 0

    result = runner.invoke(cli.app, ["config", "show"])
    assert result.exit_code == 0
    assert "pollingThrottleSeconds: 3" in result.stdout
    assert "deviceShow: 100" in result.stdout
    assert (tmp_path / "cfg" / "razerwatch" / "settings.yaml").exists()


def test_config_set_invalid_value(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["config", "set", "pollingThrottleSeconds", "soon"])
    assert result.exit_code == 1
    assert "Error: Schema validation failed" in result.stderr


def test_config_show_defaults_to_all_devices() -> None:
    result = runner.invoke(cli.app, ["config", "show"])
    assert result.exit_code == 0
    assert "deviceShow: <all>" in result.stdout
    assert "Razer Synapse 3.log" in result.stdout


def test_scan_create_missing_tracks_load_only_devices(tmp_path: Path) -> None:
    log = tmp_path / "synapse.log"
    log.write_text(
        f"{_TS} INFO 12 Razer.Synapse3.DeviceManager _OnDeviceLoaded:\nName: Razer Kraken\nHandle: 300\n",
        encoding="utf-8",
    )
    result = runner.invoke(cli.app, ["scan", "--log", str(log)])
    assert "No devices found" in result.stdout

    result = runner.invoke(cli.app, ["scan", "--log", str(log), "--create-missing"])
    assert result.exit_code == 0
    assert "* 300 Razer Kraken: 0% (connected)" in result.stdout


def test_watch_follows_settings_file_and_log(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    caplog: pytest.LogCaptureFixture,
) -> None:
    log = tmp_path / "synapse.log"
    _write_log(log)
    settings_file = tmp_path / "settings.yaml"
    settings_file.write_text("deviceShow: ''\n", encoding="utf-8")
    store = cli.SettingsStore(settings_file)

    async def scenario() -> None:
        task = asyncio.create_task(cli._watch(store, log, False, poll_interval_s=0.02))
        await asyncio.sleep(0.2)
        out = capsys.readouterr().out
        assert "100 Razer Viper: 80% charging (connected)" in out
        assert "200 Razer Kraken: 15% (disconnected)" in out

        settings_file.write_text("deviceShow: '100'\n", encoding="utf-8")
        await asyncio.sleep(0.3)
        out = capsys.readouterr().out
        assert "100 Razer Viper" in out
        assert "200 Razer Kraken" not in out

        settings_file.write_text("deviceShow: [unclosed\n", encoding="utf-8")
        await asyncio.sleep(0.3)
        assert "Ignoring settings change" in caplog.text

        with log.open("a", encoding="utf-8") as handle:
            handle.write(
                f"{_TS} INFO 12 Razer.Synapse3.DeviceManager _OnBatteryLevelChanged:\n"
                "Name: Razer Viper\nHandle: 100\nBattery level 55 state 0\n"
            )
        await asyncio.sleep(0.3)
        out = capsys.readouterr().out
        assert "100 Razer Viper: 55% (connected)" in out
        assert "200 Razer Kraken" not in out

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

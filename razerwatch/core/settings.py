"""YAML-backed settings with per-key change notifications."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import os
from collections.abc import Awaitable, Callable
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Protocol

import yaml
from jsonschema import ValidationError, validators

from razerwatch.core.errors import SettingsError, SettingsValidationError
from razerwatch.core.model import Settings

LOGGER = logging.getLogger(__name__)

POLLING_THROTTLE_SECONDS = "pollingThrottleSeconds"
DEVICE_SHOW = "deviceShow"
LOG_PATH = "logPath"
SETTING_KEYS = (POLLING_THROTTLE_SECONDS, DEVICE_SHOW, LOG_PATH)

SettingsCallback = Callable[[str, Any], Awaitable[None] | None]


class SettingsProvider(Protocol):
    async def get_settings(self) -> Settings:
        """Return the current settings."""

    def subscribe(self, key: str, callback: SettingsCallback) -> Callable[[], None]:
        """Register ``callback`` for changes to ``key`` and return an unsubscriber."""


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise SettingsValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@lru_cache(maxsize=1)
def _load_schema_validator() -> Any:
    schema_text = resources.files("razerwatch.schemas").joinpath("settings.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_settings_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "razerwatch/settings.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        raise SettingsError(f"Could not read settings file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise SettingsValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise SettingsValidationError(f"Settings file {path} must contain a mapping at root")
    return loaded


def parse_settings(doc: dict[str, Any], source: Path | str = "<settings>") -> Settings:
    try:
        _load_schema_validator().validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise SettingsValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    log_path = doc.get(LOG_PATH)
    return Settings(
        polling_throttle_seconds=float(doc.get(POLLING_THROTTLE_SECONDS, 1.0)),
        device_show=str(doc.get(DEVICE_SHOW, "")).strip(),
        log_path=Path(log_path).expanduser() if log_path else None,
    )


def _setting_value(settings: Settings, key: str) -> Any:
    if key == POLLING_THROTTLE_SECONDS:
        return settings.polling_throttle_seconds
    if key == DEVICE_SHOW:
        return settings.device_show
    return settings.log_path


def _check_key(key: str) -> None:
    if key not in SETTING_KEYS:
        raise SettingsValidationError(
            f"Unknown setting '{key}'. Available: {', '.join(SETTING_KEYS)}"
        )


class SettingsStore:
    """Settings read from a YAML file, with change callbacks keyed by setting name."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or default_settings_path()
        self._doc: dict[str, Any] = {}
        self._settings: Settings | None = None
        self._subscribers: dict[str, list[SettingsCallback]] = {key: [] for key in SETTING_KEYS}

    def load(self) -> Settings:
        doc = _read_yaml(self.path)
        settings = parse_settings(doc, self.path)
        self._doc = doc
        self._settings = settings
        return settings

    async def get_settings(self) -> Settings:
        if self._settings is None:
            return await asyncio.to_thread(self.load)
        return self._settings

    def subscribe(self, key: str, callback: SettingsCallback) -> Callable[[], None]:
        _check_key(key)
        self._subscribers[key].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[key]:
                self._subscribers[key].remove(callback)

        return unsubscribe

    async def set(self, key: str, value: Any) -> Settings:
        """Validate, persist and announce a single setting change."""
        _check_key(key)
        previous = await self.get_settings()
        doc = {**self._doc, key: value}
        settings = parse_settings(doc, self.path)
        await asyncio.to_thread(self._write, doc)
        self._doc = doc
        self._settings = settings
        await self._notify(previous, settings)
        return settings

    async def reload(self) -> Settings:
        """Re-read the settings file and announce keys whose values changed."""
        previous = self._settings or Settings()
        settings = await asyncio.to_thread(self.load)
        await self._notify(previous, settings)
        return settings

    def _write(self, doc: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(yaml.safe_dump(doc, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            raise SettingsError(f"Could not write settings file {self.path}: {exc}") from exc

    async def _notify(self, previous: Settings, current: Settings) -> None:
        for key in SETTING_KEYS:
            value = _setting_value(current, key)
            if _setting_value(previous, key) == value:
                continue
            LOGGER.info("Setting %s changed to %r", key, value)
            for callback in list(self._subscribers[key]):
                result = callback(key, value)
                if inspect.isawaitable(result):
                    await result


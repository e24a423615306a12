"""Settings dataclass and JSON persistence."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..utils.file_io import write_text

__all__ = ["Settings", "SettingsStore", "DEFAULT_SETTINGS_PATH", "ENV_OVERRIDE_NAMES"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".ctlbook"
DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "CTLBOOK_AGENT_DIR": "agent_dir",
    "CTLBOOK_DOC_DIR": "doc_dir",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "CTLBOOK_DEBUG_LOGGING": "debug_logging",
    "CTLBOOK_PROD": "prod_environment",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "CTLBOOK_SYNC_TIMEOUT": "sync_timeout",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "CTLBOOK_DOC_WIDTH": "doc_width",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
ENV_OVERRIDE_NAMES: tuple[str, ...] = (
    *_ENV_OVERRIDES,
    *_BOOL_ENV_OVERRIDES,
    *_FLOAT_ENV_OVERRIDES,
    *_INT_ENV_OVERRIDES,
)


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    agent_dir: str = "/var/lib/resctl-demo"
    doc_dir: str | None = None  # None = built-in corpus
    sync_timeout: float = 10.0
    sync_poll_interval: float = 0.05
    doc_width: int = 80
    total_memory: int = 0  # 0 = detect
    prod_environment: bool = False
    debug_logging: bool = False


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            try:
                settings = Settings(**_filter_fields(payload))
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            if payload.get("version") != _SETTINGS_VERSION:
                try:
                    self.save(settings)
                except OSError as exc:
                    LOGGER.warning("Failed to migrate settings payload: %s", exc)
        LOGGER.debug("Settings loaded from %s (%d stored keys)", self._path, len(payload))
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        settings = self._apply_env_overrides(settings)
        return settings

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = self._serialize(settings)
        write_text(self._path, json.dumps(payload, indent=2, sort_keys=True) + "\n")
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _serialize(self, settings: Settings) -> Dict[str, Any]:
        data = asdict(settings)
        data["version"] = _SETTINGS_VERSION
        return data

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not hold an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {field.name for field in fields(Settings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = value
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}

"""
Configuration - sectioned YAML config file plus environment settings
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import MissingKeyError

logger = logging.getLogger("slides2pdf")

DEFAULT_CONFIG: Dict[str, Dict[str, str]] = {
    "DIRECTORY": {
        "output": "output",
        "filename": "title",
        "temp": "",
    },
    "SCRIBD": {
        "rendertime": "100",
    },
}


class Settings(BaseSettings):
    """Process-level settings read from the environment (SLIDES2PDF_*)."""

    model_config = SettingsConfigDict(
        env_prefix="SLIDES2PDF_",
        env_file=".env",
        extra="ignore",
    )

    config_path: str = "config.yaml"

    # API server
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Retention
    output_retention_seconds: int = 60 * 60
    file_grace_seconds: int = 30
    cleanup_interval_seconds: int = 10 * 60
    job_retention_seconds: int = 60 * 60

    # Job runner
    workers: int = 2


class ConfigProvider:
    """Read-only view over a sectioned configuration mapping"""

    def __init__(self, data: Optional[Mapping[str, Mapping[str, Any]]] = None, source: Optional[Path] = None):
        self.source = source
        self._data: Dict[str, Dict[str, str]] = {}
        for section, values in (data if data is not None else DEFAULT_CONFIG).items():
            if not isinstance(values, Mapping):
                continue
            self._data[str(section)] = {
                str(key): "" if value is None else str(value)
                for key, value in values.items()
            }

    @classmethod
    def from_file(cls, path: str | Path) -> "ConfigProvider":
        """
        Load a YAML config file

        Missing files fall back to the built-in defaults. Sections present in
        the file replace the defaults key by key.

        Raises:
            ValueError: If the file is not a mapping of sections
        """
        config_path = Path(path).expanduser()
        merged: Dict[str, Dict[str, Any]] = {
            section: dict(values) for section, values in DEFAULT_CONFIG.items()
        }
        if not config_path.exists():
            logger.debug("Config file %s not found, using defaults", config_path)
            return cls(merged)

        with config_path.open("r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}

        if not isinstance(loaded, dict):
            raise ValueError(f"Config file must contain a mapping of sections: {config_path}")

        for section, values in loaded.items():
            if not isinstance(values, dict):
                raise ValueError(f"Config section {section!r} must be a mapping: {config_path}")
            merged.setdefault(str(section), {}).update(values)

        return cls(merged, source=config_path)

    def get(self, section: str, key: str) -> str:
        """Return a config value, raising MissingKeyError when absent"""
        values = self._data.get(section)
        if values is None or key not in values:
            raise MissingKeyError(section, key)
        return values[key]

    def get_or(self, section: str, key: str, default: str) -> str:
        try:
            value = self.get(section, key)
        except MissingKeyError:
            return default
        return value or default

    @property
    def output_dir(self) -> Path:
        return Path(self.get_or("DIRECTORY", "output", "output")).expanduser().resolve()

    @property
    def temp_root(self) -> Optional[Path]:
        value = self.get_or("DIRECTORY", "temp", "")
        return Path(value).expanduser().resolve() if value else None

    @property
    def render_time(self) -> int:
        try:
            return int(self.get("SCRIBD", "rendertime"))
        except (MissingKeyError, ValueError):
            return int(DEFAULT_CONFIG["SCRIBD"]["rendertime"])

    def as_dict(self) -> Dict[str, Dict[str, str]]:
        return {section: dict(values) for section, values in self._data.items()}

"""Settings storage for importer configuration.

Values are resolved in order: DEFAULT_SETTINGS, the JSON settings file, then
IMPORTER_* environment variables (the way the import workload is configured).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping


SETTINGS_PATH = Path(
    os.environ.get(
        "VDISK_IMPORTER_SETTINGS_PATH",
        Path.home() / ".config" / "vdisk-importer" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_DATA_DIR = "/data"
DEFAULT_SCRATCH_DIR = "/scratch"
DEFAULT_IMAGE_FILE_NAME = "disk.img"
DEFAULT_BLOCK_DEVICE = "/dev/cdi-block-volume"

DEFAULT_SETTINGS: dict[str, Any] = {
    "source": "file",
    "endpoint": "",
    "image_size": "",
    "data_dir": DEFAULT_DATA_DIR,
    "scratch_dir": DEFAULT_SCRATCH_DIR,
    "image_file_name": DEFAULT_IMAGE_FILE_NAME,
    "block_device": DEFAULT_BLOCK_DEVICE,
    "copy_to_scratch": False,
    "allowed_formats": ["raw", "qcow2"],
    "progress_interval_seconds": 5.0,
}

ENV_OVERRIDES: dict[str, str] = {
    "IMPORTER_SOURCE": "source",
    "IMPORTER_ENDPOINT": "endpoint",
    "IMPORTER_IMAGE_SIZE": "image_size",
    "IMPORTER_DATA_DIR": "data_dir",
    "IMPORTER_SCRATCH_DIR": "scratch_dir",
    "IMPORTER_DATA_FILE": "image_file_name",
    "IMPORTER_BLOCK_DEVICE": "block_device",
    "IMPORTER_COPY_TO_SCRATCH": "copy_to_scratch",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def _apply_env_overrides(environ: Mapping[str, str]) -> None:
    for env_name, key in ENV_OVERRIDES.items():
        if env_name not in environ:
            continue
        value: Any = environ[env_name]
        if isinstance(DEFAULT_SETTINGS.get(key), bool):
            value = value.strip().lower() in _TRUE_VALUES
        settings_store.values[key] = value


def load_settings(environ: Mapping[str, str] | None = None) -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    if SETTINGS_PATH.exists():
        try:
            data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            data = None
        if isinstance(data, dict):
            settings_store.values.update(data)
    _apply_env_overrides(os.environ if environ is None else environ)


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def get_bool(key: str, default: bool = False) -> bool:
    return bool(get_setting(key, default))


load_settings()

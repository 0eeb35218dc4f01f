"""Loading and saving the shared ``config.env`` settings."""

from __future__ import annotations

import logging as py_logging
import threading
from pathlib import Path

from dotenv import dotenv_values, set_key
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nido_tui.errors import ExitCode, NidoTuiError

logger = py_logging.getLogger(__name__)

NIDO_HOME = Path("~/.nido").expanduser()
DEFAULT_CONFIG_PATH = NIDO_HOME / "config.env"

DEFAULT_LOG_LIMIT = 1000
DEFAULT_TICK_INTERVAL = 0.1

# config.env key -> AppConfig attribute
CONFIG_KEYS = {
    "BACKUP_DIR": "backup_dir",
    "IMAGE_DIR": "image_dir",
    "LINKED_CLONES": "linked_clones",
    "SSH_USER": "ssh_user",
    "TEMPLATE_DEFAULT": "template_default",
}

# Saves run on worker threads; set_key is a read-modify-write of the whole file.
_write_lock = threading.Lock()


class AppConfig(BaseModel):
    """Settings shared with the ``nido`` CLI."""

    model_config = ConfigDict(validate_assignment=True)

    backup_dir: str = str(NIDO_HOME / "backups")
    image_dir: str = str(NIDO_HOME / "images")
    linked_clones: bool = True
    ssh_user: str = "vmuser"
    template_default: str = ""
    path: Path = Field(default=DEFAULT_CONFIG_PATH, exclude=True)

    @field_validator("ssh_user")
    @classmethod
    def _validate_ssh_user(cls, value: str) -> str:
        value = value.strip()
        if not value or any(ch.isspace() for ch in value):
            raise ValueError(f"Invalid SSH user: {value!r}")
        return value

    @field_validator("backup_dir", "image_dir", "template_default")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    def get(self, key: str) -> str:
        value = getattr(self, CONFIG_KEYS[key])
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def set(self, key: str, value: str) -> None:
        """Assign by file key; pydantic coerces and validates the text."""
        setattr(self, CONFIG_KEYS[key], value)


class UiSettings(BaseModel):
    """Runtime options for the TUI itself, taken from the command line."""

    model_config = ConfigDict(frozen=True)

    log_limit: int = Field(default=DEFAULT_LOG_LIMIT, ge=1)
    tick_interval: float = Field(default=DEFAULT_TICK_INTERVAL, gt=0)
    nido_bin: str = "nido"


def load_config(path: Path | None = None) -> AppConfig:
    """Read ``config.env`` over the defaults; a missing file is not an error."""
    path = Path(path) if path else DEFAULT_CONFIG_PATH
    config = AppConfig(path=path)
    if not path.exists():
        logger.info("No config at %s, using defaults", path)
        return config
    if not path.is_file():
        raise NidoTuiError(
            f"Cannot read config {path}",
            code=ExitCode.CONFIG_ERROR,
            hint="config.env must be a regular file",
        )
    try:
        values = dotenv_values(path, interpolate=True, encoding="utf-8")
    except OSError as exc:
        raise NidoTuiError(
            f"Cannot read config {path}",
            code=ExitCode.CONFIG_ERROR,
            hint=str(exc),
        ) from exc

    for key, value in values.items():
        # Empty values leave the default in place.
        if key not in CONFIG_KEYS or not value:
            continue
        try:
            config.set(key, value)
        except ValidationError as exc:
            raise NidoTuiError(
                f"Invalid {key} in {path}: {value}",
                code=ExitCode.CONFIG_ERROR,
                hint=exc.errors()[0]["msg"],
            ) from exc
    return config


def update_config(path: Path, key: str, value: str) -> None:
    """Rewrite ``key`` in place or append it, keeping every other line."""
    path = Path(path)
    with _write_lock:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch(exist_ok=True)
        set_key(str(path), key, value, quote_mode="never", encoding="utf-8")
    logger.info("Config %s updated", key)

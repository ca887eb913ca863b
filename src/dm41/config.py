"""Optional TOML configuration for the dm41 command-line tool."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import tomllib

from .memory_image import Dm41Error

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Dm41Error):
    """Raised when a configuration file fails validation."""


@dataclass(frozen=True)
class ToolConfig:
    """Defaults applied before command-line flags."""

    log_level: str = "WARNING"
    timezone_offset: int | None = None
    image: Path | None = None


def load_tool_config(config_path: Path) -> ToolConfig:
    """Parse and validate the ``[dm41]`` table of ``config_path``."""

    try:
        with config_path.open("rb") as stream:
            raw_data = tomllib.load(stream)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{config_path}: {exc}") from exc

    section = raw_data.get("dm41", {})
    if not isinstance(section, Mapping):
        raise ConfigError("[dm41] section must be a table")

    unknown = set(section) - {"log_level", "timezone_offset", "image"}
    if unknown:
        raise ConfigError(f"unknown [dm41] keys: {', '.join(sorted(unknown))}")

    return ToolConfig(
        log_level=_parse_log_level(section.get("log_level", "WARNING")),
        timezone_offset=_parse_timezone_offset(section.get("timezone_offset")),
        image=_parse_image_path(section.get("image"), base=config_path.parent),
    )


def _parse_log_level(raw: Any) -> str:
    if not isinstance(raw, str) or raw.upper() not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
    return raw.upper()


def _parse_timezone_offset(raw: Any) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ConfigError("timezone_offset must be an integer number of seconds")
    if abs(raw) > 24 * 3600:
        raise ConfigError(f"timezone_offset {raw} is more than a day")
    return raw


def _parse_image_path(raw: Any, *, base: Path) -> Path | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ConfigError("image must be a path string")
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = base / path
    return path


__all__ = ["ConfigError", "LOG_LEVELS", "ToolConfig", "load_tool_config"]

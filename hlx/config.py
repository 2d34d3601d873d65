"""Environment-driven defaults for the ``hlx`` command line."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from .logging_config import DEFAULT_LEVEL, DEFAULT_LOGS_DIR, LEVELS, LoggerConfig


_logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when application configuration is invalid."""


@dataclass(slots=True)
class Config:
    """Container for application configuration."""

    directory: Path
    log_level: str = DEFAULT_LEVEL
    logs_dir: str = DEFAULT_LOGS_DIR
    log_files: Tuple[str, ...] = field(default_factory=tuple)

    def logger_config(self, category: str = "cli") -> LoggerConfig:
        return LoggerConfig(
            category=category,
            level=self.log_level,
            logs_dir=self.logs_dir,
            log_file=self.log_files or None,
        )


def _parse_log_files(raw: str | None) -> Tuple[str, ...]:
    if not raw:
        return tuple()
    files: list[str] = []
    for item in raw.replace(";", ",").split(","):
        item = item.strip()
        if not item:
            continue
        files.append(item)
    return tuple(dict.fromkeys(files))


def _parse_level(raw: str | None) -> str:
    if raw is None or not raw.strip():
        return DEFAULT_LEVEL
    value = raw.strip().lower()
    if value not in LEVELS:
        _logger.warning("Unknown log level %s, falling back to %s", raw, DEFAULT_LEVEL)
        return DEFAULT_LEVEL
    return value


def _validate_config(config: Config) -> None:
    if config.directory.exists() and not config.directory.is_dir():
        raise ConfigError("HLX_DIRECTORY must point to a directory")


def load_config() -> Config:
    """Load configuration from environment variables."""

    directory_raw = (os.getenv("HLX_DIRECTORY") or "").strip()
    directory = Path(directory_raw).expanduser() if directory_raw else Path.cwd()

    config = Config(
        directory=directory,
        log_level=_parse_level(os.getenv("HLX_LOG_LEVEL")),
        logs_dir=(os.getenv("HLX_LOGS_DIR") or "").strip() or DEFAULT_LOGS_DIR,
        log_files=_parse_log_files(os.getenv("HLX_LOG_FILE")),
    )

    _validate_config(config)
    _logger.debug(
        "Configuration loaded: directory=%s, level=%s, logs dir=%s, log files=[%s]",
        config.directory,
        config.log_level,
        config.logs_dir,
        ", ".join(config.log_files),
    )
    return config

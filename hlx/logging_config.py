"""Logging configuration helpers.

This module centralises logging configuration for the ``hlx`` tool. It
provides:

* A :class:`LoggerRegistry` that memoizes one composite logger per category.
* Console output that hides the ``info`` keyword for the ``cli`` category and
  prefixes every other category with its name.
* Progress-bar entries that are suppressed on interactive terminals.
* JSON-line or technical plain-text log files.
"""

from __future__ import annotations

import copy
import itertools
import json
import logging
import os
import re
import sys
from dataclasses import dataclass
from logging import LogRecord
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence, TextIO, Tuple, Union

# -- Public API -----------------------------------------------------------------

DEFAULT_CATEGORY = "cli"
DEFAULT_LEVEL = "info"
DEFAULT_LOGS_DIR = "logs"

#: Sentinel log target meaning "standard error".
STDERR = "-"

VERBOSE = 15
TRACE = 5
SILLY = 1

logging.addLevelName(VERBOSE, "VERBOSE")
logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(SILLY, "SILLY")

LEVELS: Dict[str, int] = {
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "verbose": VERBOSE,
    "debug": logging.DEBUG,
    "trace": TRACE,
    "silly": SILLY,
}

_LEVEL_NAMES: Dict[int, str] = {
    logging.CRITICAL: "fatal",
    logging.ERROR: "error",
    logging.WARNING: "warn",
    logging.INFO: "info",
    VERBOSE: "verbose",
    logging.DEBUG: "debug",
    TRACE: "trace",
    SILLY: "silly",
}

_JSON_TARGET = re.compile(r"\.json")
_TECHNICAL_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

LogFile = Union[str, os.PathLike, Sequence[Union[str, os.PathLike]], None]


@dataclass(frozen=True)
class _Colour:
    """ANSI colour fragments used for console output."""

    prefix: str
    suffix: str = "\x1b[0m"

    def wrap(self, value: str) -> str:
        return f"{self.prefix}{value}{self.suffix}"


_LEVEL_COLOURS: Dict[str, _Colour] = {
    "info": _Colour("\x1b[32m"),   # Green
    "warn": _Colour("\x1b[33m"),   # Yellow
    "error": _Colour("\x1b[31m"),  # Red
}

_CATEGORY_COLOUR = _Colour("\x1b[90m")  # Grey


def level_value(name: str | None) -> int:
    """Return the numeric level for a level name, falling back to ``info``."""

    if not name:
        return logging.INFO
    return LEVELS.get(str(name).strip().lower(), logging.INFO)


def level_name(levelno: int) -> str:
    """Return the lower-case level keyword used in rendered output."""

    name = _LEVEL_NAMES.get(levelno)
    if name is not None:
        return name
    return logging.getLevelName(levelno).lower()


@dataclass(slots=True)
class LoggerConfig:
    """Options used to build the logger of one category."""

    category: str = DEFAULT_CATEGORY
    level: str = DEFAULT_LEVEL
    logs_dir: str = DEFAULT_LOGS_DIR
    log_file: LogFile = None

    def default_log_file(self) -> str:
        return os.path.join(os.path.normpath(self.logs_dir), f"{self.category}-server.log")

    def targets(self) -> Tuple[str, ...]:
        """Return the ordered, de-duplicated list of log targets."""

        if self.log_file is not None and not isinstance(self.log_file, (str, os.PathLike)):
            candidates = [os.fspath(item) for item in self.log_file]
        else:
            single = os.fspath(self.log_file) if self.log_file else self.default_log_file()
            candidates = [STDERR, single]
        return tuple(dict.fromkeys(candidates))


def _pick(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value:
            return value
    return None


def resolve_logger_config(config: Any = None) -> LoggerConfig:
    """Normalise a category name, mapping or :class:`LoggerConfig`.

    Unknown mapping keys are ignored and missing values fall back to the
    defaults; this function never raises for malformed input.
    """

    if isinstance(config, LoggerConfig):
        return config
    if isinstance(config, str):
        return LoggerConfig(category=config or DEFAULT_CATEGORY)
    if not isinstance(config, Mapping):
        return LoggerConfig()

    return LoggerConfig(
        category=_pick(config, "category") or DEFAULT_CATEGORY,
        level=_pick(config, "level") or DEFAULT_LEVEL,
        logs_dir=_pick(config, "logs_dir", "logsDir") or DEFAULT_LOGS_DIR,
        log_file=_pick(config, "log_file", "logFile"),
    )


def supports_colour(stream: TextIO | None) -> bool:
    """Return ``True`` if ANSI colours should be written to ``stream``."""

    if os.getenv("NO_COLOR"):
        return False
    if os.getenv("FORCE_COLOR"):
        return True
    return _is_tty(stream)


def _is_tty(stream: TextIO | None) -> bool:
    return bool(getattr(stream, "isatty", lambda: False)())


def _record_fields(record: LogRecord) -> Dict[str, Any]:
    fields = getattr(record, "fields", None)
    return fields if isinstance(fields, dict) else {}


def _without_progress(record: LogRecord) -> LogRecord:
    fields = _record_fields(record)
    if "progress" not in fields:
        return record
    clone = copy.copy(record)
    clone.fields = {key: value for key, value in fields.items() if key != "progress"}
    return clone


# -- Filters --------------------------------------------------------------------


class ProgressSuppressFilter(logging.Filter):
    """Drop progress-bar entries on a terminal, strip the flag elsewhere."""

    def __init__(self, stream: TextIO | None) -> None:
        super().__init__()
        self._stream = stream

    def filter(self, record: LogRecord) -> bool | LogRecord:
        if _record_fields(record).get("progress") and _is_tty(self._stream):
            return False
        return _without_progress(record)


class ProgressStripFilter(logging.Filter):
    """Remove the ``progress`` field so that it doesn't get logged."""

    def filter(self, record: LogRecord) -> bool | LogRecord:
        return _without_progress(record)


# -- Formatters -----------------------------------------------------------------


def _render_message(formatter: logging.Formatter, record: LogRecord, fields: Mapping[str, Any]) -> str:
    message = record.getMessage()
    if fields:
        message = f"{message} {json.dumps(fields, ensure_ascii=False, default=str)}"
    if record.exc_info:
        message = f"{message}\n{formatter.formatException(record.exc_info)}"
    elif record.exc_text:
        message = f"{message}\n{record.exc_text}"
    return message


class CategoryAwareConsoleFormatter(logging.Formatter):
    """Format console records, hiding ``info`` for the ``cli`` category."""

    def __init__(self, *, colour: bool = False) -> None:
        super().__init__("%(message)s")
        self.colour = colour

    def format(self, record: LogRecord) -> str:  # noqa: D401 (short description inherited)
        category = getattr(record, "category", None) or DEFAULT_CATEGORY
        message = _render_message(self, record, _record_fields(record))

        level = level_name(record.levelno)
        colour = _LEVEL_COLOURS.get(level)
        if colour and self.colour:
            level = colour.wrap(level)

        if category == DEFAULT_CATEGORY:
            if record.levelno == logging.INFO:
                return message
            return f"{level}: {message}"

        label = f"[{category}]"
        if self.colour:
            label = _CATEGORY_COLOUR.wrap(label)
        return f"{label} {level}: {message}"


class JsonLineFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: LogRecord) -> str:  # noqa: D401 (short description inherited)
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": level_name(record.levelno),
            "category": getattr(record, "category", None) or DEFAULT_CATEGORY,
            "message": record.getMessage(),
            "logger": record.name,
        }
        for key, value in _record_fields(record).items():
            payload.setdefault(key, value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class TechnicalFormatter(logging.Formatter):
    """Plain-text format for log files: ``[time LEVEL] [category] message``."""

    def format(self, record: LogRecord) -> str:  # noqa: D401 (short description inherited)
        timestamp = self.formatTime(record, _TECHNICAL_TIME_FORMAT)
        category = getattr(record, "category", None) or DEFAULT_CATEGORY
        message = _render_message(self, record, _record_fields(record))
        return f"[{timestamp} {level_name(record.levelno).upper()}] [{category}] {message}"


# -- Logger handle --------------------------------------------------------------


class CategoryLogger(logging.LoggerAdapter):
    """Logger adapter that injects the category and carries extra fields.

    Fields are passed the usual way, ``log.info("50%", extra={"progress": True})``,
    and end up on the record as ``record.fields``.
    """

    def __init__(self, logger: logging.Logger, category: str) -> None:
        super().__init__(logger, {"category": category})

    @property
    def category(self) -> str:
        return self.extra["category"]

    def process(self, msg: Any, kwargs: Dict[str, Any]):
        fields = dict(kwargs.pop("extra", None) or {})
        kwargs["extra"] = {"category": self.category, "fields": fields}
        return msg, kwargs

    def warn(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def fatal(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.CRITICAL, msg, *args, **kwargs)

    def verbose(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(VERBOSE, msg, *args, **kwargs)

    def trace(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(TRACE, msg, *args, **kwargs)

    def silly(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(SILLY, msg, *args, **kwargs)


# -- Registry -------------------------------------------------------------------

_registry_ids = itertools.count(1)


class LoggerRegistry:
    """Process-wide map of category name to :class:`CategoryLogger`.

    The registry starts empty, is populated lazily by :meth:`get_or_create`
    and entries are never removed. ``stream`` is the console destination
    (``sys.stderr`` when omitted) and ``colour`` overrides colour detection.

    Loggers are created under ``namespace``; each registry gets a unique
    namespace unless one is given, so separate registries never share
    handlers.
    """

    def __init__(
        self,
        *,
        stream: TextIO | None = None,
        colour: bool | None = None,
        namespace: str | None = None,
    ) -> None:
        self.namespace = namespace or f"hlx.registry{next(_registry_ids)}"
        self._stream = stream
        self._colour = colour
        self._loggers: Dict[str, CategoryLogger] = {}

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def __contains__(self, category: object) -> bool:
        return category in self._loggers

    def get(self, category: str) -> CategoryLogger | None:
        return self._loggers.get(category)

    def categories(self) -> Tuple[str, ...]:
        return tuple(self._loggers)

    def get_or_create(self, config: Any = DEFAULT_CATEGORY) -> CategoryLogger:
        """Return the logger of the resolved category, creating it on first use.

        Parameters
        ----------
        config:
            A category name, a mapping with ``category``, ``level``,
            ``logs_dir`` and ``log_file`` keys, or a :class:`LoggerConfig`.
            Repeated calls for a known category return the existing logger
            unchanged; the new configuration is ignored.
        """

        resolved = resolve_logger_config(config)
        existing = self._loggers.get(resolved.category)
        if existing is not None:
            return existing

        log = CategoryLogger(self._build_logger(resolved), resolved.category)
        self._loggers[resolved.category] = log
        return log

    def _build_logger(self, config: LoggerConfig) -> logging.Logger:
        level = level_value(config.level)
        logger = logging.getLogger(f"{self.namespace}.{config.category}")
        logger.setLevel(level)
        logger.propagate = False
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        for target in config.targets():
            if target == STDERR:
                logger.addHandler(self._console_handler(config.category, level))
            else:
                logger.addHandler(_file_handler(target))
        return logger

    def _console_handler(self, category: str, level: int) -> logging.Handler:
        stream = self.stream
        colour = supports_colour(stream) if self._colour is None else self._colour
        handler = logging.StreamHandler(stream)
        handler.setLevel(level)
        handler.setFormatter(CategoryAwareConsoleFormatter(colour=colour))
        if category == DEFAULT_CATEGORY:
            handler.addFilter(ProgressSuppressFilter(stream))
        else:
            handler.addFilter(ProgressStripFilter())
        return handler


def _file_handler(target: str) -> logging.Handler:
    path = Path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    if _JSON_TARGET.search(target):
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(TechnicalFormatter())
    return handler


#: Registry used by :func:`get_or_create_logger`.
default_registry = LoggerRegistry(namespace="hlx")


def get_or_create_logger(config: Any = DEFAULT_CATEGORY) -> CategoryLogger:
    """Return the logger for ``config`` from :data:`default_registry`."""

    return default_registry.get_or_create(config)


def setup_logging(
    level: str = DEFAULT_LEVEL,
    *,
    stream: TextIO | None = None,
    force: bool = True,
) -> None:
    """Install the category-aware console format on the root logger.

    Parameters
    ----------
    level:
        Level name for the root console handler.
    stream:
        Console destination, ``sys.stderr`` when omitted.
    force:
        If ``True``, remove any pre-existing handlers on the root logger
        before adding the new one.
    """

    root_logger = logging.getLogger()
    root_logger.setLevel(level_value(level))

    if force:
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    target = stream if stream is not None else sys.stderr
    console_handler = logging.StreamHandler(target)
    console_handler.setLevel(level_value(level))
    console_handler.setFormatter(CategoryAwareConsoleFormatter(colour=supports_colour(target)))
    root_logger.addHandler(console_handler)

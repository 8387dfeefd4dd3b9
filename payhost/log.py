"""Structured, levelled logging to any number of registered outputs."""

from __future__ import annotations

import math
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any, Protocol, TextIO

LEVEL_KEY = "level"
MESSAGE_KEY = "msg"
DURATION_KEY = "duration"
ERROR_KEY = "error"
IP_KEY = "ip"
URL_KEY = "url"
TRACE_KEY = "trace"

SEPARATOR = ":"
PREFIX_DATE = "%Y-%m-%d "
PREFIX_TIME = "%H:%M:%S "
PREFIX_DATE_TIME = "%Y-%m-%d:%H:%M:%S "

FILE_FLAGS = os.O_WRONLY | os.O_APPEND | os.O_CREAT
FILE_PERMISSIONS = 0o640


class Level(IntEnum):
    """Log levels, lowest first."""

    NONE = 0
    DEBUG = 1
    INFO = 2
    ERROR = 3
    FATAL = 4


LEVEL_NAMES = ("none", "debug", "info", "error", "fatal")
NO_COLOR = os.environ.get("TERM") == "dumb"
LEVEL_COLORS = ("\033[0m", "\033[34m", "\033[32m", "\033[33m", "\033[31m")
TRACE_COLOR = "\033[33m"
CLEAR_COLORS = "\033[0m"

_SPECIAL_KEYS = frozenset({DURATION_KEY, MESSAGE_KEY, LEVEL_KEY})


class StructuredLogger(Protocol):
    def log(self, values: dict[str, Any]) -> None: ...


def _trim(number: float) -> str:
    return f"{number:.9f}".rstrip("0").rstrip(".")


def _format_duration(duration: timedelta) -> str:
    ns = (duration.days * 86_400 + duration.seconds) * 1_000_000_000 + duration.microseconds * 1_000
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_trim(ns / 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_trim(ns / 1_000_000)}ms"
    hours, rest = divmod(ns, 3_600_000_000_000)
    minutes, rest = divmod(rest, 60_000_000_000)
    text = ""
    if hours:
        text += f"{hours}h"
    if hours or minutes:
        text += f"{minutes}m"
    return f"{sign}{text}{_trim(rest / 1_000_000_000)}s"


def _format_value(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "+Inf" if value > 0 else "-Inf"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, timedelta):
        return _format_duration(value)
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda item: str(item[0]))
        return "map[" + " ".join(f"{_format_value(k)}:{_format_value(v)}" for k, v in items) + "]"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_format_value(v) for v in value) + "]"
    return str(value)


@dataclass
class DefaultLogger:
    """Writes key:value lines at or above a level to a text stream."""

    prefix: str = ""
    level: int = Level.INFO
    writer: TextIO = field(default_factory=lambda: sys.stderr)
    color: bool = True

    def log(self, values: dict[str, Any]) -> None:
        """Write the values as one line, keys sorted, unless below our level."""
        level = self.level_value(values)
        if level < self.level:
            return

        self.write_string(datetime.now(timezone.utc).strftime(self.prefix))

        message = values.get(MESSAGE_KEY)
        if isinstance(message, str):
            self.write_string(message + " ")
        duration = values.get(DURATION_KEY)
        if isinstance(duration, timedelta):
            self.write_string(f"in {_format_duration(duration)} ")

        for key in self.sorted_keys(values):
            self.write_string(key + SEPARATOR)
            if key in (IP_KEY, TRACE_KEY):
                self.write_string(f"{TRACE_COLOR}{_format_value(values[key])}{CLEAR_COLORS} ")
            else:
                self.write_string(f"{_format_value(values[key])} ")

        prefix = suffix = ""
        if self.color:
            prefix = self.level_color(level)
            suffix = CLEAR_COLORS
        self.write_string(f"{prefix}#{self.level_name(level)}{suffix} ")
        self.write_string("\n")

        flush = getattr(self.writer, "flush", None)
        if flush is not None:
            flush()

    def write_string(self, s: str) -> None:
        """Write s to the output stream."""
        self.writer.write(s)

    def level_value(self, values: dict[str, Any]) -> int:
        """Return the integer level in values, or 0 if absent or not an integer."""
        level = values.get(LEVEL_KEY)
        if isinstance(level, int) and not isinstance(level, bool):
            return int(level)
        return 0

    def level_name(self, level: int) -> str:
        """Return the name of the level."""
        if not 0 <= level < len(LEVEL_NAMES):
            raise ValueError(f"log: invalid level {level}")
        return LEVEL_NAMES[level]

    def level_color(self, level: int) -> str:
        """Return the terminal colour sequence for the level."""
        if not 0 <= level < len(LEVEL_COLORS):
            raise ValueError(f"log: invalid level {level}")
        return LEVEL_COLORS[level]

    def sorted_keys(self, values: dict[str, Any]) -> list[str]:
        """Return the keys in alphabetical order, without level, msg and duration."""
        return sorted(key for key in values if key not in _SPECIAL_KEYS)


@dataclass
class FileLogger(DefaultLogger):
    """A logger appending to a local file."""

    prefix: str = PREFIX_DATE_TIME
    color: bool = False
    path: str = ""

    def close(self) -> None:
        """Close the underlying file."""
        self.writer.close()

    def __enter__(self) -> FileLogger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def new_stderr(prefix: str = "") -> DefaultLogger:
    """Return a coloured logger writing to stderr at level info."""
    return DefaultLogger(prefix=prefix, level=Level.INFO, writer=sys.stderr, color=True)


def new_file(path: str | os.PathLike[str]) -> FileLogger:
    """Return a logger appending to the file at path at level info."""
    path = os.fspath(path)
    if not path:
        raise ValueError("log: null file path for file log")
    fd = os.open(path, FILE_FLAGS, FILE_PERMISSIONS)
    writer = os.fdopen(fd, "a", encoding="utf-8")
    return FileLogger(writer=writer, path=path)


_loggers: list[StructuredLogger] = []


def add(logger: StructuredLogger) -> None:
    """Register an output."""
    _loggers.append(logger)


def reset() -> None:
    """Remove all registered outputs."""
    _loggers.clear()


def log(values: dict[str, Any]) -> None:
    """Send values to every output, defaulting the level to info."""
    values.setdefault(LEVEL_KEY, Level.INFO)
    for logger in list(_loggers):
        logger.log(values)


def debug(values: dict[str, Any]) -> None:
    """Log values at level debug."""
    values[LEVEL_KEY] = Level.DEBUG
    log(values)


def info(values: dict[str, Any]) -> None:
    """Log values at level info."""
    values[LEVEL_KEY] = Level.INFO
    log(values)


def error(values: dict[str, Any]) -> None:
    """Log values at level error."""
    values[LEVEL_KEY] = Level.ERROR
    log(values)


def fatal(values: dict[str, Any]) -> None:
    """Log values at level fatal; nothing else is done."""
    values[LEVEL_KEY] = Level.FATAL
    log(values)


def timed(start: datetime, values: dict[str, Any]) -> None:
    """Log values with the time elapsed since start added as duration."""
    now = datetime.now() if start.tzinfo is None else datetime.now(timezone.utc)
    values[DURATION_KEY] = now - start
    log(values)
"""Per-mode key/value configuration read from a JSON file."""

from __future__ import annotations

import json
import os
import re
from enum import IntEnum
from typing import Any

DEFAULT_PATH = "secrets/fragmenta.json"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_INT_RE = re.compile(r"[+-]?[0-9]+")


class Mode(IntEnum):
    """The mode selecting which set of values is in use."""

    DEVELOPMENT = 0
    PRODUCTION = 1
    TEST = 2


def _parse_int64(value: str) -> int | None:
    if not _INT_RE.fullmatch(value):
        return None
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        return None
    return number


def _validate_section(name: str, section: Any) -> dict[str, str]:
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ValueError(f"section {name!r} is not an object")
    for key, value in section.items():
        if not isinstance(value, str):
            raise ValueError(f"value for {name}.{key} is not a string")
    return dict(section)


class Config:
    """Key/value settings for development, production and test modes."""

    def __init__(self, mode: Mode = Mode.DEVELOPMENT) -> None:
        self.mode = Mode(mode)
        self._configs: dict[Mode, dict[str, str]] = {m: {} for m in Mode}

    def load(self, path: str | os.PathLike[str]) -> None:
        """Read the JSON config file at path, replacing all current values."""
        try:
            with open(path, encoding="utf-8") as handle:
                text = handle.read()
        except OSError as exc:
            raise OSError(f"error opening config {path} {exc}") from exc

        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError("top level is not an object")
            sections = {name: _validate_section(name, value) for name, value in data.items()}
        except ValueError as exc:
            raise ValueError(f"error reading config {path} {exc}") from exc

        if len(sections) < 2:
            raise ValueError(
                f"error reading config - not enough configs, got :{len(sections)} expected 3"
            )

        self._configs[Mode.DEVELOPMENT] = sections.get("development", {})
        self._configs[Mode.PRODUCTION] = sections.get("production", {})
        self._configs[Mode.TEST] = sections.get("test", {})

    def production(self) -> bool:
        """Return True if the current mode is production."""
        return self.mode == Mode.PRODUCTION

    def configuration(self, mode: Mode) -> dict[str, str]:
        """Return all values for the current mode (the argument is not consulted)."""
        return self._configs[self.mode]

    def get(self, key: str) -> str:
        """Return the value for key, or "" if there is none."""
        return self._configs[self.mode].get(key, "")

    def get_int(self, key: str) -> int:
        """Return the value for key as an integer, or 0 if absent or invalid."""
        value = self.get(key)
        if value:
            number = _parse_int64(value)
            if number is not None:
                return number
        return 0

    def get_bool(self, key: str) -> bool:
        """Return True only if the value for key is "yes"."""
        return self.get(key) == "yes"


_current: Config | None = None


def set_current(config: Config | None) -> None:
    """Install the config used by the module-level accessors."""
    global _current
    _current = config


def production() -> bool:
    """Return True if the current config is in production mode."""
    return _current is not None and _current.production()


def configuration(mode: Mode) -> dict[str, str]:
    """Return all values of the current config."""
    if _current is None:
        return {}
    return _current.configuration(mode)


def get(key: str) -> str:
    """Return a value from the current config, or "" if none."""
    if _current is None:
        return ""
    return _current.get(key)


def get_int(key: str) -> int:
    """Return an integer value from the current config, or 0."""
    if _current is None:
        return 0
    return _current.get_int(key)


def get_bool(key: str) -> bool:
    """Return a yes/no value from the current config as a bool."""
    if _current is None:
        return False
    return _current.get_bool(key)
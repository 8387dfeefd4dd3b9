"""Templates read from files or strings, grouped in shared sets per kind."""

from __future__ import annotations

import hashlib
import posixpath
import re
import threading
from typing import Any, Callable, ClassVar, Iterable, Mapping

from jinja2 import Environment, FunctionLoader, Template

Helpers = Mapping[str, Callable[..., Any]]

MAX_CACHE_KEY_LENGTH = 250

_TEMPLATE_INCLUDE = re.compile(
    r"""\{%-?\s*(?:include|extends|import|from)\s+["']([^"']+)["']"""
)


def is_dot_file(path: str) -> bool:
    """Return True if the last element of path starts with a dot."""
    trimmed = path.rstrip("/")
    if not trimmed:
        base = "/" if path.startswith("/") else "."
    else:
        base = posixpath.basename(trimmed)
    return base.startswith(".")


def has_suffixes(path: str, suffixes: Iterable[str]) -> bool:
    """Return True if path ends with one of suffixes and is not a dot file."""
    if is_dot_file(path):
        return False
    return any(path.endswith(suffix) for suffix in suffixes)


def _generate_hash(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


class BaseTemplate:
    """A template that stores its source and renders it unchanged."""

    def __init__(self, fullpath: str = "", path: str = "") -> None:
        self.fullpath = fullpath
        self._path = path
        self._source = ""
        self._key = ""
        self._dependencies: list[BaseTemplate] = []

    @property
    def path(self) -> str:
        """The template's path relative to its scan root."""
        return self._path

    @property
    def source(self) -> str:
        """The template's original source."""
        return self._source

    @property
    def dependencies(self) -> list[BaseTemplate]:
        """Templates this one includes."""
        return list(self._dependencies)

    # Parser role

    def setup(self, helpers: Helpers) -> None:
        """Prepare for parsing; the base template needs nothing."""

    def can_parse_file(self, path: str) -> bool:
        """Return True for any file that is not a dot file."""
        return not is_dot_file(path)

    def new_template(self, fullpath: str, path: str) -> BaseTemplate:
        """Return a new template of this kind for the file."""
        return type(self)(fullpath, path)

    # Template role

    def parse(self) -> None:
        """Read the template source from its file."""
        with open(self.fullpath, encoding="utf-8") as handle:
            self._source = handle.read()

    def parse_string(self, s: str) -> None:
        """Use s as the source, naming the template by its hash."""
        self._path = _generate_hash(s)
        self._source = s

    def finalize(self, templates: Mapping[str, BaseTemplate]) -> None:
        """Record dependencies once every template has been parsed."""
        self._dependencies = []

    def render(self, context: Mapping[str, Any] | None = None) -> str:
        """Return the source, ignoring context."""
        return self._source

    def cache_key(self) -> str:
        """Return a key built from the path, source hash and dependency keys."""
        if self._key:
            return self._key
        key = f"{self._path}/{_generate_hash(self._source)}"
        for dependency in self._dependencies:
            key = f"{key}-{dependency.cache_key()}"
        if len(key) > MAX_CACHE_KEY_LENGTH:
            key = _generate_hash(key)
        self._key = key
        return key


class _TemplateSet:
    """A named collection of compiled templates sharing helpers."""

    def __init__(self, helpers: Helpers, autoescape: bool) -> None:
        self._sources: dict[str, str] = {}
        self._lock = threading.RLock()
        self.env = Environment(
            loader=FunctionLoader(self._sources.get),
            autoescape=autoescape,
            keep_trailing_newline=True,
        )
        self.env.globals.update(helpers)
        self.env.filters.update(helpers)

    def add(self, name: str, source: str) -> None:
        with self._lock:
            if name in self._sources:
                raise ValueError(f"Duplicate template:{name} {source}")
            self._sources[name] = source
            try:
                self.env.get_template(name)
            except Exception:
                del self._sources[name]
                raise

    def lookup(self, name: str) -> Template | None:
        with self._lock:
            if name not in self._sources:
                return None
            return self.env.get_template(name)


class _SetTemplate(BaseTemplate):
    """A template compiled into a shared set kept per template kind."""

    _suffixes: ClassVar[tuple[str, ...]] = ()
    _autoescape: ClassVar[bool] = True
    _shared: ClassVar[_TemplateSet | None] = None
    _shared_lock: ClassVar[threading.Lock] = threading.Lock()

    @classmethod
    def _template_set(cls) -> _TemplateSet:
        with cls._shared_lock:
            if cls._shared is None:
                cls._shared = _TemplateSet({}, cls._autoescape)
            return cls._shared

    def setup(self, helpers: Helpers) -> None:
        """Start a fresh shared set for this kind using the helpers."""
        cls = type(self)
        with cls._shared_lock:
            cls._shared = _TemplateSet(helpers, cls._autoescape)

    def can_parse_file(self, path: str) -> bool:
        """Return True if path carries one of this kind's suffixes."""
        return has_suffixes(path, self._suffixes)

    def parse(self) -> None:
        """Read the file and add it to the shared set."""
        super().parse()
        self._template_set().add(self._path, self._source)

    def parse_string(self, s: str) -> None:
        """Add the string template to the shared set."""
        super().parse_string(s)
        self._template_set().add(self._path, self._source)

    def finalize(self, templates: Mapping[str, BaseTemplate]) -> None:
        """Record the templates included by this one's source."""
        self._dependencies = [
            templates[name]
            for name in _TEMPLATE_INCLUDE.findall(self._source)
            if templates.get(name) is not None
        ]

    def render(self, context: Mapping[str, Any] | None = None) -> str:
        """Render the compiled template with context."""
        compiled = self._template_set().lookup(self._path)
        if compiled is None:
            raise LookupError(f"#error loading template for {self._path}")
        return compiled.render(dict(context or {}))


class HTMLTemplate(_SetTemplate):
    """An auto-escaping HTML or XML template."""

    _suffixes = (".html.got", ".xml.got")
    _autoescape = True
    _shared = None
    _shared_lock = threading.Lock()


class JSONTemplate(_SetTemplate):
    """An auto-escaping JSON template."""

    _suffixes = (".json.got",)
    _autoescape = True
    _shared = None
    _shared_lock = threading.Lock()


class TextTemplate(_SetTemplate):
    """A plain text or CSV template without escaping."""

    _suffixes = (".text.got", ".csv.got")
    _autoescape = False
    _shared = None
    _shared_lock = threading.Lock()
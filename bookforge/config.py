"""The book configuration: an in-memory form of ``book.toml``.

A :class:`Config` holds the typed ``[book]``, ``[build]`` and ``[rust]`` tables
plus every other table as plain data, which renderers and preprocessors read
through dotted keys such as ``output.html.playground``.
"""

from __future__ import annotations

import copy
import dataclasses
import enum
import json
import logging
import os
import tomllib
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path, PurePath
from typing import Any, Mapping

import tomli_w

from .sections import (
    BookConfig,
    BuildConfig,
    ConfigValueError,
    HtmlConfig,
    RustConfig,
)

__all__ = ["ConfigError", "Config", "parse_env", "is_legacy_format"]

log = logging.getLogger(__name__)

ENV_PREFIX = "MDBOOK_"

LEGACY_ITEMS = (
    "title",
    "authors",
    "source",
    "description",
    "output.html.destination",
)


class ConfigError(Exception):
    """The configuration could not be loaded, read or updated."""


def _read(table: Any, key: str) -> Any:
    node = table
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def _insert(table: dict, key: str, value: Any) -> None:
    *parents, last = key.split(".")
    node = table
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[last] = value


def _delete(table: Any, key: str) -> Any:
    *parents, last = key.split(".")
    node = table
    for part in parents:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    if not isinstance(node, dict):
        return None
    return node.pop(last, None)


def _to_toml_value(value: Any) -> Any:
    """Turn ``value`` into data TOML can hold, or raise :class:`ConfigError`."""
    if isinstance(value, (bool, int, float, str, datetime, date, time)):
        return value
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, enum.Enum):
        return _to_toml_value(value.value)
    if dataclasses.is_dataclass(value) and hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Mapping):
        table = {}
        for k, v in value.items():
            if isinstance(k, PurePath):
                k = str(k)
            if not isinstance(k, str):
                raise ConfigError(
                    "Unable to represent the item as a TOML value: keys must be strings"
                )
            table[k] = _to_toml_value(v)
        return table
    if isinstance(value, (list, tuple)):
        return [_to_toml_value(item) for item in value]
    raise ConfigError(
        f"Unable to represent the item as a TOML value: unsupported {type(value).__name__}"
    )


def _sorted_tables(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sorted_tables(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [_sorted_tables(item) for item in value]
    return value


def parse_env(key: str) -> str | None:
    """Config key named by an environment variable, or None if it is not one of ours."""
    if not key.startswith(ENV_PREFIX):
        return None
    return key[len(ENV_PREFIX):].lower().replace("__", ".").replace("_", "-")


def is_legacy_format(table: Any) -> bool:
    """Whether ``table`` keeps book metadata at the top level, the old layout."""
    return any(_read(table, item) is not None for item in LEGACY_ITEMS)


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


@dataclass
class Config:
    """The whole book configuration."""

    book: BookConfig = field(default_factory=BookConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    rust: RustConfig = field(default_factory=RustConfig)
    rest: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_str(cls, src: str) -> Config:
        """Load a configuration from TOML text."""
        try:
            return cls.from_dict(tomllib.loads(src))
        except (tomllib.TOMLDecodeError, ConfigError) as exc:
            raise ConfigError(f"Invalid configuration file: {exc}") from exc

    @classmethod
    def from_disk(cls, config_file: str | os.PathLike) -> Config:
        """Load the configuration file from disk."""
        try:
            with open(config_file, "rb") as fh:
                raw = fh.read()
        except OSError as exc:
            raise ConfigError(f"Unable to open the configuration file: {exc}") from exc
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ConfigError(f"Couldn't read the file: {exc}") from exc
        return cls.from_str(text)

    @classmethod
    def from_dict(cls, data: Any) -> Config:
        """Build a configuration from parsed TOML data, old layout included."""
        if is_legacy_format(data):
            log.warning("It looks like you are using the legacy book.toml format.")
            log.warning(
                "We'll parse it for now, but you should probably convert to the new format."
            )
            log.warning(
                "As a rule of thumb, move top level entries like `title`, `authors` and "
                "`description` under a `[book]` table, and move `destination` from "
                "`[output.html]` to `build-dir` under a `[build]` table."
            )
            return cls._from_legacy(data)

        if not isinstance(data, Mapping):
            raise ConfigError("A config file should always be a toml table")

        table = copy.deepcopy(dict(data))
        try:
            book = BookConfig.from_dict(table.pop("book", None))
            build = BuildConfig.from_dict(table.pop("build", None))
            rust = RustConfig.from_dict(table.pop("rust", None))
        except ConfigValueError as exc:
            raise ConfigError(str(exc)) from exc
        return cls(book=book, build=build, rust=rust, rest=table)

    @classmethod
    def _from_legacy(cls, data: Mapping[str, Any]) -> Config:
        table = copy.deepcopy(dict(data))
        cfg = cls()

        title = table.pop("title", None)
        if _is_str(title):
            cfg.book.title = title
        authors = table.pop("authors", None)
        if _is_str_list(authors):
            cfg.book.authors = list(authors)
        source = table.pop("source", None)
        if _is_str(source):
            cfg.book.src = Path(source)
        description = table.pop("description", None)
        if _is_str(description):
            cfg.book.description = description

        destination = _delete(table, "output.html.destination")
        if _is_str(destination):
            cfg.build.build_dir = Path(destination)

        cfg.rest = table
        return cfg

    def update_from_env(self, environ: Mapping[str, str] | None = None) -> None:
        """Override settings from ``MDBOOK_*`` environment variables.

        The prefix is dropped, the rest lower-cased, ``__`` separates nested
        keys and ``_`` becomes ``-``. Values are parsed as JSON, falling back
        to a plain string.
        """
        log.debug("Updating the config from environment variables")
        if environ is None:
            environ = os.environ

        for name, raw in list(environ.items()):
            key = parse_env(name)
            if key is None:
                continue
            log.debug("%s => %s", key, raw)
            try:
                parsed = json.loads(raw)
            except ValueError:
                parsed = raw

            if key in ("book", "build") and isinstance(parsed, dict):
                for k, v in parsed.items():
                    self.set(f"{key}.{k}", v)
                return

            self.set(key, parsed)

    def get(self, key: str) -> Any:
        """The item at a dotted key outside the typed tables, or None."""
        return _read(self.rest, key)

    def get_deserialized(self, name: str) -> Any:
        """A copy of the item at ``name``; raises :class:`ConfigError` if absent."""
        value = self.get(name)
        if value is None:
            raise ConfigError(f"Key not found, {name!r}")
        return copy.deepcopy(value)

    def set(self, index: str, value: Any) -> None:
        """Set a dotted key, clobbering whatever lies in the way.

        Raises :class:`ConfigError` if ``value`` cannot be held in TOML.
        """
        value = _to_toml_value(value)
        if index.startswith("book."):
            self.book = _updated(self.book, index[len("book."):], value)
        elif index.startswith("build."):
            self.build = _updated(self.build, index[len("build."):], value)
        else:
            _insert(self.rest, index, value)

    def html_config(self) -> HtmlConfig | None:
        """The ``[output.html]`` table as :class:`HtmlConfig`, or None if absent or invalid."""
        value = self.get("output.html")
        if value is None:
            return None
        try:
            if not isinstance(value, Mapping):
                raise ConfigValueError("expected a table")
            return HtmlConfig.from_dict(value)
        except ConfigValueError as exc:
            log.error("Parsing configuration [output.html]: %s", exc)
            return None

    def get_renderer(self, index: str) -> dict[str, Any] | None:
        """The table of a renderer, ``output.<index>``."""
        value = self.get(f"output.{index}")
        return value if isinstance(value, dict) else None

    def get_preprocessor(self, index: str) -> dict[str, Any] | None:
        """The table of a preprocessor, ``preprocessor.<index>``."""
        value = self.get(f"preprocessor.{index}")
        return value if isinstance(value, dict) else None

    def to_dict(self) -> dict[str, Any]:
        """The whole configuration as plain data; default build and rust tables are left out."""
        table = copy.deepcopy(self.rest)
        table["book"] = self.book.to_dict()
        if self.build != BuildConfig():
            table["build"] = self.build.to_dict()
        if self.rust != RustConfig():
            table["rust"] = self.rust.to_dict()
        return table

    def to_toml(self) -> str:
        """The configuration as ``book.toml`` text, keys sorted."""
        return tomli_w.dumps(_sorted_tables(self.to_dict()))


def _updated(section: Any, key: str, value: Any) -> Any:
    """``section`` with ``key`` replaced, or unchanged if the result is invalid."""
    raw = section.to_dict()
    _insert(raw, key, value)
    try:
        return type(section).from_dict(raw)
    except ConfigValueError:
        return section
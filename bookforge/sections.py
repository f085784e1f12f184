"""Typed tables of the book configuration: ``[book]``, ``[build]``, ``[rust]``
and ``[output.html]`` with its nested tables."""

from __future__ import annotations

import enum
import dataclasses
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Callable, Mapping

__all__ = [
    "ConfigValueError",
    "RustEdition",
    "BookConfig",
    "BuildConfig",
    "RustConfig",
    "Print",
    "Fold",
    "Playground",
    "Search",
    "HtmlConfig",
]

U8_MAX = 0xFF
U32_MAX = 0xFFFF_FFFF

Parser = Callable[[str, Any], Any]


class ConfigValueError(ValueError):
    """A configuration value has the wrong type or an invalid value."""


def _describe(value: Any) -> str:
    if isinstance(value, bool):
        return f"boolean `{str(value).lower()}`"
    if isinstance(value, int):
        return f"integer `{value}`"
    if isinstance(value, float):
        return f"float `{value}`"
    if isinstance(value, str):
        return f"string {value!r}"
    if isinstance(value, Mapping):
        return "a table"
    if isinstance(value, (list, tuple)):
        return "an array"
    return type(value).__name__


def _string(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigValueError(f"{key}: invalid type: {_describe(value)}, expected a string")
    return value


def _boolean(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigValueError(f"{key}: invalid type: {_describe(value)}, expected a boolean")
    return value


def _integer(maximum: int) -> Parser:
    def parse(key: str, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigValueError(
                f"{key}: invalid type: {_describe(value)}, expected an integer"
            )
        if not 0 <= value <= maximum:
            raise ConfigValueError(
                f"{key}: invalid value: {value}, expected an integer in 0..={maximum}"
            )
        return value

    return parse


def _path(key: str, value: Any) -> Path:
    return Path(_string(key, value))


def _optional(parse: Parser) -> Parser:
    def parse_optional(key: str, value: Any) -> Any:
        return None if value is None else parse(key, value)

    return parse_optional


def _list(parse: Parser) -> Parser:
    def parse_list(key: str, value: Any) -> list:
        if not isinstance(value, (list, tuple)):
            raise ConfigValueError(f"{key}: invalid type: {_describe(value)}, expected a sequence")
        return [parse(f"{key}[{i}]", item) for i, item in enumerate(value)]

    return parse_list


def _string_map(key: str, value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise ConfigValueError(f"{key}: invalid type: {_describe(value)}, expected a map")
    return {_string(key, k): _string(f"{key}.{k}", v) for k, v in value.items()}


def _table(cls: type) -> Parser:
    def parse_table(key: str, value: Any) -> Any:
        if not isinstance(value, Mapping):
            raise ConfigValueError(f"{key}: invalid type: {_describe(value)}, expected a table")
        return cls.from_dict(value)

    return parse_table


def _plain(value: Any) -> Any:
    """Turn a field value into plain TOML-compatible data."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return value.to_dict()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    return value


def _field(parse: Parser, default: Any = dataclasses.MISSING, *, factory: Any = dataclasses.MISSING,
           aliases: tuple[str, ...] = ()) -> Any:
    metadata = {"parse": parse, "aliases": aliases}
    if factory is not dataclasses.MISSING:
        return dataclasses.field(default_factory=factory, metadata=metadata)
    return dataclasses.field(default=default, metadata=metadata)


def _toml_key(name: str) -> str:
    return name.replace("_", "-")


def _table_from_dict(cls: type, data: Mapping[str, Any] | None) -> Any:
    """Build ``cls`` from a table; missing keys take defaults, unknown keys are ignored."""
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise ConfigValueError(f"invalid type: {_describe(data)}, expected a table")
    values = {}
    for f in fields(cls):
        names = (_toml_key(f.name), *f.metadata["aliases"])
        present = [name for name in names if name in data]
        if len(present) > 1:
            raise ConfigValueError(f"duplicate field `{_toml_key(f.name)}`")
        if present:
            name = present[0]
            values[f.name] = f.metadata["parse"](name, data[name])
    return cls(**values)


def _table_to_dict(obj: Any) -> dict[str, Any]:
    """Plain table with kebab-case keys; unset optional values are left out."""
    table = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is not None:
            table[_toml_key(f.name)] = _plain(value)
    return table


class RustEdition(enum.Enum):
    """Rust edition to use for code samples."""

    E2021 = "2021"
    E2018 = "2018"
    E2015 = "2015"


def _edition(key: str, value: Any) -> RustEdition:
    try:
        return RustEdition(value)
    except ValueError:
        variants = ", ".join(f"`{e.value}`" for e in RustEdition)
        raise ConfigValueError(
            f"{key}: unknown variant {_describe(value)}, expected one of {variants}"
        ) from None


@dataclass
class BookConfig:
    """Metadata about the book, needed to load it from disk."""

    title: str | None = _field(_optional(_string), None)
    authors: list[str] = _field(_list(_string), factory=list)
    description: str | None = _field(_optional(_string), None)
    src: Path = _field(_path, Path("src"))
    multilingual: bool = _field(_boolean, False)
    language: str | None = _field(_optional(_string), "en")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> BookConfig:
        """Build from a ``[book]`` table."""
        return _table_from_dict(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain ``[book]`` table."""
        return _table_to_dict(self)


@dataclass
class BuildConfig:
    """Settings of the build procedure."""

    build_dir: Path = _field(_path, Path("book"))
    create_missing: bool = _field(_boolean, True)
    use_default_preprocessors: bool = _field(_boolean, True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> BuildConfig:
        """Build from a ``[build]`` table."""
        return _table_from_dict(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain ``[build]`` table."""
        return _table_to_dict(self)


@dataclass
class RustConfig:
    """Settings for Rust code samples."""

    edition: RustEdition | None = _field(_optional(_edition), None)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> RustConfig:
        """Build from a ``[rust]`` table."""
        return _table_from_dict(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain ``[rust]`` table."""
        return _table_to_dict(self)


@dataclass
class Print:
    """How the print icon, page and stylesheet are rendered."""

    enable: bool = _field(_boolean, True)
    page_break: bool = _field(_boolean, True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Print:
        """Build from a ``print`` table."""
        return _table_from_dict(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain ``print`` table."""
        return _table_to_dict(self)


@dataclass
class Fold:
    """How chapters in the sidebar are folded."""

    enable: bool = _field(_boolean, False)
    level: int = _field(_integer(U8_MAX), 0)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Fold:
        """Build from a ``fold`` table."""
        return _table_from_dict(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain ``fold`` table."""
        return _table_to_dict(self)


@dataclass
class Playground:
    """How the HTML renderer handles playground snippets."""

    editable: bool = _field(_boolean, False)
    copyable: bool = _field(_boolean, True)
    copy_js: bool = _field(_boolean, True)
    line_numbers: bool = _field(_boolean, False)
    runnable: bool = _field(_boolean, True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Playground:
        """Build from a ``playground`` table."""
        return _table_from_dict(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain ``playground`` table."""
        return _table_to_dict(self)


@dataclass
class Search:
    """Settings of the search feature of the HTML renderer."""

    enable: bool = _field(_boolean, True)
    limit_results: int = _field(_integer(U32_MAX), 30)
    teaser_word_count: int = _field(_integer(U32_MAX), 30)
    use_boolean_and: bool = _field(_boolean, False)
    boost_title: int = _field(_integer(U8_MAX), 2)
    boost_hierarchy: int = _field(_integer(U8_MAX), 1)
    boost_paragraph: int = _field(_integer(U8_MAX), 1)
    expand: bool = _field(_boolean, True)
    heading_split_level: int = _field(_integer(U8_MAX), 3)
    copy_js: bool = _field(_boolean, True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Search:
        """Build from a ``search`` table."""
        return _table_from_dict(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain ``search`` table."""
        return _table_to_dict(self)


@dataclass
class HtmlConfig:
    """Settings of the HTML renderer."""

    theme: Path | None = _field(_optional(_path), None)
    default_theme: str | None = _field(_optional(_string), None)
    preferred_dark_theme: str | None = _field(_optional(_string), None)
    curly_quotes: bool = _field(_boolean, False)
    mathjax_support: bool = _field(_boolean, False)
    copy_fonts: bool = _field(_boolean, True)
    google_analytics: str | None = _field(_optional(_string), None)
    additional_css: list[Path] = _field(_list(_path), factory=list)
    additional_js: list[Path] = _field(_list(_path), factory=list)
    fold: Fold = _field(_table(Fold), factory=Fold)
    playground: Playground = _field(_table(Playground), factory=Playground, aliases=("playpen",))
    print: Print = _field(_table(Print), factory=Print)
    no_section_label: bool = _field(_boolean, False)
    search: Search | None = _field(_optional(_table(Search)), None)
    git_repository_url: str | None = _field(_optional(_string), None)
    git_repository_icon: str | None = _field(_optional(_string), None)
    input_404: str | None = _field(_optional(_string), None)
    site_url: str | None = _field(_optional(_string), None)
    cname: str | None = _field(_optional(_string), None)
    edit_url_template: str | None = _field(_optional(_string), None)
    live_reload_endpoint: str | None = _field(_optional(_string), None)
    redirect: dict[str, str] = _field(_string_map, factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> HtmlConfig:
        """Build from an ``[output.html]`` table."""
        return _table_from_dict(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain ``[output.html]`` table."""
        return _table_to_dict(self)

    def theme_dir(self, root: str | Path) -> Path:
        """The theme directory under ``root``; ``theme`` when none is set."""
        return Path(root) / (self.theme if self.theme is not None else "theme")
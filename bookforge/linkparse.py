"""Finding and parsing ``{{#...}}`` helper links in chapter text.

Supported helpers are ``include``, ``rustdoc_include``, ``playground``
(with the older name ``playpen``) and ``title``. A link written with a
leading backslash, ``\\{{#...}}``, is an escaped link and is kept as text.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Union

__all__ = [
    "LinkKind",
    "LineRange",
    "Link",
    "RangeOrAnchor",
    "parse_range_or_anchor",
    "parse_include_path",
    "parse_rustdoc_include_path",
    "find_links",
]

log = logging.getLogger(__name__)

ESCAPE_CHAR = "\\"
_USIZE_MAX = 2**64 - 1

_LINK_RE = re.compile(
    r"""
    \\\{\{\#.*\}\}        # escaped link
    |
    \{\{\s*               # opening braces and whitespace
    \#([a-zA-Z0-9_]+)     # link type
    \s+                   # separating whitespace
    ([^}]+)               # target path and space separated properties
    \}\}                  # closing braces
    """,
    re.VERBOSE,
)

_USIZE_RE = re.compile(r"\+?[0-9]+")


class LinkKind(enum.Enum):
    """The kind of helper a link stands for."""

    ESCAPED = "escaped"
    INCLUDE = "include"
    PLAYGROUND = "playground"
    RUSTDOC_INCLUDE = "rustdoc_include"
    TITLE = "title"


@dataclass(frozen=True)
class LineRange:
    """A half-open range of zero-based line numbers; ``None`` leaves a side open."""

    start: int | None = None
    end: int | None = None


RangeOrAnchor = Union[LineRange, str]


@dataclass(frozen=True)
class Link:
    """A helper link found in a piece of text.

    ``path`` and ``target`` (a :class:`LineRange` or an anchor name) are set
    for includes, ``path`` and ``properties`` for playgrounds, ``title`` for
    title links.
    """

    start_index: int
    end_index: int
    kind: LinkKind
    link_text: str
    path: Path | None = None
    target: RangeOrAnchor | None = None
    properties: tuple[str, ...] = ()
    title: str | None = None

    def relative_path(self, base: str | Path) -> Path | None:
        """Directory of the linked file under ``base``; None for links without a file."""
        if self.kind in (LinkKind.ESCAPED, LinkKind.TITLE) or self.path is None:
            return None
        return (Path(base) / self.path).parent


def _parse_usize(text: str) -> int | None:
    if not _USIZE_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _USIZE_MAX else None


def parse_range_or_anchor(parts: str | None) -> RangeOrAnchor:
    """Parse the ``start:end`` or ``anchor`` part after an include path.

    Line numbers are one-based in the text and zero-based in the result. A
    single number selects that one line; an end that is not a number leaves
    the range open at the end.
    """
    pieces = (parts or "").split(":", 2)
    first = pieces[0]

    parsed_start = _parse_usize(first)
    if parsed_start is not None:
        start: int | None = max(parsed_start - 1, 0)
    elif first == "":
        start = None
    else:
        return first

    end_text = pieces[1] if len(pieces) > 1 else None
    end = None if end_text is None else _parse_usize(end_text)

    if start is not None:
        if end_text is None:
            return LineRange(start, start + 1)
        return LineRange(start, end)
    if end is not None:
        return LineRange(None, end)
    return LineRange()


def _split_path(path: str) -> tuple[Path, RangeOrAnchor]:
    file_part, sep, rest = path.partition(":")
    return Path(file_part), parse_range_or_anchor(rest if sep else None)


def parse_include_path(path: str) -> tuple[Path, RangeOrAnchor]:
    """Split an ``include`` argument into the file path and its range or anchor."""
    return _split_path(path)


def parse_rustdoc_include_path(path: str) -> tuple[Path, RangeOrAnchor]:
    """Split a ``rustdoc_include`` argument into the file path and its range or anchor."""
    return _split_path(path)


def _from_match(match: re.Match[str]) -> Link | None:
    typ, rest = match.group(1), match.group(2)
    base = {
        "start_index": match.start(),
        "end_index": match.end(),
        "link_text": match.group(0),
    }

    if typ is not None and rest is not None:
        if typ == "title":
            return Link(kind=LinkKind.TITLE, title=rest, **base)
        words = rest.split()
        if not words:
            return None
        file_arg, props = words[0], tuple(words[1:])
        if typ == "include":
            path, target = parse_include_path(file_arg)
            return Link(kind=LinkKind.INCLUDE, path=path, target=target, **base)
        if typ == "rustdoc_include":
            path, target = parse_rustdoc_include_path(file_arg)
            return Link(kind=LinkKind.RUSTDOC_INCLUDE, path=path, target=target, **base)
        if typ in ("playground", "playpen"):
            if typ == "playpen":
                log.warning(
                    "the {{#playpen}} expression has been renamed to {{#playground}}, "
                    "please update your book to use the new name"
                )
            return Link(
                kind=LinkKind.PLAYGROUND, path=Path(file_arg), properties=props, **base
            )
        return None

    if typ is None and rest is None and match.group(0).startswith(ESCAPE_CHAR):
        return Link(kind=LinkKind.ESCAPED, **base)
    return None


def find_links(contents: str) -> Iterator[Link]:
    """Yield every recognised helper link in ``contents``, in order."""
    for match in _LINK_RE.finditer(contents):
        link = _from_match(match)
        if link is not None:
            yield link
"""Expansion of ``{{#...}}`` helpers in chapter text.

Includes pull in other files, whole or in part. Rustdoc includes keep the
rest of the file behind ``# ``. Playgrounds wrap a file in a Rust code
block, and title links override the chapter title.
"""

from __future__ import annotations

import copy
import logging
import os
import re
from pathlib import Path
from typing import Any

from .linkparse import Link, LineRange, LinkKind, find_links
from .preprocess import PreprocessError, Preprocessor, PreprocessorContext, _chapters

__all__ = [
    "MAX_LINK_NESTED_DEPTH",
    "LinkPreprocessor",
    "render_link",
    "replace_all",
    "take_lines",
    "take_anchored_lines",
]

log = logging.getLogger(__name__)

MAX_LINK_NESTED_DEPTH = 10

_ANCHOR_START = re.compile(r"ANCHOR:\s*(?P<anchor_name>[\w_-]+)")
_ANCHOR_END = re.compile(r"ANCHOR_END:\s*(?P<anchor_name>[\w_-]+)")


def _lines(text: str) -> list[str]:
    """Split on ``\\n`` or ``\\r\\n``; a trailing line ending adds no empty line."""
    parts = text.split("\n")
    last = parts.pop()
    lines = [part.removesuffix("\r") for part in parts]
    if last:
        lines.append(last)
    return lines


def _bounds(line_range: LineRange) -> tuple[int, int | None]:
    return (line_range.start or 0), line_range.end


def take_lines(text: str, line_range: LineRange) -> str:
    """The lines of ``text`` selected by ``line_range``, joined by newlines."""
    start, end = _bounds(line_range)
    selected = _lines(text)[start:]
    if end is not None:
        selected = selected[: max(end - start, 0)]
    return "\n".join(selected)


def _anchor_named(pattern: re.Pattern[str], line: str) -> str | None:
    match = pattern.search(line)
    return match["anchor_name"] if match else None


def take_anchored_lines(text: str, anchor: str) -> str:
    """The lines between ``ANCHOR: anchor`` and ``ANCHOR_END: anchor``.

    Other anchor markers inside the section are left out.
    """
    retained: list[str] = []
    found = False
    for line in _lines(text):
        if found:
            end_name = _anchor_named(_ANCHOR_END, line)
            if end_name is not None:
                if end_name == anchor:
                    break
            elif not _ANCHOR_START.search(line):
                retained.append(line)
        elif _anchor_named(_ANCHOR_START, line) == anchor:
            found = True
    return "\n".join(retained)


def _take_rustdoc_include_lines(text: str, line_range: LineRange) -> str:
    start, end = _bounds(line_range)
    output = []
    for index, line in enumerate(_lines(text)):
        inside = index >= start and (end is None or index < end)
        output.append(line if inside else f"# {line}")
    return "\n".join(output)


def _take_rustdoc_include_anchored_lines(text: str, anchor: str) -> str:
    output = []
    within = False
    for line in _lines(text):
        if within:
            end_name = _anchor_named(_ANCHOR_END, line)
            if end_name is not None:
                if end_name == anchor:
                    within = False
            elif not _ANCHOR_START.search(line):
                output.append(line)
        else:
            start_name = _anchor_named(_ANCHOR_START, line)
            if start_name is not None:
                if start_name == anchor:
                    within = True
            elif not _ANCHOR_END.search(line):
                output.append(f"# {line}")
    return "\n".join(output)


def _read_linked_file(link: Link, target: Path) -> str:
    try:
        with open(target, encoding="utf-8", newline="") as fh:
            return fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise PreprocessError(
            f"Could not read file for link {link.link_text} ({target})"
        ) from exc


def render_link(link: Link, base: str | os.PathLike, chapter_title: str) -> tuple[str, str]:
    """Render one link relative to ``base``.

    Returns the replacement text and the chapter title, which a title link
    changes. Raises :class:`PreprocessError` when a linked file cannot be read.
    """
    base = Path(base)
    if link.kind is LinkKind.ESCAPED:
        return link.link_text[1:], chapter_title
    if link.kind is LinkKind.TITLE:
        return "", link.title or ""

    target = base / link.path
    contents = _read_linked_file(link, target)

    if link.kind is LinkKind.INCLUDE:
        if isinstance(link.target, str):
            return take_anchored_lines(contents, link.target), chapter_title
        return take_lines(contents, link.target or LineRange()), chapter_title

    if link.kind is LinkKind.RUSTDOC_INCLUDE:
        if isinstance(link.target, str):
            return _take_rustdoc_include_anchored_lines(contents, link.target), chapter_title
        return _take_rustdoc_include_lines(contents, link.target or LineRange()), chapter_title

    ftype = "rust," if link.properties else "rust"
    if not contents.endswith("\n"):
        contents += "\n"
    return f"```{ftype}{','.join(link.properties)}\n{contents}```\n", chapter_title


def replace_all(
    s: str,
    path: str | os.PathLike,
    source: str | os.PathLike,
    depth: int,
    chapter_title: str,
) -> tuple[str, str]:
    """Expand every helper in ``s``, following included files up to a fixed depth.

    Links that fail to render are kept as written. Returns the expanded text
    and the possibly overridden chapter title.
    """
    path = Path(path)
    previous_end = 0
    replaced: list[str] = []

    for link in find_links(s):
        replaced.append(s[previous_end:link.start_index])
        try:
            new_content, chapter_title = render_link(link, path, chapter_title)
        except PreprocessError as exc:
            log.error('Error updating "%s", %s', link.link_text, exc)
            cause = exc.__cause__
            while cause is not None:
                log.warning("Caused By: %s", cause)
                cause = cause.__cause__
            previous_end = link.start_index
            continue

        if depth < MAX_LINK_NESTED_DEPTH:
            rel_path = link.relative_path(path)
            if rel_path is not None:
                nested, chapter_title = replace_all(
                    new_content, rel_path, source, depth + 1, chapter_title
                )
                replaced.append(nested)
            else:
                replaced.append(new_content)
        else:
            log.error("Stack depth exceeded in %s. Check for cyclic includes", source)
        previous_end = link.end_index

    replaced.append(s[previous_end:])
    return "".join(replaced), chapter_title


class LinkPreprocessor(Preprocessor):
    """Expands ``include``, ``rustdoc_include``, ``playground`` and ``title`` helpers."""

    NAME = "links"
    name = NAME

    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        book = copy.deepcopy(book)
        src_dir = ctx.root / ctx.config.book.src
        for chapter in _chapters(book):
            chapter_path = chapter.get("path")
            if not chapter_path:
                continue
            chapter_path = Path(chapter_path)
            base = src_dir / chapter_path.parent
            name = chapter.get("name", "")
            content, title = replace_all(
                chapter.get("content", ""), base, chapter_path, 0, name
            )
            chapter["content"] = content
            if title != name:
                ctx.chapter_titles[chapter_path] = title
        return book
"""Book preprocessing: the context handed to preprocessors, the preprocessor
interface, external command preprocessors and the README-to-index rename.

A book is handled as plain JSON-compatible data: a mapping whose
``sections`` list holds items, where a chapter is ``{"Chapter": {...}}`` with
an optional ``path`` and a list of ``sub_items``.
"""

from __future__ import annotations

import abc
import copy
import json
import logging
import re
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Iterator, Mapping

from .config import Config, ConfigError

__all__ = [
    "MDBOOK_VERSION",
    "PreprocessError",
    "PreprocessorContext",
    "Preprocessor",
    "CmdPreprocessor",
    "IndexPreprocessor",
    "is_readme_file",
]

log = logging.getLogger(__name__)

MDBOOK_VERSION = "0.4.21"

_README = re.compile(r"readme", re.IGNORECASE)


class PreprocessError(Exception):
    """A preprocessor could not be started, failed, or produced bad output."""


@dataclass
class PreprocessorContext:
    """Extra information given to a preprocessor along with the book."""

    root: Path
    config: Config
    renderer: str
    mdbook_version: str = MDBOOK_VERSION
    chapter_titles: dict[Path, str] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def to_dict(self) -> dict[str, Any]:
        """Plain data as sent to external preprocessors; chapter titles are left out."""
        return {
            "root": str(self.root),
            "config": self.config.to_dict(),
            "renderer": self.renderer,
            "mdbook_version": self.mdbook_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PreprocessorContext:
        """Rebuild a context from the data :meth:`to_dict` produces."""
        if not isinstance(data, Mapping):
            raise PreprocessError("The preprocessor context should be a table")
        missing = [k for k in ("root", "config", "renderer", "mdbook_version") if k not in data]
        if missing:
            raise PreprocessError(f"missing field `{missing[0]}`")
        try:
            config = Config.from_dict(data["config"])
        except ConfigError as exc:
            raise PreprocessError(str(exc)) from exc
        return cls(
            root=Path(data["root"]),
            config=config,
            renderer=data["renderer"],
            mdbook_version=data["mdbook_version"],
        )


class Preprocessor(abc.ABC):
    """An operation run on a loaded book before it is rendered."""

    name: str

    @abc.abstractmethod
    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        """Process ``book`` and return the updated book."""

    def supports_renderer(self, renderer: str) -> bool:
        """Whether this preprocessor should run for ``renderer``; True by default."""
        return True


def _walk(item: Any) -> Iterator[dict[str, Any]]:
    if isinstance(item, dict) and isinstance(item.get("Chapter"), dict):
        chapter = item["Chapter"]
        yield chapter
        for sub in chapter.get("sub_items") or []:
            yield from _walk(sub)


def _chapters(book: Any) -> Iterator[dict[str, Any]]:
    """Every chapter of ``book``, nested ones included."""
    if not isinstance(book, dict):
        return
    for item in book.get("sections") or []:
        yield from _walk(item)


@dataclass
class CmdPreprocessor(Preprocessor):
    """A preprocessor that runs an external command.

    ``run`` sends ``[context, book]`` as JSON on the command's stdin and reads
    the processed book as JSON from its stdout. ``supports_renderer`` runs
    ``<cmd> supports <renderer>`` and treats exit status 0 as support.
    """

    name: str
    cmd: str

    @staticmethod
    def parse_input(reader: IO) -> tuple[PreprocessorContext, Any]:
        """Parse the ``[context, book]`` pair written to a preprocessor's stdin."""
        try:
            data = json.load(reader)
            if not isinstance(data, list) or len(data) != 2:
                raise PreprocessError("expected a [context, book] pair")
            ctx = PreprocessorContext.from_dict(data[0])
        except (ValueError, PreprocessError) as exc:
            raise PreprocessError(f"Unable to parse the input: {exc}") from exc
        return ctx, data[1]

    def write_input(self, writer: IO[str], book: Any, ctx: PreprocessorContext) -> None:
        """Write ``[context, book]`` as JSON to ``writer``."""
        json.dump([ctx.to_dict(), book], writer)

    def command(self) -> list[str]:
        """The command split into program and arguments, shell style."""
        try:
            words = shlex.split(self.cmd)
        except ValueError as exc:
            raise PreprocessError(f"Invalid command string: {exc}") from exc
        if not words:
            raise PreprocessError("Command string was empty")
        return words

    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        args = self.command()
        try:
            child = subprocess.Popen(args, stdin=subprocess.PIPE, stdout=subprocess.PIPE)
        except OSError as exc:
            raise PreprocessError(
                f'Unable to start the "{self.name}" preprocessor. Is it installed?'
            ) from exc

        payload = json.dumps([ctx.to_dict(), book]).encode("utf-8")
        try:
            stdout, _ = child.communicate(payload)
        except OSError as exc:
            log.warning("Error writing the RenderContext to the backend, %s", exc)
            stdout = child.stdout.read() if child.stdout else b""
            child.wait()

        log.debug("%s exited with status %s", self.cmd, child.returncode)
        if child.returncode != 0:
            raise PreprocessError(
                f'The "{self.name}" preprocessor exited unsuccessfully '
                f"with {child.returncode} status"
            )
        try:
            return json.loads(stdout)
        except ValueError as exc:
            raise PreprocessError(
                f'Unable to parse the preprocessed book from "{self.name}" processor'
            ) from exc

    def supports_renderer(self, renderer: str) -> bool:
        log.debug('Checking if the "%s" preprocessor supports "%s"', self.name, renderer)
        try:
            args = self.command()
        except PreprocessError as exc:
            log.warning(
                'Unable to create the command for the "%s" preprocessor, %s', self.name, exc
            )
            return False
        try:
            result = subprocess.run([*args, "supports", renderer], stdin=subprocess.DEVNULL)
        except FileNotFoundError:
            log.warning('The command wasn\'t found, is the "%s" preprocessor installed?', self.name)
            log.warning("\tCommand: %s", self.cmd)
            return False
        except OSError:
            return False
        return result.returncode == 0


def is_readme_file(path: str | Path) -> bool:
    """Whether the file stem of ``path`` is ``readme``, in any letter case."""
    return _README.fullmatch(Path(path).stem) is not None


def _warn_readme_name_conflict(readme_path: Path, index_path: Path) -> None:
    file_name = readme_path.name
    log.warning(
        'It seems that there are both "%s" and index.md under "%s".',
        file_name,
        index_path.parent,
    )
    log.warning('mdbook converts "%s" into index.html by default. It may cause', file_name)
    log.warning("unexpected behavior if putting both files under the same directory.")
    log.warning("To solve the warning, try to rearrange the book structure or disable")
    log.warning('"index" preprocessor to stop the conversion.')


class IndexPreprocessor(Preprocessor):
    """Renames ``README.md`` chapters to ``index.md``."""

    NAME = "index"
    name = NAME

    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        book = copy.deepcopy(book)
        source_dir = ctx.root / ctx.config.book.src
        for chapter in _chapters(book):
            path = chapter.get("path")
            if not path or not is_readme_file(path):
                continue
            renamed = Path(path).with_name("index.md")
            index_md = source_dir / renamed
            if index_md.exists():
                _warn_readme_name_conflict(Path(path), index_md)
            chapter["path"] = str(renamed)
        return book
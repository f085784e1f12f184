# bookforge

Configuration handling and chapter preprocessing for books written as a
collection of markdown files.

## Installation

```
pip install bookforge
```

## Configuration

A book is described by a `book.toml` file. `bookforge.config.Config` loads
it, gives typed access to the `[book]`, `[build]` and `[rust]` tables, and
keeps every other table as plain data for renderers and preprocessors. Keys
are dotted.

```python
from bookforge.config import Config

cfg = Config.from_str('''
[book]
title = "My Book"
authors = ["Jane Doe"]

[build]
build-dir = "out"

[other-table.foo]
bar = 123
''')

assert cfg.book.title == "My Book"
assert cfg.get("other-table.foo.bar") == 123

cfg.set("output.html.theme", "./themes")
html = cfg.html_config()
print(html.theme_dir("/path/to/book"))

print(cfg.to_toml())
```

* `Config.from_disk("book.toml")` loads a file; `Config.from_dict` takes
  already parsed data.
* `Config.get_deserialized(key)` returns a copy of a value and raises
  `ConfigError` when the key is absent.
* `Config.get_renderer(name)` and `Config.get_preprocessor(name)` return the
  `output.<name>` and `preprocessor.<name>` tables.
* `Config.to_dict()` and `Config.to_toml()` write the configuration back out;
  `[build]` and `[rust]` are left out while they hold only defaults.
* Badly typed values in `[book]`, `[build]` or `[rust]` raise `ConfigError`
  whose message starts with `Invalid configuration file`.

The typed tables live in `bookforge.sections`: `BookConfig`, `BuildConfig`,
`RustConfig` (with the `RustEdition` enum), and `HtmlConfig` with its
`Fold`, `Playground`, `Print` and `Search` tables. Each has `from_dict` and
`to_dict`, using kebab-case keys; wrong types raise `ConfigValueError`.

Top-level `title`, `authors`, `source` and `description` keys, and
`output.html.destination`, from the older flat layout are still read, and a
warning is logged when they are (`is_legacy_format` tells whether a table
uses that layout).

### Overrides from the environment

`Config.update_from_env()` reads variables that start with `MDBOOK_`
(`os.environ` by default, or any mapping passed in). After the prefix is
removed the rest is lower-cased, `__` separates nested keys and `_` becomes
`-`; `parse_env` does this mapping. For example, `MDBOOK_BOOK__TITLE` sets
`book.title` and `MDBOOK_FOO_BAR__BAZ` sets `foo-bar.baz`. A value is parsed
as JSON first and is used as a plain string when that fails.

```python
cfg.update_from_env({"MDBOOK_BOOK__TITLE": "Another Title"})
```

## Preprocessors

A preprocessor gets a `PreprocessorContext` (book root, configuration,
renderer name) and the book, and returns the book with its changes. A book
is plain JSON-compatible data: a mapping whose `sections` list holds items,
where a chapter is `{"Chapter": {...}}` with `name`, `content`, an optional
`path` and a list of `sub_items`.

* `bookforge.preprocess.IndexPreprocessor` renames chapters whose file stem
  is `README` (in any case) to `index.md`, warning when an `index.md` already
  exists beside it. `is_readme_file` performs the check.
* `bookforge.links.LinkPreprocessor` expands helpers inside chapters:
  * `{{#include file.rs}}`, `{{#include file.rs:10:20}}`,
    `{{#include file.rs:anchor}}` insert a whole file, a line range or the
    lines between `ANCHOR: name` and `ANCHOR_END: name`;
  * `{{#rustdoc_include file.rs:2:5}}` includes the selected lines and keeps
    the rest of the file behind `# `;
  * `{{#playground file.rs editable}}` inserts a fenced `rust` code block;
  * `{{#title My Title}}` replaces the chapter's title, recorded in the
    context's `chapter_titles`;
  * `\{{#include file.rs}}` is left as literal text without the backslash.

  Includes nest up to ten levels deep, so cyclic includes end rather than
  running forever. A link whose file cannot be read is left in the text as
  written and an error is logged. The functions `replace_all`, `render_link`,
  `take_lines` and `take_anchored_lines` can be used on their own.
* `bookforge.preprocess.CmdPreprocessor(name, cmd)` hands the work to an
  external program. The context and the book go to its standard input as a
  JSON array `[context, book]`, and the program prints the processed book as
  JSON on standard output; a non-zero exit status raises `PreprocessError`.
  `supports_renderer(renderer)` runs `<command> supports <renderer>`; exit
  status 0 means it does.

An external preprocessor written in Python can read its input with
`CmdPreprocessor.parse_input`:

```python
import json
import sys

from bookforge.preprocess import CmdPreprocessor

ctx, book = CmdPreprocessor.parse_input(sys.stdin)
json.dump(book, sys.stdout)
```

The link syntax can be parsed without reading any files:

```python
from bookforge.linkparse import find_links

for link in find_links("See {{#include code.rs:3:7}} for details."):
    print(link.start_index, link.end_index, link.kind, link.path, link.target)
```

`link.target` is a `LineRange` (zero-based, half-open, `None` for an open
side) or an anchor name.

## What this package does not do

It does not load a book's chapters from disk, parse `SUMMARY.md`, render
HTML or any other output, or offer a command-line tool. It handles the
configuration and transforms book data that is already in memory.

## Running the tests

```
pip install -e ".[test]"
pytest
```
from pathlib import Path

import pytest

from bookforge.config import Config
from bookforge.linkparse import LineRange, find_links
from bookforge.links import (
    LinkPreprocessor,
    render_link,
    replace_all,
    take_anchored_lines,
    take_lines,
)
from bookforge.preprocess import PreprocessError, PreprocessorContext

LOREM = "Lorem\nipsum\ndolor\nsit\namet"


def test_replace_all_escaped():
    start = r"""
        Some text over here.
        ```hbs
        \{{#include file.rs}} << an escaped link!
        ```"""
    end = r"""
        Some text over here.
        ```hbs
        {{#include file.rs}} << an escaped link!
        ```"""
    result, title = replace_all(start, "", "", 0, "test_replace_all_escaped")
    assert result == end
    assert title == "test_replace_all_escaped"


def test_set_chapter_title():
    start = "{{#title My Title}}\n        # My Chapter\n        "
    end = "\n        # My Chapter\n        "
    result, title = replace_all(start, "", "", 0, "test_set_chapter_title")
    assert result == end
    assert title == "My Title"


@pytest.mark.parametrize(
    "line_range, expected",
    [
        (LineRange(1, 3), "ipsum\ndolor"),
        (LineRange(3, None), "sit\namet"),
        (LineRange(None, 3), "Lorem\nipsum\ndolor"),
        (LineRange(), LOREM),
        (LineRange(4, 8), "amet"),
        (LineRange(5, None), ""),
        (LineRange(3, 1), ""),
    ],
)
def test_take_lines(line_range, expected):
    assert take_lines(LOREM, line_range) == expected


def test_take_lines_handles_crlf_and_trailing_newline():
    assert take_lines("a\r\nb\r\n", LineRange()) == "a\nb"


def test_take_anchored_lines():
    text = "x\n// ANCHOR: a\ny\n// ANCHOR: inner\nw\n// ANCHOR_END: inner\n// ANCHOR_END: a\nz"
    assert take_anchored_lines(text, "a") == "y\nw"
    assert take_anchored_lines(text, "inner") == "w"
    assert take_anchored_lines(text, "missing") == ""


def test_include_with_range(tmp_path):
    (tmp_path / "f.txt").write_text("one\ntwo\nthree\nfour\n")
    result, _ = replace_all("[{{#include f.txt:2:3}}]", tmp_path, "ch.md", 0, "t")
    assert result == "[two\nthree]"


def test_include_with_anchor(tmp_path):
    (tmp_path / "f.rs").write_text("x\n// ANCHOR: a\ny\n// ANCHOR_END: a\nz\n")
    result, _ = replace_all("{{#include f.rs:a}}", tmp_path, "ch.md", 0, "t")
    assert result == "y"


def test_rustdoc_include_hides_lines_outside_range(tmp_path):
    (tmp_path / "f.rs").write_text("a\nb\nc\n")
    result, _ = replace_all("{{#rustdoc_include f.rs:2}}", tmp_path, "ch.md", 0, "t")
    assert result == "# a\nb\n# c"


def test_rustdoc_include_with_anchor(tmp_path):
    (tmp_path / "f.rs").write_text("x\n// ANCHOR: a\ny\n// ANCHOR_END: a\nz\n")
    result, _ = replace_all("{{#rustdoc_include f.rs:a}}", tmp_path, "ch.md", 0, "t")
    assert result == "# x\ny\n# z"


def test_playground_with_properties(tmp_path):
    (tmp_path / "main.rs").write_text("fn main() {}")
    result, _ = replace_all(
        "{{#playground main.rs editable no_run}}", tmp_path, "ch.md", 0, "t"
    )
    assert result == "```rust,editable,no_run\nfn main() {}\n```\n"


def test_playground_without_properties(tmp_path):
    (tmp_path / "main.rs").write_text("fn main() {}\n")
    link = next(find_links("{{#playground main.rs}}"))
    content, title = render_link(link, tmp_path, "t")
    assert content == "```rust\nfn main() {}\n```\n"
    assert title == "t"


def test_render_link_missing_file_raises(tmp_path):
    link = next(find_links("{{#include nope.md}}"))
    with pytest.raises(PreprocessError, match="Could not read file for link"):
        render_link(link, tmp_path, "t")


def test_missing_file_keeps_raw_link(tmp_path):
    text = "a {{#include nope.md}} b"
    result, _ = replace_all(text, tmp_path, "ch.md", 0, "t")
    assert result == text


def test_recursive_includes_are_capped(tmp_path):
    (tmp_path / "loop.md").write_text("Around\n{{#include loop.md}}\n")
    result, _ = replace_all("{{#include loop.md}}", tmp_path, "ch.md", 0, "t")
    assert result == "Around\n" * 10


def test_nested_include_resolves_relative_to_included_file(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "outer.md").write_text("outer {{#include inner.md}}")
    (tmp_path / "sub" / "inner.md").write_text("inner")
    result, _ = replace_all("{{#include sub/outer.md}}", tmp_path, "ch.md", 0, "t")
    assert result == "outer inner"


def test_link_preprocessor_run(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "inc.md").write_text("included")
    book = {
        "sections": [
            {
                "Chapter": {
                    "name": "Intro",
                    "content": "{{#title Better}}\n{{#include inc.md}}",
                    "path": "intro.md",
                    "sub_items": [
                        {
                            "Chapter": {
                                "name": "Draft",
                                "content": "{{#include inc.md}}",
                                "path": None,
                                "sub_items": [],
                            }
                        }
                    ],
                }
            }
        ]
    }
    ctx = PreprocessorContext(root=tmp_path, config=Config(), renderer="html")
    result = LinkPreprocessor().run(ctx, book)

    intro = result["sections"][0]["Chapter"]
    assert intro["content"] == "\nincluded"
    assert intro["sub_items"][0]["Chapter"]["content"] == "{{#include inc.md}}"
    assert ctx.chapter_titles == {Path("intro.md"): "Better"}
    assert book["sections"][0]["Chapter"]["content"] == "{{#title Better}}\n{{#include inc.md}}"


def test_link_preprocessor_name():
    assert LinkPreprocessor().name == "links"
    assert LinkPreprocessor().supports_renderer("html") is True
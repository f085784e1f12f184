from pathlib import Path

import pytest

from bookforge.linkparse import (
    LineRange,
    Link,
    LinkKind,
    find_links,
    parse_include_path,
    parse_range_or_anchor,
    parse_rustdoc_include_path,
)


def test_find_links_no_link():
    assert list(find_links("Some random text without link...")) == []


@pytest.mark.parametrize(
    "text",
    [
        "Some random text with {{#playground...",
        "Some random text with {{#include...",
        "Some random text with \\{{#include...",
    ],
)
def test_find_links_partial_link(text):
    assert list(find_links(text)) == []


def test_find_links_empty_link():
    s = "Some random text with {{#playground}} and {{#playground   }} {{}} {{#}}..."
    assert list(find_links(s)) == []


def test_find_links_unknown_link_type():
    s = "Some random text with {{#playgroundz ar.rs}} and {{#incn}} {{baz}} {{#bar}}..."
    assert list(find_links(s)) == []


def test_find_links_simple_link():
    s = "Some random text with {{#playground file.rs}} and {{#playground test.rs }}..."
    assert list(find_links(s)) == [
        Link(22, 45, LinkKind.PLAYGROUND, "{{#playground file.rs}}", path=Path("file.rs")),
        Link(50, 74, LinkKind.PLAYGROUND, "{{#playground test.rs }}", path=Path("test.rs")),
    ]


def test_find_links_with_special_characters():
    s = "Some random text with {{#playground foo-bar\\baz/_c++.rs}}..."
    assert list(find_links(s)) == [
        Link(
            22,
            57,
            LinkKind.PLAYGROUND,
            "{{#playground foo-bar\\baz/_c++.rs}}",
            path=Path("foo-bar\\baz/_c++.rs"),
        )
    ]


@pytest.mark.parametrize(
    "text,end,link_text,target",
    [
        ("Some random text with {{#include file.rs:10:20}}...", 48,
         "{{#include file.rs:10:20}}", LineRange(9, 20)),
        ("Some random text with {{#include file.rs:10}}...", 45,
         "{{#include file.rs:10}}", LineRange(9, 10)),
        ("Some random text with {{#include file.rs:10:}}...", 46,
         "{{#include file.rs:10:}}", LineRange(9, None)),
        ("Some random text with {{#include file.rs::20}}...", 46,
         "{{#include file.rs::20}}", LineRange(None, 20)),
        ("Some random text with {{#include file.rs::}}...", 44,
         "{{#include file.rs::}}", LineRange()),
        ("Some random text with {{#include file.rs}}...", 42,
         "{{#include file.rs}}", LineRange()),
        ("Some random text with {{#include file.rs:anchor}}...", 49,
         "{{#include file.rs:anchor}}", "anchor"),
    ],
)
def test_find_include_links(text, end, link_text, target):
    assert list(find_links(text)) == [
        Link(22, end, LinkKind.INCLUDE, link_text, path=Path("file.rs"), target=target)
    ]


def test_find_links_escaped_link():
    s = "Some random text with escaped playground \\{{#playground file.rs editable}} ..."
    assert list(find_links(s)) == [
        Link(41, 74, LinkKind.ESCAPED, "\\{{#playground file.rs editable}}")
    ]


def test_find_playgrounds_with_properties():
    s = (
        "Some random text with escaped playground {{#playground file.rs editable }} and some "
        "more\n text {{#playground my.rs editable no_run should_panic}} ..."
    )
    assert list(find_links(s)) == [
        Link(
            41,
            74,
            LinkKind.PLAYGROUND,
            "{{#playground file.rs editable }}",
            path=Path("file.rs"),
            properties=("editable",),
        ),
        Link(
            95,
            145,
            LinkKind.PLAYGROUND,
            "{{#playground my.rs editable no_run should_panic}}",
            path=Path("my.rs"),
            properties=("editable", "no_run", "should_panic"),
        ),
    ]


def test_find_all_link_types():
    s = (
        "Some random text with escaped playground {{#include file.rs}} and \\{{#contents are "
        "insignifficant in escaped link}} some more\n text  {{#playground my.rs editable "
        "no_run should_panic}} ..."
    )
    res = list(find_links(s))
    assert len(res) == 3
    assert res[0] == Link(
        41, 61, LinkKind.INCLUDE, "{{#include file.rs}}",
        path=Path("file.rs"), target=LineRange(),
    )
    assert res[1] == Link(
        66, 115, LinkKind.ESCAPED, "\\{{#contents are insignifficant in escaped link}}"
    )
    assert res[2] == Link(
        133,
        183,
        LinkKind.PLAYGROUND,
        "{{#playground my.rs editable no_run should_panic}}",
        path=Path("my.rs"),
        properties=("editable", "no_run", "should_panic"),
    )


def test_find_title_link():
    res = list(find_links("{{#title My Title}}\n# Chapter"))
    assert res == [Link(0, 19, LinkKind.TITLE, "{{#title My Title}}", title="My Title")]


def test_playpen_is_a_playground():
    res = list(find_links("{{#playpen old.rs}}"))
    assert res[0].kind is LinkKind.PLAYGROUND
    assert res[0].path == Path("old.rs")


def test_rustdoc_include_link():
    res = list(find_links("x {{#rustdoc_include code.rs:2:4}}"))
    assert res == [
        Link(2, 34, LinkKind.RUSTDOC_INCLUDE, "{{#rustdoc_include code.rs:2:4}}",
             path=Path("code.rs"), target=LineRange(1, 4))
    ]


@pytest.mark.parametrize(
    "arg,expected",
    [
        ("arbitrary", LineRange()),
        ("arbitrary:", LineRange()),
        ("arbitrary::", LineRange()),
        ("arbitrary::NaN", LineRange()),
        ("arbitrary:5", LineRange(4, 5)),
        ("arbitrary:1", LineRange(0, 1)),
        ("arbitrary:0", LineRange(0, 1)),
        ("arbitrary:5:", LineRange(4, None)),
        ("arbitrary:5:NaN", LineRange(4, None)),
        ("arbitrary::5", LineRange(None, 5)),
        ("arbitrary:5:10", LineRange(4, 10)),
        ("arbitrary:-5", "-5"),
        ("arbitrary:-5.7", "-5.7"),
        ("arbitrary:some-anchor:this-gets-ignored", "some-anchor"),
        ("arbitrary:5:10:17:anything:", LineRange(4, 10)),
    ],
)
def test_parse_include_path(arg, expected):
    assert parse_include_path(arg) == (Path("arbitrary"), expected)


def test_parse_rustdoc_include_path():
    assert parse_rustdoc_include_path("lib.rs:anchor") == (Path("lib.rs"), "anchor")


def test_parse_range_or_anchor_none_is_full():
    assert parse_range_or_anchor(None) == LineRange()


def test_relative_path():
    include = next(find_links("{{#include sub/file.rs}}"))
    assert include.relative_path("base") == Path("base/sub")
    escaped = next(find_links("\\{{#include file.rs}}"))
    assert escaped.relative_path("base") is None
    title = next(find_links("{{#title T}}"))
    assert title.relative_path("base") is None
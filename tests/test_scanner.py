from __future__ import annotations

import pytest

from berg.bionic import bionic
from berg.scanner import transform_html
from berg.transformers import UppercaseTransformer

SAMPLE = "<div><h1>hello <span>world</span><h1> <p>my name is taher</p></div>"


def _bracket(text: str) -> str:
    return f"[{text}]"


def test_uppercase_transform_only_touches_text() -> None:
    result = transform_html(SAMPLE, lambda s: s.upper())
    assert result == "<div><h1>HELLO <span>WORLD</span><h1> <p>MY NAME IS TAHER</p></div>"


def test_bionic_transform_over_markup() -> None:
    result = transform_html(SAMPLE, bionic)
    assert result == (
        "<div><h1><b>he</b>llo <span><b>wo</b>rld</span><h1> "
        "<p><b>m</b>y <b>na</b>me <b>i</b>s <b>ta</b>her</p></div>"
    )


def test_accepts_transformer_instances() -> None:
    assert transform_html("<p>quiet</p>", UppercaseTransformer()) == "<p>QUIET</p>"


@pytest.mark.parametrize("content", ["", "<br/>", "<p></p>", "<?xml version='1.0'?><html/>"])
def test_markup_without_text_is_unchanged(content: str) -> None:
    assert transform_html(content, _bracket) == content


def test_text_runs_are_passed_whole_and_in_order() -> None:
    calls: list[str] = []

    def _record(text: str) -> str:
        calls.append(text)
        return text

    content = "<p>one two</p>\n<p>three</p>tail"
    assert transform_html(content, _record) == content
    assert calls == ["one two", "\n", "three", "tail"]


def test_trailing_text_is_flushed() -> None:
    assert transform_html("<p>a</p>tail", _bracket) == "<p>[a]</p>[tail]"
    assert transform_html("plain", _bracket) == "[plain]"


def test_style_block_is_opaque() -> None:
    content = "<style>p { color: red; }</style><p>hi there</p>"
    assert transform_html(content, str.upper) == (
        "<style>p { color: red; }</style><p>HI THERE</p>"
    )


def test_code_block_is_opaque() -> None:
    content = '<p>use <code class="py">print x</code> now</p>'
    assert transform_html(content, str.upper) == (
        '<p>USE <code class="py">print x</code> NOW</p>'
    )


def test_tags_inside_opaque_region_are_copied() -> None:
    content = "<code><i>x</i> y</code>z"
    assert transform_html(content, str.upper) == "<code><i>x</i> y</code>Z"


def test_style_and_code_regions_in_one_document() -> None:
    content = (
        "<head><style>\nbody { margin: 0 }\n</style></head>"
        "<body><p>see</p><pre><code>a = 1</code></pre><p>done</p></body>"
    )
    assert transform_html(content, _bracket) == (
        "<head><style>\nbody { margin: 0 }\n</style></head>"
        "<body><p>[see]</p><pre><code>a = 1</code></pre><p>[done]</p></body>"
    )


def test_stray_closing_bracket_keeps_order() -> None:
    assert transform_html("1 > 0<br/>", _bracket) == "[1 ]>[ 0]<br/>"


def test_unclosed_tag_swallows_rest_of_document() -> None:
    assert transform_html("text <b", _bracket) == "[text ]<b"


@pytest.mark.parametrize(
    "content",
    [
        SAMPLE,
        "a < b",
        "x > y",
        "<p>unbalanced <i>markup</p>",
        "<style>a > b { }</style>after",
        "<<>>text<>",
    ],
)
def test_identity_transform_reproduces_input(content: str) -> None:
    assert transform_html(content, lambda s: s) == content


def test_markup_is_identical_after_transform() -> None:
    content = '<p class="x">alpha beta</p><img src="a.png"/><p>gamma</p>'
    result = transform_html(content, bionic)
    stripped = result.replace("<b>", "").replace("</b>", "")
    assert stripped == content

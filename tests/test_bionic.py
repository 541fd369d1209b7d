from __future__ import annotations

import pytest

from berg.bionic import bionic, bionic_word


@pytest.mark.parametrize(
    ("word", "expected"),
    [
        ("Hello", "<b>He</b>llo"),
        ("world!", "<b>wor</b>ld!"),
        ("ab", "<b>a</b>b"),
        ("abc", "<b>a</b>bc"),
        ("a", "<b></b>a"),
    ],
)
def test_bionic_word_splits_at_floor_half(word: str, expected: str) -> None:
    assert bionic_word(word) == expected


def test_bionic_word_counts_code_points_not_bytes() -> None:
    assert bionic_word("héllo") == "<b>hé</b>llo"
    assert bionic_word("日本語です") == "<b>日本</b>語です"
    assert bionic_word("😀😀") == "<b>😀</b>😀"


@pytest.mark.parametrize("word", ["", " ", "\n", "\t \n"])
def test_bionic_word_leaves_blank_input_alone(word: str) -> None:
    assert bionic_word(word) == word


def test_bionic_word_matches_split_law() -> None:
    for word in ["x", "xy", "reading", "transformation", "δοκιμή"]:
        half = len(word) // 2
        assert bionic_word(word) == "<b>" + word[:half] + "</b>" + word[half:]


def test_bionic_sentence() -> None:
    assert bionic("Hello world!") == "<b>He</b>llo <b>wor</b>ld!"


def test_bionic_empty_text() -> None:
    assert bionic("") == ""


def test_bionic_keeps_space_runs() -> None:
    assert bionic("a  b") == "<b></b>a  <b></b>b"
    assert bionic(" lead") == " <b>le</b>ad"
    assert bionic("trail ") == "<b>tr</b>ail "


def test_bionic_splits_on_literal_space_only() -> None:
    # Tabs and newlines do not separate words.
    assert bionic("one\ttwo") == "<b>one</b>\ttwo"
    assert bionic("\n  Hi") == "\n  <b>H</b>i"


def test_bionic_word_uses_unicode_white_space() -> None:
    assert bionic_word("\u3000\xa0") == "\u3000\xa0"
    assert bionic_word("\x85") == "\x85"
    # Information separators are not White_Space even though str.isspace says so.
    assert bionic_word("\x1f") == "<b></b>\x1f"
    assert bionic_word("\x1c\x1d") == "<b>\x1c</b>\x1d"

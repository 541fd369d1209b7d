from __future__ import annotations

BOLD_OPEN = "<b>"
BOLD_CLOSE = "</b>"

# Unicode White_Space; str.isspace also accepts the \x1c-\x1f separators.
_WHITESPACE = frozenset(
    "\t\n\x0b\x0c\r \x85\xa0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000"
)


def bionic_word(word: str) -> str:
    """Wrap the leading half of ``word`` in ``<b>`` tags.

    The split point is ``len(word) // 2`` code points, so odd-length words
    keep the extra character in the tail and single characters get an empty
    bold head. Empty or whitespace-only input is returned unchanged.
    """
    if all(ch in _WHITESPACE for ch in word):
        return word
    mid_point = len(word) // 2
    return f"{BOLD_OPEN}{word[:mid_point]}{BOLD_CLOSE}{word[mid_point:]}"


def bionic(text: str) -> str:
    # Split on the literal space only; tabs and newlines stay inside tokens.
    if not text:
        return ""
    return " ".join(bionic_word(token) for token in text.split(" "))


__all__ = ["BOLD_CLOSE", "BOLD_OPEN", "bionic", "bionic_word"]

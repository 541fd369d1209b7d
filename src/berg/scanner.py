from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

TextTransform = Callable[[str], str]

_STYLE_OPEN = "<style"
_STYLE_CLOSE = "</style"
_CODE_OPEN = "<code"
_CODE_CLOSE = "</code"
# Longest marker; the trailing window never needs more characters than this.
_WINDOW = max(len(_STYLE_OPEN), len(_STYLE_CLOSE), len(_CODE_OPEN), len(_CODE_CLOSE))


@dataclass(slots=True)
class _ScanState:
    transform: TextTransform
    in_tag: bool = False
    in_style: bool = False
    in_code: bool = False
    pending: list[str] = field(default_factory=list)
    output: list[str] = field(default_factory=list)
    tail: str = ""

    @property
    def in_opaque(self) -> bool:
        return self.in_style or self.in_code

    def emit(self, text: str) -> None:
        if not text:
            return
        self.output.append(text)
        self.tail = (self.tail + text)[-_WINDOW:]

    def flush(self) -> None:
        if not self.pending:
            return
        text = "".join(self.pending)
        self.pending.clear()
        self.emit(self.transform(text))

    def emit_verbatim(self, ch: str) -> None:
        self.emit(ch)
        tail = self.tail
        if tail.endswith(_STYLE_OPEN):
            self.in_style = True
        elif tail.endswith(_STYLE_CLOSE):
            self.in_style = False
        if tail.endswith(_CODE_OPEN):
            self.in_code = True
        elif tail.endswith(_CODE_CLOSE):
            self.in_code = False


def transform_html(content: str, transform: TextTransform) -> str:
    """
    Apply ``transform`` to every run of plain text in an HTML/XHTML document.

    Tags (``<`` through ``>``) and the contents of ``<style>`` and ``<code>``
    elements are copied unchanged. Text runs end at the next ``<`` or at the
    end of the document, and each run is passed to ``transform`` as a whole.
    Malformed markup never raises; unbalanced brackets only affect which
    characters count as text.
    """
    state = _ScanState(transform=transform)
    for ch in content:
        if ch == "<":
            state.flush()
            state.in_tag = True
        elif ch == ">":
            if not state.in_tag:
                # Stray '>' in prose: keep the text before it in place.
                state.flush()
            state.in_tag = False
            state.emit_verbatim(ch)
            continue

        if state.in_tag or state.in_opaque:
            state.emit_verbatim(ch)
        else:
            state.pending.append(ch)

    state.flush()
    return "".join(state.output)


__all__ = ["TextTransform", "transform_html"]

"""Text folding helpers shared by the request parsers."""
from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Tuple

_WHITESPACE_RE = re.compile(r"\s+")


def _fold_char(char: str) -> str:
    decomposed = unicodedata.normalize("NFKD", char)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    if len(base) != 1:
        base = char
    lowered = base.lower()
    return lowered if len(lowered) == 1 else base


def fold_text(text: str) -> str:
    """Strip diacritics and lowercase, one output character per input character.

    Keeping the length unchanged means a span found in the folded text can be
    sliced straight out of the original.
    """
    return "".join(_fold_char(c) for c in text)


def mask_spans(text: str, spans: Iterable[Tuple[int, int]]) -> str:
    """Replace each ``(start, end)`` span with spaces, keeping positions stable."""
    chars = list(text)
    for start, end in spans:
        for i in range(max(start, 0), min(end, len(chars))):
            chars[i] = " "
    return "".join(chars)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()

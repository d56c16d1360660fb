"""
Location Extractor - origin/destination phrases from free text

Runs an ordered rule table over the request with every dimension and
weight expression blanked out, so "from 33142 to 90210" is never confused
with "24x10x10 box weighing 20lbs". Each rule may fill origin, destination
or both; the first acceptable capture wins per field and later rules only
fill fields that are still empty.

Fallbacks, in order, for whatever is still missing:
1. standalone US ZIP codes in reading order
2. a bare "<origin> to <destination>" split of the text left over once
   shipping vocabulary is removed

Captures are sliced from the original (masked) text so casing survives.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..utils.text import collapse_whitespace, fold_text, mask_spans
from .parcel_extractor import measurement_spans

logger = logging.getLogger(__name__)

FIELDS = ("origin", "destination")


def _keywords(*words: str) -> str:
    alternation = "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))
    return rf"(?<![a-z0-9])(?:{alternation})(?![a-z0-9])"


# Sentence-ending period: after a digit or a word of 3+ letters, so "St. Louis"
# and "U.S." stay inside the capture.
PERIOD_END = r"(?:(?<=[a-z]{3})|(?<=\d))\.(?=\s|$)"

FILLER_WORDS = (
    "please", "pls", "por favor", "via", "by", "with", "con", "using",
    "weighing", "weight", "peso", "asap", "for", "para",
)
EN_STOPS = ("to", "hasta", "from", "desde") + FILLER_WORDS

ARTICLES = frozenset({"a", "an", "the", "un", "una"})
DIRECTION_WORDS = frozenset({"from", "to", "desde", "hasta", "de"})

# First words that mean the capture is a verb phrase ("to ship ..."), not a place.
REJECTED_FIRST_WORDS = frozenset({
    "ship", "send", "move", "deliver", "get", "quote", "mail", "be", "have",
    "know", "see", "pay", "compare", "check", "find", "buy", "make",
    "transport", "enviar", "mandar", "mover", "entregar", "cotizar",
    "transportar", "saber", "pagar",
})


def _capture(name: str, stops: Iterable[str]) -> str:
    return rf"(?P<{name}>(?:(?!{_keywords(*stops)}|{PERIOD_END})[^;!?\n])+)"


@dataclass(frozen=True)
class LocationRule:
    name: str
    pattern: re.Pattern


LOCATION_RULES: Tuple[LocationRule, ...] = (
    LocationRule("from", re.compile(
        rf"{_keywords('from')}\s+{_capture('origin', EN_STOPS)}"
        rf"(?:{_keywords('to', 'hasta')}\s+{_capture('destination', EN_STOPS)})?"
    )),
    LocationRule("desde", re.compile(
        rf"{_keywords('desde')}\s+{_capture('origin', EN_STOPS + ('a',))}"
        rf"(?:{_keywords('a', 'hasta')}\s+{_capture('destination', EN_STOPS)})?"
    )),
    LocationRule("to", re.compile(
        rf"{_keywords('to')}\s+{_capture('destination', EN_STOPS)}"
        rf"(?:{_keywords('from', 'desde')}\s+{_capture('origin', EN_STOPS)})?"
    )),
    LocationRule("hasta", re.compile(
        rf"{_keywords('hasta')}\s+{_capture('destination', EN_STOPS + ('de',))}"
        rf"(?:{_keywords('desde', 'de')}\s+{_capture('origin', EN_STOPS)})?"
    )),
    # "de" is too common to stand alone: both halves are required.
    LocationRule("de-a", re.compile(
        rf"{_keywords('de')}\s+{_capture('origin', EN_STOPS + ('a', 'de'))}"
        rf"{_keywords('a', 'hasta')}\s+{_capture('destination', EN_STOPS)}"
    )),
)

ZIP_RE = re.compile(r"\b\d{5}(?:-\d{4})?\b")

# Vocabulary removed before the bare "<a> to <b>" split.
RESIDUAL_NOISE_RE = re.compile(_keywords(
    "ship", "shipping", "send", "sending", "quote", "quotes", "rate", "rates",
    "price", "cost", "box", "boxes", "package", "packages", "parcel", "parcels",
    "pallet", "pallets", "caja", "cajas", "paquete", "paquetes", "enviar",
    "envio", "please", "por favor", "need", "want", "i", "we", "my", "an", "the",
    "un", "una", "lb", "lbs", "kg", "kgs", "cm", "inches", "pounds",
    "kilos", "libras", "weighing", "weight", "peso", "from", "desde",
) + r"|(?<![\d-])\d{1,4}(?![\d-])")
RESIDUAL_SPLIT_RE = re.compile(
    rf"^\s*(?P<origin>\S[^\n]*?)\s+{_keywords('to', 'hasta', 'a')}\s+(?P<destination>\S[^\n]*?)\s*$"
)

_LEADING_PUNCT_RE = re.compile(r"^[\s,;:()\-]+")
_TRAILING_PUNCT_RE = re.compile(r"[\s,;:!?()\-]+$")
_ABBREVIATION_END_RE = re.compile(r"(?:^|\s)(?:[a-z]\.){2,}$", re.IGNORECASE)


@dataclass
class Locations:
    origin: str = ""
    destination: str = ""

    def missing(self) -> List[str]:
        return [f for f in FIELDS if not getattr(self, f)]


def clean_location(raw: str) -> Optional[str]:
    """Trim a raw capture; None when it is empty, a bare keyword or a verb phrase."""
    value = collapse_whitespace(raw)
    value = _LEADING_PUNCT_RE.sub("", value)
    value = _TRAILING_PUNCT_RE.sub("", value)
    while value.endswith(".") and not _ABBREVIATION_END_RE.search(value):
        value = _TRAILING_PUNCT_RE.sub("", value[:-1])

    words = value.split(" ")
    while len(words) > 1 and fold_text(words[0]) in ARTICLES | DIRECTION_WORDS:
        words = words[1:]
    value = " ".join(words)

    if not value:
        return None
    first = fold_text(words[0])
    if first in REJECTED_FIRST_WORDS or first in ARTICLES or first in DIRECTION_WORDS:
        return None
    return value


def _apply_rules(folded: str, original: str, found: Locations) -> None:
    for rule in LOCATION_RULES:
        pos = 0
        while found.missing():
            match = rule.pattern.search(folded, pos)
            if not match:
                break
            for field in FIELDS:
                if getattr(found, field) or match.group(field) is None:
                    continue
                start, end = match.span(field)
                value = clean_location(original[start:end])
                if value:
                    logger.debug(f"Location rule '{rule.name}' matched {field}")
                    setattr(found, field, value)
            pos = match.start() + 1
        if not found.missing():
            return


def _apply_zip_fallback(folded: str, found: Locations) -> None:
    zips = [m.group(0) for m in ZIP_RE.finditer(folded)]
    for field in FIELDS:
        if getattr(found, field):
            continue
        other = found.destination if field == "origin" else found.origin
        for zip_code in zips:
            if zip_code not in other:
                setattr(found, field, zip_code)
                break


def _apply_residual_split(folded: str, original: str, found: Locations) -> None:
    noise = [m.span() for m in RESIDUAL_NOISE_RE.finditer(folded)]
    residual_folded = mask_spans(folded, noise)
    # One clause only: the split never crosses sentence punctuation.
    for clause in re.finditer(r"[^.;!?\n]+", residual_folded):
        match = RESIDUAL_SPLIT_RE.match(clause.group(0))
        if not match:
            continue
        offset = clause.start()
        residual_original = mask_spans(original, noise)
        for field in FIELDS:
            if getattr(found, field):
                continue
            start, end = match.span(field)
            value = clean_location(residual_original[offset + start:offset + end])
            if value:
                setattr(found, field, value)
        return


def extract_locations(text: str) -> Locations:
    """Find origin and destination phrases in a shipping request."""
    found = Locations()
    if not text:
        return found

    spans = measurement_spans(text)
    folded = mask_spans(fold_text(text), spans)
    original = mask_spans(text, spans)

    _apply_rules(folded, original, found)
    if found.missing():
        _apply_zip_fallback(folded, found)
    if found.missing():
        _apply_residual_split(folded, original, found)

    if found.missing():
        logger.debug(f"Locations incomplete, missing {found.missing()}")
    return found

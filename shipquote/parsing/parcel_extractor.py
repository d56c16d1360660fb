"""
Parcel Extractor - dimension/weight tuples from free text

Senders describe multi-box shipments two ways: fully self-contained lines
("50x50x50 50lb, 50x10x10 10lb") or a list of dimensions with the weights
stated separately ("two boxes 20x20x20 and 10x10x10, 15 lbs and 5 lbs").
Extraction therefore runs an ordered list of tiers; the first tier that
produces parcels wins:

1. combined   - dimension triple followed in the same clause by a weight
2. positional - independent dimension and weight passes paired by index

All patterns run over folded text (see ``utils.text.fold_text``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..models import Parcel
from ..utils.text import fold_text, mask_spans
from ..utils.units import (
    LENGTH_UNIT_PATTERN,
    WEIGHT_UNIT_PATTERN,
    normalize_length,
    normalize_weight,
)

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT_LB = 10.0

# ==========================================================================
# Token patterns
# ==========================================================================

NUMBER = r"(?<![\d.])\d+(?:\.\d+)?(?!\d)(?!\.\d)"
DIMENSION_SEPARATOR = r"\s*(?:x|×|\*|by|por)\s*"
WEIGHT_KEYWORD = r"\b(?:weighing|weighs|weight|peso|pesa|pesando)"
WEIGHT_KEYWORD_LINK = r"\s*(?:of|de|:|is|es|=)?\s*(?:about|around|approx\.?|aprox\.?|aproximadamente|~)?\s*"
# Filler allowed between a triple and its weight: same clause, no numbers.
CLAUSE_FILLER = r"[^\d.;\n]{0,30}?"

DIMENSION_PATTERN = (
    rf"(?P<length>{NUMBER})\s*(?P<length_unit>{LENGTH_UNIT_PATTERN})?"
    rf"{DIMENSION_SEPARATOR}"
    rf"(?P<width>{NUMBER})\s*(?P<width_unit>{LENGTH_UNIT_PATTERN})?"
    rf"{DIMENSION_SEPARATOR}"
    rf"(?P<height>{NUMBER})\s*(?P<height_unit>{LENGTH_UNIT_PATTERN})?"
)

WEIGHT_PATTERN = (
    rf"(?:(?P<keyword>{WEIGHT_KEYWORD}){WEIGHT_KEYWORD_LINK}"
    rf"(?P<keyword_value>{NUMBER})\s*(?P<keyword_unit>{WEIGHT_UNIT_PATTERN})?"
    rf"|(?P<value>{NUMBER})\s*(?P<unit>{WEIGHT_UNIT_PATTERN}))"
)

DIMENSION_RE = re.compile(DIMENSION_PATTERN)
WEIGHT_RE = re.compile(WEIGHT_PATTERN)
COMBINED_RE = re.compile(DIMENSION_PATTERN + CLAUSE_FILLER + WEIGHT_PATTERN)


@dataclass(frozen=True)
class DimensionMatch:
    length: float
    width: float
    height: float
    span: Tuple[int, int]


@dataclass(frozen=True)
class WeightMatch:
    pounds: float
    keyword: bool  # introduced by "weight"/"peso"/... rather than a bare unit
    span: Tuple[int, int]


@dataclass(frozen=True)
class ExtractionTier:
    name: str
    extract: Callable[[str], List[Parcel]]


def _axis_units(units: Sequence[Optional[str]]) -> List[Optional[str]]:
    """Give unit-less axes the nearest unit stated after them, else before.

    "50x40x30cm" converts all three axes; "50cm x 40 x 30" as well.
    """
    resolved = list(units)
    following = None
    for i in reversed(range(len(resolved))):
        if resolved[i]:
            following = resolved[i]
        else:
            resolved[i] = following
    preceding = None
    for i in range(len(resolved)):
        if resolved[i]:
            preceding = resolved[i]
        else:
            resolved[i] = preceding
    return resolved


def _dimension_from_match(match: re.Match) -> DimensionMatch:
    units = _axis_units(
        [match.group("length_unit"), match.group("width_unit"), match.group("height_unit")]
    )
    return DimensionMatch(
        length=normalize_length(float(match.group("length")), units[0]),
        width=normalize_length(float(match.group("width")), units[1]),
        height=normalize_length(float(match.group("height")), units[2]),
        span=match.span(),
    )


def _weight_from_match(match: re.Match) -> WeightMatch:
    if match.group("keyword"):
        pounds = normalize_weight(float(match.group("keyword_value")), match.group("keyword_unit"))
        return WeightMatch(pounds=pounds, keyword=True, span=match.span())
    pounds = normalize_weight(float(match.group("value")), match.group("unit"))
    return WeightMatch(pounds=pounds, keyword=False, span=match.span())


def _build_parcel(dims: DimensionMatch, weight: float) -> Optional[Parcel]:
    try:
        return Parcel(length=dims.length, width=dims.width, height=dims.height, weight=weight)
    except PydanticValidationError:
        logger.debug(f"Discarding non-positive parcel {dims} weight={weight}")
        return None


def find_dimensions(text: str) -> List[DimensionMatch]:
    return [_dimension_from_match(m) for m in DIMENSION_RE.finditer(fold_text(text))]


def find_weights(text: str) -> List[WeightMatch]:
    return [_weight_from_match(m) for m in WEIGHT_RE.finditer(fold_text(text))]


def measurement_spans(text: str) -> List[Tuple[int, int]]:
    """Spans of every dimension triple and weight expression in ``text``."""
    folded = fold_text(text)
    spans = [m.span() for m in DIMENSION_RE.finditer(folded)]
    spans.extend(m.span() for m in WEIGHT_RE.finditer(folded))
    return spans


# ==========================================================================
# Tiers
# ==========================================================================

def extract_combined(text: str) -> List[Parcel]:
    """Tier 1: one parcel per "<triple> ... <weight>" match.

    Triples without a weight in their own clause are not reported; the
    positional tier only runs when there is no combined match at all.
    """
    parcels: List[Parcel] = []
    for match in COMBINED_RE.finditer(fold_text(text)):
        dims = _dimension_from_match(match)
        weight = _weight_from_match(match)
        parcel = _build_parcel(dims, weight.pounds)
        if parcel:
            parcels.append(parcel)
    return parcels


def unattached_weight(weights: Sequence[WeightMatch]) -> Optional[float]:
    """The single "weight: N" / "peso N" value, when exactly one is stated."""
    keyword_weights = [w for w in weights if w.keyword]
    if len(keyword_weights) == 1:
        return keyword_weights[0].pounds
    return None


def extract_positional(text: str) -> List[Parcel]:
    """Tier 2: pair the i-th dimension triple with the i-th weight."""
    folded = fold_text(text)
    dimensions = [_dimension_from_match(m) for m in DIMENSION_RE.finditer(folded)]
    if not dimensions:
        return []

    # Weights are searched with the triples blanked so an axis is never read as a weight.
    masked = mask_spans(folded, [dims.span for dims in dimensions])
    weights = [_weight_from_match(m) for m in WEIGHT_RE.finditer(masked)]

    fallback = unattached_weight(weights)
    if fallback is None:
        fallback = DEFAULT_WEIGHT_LB

    parcels: List[Parcel] = []
    for i, dims in enumerate(dimensions):
        weight = weights[i].pounds if i < len(weights) else fallback
        parcel = _build_parcel(dims, weight)
        if parcel:
            parcels.append(parcel)
    return parcels


PARCEL_TIERS: Tuple[ExtractionTier, ...] = (
    ExtractionTier("combined", extract_combined),
    ExtractionTier("positional", extract_positional),
)


def extract_parcels(text: str) -> List[Parcel]:
    """Run the tiers in order and return the first non-empty result."""
    for tier in PARCEL_TIERS:
        parcels = tier.extract(text)
        if parcels:
            logger.debug(f"Parcel tier '{tier.name}' produced {len(parcels)} parcel(s)")
            return parcels
    return []

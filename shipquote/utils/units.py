"""Length and weight unit normalization (inches and pounds internally)."""
from __future__ import annotations

from typing import Dict, Optional

from .text import fold_text

INCHES_PER_CM = 0.3937007874
POUNDS_PER_KG = 2.2046226218

LENGTH_FACTORS: Dict[str, float] = {
    "cm": INCHES_PER_CM,
    "cms": INCHES_PER_CM,
    "centimetro": INCHES_PER_CM,
    "centimetros": INCHES_PER_CM,
    "in": 1.0,
    "inch": 1.0,
    "inches": 1.0,
    '"': 1.0,
    "pulgada": 1.0,
    "pulgadas": 1.0,
}

WEIGHT_FACTORS: Dict[str, float] = {
    "kg": POUNDS_PER_KG,
    "kgs": POUNDS_PER_KG,
    "kilo": POUNDS_PER_KG,
    "kilos": POUNDS_PER_KG,
    "kilogramo": POUNDS_PER_KG,
    "kilogramos": POUNDS_PER_KG,
    "lb": 1.0,
    "lbs": 1.0,
    "pound": 1.0,
    "pounds": 1.0,
    "libra": 1.0,
    "libras": 1.0,
}

# Regex fragments for the parsers; longest alternatives first.
LENGTH_UNIT_PATTERN = r'(?:centimetros?|cms?|pulgadas?|inches|inch|in|")(?![a-z])'
WEIGHT_UNIT_PATTERN = r"(?:kilogramos?|kilos?|kgs?|pounds?|libras?|lbs?)(?![a-z])"


def _unit_key(unit: Optional[str]) -> str:
    if not unit:
        return ""
    return fold_text(unit.strip()).rstrip(".")


def normalize_length(value: float, unit: Optional[str] = None) -> float:
    """Convert a length to inches. Unknown or missing units are left as-is."""
    return value * LENGTH_FACTORS.get(_unit_key(unit), 1.0)


def normalize_weight(value: float, unit: Optional[str] = None) -> float:
    """Convert a weight to pounds. Unknown or missing units are left as-is."""
    return value * WEIGHT_FACTORS.get(_unit_key(unit), 1.0)

"""
Parsing Module

Turns a free-text shipping request into a ParsedRequest:
- parcel_extractor: dimension/weight tuples (ordered tiers)
- location_extractor: origin/destination phrases (ordered rules + fallbacks)
- request_parser: combines both with country classification
"""

from .location_extractor import LOCATION_RULES, Locations, extract_locations
from .parcel_extractor import PARCEL_TIERS, extract_parcels
from .request_parser import parse_request

__all__ = [
    "LOCATION_RULES",
    "PARCEL_TIERS",
    "Locations",
    "extract_locations",
    "extract_parcels",
    "parse_request",
]

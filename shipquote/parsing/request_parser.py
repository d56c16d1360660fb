"""
Request Parser - free text -> ParsedRequest

Combines the parcel and location extractors with country classification.
The result is a pure function of the input text.
"""

from __future__ import annotations

import logging

from ..models import ParsedRequest
from ..routing.country_resolver import CountryResolver
from ..routing.shipment_router import needs_both_quotes
from ..utils.logging_security import SecureLogger
from .location_extractor import extract_locations
from .parcel_extractor import extract_parcels

logger = logging.getLogger(__name__)


def parse_request(text: str) -> ParsedRequest:
    """Parse a natural-language shipping request."""
    text = text or ""
    parcels = extract_parcels(text)
    locations = extract_locations(text)

    origin_country = CountryResolver.detect_country(locations.origin)
    dest_country = CountryResolver.detect_country(locations.destination)
    is_international = CountryResolver.is_international(origin_country, dest_country, text)
    is_pallet = CountryResolver.is_pallet(text)

    parsed = ParsedRequest(
        parcels=parcels,
        origin=locations.origin,
        destination=locations.destination,
        originCountry=origin_country,
        destCountry=dest_country,
        isInternational=is_international,
        isPallet=is_pallet,
        needsBothQuotes=needs_both_quotes(parcels, is_international, is_pallet),
    )
    logger.debug(
        f"Parsed '{SecureLogger.redact_pii(text)[:120]}': {len(parcels)} parcel(s), "
        f"{origin_country}->{dest_country}, international={is_international}, pallet={is_pallet}"
    )
    return parsed

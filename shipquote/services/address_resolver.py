"""
Address Resolver - free-text location -> carrier-addressable address

US locations need city, state and ZIP for a parcel rate request, so the
resolver chains the postal database and the geocoder until it has all
three; anywhere else a best-effort geocode is enough.

Successful resolutions are memoized in an injected AddressCache; failures
are not, so a flaky lookup is retried on the next request.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional, Tuple

from ..models import ResolvedAddress
from ..providers.geocoding import NominatimGeocoder
from ..providers.postal import ZippopotamPostalLookup
from ..routing.country_resolver import CountryResolver
from ..utils.text import collapse_whitespace
from .cache import AddressCache, address_cache

logger = logging.getLogger(__name__)

_ZIP_TOKEN_RE = re.compile(r"\b\d{5}(?:-\d{4})?\b")


def first_segment(location: str) -> str:
    """First comma-delimited part of ``location`` with any ZIP removed."""
    without_zip = _ZIP_TOKEN_RE.sub(" ", location or "")
    for segment in without_zip.split(","):
        segment = collapse_whitespace(segment)
        if segment:
            return segment
    return ""


class AddressResolver:
    """Resolves origin/destination strings into ResolvedAddress records."""

    def __init__(
        self,
        geocoder: Optional[NominatimGeocoder] = None,
        postal: Optional[ZippopotamPostalLookup] = None,
        cache: Optional[AddressCache] = None,
    ):
        self.geocoder = geocoder or NominatimGeocoder()
        self.postal = postal or ZippopotamPostalLookup()
        self.cache = cache if cache is not None else address_cache

    async def resolve(self, location: str, country: str) -> Optional[ResolvedAddress]:
        """Resolve one location; None when it cannot be addressed."""
        if not location or not location.strip():
            return None

        async def _load() -> Optional[ResolvedAddress]:
            if country == "US":
                return await self._resolve_us(location)
            return await self._resolve_international(location, country)

        address = await self.cache.get_or_load(location, _load)
        if address is None:
            logger.info(f"Could not resolve address for '{location}' ({country})")
        return address

    async def resolve_pair(
        self,
        origin: str,
        origin_country: str,
        destination: str,
        dest_country: str,
    ) -> Tuple[Optional[ResolvedAddress], Optional[ResolvedAddress]]:
        """Resolve both legs concurrently."""
        origin_address, dest_address = await asyncio.gather(
            self.resolve(origin, origin_country),
            self.resolve(destination, dest_country),
        )
        return origin_address, dest_address

    async def _resolve_international(self, location: str, country: str) -> Optional[ResolvedAddress]:
        result = await self.geocoder.geocode(location, country)
        if result is None:
            return None
        # Partial data is still worth a rate request
        return ResolvedAddress(
            city=result.city or first_segment(location),
            state=result.state or "",
            zip=result.postal_code or "",
            country=country,
        )

    async def _resolve_us(self, location: str) -> Optional[ResolvedAddress]:
        zip_code = CountryResolver.find_zip(location)
        if zip_code:
            address = await self._from_zip(zip_code)
            if address is None:
                address = ResolvedAddress(
                    city=first_segment(location),
                    state=CountryResolver.find_state_code(location) or "",
                    zip=zip_code,
                    country="US",
                )
            return address if address.is_complete else None

        result = await self.geocoder.geocode(location, "US")
        if result is None:
            return None

        city = result.city or first_segment(location)
        state = (
            CountryResolver.us_state_code(result.state)
            or CountryResolver.find_state_code(location)
            or ""
        )
        postal_code = CountryResolver.find_zip(result.postal_code)

        if not postal_code and result.has_coordinates:
            reverse = await self.geocoder.reverse(result.lat, result.lon)
            if reverse is not None:
                postal_code = CountryResolver.find_zip(reverse.postal_code)

        if not postal_code and city and state:
            postal_code = CountryResolver.find_zip(await self.postal.lookup_city(state, city))

        if postal_code:
            # Normalize spelling to the postal database
            normalized = await self._from_zip(postal_code)
            if normalized is not None and normalized.is_complete:
                return normalized

        address = ResolvedAddress(city=city, state=state, zip=postal_code or "", country="US")
        return address if address.is_complete else None

    async def _from_zip(self, zip_code: str) -> Optional[ResolvedAddress]:
        place = await self.postal.lookup_zip(zip_code)
        if place is None:
            return None
        return ResolvedAddress(
            city=place.city,
            state=CountryResolver.us_state_code(place.state) or place.state,
            zip=place.zip[:5],
            country="US",
        )

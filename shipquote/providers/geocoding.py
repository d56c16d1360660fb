"""Nominatim (OpenStreetMap) geocoder used to turn place names into addresses."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import get_settings
from ..exceptions import ProviderError
from ..services.http_pool import get_http_client
from .base import BaseProvider

logger = logging.getLogger(__name__)

# Nominatim reports the locality under whichever key matches its size.
CITY_KEYS = ("city", "town", "village", "hamlet", "municipality", "suburb")


@dataclass(frozen=True)
class GeocodeResult:
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country_code: str = ""
    lat: Optional[float] = None
    lon: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None


class NominatimGeocoder(BaseProvider):
    """Forward and reverse geocoding against a Nominatim-compatible API.

    Lookups never raise: failures are logged and reported as None.
    """

    MAX_RETRIES = 1

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        super().__init__(timeout=timeout or settings.lookup_timeout)
        self.base_url = (base_url or settings.geocoder_base_url).rstrip("/")
        self.user_agent = user_agent or settings.geocoder_user_agent

    @property
    def provider_name(self) -> str:
        return "Nominatim"

    @property
    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "application/json"}

    @staticmethod
    def _parse_place(place: Dict[str, Any]) -> GeocodeResult:
        address = place.get("address") or {}
        city = next((address[k] for k in CITY_KEYS if address.get(k)), "")

        def _coord(key: str) -> Optional[float]:
            try:
                return float(place[key])
            except (KeyError, TypeError, ValueError):
                return None

        return GeocodeResult(
            city=city,
            state=address.get("state", ""),
            postal_code=address.get("postcode", ""),
            country_code=(address.get("country_code") or "").upper(),
            lat=_coord("lat"),
            lon=_coord("lon"),
        )

    async def geocode(self, text: str, country_code: Optional[str] = None) -> Optional[GeocodeResult]:
        """Best match for ``text``, optionally restricted to one country."""
        params = {"q": text, "format": "jsonv2", "addressdetails": 1, "limit": 1}
        if country_code:
            params["countrycodes"] = country_code.lower()

        try:
            client = get_http_client()
            response = await self._get_with_retry(
                client, f"{self.base_url}/search", params=params, headers=self._headers
            )
            data = self._parse_json_safe(response)
        except ProviderError as e:
            logger.warning(f"Geocoding failed for '{text}': {e.message}")
            return None

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            logger.info(f"Geocoder found nothing for '{text}' ({country_code or 'any'})")
            return None
        return self._parse_place(data[0])

    async def reverse(self, lat: float, lon: float) -> Optional[GeocodeResult]:
        """Address at the given coordinates."""
        params = {"lat": lat, "lon": lon, "format": "jsonv2", "addressdetails": 1}
        try:
            client = get_http_client()
            response = await self._get_with_retry(
                client, f"{self.base_url}/reverse", params=params, headers=self._headers
            )
            data = self._parse_json_safe(response)
        except ProviderError as e:
            logger.warning(f"Reverse geocoding failed for ({lat}, {lon}): {e.message}")
            return None

        if not isinstance(data, dict) or "error" in data or not data.get("address"):
            return None
        return self._parse_place(data)

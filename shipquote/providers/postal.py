"""US postal code lookups against a Zippopotam.us-compatible API."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from ..config import get_settings
from ..exceptions import ProviderError, ProviderResponseError
from ..services.http_pool import get_http_client
from .base import BaseProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostalPlace:
    zip: str
    city: str
    state: str  # 2-letter abbreviation


class ZippopotamPostalLookup(BaseProvider):
    """ZIP -> city/state and city/state -> ZIP.

    Unknown codes come back as HTTP 404; like every other failure they are
    logged and reported as None.
    """

    MAX_RETRIES = 1

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        super().__init__(timeout=timeout or settings.lookup_timeout)
        self.base_url = (base_url or settings.postal_base_url).rstrip("/")

    @property
    def provider_name(self) -> str:
        return "Zippopotam"

    async def _fetch(self, path: str) -> Optional[dict]:
        try:
            client = get_http_client()
            response = await self._get_with_retry(client, f"{self.base_url}{path}")
            data = self._parse_json_safe(response)
        except ProviderResponseError as e:
            if e.status_code == 404:
                logger.info(f"Postal lookup found nothing for {path}")
            else:
                logger.warning(f"Postal lookup failed for {path}: {e.message}")
            return None
        except ProviderError as e:
            logger.warning(f"Postal lookup failed for {path}: {e.message}")
            return None
        return data if isinstance(data, dict) else None

    async def lookup_zip(self, zip_code: str) -> Optional[PostalPlace]:
        data = await self._fetch(f"/us/{quote(zip_code[:5])}")
        places = (data or {}).get("places") or []
        if not places:
            return None
        place = places[0]
        return PostalPlace(
            zip=data.get("post code") or zip_code[:5],
            city=place.get("place name", ""),
            state=place.get("state abbreviation", ""),
        )

    async def lookup_city(self, state: str, city: str) -> Optional[str]:
        """First postal code of ``city`` in ``state`` (2-letter code)."""
        data = await self._fetch(f"/us/{quote(state.lower())}/{quote(city.lower())}")
        places = (data or {}).get("places") or []
        for place in places:
            if place.get("post code"):
                return place["post code"]
        return None

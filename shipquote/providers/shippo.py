from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..config import get_settings
from ..exceptions import ProviderError
from ..models import ParsedRequest, ProviderResult, Quote, ResolvedAddress
from ..services.address_resolver import AddressResolver
from ..services.http_pool import get_http_client
from .base import RateProvider

logger = logging.getLogger(__name__)


class ShippoProvider(RateProvider):
    """Small-parcel rates from the Shippo carrier aggregator.

    Both addresses are resolved before any rate request is sent; a leg that
    cannot be resolved skips the provider rather than quoting a made-up
    address.
    """

    SENDER_NAME = "Sender"
    RECIPIENT_NAME = "Recipient"
    # Rates depend on city/state/ZIP only, but the address object requires a street line
    SENDER_STREET = "123 Main St"
    RECIPIENT_STREET = "456 Oak Ave"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        resolver: Optional[AddressResolver] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        super().__init__(timeout=timeout or settings.http_timeout)
        self.api_key = api_key if api_key is not None else settings.shippo_api_key
        self.base_url = (base_url or settings.shippo_base_url).rstrip("/")
        self._resolver = resolver

    @property
    def provider_name(self) -> str:
        return "Shippo"

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @property
    def resolver(self) -> AddressResolver:
        if self._resolver is None:
            self._resolver = AddressResolver()
        return self._resolver

    @staticmethod
    def _address_payload(address: ResolvedAddress, name: str, street: str) -> Dict[str, str]:
        return {
            "name": name,
            "street1": street,
            "city": address.city,
            "state": address.state,
            "zip": address.zip,
            "country": address.country,
        }

    @staticmethod
    def _parcel_payload(parsed: ParsedRequest) -> List[Dict[str, str]]:
        return [
            {
                "length": str(round(p.length, 2)),
                "width": str(round(p.width, 2)),
                "height": str(round(p.height, 2)),
                "distance_unit": "in",
                "weight": str(round(p.weight, 2)),
                "mass_unit": "lb",
            }
            for p in parsed.parcels
        ]

    def _rate_to_quote(self, rate: Dict[str, Any]) -> Optional[Quote]:
        price = self._to_float(rate.get("amount"))
        if price is None:
            return None

        servicelevel = self._as_dict(rate.get("servicelevel"))
        service = servicelevel.get("name") or rate.get("servicelevel_name") or "Standard"

        estimated_days = rate.get("estimated_days")
        transit = f"{estimated_days} days" if estimated_days else rate.get("duration_terms")

        return Quote(
            provider=rate.get("provider") or self.provider_name,
            service=service,
            price=price,
            currency=rate.get("currency") or "USD",
            transitDays=transit,
        )

    def normalize_rates(self, data: Any) -> List[Quote]:
        """Rates from a /shipments/ response, cheapest first."""
        rates = self._as_dict(data).get("rates") or []
        quotes = [q for q in (self._rate_to_quote(r) for r in rates if isinstance(r, dict)) if q]
        dropped = len(rates) - len(quotes)
        if dropped:
            logger.debug(f"Dropped {dropped} Shippo rate(s) without a usable amount")
        return sorted(quotes, key=lambda q: q.price)

    async def get_quotes(self, parsed: ParsedRequest) -> ProviderResult:
        if not self.enabled:
            return ProviderResult.skipped(self.provider_name, "SHIPPO_API_KEY not configured")

        origin, destination = await self.resolver.resolve_pair(
            parsed.origin, parsed.originCountry, parsed.destination, parsed.destCountry
        )
        if origin is None:
            return ProviderResult.skipped(self.provider_name, f"could not resolve origin '{parsed.origin}'")
        if destination is None:
            return ProviderResult.skipped(
                self.provider_name, f"could not resolve destination '{parsed.destination}'"
            )

        payload = {
            "address_from": self._address_payload(origin, self.SENDER_NAME, self.SENDER_STREET),
            "address_to": self._address_payload(destination, self.RECIPIENT_NAME, self.RECIPIENT_STREET),
            "parcels": self._parcel_payload(parsed),
            "async": False,
        }
        headers = {
            "Authorization": f"ShippoToken {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.info(
            f"Shippo request: {origin.city}, {origin.state} -> {destination.city}, {destination.state} "
            f"({len(parsed.parcels)} parcel(s))"
        )
        try:
            client = get_http_client()
            response = await self._post_with_retry(
                client, f"{self.base_url}/shipments/", json=payload, headers=headers
            )
            data = self._parse_json_safe(response)
        except ProviderError as e:
            logger.warning(f"Shippo error: {e.message}")
            return ProviderResult.failed(self.provider_name, e.message)

        quotes = self.normalize_rates(data)
        logger.info(f"Shippo returned {len(quotes)} rate(s)")
        return ProviderResult.from_quotes(self.provider_name, quotes)

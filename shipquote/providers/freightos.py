"""
Freightos freight estimates

The shipping calculator answers in more than one shape depending on lane
and account, so the body is first classified into a FreightPayload and
then run through an ordered tier pipeline. Each tier offers at most one
quote per category (air, surface); per category the first tier with a
quote wins, so an estimate and a flat rate for the same mode are never
both reported.

Tiers:
1. structured estimate - response.estimatedFreightRates.mode
2. flat rate list      - rates / results
3. static heuristic    - per-kg rates, only when the API gave nothing usable
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..config import get_settings
from ..exceptions import ProviderError
from ..models import ParsedRequest, ProviderResult, Quote
from ..routing.shipment_router import is_freight_class
from ..services.http_pool import get_http_client
from ..utils.logging_security import SecureLogger
from .base import RateProvider

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Freightos"
KG_PER_LB = 0.453592

AIR = "air"
SURFACE = "surface"
CATEGORIES = (AIR, SURFACE)

AIR_MODES = frozenset({"air", "express"})
SURFACE_MODES = frozenset({"lcl", "fcl", "sea", "ocean", "ltl", "ftl"})

# Heuristic rates, USD per kg
AIR_RATE_PER_KG = 3.5
OCEAN_RATE_PER_KG = 0.8
GROUND_RATE_PER_KG = 1.2

PASSTHROUGH_LIMIT = 5


class PayloadKind(str, Enum):
    STRUCTURED_ESTIMATE = "structured_estimate"
    FLAT_RATE_LIST = "flat_rate_list"
    EMPTY = "empty"


@dataclass(frozen=True)
class FreightPayload:
    """A Freightos body classified by shape."""

    kind: PayloadKind
    modes: Tuple[Dict[str, Any], ...] = ()
    rates: Tuple[Dict[str, Any], ...] = ()

    @classmethod
    def classify(cls, data: Any) -> "FreightPayload":
        if not isinstance(data, dict):
            return cls(PayloadKind.EMPTY)

        response = data.get("response")
        estimated = response.get("estimatedFreightRates") if isinstance(response, dict) else None
        raw_modes = estimated.get("mode") if isinstance(estimated, dict) else None
        if isinstance(raw_modes, dict):
            raw_modes = [raw_modes]
        modes = tuple(m for m in raw_modes or [] if isinstance(m, dict))

        raw_rates = data.get("rates") or data.get("results") or []
        rates = tuple(r for r in raw_rates if isinstance(r, dict)) if isinstance(raw_rates, list) else ()

        if modes:
            return cls(PayloadKind.STRUCTURED_ESTIMATE, modes=modes, rates=rates)
        if rates:
            return cls(PayloadKind.FLAT_RATE_LIST, rates=rates)
        return cls(PayloadKind.EMPTY)


@dataclass(frozen=True)
class ShipmentProfile:
    """What the tiers need to know about the shipment."""

    domestic: bool
    freight_class: bool
    weight_kg: int

    @classmethod
    def from_parsed(cls, parsed: ParsedRequest) -> "ShipmentProfile":
        return cls(
            domestic=not parsed.isInternational,
            freight_class=is_freight_class(parsed.parcels, parsed.isPallet),
            weight_kg=math.ceil(parsed.total_weight * KG_PER_LB),
        )

    @property
    def ground(self) -> bool:
        """Domestic freight-class loads move by truck; air is not offered."""
        return self.domestic and self.freight_class

    @property
    def categories(self) -> Tuple[str, ...]:
        return (SURFACE,) if self.ground else CATEGORIES

    @property
    def surface_label(self) -> str:
        return "Ground Freight" if self.ground else "Ocean Freight"

    @property
    def surface_mode(self) -> str:
        return "Ground" if self.ground else "Ocean/LCL"


@dataclass
class TierOutcome:
    quotes: Dict[str, Quote] = field(default_factory=dict)
    # Untagged entries to return as-is when no tier produced anything
    passthrough: List[Quote] = field(default_factory=list)


@dataclass(frozen=True)
class FreightTier:
    name: str
    handler: Callable[[FreightPayload, ShipmentProfile], TierOutcome]
    # Runs only when no earlier tier produced a quote
    fallback_only: bool = False


def _number(value: Any) -> Optional[float]:
    return RateProvider._to_float(value)


def _cheapest(entries: List[Tuple[float, Dict[str, Any]]]) -> Optional[Tuple[float, Dict[str, Any]]]:
    return min(entries, key=lambda e: e[0]) if entries else None


# ==========================================================================
# Tier 1: structured estimate
# ==========================================================================

def _estimate_price(mode: Dict[str, Any]) -> Tuple[Optional[float], str]:
    price = RateProvider._as_dict(mode.get("price"))
    minimum = RateProvider._as_dict(RateProvider._as_dict(price.get("min")).get("moneyAmount"))
    flat = RateProvider._as_dict(price.get("moneyAmount"))
    amount = _number(minimum.get("amount")) or _number(flat.get("amount"))
    currency = minimum.get("currency") or flat.get("currency") or "USD"
    return amount, currency


def _estimate_transit(mode: Dict[str, Any]) -> Optional[str]:
    transit = RateProvider._as_dict(mode.get("transitTimes"))
    unit = transit.get("unit") or "days"
    if transit.get("min") and transit.get("max"):
        return f"{transit['min']}-{transit['max']} {unit}"
    if transit.get("min"):
        return f"{transit['min']} {unit}"
    return None


def structured_estimate_tier(payload: FreightPayload, profile: ShipmentProfile) -> TierOutcome:
    buckets: Dict[str, List[Tuple[float, Dict[str, Any]]]] = {AIR: [], SURFACE: []}
    for mode in payload.modes:
        name = str(mode.get("mode") or "").lower()
        price, _ = _estimate_price(mode)
        if not price or price <= 0:
            continue
        if name in AIR_MODES:
            buckets[AIR].append((price, mode))
        elif name in SURFACE_MODES:
            buckets[SURFACE].append((price, mode))

    outcome = TierOutcome()
    for category in profile.categories:
        best = _cheapest(buckets[category])
        if not best:
            continue
        price, mode = best
        _, currency = _estimate_price(mode)
        label = "Air Freight" if category == AIR else profile.surface_label
        outcome.quotes[category] = Quote(
            provider=PROVIDER_NAME,
            service=f"{label} (Estimate)",
            price=price,
            currency=currency,
            mode=str(mode.get("mode")).upper(),
            transitDays=_estimate_transit(mode),
        )
    return outcome


# ==========================================================================
# Tier 2: flat rate list
# ==========================================================================

def _rate_price(rate: Dict[str, Any]) -> Optional[float]:
    for key in ("price", "totalPrice", "amount"):
        value = _number(rate.get(key))
        if value:
            return value
    return None


def _rate_transit(rate: Dict[str, Any]) -> str:
    return rate.get("transitTime") or rate.get("transit_time") or "Varies"


def _rate_category(rate: Dict[str, Any]) -> Optional[str]:
    mode = str(rate.get("mode") or "").lower()
    transport = str(rate.get("transportMode") or "").upper()
    if mode == "air" or transport == "AIR":
        return AIR
    if mode in ("sea", "ocean") or transport in ("SEA", "LCL", "FCL"):
        return SURFACE
    return None


def flat_rate_tier(payload: FreightPayload, profile: ShipmentProfile) -> TierOutcome:
    buckets: Dict[str, List[Tuple[float, Dict[str, Any]]]] = {AIR: [], SURFACE: []}
    tagged = False
    for rate in payload.rates:
        category = _rate_category(rate)
        if category is None:
            continue
        tagged = True
        price = _rate_price(rate)
        if price:
            buckets[category].append((price, rate))

    outcome = TierOutcome()
    for category in profile.categories:
        best = _cheapest(buckets[category])
        if not best:
            continue
        price, rate = best
        if category == AIR:
            service, mode = "Air Freight (Cheapest)", "Air"
        else:
            service, mode = f"{profile.surface_label} (Cheapest)", profile.surface_mode
        outcome.quotes[category] = Quote(
            provider=PROVIDER_NAME,
            service=service,
            price=price,
            currency=rate.get("currency") or "USD",
            mode=mode,
            transitDays=_rate_transit(rate),
        )

    if not tagged:
        outcome.passthrough = [
            Quote(
                provider=PROVIDER_NAME,
                service=rate.get("serviceName") or rate.get("service") or "Freight",
                price=_rate_price(rate) or 0.0,
                currency=rate.get("currency") or "USD",
                mode=rate.get("mode") or rate.get("transportMode") or "Freight",
                transitDays=_rate_transit(rate),
            )
            for rate in payload.rates[:PASSTHROUGH_LIMIT]
        ]
    return outcome


# ==========================================================================
# Tier 3: static heuristic
# ==========================================================================

def heuristic_tier(payload: FreightPayload, profile: ShipmentProfile) -> TierOutcome:
    outcome = TierOutcome()
    if AIR in profile.categories:
        outcome.quotes[AIR] = Quote(
            provider=PROVIDER_NAME,
            service="Air Freight (Estimate)",
            price=round(profile.weight_kg * AIR_RATE_PER_KG, 2),
            currency="USD",
            mode="Air",
            transitDays="3-7 days",
        )
    rate = GROUND_RATE_PER_KG if profile.ground else OCEAN_RATE_PER_KG
    outcome.quotes[SURFACE] = Quote(
        provider=PROVIDER_NAME,
        service=f"{profile.surface_label} (Estimate)",
        price=round(profile.weight_kg * rate, 2),
        currency="USD",
        mode=profile.surface_mode,
        transitDays="2-7 days" if profile.domestic else "15-30 days",
    )
    return outcome


FREIGHT_TIERS: Tuple[FreightTier, ...] = (
    FreightTier("structured_estimate", structured_estimate_tier),
    FreightTier("flat_rate_list", flat_rate_tier),
    FreightTier("heuristic", heuristic_tier, fallback_only=True),
)


def normalize_freight(payload: FreightPayload, profile: ShipmentProfile) -> List[Quote]:
    """Run the tiers in order; output is air first, then surface."""
    filled: Dict[str, Quote] = {}
    for tier in FREIGHT_TIERS:
        missing = [c for c in profile.categories if c not in filled]
        if not missing or (tier.fallback_only and filled):
            break
        outcome = tier.handler(payload, profile)
        for category in missing:
            if category in outcome.quotes:
                filled[category] = outcome.quotes[category]
                logger.debug(f"Freight {category} quote from tier '{tier.name}'")
        if not filled and outcome.passthrough:
            logger.debug(f"Returning {len(outcome.passthrough)} untagged Freightos rate(s) as-is")
            return outcome.passthrough
    return [filled[c] for c in CATEGORIES if c in filled]


def _format_measure(value: float, unit: str) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text}{unit}"


class FreightosProvider(RateProvider):
    """Freight/LTL estimates from the Freightos shipping calculator."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        super().__init__(timeout=timeout or settings.http_timeout)
        self.api_key = api_key if api_key is not None else settings.freightos_api_key
        self.base_url = (base_url or settings.freightos_base_url).rstrip("/")

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    def build_params(self, parsed: ParsedRequest) -> Dict[str, str]:
        count = max(len(parsed.parcels), 1)
        per_unit = parsed.total_weight / count
        params = {
            "estimate": "true",
            "loadtype": "pallets" if parsed.isPallet else "boxes",
            "origin": parsed.origin,
            "destination": parsed.destination,
            "weight": _format_measure(per_unit, "lb"),
            "length": _format_measure(max((p.length for p in parsed.parcels), default=0), "inch"),
            "width": _format_measure(max((p.width for p in parsed.parcels), default=0), "inch"),
            "height": _format_measure(max((p.height for p in parsed.parcels), default=0), "inch"),
            "quantity": str(count),
            "format": "json",
            "resultSet": "all",
        }
        if self.api_key:
            params["apiKey"] = self.api_key
        return params

    async def get_quotes(self, parsed: ParsedRequest) -> ProviderResult:
        params = self.build_params(parsed)
        logger.info(f"Freightos request: {SecureLogger.sanitize_params(params)}")

        try:
            client = get_http_client()
            response = await self._get_with_retry(
                client,
                f"{self.base_url}/api/shippingCalculator",
                params=params,
                headers={"Accept": "application/json"},
            )
            data = self._parse_json_safe(response)
        except ProviderError as e:
            logger.warning(f"Freightos error: {e.message}")
            return ProviderResult.failed(self.provider_name, e.message)

        payload = FreightPayload.classify(data)
        quotes = normalize_freight(payload, ShipmentProfile.from_parsed(parsed))
        logger.info(f"Freightos {payload.kind.value} payload -> {len(quotes)} quote(s)")
        return ProviderResult.from_quotes(self.provider_name, quotes)

"""
Shipment Router - decides which rate provider(s) to query

Pure functions over a ParsedRequest: no I/O, no randomness, so the same
request always produces the same routing label.

Routing table:
    pallet, or international without a parcel-style reason -> Freightos only
    domestic single parcel under 70 lb                      -> Shippo only
    anything else                                           -> both, compared
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from ..models import Parcel, ParsedRequest

logger = logging.getLogger(__name__)

HEAVY_SHIPMENT_LB = 150.0
BULKY_SHIPMENT_IN3 = 50000.0
SMALL_PARCEL_MAX_LB = 70.0

FREIGHT_ONLY = "Freightos Only (Freight)"
SMALL_PARCEL_ONLY = "Shippo Only (Domestic Parcel)"
BOTH_PROVIDERS = "Both (Comparison)"
INCOMPLETE = "incomplete"
ERROR = "error"


@dataclass(frozen=True)
class RoutingDecision:
    """Result of a routing decision."""
    label: str
    use_small_parcel: bool
    use_freight: bool
    reasoning: str = ""


def total_weight(parcels: Iterable[Parcel]) -> float:
    return sum(p.weight for p in parcels)


def total_volume(parcels: Iterable[Parcel]) -> float:
    return sum(p.length * p.width * p.height for p in parcels)


def is_heavy(parcels: Iterable[Parcel]) -> bool:
    return total_weight(parcels) > HEAVY_SHIPMENT_LB


def is_bulky(parcels: Iterable[Parcel]) -> bool:
    return total_volume(parcels) > BULKY_SHIPMENT_IN3


def needs_both_quotes(parcels: list[Parcel], is_international: bool, is_pallet: bool) -> bool:
    """True when parcel and freight pricing are both worth comparing."""
    multiple_boxes = len(parcels) > 1
    return (
        multiple_boxes
        or (is_international and not is_pallet)
        or is_heavy(parcels)
        or is_bulky(parcels)
    )


def is_freight_class(parcels: list[Parcel], is_pallet: bool) -> bool:
    """Pallet loads and anything over the weight/volume thresholds."""
    return is_pallet or is_heavy(parcels) or is_bulky(parcels)


class ShipmentRouter:
    """Maps a ParsedRequest onto the provider routing table."""

    def route(self, parsed: ParsedRequest) -> RoutingDecision:
        if parsed.isPallet or (parsed.isInternational and not parsed.needsBothQuotes):
            reason = "pallet load" if parsed.isPallet else "international freight"
            return RoutingDecision(FREIGHT_ONLY, use_small_parcel=False, use_freight=True, reasoning=reason)

        if (
            not parsed.isInternational
            and len(parsed.parcels) == 1
            and parsed.parcels[0].weight < SMALL_PARCEL_MAX_LB
        ):
            return RoutingDecision(
                SMALL_PARCEL_ONLY,
                use_small_parcel=True,
                use_freight=False,
                reasoning=f"domestic single parcel under {SMALL_PARCEL_MAX_LB:g} lb",
            )

        return RoutingDecision(
            BOTH_PROVIDERS,
            use_small_parcel=True,
            use_freight=True,
            reasoning="multiple boxes, heavy/bulky or international parcels",
        )

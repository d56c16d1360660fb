"""
Routing Module

Components:
- CountryResolver: location -> country code, international/pallet keywords
- ShipmentRouter: routing table deciding which rate provider(s) to query
"""

from .country_resolver import CountryResolver
from .shipment_router import (
    BOTH_PROVIDERS,
    FREIGHT_ONLY,
    SMALL_PARCEL_ONLY,
    RoutingDecision,
    ShipmentRouter,
    is_freight_class,
    needs_both_quotes,
)

__all__ = [
    "CountryResolver",
    "ShipmentRouter",
    "RoutingDecision",
    "FREIGHT_ONLY",
    "SMALL_PARCEL_ONLY",
    "BOTH_PROVIDERS",
    "is_freight_class",
    "needs_both_quotes",
]

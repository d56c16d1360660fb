"""
Shared pytest fixtures for shipquote tests.

Import fixtures from here instead of defining them in individual test files.
"""
from __future__ import annotations

import os
from typing import Any, Dict, List

import pytest

# Set test environment before importing application modules
os.environ["NODE_ENV"] = "test"
for _key in ("SHIPPO_API_KEY", "FREIGHTOS_API_KEY", "QUOTE_DB_PATH"):
    os.environ.pop(_key, None)

from shipquote.models import Parcel, ParsedRequest, ResolvedAddress  # noqa: E402


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def domestic_parcel_request() -> ParsedRequest:
    return ParsedRequest(
        parcels=[Parcel(length=24, width=10, height=10, weight=20)],
        origin="33142",
        destination="90210",
    )


@pytest.fixture
def international_request() -> ParsedRequest:
    return ParsedRequest(
        parcels=[Parcel(length=20, width=20, height=20, weight=40)],
        origin="Miami",
        destination="Bogota",
        destCountry="CO",
        isInternational=True,
        needsBothQuotes=True,
    )


@pytest.fixture
def domestic_pallet_request() -> ParsedRequest:
    return ParsedRequest(
        parcels=[Parcel(length=48, width=40, height=48, weight=500)],
        origin="Miami",
        destination="Dallas",
        isPallet=True,
        needsBothQuotes=True,
    )


@pytest.fixture
def miami_address() -> ResolvedAddress:
    return ResolvedAddress(city="Miami", state="FL", zip="33142", country="US")


@pytest.fixture
def beverly_hills_address() -> ResolvedAddress:
    return ResolvedAddress(city="Beverly Hills", state="CA", zip="90210", country="US")


@pytest.fixture
def shippo_rates_response() -> Dict[str, Any]:
    """Sample Shippo /shipments/ response."""
    return {
        "object_id": "shp_123",
        "status": "SUCCESS",
        "rates": [
            {
                "provider": "UPS",
                "servicelevel": {"name": "Ground", "token": "ups_ground"},
                "amount": "18.40",
                "currency": "USD",
                "estimated_days": 4,
            },
            {
                "provider": "USPS",
                "servicelevel_name": "Priority Mail",
                "amount": "12.15",
                "currency": "USD",
                "duration_terms": "1-3 business days",
            },
            {
                "provider": "FedEx",
                "servicelevel": {},
                "amount": "n/a",
                "currency": "USD",
            },
        ],
    }


@pytest.fixture
def freightos_estimate_response() -> Dict[str, Any]:
    """Sample Freightos estimate (structured) response."""
    return {
        "response": {
            "estimatedFreightRates": {
                "numQuotes": 3,
                "mode": [
                    {
                        "mode": "air",
                        "price": {
                            "min": {"moneyAmount": {"amount": "410.50", "currency": "USD"}},
                            "max": {"moneyAmount": {"amount": "520.00", "currency": "USD"}},
                        },
                        "transitTimes": {"min": "3", "max": "6", "unit": "days"},
                    },
                    {
                        "mode": "LCL",
                        "price": {
                            "min": {"moneyAmount": {"amount": "180.00", "currency": "USD"}},
                        },
                        "transitTimes": {"min": "20", "max": "30"},
                    },
                    {
                        "mode": "FCL",
                        "price": {"moneyAmount": {"amount": "950.00", "currency": "USD"}},
                        "transitTimes": {"min": "18"},
                    },
                ],
            }
        }
    }


@pytest.fixture
def freightos_flat_rates() -> List[Dict[str, Any]]:
    return [
        {"mode": "air", "price": 640.0, "currency": "USD", "transitTime": "4 days"},
        {"transportMode": "AIR", "totalPrice": 590.0, "transitTime": "5 days"},
        {"mode": "ocean", "amount": 210.0, "transit_time": "25 days"},
        {"transportMode": "LCL", "price": 260.0},
    ]


# ============================================================================
# Cleanup Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset singleton services between tests."""
    yield
    from shipquote.services.cache import address_cache
    address_cache.clear()

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Parcel(BaseModel):
    """A single box, always in inches and pounds."""

    length: float = Field(gt=0)
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    weight: float = Field(gt=0)

    @property
    def volume(self) -> float:
        return self.length * self.width * self.height


class ParsedRequest(BaseModel):
    parcels: List[Parcel] = Field(default_factory=list)
    origin: str = ""
    destination: str = ""
    originCountry: str = "US"
    destCountry: str = "US"
    isInternational: bool = False
    isPallet: bool = False
    needsBothQuotes: bool = False

    @property
    def total_weight(self) -> float:
        return sum(p.weight for p in self.parcels)

    @property
    def total_volume(self) -> float:
        return sum(p.volume for p in self.parcels)


class ResolvedAddress(BaseModel):
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = "US"

    @property
    def is_complete(self) -> bool:
        return bool(self.city and self.state)


class Quote(BaseModel):
    provider: str
    service: str
    price: float
    currency: str = "USD"
    transitDays: Optional[str] = None
    mode: Optional[str] = None


class ProviderStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"        # provider answered but had no rates
    FAILED = "failed"      # network, HTTP, timeout or malformed body
    SKIPPED = "skipped"    # not called: missing key or unresolved address


class ProviderResult(BaseModel):
    """Outcome of one provider path, so callers can tell 'no rates' from 'call failed'."""

    provider: str
    quotes: List[Quote] = Field(default_factory=list)
    status: ProviderStatus = ProviderStatus.OK
    reason: Optional[str] = None

    @classmethod
    def from_quotes(cls, provider: str, quotes: List[Quote]) -> "ProviderResult":
        if not quotes:
            return cls(provider=provider, status=ProviderStatus.EMPTY, reason="no rates returned")
        return cls(provider=provider, quotes=quotes, status=ProviderStatus.OK)

    @classmethod
    def failed(cls, provider: str, reason: str) -> "ProviderResult":
        return cls(provider=provider, status=ProviderStatus.FAILED, reason=reason)

    @classmethod
    def skipped(cls, provider: str, reason: str) -> "ProviderResult":
        return cls(provider=provider, status=ProviderStatus.SKIPPED, reason=reason)


class QuoteRequest(BaseModel):
    request: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None


class QuoteResponse(BaseModel):
    success: bool
    quotes: List[Quote] = Field(default_factory=list)
    shippo: Optional[List[Quote]] = None
    freightos: Optional[List[Quote]] = None
    routing: str
    parsed: ParsedRequest = Field(default_factory=ParsedRequest)
    missingInfo: Optional[List[str]] = None
    providerStatus: Optional[Dict[str, ProviderStatus]] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    services: Dict[str, bool]
    cache: Dict[str, Any]

"""
Country Resolver - country classification for shipment locations

This module provides:
1. Location -> ISO alpha-2 country code (ZIP, US keywords, city lexicons)
2. International-shipment indicator detection on the raw request text
3. Pallet/freight keyword detection
4. US state name/abbreviation normalization for address resolution

Lexicons are matched on folded text (lowercase, no diacritics) with word
boundaries, so "Bogotá" and "bogota" are the same token.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple

from ..utils.text import fold_text

logger = logging.getLogger(__name__)


def _word_regex(words) -> re.Pattern:
    alternation = "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))
    return re.compile(rf"(?<![a-z0-9])(?:{alternation})(?![a-z0-9])")


class CountryResolver:
    """
    Classifies free-text locations by country.

    US is checked first and is also the default when nothing matches,
    since most requests are domestic and a bare street or city name
    usually is too.
    """

    DEFAULT_COUNTRY = "US"

    US_ZIP_RE = re.compile(r"^\d{5}(?:-\d{4})?$")
    US_ZIP_SEARCH_RE = re.compile(r"\b\d{5}(?:-\d{4})?\b")

    US_KEYWORDS = [
        "usa", "us", "u.s.", "u.s.a.", "united states", "america",
        "estados unidos", "eeuu", "ee.uu.",
    ]

    US_CITIES = [
        "miami", "los angeles", "new york", "chicago", "houston", "phoenix",
        "philadelphia", "san antonio", "san diego", "dallas", "san jose",
        "austin", "jacksonville", "fort worth", "columbus", "charlotte",
        "seattle", "denver", "boston", "detroit", "nashville", "portland",
        "las vegas", "memphis", "louisville", "baltimore", "milwaukee",
        "albuquerque", "tucson", "fresno", "sacramento", "atlanta",
        "kansas city", "colorado springs", "omaha", "raleigh",
        "virginia beach", "oakland", "minneapolis", "tulsa", "wichita",
        "cleveland", "tampa", "orlando", "new orleans", "pittsburgh",
        "salt lake city", "honolulu", "anchorage", "st louis", "saint louis",
        "indianapolis", "newark", "fort lauderdale", "new mexico",
    ]

    # Ordered: the first country whose keywords match wins.
    COUNTRY_KEYWORDS: List[Tuple[str, List[str]]] = [
        ("CN", ["china", "shanghai", "beijing", "shenzhen", "guangzhou", "ningbo", "xiamen"]),
        ("GB", ["uk", "united kingdom", "london", "manchester", "birmingham", "england", "britain",
                "reino unido", "inglaterra", "londres"]),
        ("DE", ["germany", "alemania", "berlin", "munich", "frankfurt", "hamburg"]),
        ("FR", ["france", "francia", "paris", "lyon", "marseille"]),
        ("JP", ["japan", "japon", "tokyo", "osaka", "kyoto"]),
        ("CA", ["canada", "toronto", "vancouver", "montreal", "ottawa", "calgary"]),
        ("MX", ["mexico", "cdmx", "guadalajara", "monterrey", "cancun", "tijuana", "puebla"]),
        ("IN", ["india", "mumbai", "delhi", "bangalore", "chennai"]),
        ("AU", ["australia", "sydney", "melbourne", "brisbane", "perth"]),
        ("BR", ["brazil", "brasil", "sao paulo", "rio de janeiro", "brasilia"]),
        ("ES", ["spain", "espana", "madrid", "barcelona", "sevilla", "seville"]),
        ("CO", ["colombia", "bogota", "medellin", "cali", "barranquilla", "cartagena"]),
        ("AR", ["argentina", "buenos aires", "cordoba", "rosario", "mendoza"]),
        ("PE", ["peru", "lima", "cusco", "arequipa"]),
        ("CL", ["chile", "santiago", "valparaiso"]),
        ("VE", ["venezuela", "caracas", "maracaibo", "valencia"]),
        ("IT", ["italy", "italia", "rome", "roma", "milan", "milano"]),
        ("NL", ["netherlands", "holland", "holanda", "amsterdam", "rotterdam"]),
        ("KR", ["south korea", "korea", "corea", "seoul"]),
        ("VN", ["vietnam", "hanoi", "ho chi minh"]),
        ("TH", ["thailand", "tailandia", "bangkok"]),
        ("SG", ["singapore", "singapur"]),
        ("HK", ["hong kong"]),
        ("TW", ["taiwan", "taipei"]),
        ("EC", ["ecuador", "quito", "guayaquil"]),
        ("DO", ["dominican republic", "republica dominicana", "santo domingo"]),
        ("PA", ["panama"]),
        ("CR", ["costa rica"]),
        ("GT", ["guatemala"]),
    ]

    # Phrasing that marks a shipment as international even when the city
    # lexicons do not recognize the places.
    INTERNATIONAL_INDICATORS = [
        "international", "internacional", "internationally", "overseas",
        "abroad", "extranjero", "export", "exports", "exporting", "exportar",
        "exportacion", "import", "imports", "importing", "importar",
        "importacion", "customs", "aduana", "aduanas", "cross-border",
        "cross border", "worldwide", "ocean freight", "flete maritimo",
    ]

    PALLET_KEYWORDS = [
        "pallet", "pallets", "palet", "palets", "paleta", "paletas",
        "tarima", "tarimas", "skid", "skids", "freight", "lcl", "fcl",
        "ltl", "ftl", "container", "containers", "contenedor",
        "contenedores",
    ]

    US_STATES: Dict[str, str] = {
        "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
        "california": "CA", "colorado": "CO", "connecticut": "CT",
        "delaware": "DE", "district of columbia": "DC", "florida": "FL",
        "georgia": "GA", "hawaii": "HI", "idaho": "ID", "illinois": "IL",
        "indiana": "IN", "iowa": "IA", "kansas": "KS", "kentucky": "KY",
        "louisiana": "LA", "maine": "ME", "maryland": "MD",
        "massachusetts": "MA", "michigan": "MI", "minnesota": "MN",
        "mississippi": "MS", "missouri": "MO", "montana": "MT",
        "nebraska": "NE", "nevada": "NV", "new hampshire": "NH",
        "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
        "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
        "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA",
        "puerto rico": "PR", "rhode island": "RI", "south carolina": "SC",
        "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
        "vermont": "VT", "virginia": "VA", "washington": "WA",
        "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
    }

    _US_KEYWORD_RE = _word_regex(US_KEYWORDS)
    _US_CITY_RE = _word_regex(US_CITIES)
    _COUNTRY_RES = [(code, _word_regex(words)) for code, words in COUNTRY_KEYWORDS]
    _INTERNATIONAL_RE = _word_regex(INTERNATIONAL_INDICATORS)
    _PALLET_RE = _word_regex(PALLET_KEYWORDS)
    _STATE_CODES = frozenset(US_STATES.values())
    _INLINE_STATE_RE = re.compile(r"(?:^|[\s,])([A-Za-z]{2})(?=$|[\s,.]|\d)")

    @classmethod
    def detect_country(cls, location: str) -> str:
        """Classify a location string as an ISO alpha-2 code (default US)."""
        if not location:
            return cls.DEFAULT_COUNTRY

        stripped = location.strip()
        if cls.US_ZIP_RE.match(stripped):
            return "US"

        loc = fold_text(stripped)
        if cls._US_KEYWORD_RE.search(loc) or cls._US_CITY_RE.search(loc):
            return "US"

        for code, pattern in cls._COUNTRY_RES:
            if pattern.search(loc):
                return code

        return cls.DEFAULT_COUNTRY

    @classmethod
    def has_international_indicator(cls, text: str) -> bool:
        return bool(text) and cls._INTERNATIONAL_RE.search(fold_text(text)) is not None

    @classmethod
    def is_international(cls, origin_country: str, dest_country: str, text: str = "") -> bool:
        return origin_country != dest_country or cls.has_international_indicator(text)

    @classmethod
    def is_pallet(cls, text: str) -> bool:
        return bool(text) and cls._PALLET_RE.search(fold_text(text)) is not None

    @classmethod
    def us_state_code(cls, value: Optional[str]) -> Optional[str]:
        """Normalize a US state name or abbreviation to its 2-letter code."""
        if not value:
            return None
        key = fold_text(value.strip()).rstrip(".")
        if key.upper() in cls._STATE_CODES:
            return key.upper()
        return cls.US_STATES.get(key)

    @classmethod
    def find_state_code(cls, text: str) -> Optional[str]:
        """Find an inline state abbreviation, e.g. "Springfield, IL 62701" -> "IL".

        Only uppercase tokens count, so words such as "in" or "me" are not
        taken for Indiana or Maine.
        """
        if not text:
            return None
        for match in cls._INLINE_STATE_RE.finditer(text):
            token = match.group(1)
            if token.isupper() and token in cls._STATE_CODES:
                return token
        return None

    @classmethod
    def find_zip(cls, text: str) -> Optional[str]:
        """First 5-digit ZIP in the text (the +4 suffix is dropped)."""
        if not text:
            return None
        match = cls.US_ZIP_SEARCH_RE.search(text)
        return match.group(0)[:5] if match else None

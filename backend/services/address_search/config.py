"""
Address Search Configuration

Read from environment variables. Keys and variant lists are read on each
call so a process can pick up changes without a restart; timeouts and URLs
are fixed at import.
"""

import logging
import os
from typing import List, Optional

from .region import DEFAULT_REGION_SPAN_M

logger = logging.getLogger(__name__)

# Google Geocoding API (address string + postal address sources)
GOOGLE_GEOCODE_BASE = os.environ.get(
    "GOOGLE_GEOCODE_URL", "https://maps.googleapis.com/maps/api/geocode/json"
)
GOOGLE_GEOCODE_TIMEOUT = float(os.environ.get("GOOGLE_GEOCODE_TIMEOUT", "10"))

# Nominatim search (regional text search source)
NOMINATIM_SEARCH_URL = os.environ.get(
    "NOMINATIM_SEARCH_URL", "https://nominatim.openstreetmap.org/search"
)
NOMINATIM_TIMEOUT = float(os.environ.get("NOMINATIM_TIMEOUT", "15"))
NOMINATIM_LIMIT = int(os.environ.get("NOMINATIM_LIMIT", "10"))
DEFAULT_NOMINATIM_USER_AGENT = "address-search/1.0"

# Field variants understood by the postal address source, mapped to the
# Google component filter each one places the query into.
POSTAL_FIELD_COMPONENTS = {
    "street": "route",
    "sub_locality": "locality",
    "city": "locality",
    "sub_administrative_area": "administrative_area",
    "state": "administrative_area",
    "country": "country",
}
DEFAULT_POSTAL_VARIANTS = ["street"]


def get_google_api_key() -> Optional[str]:
    key = os.environ.get("GOOGLE_MAPS_API_KEY", "").strip()
    return key or None


def get_nominatim_user_agent() -> str:
    return os.environ.get("NOMINATIM_USER_AGENT", "").strip() or DEFAULT_NOMINATIM_USER_AGENT


def parse_postal_variants(raw: Optional[str]) -> List[str]:
    """
    Parse a comma separated variant list. Unknown names are dropped with a
    warning; duplicates keep their first position. None means the default.
    """
    if raw is None:
        return list(DEFAULT_POSTAL_VARIANTS)

    variants = []
    for name in raw.split(","):
        name = name.strip()
        if not name:
            continue
        if name not in POSTAL_FIELD_COMPONENTS:
            logger.warning(f"Unknown postal address variant '{name}' - ignored")
            continue
        if name not in variants:
            variants.append(name)
    return variants


def get_postal_variants() -> List[str]:
    return parse_postal_variants(os.environ.get("ADDRESS_SEARCH_POSTAL_VARIANTS"))


def get_region_span_meters() -> float:
    raw = os.environ.get("ADDRESS_SEARCH_REGION_SPAN_M")
    if not raw:
        return float(DEFAULT_REGION_SPAN_M)
    try:
        span = float(raw)
    except ValueError:
        logger.warning(f"Invalid ADDRESS_SEARCH_REGION_SPAN_M '{raw}' - using default")
        return float(DEFAULT_REGION_SPAN_M)
    if span <= 0:
        logger.warning(f"Non-positive ADDRESS_SEARCH_REGION_SPAN_M '{raw}' - using default")
        return float(DEFAULT_REGION_SPAN_M)
    return span

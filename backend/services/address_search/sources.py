"""
Source Lookup Adapters

Three lookup strategies behind one async signature:

    lookup(query, context) -> LookupOutcome

    geocode_address_string   Google Geocoding, address=<query>
    geocode_postal_address   Google Geocoding, components=<field>:<query>
                             for the single field variant in the context
    search_region            Nominatim /search biased to the context region

Failures never raise. They come back as a LookupOutcome with an error kind:
RATE_LIMITED for quota/throttling signals, OTHER for everything else
(including "no match", which is not distinguished from real errors).
Timeouts are enforced here, not by the orchestrator.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple

import httpx

from . import config
from .placemark import PlacemarkRecord
from .region import SearchRegion

logger = logging.getLogger(__name__)


class LookupSource(str, Enum):
    ADDRESS_STRING = "address_string"
    POSTAL_ADDRESS = "postal_address"
    REGION_SEARCH = "region_search"


class ErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    OTHER = "other"


@dataclass(frozen=True)
class LookupOutcome:
    records: Tuple[PlacemarkRecord, ...] = ()
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, records) -> "LookupOutcome":
        return cls(records=tuple(records))

    @classmethod
    def failure(cls) -> "LookupOutcome":
        return cls(error_kind=ErrorKind.OTHER)

    @classmethod
    def rate_limited(cls) -> "LookupOutcome":
        return cls(error_kind=ErrorKind.RATE_LIMITED)


@dataclass(frozen=True)
class LookupContext:
    """Per-call inputs besides the query text."""
    region: Optional[SearchRegion] = None
    field_variant: Optional[str] = None


LookupFn = Callable[[str, LookupContext], Awaitable[LookupOutcome]]


# =============================================================================
# NORMALIZATION
# =============================================================================

def _first_segment(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    return text.split(",")[0].strip() or None


def placemark_from_google(result: dict) -> PlacemarkRecord:
    """Normalize one Google Geocoding result."""
    components = {}
    for comp in result.get("address_components") or []:
        for t in comp.get("types") or []:
            components.setdefault(t, comp)

    def long_name(*types):
        for t in types:
            value = components.get(t, {}).get("long_name")
            if value:
                return value
        return None

    loc = (result.get("geometry") or {}).get("location") or {}
    return PlacemarkRecord(
        name=_first_segment(result.get("formatted_address")),
        country=long_name("country"),
        administrative_area=long_name("administrative_area_level_1"),
        sub_administrative_area=long_name("administrative_area_level_2"),
        locality=long_name("locality", "postal_town"),
        sub_locality=long_name("sublocality_level_1", "sublocality"),
        thoroughfare=long_name("route"),
        sub_thoroughfare=long_name("street_number"),
        latitude=loc.get("lat"),
        longitude=loc.get("lng"),
    )


def placemark_from_nominatim(item: dict) -> PlacemarkRecord:
    """Normalize one Nominatim jsonv2 search result (addressdetails=1)."""
    address = item.get("address") or {}

    def first(*keys):
        for k in keys:
            if address.get(k):
                return address[k]
        return None

    def as_float(value):
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    return PlacemarkRecord(
        name=item.get("name") or _first_segment(item.get("display_name")),
        country=first("country"),
        administrative_area=first("state"),
        sub_administrative_area=first("county"),
        locality=first("city", "town", "village", "hamlet"),
        sub_locality=first("suburb", "neighbourhood", "quarter"),
        thoroughfare=first("road"),
        sub_thoroughfare=first("house_number"),
        latitude=as_float(item.get("lat")),
        longitude=as_float(item.get("lon")),
    )


# =============================================================================
# HTTP
# =============================================================================

async def _get(
    url: str,
    params: dict,
    timeout: float,
    headers: Optional[dict] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> httpx.Response:
    if client is not None:
        return await client.get(url, params=params, headers=headers, timeout=timeout)
    async with httpx.AsyncClient(timeout=timeout) as own_client:
        return await own_client.get(url, params=params, headers=headers)


async def _google_geocode(
    params: dict,
    description: str,
    client: Optional[httpx.AsyncClient] = None,
) -> LookupOutcome:
    try:
        response = await _get(
            config.GOOGLE_GEOCODE_BASE, params, config.GOOGLE_GEOCODE_TIMEOUT, client=client
        )
    except httpx.TimeoutException:
        logger.warning(f"Google geocoder timeout for {description}")
        return LookupOutcome.failure()
    except httpx.HTTPError as e:
        logger.warning(f"Google geocoder error for {description}: {e}")
        return LookupOutcome.failure()

    if response.status_code == 429:
        logger.info(f"Google: HTTP 429 for {description}")
        return LookupOutcome.rate_limited()
    if response.status_code >= 400:
        logger.warning(f"Google: HTTP {response.status_code} for {description}")
        return LookupOutcome.failure()

    try:
        data = response.json()
    except ValueError as e:
        logger.warning(f"Google: invalid JSON for {description}: {e}")
        return LookupOutcome.failure()
    if not isinstance(data, dict):
        return LookupOutcome.failure()

    status = data.get("status", "")
    if status == "OVER_QUERY_LIMIT":
        logger.info(f"Google: request limit reached for {description}")
        return LookupOutcome.rate_limited()
    if status != "OK":
        logger.info(f"Google: status '{status}' for {description}")
        return LookupOutcome.failure()

    results = [r for r in data.get("results") or [] if isinstance(r, dict)]
    try:
        records = [placemark_from_google(r) for r in results]
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Google: malformed result for {description}: {e}")
        return LookupOutcome.failure()
    return LookupOutcome.success(records)


# =============================================================================
# ADAPTERS
# =============================================================================

async def geocode_address_string(
    query: str,
    context: Optional[LookupContext] = None,
    api_key: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> LookupOutcome:
    """Single free-form geocode of the raw query."""
    if not query or not query.strip():
        return LookupOutcome.failure()

    key = api_key or config.get_google_api_key()
    if not key:
        logger.warning("No Google API key - skipping address string lookup")
        return LookupOutcome.failure()

    return await _google_geocode(
        {"address": query, "key": key},
        f"address '{query}'",
        client=client,
    )


async def geocode_postal_address(
    query: str,
    context: Optional[LookupContext] = None,
    api_key: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> LookupOutcome:
    """
    One field-variant lookup: the query is placed into exactly one structured
    address field (context.field_variant, default "street").
    """
    variant = (context.field_variant if context else None) or "street"
    component = config.POSTAL_FIELD_COMPONENTS.get(variant)
    if component is None:
        logger.warning(f"Unknown postal address variant '{variant}'")
        return LookupOutcome.failure()

    if not query or not query.strip():
        return LookupOutcome.failure()

    key = api_key or config.get_google_api_key()
    if not key:
        logger.warning("No Google API key - skipping postal address lookup")
        return LookupOutcome.failure()

    return await _google_geocode(
        {"components": f"{component}:{query}", "key": key},
        f"{variant} '{query}'",
        client=client,
    )


async def search_region(
    query: str,
    context: Optional[LookupContext] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> LookupOutcome:
    """
    Natural-language search around context.region. The region only biases
    results (bounded=0); one record per result, no dedup.
    """
    if not query or not query.strip():
        return LookupOutcome.failure()

    params = {
        "q": query,
        "format": "jsonv2",
        "addressdetails": 1,
        "limit": config.NOMINATIM_LIMIT,
    }
    region = context.region if context else None
    if region is not None:
        west, north, east, south = region.viewbox()
        params["viewbox"] = f"{west:.6f},{north:.6f},{east:.6f},{south:.6f}"
        params["bounded"] = 0

    headers = {"User-Agent": config.get_nominatim_user_agent()}

    try:
        response = await _get(
            config.NOMINATIM_SEARCH_URL, params, config.NOMINATIM_TIMEOUT,
            headers=headers, client=client,
        )
    except httpx.TimeoutException:
        logger.warning(f"Nominatim timeout for '{query}'")
        return LookupOutcome.failure()
    except httpx.HTTPError as e:
        logger.warning(f"Nominatim error for '{query}': {e}")
        return LookupOutcome.failure()

    if response.status_code == 429:
        logger.info(f"Nominatim: HTTP 429 for '{query}'")
        return LookupOutcome.rate_limited()
    if response.status_code >= 400:
        logger.warning(f"Nominatim: HTTP {response.status_code} for '{query}'")
        return LookupOutcome.failure()

    try:
        payload = response.json()
    except ValueError as e:
        logger.warning(f"Nominatim: invalid JSON for '{query}': {e}")
        return LookupOutcome.failure()

    if not isinstance(payload, list):
        logger.warning(f"Nominatim: unexpected response format for '{query}'")
        return LookupOutcome.failure()

    items = [item for item in payload if isinstance(item, dict)]
    logger.debug(f"Nominatim: {len(items)} results for '{query}'")
    try:
        records = [placemark_from_nominatim(item) for item in items]
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Nominatim: malformed result for '{query}': {e}")
        return LookupOutcome.failure()
    return LookupOutcome.success(records)

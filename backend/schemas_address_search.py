"""
Pydantic Schemas for Address Search
Covers: placemarks, search requests/responses, WebSocket messages, config.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict


# =============================================================================
# PLACEMARKS
# =============================================================================

class PlacemarkSchema(BaseModel):
    """One normalized address record"""
    name: Optional[str] = None
    country: Optional[str] = None
    administrative_area: Optional[str] = None
    sub_administrative_area: Optional[str] = None
    locality: Optional[str] = None
    sub_locality: Optional[str] = None
    thoroughfare: Optional[str] = None
    sub_thoroughfare: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class PlacemarkText(BaseModel):
    """Canonical text key for a placemark"""
    text: str


# =============================================================================
# SEARCH
# =============================================================================

class SearchRequest(BaseModel):
    """One-shot search. Coordinates seed the regional search center."""
    query: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class SearchSection(BaseModel):
    """Display section for one lookup source"""
    source: str                                 # 'address_string', 'postal_address', 'region_search'
    title: str
    rows: List[str]
    empty: bool = False


class SearchResponse(BaseModel):
    query: str
    rate_limited: bool = False
    sections: List[SearchSection] = []
    buckets: Dict[str, List[PlacemarkSchema]] = {}


class LocationUpdate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


# =============================================================================
# CONFIG
# =============================================================================

class AddressSearchConfig(BaseModel):
    sources: List[str]
    postal_variants: List[str]
    available_postal_variants: List[str]
    region_span_meters: float
    google_configured: bool

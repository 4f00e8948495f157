"""
Address Search Router

One-shot search and helper endpoints. Interactive, type-as-you-go search
lives on the WebSocket at /ws/address-search (routers/websocket.py).

Endpoints:
    GET  /api/address-search/config     - Sources, postal variants, region span
    POST /api/address-search/search     - Run one search pass and return all buckets
    POST /api/address-search/format     - Canonical text for a placemark
"""

import logging
from fastapi import APIRouter, HTTPException

from schemas_address_search import (
    AddressSearchConfig, PlacemarkSchema, PlacemarkText,
    SearchRequest, SearchResponse,
)
from services.address_search import config
from services.address_search.orchestrator import (
    SearchResults, SearchSink, create_search_orchestrator,
)
from services.address_search.placemark import PlacemarkRecord, format_placemark
from services.address_search.presentation import build_search_payload
from services.address_search.region import LocationProvider
from services.address_search.sources import LookupSource

logger = logging.getLogger(__name__)

router = APIRouter()


class _CollectingSink(SearchSink):
    """Keeps the last completed pass for a single request."""

    def __init__(self):
        self.payload = None

    def on_search_complete(self, query, results, rate_limited):
        self.payload = build_search_payload(query, results, rate_limited)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/config", response_model=AddressSearchConfig)
async def get_address_search_config():
    """Configuration the frontend needs to label sections."""
    return AddressSearchConfig(
        sources=[source.value for source in LookupSource],
        postal_variants=config.get_postal_variants(),
        available_postal_variants=list(config.POSTAL_FIELD_COMPONENTS),
        region_span_meters=config.get_region_span_meters(),
        google_configured=config.get_google_api_key() is not None,
    )


@router.post("/search", response_model=SearchResponse)
async def search_endpoint(request: SearchRequest):
    """
    Run one full search pass for the query and return every bucket.
    Latitude/longitude, when given, center the regional search.
    """
    location = LocationProvider()
    if (request.latitude is None) != (request.longitude is None):
        raise HTTPException(status_code=400, detail="latitude and longitude must be given together")
    if request.latitude is not None:
        try:
            location.update(request.latitude, request.longitude)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    sink = _CollectingSink()
    orchestrator = create_search_orchestrator(sink, location_provider=location)
    orchestrator.submit(request.query)
    await orchestrator.wait_idle()

    if sink.payload is None:
        # Empty query never starts a pass
        return build_search_payload(request.query, SearchResults(), False)
    return sink.payload


@router.post("/format", response_model=PlacemarkText)
async def format_endpoint(placemark: PlacemarkSchema):
    record = PlacemarkRecord.from_dict(placemark.model_dump())
    return PlacemarkText(text=format_placemark(record))

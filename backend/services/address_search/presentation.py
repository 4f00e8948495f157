"""
Presentation helpers

One section per lookup source, in source order. An empty bucket shows a
single placeholder row; the two geocoder-backed sources show a request
limit message instead when the pass was rate limited.
"""

from typing import List

from .orchestrator import SearchResults
from .placemark import format_placemark
from .sources import LookupSource

SOURCE_TITLES = {
    LookupSource.ADDRESS_STRING: "Geocoder: address string",
    LookupSource.POSTAL_ADDRESS: "Geocoder: postal address",
    LookupSource.REGION_SEARCH: "Regional text search",
}

# Sources affected by the geocoder request limit
RATE_LIMITED_SOURCES = {LookupSource.ADDRESS_STRING, LookupSource.POSTAL_ADDRESS}

NO_PLACEMARKS_TEXT = "No placemarks."
REQUEST_LIMIT_TEXT = "Geocoder request limit occurred."


def placeholder_text(source: LookupSource, rate_limited: bool) -> str:
    if rate_limited and source in RATE_LIMITED_SOURCES:
        return REQUEST_LIMIT_TEXT
    return NO_PLACEMARKS_TEXT


def build_sections(results: SearchResults, rate_limited: bool) -> List[dict]:
    sections = []
    for source in LookupSource:
        records = results.get(source)
        if records:
            rows = [format_placemark(r) for r in records]
            empty = False
        else:
            rows = [placeholder_text(source, rate_limited)]
            empty = True
        sections.append({
            "source": source.value,
            "title": SOURCE_TITLES[source],
            "rows": rows,
            "empty": empty,
        })
    return sections


def build_search_payload(query: str, results: SearchResults, rate_limited: bool) -> dict:
    """JSON-ready payload shared by the REST and WebSocket surfaces."""
    return {
        "query": query,
        "rate_limited": rate_limited,
        "sections": build_sections(results, rate_limited),
        "buckets": {
            source: [record.as_dict() for record in records]
            for source, records in results.as_dict().items()
        },
    }

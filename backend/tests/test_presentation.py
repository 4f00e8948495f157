from services.address_search.orchestrator import SearchResults
from services.address_search.placemark import PlacemarkRecord
from services.address_search.presentation import (
    NO_PLACEMARKS_TEXT, REQUEST_LIMIT_TEXT, build_search_payload, build_sections,
)


def test_sections_follow_source_order_with_placeholders():
    results = SearchResults(region_search=(PlacemarkRecord(name="Tower"),))
    sections = build_sections(results, rate_limited=False)

    assert [s["title"] for s in sections] == [
        "Geocoder: address string",
        "Geocoder: postal address",
        "Regional text search",
    ]
    assert sections[0]["rows"] == [NO_PLACEMARKS_TEXT]
    assert sections[1]["rows"] == [NO_PLACEMARKS_TEXT]
    assert sections[2]["rows"] == ["name[Tower]"]
    assert sections[2]["empty"] is False


def test_request_limit_placeholder_only_for_geocoder_sources():
    sections = build_sections(SearchResults(), rate_limited=True)
    assert [s["rows"][0] for s in sections] == [
        REQUEST_LIMIT_TEXT, REQUEST_LIMIT_TEXT, NO_PLACEMARKS_TEXT,
    ]


def test_rate_limited_source_with_records_shows_records():
    results = SearchResults(postal_address=(PlacemarkRecord(locality="Kyoto"),))
    sections = build_sections(results, rate_limited=True)
    assert sections[1]["rows"] == ["locality[Kyoto]"]


def test_payload_buckets_hold_plain_dicts():
    record = PlacemarkRecord(name="A", latitude=1.5, longitude=2.5)
    payload = build_search_payload("A", SearchResults(address_string=(record,)), False)
    assert payload["buckets"]["address_string"][0]["name"] == "A"
    assert payload["buckets"]["address_string"][0]["latitude"] == 1.5
    assert payload["buckets"]["postal_address"] == []

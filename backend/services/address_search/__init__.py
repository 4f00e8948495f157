"""
Address Search Module

Free-text address search across three independent lookup sources, grouped
by lookup strategy:

    address_string   Google Geocoding API, one call with the raw query
    postal_address   Google Geocoding API, component-filtered, one call per
                     configured field variant (deduplicated)
    region_search    OpenStreetMap Nominatim text search around the latest
                     known device location

The SearchOrchestrator coalesces rapidly changing input into one in-flight
search pass at a time and publishes the finished buckets to a sink.

Usage:
    from services.address_search.orchestrator import create_search_orchestrator
    from services.address_search.placemark import PlacemarkRecord, format_placemark
"""

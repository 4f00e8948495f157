import pytest
from fastapi.testclient import TestClient

from main import app
from services.address_search import sources
from services.address_search.placemark import PlacemarkRecord
from services.address_search.sources import LookupOutcome

MAIN_ST = PlacemarkRecord(name="123 Main St", locality="Springfield", country="United States")
MAIN_ST_ALT = PlacemarkRecord(name="123 Main Street", locality="Springfield")
POSTAL = PlacemarkRecord(thoroughfare="Main St", locality="Shelbyville")


@pytest.fixture
def fake_sources(monkeypatch):
    calls = {"address": [], "postal": [], "region": []}
    outcomes = {
        "address": LookupOutcome.success([MAIN_ST, MAIN_ST_ALT]),
        "postal": LookupOutcome.success([POSTAL]),
        "region": LookupOutcome.success([]),
    }

    def fake(name):
        async def lookup(query, context=None):
            calls[name].append((query, context))
            return outcomes[name]
        return lookup

    monkeypatch.setattr(sources, "geocode_address_string", fake("address"))
    monkeypatch.setattr(sources, "geocode_postal_address", fake("postal"))
    monkeypatch.setattr(sources, "search_region", fake("region"))
    monkeypatch.delenv("ADDRESS_SEARCH_POSTAL_VARIANTS", raising=False)
    return calls, outcomes


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_search_returns_grouped_sections(client, fake_sources):
    resp = client.post("/api/address-search/search", json={"query": "123 Main St"})
    assert resp.status_code == 200
    data = resp.json()

    assert data["query"] == "123 Main St"
    assert data["rate_limited"] is False
    assert [s["source"] for s in data["sections"]] == ["address_string", "postal_address", "region_search"]
    assert len(data["buckets"]["address_string"]) == 2
    assert len(data["buckets"]["postal_address"]) == 1
    assert data["buckets"]["region_search"] == []

    address, postal, region = data["sections"]
    assert address["rows"][0] == "name[123 Main St] country[United States] locality[Springfield]"
    assert postal["rows"] == ["locality[Shelbyville] thoroughfare[Main St]"]
    assert region["rows"] == ["No placemarks."]
    assert region["empty"] is True


def test_search_rate_limited_shows_request_limit_rows(client, fake_sources):
    calls, outcomes = fake_sources
    outcomes["address"] = LookupOutcome.rate_limited()
    outcomes["postal"] = LookupOutcome.failure()

    data = client.post("/api/address-search/search", json={"query": "x"}).json()
    assert data["rate_limited"] is True
    rows = {s["source"]: s["rows"] for s in data["sections"]}
    assert rows["address_string"] == ["Geocoder request limit occurred."]
    assert rows["postal_address"] == ["Geocoder request limit occurred."]
    assert rows["region_search"] == ["No placemarks."]
    assert len(calls["region"]) == 1


def test_search_uses_given_location(client, fake_sources):
    calls, _ = fake_sources
    client.post("/api/address-search/search", json={"query": "x", "latitude": 10.0, "longitude": 20.0})
    context = calls["region"][0][1]
    assert context.region.center.latitude == 10.0
    assert context.region.center.longitude == 20.0


def test_search_rejects_bad_location(client, fake_sources):
    resp = client.post("/api/address-search/search", json={"query": "x", "latitude": 100.0, "longitude": 0.0})
    assert resp.status_code == 400
    resp = client.post("/api/address-search/search", json={"query": "x", "latitude": 1.0})
    assert resp.status_code == 400


def test_search_empty_query_returns_empty_sections(client, fake_sources):
    calls, _ = fake_sources
    data = client.post("/api/address-search/search", json={"query": ""}).json()
    assert calls["address"] == []
    assert all(s["rows"] == ["No placemarks."] for s in data["sections"])


def test_format_endpoint(client):
    resp = client.post("/api/address-search/format", json={"name": "A", "locality": "B"})
    assert resp.json() == {"text": "name[A] locality[B]"}


def test_config_endpoint(client, monkeypatch):
    monkeypatch.setenv("ADDRESS_SEARCH_POSTAL_VARIANTS", "street,city")
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "abc")
    data = client.get("/api/address-search/config").json()
    assert data["postal_variants"] == ["street", "city"]
    assert "country" in data["available_postal_variants"]
    assert data["google_configured"] is True
    assert data["sources"] == ["address_string", "postal_address", "region_search"]


def test_websocket_search_flow(client, fake_sources):
    calls, _ = fake_sources
    with client.websocket_connect("/ws/address-search") as ws:
        connected = ws.receive_json()
        assert connected["type"] == "connected"
        assert connected["postal_variants"] == ["street"]

        ws.send_json({"type": "location", "latitude": 35.0, "longitude": 139.0})
        assert ws.receive_json() == {"type": "location_updated", "latitude": 35.0, "longitude": 139.0}

        ws.send_json({"type": "query", "text": "123 Main St"})
        assert ws.receive_json() == {"type": "search_started", "query": "123 Main St"}
        done = ws.receive_json()
        assert done["type"] == "search_complete"
        assert done["query"] == "123 Main St"
        assert len(done["buckets"]["address_string"]) == 2

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}

        ws.send_json({"type": "cancel"})
        assert ws.receive_json() == {"type": "search_started", "query": ""}
        assert ws.receive_json()["type"] == "search_complete"

    assert calls["region"][0][1].region.center.latitude == 35.0


def test_websocket_bad_messages(client, fake_sources):
    with client.websocket_connect("/ws/address-search") as ws:
        ws.receive_json()
        ws.send_text("not json")
        assert ws.receive_json() == {"type": "error", "message": "invalid JSON"}
        ws.send_json({"type": "teleport"})
        assert ws.receive_json()["type"] == "error"
        ws.send_json({"type": "location", "latitude": "north"})
        assert ws.receive_json()["type"] == "error"


def test_websocket_location_out_of_range_keeps_previous(client, fake_sources):
    calls, _ = fake_sources
    with client.websocket_connect("/ws/address-search") as ws:
        ws.receive_json()
        ws.send_json({"type": "location", "latitude": 95.0, "longitude": 10.0})
        reply = ws.receive_json()
        assert reply["type"] == "error"
        assert reply["message"].startswith("invalid location")

        ws.send_json({"type": "location", "latitude": 12.5})
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"type": "query", "text": "tower"})
        assert ws.receive_json()["type"] == "search_started"
        assert ws.receive_json()["type"] == "search_complete"

    # Rejected updates leave the origin in place
    assert calls["region"][0][1].region.center.latitude == 0.0

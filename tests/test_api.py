"""Route-level tests against the FastAPI app with storage and lookups faked."""
import inspect

import pytest
from fastapi.testclient import TestClient

import roof_lookup
from api.main import app
from api.routes import products as product_routes
from api.routes import sessions
from api.services import products, storage
from roofing.errors import AddressNotFound, ServiceTimeout
from roofing.workflow import AerialImage, GeocodeResult

SNAPSHOT = {
    "address": "22 New St, Toronto, ON",
    "coordinates": {"lat": 43.65, "lng": -79.38},
    "area": 1136.4,
    "perimeter": 134.8,
    "areaMeters": 105.6,
    "perimeterMeters": 41.1,
    "points": [{"x": 0, "y": 0}, {"x": 100, "y": 0}, {"x": 100, "y": 100}, {"x": 0, "y": 100}],
    "lines": [{"start": {"x": 0, "y": 0}, "end": {"x": 0, "y": 50}, "length": 16.9, "lengthMeters": 5.1}],
    "totalLineLength": 16.9,
    "totalLineLengthMeters": 5.1,
    "timestamp": "2026-01-01T00:00:00.000Z",
}


def fake_geocode(address, **_kwargs):
    if address == "nowhere":
        raise AddressNotFound("No results found for this address")
    return GeocodeResult(latitude=43.65, longitude=-79.38, formatted_address=f"{address}, Toronto, ON")


def fake_aerial(latitude, longitude, zoom=20, **_kwargs):
    return AerialImage(image_url="https://maps.example.test/static", latitude=latitude, longitude=longitude, zoom=zoom)


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(storage, "MEASUREMENTS", storage.MeasurementRepository(tmp_path / "measurements"))
    monkeypatch.setattr(storage, "PRODUCTS", storage.ProductRepository(tmp_path / "products"))
    monkeypatch.setattr(sessions, "SESSION_CACHE_ROOT", tmp_path / "sessions")
    monkeypatch.setattr(sessions, "SESSIONS", {})
    monkeypatch.setattr(roof_lookup, "geocode_address", fake_geocode)
    monkeypatch.setattr(roof_lookup, "build_aerial_image", fake_aerial)
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_geocode_route(client):
    assert client.post("/geocode", json={}).status_code == 400
    response = client.post("/geocode", json={"address": "22 New St"})
    assert response.status_code == 200
    assert response.json()["formatted_address"] == "22 New St, Toronto, ON"
    assert client.post("/geocode/", json={"address": "nowhere"}).status_code == 404


def test_aerial_image_route(client):
    assert client.post("/aerial-image", json={"latitude": 43.65}).status_code == 400
    response = client.post("/aerial-image", json={"latitude": 43.65, "longitude": -79.38})
    assert response.status_code == 200
    assert response.json()["zoom"] == 20


def test_measurement_records(client):
    saved = client.post("/measurements", json=SNAPSHOT).json()
    assert saved["success"] is True
    again = client.post("/measurements/", json=SNAPSHOT).json()
    assert again["id"] == saved["id"]

    records = client.get("/measurements").json()
    assert len(records) == 1
    assert records[0]["property_address"] == SNAPSHOT["address"]

    found = client.get("/measurements/lookup", params={"address": "new st"})
    assert found.status_code == 200
    assert found.json()["lines"][0]["lengthMeters"] == pytest.approx(5.1376, rel=1e-3)
    assert client.get("/measurements/lookup", params={"address": "99 Other Ave"}).status_code == 404

    materials = client.get(f"/measurements/{saved['id']}/materials").json()
    assert {item["key"] for item in materials["items"]} >= {"shingles", "ridge_cap"}

    assert client.delete(f"/measurements/{saved['id']}").json() == {"deleted": True, "id": saved["id"]}
    assert client.get(f"/measurements/{saved['id']}").status_code == 404


def test_measurement_without_address_is_rejected(client):
    assert client.post("/measurements", json={**SNAPSHOT, "address": ""}).status_code == 422


def test_session_capture_and_save(client):
    session = client.post("/sessions").json()
    base = f"/sessions/{session['id']}"
    assert session["step_name"] == "ADDRESS"

    state = client.post(f"{base}/search", json={"address": "22 New St"}).json()
    assert state["step_name"] == "AERIAL_VIEW"
    assert state["location"]["formattedAddress"] == "22 New St, Toronto, ON"

    assert client.post(f"{base}/save").status_code == 400

    client.post(f"{base}/drawing", json={"enabled": True})
    rect = {"left": 0, "top": 0, "width": 320, "height": 320}
    for x, y in [(0, 0), (50, 0), (50, 50), (0, 50)]:
        state = client.post(f"{base}/clicks", json={"client_x": x, "client_y": y, "rect": rect}).json()
        assert state["applied"] is True
    assert state["step_name"] == "MEASURE"
    assert state["surface"]["vertices"][2] == {"x": 100, "y": 100}

    saved = client.post(f"{base}/save").json()
    assert saved["success"] is True
    assert storage.MEASUREMENTS.find_by_address("22 New St, Toronto, ON") is not None

    state = client.post(f"{base}/next").json()
    assert state["step_name"] == "REVIEW"
    assert state["surface"]["mode"] == "lines"
    client.post(f"{base}/clicks", json={"client_x": 0, "client_y": 0})
    state = client.post(f"{base}/clicks", json={"client_x": 0, "client_y": 50}).json()
    assert state["total_line_length_m"] == pytest.approx(5.1376, rel=1e-3)

    state = client.delete(f"{base}/lines").json()
    assert state["surface"]["lines"] == []
    state = client.post(f"{base}/reset").json()
    assert state["step_name"] == "ADDRESS"
    assert client.delete(base).json()["closed"] is True
    assert client.get(base).status_code == 404


def test_session_loads_saved_measurements(client):
    client.post("/measurements", json=SNAPSHOT)
    session_id = client.post("/sessions").json()["id"]

    state = client.post(f"/sessions/{session_id}/search", json={"address": "22 New St"}).json()

    assert state["step_name"] == "MEASURE"
    assert state["surface"]["mode"] == "lines"
    assert state["notice"] == "Previous measurements loaded for this address!"


def test_session_search_errors(client):
    session_id = client.post("/sessions").json()["id"]
    assert client.post(f"/sessions/{session_id}/search", json={"address": ""}).status_code == 400
    assert client.post(f"/sessions/{session_id}/search", json={"address": "nowhere"}).status_code == 404
    state = client.get(f"/sessions/{session_id}").json()
    assert state["error"] == "No results found for this address"
    assert client.get("/sessions/missing").status_code == 404


def test_drawing_toggle(client):
    session_id = client.post("/sessions").json()["id"]
    state = client.post(f"/sessions/{session_id}/drawing", json={}).json()
    assert state["capture_state"] == "capturing_area"
    state = client.post(f"/sessions/{session_id}/drawing", json={}).json()
    assert state["capture_state"] == "idle"


def test_scrape_route(client, monkeypatch):
    assert client.post("/products/scrape", json={}).status_code == 400

    def slow(url):
        raise ServiceTimeout("Request timeout - website took too long to respond")

    monkeypatch.setattr(products.SCRAPER, "scrape", slow)
    assert client.post("/products/scrape", json={"url": "https://shop.example.test/p"}).status_code == 408


def test_scrape_route_stores_product(client, monkeypatch):
    url = "https://shop.example.test/p"
    result = products.ProductResult(
        url=url, name="Shingles 33.3 sq ft", price=45.11, unit_type="sqft", coverage_area=33.3, currency="CAD"
    )
    monkeypatch.setattr(products.SCRAPER, "scrape", lambda _url: result)

    response = client.post("/products/scrape", json={"url": url})

    assert response.status_code == 200
    assert response.json()["stale"] is False
    assert client.get("/products/", params={"url": url}).json()["price"] == 45.11


def test_closing_a_session_removes_its_cache(client, tmp_path):
    session_id = client.post("/sessions").json()["id"]
    base = f"/sessions/{session_id}"
    client.post(f"{base}/search", json={"address": "22 New St"})
    client.post(f"{base}/drawing", json={"enabled": True})
    for x, y in [(0, 0), (100, 0), (100, 100)]:
        client.post(f"{base}/clicks", json={"client_x": x, "client_y": y})
    session_dir = tmp_path / "sessions" / session_id
    assert any(session_dir.glob("*.json"))

    assert client.delete(base).status_code == 200

    assert not session_dir.exists()
    assert client.delete(base).status_code == 404


def test_scrape_route_runs_off_the_event_loop():
    assert not inspect.iscoroutinefunction(product_routes.scrape_product)

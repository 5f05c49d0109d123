import pytest
from fastapi.testclient import TestClient

from localscope.core.errors import (
    CompetitorQueryFailed,
    DemographicDataUnavailable,
    DemographicFetchFailed,
    LocationNotFound,
)
from localscope.main import app
from localscope.routers.admin import get_cache
from localscope.routers.analysis import get_analyzer
from fakes import FakeCensus, FakeLocations, FakeOverpass, make_analyzer

REPORT_FIELDS = {
    "population",
    "medianIncome",
    "competitorCount",
    "opportunityScore",
    "opportunityValue",
    "competitorLocations",
    "searchLocation",
    "coordinates",
    "searchType",
}


@pytest.fixture
def analyzer_parts():
    return make_analyzer()


@pytest.fixture
def client(analyzer_parts):
    analyzer = analyzer_parts[0]
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    app.dependency_overrides[get_cache] = lambda: analyzer.cache
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def override(**fakes):
    analyzer = make_analyzer(**fakes)[0]
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    return analyzer


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_zip_request_returns_full_report(client, analyzer_parts):
    r = client.post("/analyze", json={"businessTerm": "gym", "zipCode": "90210"})
    assert r.status_code == 200
    body = r.json()
    assert REPORT_FIELDS <= set(body)
    assert body["searchType"] == "zipcode"
    assert body["population"] == 21741
    assert body["competitorCount"] == 3
    assert body["category"] == {"key": "leisure", "value": "fitness_centre"}
    assert body["coordinates"] == {"lat": 34.0901, "lon": -118.4065}
    assert len(body["competitorLocations"]) == 3


def test_address_request_defaults_to_one_mile(client, analyzer_parts):
    competitors = analyzer_parts[3]
    r = client.post("/analyze", json={"businessTerm": "coffee", "address": "1 Main St"})
    assert r.status_code == 200
    assert r.json()["searchType"] == "radius"
    assert r.json()["radiusMiles"] == 1.0
    assert competitors.calls[0][3] == 1609


def test_address_wins_over_zip(client, analyzer_parts):
    r = client.post(
        "/analyze",
        json={"businessTerm": "coffee", "zipCode": "90210", "address": "1 Main St", "radiusMiles": 3},
    )
    assert r.json()["searchType"] == "radius"


def test_zip_request_honours_explicit_radius(client, analyzer_parts):
    competitors = analyzer_parts[3]
    client.post("/analyze", json={"businessTerm": "gym", "zipCode": "90210", "radiusMiles": 5})
    assert competitors.calls[0][3] == 8047


def test_locations_can_be_withheld(client):
    r = client.post(
        "/analyze", json={"businessTerm": "gym", "zipCode": "90210", "includeLocations": False}
    )
    assert r.json()["competitorLocations"] == []
    assert r.json()["competitorCount"] == 3


@pytest.mark.parametrize(
    "payload",
    [
        {"zipCode": "90210"},
        {"businessTerm": "   ", "zipCode": "90210"},
        {"businessTerm": "x" * 101, "zipCode": "90210"},
        {"businessTerm": "gym", "zipCode": "9021"},
        {"businessTerm": "gym", "zipCode": "902100"},
        {"businessTerm": "gym"},
        {"businessTerm": "gym", "address": "1 Main St", "radiusMiles": 0},
        {"businessTerm": "gym", "address": "1 Main St", "radiusMiles": 51},
    ],
)
def test_bad_input_is_400_without_external_calls(client, analyzer_parts, payload):
    _, locations, census, competitors = analyzer_parts
    r = client.post("/analyze", json=payload)
    assert r.status_code == 400
    assert r.json()["detail"]
    assert locations.calls == census.calls == competitors.calls == []


def test_demographic_unavailable_message(client):
    override(census=FakeCensus(error=DemographicDataUnavailable("00501")))
    r = client.post("/analyze", json={"businessTerm": "gym", "zipCode": "90210"})
    assert r.status_code == 500
    assert "non-residential" in r.json()["detail"]


def test_demographic_network_failure_message(client):
    override(census=FakeCensus(error=DemographicFetchFailed("Census API returned status 502")))
    r = client.post("/analyze", json={"businessTerm": "gym", "zipCode": "90210"})
    assert r.status_code == 500
    assert r.json()["detail"].startswith("Unable to fetch demographic data")


def test_competitor_failure_message(client):
    override(competitors=FakeOverpass(error=CompetitorQueryFailed("HTTP 500")))
    r = client.post("/analyze", json={"businessTerm": "gym", "zipCode": "90210"})
    assert r.status_code == 500
    assert r.json()["detail"].startswith("Unable to fetch competitor data")


def test_address_not_found_is_404(client):
    override(locations=FakeLocations(error=LocationNotFound("nowhere")))
    r = client.post("/analyze", json={"businessTerm": "gym", "address": "nowhere"})
    assert r.status_code == 404
    assert "Address not found" in r.json()["detail"]


def test_unresolved_zip_is_422(client):
    from fakes import MAIN_ST

    override(locations=FakeLocations({"Mid Ocean": MAIN_ST}))
    r = client.post("/analyze", json={"businessTerm": "gym", "address": "Mid Ocean"})
    assert r.status_code == 422
    assert "zip code" in r.json()["detail"]


def test_unexpected_error_is_generic_500(client):
    override(competitors=FakeOverpass(error=RuntimeError("kaboom")))
    r = client.post("/analyze", json={"businessTerm": "gym", "zipCode": "90210"})
    assert r.status_code == 500
    assert r.json()["detail"] == "Failed to analyze location. Please try again."


def test_admin_cache_endpoints(client):
    client.post("/analyze", json={"businessTerm": "gym", "zipCode": "90210"})
    assert client.get("/admin/cache").json()["entries"] == 2
    assert client.post("/admin/cache/purge").json() == {"removed": 0, "entries": 2}


def test_admin_categories_lists_store(client):
    r = client.get("/admin/categories")
    assert r.status_code == 200
    assert r.json() == []

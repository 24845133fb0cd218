"""HTTP surface of the grants directory."""
import asyncio

import pytest

from conftest import IDS

pytest.importorskip("fastapi")


def test_health(api_client):
    response = api_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "backend": "sqlite", "configured": True}


def test_health_without_backend_config():
    from fastapi.testclient import TestClient

    from grant_directory.api.app import app

    response = TestClient(app).get("/health")
    assert response.json() == {"status": "ok", "backend": None, "configured": False}


def test_health_from_environment(monkeypatch, grants_db):
    from fastapi.testclient import TestClient

    from grant_directory.api.app import app

    monkeypatch.setenv("GRANTS_SQLITE_PATH", str(grants_db))
    response = TestClient(app).get("/health")
    assert response.json()["backend"] == "sqlite"


def test_search_defaults(api_client):
    data = api_client.get("/api/grants/search").json()
    assert data["total"] == 8
    assert data["page"] == 1
    assert data["pageSize"] == 12
    assert data["totalPages"] == 1
    assert data["error"] is None
    assert data["grants"][0]["title"] == "Coastal Resilience Fund"
    assert data["grants"][0]["path"].startswith("/grants/local/CA/los-angeles/")


def test_search_paginates_with_camel_case_page_size(api_client):
    data = api_client.get("/api/grants/search", params={"state": "CA", "pageSize": "2"}).json()
    assert data["total"] == 3
    assert data["pageSize"] == 2
    assert data["totalPages"] == 2
    assert len(data["grants"]) == 2

    data = api_client.get(
        "/api/grants/search", params={"state": "CA", "pageSize": "2", "page": "2"}
    ).json()
    assert [g["title"] for g in data["grants"]] == ["Small Business Innovation"]


@pytest.mark.parametrize(
    "params, total",
    [
        ({"keyword": "shoreline"}, 1),
        ({"query": "research"}, 2),
        ({"has_apply_link": "1"}, 5),
        ({"category": "environment"}, 2),
        ({"category": "Infrastructure"}, 0),
        ({"jurisdiction": "federal"}, 2),
        ({"state": "federal"}, 2),
        ({"jurisdiction": "local", "state_code": "CA"}, 2),
        ({"agency_slug": "hhs-nih"}, 1),
        ({"page": "abc", "pageSize": "-3"}, 8),
    ],
)
def test_search_filters(api_client, params, total):
    response = api_client.get("/api/grants/search", params=params)
    assert response.status_code == 200
    assert response.json()["total"] == total


def test_search_unexpected_failure_returns_500_body(api_client, monkeypatch):
    import grant_directory.api.routes.search as search_routes

    def explode(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(search_routes, "search_listings", explode)
    response = api_client.get("/api/grants/search", params={"page": "3"})
    assert response.status_code == 500
    assert response.json() == {
        "grants": [],
        "total": 0,
        "page": 3,
        "pageSize": 12,
        "totalPages": 0,
        "error": "kaboom",
    }


def test_facets(api_client):
    data = api_client.get("/api/grants/facets").json()
    assert data["states"][0] == {"label": "Federal (nationwide)", "value": "federal", "count": 2}
    assert {"label": "Environment", "value": "environment", "count": 2} in data["categories"]
    assert len(data["agencies"]) == 7


def test_agency_index(api_client):
    data = api_client.get("/api/agencies", params={"q": "national"}).json()
    assert data["total"] == 2
    assert data["pageSize"] == 12
    assert [a["slug"] for a in data["agencies"]] == ["hhs-nih", "noaa"]
    assert [a["path"] for a in data["agencies"]] == ["/agencies/hhs-nih", "/agencies/noaa"]


def test_agency_detail(api_client):
    data = api_client.get("/api/agencies/sba").json()
    assert data["agency"]["id"] == "ag-2"
    assert data["agency"]["path"] == "/agencies/sba"
    assert data["total"] == 1
    assert data["grants"][0]["title"] == "Small Business Innovation"
    assert data["totalPages"] == 1


def test_agency_not_found(api_client):
    response = api_client.get("/api/agencies/nobody")
    assert response.status_code == 404
    assert response.json() == {"detail": "Agency not found"}


def test_listing_canonical_path_renders(api_client):
    path = "/grants/local/CA/los-angeles/coastal-resilience-fund-a1b2c3d4"
    response = api_client.get(path, params={"id": IDS["coastal"]}, follow_redirects=False)
    assert response.status_code == 200
    data = response.json()
    assert data["grant"]["title"] == "Coastal Resilience Fund"
    assert data["jurisdiction"] == {
        "jurisdiction": "local",
        "stateCode": "CA",
        "citySlug": "los-angeles",
    }
    assert data["canonicalPath"] == f"{path}?id={IDS['coastal']}"
    assert data["stateName"] == "California"
    assert data["cityName"] == "Los Angeles"


def test_listing_wrong_path_redirects(api_client):
    response = api_client.get(
        "/grants/federal/old-title", params={"id": IDS["arts"]}, follow_redirects=False
    )
    assert response.status_code == 307
    assert response.headers["location"] == (
        f"/grants/state/CA/california-arts-council-grant-b2c3d4e5?id={IDS['arts']}"
    )


def test_listing_slug_only_redirects_to_id_form(api_client):
    response = api_client.get(
        "/grants/federal/national-health-research-award-d4e5f6a7", follow_redirects=False
    )
    assert response.status_code == 307
    assert response.headers["location"].endswith(f"?id={IDS['health']}")


def test_listing_not_found(api_client):
    response = api_client.get("/grants/federal/missing-ffffffff")
    assert response.status_code == 404
    assert response.json() == {"detail": "Grant not found"}


@pytest.mark.parametrize(
    "prefix", ["/grants/state/atlantis", "/grants/local/atlantis/los-angeles"]
)
def test_listing_unknown_state_segment_is_not_found(api_client, prefix):
    response = api_client.get(
        f"{prefix}/coastal-resilience-fund-a1b2c3d4",
        params={"id": IDS["coastal"]},
        follow_redirects=False,
    )
    assert response.status_code == 404
    assert response.json() == {"detail": "Grant not found"}


def test_synchronizer_against_app(api_client):
    import httpx

    from grant_directory.api.app import app
    from grant_directory.client import FilterSynchronizer
    from grant_directory.client.api import GrantsApiClient

    urls = []

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport) as http:
            client = GrantsApiClient("http://testserver", client=http)
            sync = FilterSynchronizer(client.search, urls.append)
            await sync.set_field("state", "California")
            await sync.set_field("has_apply_link", True)
            return sync

    sync = asyncio.run(scenario())
    assert urls == ["/grants?state=CA", "/grants?state=CA&has_apply_link=1"]
    assert [g.title for g in sync.results] == ["Coastal Resilience Fund"]
    assert sync.total == 1
    assert sync.error is None

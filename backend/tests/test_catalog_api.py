"""Smoke tests for the Catalog API application factory."""
from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api import create_app  # noqa: E402
from backend.catalog_api.schemas import ConfigModel  # noqa: E402
from backend.catalog_api.settings import CatalogSettings  # noqa: E402


def anilist_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "graphql.anilist.co":
        return httpx.Response(
            200,
            json={"data": {"Media": {"id": 21, "averageScore": 88, "status": "RELEASING", "genres": ["Adventure"]}}},
        )
    return httpx.Response(404)


@pytest.fixture()
def client(tmp_path: Path) -> TestClient:
    """Provide a test client backed by an isolated SQLite database."""

    db_path = tmp_path / "catalog.db"
    settings = CatalogSettings(database_url=f"sqlite:///{db_path}")
    app = create_app(settings=settings, provider_transport=httpx.MockTransport(anilist_handler))
    return TestClient(app)


def _create(client: TestClient, **payload: object) -> str:
    response = client.post("/admin/catalog", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_health_endpoint_reports_ok_status(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": "0.1.0", "database": "ok"}


def test_config_round_trip_updates_database_store(client: TestClient) -> None:
    put_response = client.put("/config", json={"tmdb_api_key": "abc", "enrich_on_read": False})
    assert put_response.status_code == 200

    updated = ConfigModel.model_validate(put_response.json())
    assert updated.tmdb_api_key == "abc"
    assert updated.enrich_on_read is False

    cleared = client.put("/config", json={"tmdb_api_key": None})
    assert cleared.json()["tmdb_api_key"] is None
    assert client.get("/config").json()["enrich_on_read"] is False


def test_create_and_read_record(client: TestClient) -> None:
    record_id = _create(client, title="One Piece", genre=["Adventure"], type="TV", year=1999)

    response = client.get(f"/catalog/{record_id}")

    assert record_id == "one-piece"
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "One Piece"
    assert body["source_admin"] == "manual"


def test_missing_record_returns_404(client: TestClient) -> None:
    response = client.get("/catalog/unknown")

    assert response.status_code == 404
    assert response.json()["detail"] == "Catalog record not found"


def test_single_record_read_is_enriched(client: TestClient) -> None:
    record_id = _create(client, title="One Piece", anilist_id=21, average_rating=7.0, status="Unknown")

    enriched = client.get(f"/catalog/{record_id}").json()
    plain = client.get(f"/catalog/{record_id}", params={"enrich": "false"}).json()

    assert enriched["average_rating"] == 8.8
    assert enriched["status"] == "Ongoing"
    assert plain["average_rating"] == 7.0


def test_enrichment_can_be_disabled_in_config(client: TestClient) -> None:
    record_id = _create(client, title="One Piece", anilist_id=21, average_rating=7.0)
    client.put("/config", json={"enrich_on_read": False})

    assert client.get(f"/catalog/{record_id}").json()["average_rating"] == 7.0


def test_list_filters_and_validates_sort(client: TestClient) -> None:
    _create(client, title="Akira", genre=["Action"], type="Movie", year=1988)
    _create(client, title="Mushishi", genre=["Mystery"], type="TV", year=2005)

    response = client.get("/catalog", params={"genre": "Action"})
    assert [item["id"] for item in response.json()] == ["akira"]

    bad = client.get("/catalog", params={"sort_by": "bogus"})
    assert bad.status_code == 422
    assert "Unsupported sort field" in bad.json()["detail"]


def test_list_with_uncovered_sort_uses_fallback(client: TestClient) -> None:
    _create(client, title="Akira", genre=["Action"], year=1988)
    _create(client, title="Bleach", genre=["Action"], year=2004)
    _create(client, title="Mushishi", genre=["Mystery"], year=2005)

    response = client.get("/catalog", params={"genre": "Action", "sort_by": "year", "sort_order": "desc"})

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == ["bleach", "akira"]


def test_whitespace_search_returns_empty_list(client: TestClient) -> None:
    _create(client, title="Naruto", genre=["Action"])

    response = client.get("/catalog/search", params={"q": "   "})

    assert response.status_code == 200
    assert response.json() == []


def test_search_count_facets_and_batch(client: TestClient) -> None:
    _create(client, title="Naruto", genre=["Action"])
    _create(client, title="Naruto Shippuden", genre=["Action"])
    _create(client, title="Mushishi", genre=["Mystery"], is_featured=True)

    search = client.get("/catalog/search", params={"q": "naru"})
    assert [item["id"] for item in search.json()] == ["naruto", "naruto-shippuden"]

    assert client.get("/catalog/count").json() == {"count": 3}
    assert client.get("/catalog/count", params={"genre": "Action"}).json() == {"count": 2}

    facets = client.get("/catalog/facets/genre").json()
    assert facets["field"] == "genre"
    assert "Action" in facets["values"]
    assert "Slice of Life" in facets["values"]

    batch = client.post("/catalog/batch", json={"ids": ["mushishi", "nope", "naruto"]})
    assert [item["id"] for item in batch.json()] == ["mushishi", "naruto"]

    featured = client.get("/catalog/featured")
    assert [item["id"] for item in featured.json()] == ["mushishi"]


def test_zero_count_returns_empty_list(client: TestClient) -> None:
    _create(client, title="Naruto")

    assert client.get("/catalog", params={"count": 0}).json() == []


def test_admin_update_episode_and_delete(client: TestClient) -> None:
    record_id = _create(
        client,
        title="Akira",
        episodes=[{"id": "akira-movie", "title": "Full Movie", "episode_number": 1}],
    )

    patch = client.patch(f"/admin/catalog/{record_id}", json={"trailer_url": "", "synopsis": "Neo-Tokyo"})
    assert patch.status_code == 204

    episode = client.patch(
        f"/admin/catalog/{record_id}/episodes/akira-movie",
        json={"url": "https://stream.example/akira"},
    )
    assert episode.status_code == 204

    feature = client.put(f"/admin/catalog/{record_id}/featured", json={"is_featured": True})
    assert feature.status_code == 204

    body = client.get(f"/catalog/{record_id}").json()
    assert body["synopsis"] == "Neo-Tokyo"
    assert body["trailer_url"] is None
    assert body["is_featured"] is True
    assert body["episodes"][0]["url"] == "https://stream.example/akira"

    missing_episode = client.patch(f"/admin/catalog/{record_id}/episodes/nope", json={"title": "x"})
    assert missing_episode.status_code == 404

    assert client.delete(f"/admin/catalog/{record_id}").status_code == 204
    assert client.get(f"/catalog/{record_id}").status_code == 404


def test_updating_missing_record_returns_404(client: TestClient) -> None:
    response = client.patch("/admin/catalog/ghost", json={"synopsis": "boo"})

    assert response.status_code == 404

"""Tests for the Typer-based catalog CLI."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from typer.testing import CliRunner

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api import create_app  # noqa: E402
from backend.catalog_api.settings import CatalogSettings  # noqa: E402
from backend.catalog_cli import app as cli_app_module  # noqa: E402
from backend.catalog_cli import client as client_module  # noqa: E402

cli_app = cli_app_module.app


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_client(tmp_path: Path) -> TestClient:
    """Provide a TestClient and patch the CLI HTTP client factory."""

    db_path = tmp_path / "catalog.db"
    settings = CatalogSettings(database_url=f"sqlite:///{db_path}")
    app = create_app(settings=settings)
    test_client = TestClient(app)

    original_factory = client_module.create_client
    original_app_factory = cli_app_module.create_client

    def _factory(base_url: str, *, timeout: float = 10.0, transport: Any = None):  # type: ignore[override]
        return test_client

    client_module.create_client = _factory  # type: ignore[assignment]
    cli_app_module.create_client = _factory  # type: ignore[assignment]

    yield test_client

    client_module.create_client = original_factory  # type: ignore[assignment]
    cli_app_module.create_client = original_app_factory  # type: ignore[assignment]


def _seed(runner: CliRunner) -> None:
    for payload in (
        {"title": "Akira", "genre": ["Action"], "type": "Movie", "year": 1988},
        {"title": "Mushishi", "genre": ["Mystery"], "type": "TV", "year": 2005},
    ):
        result = runner.invoke(cli_app, ["admin", "create", json.dumps(payload)])
        assert result.exit_code == 0, result.output


def test_cli_health_outputs_json(runner: CliRunner, cli_client: TestClient) -> None:
    _ = cli_client
    result = runner.invoke(cli_app, ["health"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["status"] == "ok"


def test_cli_config_update_and_clear(runner: CliRunner, cli_client: TestClient) -> None:
    _ = cli_client
    result = runner.invoke(cli_app, ["config", "update", "--tmdb-api-key", "abc", "--no-enrich-on-read"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload == {"tmdb_api_key": "abc", "enrich_on_read": False}

    cleared = runner.invoke(cli_app, ["config", "update", "--clear-tmdb-api-key"])
    assert json.loads(cleared.stdout)["tmdb_api_key"] is None


def test_cli_config_update_requires_changes(runner: CliRunner, cli_client: TestClient) -> None:
    _ = cli_client
    result = runner.invoke(cli_app, ["config", "update"])

    assert result.exit_code == 1


def test_cli_catalog_list_and_show(runner: CliRunner, cli_client: TestClient) -> None:
    _ = cli_client
    _seed(runner)

    listed = runner.invoke(cli_app, ["catalog", "list", "--genre", "Action"])
    assert listed.exit_code == 0
    assert [item["id"] for item in json.loads(listed.stdout)] == ["akira"]

    shown = runner.invoke(cli_app, ["catalog", "show", "mushishi", "--no-enrich"])
    assert shown.exit_code == 0
    assert json.loads(shown.stdout)["title"] == "Mushishi"


def test_cli_catalog_show_missing(runner: CliRunner, cli_client: TestClient) -> None:
    _ = cli_client
    result = runner.invoke(cli_app, ["catalog", "show", "missing-id"])

    assert result.exit_code == 1
    assert "Catalog record not found" in result.output


def test_cli_invalid_sort_reports_api_error(runner: CliRunner, cli_client: TestClient) -> None:
    _ = cli_client
    result = runner.invoke(cli_app, ["catalog", "list", "--sort-by", "bogus"])

    assert result.exit_code == 1
    assert "Error 422" in result.output


def test_cli_search_count_facets_batch(runner: CliRunner, cli_client: TestClient) -> None:
    _ = cli_client
    _seed(runner)

    search = runner.invoke(cli_app, ["catalog", "search", "mush"])
    assert [item["id"] for item in json.loads(search.stdout)] == ["mushishi"]

    count = runner.invoke(cli_app, ["catalog", "count", "--genre", "Mystery"])
    assert json.loads(count.stdout) == {"count": 1}

    facets = runner.invoke(cli_app, ["catalog", "facets", "year"])
    assert json.loads(facets.stdout)["values"] == [2005, 1988]

    batch = runner.invoke(cli_app, ["catalog", "batch", "mushishi", "akira"])
    assert [item["id"] for item in json.loads(batch.stdout)] == ["mushishi", "akira"]


def test_cli_admin_feature_and_delete(runner: CliRunner, cli_client: TestClient) -> None:
    _seed(runner)

    featured = runner.invoke(cli_app, ["admin", "feature", "akira"])
    assert featured.exit_code == 0
    assert cli_client.get("/catalog/akira").json()["is_featured"] is True

    deleted = runner.invoke(cli_app, ["admin", "delete", "akira"])
    assert deleted.exit_code == 0
    assert cli_client.get("/catalog/akira").status_code == 404

    missing = runner.invoke(cli_app, ["admin", "feature", "akira", "--off"])
    assert missing.exit_code == 1
    assert "Catalog record not found" in missing.output


def test_cli_admin_create_rejects_invalid_json(runner: CliRunner, cli_client: TestClient) -> None:
    _ = cli_client
    result = runner.invoke(cli_app, ["admin", "create", "{not json"])

    assert result.exit_code == 1

"""Command line interface for the AnimeVerse Catalog API."""
from __future__ import annotations

import json
from typing import Any, List, Optional

import httpx
import typer

from .client import create_client


DEFAULT_API_BASE = "http://localhost:8000"

app = typer.Typer(help="Browse and administer the AnimeVerse catalog.")
config_app = typer.Typer(help="Manage runtime catalog configuration.")
app.add_typer(config_app, name="config")
catalog_app = typer.Typer(help="Browse, search and aggregate catalog records.")
app.add_typer(catalog_app, name="catalog")
admin_app = typer.Typer(help="Create, delete and feature catalog records.")
app.add_typer(admin_app, name="admin")


def _api_base_option() -> typer.Option:
    return typer.Option(
        DEFAULT_API_BASE,
        "--api-base",
        help="Base URL for the Catalog API service.",
        show_default=True,
        envvar="ANIMEVERSE_API_BASE",
    )


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _fail_on_error(response: httpx.Response, not_found: str | None = None) -> None:
    """Exit with the API's error detail for 4xx/5xx responses."""

    if response.status_code == 404 and not_found:
        typer.echo(not_found, err=True)
        raise typer.Exit(code=1)
    if response.is_error:
        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text
        typer.echo(f"Error {response.status_code}: {detail}", err=True)
        raise typer.Exit(code=1)


@app.command()
def health(api_base: str = _api_base_option()) -> None:
    """Call the /health endpoint and pretty-print the response."""

    with create_client(api_base) as client:
        response = client.get("/health")
        response.raise_for_status()
        _echo_json(response.json())


@config_app.command("show")
def show_config(api_base: str = _api_base_option()) -> None:
    """Display the persisted catalog configuration."""

    with create_client(api_base) as client:
        response = client.get("/config")
        response.raise_for_status()
        _echo_json(response.json())


@config_app.command("update")
def update_config(
    tmdb_api_key: Optional[str] = typer.Option(None, help="TMDB API key to persist."),
    clear_tmdb_api_key: bool = typer.Option(
        False,
        "--clear-tmdb-api-key/--no-clear-tmdb-api-key",
        help="Remove the persisted TMDB API key.",
        show_default=False,
    ),
    enrich_on_read: Optional[bool] = typer.Option(
        None,
        "--enrich-on-read/--no-enrich-on-read",
        help="Toggle provider enrichment for single-record reads.",
        show_default=False,
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Update configuration fields with the provided values."""

    if tmdb_api_key is not None and clear_tmdb_api_key:
        typer.echo("Cannot set and clear the TMDB API key in the same command.", err=True)
        raise typer.Exit(code=1)

    payload: dict[str, object] = {}
    if tmdb_api_key is not None:
        payload["tmdb_api_key"] = tmdb_api_key
    elif clear_tmdb_api_key:
        payload["tmdb_api_key"] = None
    if enrich_on_read is not None:
        payload["enrich_on_read"] = enrich_on_read

    if not payload:
        typer.echo("No configuration changes supplied.", err=True)
        raise typer.Exit(code=1)

    with create_client(api_base) as client:
        response = client.put("/config", json=payload)
        _fail_on_error(response)
        _echo_json(response.json())


@catalog_app.command("list")
def list_catalog(
    genre: Optional[str] = typer.Option(None, help="Only records tagged with this genre."),
    item_type: Optional[str] = typer.Option(None, "--type", help="Record type, e.g. TV or Movie."),
    status: Optional[str] = typer.Option(None, help="Record status, e.g. Ongoing."),
    year: Optional[int] = typer.Option(None, help="Release year."),
    featured: Optional[bool] = typer.Option(
        None, "--featured/--not-featured", help="Filter on the featured flag.", show_default=False
    ),
    sort_by: Optional[str] = typer.Option(None, help="Sort field."),
    sort_order: Optional[str] = typer.Option(None, help="asc or desc."),
    count: Optional[int] = typer.Option(None, help="Number of records; -1 for the capped maximum."),
    api_base: str = _api_base_option(),
) -> None:
    """List catalog records matching the provided filters."""

    params: dict[str, object] = {}
    for key, value in (
        ("genre", genre),
        ("type", item_type),
        ("status", status),
        ("year", year),
        ("sort_by", sort_by),
        ("sort_order", sort_order),
        ("count", count),
    ):
        if value is not None:
            params[key] = value
    if featured is not None:
        params["featured"] = str(featured).lower()

    with create_client(api_base) as client:
        response = client.get("/catalog", params=params)
        _fail_on_error(response)
        _echo_json(response.json())


@catalog_app.command("show")
def show_record(
    record_id: str = typer.Argument(..., help="Identifier of the record to display."),
    enrich: bool = typer.Option(
        True, "--enrich/--no-enrich", help="Merge external provider metadata.", show_default=True
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Display a single catalog record."""

    with create_client(api_base) as client:
        response = client.get(f"/catalog/{record_id}", params={"enrich": str(enrich).lower()})
        _fail_on_error(response, not_found="Catalog record not found")
        _echo_json(response.json())


@catalog_app.command("search")
def search_catalog(
    term: str = typer.Argument(..., help="Search term."),
    count: Optional[int] = typer.Option(None, help="Maximum number of results."),
    api_base: str = _api_base_option(),
) -> None:
    """Search catalog titles."""

    params: dict[str, object] = {"q": term}
    if count is not None:
        params["count"] = count
    with create_client(api_base) as client:
        response = client.get("/catalog/search", params=params)
        _fail_on_error(response)
        _echo_json(response.json())


@catalog_app.command("facets")
def facet_values(
    field: str = typer.Argument(..., help="genre, type, status or year."),
    api_base: str = _api_base_option(),
) -> None:
    """Print the distinct values of a facet field."""

    with create_client(api_base) as client:
        response = client.get(f"/catalog/facets/{field}")
        _fail_on_error(response)
        _echo_json(response.json())


@catalog_app.command("count")
def count_catalog(
    genre: Optional[str] = typer.Option(None, help="Only count records with this genre."),
    status: Optional[str] = typer.Option(None, help="Only count records with this status."),
    api_base: str = _api_base_option(),
) -> None:
    """Print the number of matching records."""

    params = {key: value for key, value in (("genre", genre), ("status", status)) if value is not None}
    with create_client(api_base) as client:
        response = client.get("/catalog/count", params=params)
        _fail_on_error(response)
        _echo_json(response.json())


@catalog_app.command("batch")
def batch_catalog(
    record_ids: List[str] = typer.Argument(..., help="Record ids, returned in this order."),
    api_base: str = _api_base_option(),
) -> None:
    """Fetch several records by id."""

    with create_client(api_base) as client:
        response = client.post("/catalog/batch", json={"ids": record_ids})
        _fail_on_error(response)
        _echo_json(response.json())


@admin_app.command("create")
def create_record(
    payload: str = typer.Argument(..., help="JSON document describing the record."),
    api_base: str = _api_base_option(),
) -> None:
    """Create a catalog record from a JSON payload."""

    try:
        body = json.loads(payload)
    except json.JSONDecodeError as exc:
        typer.echo(f"Invalid JSON payload: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    with create_client(api_base) as client:
        response = client.post("/admin/catalog", json=body)
        _fail_on_error(response)
        _echo_json(response.json())


@admin_app.command("delete")
def delete_record(
    record_id: str = typer.Argument(..., help="Identifier of the record to delete."),
    api_base: str = _api_base_option(),
) -> None:
    """Delete a catalog record."""

    with create_client(api_base) as client:
        response = client.delete(f"/admin/catalog/{record_id}")
        _fail_on_error(response)
        _echo_json({"deleted": record_id})


@admin_app.command("feature")
def feature_record(
    record_id: str = typer.Argument(..., help="Identifier of the record."),
    featured: bool = typer.Option(
        True, "--on/--off", help="Whether the record should be featured.", show_default=True
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Toggle the featured flag on a record."""

    with create_client(api_base) as client:
        response = client.put(f"/admin/catalog/{record_id}/featured", json={"is_featured": featured})
        _fail_on_error(response, not_found="Catalog record not found")
        _echo_json({"id": record_id, "is_featured": featured})

"""Read endpoints for browsing and searching the catalog."""
from fastapi import APIRouter, Depends, HTTPException, Query

from ..catalog import CatalogService, QueryFilter
from ..catalog.service import FacetField
from ..dependencies import get_catalog_service
from ..errors import CatalogError
from ..schemas import (
    BatchRequest,
    CatalogRecord,
    CatalogStatus,
    CatalogType,
    CountModel,
    FacetValuesModel,
)

router = APIRouter(prefix="/catalog", tags=["catalog"])


def _http_error(exc: CatalogError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@router.get("", response_model=list[CatalogRecord])
async def list_catalog(
    genre: str | None = Query(default=None, description="Only records tagged with this genre."),
    item_type: CatalogType | None = Query(default=None, alias="type"),
    status: CatalogStatus | None = Query(default=None),
    year: int | None = Query(default=None, ge=1900, le=3000),
    featured: bool | None = Query(default=None),
    sort_by: str | None = Query(default=None, description="title, year, average_rating, updated_at, created_at or popularity."),
    sort_order: str | None = Query(default=None, description="asc or desc."),
    search: str | None = Query(default=None, description="Title prefix search; overrides sorting."),
    count: int | None = Query(default=None, ge=-1, description="Number of records; -1 requests the capped maximum."),
    service: CatalogService = Depends(get_catalog_service),
) -> list[CatalogRecord]:
    """Return catalog records matching the provided filters."""

    filters = QueryFilter(
        genre=genre,
        type=item_type,
        status=status,
        year=year,
        featured=featured,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        count=count,
    )
    try:
        return await service.list(filters)
    except CatalogError as exc:
        raise _http_error(exc) from exc


@router.get("/featured", response_model=list[CatalogRecord])
async def list_featured(
    count: int = Query(default=5, ge=0, le=100),
    service: CatalogService = Depends(get_catalog_service),
) -> list[CatalogRecord]:
    try:
        return await service.featured(count)
    except CatalogError as exc:
        raise _http_error(exc) from exc


@router.get("/search", response_model=list[CatalogRecord])
async def search_catalog(
    q: str = Query(..., min_length=1, description="Search term."),
    count: int | None = Query(default=None, ge=-1),
    service: CatalogService = Depends(get_catalog_service),
) -> list[CatalogRecord]:
    """Return records whose title starts with or contains the term."""

    try:
        return await service.search(q, count)
    except CatalogError as exc:
        raise _http_error(exc) from exc


@router.get("/count", response_model=CountModel)
async def count_catalog(
    genre: str | None = Query(default=None),
    item_type: CatalogType | None = Query(default=None, alias="type"),
    status: CatalogStatus | None = Query(default=None),
    year: int | None = Query(default=None, ge=1900, le=3000),
    featured: bool | None = Query(default=None),
    service: CatalogService = Depends(get_catalog_service),
) -> CountModel:
    filters = QueryFilter(genre=genre, type=item_type, status=status, year=year, featured=featured)
    try:
        return CountModel(count=await service.count(filters))
    except CatalogError as exc:
        raise _http_error(exc) from exc


@router.get("/facets/{field}", response_model=FacetValuesModel)
async def facet_values(
    field: FacetField,
    service: CatalogService = Depends(get_catalog_service),
) -> FacetValuesModel:
    """Return the distinct values of a facet, never empty for vocabulary-backed fields."""

    try:
        values = await service.unique_values(field)
    except CatalogError as exc:
        raise _http_error(exc) from exc
    return FacetValuesModel(field=field, values=values)


@router.post("/batch", response_model=list[CatalogRecord])
async def batch_catalog(
    request: BatchRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> list[CatalogRecord]:
    """Return records for the given ids in request order, skipping unknown ids."""

    return await service.get_by_ids(request.ids)


@router.get("/{record_id}", response_model=CatalogRecord)
async def get_catalog_record(
    record_id: str,
    enrich: bool = Query(default=True, description="Merge external provider metadata."),
    service: CatalogService = Depends(get_catalog_service),
) -> CatalogRecord:
    """Return one record, raising when missing."""

    try:
        record = await service.get_by_id(record_id, enrich=enrich)
    except CatalogError as exc:
        raise _http_error(exc) from exc
    if record is None:
        raise HTTPException(status_code=404, detail="Catalog record not found")
    return record

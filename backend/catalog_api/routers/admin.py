"""Administrative endpoints for catalog writes."""
from fastapi import APIRouter, Depends, HTTPException, Response

from ..catalog import CatalogAdmin
from ..dependencies import get_catalog_admin
from ..errors import CatalogError
from ..schemas import (
    CatalogRecordCreate,
    CatalogRecordUpdate,
    CreatedModel,
    EpisodeUpdate,
    FeaturedUpdate,
)

router = APIRouter(prefix="/admin/catalog", tags=["admin"])


@router.post("", response_model=CreatedModel, status_code=201)
async def create_record(
    payload: CatalogRecordCreate,
    admin: CatalogAdmin = Depends(get_catalog_admin),
) -> CreatedModel:
    """Create a record; the id is derived from the title."""

    try:
        return CreatedModel(id=await admin.create(payload))
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@router.patch("/{record_id}", status_code=204)
async def update_record(
    record_id: str,
    payload: CatalogRecordUpdate,
    admin: CatalogAdmin = Depends(get_catalog_admin),
) -> Response:
    try:
        await admin.update(record_id, payload)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    return Response(status_code=204)


@router.delete("/{record_id}", status_code=204)
async def delete_record(record_id: str, admin: CatalogAdmin = Depends(get_catalog_admin)) -> Response:
    try:
        await admin.delete(record_id)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    return Response(status_code=204)


@router.patch("/{record_id}/episodes/{episode_id}", status_code=204)
async def update_episode(
    record_id: str,
    episode_id: str,
    payload: EpisodeUpdate,
    admin: CatalogAdmin = Depends(get_catalog_admin),
) -> Response:
    """Update a single embedded episode."""

    try:
        await admin.update_episode(record_id, episode_id, payload)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    return Response(status_code=204)


@router.put("/{record_id}/featured", status_code=204)
async def set_featured(
    record_id: str,
    payload: FeaturedUpdate,
    admin: CatalogAdmin = Depends(get_catalog_admin),
) -> Response:
    try:
        await admin.set_featured(record_id, payload.is_featured)
    except CatalogError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    return Response(status_code=204)

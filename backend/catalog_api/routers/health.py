"""Health endpoints."""
import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_document_store
from ..schemas import HealthStatus
from ..stores.sql_document_store import SqlDocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
async def get_health(store: SqlDocumentStore = Depends(get_document_store)) -> HealthStatus:
    """Return service heartbeat information."""

    try:
        await store.count([])
    except Exception as exc:
        logger.warning("Health check could not reach the document store: %s", exc)
        return HealthStatus(status="degraded", database="error")
    return HealthStatus()

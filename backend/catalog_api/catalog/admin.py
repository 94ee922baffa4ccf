"""Administrative writes against the catalog document store."""
from __future__ import annotations

import logging
import uuid

from ..errors import ErrorKind, QueryError
from ..schemas import CatalogRecordCreate, CatalogRecordUpdate, EpisodeUpdate
from ..stores.document_store import DocumentStore
from .documents import build_new_document, build_update_document, normalize_episode, slugify

logger = logging.getLogger(__name__)

MAX_SLUG_ATTEMPTS = 5


def _not_found(message: str, context: str) -> QueryError:
    return QueryError(ErrorKind.NOT_FOUND, message, context)


class CatalogAdmin:
    """Create, update and delete catalog records."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def create(self, payload: CatalogRecordCreate) -> str:
        """Persist a new record and return its slug id."""

        doc_id = await self._allocate_id(slugify(payload.title))
        document = build_new_document(payload, doc_id)
        await self._write(self._store.set(doc_id, document), f"create id={doc_id!r}")
        logger.info("Created catalog record %s", doc_id)
        return doc_id

    async def update(self, doc_id: str, payload: CatalogRecordUpdate) -> None:
        changes = build_update_document(payload)
        if not changes:
            return
        await self._write(self._store.update(doc_id, changes), f"update id={doc_id!r}")

    async def delete(self, doc_id: str) -> None:
        await self._write(self._store.delete(doc_id), f"delete id={doc_id!r}")
        logger.info("Deleted catalog record %s", doc_id)

    async def set_featured(self, doc_id: str, is_featured: bool) -> None:
        await self._write(
            self._store.update(doc_id, {"is_featured": is_featured}),
            f"set_featured id={doc_id!r}",
        )

    async def update_episode(self, doc_id: str, episode_id: str, payload: EpisodeUpdate) -> None:
        """Merge ``payload`` into one embedded episode and rewrite the episode list."""

        context = f"update_episode id={doc_id!r} episode={episode_id!r}"
        document = await self._read(doc_id, context)
        if document is None:
            raise _not_found(f"Catalog record {doc_id} not found", context)

        episodes = [dict(ep) for ep in document.get("episodes") or []]
        for index, episode in enumerate(episodes):
            if episode.get("id") == episode_id:
                changes = payload.model_dump(exclude_unset=True)
                episodes[index] = normalize_episode({**episode, **changes, "id": episode_id})
                break
        else:
            raise _not_found(f"Episode {episode_id} not found in {doc_id}", context)

        await self._write(self._store.update(doc_id, {"episodes": episodes}), context)

    async def _allocate_id(self, base: str) -> str:
        candidate = base
        for _ in range(MAX_SLUG_ATTEMPTS):
            if await self._read(candidate, f"allocate id={candidate!r}") is None:
                return candidate
            candidate = f"{base}-{uuid.uuid4().hex[:5]}"
        raise QueryError(
            ErrorKind.UNKNOWN,
            f"Could not allocate a unique id for {base!r}",
            f"allocate id={base!r}",
        )

    async def _read(self, doc_id: str, context: str):
        try:
            return await self._store.get(doc_id)
        except Exception as exc:
            raise QueryError.from_exception(exc, context) from exc

    async def _write(self, operation, context: str) -> None:
        try:
            await operation
        except Exception as exc:
            raise QueryError.from_exception(exc, context) from exc

"""Resolve arbitrary-length id lists through size-limited batch lookups."""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ..stores.document_store import Document, DocumentStore

logger = logging.getLogger(__name__)


def partition(ids: Sequence[str], size: int) -> list[list[str]]:
    """Split ``ids`` into consecutive chunks of at most ``size`` items."""

    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [list(ids[start : start + size]) for start in range(0, len(ids), size)]


class BatchIdResolver:
    """Fetch documents by id while preserving the caller's ordering.

    Chunks are fetched concurrently. A failing chunk is logged and treated as
    empty so unrelated ids still resolve; ids without a matching document are
    silently omitted.
    """

    def __init__(self, store: DocumentStore, *, batch_limit: int | None = None) -> None:
        self._store = store
        self._batch_limit = batch_limit or store.batch_limit

    async def resolve_many(self, ids: Sequence[str]) -> list[Document]:
        """Return documents for ``ids`` following the original list.

        Each distinct id is fetched once, but a repeated id is emitted once per
        occurrence so the output mirrors the input sequence exactly.
        """

        unique_ids = list(dict.fromkeys(item for item in ids if item))
        if not unique_ids:
            return []

        chunks = partition(unique_ids, self._batch_limit)
        chunk_results = await asyncio.gather(*(self._fetch_chunk(chunk) for chunk in chunks))

        by_id: dict[str, Document] = {}
        for documents in chunk_results:
            for document in documents:
                doc_id = document.get("id")
                if doc_id is not None:
                    by_id[str(doc_id)] = document

        return [by_id[item] for item in ids if item in by_id]

    async def _fetch_chunk(self, chunk: list[str]) -> list[Document]:
        try:
            return await self._store.batch_get(chunk)
        except Exception as exc:
            logger.error(
                "Error fetching batch of %d records (batch starting with %s): %s",
                len(chunk),
                chunk[0],
                exc,
            )
            return []

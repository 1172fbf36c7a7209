"""Where employee documents live: candidate collections, the id cache and the
write target.

Employee data has been written to several containers over the life of the app.
``CollectionResolver`` owns the candidate lists plus two pieces of process-wide
state: the id → collection cache and the collection chosen for new records.
Both are hints rebuilt after a restart; every use is checked against a live read.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from activity_log.core.document_store import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "employees"
FALLBACK_COLLECTION = "funcionarios"
LEGACY_COLLECTIONS: tuple[str, ...] = ("users", "usuarios", "colaboradores", "funcionarios_cadastrados")


def _dedupe(names: list[str | None]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for name in names:
        cleaned = (name or "").strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


class LocatedRecord(BaseModel):
    collection: str
    document: dict[str, Any]


class CollectionResolver:
    def __init__(self, preferred_collection: str | None = None) -> None:
        self.write_candidates = _dedupe([preferred_collection, DEFAULT_COLLECTION, FALLBACK_COLLECTION])
        self.read_candidates = _dedupe([*self.write_candidates, *LEGACY_COLLECTIONS])
        self.write_collection: str | None = None
        self._cache: dict[str, str] = {}

    def cached_collection(self, doc_id: str) -> str | None:
        return self._cache.get(doc_id)

    def remember(self, doc_id: str, collection: str) -> None:
        self._cache[doc_id] = collection
        self.confirm(collection)

    def confirm(self, collection: str) -> None:
        """Adopt ``collection`` as write target unless one is already resolved.

        Legacy read-only collections are never adopted.
        """
        if self.write_collection is None and collection in self.write_candidates:
            logger.debug("Adopting %s as employee write collection", collection)
            self.write_collection = collection

    def forget(self, doc_id: str) -> None:
        self._cache.pop(doc_id, None)


class RecordLocator:
    def __init__(self, store: DocumentStore, resolver: CollectionResolver) -> None:
        self.store = store
        self.resolver = resolver

    async def locate(self, doc_id: str) -> LocatedRecord | None:
        cached = self.resolver.cached_collection(doc_id)
        if cached:
            document = await self.store.get(cached, doc_id)
            if document is not None:
                self.resolver.confirm(cached)
                return LocatedRecord(collection=cached, document=document)
            logger.info("Evicting stale cache entry %s -> %s", doc_id, cached)
            self.resolver.forget(doc_id)

        for collection in self.resolver.read_candidates:
            document = await self.store.get(collection, doc_id)
            if document is not None:
                self.resolver.remember(doc_id, collection)
                return LocatedRecord(collection=collection, document=document)

        return None


class WriteTargetSelector:
    def __init__(self, store: DocumentStore, resolver: CollectionResolver) -> None:
        self.store = store
        self.resolver = resolver

    async def resolve(self) -> str:
        if self.resolver.write_collection:
            return self.resolver.write_collection

        for collection in self.resolver.write_candidates:
            if await self.store.query(collection, limit=1):
                self.resolver.write_collection = collection
                logger.info("Employee write collection resolved to %s", collection)
                return collection

        fallback = self.resolver.write_candidates[0] if self.resolver.write_candidates else DEFAULT_COLLECTION
        self.resolver.write_collection = fallback
        logger.info("No employee collection has data yet, writing to %s", fallback)
        return fallback

"""
In-process document store.

Holds collections as plain dicts. Used for dry-run imports and as the
reference implementation the other stores are tested against.
"""
from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Optional

from document_store.base import Conflict, DocumentStore, ListResult, NotFound, apply_queries

logger = logging.getLogger(__name__)


class MemoryStore(DocumentStore):

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict]] = {}

    @property
    def name(self) -> str:
        return "In-memory"

    def _collection(self, collection: str) -> dict[str, dict]:
        return self._collections.setdefault(collection, {})

    async def list_documents(self, collection: str, queries: Optional[list[dict]] = None) -> ListResult:
        docs = list(self._collection(collection).values())
        result = apply_queries(docs, queries)
        result.documents = [copy.deepcopy(d) for d in result.documents]
        return result

    async def get_document(self, collection: str, document_id: str) -> dict:
        doc = self._collection(collection).get(document_id)
        if doc is None:
            raise NotFound(f"Document {document_id} not found in {collection}",
                           status=404, code="document_not_found")
        return copy.deepcopy(doc)

    async def create_document(self, collection: str, document_id: str, fields: dict) -> dict:
        docs = self._collection(collection)
        if document_id in docs:
            raise Conflict(f"Document {document_id} already exists in {collection}",
                           status=409, code="document_already_exists")
        now = _now()
        doc = {**copy.deepcopy(fields), "$id": document_id, "$createdAt": now, "$updatedAt": now}
        docs[document_id] = doc
        return copy.deepcopy(doc)

    async def update_document(self, collection: str, document_id: str, fields: dict) -> dict:
        docs = self._collection(collection)
        if document_id not in docs:
            raise NotFound(f"Document {document_id} not found in {collection}",
                           status=404, code="document_not_found")
        doc = docs[document_id]
        doc.update({k: copy.deepcopy(v) for k, v in fields.items() if not k.startswith("$")})
        doc["$updatedAt"] = _now()
        return copy.deepcopy(doc)

    async def delete_document(self, collection: str, document_id: str) -> None:
        docs = self._collection(collection)
        if docs.pop(document_id, None) is None:
            raise NotFound(f"Document {document_id} not found in {collection}",
                           status=404, code="document_not_found")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

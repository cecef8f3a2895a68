"""
Local SQLite document store (see database.py).

Fragments are evaluated in Python over the collection, which is fine for the
catalog's size (a few thousand products at most).
"""
from __future__ import annotations

import logging
from typing import Optional

import database as db
from document_store.base import Conflict, DocumentStore, ListResult, NotFound, apply_queries

logger = logging.getLogger(__name__)


class SQLiteStore(DocumentStore):

    def __init__(self) -> None:
        self._ready = False

    @property
    def name(self) -> str:
        return f"SQLite ({db.DB_PATH})"

    async def _ensure_schema(self) -> None:
        if not self._ready:
            await db.init_db()
            self._ready = True

    async def list_documents(self, collection: str, queries: Optional[list[dict]] = None) -> ListResult:
        await self._ensure_schema()
        docs = await db.get_all_documents(collection)
        return apply_queries(docs, queries)

    async def get_document(self, collection: str, document_id: str) -> dict:
        await self._ensure_schema()
        doc = await db.get_document(collection, document_id)
        if doc is None:
            raise NotFound(f"Document {document_id} not found in {collection}",
                           status=404, code="document_not_found")
        return doc

    async def create_document(self, collection: str, document_id: str, fields: dict) -> dict:
        await self._ensure_schema()
        doc = await db.insert_document(collection, document_id, fields)
        if doc is None:
            raise Conflict(f"Document {document_id} already exists in {collection}",
                           status=409, code="document_already_exists")
        return doc

    async def update_document(self, collection: str, document_id: str, fields: dict) -> dict:
        await self._ensure_schema()
        doc = await db.update_document(collection, document_id, fields)
        if doc is None:
            raise NotFound(f"Document {document_id} not found in {collection}",
                           status=404, code="document_not_found")
        return doc

    async def delete_document(self, collection: str, document_id: str) -> None:
        await self._ensure_schema()
        if not await db.delete_document(collection, document_id):
            raise NotFound(f"Document {document_id} not found in {collection}",
                           status=404, code="document_not_found")

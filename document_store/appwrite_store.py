"""
Appwrite Databases backend (REST, no SDK).

API docs: https://appwrite.io/docs/references/cloud/server-rest/databases

Authentication:
  Server API key sent as X-Appwrite-Key together with the project id in
  X-Appwrite-Project. The key needs documents.read + documents.write scopes.

Error mapping (this is what the importer relies on, so it must stay exact):
  404                                   → NotFound
  409 + type "document_already_exists"  → Conflict
  anything else non-2xx                 → StoreError
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import aiohttp

import config
from document_store.base import Conflict, DocumentStore, ListResult, NotFound, Query, StoreError

logger = logging.getLogger(__name__)

ALREADY_EXISTS = "document_already_exists"


class AppwriteStore(DocumentStore):

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        api_key: str,
        database_id: str,
        timeout: Optional[float] = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._database_id = database_id
        self._timeout = timeout if timeout is not None else config.HTTP_TIMEOUT
        self._headers = {
            "X-Appwrite-Project": project_id,
            "X-Appwrite-Key":     api_key,
            "Content-Type":       "application/json",
        }

    @property
    def name(self) -> str:
        return f"Appwrite ({self._endpoint})"

    def _documents_url(self, collection: str, document_id: Optional[str] = None) -> str:
        url = f"{self._endpoint}/databases/{self._database_id}/collections/{collection}/documents"
        return f"{url}/{document_id}" if document_id else url

    # ── Operations ────────────────────────────────────────────────────────────

    async def list_documents(self, collection: str, queries: Optional[list[dict]] = None) -> ListResult:
        params = [("queries[]", Query.encode(q)) for q in (queries or [])]
        data = await self._request("GET", self._documents_url(collection), params=params)
        logger.debug("Appwrite list %s (%d queries) → %s total", collection, len(params), data.get("total"))
        return ListResult(
            documents=list(data.get("documents") or []),
            total=int(data.get("total") or 0),
        )

    async def get_document(self, collection: str, document_id: str) -> dict:
        return await self._request("GET", self._documents_url(collection, document_id))

    async def create_document(self, collection: str, document_id: str, fields: dict) -> dict:
        return await self._request(
            "POST",
            self._documents_url(collection),
            json={"documentId": document_id, "data": fields},
        )

    async def update_document(self, collection: str, document_id: str, fields: dict) -> dict:
        return await self._request(
            "PATCH",
            self._documents_url(collection, document_id),
            json={"data": fields},
        )

    async def delete_document(self, collection: str, document_id: str) -> None:
        await self._request("DELETE", self._documents_url(collection, document_id))

    # ── HTTP helper ───────────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[list[tuple[str, str]]] = None,
        json: Optional[dict] = None,
    ) -> Any:
        """Single HTTP call. Returns the decoded JSON body ({} for 204)."""
        async with aiohttp.ClientSession() as session:
            async with session.request(
                method,
                url,
                headers=self._headers,
                params=params,
                json=json,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status == 204:
                    return {}
                if resp.status >= 400:
                    await _raise_for_error(resp, method, url)
                return await resp.json()


async def _raise_for_error(resp, method: str, url: str) -> None:
    try:
        body = await resp.json()
    except (aiohttp.ContentTypeError, ValueError):
        body = {"message": (await resp.text())[:200]}
    if not isinstance(body, dict):
        body = {}
    code = str(body.get("type") or "")
    message = f"Appwrite error {resp.status} on {method} {url}: {body.get('message', '')}"
    logger.warning("%s", message)

    if resp.status == 404:
        raise NotFound(message, status=404, code=code)
    if resp.status == 409 and code == ALREADY_EXISTS:
        raise Conflict(message, status=409, code=code)
    raise StoreError(message, status=resp.status, code=code)

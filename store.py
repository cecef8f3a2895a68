"""
store.py — picks the document store the rest of the app talks to.

  STORE_BACKEND=appwrite  →  remote Appwrite database   (production)
  STORE_BACKEND=sqlite    →  local file under DATA_DIR  (development)
  STORE_BACKEND=memory    →  in-process, lost on exit   (dry runs)
  STORE_BACKEND=auto      →  appwrite when endpoint + project + key are all
                             set, otherwise sqlite (default)

Callers that want a specific store (tests, one-off scripts) construct it
directly and pass it in; nothing in the catalog code reads this module
implicitly.
"""
from __future__ import annotations

import logging
from typing import Optional

import config
from document_store.base import DocumentStore

logger = logging.getLogger(__name__)

__all__ = ["get_store", "store_name", "reset_store"]

_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    """Return the active store, building it once on first call."""
    global _store
    if _store is not None:
        return _store
    _store = _build_store()
    logger.info("Document store: %s", _store.name)
    return _store


def store_name() -> str:
    try:
        return get_store().name
    except RuntimeError:
        return "not configured"


def reset_store() -> None:
    """Drop the cached store (after a config change, and in tests)."""
    global _store
    _store = None


def _build_store() -> DocumentStore:
    mode = config.STORE_BACKEND.lower()
    has_appwrite = bool(config.APPWRITE_ENDPOINT and config.APPWRITE_PROJECT_ID and config.APPWRITE_API_KEY)

    if mode == "appwrite":
        if not has_appwrite:
            raise RuntimeError(
                "STORE_BACKEND=appwrite but APPWRITE_ENDPOINT, APPWRITE_PROJECT_ID "
                "and APPWRITE_API_KEY are not all set."
            )
        return _make_appwrite()
    if mode == "sqlite":
        return _make_sqlite()
    if mode == "memory":
        from document_store.memory_store import MemoryStore
        return MemoryStore()
    if mode != "auto":
        raise RuntimeError(f"Unknown STORE_BACKEND {config.STORE_BACKEND!r}")

    if has_appwrite:
        logger.info("Auto-selected Appwrite store")
        return _make_appwrite()
    logger.info("Auto-selected SQLite store (Appwrite not configured)")
    return _make_sqlite()


def _make_appwrite() -> DocumentStore:
    from document_store.appwrite_store import AppwriteStore
    return AppwriteStore(
        endpoint=config.APPWRITE_ENDPOINT,
        project_id=config.APPWRITE_PROJECT_ID,
        api_key=config.APPWRITE_API_KEY,
        database_id=config.APPWRITE_DATABASE_ID,
    )


def _make_sqlite() -> DocumentStore:
    from document_store.sqlite_store import SQLiteStore
    return SQLiteStore()

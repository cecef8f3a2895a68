"""
database.py — async SQLite persistence via aiosqlite.

Tables:
  documents    — local document store: one JSON blob per (collection, id)
  saved_kits   — kit snapshots keyed by owner (user id or session id)

The DB file is created automatically on first run.
"""
from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import aiosqlite

import config

logger = logging.getLogger(__name__)

# Store the DB in a dedicated data/ directory so Docker volume mounts work
# correctly (mount ./data:/app/data) and the file survives container restarts.
_DATA_DIR = Path(config.DATA_DIR)
_DATA_DIR.mkdir(parents=True, exist_ok=True)

DB_PATH = str(_DATA_DIR / "catalog.db")
_lock = asyncio.Lock()          # serialise schema migrations


# ── Schema ────────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection  TEXT NOT NULL,
    id          TEXT NOT NULL,
    data        TEXT NOT NULL,          -- JSON object of user fields
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,
    PRIMARY KEY (collection, id)
);
CREATE INDEX IF NOT EXISTS idx_documents_created ON documents (collection, created_at);

-- Kit snapshots (Kit.to_dict()) so a kit survives between sessions
CREATE TABLE IF NOT EXISTS saved_kits (
    owner_id    TEXT PRIMARY KEY,
    items       TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""


async def init_db() -> None:
    """Create tables if they don't exist. Safe to call multiple times."""
    async with _lock:
        async with aiosqlite.connect(DB_PATH) as db:
            await db.executescript(_SCHEMA)
            await db.commit()
    logger.info("Database initialised at %s", DB_PATH)


# ── Document operations ───────────────────────────────────────────────────────

def _row_to_document(row) -> dict:
    doc = json.loads(row["data"])
    doc["$id"] = row["id"]
    doc["$createdAt"] = row["created_at"]
    doc["$updatedAt"] = row["updated_at"]
    return doc


async def get_all_documents(collection: str) -> list[dict]:
    """Every document in a collection, oldest first."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM documents WHERE collection = ? ORDER BY created_at, rowid",
            (collection,),
        ) as cursor:
            rows = await cursor.fetchall()
    return [_row_to_document(r) for r in rows]


async def get_document(collection: str, document_id: str) -> Optional[dict]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM documents WHERE collection = ? AND id = ?",
            (collection, document_id),
        ) as cursor:
            row = await cursor.fetchone()
    return _row_to_document(row) if row else None


async def insert_document(collection: str, document_id: str, fields: dict) -> Optional[dict]:
    """
    Insert a new document.
    Returns the stored document, or None if the id is already taken.
    """
    now = datetime.now(timezone.utc).isoformat()
    data = {k: v for k, v in fields.items() if not k.startswith("$")}
    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute(
            """INSERT OR IGNORE INTO documents (collection, id, data, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?)""",
            (collection, document_id, json.dumps(data), now, now),
        )
        await db.commit()
        if cursor.rowcount == 0:
            return None
    return {**data, "$id": document_id, "$createdAt": now, "$updatedAt": now}


async def update_document(collection: str, document_id: str, fields: dict) -> Optional[dict]:
    """Merge fields into an existing document. Returns None if it doesn't exist."""
    now = datetime.now(timezone.utc).isoformat()
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM documents WHERE collection = ? AND id = ?",
            (collection, document_id),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None

        data = json.loads(row["data"])
        data.update({k: v for k, v in fields.items() if not k.startswith("$")})
        await db.execute(
            "UPDATE documents SET data = ?, updated_at = ? WHERE collection = ? AND id = ?",
            (json.dumps(data), now, collection, document_id),
        )
        await db.commit()
    return {**data, "$id": document_id, "$createdAt": row["created_at"], "$updatedAt": now}


async def delete_document(collection: str, document_id: str) -> bool:
    """Returns True if a row was deleted."""
    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute(
            "DELETE FROM documents WHERE collection = ? AND id = ?",
            (collection, document_id),
        )
        await db.commit()
        return cursor.rowcount > 0


# ── Saved kits ────────────────────────────────────────────────────────────────

async def save_kit(owner_id: str, snapshot: dict) -> None:
    """Upsert a kit snapshot (as produced by Kit.to_dict())."""
    now = datetime.now(timezone.utc).isoformat()
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """INSERT INTO saved_kits (owner_id, items, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(owner_id) DO UPDATE SET items = excluded.items,
                                                    updated_at = excluded.updated_at""",
            (owner_id, json.dumps(snapshot), now),
        )
        await db.commit()


async def load_kit(owner_id: str) -> Optional[dict]:
    """Return the saved snapshot, or None if the owner has none."""
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT items FROM saved_kits WHERE owner_id = ?", (owner_id,)
        ) as cursor:
            row = await cursor.fetchone()
    if row is None:
        return None
    try:
        return json.loads(row[0])
    except ValueError:
        logger.warning("Saved kit for %s is corrupt — ignoring it", owner_id)
        return None


async def delete_saved_kit(owner_id: str) -> bool:
    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute("DELETE FROM saved_kits WHERE owner_id = ?", (owner_id,))
        await db.commit()
        return cursor.rowcount > 0

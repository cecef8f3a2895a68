"""
importer.py — idempotent bulk import into a document store.

Per record:
  0. if the stored document already holds exactly these fields → skipped
  1. update the document at the record's id
  2. on NotFound → create it at that id
  3. on Conflict from the create (created concurrently by someone else)
     → skipped, counted as success
  4. anything else → recorded in `failed`; the batch carries on

Only NotFound and Conflict are treated specially, so a genuine failure is
never disguised as a skip. Records are processed concurrently (bounded by
IMPORT_CONCURRENCY); the result is reported once every record has finished.

Re-running an import with unchanged input writes nothing: every record
resolves to "skipped".
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

import config
from categories import CategoryTranslator, translator as default_translator
from document_store.base import Conflict, DocumentStore, NotFound
from normalizer import parse_price, parse_rating, parse_features

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"
UNCHANGED = "unchanged"
FAILED = "failed"


@dataclass
class ImportFailure:
    record: dict
    reason: str


@dataclass
class ImportResult:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: list[ImportFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.created + self.updated

    @property
    def total(self) -> int:
        return self.succeeded + self.skipped + len(self.failed)


async def import_batch(
    records: Sequence[dict],
    target: DocumentStore,
    collection: str,
    id_field: str = "id",
    shape: Optional[Callable[[dict], dict]] = None,
    concurrency: Optional[int] = None,
) -> ImportResult:
    """
    Upsert every record into `collection`.

    Args:
        records:     entity-shaped dicts, each carrying its id in `id_field`.
        target:      the store to write to.
        shape:       maps a record to the fields to store (default: the record
                     minus its id and any `$` system fields).
        concurrency: max records in flight (default IMPORT_CONCURRENCY).

    Returns:
        ImportResult with succeeded + skipped + len(failed) == len(records).
    """
    limit = concurrency if concurrency is not None else config.IMPORT_CONCURRENCY
    semaphore = asyncio.Semaphore(max(1, limit))
    shape = shape or (lambda r: _default_fields(r, id_field))

    async def _one(record: dict) -> tuple[str, Optional[str]]:
        async with semaphore:
            return await _upsert(record, target, collection, id_field, shape)

    logger.info("Importing %d record(s) into %s via %s", len(records), collection, target.name)
    outcomes = await asyncio.gather(*(_one(r) for r in records))

    result = ImportResult()
    for record, (outcome, reason) in zip(records, outcomes):
        if outcome == CREATED:
            result.created += 1
        elif outcome == UPDATED:
            result.updated += 1
        elif outcome in (SKIPPED, UNCHANGED):
            result.skipped += 1
        else:
            result.failed.append(ImportFailure(record=record, reason=reason or "unknown error"))

    logger.info(
        "Import into %s done: %d created, %d updated, %d skipped, %d failed",
        collection, result.created, result.updated, result.skipped, len(result.failed),
    )
    return result


async def _upsert(
    record: dict,
    target: DocumentStore,
    collection: str,
    id_field: str,
    shape: Callable[[dict], dict],
) -> tuple[str, Optional[str]]:
    """Returns (outcome, failure reason)."""
    document_id = record.get(id_field) if isinstance(record, dict) else None
    if not document_id:
        logger.warning("Skipping record without %r: %.80s", id_field, record)
        return FAILED, f"missing {id_field}"
    document_id = str(document_id)

    try:
        fields = shape(record)

        # A document that already holds exactly these fields is left alone,
        # which is what makes a replayed import a no-op.
        try:
            existing = await target.get_document(collection, document_id)
        except NotFound:
            existing = None
        if existing is not None and _same_fields(existing, fields):
            logger.info("%s %s already up to date, skipping", collection, document_id)
            return UNCHANGED, None

        try:
            await target.update_document(collection, document_id, fields)
            logger.info("Updated %s %s", collection, document_id)
            return UPDATED, None
        except NotFound:
            pass

        try:
            await target.create_document(collection, document_id, fields)
        except Conflict:
            logger.info("%s %s already exists, skipping", collection, document_id)
            return SKIPPED, None
        logger.info("Created %s %s", collection, document_id)
        return CREATED, None
    except Exception as exc:
        logger.warning("Error importing %s %s: %s", collection, document_id, exc)
        return FAILED, str(exc) or exc.__class__.__name__


def _same_fields(existing: dict, fields: dict) -> bool:
    return all(existing.get(k) == v for k, v in fields.items())


def _default_fields(record: dict, id_field: str) -> dict:
    return {k: v for k, v in record.items() if k != id_field and not k.startswith("$")}


# ── Products ───────────────────────────────────────────────────────────────────

def product_fields(
    record: dict,
    translator: CategoryTranslator = default_translator,
    delimiter: Optional[str] = None,
) -> dict[str, Any]:
    """
    Shape a product export row (snake_case or camelCase) into store fields.
    Features are stored as one delimited string; the category is stored in
    canonical form.
    """
    sep = delimiter if delimiter is not None else config.FEATURE_DELIMITER
    features = parse_features(record.get("features"), sep)
    joiner = sep + " " if sep.strip() else sep

    def pick(*keys: str):
        for key in keys:
            value = record.get(key)
            if value not in (None, ""):
                return value
        return None

    return {
        "name": pick("name"),
        "category": translator.to_canonical(pick("category") or ""),
        "brand": pick("brand"),
        "rating": parse_rating(record.get("rating")),
        "price": parse_price(record.get("price")),
        "dimensions": pick("dimensions"),
        "weight": pick("weight"),
        "material": pick("material"),
        "features": joiner.join(features),
        "imageUrl": pick("image_url", "imageUrl"),
        "asin": pick("asin"),
        "affiliateLink": pick("affiliate_link", "affiliateLink"),
        "description": pick("description"),
    }

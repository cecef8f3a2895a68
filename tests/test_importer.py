"""
Tests for importer.py.

Covers:
  - create on first import, update on changed input
  - replaying the same batch writes nothing (all skipped)
  - Conflict on create → skipped
  - any other store error → failed, batch carries on
  - records without an id
  - counts always add up to the batch size
  - product_fields() shaping
"""
from __future__ import annotations

import pytest

from document_store.base import Conflict, NotFound, StoreError
from document_store.memory_store import MemoryStore
from importer import ImportResult, import_batch, product_fields


class RacingStore(MemoryStore):
    """Someone else creates the document between our update and create."""

    async def create_document(self, collection, document_id, fields):
        await super().create_document(collection, document_id, {"name": "theirs"})
        raise Conflict("already exists", status=409, code="document_already_exists")


class FlakyStore(MemoryStore):
    """Rejects writes for the ids in `broken`."""

    def __init__(self, broken):
        super().__init__()
        self.broken = set(broken)

    async def update_document(self, collection, document_id, fields):
        if document_id in self.broken:
            raise StoreError("Invalid document structure", status=400, code="document_invalid_structure")
        return await super().update_document(collection, document_id, fields)

    async def create_document(self, collection, document_id, fields):
        if document_id in self.broken:
            raise StoreError("Invalid document structure", status=400, code="document_invalid_structure")
        return await super().create_document(collection, document_id, fields)


class CountingStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.writes = 0

    async def update_document(self, collection, document_id, fields):
        doc = await super().update_document(collection, document_id, fields)
        self.writes += 1
        return doc

    async def create_document(self, collection, document_id, fields):
        doc = await super().create_document(collection, document_id, fields)
        self.writes += 1
        return doc


VENDORS = [
    {"id": "walgreens", "name": "Walgreens", "website": "https://walgreens.com"},
    {"id": "cvs", "name": "CVS", "website": "https://cvs.com"},
    {"id": "amazon", "name": "Amazon", "website": "https://amazon.com"},
]


@pytest.mark.asyncio
class TestImportBatch:
    async def test_first_import_creates(self):
        store = MemoryStore()
        result = await import_batch(VENDORS, store, "vendors")
        assert result.created == 3
        assert result.succeeded == 3
        assert result.skipped == 0
        assert result.failed == []
        doc = await store.get_document("vendors", "cvs")
        assert doc["name"] == "CVS"
        assert "id" not in doc

    async def test_replay_is_noop(self):
        store = CountingStore()
        await import_batch(VENDORS, store, "vendors")
        writes = store.writes

        result = await import_batch(VENDORS, store, "vendors")
        assert result.succeeded == 0
        assert result.skipped == len(VENDORS)
        assert result.failed == []
        assert store.writes == writes

    async def test_changed_record_updates(self):
        store = MemoryStore()
        await import_batch(VENDORS, store, "vendors")
        changed = [{**VENDORS[0], "website": "https://www.walgreens.com"}]
        result = await import_batch(changed, store, "vendors")
        assert result.updated == 1
        assert (await store.get_document("vendors", "walgreens"))["website"] == "https://www.walgreens.com"

    async def test_conflict_on_create_is_skip(self):
        store = RacingStore()
        result = await import_batch(VENDORS[:1], store, "vendors")
        assert result.skipped == 1
        assert result.failed == []
        # The concurrent writer's document is left alone
        assert (await store.get_document("vendors", "walgreens"))["name"] == "theirs"

    async def test_other_errors_fail_without_stopping_batch(self):
        store = FlakyStore(broken={"cvs"})
        result = await import_batch(VENDORS, store, "vendors")
        assert result.created == 2
        assert len(result.failed) == 1
        failure = result.failed[0]
        assert failure.record["id"] == "cvs"
        assert "Invalid document structure" in failure.reason
        with pytest.raises(NotFound):
            await store.get_document("vendors", "cvs")

    async def test_missing_id_fails(self):
        records = [{"name": "No id"}, {"id": "", "name": "Blank"}, VENDORS[0]]
        result = await import_batch(records, MemoryStore(), "vendors")
        assert result.created == 1
        assert [f.reason for f in result.failed] == ["missing id", "missing id"]

    async def test_custom_id_field(self):
        records = [{"slug": "ppe", "name": "PPE"}]
        store = MemoryStore()
        result = await import_batch(records, store, "categories", id_field="slug")
        assert result.created == 1
        assert (await store.get_document("categories", "ppe"))["name"] == "PPE"

    async def test_system_fields_not_written(self):
        store = MemoryStore()
        await import_batch([{"id": "x", "$createdAt": "2020-01-01", "name": "X"}], store, "vendors")
        doc = await store.get_document("vendors", "x")
        assert doc["$createdAt"] != "2020-01-01"

    @pytest.mark.parametrize("concurrency", [1, 3, 50])
    async def test_counts_add_up(self, concurrency):
        store = FlakyStore(broken={"r3", "r7"})
        await store.create_document("things", "r5", {"n": 5})
        records = [{"id": f"r{i}", "n": i} for i in range(10)] + [{"n": "no id"}]
        result = await import_batch(records, store, "things", concurrency=concurrency)
        assert result.total == len(records)
        assert result.succeeded + result.skipped + len(result.failed) == len(records)
        assert result.skipped == 1      # r5 already held n=5
        assert len(result.failed) == 3

    async def test_empty_batch(self):
        result = await import_batch([], MemoryStore(), "vendors")
        assert result == ImportResult()

    async def test_shape_applied(self):
        store = MemoryStore()
        records = [{
            "id": "p1", "name": "Gauze", "category": "Wound Care & Dressings",
            "price": "$8.49", "rating": "4.6", "features": ["Sterile", "Latex-free"],
            "image_url": "https://img/gauze.jpg",
        }]
        await import_batch(records, store, "products", shape=product_fields)
        doc = await store.get_document("products", "p1")
        assert doc["category"] == "First Aid & Wound Care"
        assert doc["price"] == 8.49
        assert doc["features"] == "Sterile, Latex-free"


class TestProductFields:
    def test_snake_and_camel_case(self):
        snake = product_fields({"name": "Tape", "image_url": "https://i/1.jpg", "affiliate_link": "https://amzn.to/1"})
        camel = product_fields({"name": "Tape", "imageUrl": "https://i/1.jpg", "affiliateLink": "https://amzn.to/1"})
        assert snake == camel
        assert snake["imageUrl"] == "https://i/1.jpg"

    def test_bad_numbers_become_none(self):
        fields = product_fields({"name": "Tape", "price": "N/A", "rating": "9"})
        assert fields["price"] is None
        assert fields["rating"] is None

    def test_string_features_normalized(self):
        fields = product_fields({"features": " Strong ,, Breathable "})
        assert fields["features"] == "Strong, Breathable"

    def test_id_not_included(self):
        assert "id" not in product_fields({"id": "p1", "name": "Tape"})

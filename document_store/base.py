"""
Abstract base for all document stores.

Every store speaks the same small vocabulary — list with query fragments,
get, create, update, delete — and returns plain dict documents carrying the
system fields `$id`, `$createdAt` and `$updatedAt`. The rest of the code
doesn't care which backend is active.

Query fragments follow the Appwrite JSON shape:
    {"method": "equal", "attribute": "category", "values": ["Emergency Care"]}
and are built with the `Query` helpers below. Stores that keep their data
in-process (memory, sqlite) evaluate them with `apply_queries`.
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional


# ── Errors ─────────────────────────────────────────────────────────────────────

class StoreError(RuntimeError):
    """Any failure reported by a document store."""

    def __init__(self, message: str, status: Optional[int] = None, code: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.code = code


class NotFound(StoreError):
    """The requested document does not exist."""


class Conflict(StoreError):
    """A document with the requested id already exists."""


# ── Results ────────────────────────────────────────────────────────────────────

@dataclass
class ListResult:
    documents: list[dict] = field(default_factory=list)
    total: int = 0              # matches before limit/offset


# ── Query fragments ────────────────────────────────────────────────────────────

class Query:
    """Builders for query fragments (dicts; `encode` makes the wire string)."""

    @staticmethod
    def equal(attribute: str, value: Any) -> dict:
        values = list(value) if isinstance(value, (list, tuple)) else [value]
        return {"method": "equal", "attribute": attribute, "values": values}

    @staticmethod
    def not_equal(attribute: str, value: Any) -> dict:
        return {"method": "notEqual", "attribute": attribute, "values": [value]}

    @staticmethod
    def contains(attribute: str, value: str) -> dict:
        return {"method": "contains", "attribute": attribute, "values": [value]}

    @staticmethod
    def greater_than(attribute: str, value: float) -> dict:
        return {"method": "greaterThan", "attribute": attribute, "values": [value]}

    @staticmethod
    def greater_than_equal(attribute: str, value: float) -> dict:
        return {"method": "greaterThanEqual", "attribute": attribute, "values": [value]}

    @staticmethod
    def less_than(attribute: str, value: float) -> dict:
        return {"method": "lessThan", "attribute": attribute, "values": [value]}

    @staticmethod
    def less_than_equal(attribute: str, value: float) -> dict:
        return {"method": "lessThanEqual", "attribute": attribute, "values": [value]}

    @staticmethod
    def between(attribute: str, low: float, high: float) -> dict:
        return {"method": "between", "attribute": attribute, "values": [low, high]}

    @staticmethod
    def is_null(attribute: str) -> dict:
        return {"method": "isNull", "attribute": attribute}

    @staticmethod
    def is_not_null(attribute: str) -> dict:
        return {"method": "isNotNull", "attribute": attribute}

    @staticmethod
    def or_(queries: Iterable[dict]) -> dict:
        return {"method": "or", "values": list(queries)}

    @staticmethod
    def and_(queries: Iterable[dict]) -> dict:
        return {"method": "and", "values": list(queries)}

    @staticmethod
    def order_asc(attribute: str) -> dict:
        return {"method": "orderAsc", "attribute": attribute}

    @staticmethod
    def order_desc(attribute: str) -> dict:
        return {"method": "orderDesc", "attribute": attribute}

    @staticmethod
    def limit(n: int) -> dict:
        return {"method": "limit", "values": [n]}

    @staticmethod
    def offset(n: int) -> dict:
        return {"method": "offset", "values": [n]}

    @staticmethod
    def encode(query: dict) -> str:
        return json.dumps(query, separators=(",", ":"))


PAGINATION_METHODS = frozenset({"limit", "offset"})
ORDER_METHODS = frozenset({"orderAsc", "orderDesc"})
FILTER_METHODS = frozenset({
    "equal", "notEqual", "contains",
    "greaterThan", "greaterThanEqual", "lessThan", "lessThanEqual", "between",
    "isNull", "isNotNull", "or", "and",
})


# ── Store interface ────────────────────────────────────────────────────────────

class DocumentStore(ABC):
    """All stores must implement this interface."""

    @abstractmethod
    async def list_documents(self, collection: str, queries: Optional[list[dict]] = None) -> ListResult:
        ...

    @abstractmethod
    async def get_document(self, collection: str, document_id: str) -> dict:
        """Raises NotFound."""
        ...

    @abstractmethod
    async def create_document(self, collection: str, document_id: str, fields: dict) -> dict:
        """Raises Conflict if document_id is taken."""
        ...

    @abstractmethod
    async def update_document(self, collection: str, document_id: str, fields: dict) -> dict:
        """Merge `fields` into an existing document. Raises NotFound."""
        ...

    @abstractmethod
    async def delete_document(self, collection: str, document_id: str) -> None:
        """Raises NotFound."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable store name for logs/display."""
        ...


# ── In-process fragment evaluation ─────────────────────────────────────────────

def apply_queries(documents: Iterable[dict], queries: Optional[list[dict]] = None) -> ListResult:
    """
    Filter, order and paginate documents the way the remote store would.

    `total` counts matches before limit/offset. Ordering is stable and
    case-insensitive for strings; a missing value orders as 0.
    """
    queries = list(queries or [])
    filters = [q for q in queries if q.get("method") not in PAGINATION_METHODS | ORDER_METHODS]
    orders = [q for q in queries if q.get("method") in ORDER_METHODS]

    matched = [doc for doc in documents if all(_matches(doc, q) for q in filters)]
    total = len(matched)

    # Apply orderings last-to-first so the first order is the primary key
    for order in reversed(orders):
        attribute = order.get("attribute", "")
        matched.sort(
            key=lambda doc: _order_key(doc.get(attribute)),
            reverse=order["method"] == "orderDesc",
        )

    offset = 0
    limit: Optional[int] = None
    for q in queries:
        if q.get("method") == "offset":
            offset = int(q["values"][0])
        elif q.get("method") == "limit":
            limit = int(q["values"][0])
    page = matched[offset:] if limit is None else matched[offset:offset + limit]
    return ListResult(documents=page, total=total)


def _matches(doc: dict, query: dict) -> bool:
    method = query.get("method")
    if method not in FILTER_METHODS:
        raise StoreError(f"Unsupported query method: {method!r}", code="general_query_invalid")
    if method == "or":
        return any(_matches(doc, q) for q in query.get("values", []))
    if method == "and":
        return all(_matches(doc, q) for q in query.get("values", []))

    value = doc.get(query.get("attribute", ""))
    values = query.get("values", [])

    if method == "isNull":
        return value is None
    if method == "isNotNull":
        return value is not None
    if method == "equal":
        return value in values
    if method == "notEqual":
        return value not in values
    if method == "contains":
        return _contains(value, values)

    if value is None or isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return False
    try:
        if method == "greaterThan":
            return value > values[0]
        if method == "greaterThanEqual":
            return value >= values[0]
        if method == "lessThan":
            return value < values[0]
        if method == "lessThanEqual":
            return value <= values[0]
        return values[0] <= value <= values[1]     # between
    except TypeError:
        return False


def _contains(value: Any, needles: list) -> bool:
    if value is None:
        return False
    haystack = value if isinstance(value, (list, tuple)) else [value]
    for needle in needles:
        n = str(needle).casefold()
        if any(n in str(item).casefold() for item in haystack):
            return True
    return False


def _order_key(value: Any) -> tuple:
    if isinstance(value, str):
        return (1, value.casefold())
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return (0, 0)
    return (0, value)

"""
catalog_query.py — search, filter, sort and paginate the product catalog.

Two ways to run the same query:

  query(products, spec)              — products already in memory
  await query_remote(store, spec)    — filtering delegated to the store

Client-side steps, in order:
  1. search text  (name / brand / category / any feature, case-insensitive)
  2. category     ("all", or canonical/display name)
  3. brand        ("all", or exact match)
  4. price range  (on the best offer price)
  5. rating range
  6. stable sort  (ties keep their input order)
  7. page slice   (total_count is taken before this step)

The remote variant sends the same predicates as query fragments and always
makes a second, unpaginated count request with identical filters — the
store's page response can't be trusted for the total.
"""
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from rapidfuzz import fuzz

import config
from categories import CategoryTranslator, translator as default_translator
from document_store.base import DocumentStore, Query
from normalizer import normalize_many
from products import Product

logger = logging.getLogger(__name__)

ALL = "all"
SORT_KEYS = ("name", "price", "rating", "brand", "createdAt")
SORT_DIRECTIONS = ("asc", "desc")

# Store attribute used for each sort key / searched by the remote variant
REMOTE_SORT_ATTRIBUTES = {
    "name": "name",
    "price": "price",
    "rating": "rating",
    "brand": "brand",
    "createdAt": "$createdAt",
}
SEARCH_ATTRIBUTES = ("name", "brand", "category", "features")

# Minimum rapidfuzz ratio for a typo-tolerant suggestion
FUZZY_THRESHOLD = 80


@dataclass
class QuerySpec:
    search_text: str = ""
    category: str = ALL
    brand: str = ALL
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    sort_key: str = "name"
    sort_direction: str = "asc"
    page: int = 1
    page_size: int = field(default_factory=lambda: config.RESULTS_PER_PAGE)

    def __post_init__(self) -> None:
        if self.sort_key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key {self.sort_key!r} (expected one of {', '.join(SORT_KEYS)})")
        if self.sort_direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unknown sort direction {self.sort_direction!r}")
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size <= 0:
            raise ValueError("page_size must be > 0")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class QueryResult:
    items: list[Product]
    total_count: int
    page: int = 1
    page_size: int = 0

    @property
    def total_pages(self) -> int:
        if self.total_count == 0 or self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)


# ── Client-side pipeline ───────────────────────────────────────────────────────

def query(
    products: Iterable[Product],
    spec: QuerySpec,
    translator: CategoryTranslator = default_translator,
) -> QueryResult:
    """Filter, sort and paginate an in-memory product list."""
    matched = filter_products(products, spec, translator)
    ordered = sort_products(matched, spec.sort_key, spec.sort_direction)
    page = ordered[spec.offset:spec.offset + spec.page_size]
    return QueryResult(items=page, total_count=len(matched), page=spec.page, page_size=spec.page_size)


def filter_products(
    products: Iterable[Product],
    spec: QuerySpec,
    translator: CategoryTranslator = default_translator,
) -> list[Product]:
    category = translator.to_canonical(spec.category) if spec.category != ALL else ALL
    needle = spec.search_text.strip().casefold()
    return [
        p for p in products
        if _matches_search(p, needle)
        and (category == ALL or p.category == category)
        and (spec.brand == ALL or p.brand == spec.brand)
        and _within(p.best_price, spec.min_price, spec.max_price)
        and _within(p.rating, spec.min_rating, spec.max_rating)
    ]


def sort_products(products: Sequence[Product], sort_key: str, direction: str = "asc") -> list[Product]:
    """Stable sort; missing price/rating order as 0, strings ignore case."""
    if sort_key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key {sort_key!r}")
    return sorted(products, key=lambda p: _sort_value(p, sort_key), reverse=direction == "desc")


def _matches_search(product: Product, needle: str) -> bool:
    if not needle:
        return True
    haystack = (product.name, product.brand, product.category, *product.features)
    return any(needle in value.casefold() for value in haystack)


def _within(value: Optional[float], low: Optional[float], high: Optional[float]) -> bool:
    if low is None and high is None:
        return True
    if value is None:
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def _sort_value(product: Product, sort_key: str):
    if sort_key == "name":
        return product.name.casefold()
    if sort_key == "brand":
        return product.brand.casefold()
    if sort_key == "price":
        price = product.best_price
        return price if price is not None else 0.0
    if sort_key == "rating":
        return product.rating if product.rating is not None else 0.0
    return product.created_at or ""


# ── Remote pipeline ────────────────────────────────────────────────────────────

def build_filters(
    spec: QuerySpec,
    translator: CategoryTranslator = default_translator,
) -> list[dict]:
    """Query fragments for steps 1–5. Price bounds apply to the stored `price`."""
    filters: list[dict] = []
    text = spec.search_text.strip()
    if text:
        filters.append(Query.or_(Query.contains(attr, text) for attr in SEARCH_ATTRIBUTES))
    if spec.category != ALL:
        filters.append(Query.equal("category", translator.to_canonical(spec.category)))
    if spec.brand != ALL:
        filters.append(Query.equal("brand", spec.brand))
    if spec.min_price is not None:
        filters.append(Query.greater_than_equal("price", spec.min_price))
    if spec.max_price is not None:
        filters.append(Query.less_than_equal("price", spec.max_price))
    if spec.min_rating is not None:
        filters.append(Query.greater_than_equal("rating", spec.min_rating))
    if spec.max_rating is not None:
        filters.append(Query.less_than_equal("rating", spec.max_rating))
    return filters


def build_order(spec: QuerySpec) -> list[dict]:
    attribute = REMOTE_SORT_ATTRIBUTES[spec.sort_key]
    if spec.sort_direction == "desc":
        return [Query.order_desc(attribute)]
    return [Query.order_asc(attribute)]


def build_page(spec: QuerySpec) -> list[dict]:
    return [Query.limit(spec.page_size), Query.offset(spec.offset)]


async def query_remote(
    store: DocumentStore,
    spec: QuerySpec,
    collection: Optional[str] = None,
    translator: CategoryTranslator = default_translator,
) -> QueryResult:
    """
    Run the query against the store: one paginated data request plus one
    count request with the same filters and no pagination.
    Store errors propagate unchanged.

    Price bounds are evaluated by the store against the stored list `price`,
    not the best offer: a record whose explicit offers undercut its list
    price can match here and not in query(), or the other way round.
    Records written without explicit offers give the same result both ways.
    """
    collection = collection or config.PRODUCTS_COLLECTION
    filters = build_filters(spec, translator)
    data_queries = filters + build_order(spec) + build_page(spec)

    data, count = await asyncio.gather(
        store.list_documents(collection, data_queries),
        store.list_documents(collection, filters),
    )
    items = normalize_many(data.documents, translator=translator)
    logger.info(
        "[%s] %s query page %d → %d items of %d",
        store.name, collection, spec.page, len(items), count.total,
    )
    return QueryResult(items=items, total_count=count.total, page=spec.page, page_size=spec.page_size)


# ── Suggestions & facets ───────────────────────────────────────────────────────

def suggest(
    products: Iterable[Product],
    query_text: str,
    fields: Sequence[str] = ("name", "brand", "category"),
    max_results: Optional[int] = None,
) -> list[str]:
    """
    Up to max_results distinct field values matching query_text, best first.

    Scores: exact 100, prefix 90, substring 70, otherwise a typo-tolerant
    rapidfuzz ratio (>= FUZZY_THRESHOLD) scaled below the substring tier.
    """
    limit = max_results if max_results is not None else config.MAX_SUGGESTIONS
    needle = query_text.strip().casefold()
    if not needle or limit <= 0:
        return []

    best: dict[str, tuple[float, str]] = {}     # casefolded → (score, first spelling)
    for product in products:
        for name in fields:
            for value in _field_values(product, name):
                score = _match_score(value.casefold(), needle)
                if score <= 0:
                    continue
                key = value.casefold()
                if key not in best:
                    best[key] = (score, value)
                elif score > best[key][0]:
                    best[key] = (score, best[key][1])

    ranked = sorted(best.values(), key=lambda pair: pair[0], reverse=True)
    return [value for _, value in ranked[:limit]]


def _field_values(product: Product, name: str) -> list[str]:
    if name == "features":
        return [f for f in product.features if f]
    value = getattr(product, name, None)
    return [value] if isinstance(value, str) and value else []


def _match_score(value: str, needle: str) -> float:
    if value == needle:
        return 100.0
    if value.startswith(needle):
        return 90.0
    if needle in value:
        return 70.0
    ratio = max([fuzz.ratio(needle, value)] + [fuzz.ratio(needle, word) for word in value.split()])
    if ratio >= FUZZY_THRESHOLD:
        return ratio * 0.6
    return 0.0


def facets(
    products: Iterable[Product],
    translator: CategoryTranslator = default_translator,
) -> dict[str, list[str]]:
    """Distinct brands, display categories and materials for filter dropdowns."""
    products = list(products)
    return {
        "brands": sorted({p.brand for p in products if p.brand}),
        "categories": sorted({translator.to_display(p.category) for p in products if p.category}),
        "materials": sorted({p.material for p in products if p.material}),
    }

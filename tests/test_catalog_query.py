"""
Tests for the client-side half of catalog_query.py.

Covers:
  - QuerySpec validation
  - search, category, brand, price and rating filters
  - stable sorting and directions
  - pagination and total_count / total_pages
  - suggest() ranking and fuzzy matches
  - facets()
"""
from __future__ import annotations

import pytest

import config
from catalog_query import (
    QueryResult,
    QuerySpec,
    facets,
    filter_products,
    query,
    sort_products,
    suggest,
)
from products import Product, VendorOffer


def _p(pid, name="Item", brand="Acme", category="Miscellaneous & General",
       price=10.0, rating=4.0, features=(), offers=None, material=None, created_at=None):
    if offers is None:
        offers = (VendorOffer("Amazon", price, f"https://amzn.to/{pid}"),) if price is not None else ()
    return Product(
        id=pid, name=name, brand=brand, category=category, rating=rating, price=price,
        image_url="/placeholder.svg", features=tuple(features), offers=tuple(offers),
        material=material, created_at=created_at,
    )


@pytest.fixture
def catalog():
    return [
        _p("1", "Athletic Tape", "Mueller", "Taping & Bandaging", 12.0, 4.5,
           features=["Zinc oxide adhesive"], material="Cotton"),
        _p("2", "Sterile Gauze Pads", "Dynarex", "First Aid & Wound Care", 8.0, 4.2,
           features=["Latex-free", "Non-stick"], material="Cotton"),
        _p("3", "Elastic Bandage", "ACE", "Taping & Bandaging", 6.5, 4.7,
           features=["Reusable"]),
        _p("4", "Instant Cold Pack", "Dynarex", "Hot & Cold Therapy", 15.0, 3.9),
        _p("5", "Ibuprofen 200mg", "Advil", "Over-the-Counter Medication", None, None),
        _p("6", "Kinesiology Tape", "KT Tape", "Taping & Bandaging", 19.99, 4.4,
           features=["Water resistant"], material="Nylon"),
    ]


# ── QuerySpec ──────────────────────────────────────────────────────────────────

class TestQuerySpec:
    def test_defaults(self):
        spec = QuerySpec()
        assert spec.category == "all"
        assert spec.brand == "all"
        assert spec.page == 1
        assert spec.page_size == config.RESULTS_PER_PAGE

    def test_page_size_follows_config(self, monkeypatch):
        monkeypatch.setattr(config, "RESULTS_PER_PAGE", 3)
        assert QuerySpec().page_size == 3

    @pytest.mark.parametrize("kwargs", [
        {"sort_key": "popularity"},
        {"sort_direction": "up"},
        {"page": 0},
        {"page_size": 0},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            QuerySpec(**kwargs)

    def test_offset(self):
        assert QuerySpec(page=3, page_size=10).offset == 20


# ── Filters ────────────────────────────────────────────────────────────────────

class TestSearch:
    def test_tape_scenario(self):
        gauze = _p("g", "Gauze Pad", brand="Acme")
        tape = _p("t", "Athletic Tape", brand="Acme")
        assert query([gauze, tape], QuerySpec(search_text="tape")).items == [tape]

    def test_matches_name_case_insensitive(self, catalog):
        result = query(catalog, QuerySpec(search_text="TAPE"))
        assert {p.id for p in result.items} == {"1", "6"}

    def test_matches_category(self, catalog):
        # "Bandag" hits the Taping & Bandaging category and "Elastic Bandage"
        result = query(catalog, QuerySpec(search_text="bandag"))
        assert {p.id for p in result.items} == {"1", "3", "6"}

    def test_matches_brand(self, catalog):
        result = query(catalog, QuerySpec(search_text="dynarex"))
        assert {p.id for p in result.items} == {"2", "4"}

    def test_matches_any_feature(self, catalog):
        result = query(catalog, QuerySpec(search_text="latex"))
        assert [p.id for p in result.items] == ["2"]

    def test_blank_search_matches_all(self, catalog):
        assert query(catalog, QuerySpec(search_text="   ")).total_count == len(catalog)

    def test_no_match(self, catalog):
        result = query(catalog, QuerySpec(search_text="defibrillator"))
        assert result.items == []
        assert result.total_count == 0
        assert result.total_pages == 0


class TestCategoryAndBrand:
    def test_canonical_category(self, catalog):
        result = query(catalog, QuerySpec(category="Taping & Bandaging"))
        assert {p.id for p in result.items} == {"1", "3", "6"}

    def test_display_category_is_translated(self, catalog):
        result = query(catalog, QuerySpec(category="Wound Care & Dressings"))
        assert [p.id for p in result.items] == ["2"]

    def test_brand_exact(self, catalog):
        result = query(catalog, QuerySpec(brand="Dynarex"))
        assert {p.id for p in result.items} == {"2", "4"}

    def test_brand_is_case_sensitive(self, catalog):
        assert query(catalog, QuerySpec(brand="dynarex")).total_count == 0

    def test_filters_combine(self, catalog):
        result = query(catalog, QuerySpec(search_text="tape", category="Taping & Bandaging", brand="Mueller"))
        assert [p.id for p in result.items] == ["1"]


class TestPriceAndRating:
    def test_price_uses_best_offer(self):
        product = _p("x", price=12.50, offers=[
            VendorOffer("Amazon", 12.50, "https://amzn.to/x"),
            VendorOffer("Walgreens", 9.99, "https://walgreens.com/x"),
        ])
        assert query([product], QuerySpec(min_price=10)).items == []
        assert query([product], QuerySpec(min_price=9)).items == [product]

    def test_price_range_inclusive(self, catalog):
        result = query(catalog, QuerySpec(min_price=8.0, max_price=15.0))
        assert {p.id for p in result.items} == {"1", "2", "4"}

    def test_unpriced_product_excluded_by_price_bound(self, catalog):
        result = query(catalog, QuerySpec(max_price=100))
        assert "5" not in {p.id for p in result.items}

    def test_unpriced_product_kept_without_bounds(self, catalog):
        assert "5" in {p.id for p in query(catalog, QuerySpec()).items}

    def test_min_rating(self, catalog):
        result = query(catalog, QuerySpec(min_rating=4.5))
        assert {p.id for p in result.items} == {"1", "3"}

    def test_rating_range(self, catalog):
        result = query(catalog, QuerySpec(min_rating=4.0, max_rating=4.4))
        assert {p.id for p in result.items} == {"2", "6"}

    def test_filter_products_without_pagination(self, catalog):
        spec = QuerySpec(category="Taping & Bandaging", page_size=1)
        assert len(filter_products(catalog, spec)) == 3


# ── Sorting ────────────────────────────────────────────────────────────────────

class TestSorting:
    def test_name_ascending_ignores_case(self):
        products = [_p("a", "bandage"), _p("b", "Antiseptic"), _p("c", "Cold pack")]
        assert [p.id for p in sort_products(products, "name")] == ["b", "a", "c"]

    def test_price_descending(self, catalog):
        result = query(catalog, QuerySpec(sort_key="price", sort_direction="desc"))
        assert [p.id for p in result.items][:3] == ["6", "4", "1"]

    def test_missing_price_sorts_as_zero(self, catalog):
        result = query(catalog, QuerySpec(sort_key="price"))
        assert result.items[0].id == "5"

    def test_ties_keep_input_order(self):
        products = [_p(str(i), f"Item {i}", price=5.0) for i in range(6)]
        asc = sort_products(products, "price", "asc")
        desc = sort_products(products, "price", "desc")
        assert [p.id for p in asc] == ["0", "1", "2", "3", "4", "5"]
        assert [p.id for p in desc] == ["0", "1", "2", "3", "4", "5"]

    def test_already_sorted_input_unchanged(self, catalog):
        ordered = sort_products(catalog, "name")
        assert query(ordered, QuerySpec(page_size=100)).items == ordered

    def test_created_at(self):
        products = [
            _p("new", created_at="2024-03-01T00:00:00.000+00:00"),
            _p("old", created_at="2023-11-20T00:00:00.000+00:00"),
        ]
        assert [p.id for p in sort_products(products, "createdAt")] == ["old", "new"]

    def test_unknown_key_rejected(self, catalog):
        with pytest.raises(ValueError):
            sort_products(catalog, "colour")


# ── Pagination ─────────────────────────────────────────────────────────────────

class TestPagination:
    def test_total_count_before_slicing(self, catalog):
        result = query(catalog, QuerySpec(page=1, page_size=2))
        assert len(result.items) == 2
        assert result.total_count == 6
        assert result.total_pages == 3

    def test_pages_partition_result(self, catalog):
        seen = []
        for page in (1, 2, 3):
            seen += [p.id for p in query(catalog, QuerySpec(page=page, page_size=4)).items]
        full = [p.id for p in query(catalog, QuerySpec(page_size=100)).items]
        assert seen == full

    def test_page_past_end_is_empty(self, catalog):
        result = query(catalog, QuerySpec(page=5, page_size=4))
        assert result.items == []
        assert result.total_count == 6

    def test_total_pages_rounds_up(self):
        assert QueryResult(items=[], total_count=13, page=1, page_size=12).total_pages == 2


# ── Suggestions ────────────────────────────────────────────────────────────────

class TestSuggest:
    def test_exact_then_prefix_then_substring(self):
        products = [
            _p("1", "Sports Tape", brand="Tape"),
            _p("2", "Tape Measure", brand="Stanley"),
        ]
        assert suggest(products, "tape") == ["Tape", "Tape Measure", "Sports Tape"]

    def test_fuzzy_match_for_typo(self):
        products = [_p("1", "Ibuprofen", brand="Advil")]
        assert suggest(products, "ibuprofin") == ["Ibuprofen"]

    def test_distinct_case_insensitive(self):
        products = [_p("1", "Gauze", brand="Gauze"), _p("2", "GAUZE")]
        assert suggest(products, "gau") == ["Gauze"]

    def test_respects_max_results(self, catalog):
        assert len(suggest(catalog, "t", max_results=2)) == 2

    def test_default_limit_from_config(self, catalog, monkeypatch):
        monkeypatch.setattr(config, "MAX_SUGGESTIONS", 1)
        assert len(suggest(catalog, "tape")) == 1

    def test_blank_query(self, catalog):
        assert suggest(catalog, "  ") == []

    def test_features_field(self, catalog):
        assert suggest(catalog, "reus", fields=("features",)) == ["Reusable"]


class TestFacets:
    def test_sorted_distinct_values(self, catalog):
        result = facets(catalog)
        assert result["brands"] == ["ACE", "Advil", "Dynarex", "KT Tape", "Mueller"]
        assert result["materials"] == ["Cotton", "Nylon"]

    def test_categories_in_display_form(self, catalog):
        result = facets(catalog)
        assert "Tapes & Wraps" in result["categories"]
        assert "Wound Care & Dressings" in result["categories"]
        assert "Taping & Bandaging" not in result["categories"]

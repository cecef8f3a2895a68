"""
categories.py — one source of truth for category names.

Products are stored under a canonical category name ("First Aid & Wound Care")
and shown to users under a display name ("Wound Care & Dressings"). The kit
builder pages also address categories by a URL slug ("wound-care-dressings").

Every lookup is total: a name that is not in the table comes back unchanged,
so translating twice (or translating something already translated) is safe.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class Category:
    canonical: str      # as stored on the product record
    display: str        # as shown in the catalog / kit builder
    slug: str           # build-page id


CATEGORIES: tuple[Category, ...] = (
    Category("First Aid & Wound Care",              "Wound Care & Dressings",               "wound-care-dressings"),
    Category("Taping & Bandaging",                  "Tapes & Wraps",                        "tapes-wraps"),
    Category("Antiseptics & Ointments",             "Antiseptics & Ointments",              "antiseptics-ointments"),
    Category("Over-the-Counter Medication",         "Pain & Symptom Relief",                "pain-relief"),
    Category("Instruments & Tools",                 "Instruments & Tools",                  "instruments-tools"),
    Category("Emergency Care",                      "Trauma & Emergency",                   "trauma-emergency"),
    Category("Personal Protection Equipment (PPE)", "Personal Protection Equipment (PPE)",  "ppe"),
    Category("Documentation & Communication",       "First Aid Information & Essentials",   "information-essentials"),
    Category("Hot & Cold Therapy",                  "Hot & Cold Therapy",                   "hot-cold-therapy"),
    Category("Hydration & Nutrition",               "Hydration & Nutrition",                "hydration-nutrition"),
    Category("Miscellaneous & General",             "Miscellaneous & General",              "miscellaneous"),
)


class CategoryTranslator:
    """Bidirectional canonical ↔ display (and slug) lookup."""

    def __init__(self, categories: Iterable[Category] = CATEGORIES) -> None:
        self._categories = tuple(categories)
        self._to_display = {c.canonical: c.display for c in self._categories}
        self._to_canonical = {c.display: c.canonical for c in self._categories}
        self._to_slug = {c.canonical: c.slug for c in self._categories}
        self._from_slug = {c.slug: c.canonical for c in self._categories}

        # A display name shared by two canonical names would break the inverse
        if len(self._to_canonical) != len(self._to_display):
            raise ValueError("category table must map canonical and display names one-to-one")

    def to_display(self, canonical: str) -> str:
        return self._to_display.get(canonical, canonical)

    def to_canonical(self, display: str) -> str:
        return self._to_canonical.get(display, display)

    def to_slug(self, canonical: str) -> str:
        return self._to_slug.get(canonical, canonical)

    def from_slug(self, slug: str) -> str:
        """Slug → canonical name."""
        return self._from_slug.get(slug, slug)

    def canonical_names(self) -> list[str]:
        return [c.canonical for c in self._categories]

    def display_names(self) -> list[str]:
        return [c.display for c in self._categories]


translator = CategoryTranslator()


def to_display(canonical: str) -> str:
    return translator.to_display(canonical)


def to_canonical(display: str) -> str:
    return translator.to_canonical(display)

"""
products.py — the in-memory product shape every catalog view works with.

A Product is a frozen snapshot taken when the catalog was fetched. Build one
with normalizer.normalize(); nothing else should construct them from raw
store records.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VendorOffer:
    vendor_name: str
    price: float                # always >= 0
    url: str


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    brand: str
    category: str               # canonical form; translate only for display
    rating: Optional[float]     # 0–5
    price: Optional[float]      # list price, >= 0
    image_url: str              # never None — placeholder when unknown
    dimensions: Optional[str] = None
    weight: Optional[str] = None
    material: Optional[str] = None
    features: tuple[str, ...] = ()
    offers: tuple[VendorOffer, ...] = ()
    asin: Optional[str] = None
    affiliate_link: Optional[str] = None
    created_at: Optional[str] = None    # ISO-8601 from the store
    updated_at: Optional[str] = None

    # ── Pricing ───────────────────────────────────────────────────────────────

    @property
    def best_offer(self) -> Optional[VendorOffer]:
        """Lowest-priced offer; the first one listed wins a tie."""
        if not self.offers:
            return None
        return min(self.offers, key=lambda o: o.price)

    @property
    def best_price(self) -> Optional[float]:
        """Best offer price, else list price, else None."""
        offer = self.best_offer
        if offer is not None:
            return offer.price
        return self.price

    @property
    def amazon_url(self) -> Optional[str]:
        if self.affiliate_link:
            return self.affiliate_link
        if self.asin:
            return f"https://www.amazon.com/dp/{self.asin}"
        return None

"""
kit.py — the user's in-progress kit.

A kit maps product id → KitItem(product snapshot, quantity >= 1). An entry
whose quantity would drop to 0 or below is removed, so the kit never holds a
zero or negative quantity. Repeated writes to the same id replace the entry;
quantities are never merged.

One owner mutates a Kit; there is no locking.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from categories import CategoryTranslator, translator as default_translator
from normalizer import normalize
from products import Product

logger = logging.getLogger(__name__)


class InvalidQuantity(ValueError):
    """Quantity passed to Kit.add or Kit.set_quantity was not a valid integer."""

    def __init__(self, quantity) -> None:
        super().__init__(f"Quantity must be a positive integer, got {quantity!r}")
        self.quantity = quantity


@dataclass(frozen=True)
class KitItem:
    product: Product
    quantity: int


@dataclass
class VendorTotal:
    vendor: str
    total: float
    url: str


class Kit:

    def __init__(self, translator: CategoryTranslator = default_translator) -> None:
        self._items: dict[str, KitItem] = {}
        self._translator = translator

    # ── Mutations ─────────────────────────────────────────────────────────────

    def add(self, product: Product, quantity: int = 1) -> None:
        """
        Put a product in the kit with the given quantity.
        Raises InvalidQuantity for 0, negatives and non-integers. Adding an id
        that is already present replaces its entry.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidQuantity(quantity)
        self._items[product.id] = KitItem(product=product, quantity=quantity)
        logger.debug("Kit: %s × %d", product.id, quantity)

    def remove(self, product_id: str) -> None:
        """No-op if the product is not in the kit."""
        self._items.pop(product_id, None)

    def set_quantity(self, product_id: str, quantity: int, product: Optional[Product] = None) -> None:
        """
        Upsert by replacement. quantity <= 0 removes the entry; non-integers
        raise InvalidQuantity.

        Inserting a product that is not yet in the kit needs its snapshot, so
        pass `product` for first-time adds; without it the call is a no-op for
        an unknown id.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidQuantity(quantity)
        if quantity <= 0:
            self.remove(product_id)
            return
        current = self._items.get(product_id)
        if current is not None:
            self._items[product_id] = KitItem(product=current.product, quantity=quantity)
        elif product is not None:
            if product.id != product_id:
                raise ValueError(f"Product id {product.id!r} does not match {product_id!r}")
            self._items[product_id] = KitItem(product=product, quantity=quantity)
        else:
            logger.warning("set_quantity(%s) ignored: product not in kit and no snapshot given", product_id)

    def clear(self) -> None:
        self._items.clear()

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_quantity(self, product_id: str) -> int:
        item = self._items.get(product_id)
        return item.quantity if item else 0

    def is_in_kit(self, product_id: str) -> bool:
        return product_id in self._items

    def items(self) -> list[KitItem]:
        """Items in the order they were first added."""
        return list(self._items.values())

    def total_quantity(self) -> int:
        return sum(item.quantity for item in self._items.values())

    def category_totals(self) -> dict[str, int]:
        """Summed quantities per display category."""
        totals: dict[str, int] = {}
        for item in self._items.values():
            bucket = self._translator.to_display(item.product.category)
            totals[bucket] = totals.get(bucket, 0) + item.quantity
        return totals

    def vendor_totals(self) -> list[VendorTotal]:
        """
        What the whole kit would cost at each vendor: sum of
        offer price × quantity over every item that vendor offers.
        """
        totals: dict[str, VendorTotal] = {}
        for item in self._items.values():
            for offer in item.product.offers:
                entry = totals.get(offer.vendor_name)
                if entry is None:
                    entry = totals[offer.vendor_name] = VendorTotal(offer.vendor_name, 0.0, offer.url)
                entry.total += offer.price * item.quantity
                entry.url = offer.url
        for entry in totals.values():
            entry.total = round(entry.total, 2)
        return list(totals.values())

    def estimated_total(self) -> float:
        """Best price × quantity summed; unpriced items count as 0."""
        total = 0.0
        for item in self._items.values():
            price = item.product.best_price
            if price is not None:
                total += price * item.quantity
        return round(total, 2)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._items

    def __iter__(self) -> Iterator[KitItem]:
        return iter(list(self._items.values()))

    # ── Snapshot (for database.save_kit / load_kit) ───────────────────────────

    def to_dict(self) -> dict:
        return {
            "items": [
                {"product": _product_to_record(item.product), "quantity": item.quantity}
                for item in self._items.values()
            ]
        }

    @classmethod
    def from_dict(cls, data: Optional[dict], translator: CategoryTranslator = default_translator) -> "Kit":
        """Rebuild a kit; malformed entries are skipped."""
        kit = cls(translator=translator)
        for entry in (data or {}).get("items", []):
            try:
                product = normalize(entry["product"], translator=translator)
                quantity = int(entry["quantity"])
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed kit entry: %s", exc)
                continue
            if product.id and quantity > 0:
                kit._items[product.id] = KitItem(product=product, quantity=quantity)
        return kit


def _product_to_record(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "brand": product.brand,
        "category": product.category,
        "rating": product.rating,
        "price": product.price,
        "imageUrl": product.image_url,
        "dimensions": product.dimensions,
        "weight": product.weight,
        "material": product.material,
        "features": list(product.features),
        "offers": [
            {"vendorName": o.vendor_name, "price": o.price, "url": o.url}
            for o in product.offers
        ],
        "asin": product.asin,
        "affiliateLink": product.affiliate_link,
        "createdAt": product.created_at,
        "updatedAt": product.updated_at,
    }

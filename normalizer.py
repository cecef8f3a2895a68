"""
normalizer.py — raw store record → Product.

This is the one place where loosely-shaped input is turned into a Product.
Records come from several writers over the project's history, so the same
field can show up as `image_url` or `imageUrl`, features can be a list or one
delimited string, and numbers can arrive as strings like "$12.99".

Nothing here raises on bad field content: unparseable numbers become None,
unknown shapes become empty values.
"""
from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Iterable, Optional

import config
from categories import CategoryTranslator, translator as default_translator
from products import Product, VendorOffer

logger = logging.getLogger(__name__)


def normalize(
    raw: dict,
    delimiter: Optional[str] = None,
    translator: CategoryTranslator = default_translator,
) -> Product:
    """Convert one raw store record into a Product."""
    raw = raw or {}
    price = parse_price(raw.get("price"))
    rating = parse_rating(raw.get("rating"))
    affiliate_link = _text(raw.get("affiliate_link")) or _text(raw.get("affiliateLink"))
    asin = _text(raw.get("asin"))

    offers = _parse_offers(raw.get("offers"))
    if not offers and price is not None:
        # Every priced product gets at least one offer for best-price math
        offers = [_synthesize_offer(price, asin, affiliate_link, raw)]

    category = _text(raw.get("category")) or ""

    return Product(
        id=str(raw.get("$id") or raw.get("id") or ""),
        name=(_text(raw.get("name")) or ""),
        brand=(_text(raw.get("brand")) or ""),
        category=translator.to_canonical(category),
        rating=rating,
        price=price,
        image_url=_image_url(raw),
        dimensions=_text(raw.get("dimensions")),
        weight=_text(raw.get("weight")),
        material=_text(raw.get("material")),
        features=tuple(parse_features(raw.get("features"), delimiter)),
        offers=tuple(offers),
        asin=asin,
        affiliate_link=affiliate_link,
        created_at=_first(raw, "$createdAt", "createdAt", "created_at"),
        updated_at=_first(raw, "$updatedAt", "updatedAt", "updated_at"),
    )


def normalize_many(records: Iterable[dict], **kwargs: Any) -> list[Product]:
    """Normalize a fetched set; a repeated id keeps its first occurrence."""
    seen: dict[str, Product] = {}
    for raw in records:
        product = normalize(raw, **kwargs)
        if product.id in seen:
            logger.debug("Dropping duplicate product id %s", product.id)
            continue
        seen[product.id] = product
    return list(seen.values())


def to_document(
    product: Product,
    delimiter: Optional[str] = None,
    translator: CategoryTranslator = default_translator,
) -> dict:
    """Shape a Product back into store fields (no system `$` fields)."""
    sep = delimiter if delimiter is not None else config.FEATURE_DELIMITER
    joiner = sep + " " if sep.strip() else sep
    return {
        "name": product.name,
        "brand": product.brand,
        "category": translator.to_canonical(product.category),
        "rating": product.rating,
        "price": product.price,
        "dimensions": product.dimensions,
        "weight": product.weight,
        "material": product.material,
        "features": joiner.join(product.features),
        "offers": json.dumps([
            {"vendorName": o.vendor_name, "price": o.price, "url": o.url}
            for o in product.offers
        ]),
        "imageUrl": None if product.image_url == config.PLACEHOLDER_IMAGE else product.image_url,
        "asin": product.asin,
        "affiliateLink": product.affiliate_link,
    }


# ── Field helpers ──────────────────────────────────────────────────────────────

def parse_features(value: Any, delimiter: Optional[str] = None) -> list[str]:
    """
    A list is used as-is, minus entries that are not non-blank strings. A
    non-empty string is split on the delimiter with each token trimmed and
    empty tokens dropped. Anything else → [].
    """
    if isinstance(value, (list, tuple)):
        return [f for f in value if isinstance(f, str) and f.strip()]
    if isinstance(value, str) and value.strip():
        sep = delimiter if delimiter is not None else config.FEATURE_DELIMITER
        return [token.strip() for token in value.split(sep) if token.strip()]
    return []


def parse_price(value: Any) -> Optional[float]:
    """Numbers pass through; strings like '$29.99' or '$1,299.00' are parsed."""
    if isinstance(value, str):
        value = re.sub(r"[^\d.\-]", "", value.replace(",", ""))
    number = _parse_number(value)
    if number is None or number < 0:
        return None
    return number


def parse_rating(value: Any) -> Optional[float]:
    number = _parse_number(value)
    if number is None or not 0 <= number <= 5:
        return None
    return number


def _parse_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _parse_offers(value: Any) -> list[VendorOffer]:
    # The store keeps nested values as JSON strings
    if isinstance(value, str):
        try:
            value = json.loads(value) if value.strip() else []
        except ValueError:
            logger.debug("Unparseable offers string: %.60s", value)
            return []
    if not isinstance(value, (list, tuple)):
        return []

    offers: list[VendorOffer] = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        price = parse_price(entry.get("price"))
        if price is None:
            logger.debug("Dropping offer without a usable price: %s", entry)
            continue
        offers.append(VendorOffer(
            vendor_name=_text(entry.get("vendorName")) or _text(entry.get("vendor_name"))
                        or _text(entry.get("name")) or "Unknown",
            price=price,
            url=_text(entry.get("url")) or "",
        ))
    return offers


def _synthesize_offer(
    price: float,
    asin: Optional[str],
    affiliate_link: Optional[str],
    raw: dict,
) -> VendorOffer:
    url = affiliate_link or _text(raw.get("url")) or _text(raw.get("product_url"))
    if not url and asin:
        url = f"https://www.amazon.com/dp/{asin}"
    is_amazon = bool(asin) or (url is not None and ("amazon." in url or "amzn." in url))
    return VendorOffer(vendor_name="Amazon" if is_amazon else "Direct", price=price, url=url or "")


def _image_url(raw: dict) -> str:
    return (
        _text(raw.get("image_url"))
        or _text(raw.get("imageUrl"))
        or config.PLACEHOLDER_IMAGE
    )


def _first(raw: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = _text(raw.get(key))
        if value:
            return value
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None

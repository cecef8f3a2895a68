"""
main.py — command line entry point.

  python main.py import <collection> <file.json>   bulk upsert a JSON array
  python main.py query [filters...]                 one page of the catalog
  python main.py suggest <text>                     search suggestions

The store is picked by store.get_store() (see STORE_BACKEND in config.py).
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import config
from catalog_query import QuerySpec, SORT_KEYS, query_remote, suggest
from categories import translator
from document_store.base import Query
from importer import import_batch, product_fields
from normalizer import normalize_many
from store import get_store

# Log file lives in the same data/ directory as the database so that a single
# Docker volume mount (./data:/app/data) captures both.
_data_dir = Path(config.DATA_DIR)
_data_dir.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    handlers=[
        logging.StreamHandler(sys.stderr),
        logging.FileHandler(str(_data_dir / "catalog.log"), encoding="utf-8"),
    ],
)
logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# Remote stores page list results; fetch enough to cover the whole catalog
SUGGEST_SCAN_LIMIT = 5000


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="catalog", description="Product catalog & kit tools")
    sub = parser.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Bulk upsert records from a JSON array file")
    imp.add_argument("collection")
    imp.add_argument("file", type=Path)
    imp.add_argument("--id-field", default="id")

    q = sub.add_parser("query", help="Query the product catalog")
    q.add_argument("--search", default="")
    q.add_argument("--category", default="all")
    q.add_argument("--brand", default="all")
    q.add_argument("--min-price", type=float)
    q.add_argument("--max-price", type=float)
    q.add_argument("--min-rating", type=float)
    q.add_argument("--sort", default="name", choices=SORT_KEYS)
    q.add_argument("--desc", action="store_true")
    q.add_argument("--page", type=int, default=1)
    q.add_argument("--page-size", type=int, default=None)

    s = sub.add_parser("suggest", help="Search suggestions for partial text")
    s.add_argument("text")
    s.add_argument("--max", type=int, default=None)
    return parser


async def run_import(args: argparse.Namespace) -> int:
    try:
        records = json.loads(args.file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Cannot read %s: %s", args.file, exc)
        return 2
    if not isinstance(records, list):
        logger.error("%s must contain a JSON array", args.file)
        return 2

    shape = product_fields if args.collection == config.PRODUCTS_COLLECTION else None
    result = await import_batch(
        records, get_store(), collection=args.collection, id_field=args.id_field, shape=shape,
    )
    print(f"✅ {result.succeeded} imported ({result.created} created, {result.updated} updated)")
    print(f"⏭️  {result.skipped} skipped")
    for failure in result.failed:
        label = failure.record.get(args.id_field, "?") if isinstance(failure.record, dict) else repr(failure.record)
        print(f"❌ {label}: {failure.reason}")
    return 1 if result.failed else 0


async def run_query(args: argparse.Namespace) -> int:
    spec = QuerySpec(
        search_text=args.search,
        category=args.category,
        brand=args.brand,
        min_price=args.min_price,
        max_price=args.max_price,
        min_rating=args.min_rating,
        sort_key=args.sort,
        sort_direction="desc" if args.desc else "asc",
        page=args.page,
        page_size=args.page_size or config.RESULTS_PER_PAGE,
    )
    result = await query_remote(get_store(), spec)
    print(f"Page {result.page}/{max(result.total_pages, 1)} — {result.total_count} product(s)")
    for p in result.items:
        price = f"${p.best_price:.2f}" if p.best_price is not None else "N/A"
        rating = f"{p.rating:.1f}★" if p.rating is not None else "—"
        print(f"  {p.name} · {p.brand} · {translator.to_display(p.category)} · {price} · {rating}")
    return 0


async def run_suggest(args: argparse.Namespace) -> int:
    listing = await get_store().list_documents(config.PRODUCTS_COLLECTION, [Query.limit(SUGGEST_SCAN_LIMIT)])
    for text in suggest(normalize_many(listing.documents), args.text, max_results=args.max):
        print(text)
    return 0


async def run(argv: list[str]) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "import":
        return await run_import(args)
    if args.command == "query":
        return await run_query(args)
    return await run_suggest(args)


def main() -> None:
    try:
        sys.exit(asyncio.run(run(sys.argv[1:])))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()

"""
Central configuration — reads from .env file.

Every value has a default so the library modules import cleanly without an
.env file (tests override attributes with monkeypatch). Code always reads
config.X at call time, never copies the value at import.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# ── Local data ────────────────────────────────────────────────────────────────
# SQLite document store, saved kits and the log file all live here.
DATA_DIR: str = os.getenv("DATA_DIR", "data")

# ── Document store ────────────────────────────────────────────────────────────
# auto     → appwrite if endpoint + project + key are set, otherwise sqlite
# appwrite → remote Appwrite Databases REST API
# sqlite   → local aiosqlite file under DATA_DIR
# memory   → in-process dict (dry runs)
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "auto")

APPWRITE_ENDPOINT: str | None   = os.getenv("APPWRITE_ENDPOINT", "").strip() or None
APPWRITE_PROJECT_ID: str | None = os.getenv("APPWRITE_PROJECT_ID", "").strip() or None
APPWRITE_API_KEY: str | None    = os.getenv("APPWRITE_API_KEY", "").strip() or None
APPWRITE_DATABASE_ID: str       = os.getenv("APPWRITE_DATABASE_ID", "atSupplyFinder")

PRODUCTS_COLLECTION: str = os.getenv("PRODUCTS_COLLECTION", "products")

# Per-request timeout for the remote store, seconds
HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "15"))

# ── Catalog behaviour ─────────────────────────────────────────────────────────
RESULTS_PER_PAGE: int = int(os.getenv("RESULTS_PER_PAGE", "12"))
MAX_SUGGESTIONS: int  = int(os.getenv("MAX_SUGGESTIONS", "5"))

# Separator used when a product's features are stored as one string
FEATURE_DELIMITER: str = os.getenv("FEATURE_DELIMITER", ",")

# Shown when a product has no image; never None so callers don't branch on it
PLACEHOLDER_IMAGE: str = os.getenv("PLACEHOLDER_IMAGE", "/placeholder.svg")

# ── Import ────────────────────────────────────────────────────────────────────
# Max per-record upserts in flight at once during a bulk import
IMPORT_CONCURRENCY: int = int(os.getenv("IMPORT_CONCURRENCY", "8"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

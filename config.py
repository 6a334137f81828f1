"""Global configuration values."""

import os
from pathlib import Path

# Local data directory (SQLite database lives here)
DATA_DIR = Path(os.environ.get("TRAVELMATCH_DATA_DIR", "./data"))

DATABASE_FILE = os.environ.get("TRAVELMATCH_DATABASE_FILE", str(DATA_DIR / "travelmatch.db"))

# Document store backend: "memory" or "sqlite"
STORE_BACKEND = os.environ.get("TRAVELMATCH_STORE_BACKEND", "sqlite").lower()

# Explore page: how many discoverable profiles to fetch before ranking locally
EXPLORE_FETCH_LIMIT = int(os.environ.get("EXPLORE_FETCH_LIMIT", "50"))
USERS_PER_PAGE = int(os.environ.get("USERS_PER_PAGE", "6"))

# Destination recommendations fetched per request (ordered by rating)
DESTINATION_LIMIT = int(os.environ.get("DESTINATION_LIMIT", "20"))

SECRET_KEY = os.environ.get("SECRET_KEY", "travelmatch-dev-secret")

"""
Load catalog puzzles from a JSON file into the configured record store.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from puzzle_api.config import get_settings
from puzzle_api.db import SqlDbClient
from puzzle_api.seed import load_catalog_file, seed_catalog

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the puzzle catalog")
    parser.add_argument("path", help="JSON file with a list of puzzles")
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL; defaults to DATABASE_URL",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    database_url = args.database_url or get_settings().database_url
    if not database_url:
        logger.error("No database configured; pass --database-url or set DATABASE_URL")
        return 1

    db = SqlDbClient(database_url)
    inserted, skipped = seed_catalog(db, load_catalog_file(args.path))
    logger.info("Inserted %d puzzles, skipped %d", inserted, skipped)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

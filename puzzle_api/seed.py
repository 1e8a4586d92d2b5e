"""
Bulk loading of catalog puzzles from a JSON file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from puzzle_api.db import DbClient, DuplicateKeyError, PuzzleRecord

logger = logging.getLogger(__name__)


def load_catalog_file(path: str | Path) -> list[dict]:
    """Read a JSON list of puzzle objects shaped like the add-puzzle body."""
    with open(path, "r", encoding="utf-8") as f:
        entries = json.load(f)
    if not isinstance(entries, list):
        raise ValueError(f"{path} must contain a JSON list of puzzles")
    return entries


def seed_catalog(db: DbClient, entries: list[dict]) -> tuple[int, int]:
    """Insert ``entries``; returns (inserted, skipped).

    Entries missing an id, name or piece count, or whose id already exists,
    are skipped and logged, as are entries that are not objects or whose
    piece count is not a number.
    """
    inserted = skipped = 0
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Skipping non-object entry: %r", entry)
            skipped += 1
            continue
        puzzle_id = entry.get("puzzleId") or entry.get("id")
        if not puzzle_id or not entry.get("name") or not entry.get("pieces"):
            logger.warning("Skipping incomplete entry: %s", entry)
            skipped += 1
            continue
        try:
            pieces = int(entry["pieces"])
        except (TypeError, ValueError):
            logger.warning("Skipping %s: invalid piece count %r", puzzle_id, entry["pieces"])
            skipped += 1
            continue
        record = PuzzleRecord(
            puzzle_id=puzzle_id,
            name=entry["name"],
            description=entry.get("description") or "",
            tags=list(entry.get("tags") or []),
            pieces=pieces,
            svg_url=entry.get("svg") or "",
        )
        try:
            db.insert_puzzle(record)
        except DuplicateKeyError:
            logger.info("Puzzle %s already exists, skipping", puzzle_id)
            skipped += 1
            continue
        inserted += 1
    return inserted, skipped

"""
HTTP routes for the puzzle game API: catalog, players, scores and admin.
"""

from __future__ import annotations

import hmac
import json
import logging
import random
import string
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, Query, UploadFile

from puzzle_api.config import Settings, get_settings
from puzzle_api.db import DbClient, DuplicateKeyError, PuzzleRecord, ScoreRecord
from puzzle_api.dependencies import get_db_client, get_player_store, get_storage_client
from puzzle_api.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    UnsupportedOperationError,
    ValidationError,
)
from puzzle_api.kv import KeyValueStore
from puzzle_api.schemas import (
    AddPuzzlePayload,
    AddPuzzleResponse,
    AdminPasswordPayload,
    CatalogPuzzle,
    MessageResponse,
    RegisterPayload,
    RegisterResponse,
    ScoreEntry,
    ScorePayload,
    UploadImageResponse,
)
from puzzle_api.storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["game"])

SVG_CONTENT_TYPE = "image/svg+xml"
_ID_ALPHABET = string.ascii_lowercase + string.digits


def _generate_catalog_puzzle_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"puzzle-{int(time.time() * 1000)}-{suffix}"


@router.post("/register", response_model=RegisterResponse)
def register(
    payload: RegisterPayload, players: KeyValueStore = Depends(get_player_store)
):
    name = payload.name
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Name is required")
    name = name.strip()

    if players.get(name) is not None:
        raise ConflictError("Name is already taken")

    entry = {
        "name": name,
        "registeredAt": datetime.now(timezone.utc).isoformat(),
    }
    # SET NX closes most of the window between the check above and this write.
    if not players.put_if_absent(name, json.dumps(entry)):
        raise ConflictError("Name is already taken")

    logger.info("Registered player %s", name)
    return RegisterResponse(message="Player registered successfully", name=name)


@router.get("/puzzles", response_model=list[CatalogPuzzle])
def list_puzzles(db: DbClient = Depends(get_db_client)):
    return [puzzle.as_dict() for puzzle in db.list_puzzles()]


@router.post("/score", response_model=MessageResponse)
def post_score(
    payload: ScorePayload,
    db: DbClient = Depends(get_db_client),
    players: KeyValueStore = Depends(get_player_store),
):
    if not payload.name or not payload.puzzleId or not payload.timeSeconds:
        raise ValidationError("name, puzzleId, and timeSeconds are required")

    if players.get(payload.name) is None:
        raise NotFoundError("Player not found. Please register first.")
    if db.get_puzzle(payload.puzzleId) is None:
        raise NotFoundError("Puzzle not found")

    db.add_score(
        ScoreRecord(
            player_name=payload.name,
            puzzle_id=payload.puzzleId,
            time_seconds=payload.timeSeconds,
        )
    )
    return MessageResponse(message="Score saved successfully")


@router.get("/scores/{name:path}", response_model=list[ScoreEntry])
def get_scores(name: str, db: DbClient = Depends(get_db_client)):
    if not name:
        raise ValidationError("Player name is required")
    return db.list_scores(name)


@router.get("/search", response_model=list[CatalogPuzzle])
def search_puzzles(
    q: str | None = Query(None, description="Keyword matched against name, description and tags"),
    db: DbClient = Depends(get_db_client),
):
    if not q:
        raise ValidationError("Search query is required")
    return [puzzle.as_dict() for puzzle in db.search_puzzles(q)]


@router.post("/upload-image", response_model=UploadImageResponse)
async def upload_image(
    file: UploadFile | None = File(None),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    if file is None:
        raise ValidationError("No file provided")

    puzzle_id = _generate_catalog_puzzle_id()
    filename = f"{puzzle_id}.svg"
    # Stored as SVG whatever the upload actually contains.
    storage.upload_bytes(filename, await file.read(), SVG_CONTENT_TYPE)
    logger.info("Uploaded catalog image %s", filename)

    url = f"{settings.public_bucket_url.rstrip('/')}/{filename}"
    return UploadImageResponse(url=url, id=puzzle_id)


@router.post("/add-puzzle", response_model=AddPuzzleResponse)
def add_puzzle(payload: AddPuzzlePayload, db: DbClient = Depends(get_db_client)):
    if not payload.puzzleId or not payload.name or not payload.pieces:
        raise ValidationError("puzzleId, name, and pieces are required")

    if db.get_puzzle(payload.puzzleId) is not None:
        raise ConflictError("Puzzle with this ID already exists")

    record = PuzzleRecord(
        puzzle_id=payload.puzzleId,
        name=payload.name,
        description=payload.description or "",
        tags=payload.tags or [],
        pieces=payload.pieces,
        svg_url=payload.svg or "",
    )
    try:
        db.insert_puzzle(record)
    except DuplicateKeyError:
        raise ConflictError("Puzzle with this ID already exists")

    logger.info("Added catalog puzzle %s", record.puzzle_id)
    return AddPuzzleResponse(message="Puzzle added successfully", puzzleId=record.puzzle_id)


@router.post("/verify-admin", response_model=MessageResponse)
def verify_admin(
    payload: AdminPasswordPayload, settings: Settings = Depends(get_settings)
):
    if not payload.password:
        raise ValidationError("Password is required")

    expected = settings.admin_password
    if expected and hmac.compare_digest(
        payload.password.encode("utf-8"), expected.encode("utf-8")
    ):
        return MessageResponse(message="Admin verified successfully")

    logger.warning("Rejected admin verification attempt")
    raise AuthError("Invalid credentials")


@router.put("/update-admin", response_model=MessageResponse)
def update_admin(payload: AdminPasswordPayload):
    if not payload.password:
        raise ValidationError("New password is required")
    raise UnsupportedOperationError(
        "Updating the admin password is not supported; rotate ADMIN_PASSWORD instead"
    )

"""
HTTP routes for the admin gallery: mutable puzzles with uploaded images.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Iterable

from fastapi import APIRouter, Depends, Form, Request, Response
from starlette.datastructures import UploadFile

from puzzle_api.db import DbClient, GalleryPuzzleRecord
from puzzle_api.dependencies import get_db_client, get_storage_client
from puzzle_api.errors import NotFoundError, ValidationError
from puzzle_api.schemas import GalleryPuzzle, Level
from puzzle_api.storage import BlobNotFoundError, StorageClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["gallery"])


def _generate_gallery_puzzle_id() -> str:
    return f"puzzle-{int(time.time() * 1000)}"


def _split_tags(raw: str | None) -> list[str]:
    return [tag.strip() for tag in (raw or "").split(",") if tag.strip()]


def _parse_level(raw: str | None) -> str:
    try:
        return Level(raw or Level.EASY.value).value
    except ValueError:
        allowed = ", ".join(level.value for level in Level)
        raise ValidationError(f"level must be one of {allowed}")


def _parse_existing_files(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("existingFiles must be a JSON list")
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError("existingFiles must be a JSON list")
    return value


def _not_found() -> NotFoundError:
    return NotFoundError("Not Found", plain_text=True)


async def _selected_files(request: Request) -> list[UploadFile]:
    """Non-empty file parts of the repeated `files` field.

    An empty file input arrives as a plain string part and is skipped.
    """
    form = await request.form()
    uploads = [
        part
        for part in form.getlist("files")
        if isinstance(part, UploadFile) and part.filename
    ]
    names = [upload.filename for upload in uploads]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate file name(s): {', '.join(duplicates)}")
    return uploads


async def _upload_files(
    storage: StorageClient, puzzle_id: str, uploads: list[UploadFile]
) -> list[str]:
    keys: list[str] = []
    for upload in uploads:
        key = f"{puzzle_id}/{upload.filename}"
        storage.upload_bytes(
            key,
            await upload.read(),
            upload.content_type or "application/octet-stream",
        )
        keys.append(key)
    return keys


def _discard_blobs(storage: StorageClient, keys: Iterable[str]) -> None:
    """Compensating delete for blobs whose row write did not happen."""
    for key in keys:
        try:
            storage.delete(key)
        except Exception:
            logger.exception("Failed to remove orphaned blob %s", key)


@router.get("/puzzles", response_model=list[GalleryPuzzle])
def list_gallery_puzzles(db: DbClient = Depends(get_db_client)):
    return [puzzle.as_dict() for puzzle in db.list_gallery_puzzles()]


@router.get("/puzzles/{puzzle_id}", response_model=GalleryPuzzle)
def get_gallery_puzzle(puzzle_id: str, db: DbClient = Depends(get_db_client)):
    record = db.get_gallery_puzzle(puzzle_id)
    if not record:
        raise _not_found()
    return record.as_dict()


@router.post("/puzzles", response_model=GalleryPuzzle, status_code=201)
async def create_gallery_puzzle(
    request: Request,
    name: str | None = Form(None),
    desc: str = Form(""),
    pieces: int = Form(0),
    level: str | None = Form(None),
    tags: str | None = Form(None),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    if not name:
        raise ValidationError("name is required")
    parsed_level = _parse_level(level)
    files = await _selected_files(request)

    puzzle_id = _generate_gallery_puzzle_id()
    uploaded = await _upload_files(storage, puzzle_id, files)
    record = GalleryPuzzleRecord(
        puzzle_id=puzzle_id,
        name=name,
        desc=desc,
        pieces=pieces,
        level=parsed_level,
        tags=_split_tags(tags),
        img=uploaded,
    )
    try:
        db.insert_gallery_puzzle(record)
    except Exception:
        _discard_blobs(storage, uploaded)
        raise

    logger.info("Created gallery puzzle %s with %d image(s)", puzzle_id, len(uploaded))
    return record.as_dict()


@router.put("/puzzles/{puzzle_id}", response_model=GalleryPuzzle)
async def update_gallery_puzzle(
    puzzle_id: str,
    request: Request,
    name: str | None = Form(None),
    desc: str = Form(""),
    pieces: int = Form(0),
    level: str | None = Form(None),
    tags: str | None = Form(None),
    existing_files: str | None = Form(None, alias="existingFiles"),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    if not name:
        raise ValidationError("name is required")
    parsed_level = _parse_level(level)
    images = _parse_existing_files(existing_files)
    files = await _selected_files(request)

    uploaded = await _upload_files(storage, puzzle_id, files)
    # A re-uploaded file name replaces the blob an existing key points at.
    added = [key for key in uploaded if key not in images]
    record = GalleryPuzzleRecord(
        puzzle_id=puzzle_id,
        name=name,
        desc=desc,
        pieces=pieces,
        level=parsed_level,
        tags=_split_tags(tags),
        img=images + added,
    )
    try:
        updated = db.update_gallery_puzzle(record)
    except Exception:
        _discard_blobs(storage, added)
        raise
    if not updated:
        _discard_blobs(storage, added)
        raise _not_found()

    logger.info("Updated gallery puzzle %s (%d new image(s))", puzzle_id, len(uploaded))
    return record.as_dict()


@router.delete("/puzzles/{puzzle_id}", status_code=204)
def delete_gallery_puzzle(
    puzzle_id: str,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    record = db.get_gallery_puzzle(puzzle_id)
    if record:
        # A failing blob delete aborts here and leaves the row in place.
        for key in record.img:
            storage.delete(key)
    db.delete_gallery_puzzle(puzzle_id)
    logger.info("Deleted gallery puzzle %s", puzzle_id)
    return Response(status_code=204)


@router.get("/images/{key:path}")
def get_gallery_image(key: str, storage: StorageClient = Depends(get_storage_client)):
    try:
        blob = storage.get_blob(key)
    except BlobNotFoundError:
        raise NotFoundError("Image not found")
    return Response(content=blob.data, media_type=blob.content_type)

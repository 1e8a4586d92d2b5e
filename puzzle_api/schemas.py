"""
Pydantic schemas for the puzzle API.

Request bodies keep every field optional: presence is checked by the handlers
so that missing input is reported as a 400 with a specific message.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class RegisterPayload(BaseModel):
    name: Any = None


class RegisterResponse(BaseModel):
    message: str
    name: str


class MessageResponse(BaseModel):
    message: str


class CatalogPuzzle(BaseModel):
    id: str
    name: str
    description: str
    tags: list[str]
    pieces: int
    svg: str


class ScorePayload(BaseModel):
    name: Optional[str] = None
    puzzleId: Optional[str] = None
    timeSeconds: Optional[int] = None


class ScoreEntry(BaseModel):
    id: Optional[int] = None
    player_name: str
    puzzle_id: str
    time_seconds: int
    completed_at: float
    puzzle_name: str
    puzzle_description: str


class UploadImageResponse(BaseModel):
    url: str
    id: str


class AddPuzzlePayload(BaseModel):
    puzzleId: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[list[str]] = None
    pieces: Optional[int] = None
    svg: Optional[str] = None


class AddPuzzleResponse(BaseModel):
    message: str
    puzzleId: str


class AdminPasswordPayload(BaseModel):
    password: Optional[str] = None


class Level(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class GalleryPuzzle(BaseModel):
    id: str
    name: str
    desc: str
    pieces: int
    level: Level
    tags: list[str]
    img: list[str]

"""
Record store abstraction for SQL databases and an in-memory test implementation.

Catalog puzzles keep their tags as serialized JSON text so that search can
match against it the same way in both implementations.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    Column,
    Float,
    Integer,
    String,
    Text,
    create_engine,
    func,
    or_,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class DuplicateKeyError(Exception):
    """Raised when an insert collides with an existing primary key."""


class DbClient(Protocol):
    """Interface for database access."""

    def list_puzzles(self) -> list["PuzzleRecord"]:
        ...

    def search_puzzles(self, query: str) -> list["PuzzleRecord"]:
        ...

    def get_puzzle(self, puzzle_id: str) -> Optional["PuzzleRecord"]:
        ...

    def insert_puzzle(self, record: "PuzzleRecord") -> None:
        ...

    def add_score(self, record: "ScoreRecord") -> "ScoreRecord":
        ...

    def list_scores(self, player_name: str) -> list[dict]:
        ...

    def list_gallery_puzzles(self) -> list["GalleryPuzzleRecord"]:
        ...

    def get_gallery_puzzle(self, puzzle_id: str) -> Optional["GalleryPuzzleRecord"]:
        ...

    def insert_gallery_puzzle(self, record: "GalleryPuzzleRecord") -> None:
        ...

    def update_gallery_puzzle(self, record: "GalleryPuzzleRecord") -> int:
        ...

    def delete_gallery_puzzle(self, puzzle_id: str) -> int:
        ...


@dataclass
class PuzzleRecord:
    puzzle_id: str
    name: str
    pieces: int
    description: str = ""
    tags: list[str] = field(default_factory=list)
    svg_url: str = ""
    created_at: float = field(default_factory=lambda: time.time())

    def tags_text(self) -> str:
        return json.dumps(self.tags)

    def as_dict(self) -> dict:
        return {
            "id": self.puzzle_id,
            "name": self.name,
            "description": self.description,
            "tags": list(self.tags),
            "pieces": self.pieces,
            "svg": self.svg_url,
        }


@dataclass
class ScoreRecord:
    player_name: str
    puzzle_id: str
    time_seconds: int
    completed_at: float = field(default_factory=lambda: time.time())
    score_id: Optional[int] = None

    def as_dict(self) -> dict:
        return {
            "id": self.score_id,
            "player_name": self.player_name,
            "puzzle_id": self.puzzle_id,
            "time_seconds": self.time_seconds,
            "completed_at": self.completed_at,
        }


@dataclass
class GalleryPuzzleRecord:
    puzzle_id: str
    name: str
    desc: str = ""
    pieces: int = 0
    level: str = "Easy"
    tags: list[str] = field(default_factory=list)
    img: list[str] = field(default_factory=list)
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.puzzle_id,
            "name": self.name,
            "desc": self.desc,
            "pieces": self.pieces,
            "level": self.level,
            "tags": list(self.tags),
            "img": list(self.img),
        }


def _joined_score(score: ScoreRecord, puzzle: PuzzleRecord) -> dict:
    payload = score.as_dict()
    payload["puzzle_name"] = puzzle.name
    payload["puzzle_description"] = puzzle.description
    return payload


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.puzzles: Dict[str, PuzzleRecord] = {}
        self.scores: list[ScoreRecord] = []
        self.gallery: Dict[str, GalleryPuzzleRecord] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.puzzles.clear()
        self.scores.clear()
        self.gallery.clear()

    def list_puzzles(self) -> list[PuzzleRecord]:
        # Newest first; ties keep the most recent insert first.
        return sorted(
            reversed(list(self.puzzles.values())),
            key=lambda p: p.created_at,
            reverse=True,
        )

    def search_puzzles(self, query: str) -> list[PuzzleRecord]:
        term = query.lower()
        matches = [
            p
            for p in self.puzzles.values()
            if term in p.name.lower()
            or term in (p.description or "").lower()
            or term in p.tags_text().lower()
        ]
        return sorted(matches, key=lambda p: p.name)

    def get_puzzle(self, puzzle_id: str) -> Optional[PuzzleRecord]:
        return self.puzzles.get(puzzle_id)

    def insert_puzzle(self, record: PuzzleRecord) -> None:
        if record.puzzle_id in self.puzzles:
            raise DuplicateKeyError(record.puzzle_id)
        self.puzzles[record.puzzle_id] = record

    def add_score(self, record: ScoreRecord) -> ScoreRecord:
        record.score_id = len(self.scores) + 1
        self.scores.append(record)
        return record

    def list_scores(self, player_name: str) -> list[dict]:
        rows = []
        for score in reversed(self.scores):
            if score.player_name != player_name:
                continue
            puzzle = self.puzzles.get(score.puzzle_id)
            if puzzle is None:
                continue
            rows.append(_joined_score(score, puzzle))
        return sorted(rows, key=lambda r: r["completed_at"], reverse=True)

    def list_gallery_puzzles(self) -> list[GalleryPuzzleRecord]:
        return sorted(
            reversed(list(self.gallery.values())),
            key=lambda p: p.created_at,
            reverse=True,
        )

    def get_gallery_puzzle(self, puzzle_id: str) -> Optional[GalleryPuzzleRecord]:
        return self.gallery.get(puzzle_id)

    def insert_gallery_puzzle(self, record: GalleryPuzzleRecord) -> None:
        if record.puzzle_id in self.gallery:
            raise DuplicateKeyError(record.puzzle_id)
        self.gallery[record.puzzle_id] = record

    def update_gallery_puzzle(self, record: GalleryPuzzleRecord) -> int:
        existing = self.gallery.get(record.puzzle_id)
        if not existing:
            return 0
        record.created_at = existing.created_at
        record.updated_at = time.time()
        self.gallery[record.puzzle_id] = record
        return 1

    def delete_gallery_puzzle(self, puzzle_id: str) -> int:
        return 1 if self.gallery.pop(puzzle_id, None) else 0


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_puzzle_record(self, row: "PuzzleRow") -> PuzzleRecord:
        return PuzzleRecord(
            puzzle_id=row.id,
            name=row.name,
            description=row.description or "",
            tags=json.loads(row.tags or "[]"),
            pieces=row.pieces,
            svg_url=row.svg_url or "",
            created_at=row.created_at,
        )

    def _to_gallery_record(self, row: "GalleryPuzzleRow") -> GalleryPuzzleRecord:
        return GalleryPuzzleRecord(
            puzzle_id=row.id,
            name=row.name,
            desc=row.description or "",
            pieces=row.pieces,
            level=row.level,
            tags=json.loads(row.tags or "[]"),
            img=json.loads(row.img or "[]"),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def list_puzzles(self) -> list[PuzzleRecord]:
        with self.Session() as session:
            stmt = select(PuzzleRow).order_by(PuzzleRow.created_at.desc())
            return [self._to_puzzle_record(row) for row in session.execute(stmt).scalars()]

    def search_puzzles(self, query: str) -> list[PuzzleRecord]:
        term = f"%{query.lower()}%"
        with self.Session() as session:
            stmt = (
                select(PuzzleRow)
                .where(
                    or_(
                        func.lower(PuzzleRow.name).like(term),
                        func.lower(PuzzleRow.description).like(term),
                        func.lower(PuzzleRow.tags).like(term),
                    )
                )
                .order_by(PuzzleRow.name)
            )
            return [self._to_puzzle_record(row) for row in session.execute(stmt).scalars()]

    def get_puzzle(self, puzzle_id: str) -> Optional[PuzzleRecord]:
        with self.Session() as session:
            row = session.get(PuzzleRow, puzzle_id)
            return self._to_puzzle_record(row) if row else None

    def insert_puzzle(self, record: PuzzleRecord) -> None:
        with self.Session() as session:
            session.add(
                PuzzleRow(
                    id=record.puzzle_id,
                    name=record.name,
                    description=record.description,
                    tags=record.tags_text(),
                    pieces=record.pieces,
                    svg_url=record.svg_url,
                    created_at=record.created_at,
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateKeyError(record.puzzle_id) from exc

    def add_score(self, record: ScoreRecord) -> ScoreRecord:
        with self.Session() as session:
            row = ScoreRow(
                player_name=record.player_name,
                puzzle_id=record.puzzle_id,
                time_seconds=record.time_seconds,
                completed_at=record.completed_at,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            record.score_id = row.id
            return record

    def list_scores(self, player_name: str) -> list[dict]:
        with self.Session() as session:
            stmt = (
                select(ScoreRow, PuzzleRow)
                .join(PuzzleRow, ScoreRow.puzzle_id == PuzzleRow.id)
                .where(ScoreRow.player_name == player_name)
                .order_by(ScoreRow.completed_at.desc(), ScoreRow.id.desc())
            )
            results = []
            for score_row, puzzle_row in session.execute(stmt):
                score = ScoreRecord(
                    player_name=score_row.player_name,
                    puzzle_id=score_row.puzzle_id,
                    time_seconds=score_row.time_seconds,
                    completed_at=score_row.completed_at,
                    score_id=score_row.id,
                )
                results.append(_joined_score(score, self._to_puzzle_record(puzzle_row)))
            return results

    def list_gallery_puzzles(self) -> list[GalleryPuzzleRecord]:
        with self.Session() as session:
            stmt = select(GalleryPuzzleRow).order_by(GalleryPuzzleRow.created_at.desc())
            return [self._to_gallery_record(row) for row in session.execute(stmt).scalars()]

    def get_gallery_puzzle(self, puzzle_id: str) -> Optional[GalleryPuzzleRecord]:
        with self.Session() as session:
            row = session.get(GalleryPuzzleRow, puzzle_id)
            return self._to_gallery_record(row) if row else None

    def insert_gallery_puzzle(self, record: GalleryPuzzleRecord) -> None:
        with self.Session() as session:
            session.add(
                GalleryPuzzleRow(
                    id=record.puzzle_id,
                    name=record.name,
                    description=record.desc,
                    pieces=record.pieces,
                    level=record.level,
                    tags=json.dumps(record.tags),
                    img=json.dumps(record.img),
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateKeyError(record.puzzle_id) from exc

    def update_gallery_puzzle(self, record: GalleryPuzzleRecord) -> int:
        now = time.time()
        with self.Session() as session:
            updated = (
                session.query(GalleryPuzzleRow)
                .filter(GalleryPuzzleRow.id == record.puzzle_id)
                .update(
                    {
                        GalleryPuzzleRow.name: record.name,
                        GalleryPuzzleRow.description: record.desc,
                        GalleryPuzzleRow.pieces: record.pieces,
                        GalleryPuzzleRow.level: record.level,
                        GalleryPuzzleRow.tags: json.dumps(record.tags),
                        GalleryPuzzleRow.img: json.dumps(record.img),
                        GalleryPuzzleRow.updated_at: now,
                    },
                    synchronize_session=False,
                )
            )
            session.commit()
            record.updated_at = now
            return updated or 0

    def delete_gallery_puzzle(self, puzzle_id: str) -> int:
        with self.Session() as session:
            deleted = (
                session.query(GalleryPuzzleRow)
                .filter(GalleryPuzzleRow.id == puzzle_id)
                .delete(synchronize_session=False)
            )
            session.commit()
            return deleted or 0


Base = declarative_base()


class PuzzleRow(Base):
    __tablename__ = "puzzles"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    tags = Column(Text, nullable=False, default="[]")
    pieces = Column(Integer, nullable=False)
    svg_url = Column(String, nullable=False, default="")
    created_at = Column(Float, nullable=False, index=True)


class ScoreRow(Base):
    __tablename__ = "scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_name = Column(String, nullable=False, index=True)
    puzzle_id = Column(String, nullable=False)
    time_seconds = Column(Integer, nullable=False)
    completed_at = Column(Float, nullable=False)


class GalleryPuzzleRow(Base):
    __tablename__ = "gallery_puzzles"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column("desc", Text, nullable=False, default="")
    pieces = Column(Integer, nullable=False, default=0)
    level = Column(String, nullable=False, default="Easy")
    tags = Column(Text, nullable=False, default="[]")
    img = Column(Text, nullable=False, default="[]")
    created_at = Column(Float, nullable=False, index=True)
    updated_at = Column(Float, nullable=False)

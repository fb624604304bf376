from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from itertools import count
from threading import RLock
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .models import Category, ChoreEntity, CommentEntity
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


def chore_sort_key(entity: ChoreEntity, seq: int) -> Tuple[date, int, int]:
    """Date, then category declaration order, then insertion order."""
    return entity["date"], Category(entity["category"]).sort_index, seq


# PUBLIC_INTERFACE
class ChoreRepository(ABC):
    """
    Abstract storage contract for chores.

    Every read-check-write sequence a caller needs to be atomic must run
    inside ``atomic()``; the other methods are individually atomic.
    """

    @abstractmethod
    def atomic(self):
        """Context manager holding the single-writer critical section."""

    @abstractmethod
    def list_all(self) -> List[ChoreEntity]:
        """Return every chore in listing order."""

    @abstractmethod
    def list_by_date_range(self, start: date, end: date) -> List[ChoreEntity]:
        """Return chores whose date lies in the inclusive range, in listing order."""

    @abstractmethod
    def count_in_range(
        self,
        category: Category,
        start: date,
        end: date,
        exclude_id: Optional[str] = None,
    ) -> int:
        """Count chores of ``category`` dated within the inclusive range, skipping ``exclude_id``."""

    @abstractmethod
    def get(self, chore_id: str) -> Optional[ChoreEntity]:
        """Return a chore by id, or None if not found."""

    @abstractmethod
    def insert(self, entity: ChoreEntity) -> ChoreEntity:
        """Persist a fully-formed chore and return the stored copy."""

    @abstractmethod
    def update_by_id(self, chore_id: str, fields: Mapping[str, Any]) -> Optional[ChoreEntity]:
        """Overwrite the given fields. Return the updated chore or None if not found."""

    @abstractmethod
    def delete_by_id(self, chore_id: str) -> bool:
        """Delete a chore by id. Return True if deleted, False if not found."""


# PUBLIC_INTERFACE
class CommentRepository(ABC):
    """Abstract append-only storage contract for comments."""

    @abstractmethod
    def insert(self, entity: CommentEntity) -> CommentEntity:
        """Persist a fully-formed comment and return the stored copy."""

    @abstractmethod
    def list_all(self) -> List[CommentEntity]:
        """Return every comment, most recent first."""


class InMemoryChoreRepository(ChoreRepository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, Tuple[int, ChoreEntity]] = {}
        self._seq = count(1)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            yield

    def _sorted(self, rows) -> List[ChoreEntity]:
        ordered = sorted(rows, key=lambda r: chore_sort_key(r[1], r[0]))
        # Return copies to avoid external mutation
        return [entity.copy() for _, entity in ordered]

    def list_all(self) -> List[ChoreEntity]:
        with self._lock:
            return self._sorted(self._items.values())

    def list_by_date_range(self, start: date, end: date) -> List[ChoreEntity]:
        with self._lock:
            return self._sorted(r for r in self._items.values() if start <= r[1]["date"] <= end)

    def count_in_range(
        self,
        category: Category,
        start: date,
        end: date,
        exclude_id: Optional[str] = None,
    ) -> int:
        with self._lock:
            return sum(
                1
                for _, t in self._items.values()
                if t["category"] == category and start <= t["date"] <= end and t["id"] != exclude_id
            )

    def get(self, chore_id: str) -> Optional[ChoreEntity]:
        with self._lock:
            row = self._items.get(chore_id)
            return None if row is None else row[1].copy()

    def insert(self, entity: ChoreEntity) -> ChoreEntity:
        with self._lock:
            if entity["id"] in self._items:
                raise ValueError(f"duplicate chore id {entity['id']}")
            self._items[entity["id"]] = (next(self._seq), entity.copy())
            return entity.copy()

    def update_by_id(self, chore_id: str, fields: Mapping[str, Any]) -> Optional[ChoreEntity]:
        with self._lock:
            row = self._items.get(chore_id)
            if row is None:
                return None
            seq, existing = row
            updated = existing.copy()
            for key, value in fields.items():
                if key in ("id", "created_at"):
                    continue
                updated[key] = value  # type: ignore[literal-required]
            self._items[chore_id] = (seq, updated)
            return updated.copy()

    def delete_by_id(self, chore_id: str) -> bool:
        with self._lock:
            return self._items.pop(chore_id, None) is not None


class InMemoryCommentRepository(CommentRepository):
    """
    Thread-safe in-memory comment log.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: List[Tuple[int, CommentEntity]] = []
        self._seq = count(1)

    def insert(self, entity: CommentEntity) -> CommentEntity:
        with self._lock:
            self._items.append((next(self._seq), entity.copy()))
            return entity.copy()

    def list_all(self) -> List[CommentEntity]:
        with self._lock:
            ordered = sorted(self._items, key=lambda r: (r[1]["created_at"], r[0]), reverse=True)
            return [c.copy() for _, c in ordered]


# PUBLIC_INTERFACE
def get_repositories(settings: Optional[Settings] = None) -> Tuple[ChoreRepository, CommentRepository]:
    """
    Factory returning the configured (chore, comment) repositories.
    - memory: InMemoryChoreRepository / InMemoryCommentRepository
    - sqlite: SQLiteChoreRepository / SQLiteCommentRepository sharing one file
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteChoreRepository, SQLiteCommentRepository

        logger.info("Using sqlite storage at %s", settings.sqlite_db_path)
        return (
            SQLiteChoreRepository(settings.sqlite_db_path),
            SQLiteCommentRepository(settings.sqlite_db_path),
        )
    logger.info("Using in-memory storage")
    return InMemoryChoreRepository(), InMemoryCommentRepository()

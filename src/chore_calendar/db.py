from __future__ import annotations

import contextlib
import logging
import os
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Generator, Iterator, List, Mapping, Optional

from .errors import StoreUnavailableError
from .models import Category, ChoreEntity, CommentEntity
from .repositories import ChoreRepository, CommentRepository
from .week import parse_ymd, to_ymd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ChoreCols:
    table: str = "chores"
    seq: str = "seq"
    id: str = "id"
    date: str = "date"
    category: str = "category"
    category_rank: str = "category_rank"
    title: str = "title"
    assignee: str = "assignee"
    done: str = "done"
    created_at: str = "created_at"


@dataclass(frozen=True)
class _CommentCols:
    table: str = "comments"
    seq: str = "seq"
    id: str = "id"
    date: str = "date"
    name: str = "name"
    anonymous: str = "anonymous"
    text: str = "text"
    photo_url: str = "photo_url"
    created_at: str = "created_at"


_CHORES = _ChoreCols()
_COMMENTS = _CommentCols()

_ORDER_CHORES = f"ORDER BY {_CHORES.date} ASC, {_CHORES.category_rank} ASC, {_CHORES.seq} ASC"


class _SQLiteStore(ABC):
    """
    Connection handling shared by the sqlite repositories.

    Plain calls open a short-lived connection each. ``atomic()`` serializes
    writers in-process with an RLock and across processes with
    ``BEGIN IMMEDIATE``; calls made on the same thread while it is open reuse
    its connection so they see and join the same transaction.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._lock = threading.RLock()
        self._local = threading.local()
        self._init_db()

    def _connect(self, **kwargs: Any) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=30.0, **kwargs)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        active: Optional[sqlite3.Connection] = getattr(self._local, "conn", None)
        if active is not None:
            try:
                yield active
            except sqlite3.Error as exc:
                raise StoreUnavailableError(f"Storage error: {exc}") from exc
            return

        conn: Optional[sqlite3.Connection] = None
        try:
            conn = self._connect()
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            logger.exception("sqlite operation failed db=%s", self._db_path)
            raise StoreUnavailableError(f"Storage error: {exc}") from exc
        finally:
            if conn is not None:
                conn.close()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            if getattr(self._local, "conn", None) is not None:
                yield
                return
            conn: Optional[sqlite3.Connection] = None
            try:
                conn = self._connect(isolation_level=None)
                conn.execute("BEGIN IMMEDIATE")
                self._local.conn = conn
                try:
                    yield
                except BaseException:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
                conn.execute("COMMIT")
            except sqlite3.Error as exc:
                logger.exception("sqlite transaction failed db=%s", self._db_path)
                raise StoreUnavailableError(f"Storage error: {exc}") from exc
            finally:
                self._local.conn = None
                if conn is not None:
                    conn.close()

    @abstractmethod
    def _init_db(self) -> None:
        """Create tables and indexes if missing."""


class SQLiteChoreRepository(_SQLiteStore, ChoreRepository):
    """
    Lightweight SQLite repository implementing the ChoreRepository interface.

    Dates are stored as YYYY-MM-DD text so range filters compare
    lexicographically in chronological order.
    """

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_CHORES.table} (
                    {_CHORES.seq} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_CHORES.id} TEXT NOT NULL UNIQUE,
                    {_CHORES.date} TEXT NOT NULL,
                    {_CHORES.category} TEXT NOT NULL,
                    {_CHORES.category_rank} INTEGER NOT NULL,
                    {_CHORES.title} TEXT NOT NULL,
                    {_CHORES.assignee} TEXT NOT NULL DEFAULT '',
                    {_CHORES.done} INTEGER NOT NULL DEFAULT 0,
                    {_CHORES.created_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_CHORES.table}_date ON {_CHORES.table}({_CHORES.date})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_CHORES.table}_category_date "
                f"ON {_CHORES.table}({_CHORES.category}, {_CHORES.date})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> ChoreEntity:
        return {
            "id": str(row[_CHORES.id]),
            "date": parse_ymd(row[_CHORES.date]),
            "category": Category(row[_CHORES.category]),
            "title": str(row[_CHORES.title]),
            "assignee": str(row[_CHORES.assignee] or ""),
            "done": bool(row[_CHORES.done]),
            "created_at": datetime.fromisoformat(row[_CHORES.created_at]),
        }

    def _fetch_one(self, conn: sqlite3.Connection, chore_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            f"SELECT * FROM {_CHORES.table} WHERE {_CHORES.id} = ?", (chore_id,)
        ).fetchone()

    def list_all(self) -> List[ChoreEntity]:
        with self._conn() as conn:
            rows = conn.execute(f"SELECT * FROM {_CHORES.table} {_ORDER_CHORES}").fetchall()
            return [self._row_to_entity(r) for r in rows]

    def list_by_date_range(self, start: date, end: date) -> List[ChoreEntity]:
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM {_CHORES.table} WHERE {_CHORES.date} BETWEEN ? AND ? {_ORDER_CHORES}",
                (to_ymd(start), to_ymd(end)),
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def count_in_range(
        self,
        category: Category,
        start: date,
        end: date,
        exclude_id: Optional[str] = None,
    ) -> int:
        sql = (
            f"SELECT COUNT(*) AS cnt FROM {_CHORES.table} "
            f"WHERE {_CHORES.category} = ? AND {_CHORES.date} BETWEEN ? AND ?"
        )
        params: list = [Category(category).value, to_ymd(start), to_ymd(end)]
        if exclude_id is not None:
            sql += f" AND {_CHORES.id} <> ?"
            params.append(exclude_id)
        with self._conn() as conn:
            row = conn.execute(sql, params).fetchone()
            return int(row["cnt"]) if row else 0

    def get(self, chore_id: str) -> Optional[ChoreEntity]:
        with self._conn() as conn:
            row = self._fetch_one(conn, chore_id)
            return self._row_to_entity(row) if row else None

    def insert(self, entity: ChoreEntity) -> ChoreEntity:
        category = Category(entity["category"])
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_CHORES.table} ({_CHORES.id}, {_CHORES.date}, {_CHORES.category},
                    {_CHORES.category_rank}, {_CHORES.title}, {_CHORES.assignee}, {_CHORES.done},
                    {_CHORES.created_at})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entity["id"],
                    to_ymd(entity["date"]),
                    category.value,
                    category.sort_index,
                    entity["title"],
                    entity["assignee"] or "",
                    1 if entity["done"] else 0,
                    entity["created_at"].isoformat(),
                ),
            )
            row = self._fetch_one(conn, entity["id"])
            assert row is not None
            return self._row_to_entity(row)

    def update_by_id(self, chore_id: str, fields: Mapping[str, Any]) -> Optional[ChoreEntity]:
        assignments: List[str] = []
        values: list = []
        for key, value in fields.items():
            if key == "date":
                assignments.append(f"{_CHORES.date} = ?")
                values.append(to_ymd(value))
            elif key == "category":
                category = Category(value)
                assignments.append(f"{_CHORES.category} = ?")
                values.append(category.value)
                assignments.append(f"{_CHORES.category_rank} = ?")
                values.append(category.sort_index)
            elif key == "done":
                assignments.append(f"{_CHORES.done} = ?")
                values.append(1 if value else 0)
            elif key in ("title", "assignee"):
                assignments.append(f"{key} = ?")
                values.append(value or "")

        with self._conn() as conn:
            if self._fetch_one(conn, chore_id) is None:
                return None
            if assignments:
                conn.execute(
                    f"UPDATE {_CHORES.table} SET {', '.join(assignments)} WHERE {_CHORES.id} = ?",
                    [*values, chore_id],
                )
            row = self._fetch_one(conn, chore_id)
            assert row is not None
            return self._row_to_entity(row)

    def delete_by_id(self, chore_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_CHORES.table} WHERE {_CHORES.id} = ?", (chore_id,))
            return cur.rowcount > 0


class SQLiteCommentRepository(_SQLiteStore, CommentRepository):
    """
    Append-only SQLite comment log.
    """

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COMMENTS.table} (
                    {_COMMENTS.seq} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_COMMENTS.id} TEXT NOT NULL UNIQUE,
                    {_COMMENTS.date} TEXT NOT NULL,
                    {_COMMENTS.name} TEXT NULL,
                    {_COMMENTS.anonymous} INTEGER NOT NULL DEFAULT 0,
                    {_COMMENTS.text} TEXT NOT NULL DEFAULT '',
                    {_COMMENTS.photo_url} TEXT NULL,
                    {_COMMENTS.created_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COMMENTS.table}_date ON {_COMMENTS.table}({_COMMENTS.date})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> CommentEntity:
        return {
            "id": str(row[_COMMENTS.id]),
            "date": parse_ymd(row[_COMMENTS.date]),
            "name": row[_COMMENTS.name],
            "anonymous": bool(row[_COMMENTS.anonymous]),
            "text": str(row[_COMMENTS.text] or ""),
            "photo_url": row[_COMMENTS.photo_url],
            "created_at": datetime.fromisoformat(row[_COMMENTS.created_at]),
        }

    def insert(self, entity: CommentEntity) -> CommentEntity:
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_COMMENTS.table} ({_COMMENTS.id}, {_COMMENTS.date}, {_COMMENTS.name},
                    {_COMMENTS.anonymous}, {_COMMENTS.text}, {_COMMENTS.photo_url}, {_COMMENTS.created_at})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entity["id"],
                    to_ymd(entity["date"]),
                    entity["name"],
                    1 if entity["anonymous"] else 0,
                    entity["text"],
                    entity["photo_url"],
                    entity["created_at"].isoformat(),
                ),
            )
            row = conn.execute(
                f"SELECT * FROM {_COMMENTS.table} WHERE {_COMMENTS.id} = ?", (entity["id"],)
            ).fetchone()
            assert row is not None
            return self._row_to_entity(row)

    def list_all(self) -> List[CommentEntity]:
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM {_COMMENTS.table} "
                f"ORDER BY {_COMMENTS.created_at} DESC, {_COMMENTS.seq} DESC"
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

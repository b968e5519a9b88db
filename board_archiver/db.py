"""Database operations – read candidate posts and flip their archived flag."""

from __future__ import annotations

import logging
import threading
from typing import Any

import psycopg
from psycopg.rows import dict_row

from .config import DatabaseConfig
from .errors import StoreError
from .models import Comment, Post

logger = logging.getLogger("archiver.db")


class Database:
    """Postgres interface shared by the post and comment repositories."""

    def __init__(self, cfg: DatabaseConfig | None = None) -> None:
        self.cfg = cfg or DatabaseConfig.from_env()
        self._conn: psycopg.Connection | None = None
        # One connection, used from the archiver thread and manual callers
        self._lock = threading.RLock()

    @property
    def conn(self) -> psycopg.Connection:
        if self._conn is None or self._conn.closed:
            self._conn = psycopg.connect(self.cfg.dsn, row_factory=dict_row, autocommit=False)
        return self._conn

    def fetch_all(self, operation: str, query: str, params: tuple[Any, ...] = ()) -> list[dict]:
        with self._lock:
            try:
                rows = self.conn.execute(query, params).fetchall()
                self.conn.commit()
                return rows
            except psycopg.Error as exc:
                self._safe_rollback()
                raise StoreError(f"{operation} failed: {exc}", operation=operation) from exc

    def fetch_one(self, operation: str, query: str, params: tuple[Any, ...] = ()) -> dict | None:
        with self._lock:
            try:
                row = self.conn.execute(query, params).fetchone()
                self.conn.commit()
                return row
            except psycopg.Error as exc:
                self._safe_rollback()
                raise StoreError(f"{operation} failed: {exc}", operation=operation) from exc

    def execute(self, operation: str, query: str, params: tuple[Any, ...] = ()) -> int:
        """Run a write statement and commit.  Returns the affected row count."""
        with self._lock:
            try:
                cur = self.conn.execute(query, params)
                self.conn.commit()
                return cur.rowcount
            except psycopg.Error as exc:
                self._safe_rollback()
                raise StoreError(f"{operation} failed: {exc}", operation=operation) from exc

    def _safe_rollback(self) -> None:
        if self._conn is None or self._conn.closed:
            return
        try:
            self._conn.rollback()
        except psycopg.Error as exc:
            logger.warning("Rollback failed: %s", exc)

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        if self._conn and not self._conn.closed:
            self._conn.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def _row_to_post(row: dict) -> Post:
    return Post(
        id=row["id"],
        created_at=row["created_at"],
        archived=bool(row["is_archived"]),
        archived_at=row.get("archived_at"),
        title=row.get("title") or "",
        content=row.get("content") or "",
        image_url=row.get("image_url"),
        user_id=row.get("user_id"),
        user_name=row.get("user_name") or "Anonymous",
        avatar_url=row.get("avatar_url"),
    )


def _row_to_comment(row: dict) -> Comment:
    return Comment(
        id=row["id"],
        post_id=row["post_id"],
        created_at=row["created_at"],
        parent_id=row.get("parent_id"),
        user_id=row.get("user_id"),
        user_name=row.get("user_name") or "Anonymous",
        avatar_url=row.get("avatar_url"),
        content=row.get("content") or "",
    )


class PostRepository:
    """``PostStore`` backed by the ``posts`` table."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def list_unarchived(self) -> list[Post]:
        rows = self.db.fetch_all(
            "list_unarchived",
            """SELECT id, title, content, image_url, user_id, user_name, avatar_url,
                      created_at, is_archived, archived_at
               FROM posts
               WHERE is_archived = FALSE
               ORDER BY created_at, id""",
        )
        return [_row_to_post(r) for r in rows]

    def archive(self, post_id: int) -> None:
        updated = self.db.execute(
            "archive",
            """UPDATE posts
               SET is_archived = TRUE, archived_at = NOW()
               WHERE id = %s AND is_archived = FALSE""",
            (post_id,),
        )
        if updated == 0:
            logger.debug("Post %d missing or already archived", post_id)


class CommentRepository:
    """``CommentStore`` backed by the ``comments`` table."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def last_comment_for(self, post_id: int) -> Comment | None:
        row = self.db.fetch_one(
            "last_comment_for",
            """SELECT id, post_id, parent_id, user_id, user_name, avatar_url,
                      content, created_at
               FROM comments
               WHERE post_id = %s
               ORDER BY created_at DESC, id DESC
               LIMIT 1""",
            (post_id,),
        )
        return _row_to_comment(row) if row else None

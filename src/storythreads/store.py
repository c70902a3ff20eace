"""SQLite-backed snapshot store for story threads (the engine's persistence hook)."""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from storythreads.models import StoryThread, ThreadStatus

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS threads (
    thread_id    TEXT PRIMARY KEY,
    topic        TEXT NOT NULL,
    status       TEXT NOT NULL,
    significance REAL NOT NULL DEFAULT 0.0,
    update_count INTEGER NOT NULL DEFAULT 0,
    last_updated TEXT NOT NULL,
    thread_json  TEXT NOT NULL,
    saved_at     TEXT NOT NULL
);
"""


class ThreadDB:
    """Latest snapshot of every thread, keyed by thread id.

    ``persist`` and ``delete`` match the :class:`ThreadStore` hook
    signatures, so an instance can be wired in directly::

        db = ThreadDB(path)
        store = ThreadStore(persist=db.persist, on_delete=db.delete)
    """

    def __init__(self, db_path: Path) -> None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._init_db()

    # ── public ──────────────────────────────────────────────────────────

    def persist(self, thread: StoryThread) -> None:
        """Upsert the snapshot of *thread*."""
        con = self._connect()
        try:
            con.execute(
                """
                INSERT INTO threads
                    (thread_id, topic, status, significance, update_count,
                     last_updated, thread_json, saved_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(thread_id) DO UPDATE SET
                    topic=excluded.topic,
                    status=excluded.status,
                    significance=excluded.significance,
                    update_count=excluded.update_count,
                    last_updated=excluded.last_updated,
                    thread_json=excluded.thread_json,
                    saved_at=excluded.saved_at
                """,
                (
                    thread.id,
                    thread.topic,
                    thread.status,
                    thread.significance_score,
                    thread.update_count,
                    thread.last_updated.isoformat(),
                    thread.model_dump_json(),
                    datetime.now(UTC).isoformat(),
                ),
            )
            con.commit()
        finally:
            con.close()

    def delete(self, thread_id: str) -> None:
        con = self._connect()
        try:
            con.execute("DELETE FROM threads WHERE thread_id = ?", (thread_id,))
            con.commit()
        finally:
            con.close()

    def threads(self, status: ThreadStatus | None = None) -> list[StoryThread]:
        """Return stored threads, most significant first."""
        query = "SELECT thread_json FROM threads"
        params: tuple[str, ...] = ()
        if status is not None:
            query += " WHERE status = ?"
            params = (status,)
        query += " ORDER BY significance DESC, last_updated DESC"

        con = self._connect()
        try:
            rows = con.execute(query, params).fetchall()
        finally:
            con.close()
        return [StoryThread.model_validate_json(row[0]) for row in rows]

    def count(self) -> int:
        con = self._connect()
        try:
            return self._count(con)
        finally:
            con.close()

    # ── private ─────────────────────────────────────────────────────────

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self._db_path))

    def _init_db(self) -> None:
        con = self._connect()
        con.executescript(_SCHEMA)
        con.close()

    @staticmethod
    def _count(con: sqlite3.Connection) -> int:
        cur = con.execute("SELECT COUNT(*) FROM threads")
        return cur.fetchone()[0]  # type: ignore[no-any-return]

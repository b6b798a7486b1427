"""SQLite persistence for processed-mention records.

Implements the ``MentionStore`` port. Each operation opens its own
connection, which keeps the store safe to share between the worker threads
Bolt dispatches events on.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from pingpal.models import ProcessedMentionRecord

logger = logging.getLogger(__name__)


class StoreUnavailable(Exception):
    """Raised when the store cannot be read or written."""


class DuplicateRecord(Exception):
    """Raised when a record for the same agent/room/message already exists."""


class SQLiteMentionStore:
    """Append-only table of processed mentions, scoped by agent and room."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path).expanduser()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"cannot open {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create the table and indexes if they do not exist."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailable(f"cannot create {self._db_path.parent}: {exc}") from exc
        try:
            with self._connection() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS processed_mentions (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        kind TEXT NOT NULL,
                        agent_id TEXT NOT NULL,
                        room_id TEXT NOT NULL,
                        message_id TEXT NOT NULL,
                        important INTEGER NOT NULL,
                        reason TEXT NOT NULL,
                        sender_id TEXT,
                        original_timestamp TEXT,
                        created_at TEXT NOT NULL
                    )
                    """
                )
                # Conditional insert: a second write for the same message
                # fails instead of creating a twin record.
                conn.execute(
                    "CREATE UNIQUE INDEX IF NOT EXISTS idx_processed_mentions_message "
                    "ON processed_mentions(agent_id, room_id, message_id)"
                )
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_processed_mentions_scope "
                    "ON processed_mentions(agent_id, room_id, id)"
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"cannot initialise {self._db_path}: {exc}") from exc
        logger.info("Mention store ready at %s", self._db_path)

    def query(
        self, agent_id: str, room_id: str, limit: int
    ) -> list[ProcessedMentionRecord]:
        """Return up to ``limit`` records for the agent/room, newest first."""
        try:
            with self._connection() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM processed_mentions
                    WHERE agent_id = ? AND room_id = ?
                    ORDER BY id DESC
                    LIMIT ?
                    """,
                    (agent_id, room_id, limit),
                ).fetchall()
            return [_row_to_record(row) for row in rows]
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"query failed: {exc}") from exc
        except (ValueError, TypeError) as exc:
            raise StoreUnavailable(f"corrupt record: {exc}") from exc

    def write(self, record: ProcessedMentionRecord) -> int:
        """Insert a record and return its row ID."""
        try:
            with self._connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO processed_mentions (
                        kind, agent_id, room_id, message_id, important, reason,
                        sender_id, original_timestamp, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.kind,
                        record.agent_id,
                        record.room_id,
                        record.message_id,
                        int(record.important),
                        record.reason,
                        record.sender_id,
                        _to_iso(record.original_timestamp),
                        _to_iso(record.created_at),
                    ),
                )
                conn.commit()
                return cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            # Only the message index is a conflict; NOT NULL and the like are failures.
            if "UNIQUE" not in str(exc):
                raise StoreUnavailable(f"write rejected: {exc}") from exc
            raise DuplicateRecord(
                f"message {record.message_id} already recorded in {record.room_id}"
            ) from exc
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"write failed: {exc}") from exc


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_record(row: sqlite3.Row) -> ProcessedMentionRecord:
    return ProcessedMentionRecord(
        agent_id=row["agent_id"],
        room_id=row["room_id"],
        message_id=row["message_id"],
        important=bool(row["important"]),
        reason=row["reason"],
        sender_id=row["sender_id"],
        original_timestamp=_from_iso(row["original_timestamp"]),
        created_at=_from_iso(row["created_at"]),
        kind=row["kind"],
        record_id=row["id"],
    )

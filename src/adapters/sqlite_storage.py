"""SQLite storage adapter.

Implements the core StoragePort using a simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from core.models import MatchRecord


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the StoragePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        # The inner "with" commits or rolls back; closing() releases the handle.
        with closing(sqlite3.connect(self._db_path)) as conn:
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - stream_state: per-stream cursor (last processed time_us)
        - matches: append-only log of filter matches
        """

        with self._connect() as conn:
            # stream_state keeps a single cursor per stream so a restart resumes
            # where the previous run stopped instead of replaying or skipping.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS stream_state (
                    stream TEXT PRIMARY KEY,
                    cursor INTEGER NOT NULL
                )
                """
            )
            # matches is an append-only audit log, kept denormalized.
            # Fields:
            # - filter_name: name of the filter that matched
            # - repo: DID of the repository the event came from
            # - kind: commit or identity
            # - reason: human-readable match explanation
            # - text_snippet: clipped post text, or the new handle
            # - uri: at:// URI of the record, when known
            # - time_us: Jetstream event time
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS matches (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    filter_name TEXT,
                    repo TEXT,
                    kind TEXT,
                    reason TEXT,
                    text_snippet TEXT,
                    uri TEXT,
                    time_us INTEGER,
                    created_at TIMESTAMP
                )
                """
            )

    def get_cursor(self, stream: str) -> Optional[int]:
        """Return the last processed time_us for a stream, if any."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT cursor FROM stream_state WHERE stream = ?",
                (stream,),
            ).fetchone()
        return int(row["cursor"]) if row else None

    def set_cursor(self, stream: str, time_us: int) -> None:
        """Upsert the cursor for a stream."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO stream_state (stream, cursor)
                VALUES (?, ?)
                ON CONFLICT(stream) DO UPDATE SET cursor = excluded.cursor
                """,
                (stream, time_us),
            )

    def save_match(self, match: MatchRecord) -> None:
        """Persist a match to the append-only matches table."""

        created_at = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO matches (
                    filter_name,
                    repo,
                    kind,
                    reason,
                    text_snippet,
                    uri,
                    time_us,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    match.filter_name,
                    match.repo,
                    match.kind,
                    match.reason,
                    match.text_snippet,
                    match.uri,
                    match.time_us,
                    created_at.isoformat(),
                ),
            )

    def list_matches(self, limit: int = 50, filter_name: Optional[str] = None) -> list[MatchRecord]:
        """Return the most recent matches, newest first."""

        query = "SELECT * FROM matches"
        params: tuple = ()
        if filter_name is not None:
            query += " WHERE filter_name = ?"
            params = (filter_name,)
        query += " ORDER BY id DESC LIMIT ?"
        with self._connect() as conn:
            rows = conn.execute(query, (*params, limit)).fetchall()
        return [
            MatchRecord(
                filter_name=row["filter_name"],
                repo=row["repo"],
                kind=row["kind"],
                reason=row["reason"],
                text_snippet=row["text_snippet"],
                uri=row["uri"],
                time_us=row["time_us"],
            )
            for row in rows
        ]

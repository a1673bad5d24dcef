from __future__ import annotations

import sqlite3

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.models import MatchRecord


def _record(name: str, time_us: int) -> MatchRecord:
    return MatchRecord(
        filter_name=name,
        repo="did:plc:a",
        kind="commit",
        reason="subscribed repository",
        text_snippet="hello",
        uri="at://did:plc:a/app.bsky.feed.post/3k",
        time_us=time_us,
    )


def test_cursor_upsert(tmp_path) -> None:
    storage = SQLiteStorage(str(tmp_path / "test.db"))
    storage.init_db()

    assert storage.get_cursor("wss://stream") is None
    storage.set_cursor("wss://stream", 10)
    storage.set_cursor("wss://stream", 20)
    assert storage.get_cursor("wss://stream") == 20


def test_matches_are_listed_newest_first(tmp_path) -> None:
    storage = SQLiteStorage(str(tmp_path / "test.db"))
    storage.init_db()
    storage.save_match(_record("team", 1))
    storage.save_match(_record("discover", 2))
    storage.save_match(_record("team", 3))

    assert [m.time_us for m in storage.list_matches()] == [3, 2, 1]
    assert [m.time_us for m in storage.list_matches(filter_name="team")] == [3, 1]
    assert storage.list_matches(limit=1) == [_record("team", 3)]


def test_connections_are_closed_after_each_operation(tmp_path, monkeypatch) -> None:
    opened: list[sqlite3.Connection] = []
    real_connect = sqlite3.connect

    def tracking_connect(*args, **kwargs) -> sqlite3.Connection:
        conn = real_connect(*args, **kwargs)
        opened.append(conn)
        return conn

    monkeypatch.setattr(sqlite3, "connect", tracking_connect)
    storage = SQLiteStorage(str(tmp_path / "test.db"))
    storage.init_db()
    storage.set_cursor("wss://stream", 1)
    storage.save_match(_record("team", 1))
    assert storage.get_cursor("wss://stream") == 1
    assert len(storage.list_matches()) == 1

    assert len(opened) == 5
    for conn in opened:
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")


def test_failed_write_is_rolled_back(tmp_path) -> None:
    storage = SQLiteStorage(str(tmp_path / "test.db"))
    storage.init_db()
    storage.set_cursor("wss://stream", 1)

    with pytest.raises(sqlite3.IntegrityError):
        storage.set_cursor("wss://stream", None)

    assert storage.get_cursor("wss://stream") == 1

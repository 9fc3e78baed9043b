"""
Tests for the SQLite and Upstash seen-state backends.
"""

from __future__ import annotations

from typing import Any, List

import pytest
import requests

from listing_watch.errors import StoreUnavailable
from listing_watch.seen_store import SqliteSeenStore, UpstashSeenStore, make_seen_store

DAY = 24 * 60 * 60


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sqlite_store(tmp_path, clock: FakeClock) -> SqliteSeenStore:
    return SqliteSeenStore(str(tmp_path / "state" / "seen.db"), "seen:ids", "seen:fingerprints", 30 * DAY, clock=clock)


def test_sqlite_store_starts_absent(sqlite_store: SqliteSeenStore) -> None:
    assert not sqlite_store.has_seen_ids()
    assert sqlite_store.get_seen_ids() == set()


def test_sqlite_store_empty_write_is_noop(sqlite_store: SqliteSeenStore) -> None:
    assert sqlite_store.add_seen_ids([]) == 0
    assert not sqlite_store.has_seen_ids()


def test_sqlite_store_sets_are_independent(sqlite_store: SqliteSeenStore) -> None:
    sqlite_store.add_seen_ids(["1001", "1002", "1001"])
    sqlite_store.add_seen_fingerprints(["kuća|200.000€"])
    assert sqlite_store.has_seen_ids()
    assert sqlite_store.get_seen_ids() == {"1001", "1002"}
    assert sqlite_store.get_seen_fingerprints() == {"kuća|200.000€"}

    sqlite_store.add_seen_ids(["2001"])
    assert sqlite_store.get_seen_ids() == {"1001", "1002", "2001"}


def test_sqlite_store_expires_whole_set(sqlite_store: SqliteSeenStore, clock: FakeClock) -> None:
    sqlite_store.add_seen_ids(["1"])
    clock.now += 29 * DAY
    assert sqlite_store.has_seen_ids()
    clock.now += 2 * DAY
    assert not sqlite_store.has_seen_ids()
    assert sqlite_store.get_seen_ids() == set()


def test_sqlite_store_write_extends_expiry(sqlite_store: SqliteSeenStore, clock: FakeClock) -> None:
    sqlite_store.add_seen_ids(["1"])
    clock.now += 20 * DAY
    sqlite_store.add_seen_ids(["2"])
    clock.now += 20 * DAY
    assert sqlite_store.get_seen_ids() == {"1", "2"}


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self) -> Any:
        return self.payload


class FakeUpstash:
    """Minimal Upstash REST emulation keeping commands for inspection."""

    def __init__(self) -> None:
        self.commands: List[List[str]] = []
        self.sets = {}
        self.fail_with = None

    def post(self, url, json=None, headers=None, timeout=None):
        assert headers["Authorization"] == "Bearer secret"
        if self.fail_with is not None:
            raise self.fail_with
        self.commands.append(json)
        name, key, *args = json
        if name == "SMEMBERS":
            # Upstash deserialises numeric members
            return FakeResponse({"result": [int(m) if m.isdigit() else m for m in self.sets.get(key, set())]})
        if name == "SADD":
            self.sets.setdefault(key, set()).update(args)
            return FakeResponse({"result": len(args)})
        if name == "EXISTS":
            return FakeResponse({"result": 1 if key in self.sets else 0})
        if name == "EXPIRE":
            return FakeResponse({"result": 1})
        return FakeResponse({"error": f"ERR unknown command '{name}'"})


@pytest.fixture
def upstash() -> FakeUpstash:
    return FakeUpstash()


@pytest.fixture
def upstash_store(upstash: FakeUpstash) -> UpstashSeenStore:
    return UpstashSeenStore(
        "https://example.upstash.io/",
        "secret",
        "seen:ids",
        "seen:fingerprints",
        30 * DAY,
        session=upstash,
    )


def test_upstash_write_refreshes_expiry(upstash_store: UpstashSeenStore, upstash: FakeUpstash) -> None:
    upstash_store.add_seen_ids(["1001", "idx-5"])
    assert upstash.commands == [
        ["SADD", "seen:ids", "1001", "idx-5"],
        ["EXPIRE", "seen:ids", str(30 * DAY)],
    ]


def test_upstash_empty_write_sends_nothing(upstash_store: UpstashSeenStore, upstash: FakeUpstash) -> None:
    upstash_store.add_seen_fingerprints([])
    assert upstash.commands == []


def test_upstash_members_are_strings(upstash_store: UpstashSeenStore) -> None:
    assert not upstash_store.has_seen_ids()
    upstash_store.add_seen_ids(["1001", "idx-5"])
    assert upstash_store.has_seen_ids()
    assert upstash_store.get_seen_ids() == {"1001", "idx-5"}


def test_upstash_error_reply_raises(upstash_store: UpstashSeenStore) -> None:
    with pytest.raises(StoreUnavailable):
        upstash_store._command("FLUSHALL", "seen:ids")


@pytest.mark.parametrize("payload", [None, ["SADD"], "OK"])
def test_upstash_non_object_reply_raises(upstash_store: UpstashSeenStore, upstash: FakeUpstash, payload) -> None:
    upstash.post = lambda url, json=None, headers=None, timeout=None: FakeResponse(payload)
    with pytest.raises(StoreUnavailable, match="unexpected reply"):
        upstash_store.has_seen_ids()


def test_upstash_network_failure_raises(upstash_store: UpstashSeenStore, upstash: FakeUpstash) -> None:
    upstash.fail_with = requests.ConnectionError("connection refused")
    with pytest.raises(StoreUnavailable, match="SMEMBERS"):
        upstash_store.get_seen_ids()


def test_make_seen_store_selects_backend(settings, tmp_path) -> None:
    assert isinstance(make_seen_store(settings), UpstashSeenStore)
    settings.SEEN_STORE = "sqlite"
    settings.SQLITE_DB = str(tmp_path / "seen.db")
    store = make_seen_store(settings)
    assert isinstance(store, SqliteSeenStore)
    assert store.ttl_seconds == 30 * DAY

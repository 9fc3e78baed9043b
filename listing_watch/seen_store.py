"""
Persistent seen-state shared between runs.

The watcher remembers two things between invocations: the ids of listings it
has already seeded or notified, and the content fingerprints of listings it
has observed.  Both are kept as plain string sets with a rolling
time-to-live on the whole set, the way a Redis key with ``EXPIRE`` behaves.

Two backends are provided:

``UpstashSeenStore``
    Talks to an Upstash Redis database over its REST API.  This is the
    production backend since scheduled runs have no local disk that survives
    between invocations.
``SqliteSeenStore``
    Keeps the same set/TTL semantics in a local SQLite file, handy for
    running the watcher from a single machine.

Every backend failure is raised as ``StoreUnavailable``; the run controller
never proceeds without state.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Set

import requests

from .errors import StoreUnavailable
from .settings import Settings

logger = logging.getLogger(__name__)


class SeenStore:
    """Narrow set interface plus the two logical sets the watcher uses."""

    def __init__(self, ids_key: str, fingerprints_key: str, ttl_seconds: int) -> None:
        self.ids_key = ids_key
        self.fingerprints_key = fingerprints_key
        self.ttl_seconds = ttl_seconds

    # Set primitives implemented by each backend.

    def members(self, key: str) -> Set[str]:
        raise NotImplementedError

    def add_members(self, key: str, values: Iterable[str]) -> None:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def refresh_expiry(self, key: str, ttl_seconds: int) -> None:
        raise NotImplementedError

    # Identity and fingerprint sets.

    def _add(self, key: str, values: Iterable[str]) -> int:
        unique = list(dict.fromkeys(values))
        if not unique:
            return 0
        self.add_members(key, unique)
        self.refresh_expiry(key, self.ttl_seconds)
        return len(unique)

    def has_seen_ids(self) -> bool:
        """Return True once the identity set has been written at least once."""
        return self.exists(self.ids_key)

    def get_seen_ids(self) -> Set[str]:
        return self.members(self.ids_key)

    def add_seen_ids(self, ids: Iterable[str]) -> int:
        count = self._add(self.ids_key, ids)
        logger.debug("Recorded %d id(s) in %s", count, self.ids_key)
        return count

    def get_seen_fingerprints(self) -> Set[str]:
        return self.members(self.fingerprints_key)

    def add_seen_fingerprints(self, fingerprints: Iterable[str]) -> int:
        count = self._add(self.fingerprints_key, fingerprints)
        logger.debug("Synced %d fingerprint(s) to %s", count, self.fingerprints_key)
        return count


class UpstashSeenStore(SeenStore):
    """Seen-state kept in Upstash Redis, accessed through its REST API.

    Each command is POSTed as a JSON array (``["SADD", key, ...]``) to the
    database url with a bearer token.  Upstash answers ``{"result": ...}``
    on success and ``{"error": ...}`` otherwise.
    """

    def __init__(
        self,
        url: str,
        token: str,
        ids_key: str,
        fingerprints_key: str,
        ttl_seconds: int,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
    ) -> None:
        super().__init__(ids_key, fingerprints_key, ttl_seconds)
        self.url = url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _command(self, *args: Any) -> Any:
        try:
            response = self.session.post(
                self.url,
                json=[str(arg) for arg in args],
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise StoreUnavailable(f"Upstash {args[0]} failed: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreUnavailable(f"Upstash {args[0]} failed: unexpected reply {data!r}")
        if "error" in data:
            raise StoreUnavailable(f"Upstash {args[0]} failed: {data['error']}")
        return data.get("result")

    def members(self, key: str) -> Set[str]:
        result = self._command("SMEMBERS", key) or []
        # Upstash may hand numeric-looking members back as numbers.
        return {str(member) for member in result}

    def add_members(self, key: str, values: Iterable[str]) -> None:
        values = list(values)
        if not values:
            return
        self._command("SADD", key, *values)

    def exists(self, key: str) -> bool:
        return self._command("EXISTS", key) == 1

    def refresh_expiry(self, key: str, ttl_seconds: int) -> None:
        self._command("EXPIRE", key, ttl_seconds)


class SqliteSeenStore(SeenStore):
    """Seen-state backed by SQLite with key-level expiry."""

    def __init__(
        self,
        db_path: str,
        ids_key: str,
        fingerprints_key: str,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(ids_key, fingerprints_key, ttl_seconds)
        self.db_path = db_path
        self.clock = clock
        # Ensure the parent directory exists
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Cannot open {self.db_path}: {exc}") from exc

    def _ensure_tables(self) -> None:
        """Create the database tables if they don't exist."""
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS seen_sets (
                    set_key TEXT PRIMARY KEY,
                    expires_at REAL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS seen_members (
                    set_key TEXT NOT NULL,
                    member TEXT NOT NULL,
                    PRIMARY KEY (set_key, member)
                )
                """
            )
            conn.commit()

    def _purge_expired(self, conn: sqlite3.Connection) -> None:
        now = self.clock()
        expired: List[str] = [
            row[0]
            for row in conn.execute(
                "SELECT set_key FROM seen_sets WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (now,),
            )
        ]
        for key in expired:
            logger.info("Seen set %s expired; dropping it", key)
            conn.execute("DELETE FROM seen_members WHERE set_key=?", (key,))
            conn.execute("DELETE FROM seen_sets WHERE set_key=?", (key,))

    def members(self, key: str) -> Set[str]:
        try:
            with self._connect() as conn:
                self._purge_expired(conn)
                cursor = conn.execute("SELECT member FROM seen_members WHERE set_key=?", (key,))
                return {row[0] for row in cursor.fetchall()}
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Reading {key} failed: {exc}") from exc

    def add_members(self, key: str, values: Iterable[str]) -> None:
        values = list(values)
        if not values:
            return
        try:
            with self._connect() as conn:
                self._purge_expired(conn)
                conn.execute("INSERT OR IGNORE INTO seen_sets (set_key, expires_at) VALUES (?, NULL)", (key,))
                conn.executemany(
                    "INSERT OR IGNORE INTO seen_members (set_key, member) VALUES (?, ?)",
                    [(key, value) for value in values],
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Writing {key} failed: {exc}") from exc

    def exists(self, key: str) -> bool:
        try:
            with self._connect() as conn:
                self._purge_expired(conn)
                cursor = conn.execute("SELECT 1 FROM seen_sets WHERE set_key=?", (key,))
                return cursor.fetchone() is not None
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Reading {key} failed: {exc}") from exc

    def refresh_expiry(self, key: str, ttl_seconds: int) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    "UPDATE seen_sets SET expires_at=? WHERE set_key=?",
                    (self.clock() + ttl_seconds, key),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Refreshing expiry of {key} failed: {exc}") from exc


def make_seen_store(settings: Settings) -> SeenStore:
    """Build the store selected by ``SEEN_STORE``."""
    if settings.SEEN_STORE.lower() == "sqlite":
        return SqliteSeenStore(
            settings.SQLITE_DB,
            settings.SEEN_IDS_KEY,
            settings.SEEN_FINGERPRINTS_KEY,
            settings.ttl_seconds,
        )
    return UpstashSeenStore(
        settings.UPSTASH_REDIS_REST_URL or "",
        settings.UPSTASH_REDIS_REST_TOKEN or "",
        settings.SEEN_IDS_KEY,
        settings.SEEN_FINGERPRINTS_KEY,
        settings.ttl_seconds,
    )

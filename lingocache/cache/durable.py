"""Durable (shared) cache tier implementations.

Responsibilities:
- Persist one translated field set per (content identity, language).
- Upsert idempotently with last-write-wins and an updated timestamp.
- Report store failures as `CacheUnavailable` so callers can degrade to a miss.

Key types:
- `DurableTier`: protocol used by `TranslationCache`.
- `SqliteDurableTier`: SQLite-backed tier shared across processes on one host.
- `InMemoryDurableTier`: process-local stand-in with the same contract.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
import json
from pathlib import Path
import sqlite3
import threading
from typing import Any, Protocol

from ..errors import CacheUnavailable
from ..parsing import normalize_language
from .keys import CacheKey

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS translation_cache (
    content_id TEXT NOT NULL,
    language TEXT NOT NULL,
    content_kind TEXT NOT NULL,
    payload TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (content_id, language)
)
"""

_UPSERT_SQL = """
INSERT INTO translation_cache (content_id, language, content_kind, payload, updated_at)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT (content_id, language)
DO UPDATE SET
    content_kind = excluded.content_kind,
    payload = excluded.payload,
    updated_at = excluded.updated_at
"""


def _utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string."""

    return datetime.now(timezone.utc).isoformat()


class DurableTier(Protocol):
    """Protocol for the shared cache of record."""

    def get(self, key: CacheKey) -> dict[str, Any] | None:
        """Return the cached wire mapping for a key, or `None` on miss."""

    def put(self, key: CacheKey, payload: dict[str, Any]) -> None:
        """Upsert the wire mapping for a key."""

    def delete(self, key: CacheKey) -> bool:
        """Delete one entry and return whether it existed."""

    def clear_language(self, language: str) -> int:
        """Delete every entry for a language and return the removed count."""

    def counts_by_language(self) -> dict[str, int]:
        """Return entry counts grouped by language."""


class SqliteDurableTier:
    """SQLite-backed durable tier.

    Each operation opens its own short-lived connection, so one instance can be
    shared by concurrent threads without client-side locking. Correctness under
    concurrent writers relies on the `(content_id, language)` upsert.
    """

    def __init__(self, db_path: Path | str, *, timeout_seconds: float = 5.0) -> None:
        """Initialize the tier; the schema is created lazily on first use."""

        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._timeout_seconds = timeout_seconds
        self._schema_lock = threading.Lock()
        self._schema_ready = False

    @property
    def db_path(self) -> Path:
        """Return the SQLite database path."""

        return self._db_path

    def _ensure_schema(self) -> None:
        """Create the database file, WAL journal, and table once per instance."""

        with self._schema_lock:
            if self._schema_ready:
                return
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self._db_path), timeout=self._timeout_seconds)
            try:
                conn.execute("PRAGMA journal_mode=WAL")
                with conn:
                    conn.execute(_CREATE_TABLE_SQL)
            finally:
                conn.close()
            self._schema_ready = True

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a transactional connection, mapping store failures to `CacheUnavailable`."""

        try:
            self._ensure_schema()
            conn = sqlite3.connect(str(self._db_path), timeout=self._timeout_seconds)
        except (sqlite3.Error, OSError) as exc:
            raise CacheUnavailable(f"Durable cache unreachable: {exc}") from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise CacheUnavailable(f"Durable cache operation failed: {exc}") from exc
        finally:
            conn.close()

    def get(self, key: CacheKey) -> dict[str, Any] | None:
        """Return the cached wire mapping for a key, or `None` on miss."""

        with self._connection() as conn:
            row = conn.execute(
                "SELECT payload FROM translation_cache WHERE content_id = ? AND language = ?",
                (key.content_id, key.language),
            ).fetchone()
        if row is None:
            return None
        try:
            payload = json.loads(row[0])
        except json.JSONDecodeError as exc:
            raise CacheUnavailable(
                f"Durable cache row for `{key.as_token()}` is not valid JSON."
            ) from exc
        if not isinstance(payload, dict):
            raise CacheUnavailable(f"Durable cache row for `{key.as_token()}` is malformed.")
        return payload

    def put(self, key: CacheKey, payload: dict[str, Any]) -> None:
        """Upsert the wire mapping for a key with a fresh `updated_at`."""

        serialized = json.dumps(payload, ensure_ascii=False, sort_keys=True)
        with self._connection() as conn:
            conn.execute(
                _UPSERT_SQL,
                (key.content_id, key.language, key.kind.value, serialized, _utc_timestamp()),
            )

    def delete(self, key: CacheKey) -> bool:
        """Delete one entry and return whether it existed."""

        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM translation_cache WHERE content_id = ? AND language = ?",
                (key.content_id, key.language),
            )
            return cursor.rowcount > 0

    def clear_language(self, language: str) -> int:
        """Delete every entry for a language and return the removed count."""

        normalized = normalize_language(language)
        if normalized is None:
            return 0
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM translation_cache WHERE language = ?",
                (normalized,),
            )
            return max(cursor.rowcount, 0)

    def counts_by_language(self) -> dict[str, int]:
        """Return entry counts grouped by language."""

        with self._connection() as conn:
            rows = conn.execute(
                "SELECT language, COUNT(*) FROM translation_cache GROUP BY language"
            ).fetchall()
        return {str(language): int(count) for language, count in rows}


class InMemoryDurableTier:
    """Process-local durable-tier stand-in used when no database path is configured."""

    def __init__(self) -> None:
        """Initialize empty row storage."""

        self._lock = threading.Lock()
        self._rows: dict[tuple[str, str], tuple[CacheKey, str, str]] = {}

    def get(self, key: CacheKey) -> dict[str, Any] | None:
        """Return a copy of the cached wire mapping for a key."""

        with self._lock:
            row = self._rows.get((key.content_id, key.language))
        if row is None:
            return None
        return json.loads(row[1])

    def put(self, key: CacheKey, payload: dict[str, Any]) -> None:
        """Upsert the wire mapping for a key."""

        serialized = json.dumps(payload, ensure_ascii=False, sort_keys=True)
        with self._lock:
            self._rows[(key.content_id, key.language)] = (key, serialized, _utc_timestamp())

    def delete(self, key: CacheKey) -> bool:
        """Delete one entry and return whether it existed."""

        with self._lock:
            return self._rows.pop((key.content_id, key.language), None) is not None

    def clear_language(self, language: str) -> int:
        """Delete every entry for a language and return the removed count."""

        normalized = normalize_language(language)
        with self._lock:
            doomed = [row_key for row_key in self._rows if row_key[1] == normalized]
            for row_key in doomed:
                del self._rows[row_key]
        return len(doomed)

    def counts_by_language(self) -> dict[str, int]:
        """Return entry counts grouped by language."""

        counts: dict[str, int] = {}
        with self._lock:
            for _content_id, language in self._rows:
                counts[language] = counts.get(language, 0) + 1
        return counts

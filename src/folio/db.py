"""FolioDB: DuckDB-backed primary store for editable portfolio records.

Every record lives in one ``records`` table addressed by ``(collection,
key)``.  Each collection names the field of the record that holds its key,
mirroring an IndexedDB object store's ``keyPath``:

=============  ==========
collection     key field
=============  ==========
``profile``    ``key``
``linkedin``   ``key``
``hobbies``    ``slug``
=============  ==========

Usage::

    db = FolioDB("folio.duckdb", hooks=hooks)

    db.set("hobbies", {"slug": "travel", "name": "Travel", "gallery": []})
    db.get("hobbies", "travel")
    db.get_all("profile")

    # Inspection
    counts = db.collection_counts()   # polars DataFrame
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import duckdb
import polars as pl

from folio.hooks import Origin, WriteEvent

if TYPE_CHECKING:
    from folio.hooks import WriteHooks

COLLECTIONS: dict[str, str] = {
    "profile": "key",
    "linkedin": "key",
    "hobbies": "slug",
}


def key_field(collection: str) -> str:
    """Return the key field of *collection*, raising ``ValueError`` if unknown."""
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection '{collection}'") from None


def record_key(collection: str, record: dict[str, Any]) -> str:
    field = key_field(collection)
    value = record.get(field) if isinstance(record, dict) else None
    if value is None or value == "":
        raise ValueError(f"Record for '{collection}' is missing its '{field}' field")
    return str(value)


class FolioDB:
    """Transactional multi-collection record store on DuckDB."""

    def __init__(self, db_path: Path | str = ":memory:", *, hooks: "WriteHooks | None" = None) -> None:
        self._db_path = str(db_path)
        self._hooks = hooks
        self.conn: duckdb.DuckDBPyConnection = duckdb.connect(self._db_path)
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Internal setup
    # ------------------------------------------------------------------

    def _ensure_schema(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS records (
                collection  VARCHAR NOT NULL,
                key         VARCHAR NOT NULL,
                value       JSON    NOT NULL,
                PRIMARY KEY (collection, key)
            )
        """)

    @staticmethod
    def _decode(raw: Any) -> dict[str, Any]:
        return json.loads(raw) if isinstance(raw, str) else raw

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def get(self, collection: str, key: str) -> dict[str, Any] | None:
        key_field(collection)
        row = self.conn.execute(
            "SELECT value FROM records WHERE collection = ? AND key = ?",
            [collection, str(key)],
        ).fetchone()
        if row is None:
            return None
        return self._decode(row[0])

    def get_all(self, collection: str) -> list[dict[str, Any]]:
        """Return every record of *collection* ordered by key."""
        key_field(collection)
        rows = self.conn.execute(
            "SELECT value FROM records WHERE collection = ? ORDER BY key",
            [collection],
        ).fetchall()
        return [self._decode(r[0]) for r in rows]

    def set(self, collection: str, record: dict[str, Any], *, origin: Origin = Origin.USER) -> dict[str, Any]:
        """Upsert *record* and notify the write hook once the commit lands."""
        key = record_key(collection, record)
        self.conn.begin()
        try:
            self.conn.execute(
                """
                INSERT INTO records (collection, key, value)
                VALUES (?, ?, ?)
                ON CONFLICT (collection, key) DO UPDATE SET value = excluded.value
                """,
                [collection, key, json.dumps(record)],
            )
            self.conn.commit()
        except duckdb.Error:
            self.conn.rollback()
            raise
        if self._hooks is not None:
            self._hooks.notify(WriteEvent(collection, key, origin))
        return record

    def delete(self, collection: str, key: str) -> None:
        key_field(collection)
        self.conn.execute(
            "DELETE FROM records WHERE collection = ? AND key = ?",
            [collection, str(key)],
        )

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def query(self, sql: str) -> pl.DataFrame:
        """Run a raw SQL query and return a Polars DataFrame."""
        return self.conn.execute(sql).pl()

    def collection_counts(self) -> pl.DataFrame:
        """Return a collection -> record count table, including empty collections."""
        counts = dict(
            self.conn.execute(
                "SELECT collection, COUNT(*) FROM records GROUP BY collection"
            ).fetchall()
        )
        return pl.DataFrame(
            {
                "collection": list(COLLECTIONS),
                "record_count": [int(counts.get(c, 0)) for c in COLLECTIONS],
            }
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "FolioDB":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

"""Versioned snapshot of every synchronised collection.

A snapshot is a plain JSON document::

    {
      "version": 1,
      "updatedAt": 1718000000000,
      "profile":  [{"key": "aboutProfile", "value": {...}, "updatedAt": ...}, ...],
      "linkedin": [{"key": "timeline", "value": {...}, "updatedAt": ...}],
      "hobbies":  [{"slug": "travel", "name": "Travel", "gallery": [...]}, ...]
    }

Import is a per-row upsert: rows already present locally but absent from
the document are left alone.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from folio.db import COLLECTIONS
from folio.hooks import Origin
from folio.store import FLAT_KEYS, now_ms

if TYPE_CHECKING:
    from folio.hooks import WriteHooks
    from folio.store import DualStore

SNAPSHOT_VERSION = 1

SNAPSHOT_COLLECTIONS: tuple[str, ...] = ("profile", "linkedin", "hobbies")

#: ``(collection, key)`` -> flat-store key kept in step with imported rows
FLAT_MIRROR: dict[tuple[str, str], str] = {
    ("profile", "aboutProfile"): FLAT_KEYS["ABOUT_PROFILE"],
    ("profile", "skillsProfile"): FLAT_KEYS["SKILLS_PROFILE"],
    ("profile", "projectsProfile"): FLAT_KEYS["PROJECTS_PROFILE"],
    ("linkedin", "timeline"): FLAT_KEYS["LINKEDIN_TIMELINE"],
}

#: version -> step upgrading a document from that version to the next one
MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {}


def export_snapshot(store: "DualStore") -> dict[str, Any]:
    """Read every synchronised collection into one snapshot document."""
    doc: dict[str, Any] = {"version": SNAPSHOT_VERSION, "updatedAt": now_ms()}
    for collection in SNAPSHOT_COLLECTIONS:
        doc[collection] = store.get_all(collection)
    return doc


def migrate_snapshot(doc: dict[str, Any]) -> dict[str, Any]:
    """Apply registered upgrade steps until *doc* reaches :data:`SNAPSHOT_VERSION`."""
    try:
        version = int(doc.get("version") or SNAPSHOT_VERSION)
    except (TypeError, ValueError):
        version = SNAPSHOT_VERSION
    while version < SNAPSHOT_VERSION and version in MIGRATIONS:
        doc = MIGRATIONS[version](doc)
        version += 1
    return doc


def _rows(doc: dict[str, Any], collection: str) -> list[dict[str, Any]]:
    rows = doc.get(collection)
    if not isinstance(rows, list):
        return []
    field = COLLECTIONS[collection]
    return [row for row in rows if isinstance(row, dict) and row.get(field) not in (None, "")]


def _apply(store: "DualStore", doc: dict[str, Any]) -> None:
    for collection in SNAPSHOT_COLLECTIONS:
        field = COLLECTIONS[collection]
        for row in _rows(doc, collection):
            store.set(collection, row, origin=Origin.IMPORT)
            flat_key = FLAT_MIRROR.get((collection, str(row[field])))
            if flat_key and row.get("value") is not None:
                store.flat_set(flat_key, row["value"])


async def import_snapshot(store: "DualStore", hooks: "WriteHooks", doc: Any) -> bool:
    """Upsert every row of *doc* without notifying the write hook.

    Returns ``False`` (and touches nothing) when *doc* is not a mapping.
    """
    if not isinstance(doc, dict):
        return False
    doc = migrate_snapshot(doc)
    await hooks.run_suppressed(lambda: _apply(store, doc))
    return True

"""DualStore: the composite local store used by every editable collection.

Strategy
--------
* **Reads** prefer the primary :class:`~folio.db.FolioDB`.  When it has no
  record (or cannot be reached) the flat-store value is used, and when that
  is missing too the caller's default is returned.
* **Writes** go to the primary store first, for its transaction, and then
  to the :class:`~folio.flat.FlatStore` mirror.
* Primary-store failures never propagate: they are reported on stderr and
  the flat store carries on alone.

Each logical entity has one canonical flat key (see :data:`FLAT_KEYS`) and
one ``collection`` + ``key`` address in the primary store.
"""

from __future__ import annotations

import sys
import time
from typing import Any

import duckdb

from folio.db import FolioDB, key_field
from folio.flat import FlatStore
from folio.hooks import Origin

FLAT_KEYS: dict[str, str] = {
    "THEME": "portfolio.theme",
    "LAST_ROUTE": "portfolio.lastRoute",
    "REDUCED_MOTION_OVERRIDE": "portfolio.reducedMotionOverride",
    "GITHUB_CACHE": "portfolio.githubCache",
    "ICON_URLS": "portfolio.iconUrls",
    "GITHUB_SYNC_TOKEN": "portfolio.githubSyncToken",
    "GITHUB_SYNC_META": "portfolio.githubSyncMeta",
    "ABOUT_PROFILE": "portfolio.aboutProfile",
    "SKILLS_PROFILE": "portfolio.skillsProfile",
    "PROJECTS_PROFILE": "portfolio.projectsProfile",
    "LINKEDIN_TIMELINE": "portfolio.linkedinTimeline",
}


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


class DualStore:
    """Primary DuckDB store with a flat JSON mirror."""

    def __init__(self, primary: FolioDB, flat: FlatStore) -> None:
        self.primary = primary
        self.flat = flat

    # ------------------------------------------------------------------
    # Primary store
    # ------------------------------------------------------------------

    def get(self, collection: str, key: str) -> dict[str, Any] | None:
        try:
            return self.primary.get(collection, key)
        except duckdb.Error as exc:
            print(f"[warn] Primary store read failed for {collection}/{key}: {exc}", file=sys.stderr)
            return None

    def get_all(self, collection: str) -> list[dict[str, Any]]:
        try:
            return self.primary.get_all(collection)
        except duckdb.Error as exc:
            print(f"[warn] Primary store read failed for {collection}: {exc}", file=sys.stderr)
            return []

    def set(
        self,
        collection: str,
        record: dict[str, Any],
        *,
        origin: Origin = Origin.USER,
    ) -> dict[str, Any]:
        try:
            return self.primary.set(collection, record, origin=origin)
        except duckdb.Error as exc:
            print(f"[warn] Primary store write failed for {collection}: {exc}", file=sys.stderr)
            return record

    def delete(self, collection: str, key: str) -> None:
        try:
            self.primary.delete(collection, key)
        except duckdb.Error as exc:
            print(f"[warn] Primary store delete failed for {collection}/{key}: {exc}", file=sys.stderr)

    # ------------------------------------------------------------------
    # Flat mirror
    # ------------------------------------------------------------------

    def flat_get(self, key: str, fallback: Any = None) -> Any:
        return self.flat.get(key, fallback)

    def flat_set(self, key: str, value: Any) -> None:
        self.flat.set(key, value)

    def flat_remove(self, key: str) -> None:
        self.flat.remove(key)

    # ------------------------------------------------------------------
    # Canonical-key helpers
    # ------------------------------------------------------------------

    def read_value(self, collection: str, key: str, flat_key: str, default: Any = None) -> Any:
        """Return the ``value`` of a ``{key, value}`` record, falling back to *flat_key*."""
        stored = self.get(collection, key)
        if stored is not None and stored.get("value") is not None:
            return stored["value"]
        return self.flat_get(flat_key, default)

    def write_value(
        self,
        collection: str,
        key: str,
        flat_key: str,
        value: Any,
        *,
        origin: Origin = Origin.USER,
    ) -> Any:
        """Write *value* to both tiers: the primary record first, then the mirror."""
        self.set(collection, {key_field(collection): key, "value": value, "updatedAt": now_ms()}, origin=origin)
        self.flat_set(flat_key, value)
        return value

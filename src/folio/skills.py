"""Editable skill sections.

Skills are grouped into sections, stored as one ``profile/skillsProfile``
record mirrored to ``portfolio.skillsProfile``::

    [
      {"id": "skill-section-...", "category": "Languages",
       "items": [{"name": "Python", "level": 90, "iconUrl": ""}]}
    ]

Levels are clamped to ``0..100``; items without a name are dropped.  When
nothing has been stored yet the sections from the site config are used; a
stored empty list means the user removed every section and stays empty.
"""

from __future__ import annotations

import math
import uuid
from typing import TYPE_CHECKING, Any

from folio.store import FLAT_KEYS

if TYPE_CHECKING:
    from folio.config import SiteConfig
    from folio.store import DualStore

COLLECTION = "profile"
SKILLS_KEY = "skillsProfile"
FLAT_KEY = FLAT_KEYS["SKILLS_PROFILE"]


def _create_id(prefix: str = "skill") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def clamp_level(value: Any) -> int:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(numeric):
        return 0
    return max(0, min(100, round(numeric)))


def normalize_item(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": str(item.get("name") or "").strip(),
        "level": clamp_level(item.get("level")),
        "iconUrl": str(item.get("iconUrl") or "").strip(),
    }


def normalize_group(group: dict[str, Any]) -> dict[str, Any]:
    items = group.get("items")
    normalized = [normalize_item(i) for i in items if isinstance(i, dict)] if isinstance(items, list) else []
    return {
        "id": str(group.get("id") or "").strip() or _create_id("skill-section"),
        "category": str(group.get("category") or "").strip() or "New Section",
        "items": [i for i in normalized if i["name"]],
    }


def normalize_skills(groups: Any) -> list[dict[str, Any]]:
    if not isinstance(groups, list):
        return []
    return [normalize_group(g) for g in groups if isinstance(g, dict)]


def get_editable_skills(store: "DualStore", site: "SiteConfig") -> list[dict[str, Any]]:
    """Return stored sections (or the configured defaults), persisting them when normalising changed them."""
    stored = store.read_value(COLLECTION, SKILLS_KEY, FLAT_KEY, None)
    groups = normalize_skills(stored) if stored is not None else normalize_skills(site.skills)
    if groups == stored:
        return groups
    return store.write_value(COLLECTION, SKILLS_KEY, FLAT_KEY, groups)


def save_editable_skills(store: "DualStore", groups: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return store.write_value(COLLECTION, SKILLS_KEY, FLAT_KEY, normalize_skills(groups))


def create_empty_skill_section() -> dict[str, Any]:
    return {
        "id": _create_id("skill-section"),
        "category": "",
        "items": [{"name": "", "level": 80, "iconUrl": ""}],
    }

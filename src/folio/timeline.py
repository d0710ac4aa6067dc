"""Professional timeline (LinkedIn-style experience list).

The whole timeline is one record, ``linkedin/timeline``, mirrored to the
flat key ``portfolio.linkedinTimeline``::

    {
      "profileUrl": "https://www.linkedin.com/in/someone",
      "fullName": "Some One",
      "experiences": [
        {"id": "exp_...", "company": "Acme", "role": "Engineer",
         "start": "2020-01", "end": "Present", "description": "...",
         "skills": ["Python"], ...}
      ]
    }
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from folio.errors import TimelineValidationError
from folio.hooks import Origin
from folio.store import FLAT_KEYS, now_ms

if TYPE_CHECKING:
    from folio.store import DualStore

COLLECTION = "linkedin"
TIMELINE_KEY = "timeline"
FLAT_KEY = FLAT_KEYS["LINKEDIN_TIMELINE"]

#: Fields every imported experience must carry
REQUIRED_FIELDS: tuple[str, ...] = ("company", "role", "start", "end", "description")


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


def experience_id() -> str:
    return f"exp_{now_ms()}_{uuid.uuid4().hex[:6]}"


def split_skills(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(s).strip() for s in value if str(s).strip()]
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return []


def normalize_experience(item: dict[str, Any] | None = None) -> dict[str, Any]:
    item = item or {}
    return {
        "id": item.get("id") or experience_id(),
        "company": item.get("company") or "",
        "role": item.get("role") or "",
        "employmentType": item.get("employmentType") or "",
        "location": item.get("location") or "",
        "locationType": item.get("locationType") or "",
        "start": item.get("start") or "",
        "end": item.get("end") or "Present",
        "description": item.get("description") or "",
        "skills": split_skills(item.get("skills")),
        "logoUrl": item.get("logoUrl") or "",
    }


def normalize_payload(payload: dict[str, Any] | None = None) -> dict[str, Any]:
    payload = payload or {}
    experiences = payload.get("experiences")
    if not isinstance(experiences, list):
        experiences = []
    return {
        "profileUrl": payload.get("profileUrl") or "",
        "fullName": payload.get("fullName") or "",
        "experiences": [normalize_experience(item) for item in experiences if isinstance(item, dict)],
    }


def validate_timeline_payload(payload: Any) -> list[str]:
    """Return field-level error messages; an empty list means *payload* is valid."""
    if not isinstance(payload, dict):
        return ["Payload must be a JSON object"]
    experiences = payload.get("experiences")
    if not isinstance(experiences, list):
        return ["experiences must be an array"]

    errors: list[str] = []
    for index, item in enumerate(experiences):
        if not isinstance(item, dict):
            errors.append(f"experiences[{index}] must be an object")
            continue
        for name in REQUIRED_FIELDS:
            if not item.get(name):
                errors.append(f"experiences[{index}].{name} is required")
    return errors


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def get_timeline_payload(store: "DualStore") -> dict[str, Any] | None:
    payload = store.read_value(COLLECTION, TIMELINE_KEY, FLAT_KEY, None)
    return payload if isinstance(payload, dict) else None


def save_timeline_payload(
    store: "DualStore",
    payload: dict[str, Any],
    *,
    origin: Origin = Origin.USER,
) -> dict[str, Any]:
    return store.write_value(COLLECTION, TIMELINE_KEY, FLAT_KEY, payload, origin=origin)


def get_editable_timeline(store: "DualStore", fallback_profile_url: str = "") -> dict[str, Any]:
    payload = get_timeline_payload(store)
    if payload is None:
        return {"profileUrl": fallback_profile_url, "fullName": "", "experiences": []}
    return normalize_payload(payload)


def import_timeline(
    store: "DualStore",
    payload: Any,
    *,
    profile_url: str = "",
    origin: Origin = Origin.USER,
) -> dict[str, Any]:
    """Validate and store a pasted/uploaded timeline, replacing the current one.

    Raises :class:`~folio.errors.TimelineValidationError` listing every
    missing field; nothing is written in that case.
    """
    errors = validate_timeline_payload(payload)
    if errors:
        raise TimelineValidationError(errors)
    if not payload.get("profileUrl") and profile_url:
        payload = {**payload, "profileUrl": profile_url}
    return save_timeline_payload(store, normalize_payload(payload), origin=origin)


# ---------------------------------------------------------------------------
# Experience edits
# ---------------------------------------------------------------------------


def add_experience(store: "DualStore", fallback_profile_url: str = "") -> dict[str, Any]:
    """Prepend a placeholder experience and return the updated payload."""
    payload = get_editable_timeline(store, fallback_profile_url)
    payload["experiences"].insert(
        0,
        normalize_experience(
            {
                "company": "Organization",
                "role": "Position",
                "description": "Describe your impact, outcomes, and key contributions.",
                "skills": ["Skill A", "Skill B"],
            }
        ),
    )
    return save_timeline_payload(store, payload)


def update_experience(
    store: "DualStore",
    experience_id: str,
    patch: dict[str, Any],
    fallback_profile_url: str = "",
) -> dict[str, Any]:
    payload = get_editable_timeline(store, fallback_profile_url)
    payload["experiences"] = [
        normalize_experience({**item, **patch, "id": item["id"]}) if item["id"] == experience_id else item
        for item in payload["experiences"]
    ]
    return save_timeline_payload(store, payload)


def delete_experience(store: "DualStore", experience_id: str, fallback_profile_url: str = "") -> dict[str, Any]:
    payload = get_editable_timeline(store, fallback_profile_url)
    payload["experiences"] = [item for item in payload["experiences"] if item["id"] != experience_id]
    return save_timeline_payload(store, payload)

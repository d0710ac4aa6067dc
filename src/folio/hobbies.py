"""Hobby galleries, one ``hobbies`` record per hobby keyed by slug."""

from __future__ import annotations

import base64
import hashlib
import re
import uuid
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from folio.store import now_ms

if TYPE_CHECKING:
    from folio.store import DualStore

COLLECTION = "hobbies"

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def hobby_slug(name: str) -> str:
    """URL-safe key for *name*; names with no ASCII letters or digits get ``hobby-<hash>``."""
    slug = _SLUG_RE.sub("-", name.lower().strip()).strip("-")
    if slug:
        return slug
    return f"hobby-{hashlib.sha1(name.strip().encode('utf-8')).hexdigest()[:10]}"


def _seed(name: str) -> int:
    return sum(ord(ch) for ch in name)


def default_gallery(name: str) -> list[dict[str, str]]:
    """Three placeholder images derived deterministically from *name*."""
    seed = _seed(name)
    return [
        {
            "id": f"{seed}-{offset}",
            "src": f"https://picsum.photos/seed/{quote(name, safe='')}-{offset}/900/650",
            "caption": f"Moments of {name} {offset}",
        }
        for offset in (1, 2, 3)
    ]


def ensure_hobbies(store: "DualStore", config_hobbies: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Return a record for every configured hobby, seeding missing ones."""
    prepared = []
    for hobby in config_hobbies:
        name = str(hobby.get("name") or "").strip()
        if not name:
            continue
        slug = hobby_slug(name)
        existing = store.get(COLLECTION, slug)
        if existing is not None:
            prepared.append(existing)
            continue
        fresh = {
            "slug": slug,
            "name": name,
            "description": hobby.get("description") or "",
            "gallery": default_gallery(name),
        }
        prepared.append(store.set(COLLECTION, fresh))
    return prepared


def get_hobby(store: "DualStore", slug: str) -> dict[str, Any] | None:
    return store.get(COLLECTION, slug)


def update_hobby_caption(store: "DualStore", slug: str, image_id: str, caption: str) -> dict[str, Any] | None:
    hobby = get_hobby(store, slug)
    if hobby is None:
        return None
    hobby["gallery"] = [
        {**img, "caption": caption} if img.get("id") == image_id else img for img in hobby.get("gallery") or []
    ]
    return store.set(COLLECTION, hobby)


def add_hobby_image(
    store: "DualStore",
    slug: str,
    data: bytes,
    mime_type: str = "image/png",
    caption: str = "New image",
) -> dict[str, Any] | None:
    """Prepend an image, stored inline as a ``data:`` URL."""
    hobby = get_hobby(store, slug)
    if hobby is None:
        return None
    src = f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
    image = {"id": f"{now_ms()}-{uuid.uuid4().hex[:4]}", "src": src, "caption": caption}
    hobby["gallery"] = [image, *(hobby.get("gallery") or [])]
    return store.set(COLLECTION, hobby)


def remove_hobby_image(store: "DualStore", slug: str, image_id: str) -> dict[str, Any] | None:
    hobby = get_hobby(store, slug)
    if hobby is None:
        return None
    hobby["gallery"] = [img for img in hobby.get("gallery") or [] if img.get("id") != image_id]
    return store.set(COLLECTION, hobby)

"""About-profile record (photo, sanitised rich-text bio, highlight chips)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import nh3

from folio.store import FLAT_KEYS

if TYPE_CHECKING:
    from folio.config import SiteConfig
    from folio.store import DualStore

COLLECTION = "profile"
ABOUT_KEY = "aboutProfile"
FLAT_KEY = FLAT_KEYS["ABOUT_PROFILE"]

DEFAULT_HIGHLIGHTS = ["Frontend Engineering", "UI Motion Design", "Performance First", "Accessibility"]


def default_about_profile(site: "SiteConfig") -> dict[str, Any]:
    name = site.name or "a builder"
    return {
        "imageUrl": "",
        "contentHtml": (
            f"<p>I am {name}, a curious builder focused on shipping meaningful digital products, "
            "blending clean engineering with human-centered UI motion.</p>"
        ),
        "highlights": list(DEFAULT_HIGHLIGHTS),
    }


#: Tags kept in the bio; anything else is unwrapped to its text
ALLOWED_TAGS = {"p", "br", "strong", "b", "em", "i", "u", "ul", "ol", "li", "a", "h3", "h4", "blockquote"}
ALLOWED_SCHEMES = {"http", "https", "mailto"}


def sanitize_rich_text(html: Any) -> str:
    """Reduce *html* to the allowed tags with no attributes except a safe link ``href``.

    Links keep only http, https, mailto or in-page ``#`` targets and get
    ``rel="noopener noreferrer"``; script and style content is dropped.
    """
    return nh3.clean(
        str(html or ""),
        tags=ALLOWED_TAGS,
        attributes={"a": {"href"}},
        url_schemes=ALLOWED_SCHEMES,
        link_rel="noopener noreferrer",
    ).strip()


def _clean_highlights(value: Any) -> list[str]:
    return [str(item).strip() for item in value if str(item).strip()]


def get_about_profile(store: "DualStore", site: "SiteConfig") -> dict[str, Any]:
    default = default_about_profile(site)
    value = store.read_value(COLLECTION, ABOUT_KEY, FLAT_KEY, None)
    if not isinstance(value, dict):
        return default
    highlights = value.get("highlights")
    return {
        "imageUrl": str(value.get("imageUrl") or ""),
        "contentHtml": sanitize_rich_text(value.get("contentHtml")) or default["contentHtml"],
        "highlights": _clean_highlights(highlights) if isinstance(highlights, list) else default["highlights"],
    }


def save_about_profile(store: "DualStore", site: "SiteConfig", patch: dict[str, Any]) -> dict[str, Any]:
    """Merge *patch* over the current profile and persist it to both tiers."""
    current = get_about_profile(store, site)
    highlights = patch.get("highlights")
    content = patch.get("contentHtml")
    next_profile = {
        "imageUrl": str(patch.get("imageUrl", current["imageUrl"]) or "").strip(),
        "contentHtml": sanitize_rich_text(content if content is not None else current["contentHtml"])
        or default_about_profile(site)["contentHtml"],
        "highlights": _clean_highlights(highlights) if isinstance(highlights, list) else current["highlights"],
    }
    return store.write_value(COLLECTION, ABOUT_KEY, FLAT_KEY, next_profile)

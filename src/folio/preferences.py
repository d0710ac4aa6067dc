"""Flat-store-only preferences and caches."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from folio.store import FLAT_KEYS

if TYPE_CHECKING:
    from folio.store import DualStore


def get_theme(store: "DualStore") -> str:
    return store.flat_get(FLAT_KEYS["THEME"], "dark")


def set_theme(store: "DualStore", theme: str) -> None:
    store.flat_set(FLAT_KEYS["THEME"], theme)


def get_last_route(store: "DualStore") -> str:
    return store.flat_get(FLAT_KEYS["LAST_ROUTE"], "#/home")


def set_last_route(store: "DualStore", route: str) -> None:
    store.flat_set(FLAT_KEYS["LAST_ROUTE"], route)


def get_reduced_motion_override(store: "DualStore") -> bool | None:
    return store.flat_get(FLAT_KEYS["REDUCED_MOTION_OVERRIDE"], None)


def set_reduced_motion_override(store: "DualStore", value: bool | None) -> None:
    store.flat_set(FLAT_KEYS["REDUCED_MOTION_OVERRIDE"], value)


def get_icon_cache(store: "DualStore") -> dict[str, Any]:
    return store.flat_get(FLAT_KEYS["ICON_URLS"], {})


def set_icon_cache(store: "DualStore", cache: dict[str, Any]) -> None:
    store.flat_set(FLAT_KEYS["ICON_URLS"], cache)

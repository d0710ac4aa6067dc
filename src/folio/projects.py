"""Editable project list: GitHub repos plus local overrides and custom entries.

State is one ``profile/projectsProfile`` record mirrored to
``portfolio.projectsProfile``::

    {
      "overrides":      {"gh_123": {"description": "...", "techStacks": [...]}},
      "customProjects": [{"id": "custom_...", "name": "...", ...}],
      "hiddenIds":      ["gh_456"]
    }

GitHub-backed projects are never deleted, only hidden; custom projects are
removed outright.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from folio.repos import get_github_repos, sort_repos
from folio.store import FLAT_KEYS, now_ms

if TYPE_CHECKING:
    import httpx

    from folio.store import DualStore

COLLECTION = "profile"
PROJECTS_KEY = "projectsProfile"
FLAT_KEY = FLAT_KEYS["PROJECTS_PROFILE"]
CUSTOM_PREFIX = "custom_"


def parse_tech_stacks(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    return [v.strip() for v in str(value or "").split(",") if v.strip()]


def normalize_project(project: dict[str, Any]) -> dict[str, Any]:
    language = str(project.get("language") or "").strip()
    return {
        "id": str(project.get("id") or f"{CUSTOM_PREFIX}{now_ms()}_{uuid.uuid4().hex[:6]}"),
        "source": project.get("source") or "custom",
        "name": str(project.get("name") or "Untitled Project").strip(),
        "description": str(project.get("description") or "No description yet.").strip(),
        "html_url": str(project.get("html_url") or "").strip(),
        "language": language or "Unknown",
        "stargazers_count": int(project.get("stargazers_count") or 0),
        "forks_count": int(project.get("forks_count") or 0),
        "updated_at": project.get("updated_at") or datetime.now(timezone.utc).isoformat(),
        "techStacks": parse_tech_stacks(project.get("techStacks") or ([language] if language else [])),
    }


def project_id(repo: dict[str, Any]) -> str:
    raw = repo.get("id") or repo.get("node_id") or repo.get("html_url") or repo.get("name")
    return f"gh_{raw}"


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


def get_state(store: "DualStore") -> dict[str, Any]:
    value = store.read_value(COLLECTION, PROJECTS_KEY, FLAT_KEY, None)
    if not isinstance(value, dict):
        value = {}
    overrides = value.get("overrides")
    custom = value.get("customProjects")
    hidden = value.get("hiddenIds")
    return {
        "overrides": overrides if isinstance(overrides, dict) else {},
        "customProjects": custom if isinstance(custom, list) else [],
        "hiddenIds": hidden if isinstance(hidden, list) else [],
    }


def save_state(store: "DualStore", state: dict[str, Any]) -> dict[str, Any]:
    return store.write_value(COLLECTION, PROJECTS_KEY, FLAT_KEY, state)


# ---------------------------------------------------------------------------
# Listing / edits
# ---------------------------------------------------------------------------


async def get_editable_projects(
    store: "DualStore",
    username: str,
    sort_by: str = "stars",
    *,
    client: "httpx.AsyncClient | None" = None,
) -> dict[str, Any]:
    """Merge GitHub repos with overrides and custom projects.

    Returns ``{"projects", "error", "fromCache"}``.
    """
    state = get_state(store)
    listing = await get_github_repos(store, username, "updated", client=client)
    hidden = set(state["hiddenIds"])

    github_projects = []
    for repo in listing.repos:
        pid = project_id(repo)
        if pid in hidden:
            continue
        override = state["overrides"].get(pid) or {}
        github_projects.append(
            normalize_project(
                {
                    **repo,
                    **override,
                    "id": pid,
                    "source": "github",
                    "html_url": override.get("html_url") or repo.get("html_url"),
                    "techStacks": override.get("techStacks")
                    or ([repo["language"]] if repo.get("language") else []),
                }
            )
        )

    custom_projects = [normalize_project({**item, "source": "custom"}) for item in state["customProjects"]]
    return {
        "projects": sort_repos(custom_projects + github_projects, sort_by),
        "error": listing.error,
        "fromCache": listing.from_cache,
    }


def add_custom_project(store: "DualStore") -> dict[str, Any]:
    state = get_state(store)
    project = normalize_project(
        {
            "source": "custom",
            "name": "New Project",
            "description": "Describe the project, impact, and key outcomes.",
            "language": "Unknown",
            "techStacks": ["Tech Stack"],
        }
    )
    state["customProjects"].insert(0, project)
    save_state(store, state)
    return project


def update_editable_project(store: "DualStore", pid: str, patch: dict[str, Any]) -> dict[str, Any]:
    state = get_state(store)
    pid = str(pid)

    if pid.startswith(CUSTOM_PREFIX):
        state["customProjects"] = [
            normalize_project(
                {
                    **item,
                    **patch,
                    "id": pid,
                    "source": "custom",
                    "techStacks": parse_tech_stacks(patch["techStacks"])
                    if "techStacks" in patch
                    else item.get("techStacks"),
                }
            )
            if str(item.get("id")) == pid
            else item
            for item in state["customProjects"]
        ]
    else:
        previous = state["overrides"].get(pid) or {}
        merged = {**previous, **patch}
        if "techStacks" in patch:
            merged["techStacks"] = parse_tech_stacks(patch["techStacks"])
        state["overrides"][pid] = merged
        state["hiddenIds"] = [h for h in state["hiddenIds"] if h != pid]

    return save_state(store, state)


def delete_editable_project(store: "DualStore", pid: str) -> dict[str, Any]:
    state = get_state(store)
    pid = str(pid)
    if pid.startswith(CUSTOM_PREFIX):
        state["customProjects"] = [item for item in state["customProjects"] if str(item.get("id")) != pid]
    elif pid not in state["hiddenIds"]:
        state["hiddenIds"].append(pid)
    return save_state(store, state)

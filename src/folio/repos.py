"""Public GitHub repository listing with a six-hour flat-store cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from folio.store import FLAT_KEYS, now_ms

if TYPE_CHECKING:
    from folio.store import DualStore

MAX_AGE_MS = 1000 * 60 * 60 * 6
CACHE_KEY = FLAT_KEYS["GITHUB_CACHE"]


@dataclass
class RepoListing:
    repos: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
    from_cache: bool = False


def map_repo(repo: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": repo.get("id"),
        "name": repo.get("name"),
        "description": repo.get("description") or "No description",
        "html_url": repo.get("html_url"),
        "language": repo.get("language") or "Unknown",
        "stargazers_count": repo.get("stargazers_count") or 0,
        "forks_count": repo.get("forks_count") or 0,
        "updated_at": repo.get("updated_at"),
    }


def sort_repos(repos: list[dict[str, Any]], sort_by: str = "stars") -> list[dict[str, Any]]:
    if sort_by == "updated":
        # ISO-8601 timestamps sort chronologically as strings
        return sorted(repos, key=lambda r: r.get("updated_at") or "", reverse=True)
    return sorted(repos, key=lambda r: r.get("stargazers_count") or 0, reverse=True)


async def get_github_repos(
    store: "DualStore",
    username: str,
    sort_by: str = "stars",
    *,
    client: httpx.AsyncClient | None = None,
    api_base: str = "https://api.github.com",
) -> RepoListing:
    """Return *username*'s public repos, served from cache while it is fresh.

    On a failed fetch a cached listing for the same user is returned along
    with the error message.
    """
    if not username:
        return RepoListing(error="Missing GitHub username")

    cache = store.flat_get(CACHE_KEY, None)
    usable = isinstance(cache, dict) and cache.get("username") == username and isinstance(cache.get("repos"), list)
    if usable and now_ms() - int(cache.get("timestamp") or 0) < MAX_AGE_MS:
        return RepoListing(sort_repos(cache["repos"], sort_by), from_cache=True)

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=10.0)
    try:
        r = await client.get(
            f"{api_base.rstrip('/')}/users/{quote(username, safe='')}/repos",
            params={"per_page": "100", "sort": "updated"},
        )
        if not r.is_success:
            raise httpx.HTTPStatusError(f"GitHub API failed ({r.status_code})", request=r.request, response=r)
        repos = [map_repo(repo) for repo in r.json() if isinstance(repo, dict)]
    except (httpx.HTTPError, ValueError) as exc:
        if usable and cache["repos"]:
            return RepoListing(sort_repos(cache["repos"], sort_by), error=str(exc), from_cache=True)
        return RepoListing(error=str(exc))
    finally:
        if owns_client:
            await client.aclose()

    store.flat_set(CACHE_KEY, {"username": username, "repos": repos, "timestamp": now_ms()})
    return RepoListing(sort_repos(repos, sort_by))

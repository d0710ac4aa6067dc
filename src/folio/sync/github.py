"""GitHub contents-API remote store.

The snapshot is one JSON file committed to a repository branch.

Routes used
-----------
GET  https://raw.githubusercontent.com/{owner}/{repo}/{branch}/{path}?t=...  - read (no auth)
GET  https://api.github.com/repos/{owner}/{repo}/contents/{path}             - current ``sha``
PUT  https://api.github.com/repos/{owner}/{repo}/contents/{path}             - create / update

Writes carry the ``sha`` read just before them; GitHub rejects the PUT with
409 (or 422 when a ``sha`` was required but omitted) if another writer got
there first.
"""

from __future__ import annotations

import time
from typing import Any
from urllib.parse import quote

import httpx

from folio.errors import RemoteError, SyncConflictError

_API_VERSION = "2022-11-28"
_CONFLICT_STATUSES = {409, 422}


def _quote_path(path: str) -> str:
    return "/".join(quote(part, safe="") for part in path.split("/"))


class GitHubContentsStore:
    """HTTP remote store backed by one file in a GitHub repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        *,
        branch: str = "main",
        path: str = "data/user-content.json",
        client: httpx.AsyncClient | None = None,
        api_base: str = "https://api.github.com",
        raw_base: str = "https://raw.githubusercontent.com",
        timeout: float = 10.0,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self._path = path
        self._api_base = api_base.rstrip("/")
        self._raw_base = raw_base.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def label(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def path(self) -> str:
        return self._path

    @property
    def raw_url(self) -> str:
        return (
            f"{self._raw_base}/{quote(self.owner, safe='')}/{quote(self.repo, safe='')}"
            f"/{quote(self.branch, safe='')}/{_quote_path(self._path)}"
        )

    @property
    def contents_url(self) -> str:
        return (
            f"{self._api_base}/repos/{quote(self.owner, safe='')}/{quote(self.repo, safe='')}"
            f"/contents/{_quote_path(self._path)}"
        )

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": _API_VERSION,
        }

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def fetch_snapshot(self) -> dict[str, Any] | None:
        try:
            r = await self._client.get(
                self.raw_url,
                params={"t": str(int(time.time() * 1000))},
                headers={"Cache-Control": "no-cache", "Pragma": "no-cache"},
            )
        except httpx.HTTPError:
            return None
        if not r.is_success:
            return None
        try:
            payload = r.json()
        except ValueError:
            return None
        return payload if isinstance(payload, dict) else None

    async def fetch_sha(self, token: str) -> str:
        r = await self._client.get(self.contents_url, headers=self._headers(token))
        if r.status_code == 404:
            return ""
        if not r.is_success:
            raise RemoteError(
                f"Unable to access GitHub content file ({r.status_code})",
                status=r.status_code,
                body=r.text[:200],
            )
        try:
            payload = r.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            # A directory listing comes back as a JSON array
            raise RemoteError(
                f"GitHub content path is not a file ({r.status_code})",
                status=r.status_code,
                body=r.text[:200],
            )
        return str(payload.get("sha") or "").strip()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def put_snapshot(self, content: str, *, token: str, message: str, sha: str = "") -> None:
        body: dict[str, Any] = {"message": message, "content": content, "branch": self.branch}
        if sha:
            body["sha"] = sha
        r = await self._client.put(self.contents_url, headers=self._headers(token), json=body)
        if r.is_success:
            return
        text = r.text[:200]
        if r.status_code in _CONFLICT_STATUSES:
            raise SyncConflictError(
                f"GitHub sync conflict ({r.status_code}): remote file changed since it was read",
                status=r.status_code,
                body=text,
            )
        raise RemoteError(f"GitHub sync failed ({r.status_code}): {text}", status=r.status_code, body=text)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubContentsStore":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

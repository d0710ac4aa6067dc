"""Remote store protocol."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RemoteStore(Protocol):
    """Interface the sync scheduler needs from a file-backed remote store.

    Implementations (GitHub contents API, test fakes, ...) must satisfy this
    protocol so the scheduler can swap backends without changing call sites.
    """

    @property
    def label(self) -> str:
        """Human-readable ``owner/repo`` style name of the remote."""
        ...

    @property
    def path(self) -> str:
        """Path of the snapshot file inside the remote."""
        ...

    async def fetch_snapshot(self) -> dict[str, Any] | None:
        """Return the published snapshot document, or ``None`` when unavailable."""
        ...

    async def fetch_sha(self, token: str) -> str:
        """Return the content identifier of the remote file, ``""`` when absent."""
        ...

    async def put_snapshot(self, content: str, *, token: str, message: str, sha: str = "") -> None:
        """Create or update the remote file with base64 *content*.

        Raises :class:`~folio.errors.SyncConflictError` when *sha* is stale.
        """
        ...

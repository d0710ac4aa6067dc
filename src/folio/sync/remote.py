"""RemoteSync: keeps the local store and one remote snapshot file converged.

Push flow
---------
1. A user write commits to the primary store and fires the write hook.
2. The hook calls :meth:`RemoteSync.queue_push`, which (re)arms a debounce
   timer, so a burst of edits produces one push.
3. When the timer fires, :meth:`RemoteSync.push_now` exports a snapshot,
   reads the remote ``sha`` and PUTs the new content with that ``sha``.
   Only one push runs at a time; overlapping callers share its result.
4. Failures of debounced pushes are reported (stderr + ``push-failed``
   event) and dropped; the next edit queues another push.

Pull flow
---------
:meth:`RemoteSync.pull` downloads the published snapshot and imports it with
the write hook muted, so pulling never echoes a push back.
"""

from __future__ import annotations

import base64
import binascii
import json
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from folio.config import GitHubSyncConfig
from folio.hooks import Origin, WriteEvent
from folio.snapshot import export_snapshot, import_snapshot
from folio.store import FLAT_KEYS, now_ms
from folio.sync.github import GitHubContentsStore
from folio.sync.scheduling import Debouncer, RetryPolicy, SingleFlight

if TYPE_CHECKING:
    from folio.hooks import WriteHooks
    from folio.store import DualStore
    from folio.sync.base import RemoteStore

PUSH_DELAY = 1.2
_PUSH_KEY = "push"


@dataclass(frozen=True)
class SyncEvent:
    kind: str
    reason: str = ""
    detail: str = ""
    at: int = field(default_factory=now_ms)


SyncListener = Callable[[SyncEvent], None]


def encode_content(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_token(encoded: str) -> str:
    """Decode a base64-encoded token; malformed input yields ``""``."""
    try:
        return base64.b64decode(str(encoded or ""), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return ""


class RemoteSync:
    """Debounced, single-flight push/pull against a :class:`RemoteStore`."""

    def __init__(
        self,
        store: "DualStore",
        hooks: "WriteHooks",
        config: GitHubSyncConfig | None = None,
        *,
        remote: "RemoteStore | None" = None,
        delay: float = PUSH_DELAY,
        retry: RetryPolicy | None = None,
    ) -> None:
        self.store = store
        self.hooks = hooks
        self.config = config or GitHubSyncConfig()
        self.remote = remote or GitHubContentsStore(
            self.config.owner,
            self.config.repo,
            branch=self.config.branch,
            path=self.config.path,
        )
        self.retry = retry or RetryPolicy()
        self._debouncer = Debouncer(delay)
        self._flight = SingleFlight()
        self._listeners: list[SyncListener] = []
        self.initialized = False

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: SyncListener) -> Callable[[], None]:
        """Register *listener* for sync events; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, kind: str, reason: str = "", detail: str = "") -> None:
        event = SyncEvent(kind, reason, detail)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # noqa: BLE001
                print(f"[warn] Sync listener failed on {kind}: {exc}", file=sys.stderr)

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------

    @property
    def token(self) -> str:
        key = self.config.token_key
        if not key:
            return ""
        return str(self.store.flat_get(key, "") or "").strip()

    def set_token(self, token: str = "") -> None:
        key = self.config.token_key
        if not key:
            return
        value = str(token or "").strip()
        if not value:
            self.store.flat_remove(key)
            return
        self.store.flat_set(key, value)

    @property
    def is_ready(self) -> bool:
        return self.initialized and bool(self.token)

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def queue_push(self, reason: str = "change") -> None:
        """(Re)start the debounce timer; the last *reason* wins."""
        if not self.config.ready:
            return
        self._debouncer.schedule(_PUSH_KEY, lambda: self._push_quietly(reason))

    @property
    def push_pending(self) -> bool:
        return self._debouncer.pending(_PUSH_KEY)

    async def _push_quietly(self, reason: str) -> None:
        try:
            await self.retry.run(lambda: self.push_now(reason))
        except Exception as exc:  # noqa: BLE001
            # Next local edit queues another push
            print(f"[warn] Remote sync push failed ({reason}): {exc}", file=sys.stderr)
            self._emit("push-failed", reason, str(exc))

    async def push_now(self, reason: str = "manual") -> bool:
        """Push the current snapshot; concurrent callers share one push."""
        return await self._flight.run(_PUSH_KEY, lambda: self._push(reason))

    async def _push(self, reason: str) -> bool:
        if not self.config.ready:
            return False
        token = self.token
        if not token:
            self._emit("push-skipped", reason, "no access token")
            return False

        self._emit("push-started", reason)
        snapshot = export_snapshot(self.store)
        content = encode_content(json.dumps(snapshot, indent=2))
        sha = await self.remote.fetch_sha(token)
        await self.remote.put_snapshot(
            content,
            token=token,
            message=f"chore: sync portfolio content ({reason})",
            sha=sha,
        )

        self.store.flat_set(
            FLAT_KEYS["GITHUB_SYNC_META"],
            {
                "syncedAt": now_ms(),
                "reason": reason,
                "repo": self.remote.label,
                "path": self.remote.path,
            },
        )
        self._emit("push-succeeded", reason)
        return True

    @property
    def last_sync(self) -> dict[str, Any] | None:
        return self.store.flat_get(FLAT_KEYS["GITHUB_SYNC_META"], None)

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    async def pull(self) -> bool:
        """Import the published snapshot; ``False`` when none could be read."""
        if not self.config.ready:
            return False
        snapshot = await self.remote.fetch_snapshot()
        if not isinstance(snapshot, dict):
            self._emit("pull-skipped", "pull", "remote snapshot unavailable")
            return False
        applied = await import_snapshot(self.store, self.hooks, snapshot)
        if applied:
            self._emit("pull-applied", "pull")
        return applied

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _on_write(self, event: WriteEvent) -> None:
        if event.origin is Origin.USER:
            self.queue_push("idb-write")

    async def start(self) -> dict[str, bool]:
        """Pull once, then push on every later user write."""
        if not self.config.ready:
            self.stop()
            return {"enabled": False, "pulled": False}

        if self.config.token:
            self.set_token(self.config.token)

        pulled = await self.pull()
        self.hooks.set_hook(self._on_write)
        self.initialized = True
        return {"enabled": True, "pulled": pulled}

    def stop(self) -> None:
        """Detach from the write hook and drop any pending push."""
        if self.hooks.hook == self._on_write:
            self.hooks.set_hook(None)
        self._debouncer.cancel()
        self.initialized = False

    async def drain(self) -> None:
        """Wait for debounced pushes that have already started."""
        await self._debouncer.drain()

"""Application context: one set of stores, hooks and integrations per site.

Everything that used to be process-wide (the write hook, the sync
configuration, the OAuth session) hangs off an :class:`AppContext`, so two
contexts in the same process never see each other's writes.

Usage::

    ctx = AppContext.from_config(load_site_config("site.yaml"), url="http://localhost:5500/")
    report = await ctx.bootstrap()
    ...
    await ctx.aclose()
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any

import httpx

from folio.config import SiteConfig
from folio.db import FolioDB
from folio.flat import FlatStore, SessionStore
from folio.hobbies import ensure_hobbies
from folio.hooks import WriteHooks
from folio.oauth import CallbackResult, LinkedInOAuth, Location
from folio.store import DualStore
from folio.sync.base import RemoteStore
from folio.sync.github import GitHubContentsStore
from folio.sync.remote import RemoteSync
from folio.sync.scheduling import RetryPolicy


@dataclass
class BootstrapReport:
    sync_enabled: bool = False
    pulled: bool = False
    hobbies: list[dict[str, Any]] = field(default_factory=list)
    oauth: CallbackResult | None = None
    pushed: bool = False


class AppContext:
    """Owns the local store and the integrations that write into it."""

    def __init__(
        self,
        site: SiteConfig,
        store: DualStore,
        hooks: WriteHooks,
        *,
        session: SessionStore | None = None,
        location: Location | None = None,
        remote: RemoteStore | None = None,
        client: httpx.AsyncClient | None = None,
        push_delay: float | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        self.site = site
        self.store = store
        self.hooks = hooks
        self.session = session or SessionStore()
        self.location = location or Location("http://localhost/")
        self._client = client or httpx.AsyncClient(timeout=15.0)

        sync_kwargs: dict[str, Any] = {}
        if push_delay is not None:
            sync_kwargs["delay"] = push_delay
        self.sync = RemoteSync(
            store,
            hooks,
            site.github_sync,
            remote=remote
            or GitHubContentsStore(
                site.github_sync.owner,
                site.github_sync.repo,
                branch=site.github_sync.branch,
                path=site.github_sync.path,
                client=self._client,
            ),
            retry=retry,
            **sync_kwargs,
        )
        self.oauth = LinkedInOAuth(
            store,
            self.session,
            self.location,
            site.linkedin_sync,
            fallback_profile_url=site.socials.get("linkedin", ""),
            client=self._client,
        )

    @classmethod
    def from_config(cls, site: SiteConfig, *, url: str | None = None, **kwargs: Any) -> "AppContext":
        """Open the configured DuckDB and flat-store files and wire them together."""
        hooks = WriteHooks()
        store = DualStore(FolioDB(site.db_path, hooks=hooks), FlatStore(site.flat_path))
        if url is not None:
            kwargs.setdefault("location", Location(url))
        return cls(site, store, hooks, **kwargs)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def bootstrap(self) -> BootstrapReport:
        """Run the startup sequence.

        1. Start remote sync (pull once, then watch writes) when enabled.
        2. Seed hobby galleries from the site config.
        3. Finish a pending LinkedIn OAuth callback, if any.
        4. Push once when a token is configured, healing drift from an
           earlier session.
        """
        report = BootstrapReport()
        github = self.site.github_sync

        if github.enabled:
            try:
                started = await self.sync.start()
            except Exception as exc:  # noqa: BLE001
                # Local persistence keeps working without the remote
                print(f"[warn] Remote sync setup failed: {exc}", file=sys.stderr)
            else:
                report.sync_enabled = started["enabled"]
                report.pulled = started["pulled"]

        report.hobbies = ensure_hobbies(self.store, self.site.hobbies)
        report.oauth = await self.oauth.handle_callback()

        if github.enabled and github.token:
            try:
                report.pushed = await self.sync.push_now("initial-bootstrap")
            except Exception as exc:  # noqa: BLE001
                print(f"[warn] Bootstrap push failed: {exc}", file=sys.stderr)
        return report

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        self.sync.stop()
        await self.sync.drain()
        await self._client.aclose()
        self.store.primary.close()

    async def __aenter__(self) -> "AppContext":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

"""Integration tests for folio.sync.remote.RemoteSync against a fake GitHub."""

import asyncio
import base64
import json

import httpx
import pytest

from folio.config import GitHubSyncConfig
from folio.errors import SyncConflictError
from folio.hooks import Origin, WriteHooks
from folio.snapshot import export_snapshot
from folio.store import DualStore
from folio.sync.github import GitHubContentsStore
from folio.sync.remote import RemoteSync, SyncEvent, decode_token, encode_content
from folio.sync.scheduling import RetryPolicy

DELAY = 0.02


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def remote(github_client: httpx.AsyncClient) -> GitHubContentsStore:
    return GitHubContentsStore("ada", "portfolio", client=github_client)


@pytest.fixture()
def sync(store: DualStore, hooks: WriteHooks, github_config: GitHubSyncConfig, remote) -> RemoteSync:
    return RemoteSync(
        store,
        hooks,
        github_config,
        remote=remote,
        delay=DELAY,
        retry=RetryPolicy(attempts=1),
    )


@pytest.fixture()
def events(sync: RemoteSync) -> list[SyncEvent]:
    seen: list[SyncEvent] = []
    sync.subscribe(seen.append)
    return seen


async def _settle(sync: RemoteSync) -> None:
    await asyncio.sleep(DELAY * 4)
    await sync.drain()


def _kinds(events: list[SyncEvent]) -> list[str]:
    return [e.kind for e in events]


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------


class TestEncoding:
    def test_encode_content_is_utf8_base64(self):
        encoded = encode_content('{"name": "Zoë"}')
        assert base64.b64decode(encoded).decode("utf-8") == '{"name": "Zoë"}'

    def test_decode_token(self):
        assert decode_token(base64.b64encode(b"ghp_abc").decode()) == "ghp_abc"

    def test_decode_token_malformed(self):
        assert decode_token("***") == ""
        assert decode_token("") == ""


# ---------------------------------------------------------------------------
# Token handling
# ---------------------------------------------------------------------------


class TestToken:
    def test_set_and_clear(self, sync: RemoteSync, store: DualStore):
        sync.set_token("  ghp_abc  ")
        assert sync.token == "ghp_abc"
        assert store.flat_get("portfolio.githubSyncToken") == "ghp_abc"
        sync.set_token("")
        assert sync.token == ""
        assert "portfolio.githubSyncToken" not in store.flat

    def test_not_ready_before_start(self, sync: RemoteSync):
        sync.set_token("ghp_abc")
        assert sync.is_ready is False


# ---------------------------------------------------------------------------
# push_now
# ---------------------------------------------------------------------------


class TestPushNow:
    @pytest.mark.asyncio
    async def test_creates_file_and_records_meta(self, sync, store, fake_github, events):
        sync.set_token("tok-123")
        store.set("hobbies", {"slug": "travel"})

        assert await sync.push_now("manual") is True
        assert fake_github.document["hobbies"] == [{"slug": "travel"}]
        put = fake_github.puts[0]
        assert put["message"] == "chore: sync portfolio content (manual)"
        assert put["branch"] == "main"
        assert "sha" not in put

        meta = sync.last_sync
        assert meta["reason"] == "manual"
        assert meta["repo"] == "ada/portfolio"
        assert meta["path"] == "data/user-content.json"
        assert _kinds(events) == ["push-started", "push-succeeded"]

    @pytest.mark.asyncio
    async def test_sends_current_sha(self, sync, fake_github):
        sync.set_token("tok-123")
        fake_github.publish({"version": 1})
        await sync.push_now()
        assert fake_github.puts[0]["sha"] == "sha-1"

    @pytest.mark.asyncio
    async def test_no_token_skips_without_network(self, sync, fake_github, events):
        assert await sync.push_now() is False
        assert fake_github.calls == []
        assert _kinds(events) == ["push-skipped"]

    @pytest.mark.asyncio
    async def test_disabled_config_is_noop(self, store, hooks, remote, fake_github):
        sync = RemoteSync(store, hooks, GitHubSyncConfig(enabled=False), remote=remote)
        sync.set_token("tok-123")
        assert await sync.push_now() is False
        assert fake_github.calls == []

    @pytest.mark.asyncio
    async def test_conflict_raises(self, sync, fake_github):
        sync.set_token("tok-123")
        fake_github.publish({"version": 1})
        fake_github.race_sha = "sha-stale"
        with pytest.raises(SyncConflictError):
            await sync.push_now()
        assert sync.last_sync is None

    @pytest.mark.asyncio
    async def test_concurrent_pushes_share_one_put(self, sync, fake_github):
        sync.set_token("tok-123")
        results = await asyncio.gather(sync.push_now("a"), sync.push_now("b"))
        assert results == [True, True]
        assert len(fake_github.puts) == 1


# ---------------------------------------------------------------------------
# Debounced pushes triggered by writes
# ---------------------------------------------------------------------------


class TestDebouncedPush:
    @pytest.mark.asyncio
    async def test_burst_of_writes_yields_one_put(self, sync, store, fake_github):
        await sync.start()
        fake_github.puts.clear()
        for slug in ("a", "b", "c", "d"):
            store.set("hobbies", {"slug": slug})
        assert sync.push_pending
        await _settle(sync)

        assert len(fake_github.puts) == 1
        assert [h["slug"] for h in fake_github.document["hobbies"]] == ["a", "b", "c", "d"]
        assert fake_github.puts[0]["message"].endswith("(idb-write)")

    @pytest.mark.asyncio
    async def test_import_origin_writes_do_not_push(self, sync, store, fake_github):
        await sync.start()
        store.set("hobbies", {"slug": "mirrored"}, origin=Origin.IMPORT)
        assert not sync.push_pending
        await _settle(sync)
        assert fake_github.puts == []

    @pytest.mark.asyncio
    async def test_failed_push_is_reported_not_raised(self, sync, store, fake_github, events, capsys):
        await sync.start()
        fake_github.put_failures.append(500)
        store.set("hobbies", {"slug": "travel"})
        await _settle(sync)

        assert "push-failed" in _kinds(events)
        assert "[warn] Remote sync push failed" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, store, hooks, github_config, remote, fake_github):
        sync = RemoteSync(
            store, hooks, github_config, remote=remote, delay=DELAY, retry=RetryPolicy(attempts=2, base_delay=0)
        )
        await sync.start()
        fake_github.put_failures.append(502)
        store.set("hobbies", {"slug": "travel"})
        await _settle(sync)
        assert len(fake_github.puts) == 2
        assert fake_github.document["hobbies"] == [{"slug": "travel"}]

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_push(self, sync, store, fake_github):
        await sync.start()
        store.set("hobbies", {"slug": "travel"})
        sync.stop()
        await _settle(sync)
        assert fake_github.puts == []
        assert sync.hooks.hook is None


# ---------------------------------------------------------------------------
# pull / start
# ---------------------------------------------------------------------------


class TestPullAndStart:
    @pytest.mark.asyncio
    async def test_pull_imports_without_pushing(self, sync, store, fake_github, events):
        fake_github.publish(
            {
                "version": 1,
                "updatedAt": 1,
                "profile": [{"key": "aboutProfile", "value": {"imageUrl": "remote.png"}}],
                "linkedin": [],
                "hobbies": [{"slug": "travel", "name": "Travel"}],
            }
        )
        result = await sync.start()
        assert result == {"enabled": True, "pulled": True}
        assert store.get("hobbies", "travel")["name"] == "Travel"
        assert store.flat_get("portfolio.aboutProfile") == {"imageUrl": "remote.png"}

        await _settle(sync)
        assert fake_github.puts == []
        assert "pull-applied" in _kinds(events)

    @pytest.mark.asyncio
    async def test_missing_remote_file(self, sync, events):
        assert await sync.pull() is False
        assert _kinds(events) == ["pull-skipped"]

    @pytest.mark.asyncio
    async def test_start_stores_configured_token(self, sync):
        await sync.start()
        assert sync.token == "tok-123"
        assert sync.is_ready

    @pytest.mark.asyncio
    async def test_start_disabled(self, store, hooks, remote):
        sync = RemoteSync(store, hooks, GitHubSyncConfig(enabled=True, owner="ada"), remote=remote)
        assert await sync.start() == {"enabled": False, "pulled": False}
        assert hooks.hook is None

    @pytest.mark.asyncio
    async def test_pushed_snapshot_round_trips(self, sync, store, fake_github):
        sync.set_token("tok-123")
        store.write_value("profile", "aboutProfile", "portfolio.aboutProfile", {"imageUrl": "me.png"})
        await sync.push_now()
        put = fake_github.puts[0]
        decoded = json.loads(base64.b64decode(put["content"]))
        expected = export_snapshot(store)
        assert decoded["profile"] == expected["profile"]
        assert decoded["version"] == expected["version"]


class TestListeners:
    @pytest.mark.asyncio
    async def test_unsubscribe(self, sync):
        seen = []
        unsubscribe = sync.subscribe(seen.append)
        unsubscribe()
        await sync.push_now()
        assert seen == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_push(self, sync, fake_github, capsys):
        def _boom(event):
            raise RuntimeError("listener broke")

        sync.subscribe(_boom)
        sync.set_token("tok-123")
        assert await sync.push_now() is True
        assert "listener broke" in capsys.readouterr().err

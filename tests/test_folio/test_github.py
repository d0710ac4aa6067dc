"""Unit tests for folio.sync.github.GitHubContentsStore."""

import json

import httpx
import pytest

from folio.errors import RemoteError, SyncConflictError
from folio.sync.base import RemoteStore
from folio.sync.github import GitHubContentsStore


def _store(handler) -> GitHubContentsStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubContentsStore("ada", "portfolio", branch="main", path="data/user content.json", client=client)


# ---------------------------------------------------------------------------
# URLs / protocol
# ---------------------------------------------------------------------------


class TestUrls:
    def test_conforms_to_protocol(self):
        assert isinstance(GitHubContentsStore("ada", "portfolio"), RemoteStore)

    def test_raw_url_quotes_path_segments(self):
        store = _store(lambda r: httpx.Response(200))
        assert store.raw_url == "https://raw.githubusercontent.com/ada/portfolio/main/data/user%20content.json"

    def test_contents_url(self):
        store = _store(lambda r: httpx.Response(200))
        assert store.contents_url == "https://api.github.com/repos/ada/portfolio/contents/data/user%20content.json"

    def test_label(self):
        assert GitHubContentsStore("ada", "portfolio").label == "ada/portfolio"


# ---------------------------------------------------------------------------
# fetch_snapshot
# ---------------------------------------------------------------------------


class TestFetchSnapshot:
    @pytest.mark.asyncio
    async def test_returns_document_and_busts_cache(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"version": 1})

        assert await _store(handler).fetch_snapshot() == {"version": 1}
        assert "t" in seen[0].url.params
        assert seen[0].headers["Cache-Control"] == "no-cache"
        assert "Authorization" not in seen[0].headers

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(404, text="404: Not Found"),
            httpx.Response(200, text="{broken"),
            httpx.Response(200, json=["not", "a", "dict"]),
        ],
    )
    async def test_unusable_answers_yield_none(self, response):
        assert await _store(lambda r: response).fetch_snapshot() is None

    @pytest.mark.asyncio
    async def test_network_error_yields_none(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        assert await _store(handler).fetch_snapshot() is None


# ---------------------------------------------------------------------------
# fetch_sha
# ---------------------------------------------------------------------------


class TestFetchSha:
    @pytest.mark.asyncio
    async def test_sends_auth_headers(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"sha": "abc123"})

        assert await _store(handler).fetch_sha("tok") == "abc123"
        assert seen[0].headers["Authorization"] == "Bearer tok"
        assert seen[0].headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert seen[0].headers["Accept"] == "application/vnd.github+json"

    @pytest.mark.asyncio
    async def test_missing_file_is_empty_sha(self):
        assert await _store(lambda r: httpx.Response(404)).fetch_sha("tok") == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, json=[{"name": "user-content.json", "type": "file"}]),
            httpx.Response(200, text="<html>not json</html>"),
        ],
    )
    async def test_non_object_body_raises_remote_error(self, response):
        with pytest.raises(RemoteError, match="not a file") as info:
            await _store(lambda r: response).fetch_sha("tok")
        assert info.value.status == 200
        assert not info.value.transient

    @pytest.mark.asyncio
    async def test_other_failure_raises(self):
        with pytest.raises(RemoteError, match=r"\(401\)") as info:
            await _store(lambda r: httpx.Response(401, text="Bad credentials")).fetch_sha("tok")
        assert info.value.status == 401
        assert not info.value.transient


# ---------------------------------------------------------------------------
# put_snapshot
# ---------------------------------------------------------------------------


class TestPutSnapshot:
    @pytest.mark.asyncio
    async def test_body_without_sha(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json={})

        await _store(handler).put_snapshot("e30=", token="tok", message="chore: sync")
        body = json.loads(seen[0].content)
        assert body == {"message": "chore: sync", "content": "e30=", "branch": "main"}
        assert seen[0].method == "PUT"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [409, 422])
    async def test_conflicts(self, status):
        store = _store(lambda r: httpx.Response(status, json={"message": "sha mismatch"}))
        with pytest.raises(SyncConflictError) as info:
            await store.put_snapshot("e30=", token="tok", message="m", sha="old")
        assert info.value.status == status

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self):
        store = _store(lambda r: httpx.Response(503, text="unavailable"))
        with pytest.raises(RemoteError, match="GitHub sync failed \\(503\\): unavailable") as info:
            await store.put_snapshot("e30=", token="tok", message="m")
        assert info.value.transient
        assert not isinstance(info.value, SyncConflictError)

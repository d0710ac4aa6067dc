"""Shared fixtures: in-memory stores and a fake GitHub served over httpx.MockTransport."""

from __future__ import annotations

import base64
import json
from typing import Any, Iterator

import httpx
import pytest

from folio.config import GitHubSyncConfig, SiteConfig
from folio.db import FolioDB
from folio.flat import FlatStore
from folio.hooks import WriteHooks
from folio.store import DualStore


@pytest.fixture()
def hooks() -> WriteHooks:
    return WriteHooks()


@pytest.fixture()
def store(hooks: WriteHooks) -> Iterator[DualStore]:
    s = DualStore(FolioDB(hooks=hooks), FlatStore())
    yield s
    s.primary.close()


@pytest.fixture()
def site() -> SiteConfig:
    return SiteConfig(
        name="Ada",
        github_username="ada",
        socials={"linkedin": "https://www.linkedin.com/in/ada"},
        skills=[{"category": "Languages", "items": [{"name": "Python", "level": 90}]}],
        hobbies=[{"name": "Photography", "description": "Light."}, {"name": "Board Games"}],
    )


@pytest.fixture()
def github_config() -> GitHubSyncConfig:
    return GitHubSyncConfig(enabled=True, owner="ada", repo="portfolio", token="tok-123")


class FakeGitHub:
    """Just enough of raw.githubusercontent.com + the contents API."""

    def __init__(self) -> None:
        self.document: dict[str, Any] | None = None
        self.sha = ""
        self.version = 0
        self.calls: list[tuple[str, str]] = []
        self.puts: list[dict[str, Any]] = []
        #: statuses returned (and consumed) by the next PUTs before normal handling
        self.put_failures: list[int] = []
        #: when set, the sha reported by GET differs from the one PUT expects
        self.race_sha: str | None = None

    def publish(self, document: dict[str, Any]) -> None:
        self.document = document
        self.version += 1
        self.sha = f"sha-{self.version}"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        if request.url.host == "raw.githubusercontent.com":
            if self.document is None:
                return httpx.Response(404, text="404: Not Found")
            return httpx.Response(200, json=self.document)

        if request.method == "GET":
            if self.document is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json={"sha": self.race_sha or self.sha})

        if request.method == "PUT":
            body = json.loads(request.content)
            self.puts.append(body)
            if self.put_failures:
                return httpx.Response(self.put_failures.pop(0), json={"message": "boom"})
            if self.document is not None and body.get("sha") != self.sha:
                status = 422 if "sha" not in body else 409
                return httpx.Response(status, json={"message": "sha does not match"})
            self.publish(json.loads(base64.b64decode(body["content"]).decode("utf-8")))
            return httpx.Response(200, json={"content": {"sha": self.sha}})

        return httpx.Response(405)


@pytest.fixture()
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture()
def github_client(fake_github: FakeGitHub) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_github))

"""Site configuration.

The site is described by a YAML file::

    name: Surya Sen
    github_username: octocat
    socials:
      linkedin: https://www.linkedin.com/in/someone
    github_sync:
      enabled: true
      owner: someone
      repo: portfolio
      branch: main
      path: data/user-content.json
    linkedin_sync:
      enabled: true
      backend_base_url: http://localhost:8787
      scope: ""
    skills:
      - category: Languages
        items:
          - {name: Python, level: 90}
    hobbies:
      - {name: Photography, description: Framing stories through light.}

Environment variables (file values are overridden by these; direct kwargs
to :func:`load_site_config` take precedence over both):
    FOLIO_GITHUB_TOKEN          - GitHub token used for pushes
    FOLIO_LINKEDIN_BACKEND_URL  - base URL of the LinkedIn OAuth proxy
    FOLIO_DB_PATH               - DuckDB file for the primary store
    FOLIO_FLAT_PATH             - JSON file for the flat store
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from folio.store import FLAT_KEYS


@dataclass
class GitHubSyncConfig:
    enabled: bool = False
    owner: str = ""
    repo: str = ""
    branch: str = "main"
    path: str = "data/user-content.json"
    token_key: str = FLAT_KEYS["GITHUB_SYNC_TOKEN"]
    token: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GitHubSyncConfig":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled")),
            owner=str(data.get("owner") or "").strip(),
            repo=str(data.get("repo") or "").strip(),
            branch=str(data.get("branch") or cls.branch).strip(),
            path=str(data.get("path") or cls.path).strip(),
            token_key=str(data.get("token_key") or cls.token_key).strip(),
            token=str(data.get("token") or "").strip(),
        )

    @property
    def ready(self) -> bool:
        return self.enabled and bool(self.owner) and bool(self.repo)


@dataclass
class LinkedInSyncConfig:
    enabled: bool = False
    backend_base_url: str = ""
    scope: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "LinkedInSyncConfig":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled")),
            backend_base_url=str(data.get("backend_base_url") or "").strip().rstrip("/"),
            scope=str(data.get("scope") or "").strip(),
        )

    @property
    def ready(self) -> bool:
        return self.enabled and bool(self.backend_base_url)


@dataclass
class SiteConfig:
    name: str = ""
    github_username: str = ""
    socials: dict[str, str] = field(default_factory=dict)
    skills: list[dict[str, Any]] = field(default_factory=list)
    hobbies: list[dict[str, Any]] = field(default_factory=list)
    github_sync: GitHubSyncConfig = field(default_factory=GitHubSyncConfig)
    linkedin_sync: LinkedInSyncConfig = field(default_factory=LinkedInSyncConfig)
    db_path: str = ":memory:"
    flat_path: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SiteConfig":
        return cls(
            name=str(data.get("name") or ""),
            github_username=str(data.get("github_username") or ""),
            socials={str(k): str(v) for k, v in (data.get("socials") or {}).items()},
            skills=list(data.get("skills") or []),
            hobbies=list(data.get("hobbies") or []),
            github_sync=GitHubSyncConfig.from_dict(data.get("github_sync")),
            linkedin_sync=LinkedInSyncConfig.from_dict(data.get("linkedin_sync")),
            db_path=str(data.get("db_path") or ":memory:"),
            flat_path=data.get("flat_path"),
        )


def load_site_config(path: Path | str | None = None, **overrides: Any) -> SiteConfig:
    """Load a :class:`SiteConfig` from YAML, then apply env vars and *overrides*.

    A missing or malformed file yields the defaults.
    """
    data: dict[str, Any] = {}
    if path is not None and Path(path).exists():
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        except yaml.YAMLError:
            data = {}
        if not isinstance(data, dict):
            data = {}

    config = SiteConfig.from_dict(data)

    token = os.getenv("FOLIO_GITHUB_TOKEN")
    if token:
        config.github_sync.token = token.strip()
    backend = os.getenv("FOLIO_LINKEDIN_BACKEND_URL")
    if backend:
        config.linkedin_sync.backend_base_url = backend.strip().rstrip("/")
    config.db_path = os.getenv("FOLIO_DB_PATH", config.db_path)
    config.flat_path = os.getenv("FOLIO_FLAT_PATH", config.flat_path)

    for key, value in overrides.items():
        if not hasattr(config, key):
            raise TypeError(f"Unknown site config option '{key}'")
        setattr(config, key, value)
    return config

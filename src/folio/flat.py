"""Flat key/value stores.

:class:`FlatStore` is the synchronous, durable mirror of the primary store:
one JSON document on disk mapping string keys to JSON values.  It is also
where preferences, caches and the sync token live.

:class:`SessionStore` holds values that must not outlive the running
session (OAuth anti-forgery state).  It never touches disk.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any


class FlatStore:
    """JSON-file key/value store; ``path=None`` keeps everything in memory."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            print(f"[warn] Ignoring unreadable flat store {self.path}: {exc}", file=sys.stderr)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)} if isinstance(data, dict) else {}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp, self.path)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, key: str, fallback: Any = None) -> Any:
        """Return the decoded value under *key*, or *fallback* if absent or corrupt."""
        raw = self._data.get(key)
        if not raw:
            return fallback
        try:
            return json.loads(raw)
        except ValueError:
            return fallback

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    def keys(self) -> list[str]:
        return sorted(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class SessionStore:
    """In-memory string store scoped to one session."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def pop(self, key: str) -> str | None:
        return self._data.pop(key, None)

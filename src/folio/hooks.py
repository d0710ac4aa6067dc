"""Write-observation hook for the primary store.

A single listener is told about every committed primary-store write.  The
sync scheduler installs itself here so the store never has to know about
remote sync.

Two mechanisms keep imports from echoing back to the remote:

* every write carries an :class:`Origin` tag, and
* :meth:`WriteHooks.suppressed` mutes notifications for the current call
  stack (and any task spawned from it) without touching writers running in
  other tasks.
"""

from __future__ import annotations

import inspect
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterator


class Origin(str, Enum):
    USER = "user"
    IMPORT = "import"


@dataclass(frozen=True)
class WriteEvent:
    collection: str
    key: str
    origin: Origin = Origin.USER


WriteHook = Callable[[WriteEvent], None]


class WriteHooks:
    """Holder for the one write listener of an application context."""

    def __init__(self) -> None:
        self._hook: WriteHook | None = None
        # One variable per instance; suppressing one context leaves others live
        self._suppressed: ContextVar[bool] = ContextVar(f"folio_write_hooks_suppressed_{id(self)}", default=False)

    @property
    def hook(self) -> WriteHook | None:
        return self._hook

    def set_hook(self, fn: WriteHook | None) -> None:
        """Install *fn* as the listener, or clear it with ``None``."""
        self._hook = fn

    @property
    def is_suppressed(self) -> bool:
        return self._suppressed.get()

    @contextmanager
    def suppressed(self) -> Iterator[None]:
        """Mute notifications until the block exits, restoring the prior state."""
        token = self._suppressed.set(True)
        try:
            yield
        finally:
            self._suppressed.reset(token)

    async def run_suppressed(self, task: Callable[[], Any | Awaitable[Any]]) -> Any:
        """Run *task* (sync or async) with notifications muted and return its result."""
        with self.suppressed():
            result = task()
            if inspect.isawaitable(result):
                result = await result
            return result

    def notify(self, event: WriteEvent) -> None:
        if self._hook is None or self._suppressed.get():
            return
        try:
            self._hook(event)
        except Exception as exc:  # noqa: BLE001
            # The write is already committed; a broken listener must not undo it
            print(f"[warn] Write hook failed for {event.collection}/{event.key}: {exc}", file=sys.stderr)

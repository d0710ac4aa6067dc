"""Exception types shared across folio."""

from __future__ import annotations


class FolioError(Exception):
    """Base class for errors meant to be shown to the user as-is."""


class ConfigurationError(FolioError):
    """Integration settings are missing or rejected by the proxy backend."""


class RemoteError(FolioError):
    """A remote endpoint answered with a non-success status."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    @property
    def transient(self) -> bool:
        return self.status is not None and self.status >= 500


class SyncConflictError(RemoteError):
    """The remote file changed since its ``sha`` was read."""


class TimelineValidationError(ValueError):
    """An imported timeline payload is missing required fields."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(" | ".join(errors))
        self.errors = errors

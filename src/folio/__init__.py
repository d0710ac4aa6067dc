"""Local-first portfolio content store with remote sync."""

from folio.config import SiteConfig, load_site_config
from folio.context import AppContext
from folio.db import FolioDB
from folio.flat import FlatStore, SessionStore
from folio.hooks import Origin, WriteEvent, WriteHooks
from folio.snapshot import export_snapshot, import_snapshot
from folio.store import DualStore
from folio.sync.remote import RemoteSync

__all__ = [
    "AppContext",
    "SiteConfig",
    "load_site_config",
    "FolioDB",
    "FlatStore",
    "SessionStore",
    "DualStore",
    "Origin",
    "WriteEvent",
    "WriteHooks",
    "export_snapshot",
    "import_snapshot",
    "RemoteSync",
]

"""Durable storage layer.

``SpotStore`` is the on-device record store; ``LocalStorage`` holds the
flat legacy slots; ``migrate_legacy_snapshot`` moves the old snapshot
into the store exactly once.
"""

from streetart.storage.local import LocalStorage
from streetart.storage.migration import migrate_legacy_snapshot, parse_legacy_snapshot
from streetart.storage.store import SpotStore

__all__ = [
    "LocalStorage",
    "SpotStore",
    "migrate_legacy_snapshot",
    "parse_legacy_snapshot",
]

"""
Persistence tools for the shared digram store.

This package provides the lock file, the on-disk codec and the
PersistentLog service that merges in-memory deltas into the store.
"""

from digrams.tools.persistence.exceptions import (
    DigramStoreError,
    LockContentionError,
    CorruptStoreError,
    StoreWriteError,
)
from digrams.tools.persistence.lock_file import LockFile
from digrams.tools.persistence.service import PersistentLog, build_persistent_log

__all__ = [
    "DigramStoreError",
    "LockContentionError",
    "CorruptStoreError",
    "StoreWriteError",
    "LockFile",
    "PersistentLog",
    "build_persistent_log",
]

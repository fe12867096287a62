"""Custom exception hierarchy for the digram persistence layer.

Having explicit exception types lets higher layers distinguish between
lock contention, a corrupt on-disk store, and write failures that left the
in-memory delta untouched.
"""

from __future__ import annotations

from typing import Optional


class DigramStoreError(Exception):
    """Base class for all persistence related errors."""


class LockError(DigramStoreError):
    """Raised when the store lock cannot be handled as requested."""


class LockContentionError(LockError):
    """Raised when a bounded blocking save ran out of claim attempts."""

    def __init__(self, lock_path: str, attempts: int):
        super().__init__(f"Could not claim lock '{lock_path}' after {attempts} attempts")
        self.lock_path = lock_path
        self.attempts = attempts


class CorruptStoreError(DigramStoreError):
    """Raised when the persisted store exists but cannot be parsed.

    Callers must not overwrite the file after seeing this error; the file is
    left as found and the in-memory delta is kept.
    """

    def __init__(self, reason: str, path: Optional[str] = None, line: Optional[int] = None):
        where = path or "<string>"
        if line is not None:
            where = f"{where}:{line}"
        super().__init__(f"Corrupt digram store {where}: {reason}")
        self.reason = reason
        self.path = path
        self.line = line


class StoreWriteError(DigramStoreError):
    """Raised when the store could not be read or rewritten irrecoverably."""


__all__ = [
    "DigramStoreError",
    "LockError",
    "LockContentionError",
    "CorruptStoreError",
    "StoreWriteError",
]

"""Cooperative lock file guarding the shared digram store.

The lock is a plain text file holding the decimal pid of the process that
claims exclusive write access to the store. Claiming relies on exclusive
create (``O_CREAT | O_EXCL``), so there is no check-then-create window.

Nothing here raises on I/O trouble: a failed create counts as a failed
claim and a failed delete as a failed release. Callers apply their own
retry-or-skip policy.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

import psutil

from digrams.monitoring import log_event

logger = logging.getLogger(__name__)


class LockFile:
    """Advisory mutual exclusion over a filesystem path.

    ``pid`` defaults to the current process; tests pass other values to act
    as a second process sharing the same path.
    """

    def __init__(self, path: Union[str, os.PathLike], pid: Optional[int] = None):
        self.path = Path(path)
        self.pid = os.getpid() if pid is None else int(pid)

    def __repr__(self) -> str:
        return f"LockFile({str(self.path)!r}, pid={self.pid})"

    # -------- primitive operations --------
    def try_claim(self) -> bool:
        """Create the lock file holding our pid; False if it already exists."""
        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError:
            return False
        except OSError as e:
            logger.debug("lock create failed for %s: %s", self.path, e)
            return False
        try:
            with os.fdopen(fd, "w", encoding="ascii") as fh:
                fh.write(str(self.pid))
        except OSError as e:
            logger.debug("lock write failed for %s: %s", self.path, e)
            self.release()
            return False
        return True

    def release(self) -> bool:
        """Delete the lock file. Idempotent; False only on an I/O failure."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.warning("lock release failed for %s: %s", self.path, e)
            return False
        return True

    def current_owner(self) -> Optional[int]:
        """Return the pid recorded in the lock file, or None if absent/unreadable/malformed."""
        try:
            raw = self.path.read_text(encoding="ascii").strip()
        except (OSError, UnicodeDecodeError):
            return None
        if not raw.isdigit():
            return None
        owner = int(raw)
        return owner if owner > 0 else None

    def is_stale(self) -> bool:
        """True when the lock exists but its owner is not a running process.

        Anything we cannot determine (no owner, process table unreadable)
        counts as not stale so an active lock is never stolen.
        """
        return self._stale_owner() is not None

    def _stale_owner(self) -> Optional[int]:
        """The recorded pid when it names a dead process, else None."""
        owner = self.current_owner()
        if owner is None:
            return None
        try:
            alive = psutil.pid_exists(owner)
        except (psutil.Error, OSError) as e:
            logger.debug("cannot inspect pid %s for %s: %s", owner, self.path, e)
            return None
        return None if alive else owner

    def reclaim_if_stale(self) -> bool:
        """Delete an orphaned lock; returns True if one was removed.

        The lock is re-read just before deleting it and left alone unless it
        still names the same dead pid, so a lock another process claimed
        after reclaiming the orphan itself survives.
        """
        owner = self._stale_owner()
        if owner is None:
            return False
        if self.current_owner() != owner:
            logger.debug("lock %s changed hands while reclaiming stale pid %s", self.path, owner)
            return False
        removed = self.release()
        if removed:
            log_event("lock.stale_reclaimed", {"lock": self.path, "owner": owner, "pid": self.pid})
        return removed

    def owned_by_me(self) -> bool:
        return self.current_owner() == self.pid

    # -------- scoped acquisition --------
    def acquire(self) -> bool:
        """Reclaim a stale lock, claim, then verify ownership.

        A claim we created but cannot read back is removed again; a lock that
        reads back as someone else's pid is left alone.
        """
        self.reclaim_if_stale()
        if not self.try_claim():
            return False
        owner = self.current_owner()
        if owner == self.pid:
            return True
        if owner is None:
            self.release()
        logger.debug("lock %s claimed but owner reads back as %s", self.path, owner)
        return False

    @contextmanager
    def claim(self) -> Iterator[bool]:
        """Context manager yielding whether the lock is held; releases on exit.

        with lock.claim() as held:
            if held:
                ...critical section...
        """
        held = self.acquire()
        try:
            yield held
        finally:
            if held:
                self.release()


__all__ = ["LockFile"]

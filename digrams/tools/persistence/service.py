from typing import Any, Callable, Iterable, Optional
import logging
import os
import tempfile
import time
from pathlib import Path

from .exceptions import (
    CorruptStoreError,
    DigramStoreError,
    LockContentionError,
    StoreWriteError,
)
from . import codec, metrics
from .lock_file import LockFile
from ..counter_store import CounterStore
from digrams.monitoring import log_event

logger = logging.getLogger(__name__)


class PersistentLog:
    """Merge in-memory digram deltas into the shared on-disk store.

    Responsibilities
    ----------------
    - Guard every read-modify-write of the store file with the lock file.
    - Fold on-disk history into the delta, rewrite the file in full, and
      clear the delta only after the rewrite succeeded.
    - Leave the file untouched when the lock cannot be claimed or when the
      existing file does not parse.

    Concurrency
    -------------
    - Several processes may share one store path. Flushes are totally ordered
      by successful lock acquisition; a flush that cannot acquire the lock
      neither reads nor writes the file.
    """

    def __init__(
        self,
        path,
        lock: Optional[LockFile] = None,
        excluded: Optional[Iterable[str]] = None,
        retry_delay: float = 0.1,
        max_attempts: int = 0,
    ):
        self.path = Path(path)
        self.lock = lock or LockFile(str(self.path) + ".lock")
        self.excluded = frozenset(excluded or ())
        self.retry_delay = retry_delay
        self.max_attempts = max_attempts  # 0 = retry forever

    # -------- read API --------
    def exists(self) -> bool:
        return self.path.exists()

    def load_into(self, store: CounterStore) -> int:
        """Accumulate persisted counts into ``store``; returns records merged.

        Records whose event is excluded are skipped. The file is not modified.
        Raises CorruptStoreError when the file exists but does not parse.
        """
        return self._invoke("load", lambda: self._load_into(store))

    def _load_into(self, store: CounterStore) -> int:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return 0
        except UnicodeDecodeError as e:
            raise CorruptStoreError(f"not valid UTF-8 ({e.reason})", str(self.path)) from e
        merged = 0
        for key, count in codec.iter_records(text, str(self.path)):
            if key.event in self.excluded:
                continue
            store.add(key, count)
            merged += 1
        return merged

    # -------- write API --------
    def save(self, store: CounterStore, blocking: bool = False) -> bool:
        """Flush ``store`` into the file; returns True when the delta was merged.

        An empty store is a no-op that touches neither file nor lock. When the
        lock is busy a non-blocking save returns False with ``store`` intact;
        a blocking save sleeps ``retry_delay`` and tries again (bounded by
        ``max_attempts`` when non-zero, then LockContentionError).
        """
        if store.is_empty():
            return True
        attempts = 0
        while True:
            attempts += 1
            with self.lock.claim() as held:
                if held:
                    self._invoke("save", lambda: self._merge_and_write(store))
                    return True
            metrics.inc("contention", self.path.name)
            if not blocking:
                log_event("store.save_deferred", {"path": self.path, "pending": len(store)}, level=logging.DEBUG)
                return False
            if self.max_attempts and attempts >= self.max_attempts:
                raise LockContentionError(str(self.lock.path), attempts)
            time.sleep(self.retry_delay)

    def _merge_and_write(self, store: CounterStore) -> None:
        merged = store.copy()
        self._load_into(merged)
        self._write(merged)
        pending = len(store)
        store.clear()
        log_event("store.saved", {"path": self.path, "delta_keys": pending, "total_keys": len(merged)}, level=logging.DEBUG)

    def _write(self, store: CounterStore) -> None:
        body = codec.dumps(store.items())
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=self.path.name + ".", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(body)
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    def discard(self) -> bool:
        """Delete the store file under the lock; False if the lock was busy."""
        with self.lock.claim() as held:
            if not held:
                return False
            self._invoke("discard", self._unlink)
            return True

    def _unlink(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

    # -------- instrumentation wrapper --------
    def _invoke(self, op: str, func: Callable[[], Any]):
        start = time.time()
        try:
            return func()
        except DigramStoreError:
            metrics.inc(f"{op}_error", self.path.name)
            raise
        except OSError as e:  # keep backend errors inside the store taxonomy
            metrics.inc(f"{op}_error", self.path.name)
            raise StoreWriteError(f"I/O error during {op} on {self.path}: {e}") from e
        finally:
            duration = (time.time() - start) * 1000.0
            metrics.inc(op, self.path.name)
            metrics.observe(op, self.path.name, duration)
            logger.debug("op=%s path=%s ms=%.1f", op, self.path, duration)


# Factory helpers ---------------------------------------------------------
def build_persistent_log(settings=None) -> PersistentLog:
    """Build a PersistentLog from environment configuration (see digrams.config.settings)."""
    from digrams.config.settings import load_settings  # local import keeps tools independent of config

    settings = settings or load_settings()
    return PersistentLog(
        settings.store_path,
        lock=LockFile(settings.lock_path),
        excluded=settings.excluded_events,
        retry_delay=settings.save_retry_delay,
        max_attempts=settings.save_max_attempts,
    )


__all__ = ["PersistentLog", "build_persistent_log"]

import atexit
import logging
import threading
from enum import Enum
from typing import Hashable, List, Optional, Set, Tuple, Union

from digrams.config.settings import Settings, load_settings
from digrams.control_layer.autosave import AutosaveTimer
from digrams.monitoring import log_event
from digrams.operational.event_recorder import EventRecorder
from digrams.tools.counter_store import CounterStore, Order
from digrams.tools.persistence.exceptions import DigramStoreError
from digrams.tools.persistence.service import PersistentLog, build_persistent_log
from digrams.utils import report
from digrams.utils.envelope import Envelope

logger = logging.getLogger(__name__)

Snapshot = Tuple[int, List[Tuple[Hashable, int]]]


class ResetOutcome(str, Enum):
    FULL = "full"        # memory cleared and store file deleted
    PARTIAL = "partial"  # memory cleared, store file kept (lock busy)


class DigramManager:
    """Host-facing control plane for digram statistics.

    The host calls ``record_event`` once per user command and
    ``request_save`` from its timer and shutdown hooks; reporting goes
    through ``snapshot`` which never modifies the store file. The in-memory
    store only ever holds the unsaved delta.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        log: Optional[PersistentLog] = None,
        store: Optional[CounterStore] = None,
    ):
        self.settings = settings or load_settings()
        self.store = store if store is not None else CounterStore()
        self.log = log or build_persistent_log(self.settings)
        self.recorder = EventRecorder(self.store, self.settings.excluded_events)
        self.enabled = self.settings.enabled
        self._lock = threading.Lock()  # guards the in-memory delta and recorder
        self._save_lock = threading.Lock()  # orders saves, resets and file reads
        self._autosave: Optional[AutosaveTimer] = None
        self._hook_installed = False

    # -------- recording --------
    def record_event(self, event: object, context: str) -> bool:
        if not self.enabled:
            return False
        with self._lock:
            return self.recorder.record(event, context)

    def pending_count(self) -> int:
        with self._lock:
            return self.store.total()

    # -------- saving --------
    def request_save(self, blocking: bool = False) -> bool:
        """Flush the unsaved delta; returns False when the lock was busy.

        The delta is detached before waiting for the file lock so recording
        never stalls behind a blocking save. Whatever was not written is
        merged back into the live delta.
        """
        with self._save_lock:
            with self._lock:
                if self.store.is_empty():
                    return True
                delta = self.store.copy()
                self.store.clear()
            saved = False
            try:
                saved = self.log.save(delta, blocking=blocking)
            finally:
                if not saved:
                    with self._lock:
                        self.store.merge_from(delta)
            return saved

    def autosave_tick(self) -> bool:
        """Non-blocking save whose failures are only logged."""
        try:
            return self.request_save(blocking=False)
        except DigramStoreError as exc:
            log_event("store.save_failed", {"path": self.log.path, "error": str(exc), "trigger": "autosave"}, level=logging.WARNING)
            return False

    def save_now(self) -> Tuple[bool, str]:
        """Manual save; returns (ok, message) for display to the user."""
        if self.pending_count() == 0:
            return True, "No unsaved digram statistics"
        try:
            self.request_save(blocking=True)
        except DigramStoreError as exc:
            log_event("store.save_failed", {"path": self.log.path, "error": str(exc), "trigger": "manual"}, level=logging.WARNING)
            return False, f"Could not save digram statistics: {exc}"
        return True, f"Digram statistics saved to {self.log.path}"

    # -------- reporting --------
    def _merged(self) -> CounterStore:
        # waits for an in-flight save so its delta is counted exactly once
        with self._save_lock:
            with self._lock:
                merged = self.store.copy()
            self.log.load_into(merged)
        return merged

    def snapshot(self, context: Optional[str] = None, order: Union[Order, str] = Order.DESCENDING, threshold: int = 0) -> Snapshot:
        """Unsaved delta plus persisted history, filtered to ``context`` or grouped across all."""
        merged = self._merged()
        view = merged.filter_by_context(context) if context is not None else merged.group_across_contexts()
        return view.extract_sorted(Order(order), threshold)

    def contexts(self) -> Set[str]:
        return self._merged().distinct_contexts()

    def render_report(
        self,
        context: Optional[str] = None,
        mode: Union[str, report.RowFormatter] = report.PERCENTAGE,
        order: Union[Order, str] = Order.DESCENDING,
        threshold: int = 0,
        where_is: Optional[report.WhereIs] = None,
    ) -> str:
        total, rows = self.snapshot(context, order, threshold)
        title = f"Digrams in {context}" if context is not None else "Digrams across all contexts"
        return report.render(total, rows, mode=mode, where_is=where_is, title=title)

    def render_json(self, context: Optional[str] = None, order: Union[Order, str] = Order.DESCENDING, threshold: int = 0) -> Envelope:
        """Snapshot as a JSON envelope, checked against the export schema."""
        total, rows = self.snapshot(context, order, threshold)
        env = Envelope.from_snapshot(str(self.log.path), total, rows, context=context, order=Order(order).value, threshold=threshold)
        if not env.validate():
            env.status = "ERROR"
            env.error = "snapshot does not match the export schema"
            log_event("export.invalid", {"path": self.log.path, "context": context, "records": len(rows)}, level=logging.WARNING)
        return env

    # -------- reset --------
    def reset_all(self) -> ResetOutcome:
        with self._save_lock:
            with self._lock:
                self.store.clear()
                self.recorder.reset_chain()
            removed = self.log.discard()
        outcome = ResetOutcome.FULL if removed else ResetOutcome.PARTIAL
        if outcome is ResetOutcome.PARTIAL:
            logger.warning("store %s is locked by another process; only in-memory counts were reset", self.log.path)
        log_event("store.reset", {"path": self.log.path, "outcome": outcome.value})
        return outcome

    # -------- lifecycle --------
    def start_autosave(self, interval: Optional[float] = None) -> Optional[AutosaveTimer]:
        interval = self.settings.autosave_interval if interval is None else interval
        if interval <= 0:
            return None
        if self._autosave and self._autosave.running:
            return self._autosave
        self._autosave = AutosaveTimer(interval, self.autosave_tick)
        self._autosave.start()
        return self._autosave

    def stop_autosave(self) -> None:
        if self._autosave:
            self._autosave.stop()
            self._autosave = None

    def install_shutdown_hook(self) -> None:
        if not self._hook_installed:
            atexit.register(self.shutdown)
            self._hook_installed = True

    def shutdown(self) -> bool:
        """Stop autosave and flush whatever is pending, waiting for the lock."""
        self.stop_autosave()
        try:
            return self.request_save(blocking=True)
        except DigramStoreError as exc:
            log_event("store.save_failed", {"path": self.log.path, "error": str(exc), "trigger": "shutdown"}, level=logging.ERROR)
            return False

    def close(self) -> bool:
        if self._hook_installed:
            atexit.unregister(self.shutdown)
            self._hook_installed = False
        return self.shutdown()

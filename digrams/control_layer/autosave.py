import logging
import threading
import traceback
from typing import Callable, Optional

from digrams.monitoring import log_event

logger = logging.getLogger(__name__)


class AutosaveTimer:
    """Background thread calling ``callback`` every ``interval`` seconds.

    The callback is the non-blocking save; a tick that cannot save simply
    leaves the delta for the next tick. Exceptions are logged and never stop
    the loop.
    """

    def __init__(self, interval: float, callback: Callable[[], object]):
        if interval <= 0:
            raise ValueError("autosave interval must be positive")
        self.interval = interval
        self.callback = callback
        self.ticks = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run_loop, name="digrams-autosave", daemon=True)
        self._thread.start()

    def _run_loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.ticks += 1
            try:
                self.callback()
            except Exception as exc:
                log_event("autosave.error", {"error": str(exc), "trace": traceback.format_exc()}, level=logging.WARNING)

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
        self._thread = None

"""Background lifecycle maintenance for a :class:`ThreadStore`."""

from __future__ import annotations

import logging
import threading

from storythreads import config
from storythreads.threads import ThreadStore

logger = logging.getLogger(__name__)


class ThreadLifecycleScheduler:
    """Periodically archives stale threads on a daemon thread.

    A failed cycle is logged and the next tick proceeds as normal. With
    *recalculate_significance* set, each cycle also rescores every active
    thread after cleanup.
    """

    def __init__(
        self,
        store: ThreadStore,
        interval_seconds: float = config.CLEANUP_INTERVAL_SECONDS,
        *,
        recalculate_significance: bool = False,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._store = store
        self._interval = interval_seconds
        self._recalculate = recalculate_significance
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> bool:
        """Run a single maintenance cycle; return False if it failed."""
        try:
            archived = self._store.cleanup_old_threads()
            rescored = self._store.recalculate_all_significance() if self._recalculate else 0
        except Exception:
            logger.exception("Thread maintenance cycle failed")
            return False
        logger.debug("Maintenance cycle: archived=%d rescored=%d", archived, rescored)
        return True

    def start(self) -> None:
        if self.is_running:
            logger.warning("Lifecycle scheduler is already running")
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="thread-lifecycle", daemon=True
        )
        self._thread.start()
        logger.info("Lifecycle scheduler started (every %.0fs)", self._interval)

    def stop(self, timeout: float | None = 30) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Lifecycle scheduler stopped")

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self.run_once()

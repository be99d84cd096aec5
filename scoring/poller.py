"""
Auto-refreshing stats for the dashboard.

StatsAggregator fetches bugs and projects side by side, derives a StatsSnapshot and keeps
it with loading/error flags. At most one refresh runs at a time; a refresh requested while
one is in flight is dropped. After stop() no state is written, even by refreshes that
were already running (their HTTP calls still finish; the results are discarded).
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from api.errors import ApiClientError
from normalize.models import StatsSnapshot

from .stats import compute_snapshot

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 5000


class StatsAggregator:
    def __init__(self, tracker, interval_ms: int = DEFAULT_INTERVAL_MS, on_update: Optional[Callable[[StatsSnapshot], None]] = None):
        """
        :param tracker: api.tracker.TrackerClient (anything with list_bugs/list_projects).
        :param interval_ms: refresh period; 0 or negative disables auto-refresh.
        :param on_update: optional listener called with each applied snapshot.
        """
        self.tracker = tracker
        self.interval_ms = int(interval_ms)
        self.on_update = on_update
        self._inflight = threading.Lock()
        self._state_lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stopped = False
        self._snapshot = StatsSnapshot()
        self._loading = True
        self._error: Optional[str] = None

    @property
    def snapshot(self) -> StatsSnapshot:
        return self._snapshot

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _fetch(self, fn: Callable[[], list], label: str) -> Tuple[list, Optional[str]]:
        try:
            return fn(), None
        except ApiClientError as ex:
            logger.error("Failed to fetch %s: %s", label, ex.message)
            return [], ex.message

    def refresh(self) -> bool:
        """Fetch both collections and replace the snapshot.

        Returns False without doing anything if a refresh is already in flight or the
        aggregator has been stopped; True once this call's result has been handled.
        """
        if self._stopped:
            return False
        if not self._inflight.acquire(blocking=False):
            logger.debug("Skipping stats refresh - request already in progress")
            return False
        try:
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix='stats-fetch') as pool:
                bugs_future = pool.submit(self._fetch, self.tracker.list_bugs, 'bugs')
                projects_future = pool.submit(self._fetch, self.tracker.list_projects, 'projects')
                bugs, bugs_err = bugs_future.result()
                projects, projects_err = projects_future.result()

            errors: List[str] = [e for e in (bugs_err, projects_err) if e]
            snapshot = compute_snapshot(bugs, projects)
            with self._state_lock:
                if self._stopped:
                    logger.debug("Aggregator stopped, discarding refresh result")
                    return True
                self._snapshot = snapshot
                self._error = '; '.join(errors) if errors else None
                self._loading = False
                logger.debug("Stats updated: %s", snapshot)
                # no delivery once stop() has returned
                if self.on_update is not None:
                    self.on_update(snapshot)
            return True
        finally:
            self._inflight.release()

    def _run(self):
        self.refresh()
        if self.interval_ms <= 0:
            logger.debug("Auto-refresh disabled (interval <= 0)")
            return
        interval_s = self.interval_ms / 1000.0
        while not self._stop_event.wait(interval_s):
            self.refresh()

    def start(self):
        """Activate: refresh once now, then every interval_ms on a background thread."""
        if self._stopped:
            raise RuntimeError("StatsAggregator cannot be restarted after stop()")
        if self.running:
            return
        self._thread = threading.Thread(target=self._run, name='stats-poller', daemon=True)
        self._thread.start()

    def stop(self):
        """Deactivate: stop the timer and freeze the output state."""
        with self._state_lock:
            self._stopped = True
        self._stop_event.set()
        self._thread = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()


__all__ = ["StatsAggregator", "DEFAULT_INTERVAL_MS"]

import logging
import threading
from typing import Iterator, Optional

from application.ports import ConnectivityMonitor
from application.reconciliation import ReconciliationEngine, SyncReport

logger = logging.getLogger("tasksync.scheduler")

DEFAULT_SYNC_INTERVAL = 300.0


class SyncScheduler:
    """Background triggers for backlog passes.

    A re-arming timer fires every ``interval`` seconds and a listener thread
    follows connectivity transitions; both call the engine's single-flight
    ``push_pending`` without waiting, so an overlapping trigger is dropped.
    Once stopped, the scheduler cannot be restarted.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        connectivity: ConnectivityMonitor,
        interval: float = DEFAULT_SYNC_INTERVAL,
    ) -> None:
        self.engine = engine
        self.connectivity = connectivity
        self.interval = float(interval)
        self.passes = 0
        self.last_report: Optional[SyncReport] = None
        self._lock = threading.Lock()
        self._active = False
        self._stopped = False
        self._timer: Optional[threading.Timer] = None
        self._listener: Optional[threading.Thread] = None
        self._changes: Optional[Iterator[bool]] = None

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        with self._lock:
            if self._active or self._stopped:
                return
            self._active = True
            if self.interval > 0:
                self._arm_timer()
            # Subscribe before returning so no transition after start() is missed.
            changes = self._changes = self.connectivity.status_changes()
            self._listener = threading.Thread(
                target=self._listen, args=(changes,), name="tasksync-connectivity-listener", daemon=True
            )
            self._listener.start()
        logger.debug("Sync scheduler started (interval=%ss)", self.interval)

    def stop(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            self._stopped = True
            timer, self._timer = self._timer, None
            changes, self._changes = self._changes, None
            listener = self._listener
        if timer is not None:
            timer.cancel()
        close = getattr(changes, "close", None)
        if close is not None:
            close()
        if listener is not None and listener is not threading.current_thread():
            listener.join(timeout=1.0)
        logger.debug("Sync scheduler stopped")

    def _arm_timer(self) -> None:
        timer = threading.Timer(self.interval, self._on_timer)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _on_timer(self) -> None:
        self.trigger("periodic")
        with self._lock:
            if self._active:
                self._arm_timer()

    def _listen(self, changes: Iterator[bool]) -> None:
        try:
            for online in changes:
                if not self._active:
                    return
                if online:
                    self.trigger("connectivity restored")
        except Exception as exc:  # pragma: no cover
            logger.warning("Connectivity listener stopped: %s", exc)

    def trigger(self, reason: str = "manual") -> Optional[SyncReport]:
        if not self._active:
            return None
        try:
            report = self.engine.push_pending(wait=False)
        except Exception as exc:
            logger.warning("Background sync (%s) failed: %s", reason, exc)
            return None
        if report is None:
            return None
        self.last_report = report
        self.passes += 1
        logger.debug("Background sync (%s): %s", reason, report.summary())
        return report


__all__ = ["SyncScheduler", "DEFAULT_SYNC_INTERVAL"]

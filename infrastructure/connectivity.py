"""Connectivity monitors.

``status_changes()`` hands every caller its own subscription: an iterator fed
by a private queue that yields only transitions. A subscription ends when it
is closed (from any thread) or when the monitor is closed.
"""

import logging
import queue
import threading
from typing import Iterator, List, Optional

import requests

from application.ports import ConnectivityMonitor

logger = logging.getLogger("tasksync.connectivity")

_CLOSED = object()


class _Subscription:
    """One subscriber's view of the transitions; ``close()`` is thread-safe."""

    def __init__(self, broadcaster: "_Broadcaster", q: "queue.Queue[object]") -> None:
        self._broadcaster = broadcaster
        self._queue = q
        self._done = False

    def __iter__(self) -> "_Subscription":
        return self

    def __next__(self) -> bool:
        if self._done:
            raise StopIteration
        item = self._queue.get()
        if item is _CLOSED:
            self._done = True
            self._broadcaster.discard(self._queue)
            raise StopIteration
        return bool(item)

    def close(self) -> None:
        self._broadcaster.discard(self._queue)
        self._queue.put(_CLOSED)


class _Broadcaster:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: List["queue.Queue[object]"] = []
        self._closed = False

    def subscribe(self) -> _Subscription:
        q: "queue.Queue[object]" = queue.Queue()
        with self._lock:
            if self._closed:
                q.put(_CLOSED)
            else:
                self._subscribers.append(q)
        return _Subscription(self, q)

    def discard(self, q: "queue.Queue[object]") -> None:
        with self._lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, online: bool) -> None:
        with self._lock:
            targets = list(self._subscribers)
        for q in targets:
            q.put(online)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            targets = list(self._subscribers)
        for q in targets:
            q.put(_CLOSED)


class StaticConnectivityMonitor(ConnectivityMonitor):
    """Connectivity driven by the caller (CLI --offline switch, tests)."""

    def __init__(self, online: bool = True) -> None:
        self._online = bool(online)
        self._lock = threading.Lock()
        self._events = _Broadcaster()

    def currently_online(self) -> bool:
        with self._lock:
            return self._online

    def set_online(self, online: bool) -> None:
        online = bool(online)
        with self._lock:
            changed = online != self._online
            self._online = online
        if changed:
            logger.debug("Connectivity changed: %s", "online" if online else "offline")
            self._events.publish(online)

    def status_changes(self) -> Iterator[bool]:
        return self._events.subscribe()

    def close(self) -> None:
        self._events.close()


class ProbeConnectivityMonitor(ConnectivityMonitor):
    """Online iff a HEAD request to ``probe_url`` gets any HTTP answer."""

    def __init__(
        self,
        probe_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 3.0,
        poll_interval: float = 15.0,
    ) -> None:
        self.probe_url = probe_url
        self.session = session or requests.Session()
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._events = _Broadcaster()
        self._stop = threading.Event()
        self._poller: Optional[threading.Thread] = None
        self._poller_lock = threading.Lock()
        self._last: Optional[bool] = None

    def currently_online(self) -> bool:
        try:
            self.session.head(self.probe_url, timeout=self.timeout, allow_redirects=False)
        except requests.RequestException as exc:
            logger.debug("Connectivity probe failed: %s", exc)
            return False
        return True

    def status_changes(self) -> Iterator[bool]:
        changes = self._events.subscribe()
        self._ensure_poller()
        return changes

    def _ensure_poller(self) -> None:
        with self._poller_lock:
            if self._poller is not None or self._stop.is_set():
                return
            self._last = self.currently_online()
            self._poller = threading.Thread(target=self._poll, name="tasksync-connectivity", daemon=True)
            self._poller.start()

    def _poll(self) -> None:
        while not self._stop.wait(self.poll_interval):
            online = self.currently_online()
            if online != self._last:
                self._last = online
                logger.info("Connectivity changed: %s", "online" if online else "offline")
                self._events.publish(online)

    def close(self) -> None:
        self._stop.set()
        self._events.close()
        poller = self._poller
        if poller is not None and poller is not threading.current_thread():
            poller.join(timeout=self.timeout + 1.0)


__all__ = ["StaticConnectivityMonitor", "ProbeConnectivityMonitor"]

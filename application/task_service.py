"""Application-level task service: the command surface offered to the UI.

Every command writes the local store before returning; remote forwarding is
best-effort at this grain and only authoritative in the engine's batch passes.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from core import (
    IdentityResolver,
    MergeAbortedError,
    MIN_SEARCH_CHARS,
    StorageError,
    Task,
    ValidationError,
)
from application.ports import ConnectivityMonitor, LocalStore, RemoteStore
from application.reconciliation import DEFAULT_FETCH_LIMIT, ReconciliationEngine, SyncReport
from application.sync_scheduler import DEFAULT_SYNC_INTERVAL, SyncScheduler

logger = logging.getLogger("tasksync.service")


class TaskService:
    def __init__(
        self,
        store: LocalStore,
        remote: RemoteStore,
        connectivity: ConnectivityMonitor,
        identity: Optional[IdentityResolver] = None,
        sync_interval: float = DEFAULT_SYNC_INTERVAL,
        fetch_limit: int = DEFAULT_FETCH_LIMIT,
        forward_in_background: bool = False,
    ) -> None:
        self.store = store
        self.remote = remote
        self.connectivity = connectivity
        self.identity = identity or IdentityResolver()
        self.engine = ReconciliationEngine(store, remote, connectivity, self.identity, fetch_limit=fetch_limit)
        self.scheduler = SyncScheduler(self.engine, connectivity, interval=sync_interval)
        self._executor: Optional[ThreadPoolExecutor] = None
        if forward_in_background:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tasksync-forward")
        self._closed = False

    def __enter__(self) -> "TaskService":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    @property
    def _lock(self):
        return self.engine.state_lock

    def start(self) -> "TaskService":
        self.scheduler.start()
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.scheduler.stop()
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> List[Task]:
        if self.connectivity.currently_online():
            try:
                return self.engine.fetch_and_merge()
            except MergeAbortedError:
                pass
        with self._lock:
            return self.store.get_all()

    def search(self, query: str) -> List[Task]:
        text = (query or "").strip()
        if len(text) < MIN_SEARCH_CHARS:
            raise ValidationError(f"Search query must have at least {MIN_SEARCH_CHARS} characters")
        with self._lock:
            return self.store.search(text)

    def get(self, task_id: int) -> Optional[Task]:
        with self._lock:
            task = self.store.get(task_id)
        return task if task is not None and task.visible else None

    def has_pending_sync(self) -> bool:
        return self.pending_count() > 0

    def pending_count(self) -> int:
        with self._lock:
            return self.store.count_pending()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add(self, title: str) -> Task:
        text = (title or "").strip()
        if not text:
            raise ValidationError("Task title cannot be empty")
        task = Task(id=self.identity.new_local_id(), title=text, is_synced=False)
        with self._lock:
            self.store.upsert(task)
        logger.debug("Task %s added locally", task.id)
        return self._forward(task)

    def update(self, task: Task) -> Task:
        if task.id is None:
            raise ValidationError("Cannot update a task without an id")
        text = (task.title or "").strip()
        if not text:
            raise ValidationError("Task title cannot be empty")
        with self._lock:
            # A held local id may since have been confirmed under a server id.
            current = self.store.get(task.id)
            key = current.id if current is not None else task.id
            pending = task.replace(id=key, title=text, is_synced=False)
            self.store.upsert(pending)
        return self._forward(pending)

    def toggle(self, task_id: int) -> Task:
        current = self.get(task_id)
        if current is None:
            raise ValidationError(f"Task {task_id} not found")
        return self.update(current.replace(completed=not current.completed))

    def delete(self, task_id: int) -> bool:
        with self._lock:
            matched = self.store.mark_deleted(task_id)
        if not matched:
            logger.debug("Delete of unknown task %s ignored", task_id)
            return False
        self._forward_id(task_id)
        return True

    def sync(self) -> SyncReport:
        return self.engine.push_pending(wait=True) or SyncReport()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _forward(self, task: Task) -> Task:
        """Single best-effort remote attempt; returns the freshest local state."""
        forwarded = self._forward_id(task.id)
        return forwarded if forwarded is not None else task

    def _forward_id(self, task_id: int) -> Optional[Task]:
        if self._executor is not None and not self._closed:
            self._executor.submit(self._forward_in_background, task_id)
            return None
        return self.engine.push_one(task_id)

    def _forward_in_background(self, task_id: int) -> None:
        try:
            self.engine.push_one(task_id)
        except StorageError as exc:
            logger.error("Background forward of task %s hit a storage failure: %s", task_id, exc)
        except Exception as exc:  # pragma: no cover
            logger.warning("Background forward of task %s failed: %s", task_id, exc)


__all__ = ["TaskService"]

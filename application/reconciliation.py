"""Reconciliation between the local task store and the remote task service.

Two entry points carry the protocol:

* ``push_pending`` drains the local backlog against the remote store, one
  record at a time, continuing past individual failures;
* ``fetch_and_merge`` pushes first, then pulls the authoritative list and
  repopulates the local store with remote records (remote wins on id
  collision) plus every local-only record.

Remote writes (passes and single-record forwards) share one single-flight
lock so the same local record can never be created remotely twice. Local
reads/writes that must be atomic with respect to foreground commands happen
under ``state_lock``, which TaskService shares; remote calls never run while
holding it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock, RLock
from typing import Dict, List, Optional

from core import (
    IdentityResolver,
    MergeAbortedError,
    RemoteOperationError,
    StorageError,
    Task,
    utc_now,
)
from application.ports import ConnectivityMonitor, LocalStore, RemoteStore

logger = logging.getLogger("tasksync.sync")

DEFAULT_FETCH_LIMIT = 20


@dataclass
class SyncReport:
    attempted: int = 0
    synced: int = 0
    failed: int = 0
    pending: int = 0
    offline: bool = False

    @property
    def clean(self) -> bool:
        return self.pending == 0

    def summary(self) -> str:
        if self.offline:
            return f"offline, {self.pending} pending"
        if self.clean:
            return f"completed, {self.synced} synced"
        return f"completed with {self.pending} pending"

    def to_dict(self) -> Dict[str, object]:
        return {
            "attempted": self.attempted,
            "synced": self.synced,
            "failed": self.failed,
            "pending": self.pending,
            "offline": self.offline,
        }


def _same_content(a: Task, b: Task) -> bool:
    return (a.title, a.completed, a.owner_id, a.is_deleted) == (b.title, b.completed, b.owner_id, b.is_deleted)


class ReconciliationEngine:
    def __init__(
        self,
        store: LocalStore,
        remote: RemoteStore,
        connectivity: ConnectivityMonitor,
        identity: Optional[IdentityResolver] = None,
        fetch_limit: int = DEFAULT_FETCH_LIMIT,
        state_lock: Optional[RLock] = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.connectivity = connectivity
        self.identity = identity or IdentityResolver()
        self.fetch_limit = fetch_limit
        self.state_lock = state_lock or RLock()
        self._push_lock = Lock()

    @property
    def pass_in_flight(self) -> bool:
        return self._push_lock.locked()

    # ------------------------------------------------------------------
    # Full merge
    # ------------------------------------------------------------------

    def fetch_and_merge(self) -> List[Task]:
        if not self.connectivity.currently_online():
            raise MergeAbortedError("offline")

        self.push_pending()

        try:
            remote_tasks = self.remote.list(limit=self.fetch_limit)
        except RemoteOperationError as exc:
            logger.info("Merge aborted, serving local tasks: %s", exc)
            raise MergeAbortedError(str(exc)) from exc
        except StorageError:
            raise
        except Exception as exc:
            logger.warning("Merge aborted on unexpected remote failure: %r", exc)
            raise MergeAbortedError(repr(exc)) from exc

        with self.state_lock:
            local_tasks = self.store.get_all()
            # Unconfirmed deletions outlive the repopulation and keep the
            # remote copy from coming back.
            tombstones = [t for t in self.store.get_pending() if t.is_deleted]
            tombstone_ids = {t.id for t in tombstones}
            local_by_id = {t.id: t for t in local_tasks}

            merged: List[Task] = []
            remote_ids = set()
            for remote_task in remote_tasks:
                remote_ids.add(remote_task.id)
                if remote_task.id in tombstone_ids:
                    continue
                merged.append(self._adopt(remote_task, local_by_id.get(remote_task.id)))
            merged.extend(t for t in local_tasks if t.id not in remote_ids)

            self.store.replace_all(merged + tombstones)
            result = self.store.get_all()
        logger.debug(
            "Merged %d remote and %d local tasks into %d", len(remote_tasks), len(local_tasks), len(result)
        )
        return result

    # ------------------------------------------------------------------
    # Outbound replication
    # ------------------------------------------------------------------

    def push_pending(self, wait: bool = True) -> Optional[SyncReport]:
        """Drain the backlog once. Returns None when dropped behind a running pass."""
        if not self._push_lock.acquire(blocking=wait):
            logger.debug("Sync pass already running; trigger dropped")
            return None
        try:
            return self._push_pending_locked()
        finally:
            self._push_lock.release()

    def push_one(self, task_id: int) -> Optional[Task]:
        """Best-effort forward of a single record; returns its current local state."""
        with self._push_lock:
            task = self.store.get(task_id)
            if task is None or task.is_synced:
                return task
            if not self.connectivity.currently_online():
                return task
            try:
                return self._push_record(task)
            except StorageError:
                raise
            except Exception as exc:
                logger.info("Task %s left pending: %s", task_id, exc)
                return self.store.get(task_id)

    def _push_pending_locked(self) -> SyncReport:
        report = SyncReport()
        if not self.connectivity.currently_online():
            report.offline = True
            report.pending = self.store.count_pending()
            return report

        for task in self.store.get_pending():
            report.attempted += 1
            try:
                self._push_record(task)
            except StorageError:
                raise
            except Exception as exc:
                report.failed += 1
                logger.warning("Sync of task %s failed, left pending: %s", task.id, exc)
            else:
                report.synced += 1
        report.pending = self.store.count_pending()
        if report.attempted:
            logger.info("Sync pass %s", report.summary())
        return report

    def _push_record(self, task: Task) -> Optional[Task]:
        if task.is_deleted:
            return self._push_delete(task)
        if self.identity.is_local_origin(task.id):
            return self._push_create(task)
        return self._push_update(task)

    def _push_delete(self, task: Task) -> Optional[Task]:
        if not self.identity.is_local_origin(task.id):
            self.remote.delete(task.id)
        with self.state_lock:
            current = self.store.get(task.id)
            if current is not None and current.is_deleted:
                self.store.mark_synced(task.id)
            return self.store.get(task.id)

    def _push_update(self, task: Task) -> Optional[Task]:
        server_task = self.remote.update(task)
        with self.state_lock:
            current = self.store.get(task.id)
            if current is None or not _same_content(current, task):
                # Edited or deleted mid-flight; the next pass carries the newer state.
                return current
            self.store.upsert(self._adopt(server_task.replace(id=task.id), task))
            return self.store.get(task.id)

    def _push_create(self, task: Task) -> Optional[Task]:
        server_task = self._adopt(self.remote.create(task), task)
        with self.state_lock:
            current = self.store.get(task.id)
            if current is None:
                logger.warning("Task %s vanished while being created remotely as %s", task.id, server_task.id)
                return None
            if _same_content(current, task):
                confirmed = server_task
            else:
                # Keep the newer local edit under the server identity, still pending.
                confirmed = current.replace(id=server_task.id, is_synced=False)
            self.store.replace_id(task.id, confirmed)
            logger.debug("Task %s confirmed as %s", task.id, server_task.id)
            return self.store.get(server_task.id)

    @staticmethod
    def _adopt(server_task: Task, local: Optional[Task]) -> Task:
        """Server state becomes ground truth; fill in what the server omits."""
        created_at = server_task.created_at or (local.created_at if local else None) or utc_now()
        return server_task.replace(created_at=created_at, is_synced=True, is_deleted=False)


__all__ = ["ReconciliationEngine", "SyncReport", "DEFAULT_FETCH_LIMIT"]

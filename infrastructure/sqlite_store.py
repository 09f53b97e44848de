"""SQLite-backed local task store.

One connection is opened per store and shared across threads behind a
re-entrant lock; every public method runs as a single transaction so a
reader never observes half of a record update.
"""

import logging
import sqlite3
import time
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from core import StorageError, Task
from application.ports import LocalStore

logger = logging.getLogger("tasksync.store")

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY,
        title TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        owner_id INTEGER NOT NULL DEFAULT 1,
        created_at TEXT,
        is_synced INTEGER NOT NULL DEFAULT 0,
        is_deleted INTEGER NOT NULL DEFAULT 0,
        remote_id INTEGER,
        local_id INTEGER,
        last_modified REAL NOT NULL DEFAULT 0,
        revision INTEGER NOT NULL DEFAULT 0
    );

    CREATE INDEX IF NOT EXISTS idx_tasks_synced ON tasks(is_synced);
    CREATE INDEX IF NOT EXISTS idx_tasks_deleted ON tasks(is_deleted);
    CREATE INDEX IF NOT EXISTS idx_tasks_remote_id ON tasks(remote_id);
    CREATE INDEX IF NOT EXISTS idx_tasks_local_id ON tasks(local_id);
"""

_COLUMNS = "id, title, completed, owner_id, created_at, is_synced, is_deleted"
# Records are addressable by their key, their confirmed server id, or the
# local id they were minted under before confirmation.
_MATCH_ID = "(id = :id OR remote_id = :id OR local_id = :id)"


def _casefold(value: Optional[str]) -> str:
    return (value or "").casefold()


class SQLiteTaskStore(LocalStore):
    def __init__(self, db_path: Path | str = ":memory:") -> None:
        self.db_path = str(db_path)
        self._lock = RLock()
        self._closed = False
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
                self.db_path = str(Path(self.db_path).expanduser())
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.create_function("casefold", 1, _casefold, deterministic=True)
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
            row = self._conn.execute("SELECT COALESCE(MAX(revision), 0) FROM tasks").fetchone()
            self._revision = int(row[0])
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to open task store {self.db_path}: {exc}") from exc
        logger.debug("Task store opened: %s", self.db_path)

    def __enter__(self) -> "SQLiteTaskStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _next_revision(self) -> int:
        self._revision += 1
        return self._revision

    def _query(self, sql: str, params: Any = ()) -> List[Task]:
        with self._lock:
            self._ensure_open()
            try:
                rows = self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"Task store query failed: {exc}") from exc
        return [self._row_to_task(row) for row in rows]

    def _write(self, statements: Iterable[Tuple[str, Any]]) -> int:
        """Run statements in one transaction; return rows touched by the last one."""
        with self._lock:
            self._ensure_open()
            touched = 0
            try:
                with self._conn:
                    for sql, params in statements:
                        touched = self._conn.execute(sql, params).rowcount
            except sqlite3.Error as exc:
                raise StorageError(f"Task store write failed: {exc}") from exc
            return touched

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageError("Task store is closed")

    def _upsert_statement(self, task: Task, local_id: Optional[int] = None) -> Tuple[str, Any]:
        if task.id is None:
            raise StorageError("Cannot persist a task without an id")
        params = {
            "id": task.id,
            "title": task.title,
            "completed": int(task.completed),
            "owner_id": task.owner_id,
            "created_at": task.created_at.isoformat() if task.created_at else None,
            "is_synced": int(task.is_synced),
            "is_deleted": int(task.is_deleted),
            "remote_id": task.id if task.is_synced else None,
            "local_id": local_id,
            "last_modified": time.time(),
            "revision": self._next_revision(),
        }
        # Earlier confirmation and origin aliases survive later unsynced edits.
        sql = """
            INSERT INTO tasks (id, title, completed, owner_id, created_at, is_synced, is_deleted,
                               remote_id, local_id, last_modified, revision)
            VALUES (:id, :title, :completed, :owner_id, :created_at, :is_synced, :is_deleted,
                    :remote_id, :local_id, :last_modified, :revision)
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                completed = excluded.completed,
                owner_id = excluded.owner_id,
                created_at = excluded.created_at,
                is_synced = excluded.is_synced,
                is_deleted = excluded.is_deleted,
                remote_id = COALESCE(excluded.remote_id, tasks.remote_id),
                local_id = COALESCE(excluded.local_id, tasks.local_id),
                last_modified = excluded.last_modified,
                revision = excluded.revision
        """
        return sql, params

    def _local_aliases(self) -> Dict[int, int]:
        with self._lock:
            self._ensure_open()
            try:
                rows = self._conn.execute("SELECT id, local_id FROM tasks WHERE local_id IS NOT NULL").fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"Task store query failed: {exc}") from exc
        return {int(row[0]): int(row[1]) for row in rows}

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task.from_dict(dict(row))

    # ------------------------------------------------------------------
    # LocalStore
    # ------------------------------------------------------------------

    def get(self, task_id: int) -> Optional[Task]:
        found = self._query(
            f"SELECT {_COLUMNS} FROM tasks WHERE {_MATCH_ID} ORDER BY (id = :id) DESC LIMIT 1",
            {"id": task_id},
        )
        return found[0] if found else None

    def upsert(self, task: Task) -> None:
        with self._lock:
            self._write([self._upsert_statement(task)])

    def get_all(self) -> List[Task]:
        return self._query(
            f"SELECT {_COLUMNS} FROM tasks WHERE is_deleted = 0 "
            "ORDER BY completed ASC, last_modified DESC, revision DESC"
        )

    def get_pending(self) -> List[Task]:
        # Soft deletes are written with is_synced = 0, so this is the whole backlog.
        return self._query(f"SELECT {_COLUMNS} FROM tasks WHERE is_synced = 0 ORDER BY revision ASC")

    def count_pending(self) -> int:
        with self._lock:
            self._ensure_open()
            try:
                row = self._conn.execute("SELECT COUNT(*) FROM tasks WHERE is_synced = 0").fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"Task store query failed: {exc}") from exc
        return int(row[0])

    def mark_deleted(self, task_id: int) -> bool:
        with self._lock:
            touched = self._write([(
                "UPDATE tasks SET is_deleted = 1, is_synced = 0, last_modified = :now, revision = :rev "
                f"WHERE {_MATCH_ID}",
                {"id": task_id, "now": time.time(), "rev": self._next_revision()},
            )])
        return touched > 0

    def mark_synced(self, task_id: int) -> bool:
        touched = self._write([(
            f"UPDATE tasks SET is_synced = 1, last_modified = :now WHERE {_MATCH_ID}",
            {"id": task_id, "now": time.time()},
        )])
        return touched > 0

    def remove(self, task_id: int) -> bool:
        touched = self._write([(f"DELETE FROM tasks WHERE {_MATCH_ID}", {"id": task_id})])
        return touched > 0

    def replace_id(self, old_id: int, task: Task) -> None:
        with self._lock:
            self._write([
                ("DELETE FROM tasks WHERE id = :id", {"id": old_id}),
                self._upsert_statement(task, local_id=old_id),
            ])

    def search(self, query: str) -> List[Task]:
        return self._query(
            f"SELECT {_COLUMNS} FROM tasks WHERE is_deleted = 0 "
            "AND instr(casefold(title), casefold(:query)) > 0 "
            "ORDER BY completed ASC, last_modified DESC, revision DESC",
            {"query": query},
        )

    def clear(self) -> None:
        self._write([("DELETE FROM tasks", ())])

    def replace_all(self, tasks: Sequence[Task]) -> None:
        # Insert back to front so the first task ends up most recent.
        with self._lock:
            aliases = self._local_aliases()
            statements = [("DELETE FROM tasks", ())]
            statements.extend(
                self._upsert_statement(task, local_id=aliases.get(task.id)) for task in reversed(list(tasks))
            )
            self._write(statements)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._conn.close()
            except sqlite3.Error as exc:
                raise StorageError(f"Failed to close task store: {exc}") from exc
        logger.debug("Task store closed: %s", self.db_path)


__all__ = ["SQLiteTaskStore"]

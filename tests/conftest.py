from pathlib import Path
import sys
from typing import Any, Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core import IdentityResolver, RemoteNotFound, Task
from application.task_service import TaskService
from infrastructure.connectivity import StaticConnectivityMonitor
from infrastructure.sqlite_store import SQLiteTaskStore


class FakeRemoteStore:
    """In-memory remote that hands out small server ids like a REST backend."""

    def __init__(self, tasks: Optional[List[Task]] = None, next_id: int = 201):
        self.tasks: Dict[int, Task] = {t.id: t.replace(is_synced=True) for t in tasks or []}
        self.next_id = next_id
        self.calls: List[tuple] = []
        self._failures: Dict[str, Callable[[Any], Optional[Exception]]] = {}

    def fail_on(self, op: str, exc: Exception, when: Callable[[Any], bool] = lambda arg: True) -> None:
        self._failures[op] = lambda arg: exc if when(arg) else None

    def heal(self) -> None:
        self._failures.clear()

    def _check(self, op: str, arg: Any) -> None:
        self.calls.append((op, arg))
        rule = self._failures.get(op)
        if rule is not None:
            exc = rule(arg)
            if exc is not None:
                raise exc

    def ops(self, op: str) -> List[Any]:
        return [arg for name, arg in self.calls if name == op]

    def list(self, limit: int = 20) -> List[Task]:
        self._check("list", limit)
        return [t.replace(is_synced=True) for t in list(self.tasks.values())[:limit]]

    def create(self, task: Task) -> Task:
        self._check("create", task.title)
        created = Task(id=self.next_id, title=task.title, completed=task.completed, owner_id=task.owner_id,
                       created_at=None, is_synced=True)
        self.next_id += 1
        self.tasks[created.id] = created
        return created

    def update(self, task: Task) -> Task:
        self._check("update", task.id)
        if task.id not in self.tasks:
            raise RemoteNotFound(f"todo {task.id} not found")
        updated = self.tasks[task.id].replace(title=task.title, completed=task.completed, is_synced=True)
        self.tasks[task.id] = updated
        return updated

    def delete(self, task_id: int) -> None:
        self._check("delete", task_id)
        self.tasks.pop(task_id, None)


@pytest.fixture
def store():
    with SQLiteTaskStore(":memory:") as s:
        yield s


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def monitor():
    m = StaticConnectivityMonitor(online=True)
    yield m
    m.close()


@pytest.fixture
def identity():
    return IdentityResolver()


@pytest.fixture
def service(store, remote, monitor, identity):
    svc = TaskService(store, remote, monitor, identity=identity, sync_interval=0)
    yield svc
    svc.close()

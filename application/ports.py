from typing import Iterator, List, Optional, Protocol, Sequence

from core import Task


class LocalStore(Protocol):
    """Durable task storage; every method raises StorageError on medium failure."""

    def get(self, task_id: int) -> Optional[Task]:
        ...

    def upsert(self, task: Task) -> None:
        ...

    def get_all(self) -> List[Task]:
        ...

    def get_pending(self) -> List[Task]:
        ...

    def count_pending(self) -> int:
        ...

    def mark_deleted(self, task_id: int) -> bool:
        ...

    def mark_synced(self, task_id: int) -> bool:
        ...

    def remove(self, task_id: int) -> bool:
        ...

    def replace_id(self, old_id: int, task: Task) -> None:
        ...

    def search(self, query: str) -> List[Task]:
        ...

    def clear(self) -> None:
        ...

    def replace_all(self, tasks: Sequence[Task]) -> None:
        ...

    def close(self) -> None:
        ...


class RemoteStore(Protocol):
    """Authoritative task service; failures raise RemoteOperationError subclasses."""

    def list(self, limit: int = 20) -> List[Task]:
        ...

    def create(self, task: Task) -> Task:
        ...

    def update(self, task: Task) -> Task:
        ...

    def delete(self, task_id: int) -> None:
        ...


class ConnectivityMonitor(Protocol):
    def currently_online(self) -> bool:
        ...

    def status_changes(self) -> Iterator[bool]:
        """Transitions only. Calling ``close()`` on the result ends it from any thread."""
        ...

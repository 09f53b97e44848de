from typing import Any, Dict, List

from core import RemoteUnknownError, Task
from application.ports import RemoteStore
from infrastructure.todos_api import TodosClient


class HttpRemoteStore(RemoteStore):
    def __init__(self, client: TodosClient, resource: str = "todos") -> None:
        self._client = client
        self._resource = resource.strip("/")

    def list(self, limit: int = 20) -> List[Task]:
        data = self._client.request("GET", self._resource, params={"_limit": limit})
        if not isinstance(data, list):
            raise RemoteUnknownError(f"Expected a list of tasks, got {type(data).__name__}")
        return [self._to_task(item) for item in data]

    def create(self, task: Task) -> Task:
        payload = {"title": task.title, "completed": task.completed, "userId": task.owner_id}
        return self._to_task(self._client.request("POST", self._resource, payload=payload))

    def update(self, task: Task) -> Task:
        payload = {"title": task.title, "completed": task.completed}
        return self._to_task(self._client.request("PATCH", f"{self._resource}/{task.id}", payload=payload))

    def delete(self, task_id: int) -> None:
        self._client.request("DELETE", f"{self._resource}/{task_id}")

    @staticmethod
    def _to_task(item: Any) -> Task:
        if not isinstance(item, dict):
            raise RemoteUnknownError(f"Expected a task object, got {type(item).__name__}")
        data: Dict[str, Any] = dict(item)
        data["isSynced"] = True
        data["isDeleted"] = False
        task = Task.from_dict(data)
        if task.id is None:
            raise RemoteUnknownError("Remote task has no id")
        return task


__all__ = ["HttpRemoteStore"]

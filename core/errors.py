"""Error kinds surfaced by the sync engine and its collaborators."""


class TaskSyncError(Exception):
    pass


class ValidationError(TaskSyncError, ValueError):
    """Caller input violates a precondition (empty title, short query)."""


class StorageError(TaskSyncError):
    """The local store medium failed; fatal to the operation in progress."""


class RemoteOperationError(TaskSyncError):
    """A remote store call failed. Always transient from the engine's view."""


class RemoteTimeout(RemoteOperationError):
    pass


class RemoteNotFound(RemoteOperationError):
    pass


class RemoteServerFault(RemoteOperationError):
    pass


class NetworkUnavailable(RemoteOperationError):
    pass


class RemoteUnknownError(RemoteOperationError):
    pass


class MergeAbortedError(TaskSyncError):
    """Full merge abandoned; callers fall back to the local listing."""


__all__ = [
    "TaskSyncError",
    "ValidationError",
    "StorageError",
    "RemoteOperationError",
    "RemoteTimeout",
    "RemoteNotFound",
    "RemoteServerFault",
    "NetworkUnavailable",
    "RemoteUnknownError",
    "MergeAbortedError",
]

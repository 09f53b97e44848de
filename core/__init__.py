from .task import Task, DEFAULT_OWNER_ID, MIN_SEARCH_CHARS, utc_now
from .identity import IdentityResolver, LOCAL_ID_FLOOR
from .errors import (
    TaskSyncError,
    ValidationError,
    StorageError,
    RemoteOperationError,
    RemoteTimeout,
    RemoteNotFound,
    RemoteServerFault,
    NetworkUnavailable,
    RemoteUnknownError,
    MergeAbortedError,
)

__all__ = [
    "Task",
    "DEFAULT_OWNER_ID",
    "MIN_SEARCH_CHARS",
    "utc_now",
    # Identity
    "IdentityResolver",
    "LOCAL_ID_FLOOR",
    # Errors
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

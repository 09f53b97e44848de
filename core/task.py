from dataclasses import asdict, dataclass, field, replace as _dc_replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

DEFAULT_OWNER_ID = 1
MIN_SEARCH_CHARS = 2


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return False


def _as_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


@dataclass
class Task:
    title: str
    completed: bool = False
    id: Optional[int] = None
    owner_id: int = DEFAULT_OWNER_ID
    created_at: Optional[datetime] = field(default_factory=utc_now)
    is_synced: bool = False  # field values known to match the remote store
    is_deleted: bool = False  # soft delete, awaiting remote confirmation

    @property
    def visible(self) -> bool:
        return not self.is_deleted

    def replace(self, **changes: Any) -> "Task":
        return _dc_replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Build a task from a stored row or a remote JSON payload.

        Accepts both snake_case keys and the camelCase keys the remote API
        speaks (``userId``, ``createdAt``, ``isSynced``, ``isDeleted``).
        Flags may be bools or 0/1 integers.
        """
        owner = data.get("owner_id", data.get("userId"))
        created = data.get("created_at", data.get("createdAt"))
        synced = data.get("is_synced", data.get("isSynced"))
        deleted = data.get("is_deleted", data.get("isDeleted"))
        return cls(
            id=_as_id(data.get("id")),
            title=str(data.get("title") or ""),
            completed=_as_bool(data.get("completed")),
            owner_id=_as_id(owner) or DEFAULT_OWNER_ID,
            created_at=_parse_timestamp(created),
            is_synced=_as_bool(synced),
            is_deleted=_as_bool(deleted),
        )


__all__ = ["Task", "DEFAULT_OWNER_ID", "MIN_SEARCH_CHARS", "utc_now"]

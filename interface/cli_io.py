import json
from datetime import datetime, timezone
from typing import Dict, Optional

from core import Task


def iso_timestamp() -> str:
    """UTC timestamp for structured CLI output."""
    return datetime.now(timezone.utc).isoformat()


def structured_response(
    command: str,
    *,
    status: str = "OK",
    message: str = "",
    payload: Optional[Dict] = None,
    summary: Optional[str] = None,
    exit_code: int = 0,
) -> int:
    """Unified JSON response for CLI commands."""
    body: Dict[str, object] = {
        "command": command,
        "status": status,
        "message": message,
        "timestamp": iso_timestamp(),
        "payload": payload or {},
    }
    if summary:
        body["summary"] = summary
    print(json.dumps(body, ensure_ascii=False, indent=2))
    return exit_code


def structured_error(
    command: str,
    message: str,
    *,
    payload: Optional[Dict] = None,
    status: str = "ERROR",
    exit_code: int = 1,
) -> int:
    """Short-hand for structured error responses."""
    return structured_response(command, status=status, message=message, payload=payload, exit_code=exit_code)


def task_payload(task: Task) -> Dict[str, object]:
    data = task.to_dict()
    data.pop("is_deleted", None)
    return data


__all__ = ["iso_timestamp", "structured_response", "structured_error", "task_payload"]

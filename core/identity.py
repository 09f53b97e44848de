import time
from threading import Lock
from typing import Callable, Optional

# Local ids are millisecond timestamps, far above any server counter.
LOCAL_ID_FLOOR = 1_000_000


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class IdentityResolver:
    """Mints local-origin ids and tells the two id spaces apart."""

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock or _now_ms
        self._lock = Lock()
        self._last = LOCAL_ID_FLOOR - 1

    def new_local_id(self) -> int:
        with self._lock:
            # Clock may repeat or step back; fall through to the counter.
            candidate = max(int(self._clock()), self._last + 1, LOCAL_ID_FLOOR)
            self._last = candidate
            return candidate

    @staticmethod
    def is_local_origin(task_id: Optional[int]) -> bool:
        return task_id is not None and task_id >= LOCAL_ID_FLOOR


__all__ = ["IdentityResolver", "LOCAL_ID_FLOOR"]

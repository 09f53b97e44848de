import logging
import random
import time
from typing import Any, Dict, Optional

import requests

from core import (
    NetworkUnavailable,
    RemoteNotFound,
    RemoteOperationError,
    RemoteServerFault,
    RemoteTimeout,
    RemoteUnknownError,
)

logger = logging.getLogger("tasksync.remote")


class TodosClient:
    """HTTP transport for a ``/todos`` REST resource.

    Network failures and 5xx answers are retried with exponential backoff and
    jitter; every other failure is mapped straight onto a RemoteOperationError
    subclass.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff: float = 0.5,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_attempts = max(1, int(max_attempts))
        self.backoff = backoff

    def request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        attempt = 0
        delay = self.backoff
        while True:
            attempt += 1
            try:
                resp = self.session.request(
                    method, url, json=payload, params=params, headers=headers, timeout=self.timeout
                )
            except requests.RequestException as exc:
                error = self._map_exception(exc)
                if attempt >= self.max_attempts or isinstance(error, RemoteUnknownError):
                    raise error from exc
                logger.debug("%s %s retry #%s after %s", method, url, attempt, exc)
                self._sleep(delay)
                delay *= 2
                continue
            if resp.status_code >= 500 and attempt < self.max_attempts:
                logger.debug("%s %s retry #%s due to HTTP %s", method, url, attempt, resp.status_code)
                self._sleep(delay)
                delay *= 2
                continue
            return self._decode(method, url, resp)

    def _decode(self, method: str, url: str, resp: requests.Response) -> Any:
        if resp.status_code == 404:
            raise RemoteNotFound(f"{method} {url}: resource not found")
        if resp.status_code >= 500:
            raise RemoteServerFault(f"{method} {url}: HTTP {resp.status_code}")
        if resp.status_code >= 400:
            raise RemoteUnknownError(f"{method} {url}: HTTP {resp.status_code} {resp.text[:200]}")
        if method.upper() == "DELETE" or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteUnknownError(f"{method} {url}: malformed JSON response") from exc

    @staticmethod
    def _map_exception(exc: requests.RequestException) -> RemoteOperationError:
        if isinstance(exc, requests.Timeout):
            return RemoteTimeout(f"Connection timeout: {exc}")
        if isinstance(exc, requests.ConnectionError):
            return NetworkUnavailable(f"Network error: {exc}")
        return RemoteUnknownError(f"Request failed: {exc}")

    def _sleep(self, base_delay: float) -> None:
        time.sleep(base_delay + random.uniform(0, base_delay))

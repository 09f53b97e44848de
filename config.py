from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict

import yaml

USER_CONFIG_PATH = Path(os.environ.get("TASKSYNC_CONFIG") or Path.home() / ".tasksync_config.yaml")

logger = logging.getLogger("tasksync.config")


@dataclass
class Settings:
    api_url: str = "https://jsonplaceholder.typicode.com"
    db_path: str = str(Path.home() / ".tasksync" / "tasks.db")
    sync_interval: float = 300.0
    fetch_limit: int = 20
    http_timeout: float = 10.0
    http_attempts: int = 3
    probe_url: str = ""
    log_level: str = "WARNING"

    @property
    def effective_probe_url(self) -> str:
        return self.probe_url or self.api_url


# Environment overrides win over the YAML file.
_ENV_KEYS = {
    "api_url": "TASKSYNC_API_URL",
    "db_path": "TASKSYNC_DB_PATH",
    "sync_interval": "TASKSYNC_SYNC_INTERVAL",
    "fetch_limit": "TASKSYNC_FETCH_LIMIT",
    "http_timeout": "TASKSYNC_HTTP_TIMEOUT",
    "http_attempts": "TASKSYNC_HTTP_ATTEMPTS",
    "probe_url": "TASKSYNC_PROBE_URL",
    "log_level": "TASKSYNC_LOG_LEVEL",
}


def _load_config() -> Dict[str, Any]:
    if not USER_CONFIG_PATH.exists():
        return {}
    try:
        data = yaml.safe_load(USER_CONFIG_PATH.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", USER_CONFIG_PATH, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _save_config(data: Dict[str, Any]) -> None:
    if not data:
        if USER_CONFIG_PATH.exists():
            USER_CONFIG_PATH.unlink()
        return
    USER_CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    USER_CONFIG_PATH.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")


def _coerce(name: str, raw: Any, default: Any) -> Any:
    try:
        if isinstance(default, float):
            return float(raw)
        if isinstance(default, int):
            return int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid value for %s: %r, using %r", name, raw, default)
        return default
    return str(raw)


def load_settings() -> Settings:
    settings = Settings()
    stored = _load_config()
    for f in fields(Settings):
        default = getattr(settings, f.name)
        raw = os.environ.get(_ENV_KEYS[f.name])
        if raw is None or raw == "":
            raw = stored.get(f.name)
        if raw is None or raw == "":
            continue
        setattr(settings, f.name, _coerce(f.name, raw, default))
    return settings


def save_setting(key: str, value: str) -> None:
    if key not in _ENV_KEYS:
        raise KeyError(key)
    data = _load_config()
    value = (value or "").strip()
    if value:
        data[key] = _coerce(key, value, getattr(Settings(), key))
    else:
        data.pop(key, None)
    _save_config(data)


def setting_keys() -> list[str]:
    return list(_ENV_KEYS)

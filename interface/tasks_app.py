#!/usr/bin/env python3
"""
tasks: offline-first task list CLI.

Wires the SQLite store, the HTTP remote store and a connectivity monitor into
a TaskService, dispatches one command and tears everything down again.
"""

import argparse
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional

import requests

from application.task_service import TaskService
from config import Settings, load_settings
from core import StorageError, ValidationError
from infrastructure.connectivity import ProbeConnectivityMonitor, StaticConnectivityMonitor
from infrastructure.http_remote_store import HttpRemoteStore
from infrastructure.sqlite_store import SQLiteTaskStore
from infrastructure.todos_api import TodosClient

from . import cli_commands
from .cli_io import structured_error
from .cli_parser import build_parser


def configure_logging(level: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, str(level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@contextmanager
def open_service(settings: Settings, offline: bool = False, background: bool = False) -> Iterator[TaskService]:
    session = requests.Session()
    if offline:
        monitor = StaticConnectivityMonitor(online=False)
    else:
        monitor = ProbeConnectivityMonitor(settings.effective_probe_url, session=session, timeout=settings.http_timeout)
    client = TodosClient(
        settings.api_url,
        session=session,
        timeout=settings.http_timeout,
        max_attempts=settings.http_attempts,
    )
    # One-shot commands run without the periodic timer; the command drives sync.
    with SQLiteTaskStore(settings.db_path) as store:
        service = TaskService(
            store,
            HttpRemoteStore(client),
            monitor,
            sync_interval=settings.sync_interval if background else 0,
            fetch_limit=settings.fetch_limit,
        )
        try:
            yield service
        finally:
            service.close()
            monitor.close()
            session.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser(cli_commands)
    args: argparse.Namespace = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0

    settings = load_settings()
    if args.db_path:
        settings.db_path = args.db_path
    configure_logging(settings.log_level, args.verbose)

    if not getattr(args, "needs_service", True):
        return args.func(args)

    try:
        with open_service(settings, offline=args.offline, background=getattr(args, "background", False)) as service:
            return args.func(args, service)
    except ValidationError as exc:
        return structured_error(args.command, str(exc))
    except StorageError as exc:
        logging.getLogger("tasksync.cli").error("Storage failure: %s", exc)
        return structured_error(args.command, f"Local storage failure: {exc}", status="STORAGE_ERROR", exit_code=2)


__all__ = ["main", "open_service", "configure_logging"]

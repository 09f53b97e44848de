#!/usr/bin/env python3
"""Task CLI commands. Each takes the parsed args and an open TaskService."""

import argparse
import time
from dataclasses import asdict
from typing import Optional

from application.task_service import TaskService
from config import load_settings, save_setting, setting_keys
from util.sync_status import sync_status_label

from .cli_io import structured_error, structured_response, task_payload


def cmd_list(args: argparse.Namespace, service: TaskService) -> int:
    tasks = service.list()
    return structured_response(
        "list",
        message=f"{len(tasks)} task(s)",
        payload={"tasks": [task_payload(t) for t in tasks], "pending": service.pending_count()},
    )


def cmd_add(args: argparse.Namespace, service: TaskService) -> int:
    task = service.add(args.title)
    return structured_response(
        "add",
        message="Task synced" if task.is_synced else "Task saved locally, sync pending",
        payload={"task": task_payload(task)},
    )


def cmd_update(args: argparse.Namespace, service: TaskService) -> int:
    current = service.get(args.task_id)
    if current is None:
        return structured_error("update", f"Task {args.task_id} not found")
    changes = {}
    if args.title is not None:
        changes["title"] = args.title
    if args.completed is not None:
        changes["completed"] = args.completed
    if not changes:
        return structured_error("update", "Nothing to change: pass --title, --done or --undone")
    task = service.update(current.replace(**changes))
    return structured_response(
        "update",
        message="Task synced" if task.is_synced else "Task saved locally, sync pending",
        payload={"task": task_payload(task)},
    )


def cmd_toggle(args: argparse.Namespace, service: TaskService) -> int:
    task = service.toggle(args.task_id)
    return structured_response("toggle", message="Task updated", payload={"task": task_payload(task)})


def cmd_delete(args: argparse.Namespace, service: TaskService) -> int:
    if not service.delete(args.task_id):
        return structured_error("delete", f"Task {args.task_id} not found")
    pending = service.pending_count()
    return structured_response(
        "delete",
        message="Task deleted",
        payload={"task_id": args.task_id, "pending": pending},
    )


def cmd_search(args: argparse.Namespace, service: TaskService) -> int:
    tasks = service.search(args.query)
    return structured_response(
        "search",
        message=f"{len(tasks)} match(es)",
        payload={"query": args.query, "tasks": [task_payload(t) for t in tasks]},
    )


def cmd_sync(args: argparse.Namespace, service: TaskService) -> int:
    report = service.sync()
    return structured_response(
        "sync",
        status="OK" if report.clean else "PENDING",
        message=report.summary(),
        payload=report.to_dict(),
    )


def cmd_status(args: argparse.Namespace, service: TaskService) -> int:
    online = service.connectivity.currently_online()
    pending = service.pending_count()
    return structured_response(
        "status",
        message=sync_status_label(pending, online, service.engine.pass_in_flight),
        payload={"online": online, "pending": pending, "has_pending_sync": pending > 0},
    )


def cmd_watch(args: argparse.Namespace, service: TaskService, poll: float = 1.0) -> int:
    service.start()
    service.scheduler.trigger("startup")
    try:
        while service.scheduler.active:
            time.sleep(poll)
    except KeyboardInterrupt:
        pass
    finally:
        service.close()
    report = service.scheduler.last_report
    return structured_response(
        "watch",
        message=f"{service.scheduler.passes} background pass(es)",
        payload={"last_report": report.to_dict() if report else None, "pending": service.pending_count()},
    )


def cmd_config(args: argparse.Namespace, service: Optional[TaskService] = None) -> int:
    if args.key is None:
        return structured_response("config", payload={"settings": asdict(load_settings())})
    if args.key not in setting_keys():
        return structured_error("config", f"Unknown setting: {args.key}", payload={"keys": setting_keys()})
    if args.unset:
        save_setting(args.key, "")
    elif args.value is None:
        return structured_response("config", payload={args.key: getattr(load_settings(), args.key)})
    else:
        save_setting(args.key, args.value)
    return structured_response(
        "config",
        message=f"{args.key} saved",
        payload={args.key: getattr(load_settings(), args.key)},
    )


__all__ = [
    "cmd_list",
    "cmd_add",
    "cmd_update",
    "cmd_toggle",
    "cmd_delete",
    "cmd_search",
    "cmd_sync",
    "cmd_status",
    "cmd_watch",
    "cmd_config",
]

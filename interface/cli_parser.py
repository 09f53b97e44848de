"""CLI parser construction for the tasks command."""

import argparse
from typing import Any


def build_parser(commands: Any) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tasks",
        description="tasks: offline-first task list synchronised with a remote task service",
    )
    parser.add_argument("--offline", action="store_true", help="work against the local store only")
    parser.add_argument("--db", dest="db_path", help="path to the local SQLite store")
    parser.add_argument("--verbose", "-v", action="store_true", help="log sync activity to stderr")

    sub = parser.add_subparsers(dest="command", help="Commands")

    lp = sub.add_parser("list", help="List tasks (merges with the server when online)")
    lp.set_defaults(func=commands.cmd_list)

    ap = sub.add_parser("add", help="Add a task")
    ap.add_argument("title")
    ap.set_defaults(func=commands.cmd_add)

    up = sub.add_parser("update", help="Edit a task")
    up.add_argument("task_id", type=int)
    up.add_argument("--title")
    done = up.add_mutually_exclusive_group()
    done.add_argument("--done", dest="completed", action="store_const", const=True)
    done.add_argument("--undone", dest="completed", action="store_const", const=False)
    up.set_defaults(func=commands.cmd_update, completed=None)

    tp = sub.add_parser("toggle", help="Flip a task's completion flag")
    tp.add_argument("task_id", type=int)
    tp.set_defaults(func=commands.cmd_toggle)

    dp = sub.add_parser("delete", help="Delete a task")
    dp.add_argument("task_id", type=int)
    dp.set_defaults(func=commands.cmd_delete)

    sp = sub.add_parser("search", help="Search task titles (local only)")
    sp.add_argument("query")
    sp.set_defaults(func=commands.cmd_search)

    syp = sub.add_parser("sync", help="Push pending local changes now")
    syp.set_defaults(func=commands.cmd_sync)

    stp = sub.add_parser("status", help="Show connectivity and backlog")
    stp.set_defaults(func=commands.cmd_status)

    wp = sub.add_parser("watch", help="Stay running and sync in the background until interrupted")
    wp.set_defaults(func=commands.cmd_watch, background=True)

    cp = sub.add_parser("config", help="Show or change persisted settings")
    cp.add_argument("key", nargs="?")
    cp.add_argument("value", nargs="?")
    cp.add_argument("--unset", action="store_true")
    cp.set_defaults(func=commands.cmd_config, needs_service=False)

    return parser

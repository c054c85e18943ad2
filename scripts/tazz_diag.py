"""tazz diagnostics CLI: JSON views of the session store and live processes."""

from __future__ import annotations

import argparse
import asyncio
import json

from tazz.cli import load_directory, load_store
from tazz.config import TazzSettings
from tazz.errors import TazzError


def _fail(exc: Exception) -> None:
    print(f"tazz unavailable: {exc}")
    raise SystemExit(1)


def cmd_records(args: argparse.Namespace) -> None:
    settings = TazzSettings()
    try:
        records = load_store(settings).get_all()
    except TazzError as exc:
        _fail(exc)
    if args.status:
        records = [record for record in records if record.status.value == args.status]
    print(json.dumps([record.model_dump(mode="json", by_alias=True) for record in records], indent=2))


def cmd_processes(args: argparse.Namespace) -> None:
    settings = TazzSettings()
    try:
        groups = asyncio.run(load_directory(settings).list_processes())
    except TazzError as exc:
        _fail(exc)
    payload = {
        instance: {
            "tasks": [entry.handle for entry in group.tasks],
            "main": [entry.handle for entry in group.main],
        }
        for instance, group in groups.items()
    }
    print(json.dumps(payload, indent=2))


def cmd_metrics(args: argparse.Namespace) -> None:
    settings = TazzSettings()
    try:
        views = asyncio.run(load_directory(settings).reconcile())
    except TazzError as exc:
        _fail(exc)

    status_counts: dict[str, int] = {}
    for view in views:
        status = view.record.status.value if view.record else "untracked"
        status_counts[status] = status_counts.get(status, 0) + 1

    metrics = {
        "instances_total": len(views),
        "status_counts": status_counts,
        "processes_total": sum(
            len(view.task_processes) + len(view.main_processes) for view in views
        ),
        "orphaned_instances": [view.instance for view in views if view.orphaned],
        "stale_instances": [view.instance for view in views if view.stale],
        "missing_tasks": {
            view.instance: view.missing_tasks for view in views if view.missing_tasks
        },
    }
    print(json.dumps(metrics, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="tazz diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_records = sub.add_parser("records", help="Dump stored session records")
    p_records.add_argument("--status", choices=["active", "stopped", "failed", "paused"])
    p_records.set_defaults(func=cmd_records)

    p_processes = sub.add_parser("processes", help="Live tazz processes grouped by instance")
    p_processes.set_defaults(func=cmd_processes)

    p_metrics = sub.add_parser("metrics", help="Counts plus orphaned/stale instances")
    p_metrics.set_defaults(func=cmd_metrics)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()

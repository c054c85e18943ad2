"""tazz command-line interface."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Any

from rich.prompt import Confirm

from . import __version__
from .config import TazzSettings, get_settings
from .directory import InstanceView, SessionDirectory
from .errors import ProcessSpawnError, ProvisioningError, TazzError
from .multiplexer import TmuxMultiplexer
from .naming import HANDLE_PREFIX
from .orchestrator import ProcessOrchestrator
from .shell import CommandRunner
from .storage import SessionStore
from .tasks import TaskListLoader
from .workspace import GIT_ENV_VARS, WorkspaceProvisioner

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for the CLI."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def _run_sync(coro):
    """Execute an async coroutine on a dedicated event loop."""

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def load_store(settings: TazzSettings) -> SessionStore:
    return SessionStore(settings.sessions_path)


def load_multiplexer(settings: TazzSettings) -> TmuxMultiplexer:
    runner = CommandRunner(
        "tmux",
        Path(settings.tmux_path) if settings.tmux_path else None,
        timeout=settings.command_timeout,
    )
    return TmuxMultiplexer(runner)


def load_provisioner(settings: TazzSettings) -> WorkspaceProvisioner:
    runner = CommandRunner(
        "git",
        Path(settings.git_path) if settings.git_path else None,
        timeout=settings.command_timeout,
        unset_env=GIT_ENV_VARS,
    )
    return WorkspaceProvisioner(runner, settings.project_root, branch_prefix=settings.branch_prefix)


def load_directory(settings: TazzSettings) -> SessionDirectory:
    return SessionDirectory(store=load_store(settings), multiplexer=load_multiplexer(settings))


def _fail(message: str) -> None:
    print(message)
    raise SystemExit(1)


def cmd_run(args: argparse.Namespace) -> None:
    settings = get_settings()
    instance = args.instance
    try:
        tasks = TaskListLoader(settings.task_list_path).load()
        orchestrator = ProcessOrchestrator(
            multiplexer=load_multiplexer(settings),
            provisioner=load_provisioner(settings),
            store=load_store(settings),
        )
        result = _run_sync(orchestrator.run(instance, tasks))
    except ProvisioningError as exc:
        _fail(f"Failed to start instance '{instance}' during {exc.stage}: {exc}")
    except ProcessSpawnError as exc:
        lines = [f"Failed to start instance '{instance}' during {exc.stage}: {exc}"]
        lines.extend(f"  {handle}: {error}" for handle, error in exc.failures.items())
        if exc.torn_down:
            lines.append(f"  Stopped again: {', '.join(exc.torn_down)}")
        if exc.leftover:
            lines.append(f"  Still running, remove manually: {', '.join(exc.leftover)}")
        lines.append(f"  Remove the worktree with: tazz clean {instance}")
        _fail("\n".join(lines))
    except TazzError as exc:
        _fail(f"Failed to start instance '{instance}': {exc}")

    if result.skipped:
        print(f"Instance '{instance}' is already running: {', '.join(result.already_running)}")
        print("Use 'tazz list' to see its processes or 'tazz clean' to start over.")
        return

    print(f"Started instance: {instance}")
    print(f"  Worktree: {result.worktree_path}")
    print(f"  Branch:   {result.branch}")
    for handle in result.handles:
        print(f"  Process:  {handle}")
    if tasks:
        for index, task in enumerate(tasks, start=1):
            print(f"    {index}. {task.name} ({task.slug})")
    if not result.record_saved:
        print("  Warning: session info could not be saved; processes are running.")
    first = result.handles[0].removeprefix(HANDLE_PREFIX)
    print(f"Join with: tazz join {first}")


def _view_payload(view: InstanceView) -> dict[str, Any]:
    def entry(item) -> dict[str, Any]:
        return {
            "handle": item.handle,
            "session_id": item.session_id,
            "task": item.task_slug,
            "created": item.created.isoformat() if item.created else None,
        }

    return {
        "instance": view.instance,
        "status": view.record.status.value if view.record else None,
        "worktree": view.record.worktree_path if view.record else None,
        "branch": view.record.branch if view.record else None,
        "tasks": [entry(item) for item in view.task_processes],
        "main": [entry(item) for item in view.main_processes],
        "missing_tasks": view.missing_tasks,
        "orphaned": view.orphaned,
        "stale": view.stale,
    }


def cmd_list(args: argparse.Namespace) -> None:
    settings = get_settings()
    try:
        views = _run_sync(load_directory(settings).reconcile())
    except TazzError as exc:
        _fail(f"Failed to list sessions: {exc}")

    if args.json:
        print(json.dumps([_view_payload(view) for view in views], indent=2))
        return

    if not any(view.live for view in views) and not args.verbose:
        print("No active processes found")
        print("Start new processes with: tazz run <instance-name>")
        return

    for view in views:
        if not view.live and not args.verbose:
            continue
        status = view.record.status.value if view.record else "untracked"
        print(f"Instance: {view.instance} [{status}]")
        if view.task_processes:
            print("  Task processes:")
            for index, item in enumerate(view.task_processes, start=1):
                print(f"    {index}. {item.session_id} ({item.task_slug})")
                if args.verbose and item.created:
                    print(f"       Created: {item.created.isoformat()}")
                print(f"       Join with: tazz join {item.session_id}")
        if view.main_processes:
            print("  Main sessions:")
            for index, item in enumerate(view.main_processes, start=1):
                print(f"    {index}. {item.session_id}")
                if args.verbose and item.created:
                    print(f"       Created: {item.created.isoformat()}")
                print(f"       Join with: tazz join {item.session_id}")
        if view.missing_tasks:
            print(f"  Not running: {', '.join(view.missing_tasks)}")
        if view.stale:
            print("  Marked active but no process is running")
        if args.verbose and view.record is not None:
            print(f"  Worktree: {view.record.worktree_path}")
            print(f"  Branch:   {view.record.branch}")


def cmd_join(args: argparse.Namespace) -> None:
    settings = get_settings()
    try:
        outcome = _run_sync(
            load_directory(settings).join(
                args.process_id, inside_multiplexer=bool(os.environ.get("TMUX"))
            )
        )
    except TazzError as exc:
        _fail(f"Failed to join: {exc}")

    if not outcome.attached:
        print("Already inside a tmux session")
        print(f"Switch with: {outcome.switch_command}")
        return
    if outcome.exit_code:
        raise SystemExit(outcome.exit_code)


def cmd_stop(args: argparse.Namespace) -> None:
    settings = get_settings()
    try:
        record = load_directory(settings).stop(args.session_id)
    except TazzError as exc:
        _fail(f"Failed to stop session: {exc}")
    print(f"Session {record.id} stopped")
    print(f"  Worktree kept at {record.worktree_path}")
    print(f"  Use 'tazz clean {record.id}' to remove it completely")


def _confirm_delete(process_id: str) -> bool:
    return Confirm.ask(
        f"Delete tazz process {process_id}? This kills the tmux session.",
        default=False,
    )


def cmd_delete(args: argparse.Namespace) -> None:
    settings = get_settings()
    confirm = None if args.force else _confirm_delete
    try:
        deleted = _run_sync(load_directory(settings).delete(args.process_id, confirm=confirm))
    except TazzError as exc:
        _fail(f"Failed to delete process: {exc}")
    if deleted:
        print(f"Tazz process {args.process_id} deleted")
    else:
        print("Deletion cancelled")


def cmd_clean(args: argparse.Namespace) -> None:
    settings = get_settings()
    if not args.force and not Confirm.ask(
        f"Remove all processes, the worktree and the record of '{args.instance}'?",
        default=False,
    ):
        print("Clean cancelled")
        return
    try:
        report = _run_sync(
            load_directory(settings).clean(args.instance, load_provisioner(settings))
        )
    except TazzError as exc:
        _fail(f"Failed to clean instance: {exc}")
    print(f"Cleaned instance {report.instance}")
    print(f"  Processes killed: {', '.join(report.killed) or 'none'}")
    print(f"  Worktree removed: {'yes' if report.worktree_removed else 'no'}")
    print(f"  Record removed:   {'yes' if report.record_removed else 'no'}")


def cmd_done(args: argparse.Namespace) -> None:
    settings = get_settings()
    if not args.force and not Confirm.ask(
        f"Mark '{args.session_id}' done and clean up its resources?",
        default=True,
    ):
        print("Operation cancelled")
        return
    task_list = None if args.no_todo_update else TaskListLoader(settings.task_list_path)
    try:
        report = _run_sync(
            load_directory(settings).done(
                args.session_id,
                load_provisioner(settings),
                task_list=task_list,
                keep_sessions=args.keep_sessions,
                keep_worktree=args.keep_worktree,
            )
        )
    except TazzError as exc:
        _fail(f"Failed to complete session: {exc}")
    print(f"Completed {args.session_id}")
    print(f"  Processes killed: {', '.join(report.killed) or 'none'}")
    print(f"  Worktree removed: {'yes' if report.worktree_removed else 'no'}")
    if report.completed_tasks:
        print(f"  Tasks ticked:     {', '.join(report.completed_tasks)}")
    if report.record_removed:
        print("  Record removed")
    elif report.record_stopped:
        print("  Record marked stopped")
    for error in report.errors:
        print(f"  Warning: {error}")


def cmd_note(args: argparse.Namespace) -> None:
    settings = get_settings()
    path = TaskListLoader(settings.task_list_path).ensure_template()
    print(f"Task list: {path}")
    editor = args.editor or os.environ.get("EDITOR")
    if not editor:
        return
    completed = subprocess.run([editor, str(path)], check=False)
    if completed.returncode != 0:
        _fail(f"Editor exited with code {completed.returncode}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tazz",
        description="Isolated, parallel development sessions on git worktrees and tmux",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="Override TAZZ_LOG_LEVEL")
    sub = parser.add_subparsers(dest="cmd")

    p_run = sub.add_parser("run", help="Create a worktree and one process per task")
    p_run.add_argument("instance", help="Instance name (e.g. feature-auth, JIRA-123)")
    p_run.set_defaults(func=cmd_run)

    p_list = sub.add_parser("list", aliases=["ls"], help="List tazz processes by instance")
    p_list.add_argument("-v", "--verbose", action="store_true", help="Show stored details too")
    p_list.add_argument("--json", action="store_true", help="Output JSON")
    p_list.set_defaults(func=cmd_list)

    p_join = sub.add_parser("join", aliases=["attach"], help="Attach to a tazz process")
    p_join.add_argument("process_id", help="Process id (e.g. instance_task-1)")
    p_join.set_defaults(func=cmd_join)

    p_stop = sub.add_parser("stop", help="Mark a session stopped (keeps processes and worktree)")
    p_stop.add_argument("session_id", help="Instance id or process id")
    p_stop.set_defaults(func=cmd_stop)

    p_delete = sub.add_parser("delete", aliases=["rm"], help="Kill a tazz process")
    p_delete.add_argument("process_id", help="Process id (e.g. instance_task-1)")
    p_delete.add_argument("-f", "--force", action="store_true", help="Skip confirmation prompt")
    p_delete.set_defaults(func=cmd_delete)

    p_clean = sub.add_parser("clean", help="Remove an instance's processes, worktree and record")
    p_clean.add_argument("instance")
    p_clean.add_argument("-f", "--force", action="store_true", help="Skip confirmation prompt")
    p_clean.set_defaults(func=cmd_clean)

    p_done = sub.add_parser("done", help="Finish a session: tick its tasks and clean up")
    p_done.add_argument("session_id", help="Instance id, or process id for a single task")
    p_done.add_argument("--keep-worktree", action="store_true", help="Keep the git worktree")
    p_done.add_argument("--keep-sessions", action="store_true", help="Keep tmux sessions running")
    p_done.add_argument("--no-todo-update", action="store_true", help="Leave the task list untouched")
    p_done.add_argument("-f", "--force", action="store_true", help="Skip confirmation prompt")
    p_done.set_defaults(func=cmd_done)

    p_note = sub.add_parser("note", help="Create the task list and open it in an editor")
    p_note.add_argument("-e", "--editor", help="Editor command (defaults to $EDITOR)")
    p_note.set_defaults(func=cmd_note)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    settings = get_settings()
    configure_logging((args.log_level or settings.log_level).upper())
    args.func(args)


if __name__ == "__main__":
    main()

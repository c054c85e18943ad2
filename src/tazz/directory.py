"""Listing, attaching, stopping and deleting sessions.

Persisted records describe instances; live tmux sessions describe tasks.
``reconcile`` merges the two views so neither is trusted alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from .errors import NotFoundError, StorageError, TazzError
from .multiplexer import Multiplexer
from .naming import parse_process_handle, process_handle, split_session_id
from .storage import SessionRecord, SessionStatus, SessionStore
from .tasks import TaskListLoader
from .workspace import WorkspaceProvisioner

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProcessEntry:
    handle: str
    session_id: str
    instance: str
    task_slug: str | None
    created: datetime | None


@dataclass(slots=True)
class InstanceGroup:
    instance: str
    tasks: list[ProcessEntry] = field(default_factory=list)
    main: list[ProcessEntry] = field(default_factory=list)


@dataclass(slots=True)
class InstanceView:
    """Merged view of one instance across the store and the live process list."""

    instance: str
    record: SessionRecord | None
    task_processes: list[ProcessEntry] = field(default_factory=list)
    main_processes: list[ProcessEntry] = field(default_factory=list)
    missing_tasks: list[str] = field(default_factory=list)

    @property
    def live(self) -> bool:
        return bool(self.task_processes or self.main_processes)

    @property
    def orphaned(self) -> bool:
        return self.live and self.record is None

    @property
    def stale(self) -> bool:
        return (
            self.record is not None
            and self.record.status == SessionStatus.ACTIVE
            and not self.live
        )


@dataclass(slots=True)
class JoinOutcome:
    handle: str
    attached: bool
    exit_code: int | None = None
    switch_command: str | None = None


@dataclass(slots=True)
class CleanReport:
    instance: str
    killed: list[str] = field(default_factory=list)
    worktree_removed: bool = False
    record_removed: bool = False


@dataclass(slots=True)
class DoneReport:
    instance: str
    killed: list[str] = field(default_factory=list)
    worktree_removed: bool = False
    completed_tasks: list[str] = field(default_factory=list)
    record_removed: bool = False
    record_stopped: bool = False
    errors: list[str] = field(default_factory=list)


class SessionDirectory:
    """Operations over the session store and the live multiplexer sessions."""

    def __init__(self, *, store: SessionStore, multiplexer: Multiplexer) -> None:
        self._store = store
        self._multiplexer = multiplexer

    async def list_processes(self) -> dict[str, InstanceGroup]:
        """Group live tazz processes by instance; foreign sessions are ignored."""

        groups: dict[str, InstanceGroup] = {}
        for process in await self._multiplexer.list():
            parsed = parse_process_handle(process.name)
            if parsed is None:
                continue
            entry = ProcessEntry(
                handle=parsed.handle,
                session_id=parsed.session_id,
                instance=parsed.instance,
                task_slug=parsed.task_slug,
                created=process.created,
            )
            group = groups.setdefault(parsed.instance, InstanceGroup(instance=parsed.instance))
            if entry.task_slug is None:
                group.main.append(entry)
            else:
                group.tasks.append(entry)
        return groups

    async def reconcile(self) -> list[InstanceView]:
        """Merge live processes with stored records.

        An unreadable store degrades to the live view alone.
        """

        groups = await self.list_processes()
        try:
            records = {record.id: record for record in self._store.get_all()}
        except StorageError as exc:
            logger.warning(
                "Session store unreadable; listing live processes only",
                extra={"error": str(exc)},
            )
            records = {}

        views: list[InstanceView] = []
        for instance in sorted(set(groups) | set(records)):
            group = groups.get(instance, InstanceGroup(instance=instance))
            record = records.get(instance)
            missing: list[str] = []
            if record is not None and record.tasks:
                live_slugs = {entry.task_slug for entry in group.tasks}
                missing = [task.slug for task in record.tasks if task.slug not in live_slugs]
            views.append(
                InstanceView(
                    instance=instance,
                    record=record,
                    task_processes=list(group.tasks),
                    main_processes=list(group.main),
                    missing_tasks=missing,
                )
            )
        return views

    async def _require_process(self, process_id: str) -> str:
        handle = process_handle(process_id)
        if not await self._multiplexer.exists(handle):
            raise NotFoundError(f"Tazz process not found: {process_id}")
        return handle

    async def join(self, process_id: str, *, inside_multiplexer: bool) -> JoinOutcome:
        """Attach to a process, or report how to switch when already inside tmux."""

        handle = await self._require_process(process_id)
        if inside_multiplexer:
            return JoinOutcome(
                handle=handle,
                attached=False,
                switch_command=f"tmux switch-client -t {handle}",
            )
        logger.info("Attaching to process", extra={"handle": handle})
        exit_code = await self._multiplexer.attach(handle)
        return JoinOutcome(handle=handle, attached=True, exit_code=exit_code)

    def stop(self, identifier: str) -> SessionRecord:
        """Mark the instance stopped; live processes and the worktree are kept.

        ``identifier`` may be an instance id or a process id of one of its tasks.
        """

        instance, _ = split_session_id(identifier)
        return self._store.update_status(instance, SessionStatus.STOPPED)

    async def delete(
        self,
        process_id: str,
        *,
        confirm: Callable[[str], bool] | None = None,
    ) -> bool:
        """Kill a process; returns False when ``confirm`` declines."""

        handle = await self._require_process(process_id)
        if confirm is not None and not confirm(process_id):
            logger.info("Deletion cancelled", extra={"handle": handle})
            return False
        await self._multiplexer.kill(handle)
        return True

    async def clean(self, instance: str, provisioner: WorkspaceProvisioner) -> CleanReport:
        """Remove every trace of an instance: processes, worktree and record."""

        report = CleanReport(instance=instance)
        group = (await self.list_processes()).get(instance)
        if group is not None:
            for entry in [*group.main, *group.tasks]:
                try:
                    await self._multiplexer.kill(entry.handle)
                except TazzError as exc:
                    logger.warning(
                        "Could not kill process during clean",
                        extra={"handle": entry.handle, "error": str(exc)},
                    )
                else:
                    report.killed.append(entry.handle)

        report.worktree_removed = await provisioner.remove(instance)
        if self._store.get(instance) is not None:
            self._store.remove(instance)
            report.record_removed = True
        return report

    async def done(
        self,
        identifier: str,
        provisioner: WorkspaceProvisioner,
        *,
        task_list: TaskListLoader | None = None,
        keep_sessions: bool = False,
        keep_worktree: bool = False,
    ) -> DoneReport:
        """Finish an instance, or one task of it, and tick its items in the task list.

        For a whole instance the processes are killed, the worktree is removed
        and the record dropped; with ``keep_worktree`` the record is marked
        stopped instead. For a single task (``instance_slug``) only that process
        is killed, since the worktree and record belong to the instance.
        Teardown failures are collected in ``DoneReport.errors``.
        """

        instance, task_slug = split_session_id(identifier)
        group = (await self.list_processes()).get(instance)
        record = self._store.get(instance)
        if group is None and record is None:
            raise NotFoundError(f"Tazz session not found: {identifier}")

        report = DoneReport(instance=instance)
        entries = [] if group is None else [*group.main, *group.tasks]
        if task_slug is not None:
            entries = [entry for entry in entries if entry.task_slug == task_slug]

        if not keep_sessions:
            for entry in entries:
                try:
                    await self._multiplexer.kill(entry.handle)
                except TazzError as exc:
                    report.errors.append(f"Failed to kill {entry.handle}: {exc}")
                else:
                    report.killed.append(entry.handle)

        worktree_kept = keep_worktree or task_slug is not None
        if not worktree_kept:
            try:
                report.worktree_removed = await provisioner.remove(instance)
            except TazzError as exc:
                report.errors.append(str(exc))
                worktree_kept = True

        if task_list is not None:
            if task_slug is not None:
                slugs = [task_slug]
            elif record is not None:
                slugs = [task.slug for task in record.tasks]
            else:
                slugs = [entry.task_slug for entry in group.tasks]
            try:
                report.completed_tasks = task_list.mark_done(slugs)
            except (OSError, UnicodeDecodeError) as exc:
                report.errors.append(f"Failed to update task list: {exc}")

        if record is not None and task_slug is None:
            if worktree_kept:
                self._store.update_status(instance, SessionStatus.STOPPED)
                report.record_stopped = True
            else:
                self._store.remove(instance)
                report.record_removed = True

        logger.info(
            "Session done",
            extra={"instance": instance, "killed": report.killed, "tasks": report.completed_tasks},
        )
        return report


__all__ = [
    "CleanReport",
    "DoneReport",
    "InstanceGroup",
    "InstanceView",
    "JoinOutcome",
    "ProcessEntry",
    "SessionDirectory",
]

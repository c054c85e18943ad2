"""Start one terminal process per task, all pinned to the instance worktree."""

from __future__ import annotations

import asyncio
import logging
import shlex
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from .errors import InvalidNameError, ProcessSpawnError, TazzError
from .multiplexer import Multiplexer
from .naming import process_handle, session_id, validate_instance_name
from .storage import SessionRecord, SessionStatus, SessionStore
from .tasks import TaskDescriptor
from .workspace import WorkspaceProvisioner

logger = logging.getLogger(__name__)

MAIN_SESSION_CONTEXT = "Main development session"


@dataclass(slots=True)
class RunResult:
    """Outcome of ``ProcessOrchestrator.run``."""

    instance: str
    handles: list[str]
    worktree_path: Path | None = None
    branch: str | None = None
    record: SessionRecord | None = None
    record_saved: bool = False
    already_running: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return bool(self.already_running)


def build_banner(session: str, worktree_path: Path, task: TaskDescriptor | None) -> list[str]:
    """Shell lines typed into a fresh session to describe what it is for."""

    lines = [f"Tazz process: {session}", f"Working directory: {worktree_path}"]
    if task is not None:
        lines.append(f"Task: {task.name}")
        lines.append(f"Context: {task.description}")
    else:
        lines.append(f"Context: {MAIN_SESSION_CONTEXT}")
    lines.extend(
        [
            "",
            f"Use: tazz join {session} to attach",
            "Use: tazz list to see all processes",
            "",
        ]
    )
    return ["clear", *(f"echo {shlex.quote(line)}" for line in lines)]


class ProcessOrchestrator:
    """Provision the worktree, fan out task processes, record the instance."""

    def __init__(
        self,
        *,
        multiplexer: Multiplexer,
        provisioner: WorkspaceProvisioner,
        store: SessionStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._multiplexer = multiplexer
        self._provisioner = provisioner
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def plan(self, instance: str, tasks: Sequence[TaskDescriptor]) -> list[tuple[str, TaskDescriptor | None]]:
        """Return ``(session_id, task)`` pairs; an empty task list means one main session."""

        if not tasks:
            return [(session_id(instance), None)]
        return [(session_id(instance, task.slug), task) for task in tasks]

    async def run(self, instance: str, tasks: Sequence[TaskDescriptor] = ()) -> RunResult:
        validate_instance_name(instance)
        plan = self.plan(instance, tasks)
        counts = Counter(session for session, _ in plan)
        duplicates = sorted(session for session, count in counts.items() if count > 1)
        if duplicates:
            raise InvalidNameError(
                f"Duplicate task slugs for '{instance}': {', '.join(duplicates)}"
            )
        handles = [process_handle(session) for session, _ in plan]

        live = [handle for handle in handles if await self._multiplexer.exists(handle)]
        if live:
            logger.info(
                "Instance already running; nothing started",
                extra={"instance": instance, "handles": live},
            )
            return RunResult(instance=instance, handles=handles, already_running=live)

        workspace = await self._provisioner.provision(instance)
        await self._spawn_all(instance, workspace.path, plan)

        now = self._clock()
        record = SessionRecord(
            id=instance,
            branch=workspace.branch,
            worktree_path=str(workspace.path),
            tasks=list(tasks),
            status=SessionStatus.ACTIVE,
            created_at=now,
            last_active=now,
        )
        result = RunResult(
            instance=instance,
            handles=handles,
            worktree_path=workspace.path,
            branch=workspace.branch,
            record=record,
        )
        try:
            self._store.save(record)
            result.record_saved = True
        except TazzError as exc:
            logger.warning(
                "Could not save session info",
                extra={"instance": instance, "error": str(exc)},
            )
        logger.info(
            "Instance started",
            extra={"instance": instance, "handles": handles, "worktree": str(workspace.path)},
        )
        return result

    async def _spawn_all(
        self,
        instance: str,
        worktree_path: Path,
        plan: Sequence[tuple[str, TaskDescriptor | None]],
    ) -> None:
        created: list[str] = []

        async def spawn_one(session: str, task: TaskDescriptor | None) -> None:
            handle = process_handle(session)
            await self._multiplexer.spawn(handle, worktree_path)
            created.append(handle)
            for line in build_banner(session, worktree_path, task):
                await self._multiplexer.send_keys(handle, line)

        outcomes = await asyncio.gather(
            *(spawn_one(session, task) for session, task in plan),
            return_exceptions=True,
        )
        failures: dict[str, str] = {}
        unexpected: BaseException | None = None
        for (session, _), outcome in zip(plan, outcomes):
            if isinstance(outcome, TazzError):
                failures[process_handle(session)] = str(outcome)
            elif isinstance(outcome, BaseException) and unexpected is None:
                unexpected = outcome
        if not failures and unexpected is None:
            return

        torn_down, leftover = await self._teardown(created)
        if unexpected is not None:
            raise unexpected
        raise ProcessSpawnError(
            f"Failed to start {len(failures)} of {len(plan)} processes for '{instance}'; "
            f"worktree left at {worktree_path}",
            instance=instance,
            failures=failures,
            torn_down=torn_down,
            leftover=leftover,
        )

    async def _teardown(self, handles: Sequence[str]) -> tuple[list[str], list[str]]:
        torn_down: list[str] = []
        leftover: list[str] = []
        for handle in handles:
            try:
                await self._multiplexer.kill(handle)
            except TazzError as exc:
                logger.warning(
                    "Could not tear down process after failed run",
                    extra={"handle": handle, "error": str(exc)},
                )
                leftover.append(handle)
            else:
                torn_down.append(handle)
        return torn_down, leftover


__all__ = ["MAIN_SESSION_CONTEXT", "ProcessOrchestrator", "RunResult", "build_banner"]

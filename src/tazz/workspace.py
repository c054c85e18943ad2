"""Provision the isolated git worktree shared by all tasks of an instance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import ProvisioningError, TazzError
from .naming import DEFAULT_BRANCH_PREFIX, branch_name, validate_instance_name, worktree_dir
from .shell import CommandRunner

logger = logging.getLogger(__name__)

# Exported inside git hooks; they override which repository git operates on.
GIT_ENV_VARS = ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE")


@dataclass(slots=True)
class Workspace:
    instance: str
    path: Path
    branch: str


class WorkspaceProvisioner:
    """Creates and removes per-instance worktrees next to the project root."""

    def __init__(
        self,
        git: CommandRunner,
        project_root: Path,
        *,
        branch_prefix: str = DEFAULT_BRANCH_PREFIX,
    ) -> None:
        self._git = git
        self._project_root = Path(project_root).resolve()
        self._branch_prefix = branch_prefix

    @property
    def project_root(self) -> Path:
        return self._project_root

    def describe(self, instance: str) -> Workspace:
        return Workspace(
            instance=instance,
            path=worktree_dir(instance, self._project_root),
            branch=branch_name(instance, self._branch_prefix),
        )

    async def provision(self, instance: str) -> Workspace:
        """Create the worktree on a new branch; fails if either already exists."""

        validate_instance_name(instance)
        workspace = self.describe(instance)
        logger.info(
            "Creating git worktree",
            extra={"instance": instance, "path": str(workspace.path), "branch": workspace.branch},
        )
        try:
            result = await self._git.run(
                "worktree", "add", "-b", workspace.branch, str(workspace.path),
                cwd=self._project_root,
            )
        except TazzError as exc:
            raise ProvisioningError(
                f"git worktree add failed for '{instance}': {exc}", instance=instance
            ) from exc
        if not result.ok:
            raise ProvisioningError(
                f"git worktree add failed for '{instance}': {result.error_text}",
                instance=instance,
                stderr=result.stderr,
            )
        return workspace

    async def remove(self, instance: str) -> bool:
        """Remove the instance worktree; returns False when there was nothing to remove."""

        workspace = self.describe(instance)
        if not workspace.path.exists():
            await self._git.run("worktree", "prune", cwd=self._project_root)
            logger.info("Worktree directory already gone", extra={"path": str(workspace.path)})
            return False

        result = await self._git.run(
            "worktree", "remove", "--force", str(workspace.path), cwd=self._project_root
        )
        if not result.ok:
            raise ProvisioningError(
                f"git worktree remove failed for '{instance}': {result.error_text}",
                instance=instance,
                stderr=result.stderr,
            )
        logger.info("Git worktree removed", extra={"instance": instance, "path": str(workspace.path)})
        return True


__all__ = ["GIT_ENV_VARS", "Workspace", "WorkspaceProvisioner"]

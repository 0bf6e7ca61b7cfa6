"""
specroot Workspace Lifecycle

Creates, removes, lists and prunes linked git worktrees so several
feature branches can be checked out side by side. New worktrees land
next to the main checkout in ../workspaces/<branch> by default; specs/
and history/ stay in the main checkout and are reached through the
locator's canonical root.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Mapping
from pathlib import Path

from loguru import logger

from specroot.config_loader import SpecRootConfig
from specroot.errors import (
    InvalidBranchName,
    PathAlreadyExists,
    UserDeclinedRemoval,
    WorkspacePathRequired,
)
from specroot.locator import WorkspaceLocator
from specroot.vcs import WorkspaceEntry

# Receives (worktree path, porcelain status) and returns True to proceed
Confirmer = Callable[[Path, str], bool]

_FORBIDDEN_CHARS_RE = re.compile(r"[\[\]^~:?*\\]")
_WHITESPACE_RE = re.compile(r"\s")


def validate_branch_name(name: str, max_length: int = 200) -> None:
    """Reject names git-check-ref-format would refuse. Raises InvalidBranchName."""
    if _WHITESPACE_RE.search(name):
        suggestion = _WHITESPACE_RE.sub("-", name)
        raise InvalidBranchName(
            name, "whitespace",
            f"Branch name cannot contain spaces\nUse hyphens instead: {suggestion}",
        )

    if len(name) > max_length:
        raise InvalidBranchName(
            name, "length",
            f"Branch name too long (max {max_length} characters)\nCurrent length: {len(name)}",
        )

    if _FORBIDDEN_CHARS_RE.search(name):
        raise InvalidBranchName(
            name, "characters",
            "Branch name contains invalid characters\nAvoid: [ ] ^ ~ : ? * \\",
        )

    if ".." in name:
        raise InvalidBranchName(name, "dot-dot", "Branch name cannot contain '..'")

    if name.startswith(".") or name.endswith("."):
        raise InvalidBranchName(name, "edge-dot", "Branch name cannot start or end with '.'")

    if name.startswith("/") or name.endswith("/") or "//" in name:
        raise InvalidBranchName(
            name, "slash",
            "Branch name has invalid slash usage (leading, trailing or repeated '/')",
        )


def is_workspace_mode_enabled(
    environ: Mapping[str, str] | None = None, config: SpecRootConfig | None = None
) -> bool:
    """Whether feature creation should default to a new worktree."""
    environ = os.environ if environ is None else environ
    config = config or SpecRootConfig()
    return environ.get(config.env.workspace_mode, "false") == "true"


class WorkspaceManager:
    """
    Manages linked worktrees for one repository.

    Removal of a worktree with uncommitted changes needs an explicit yes
    from the injected confirmer. Without one, such removals are declined.
    """

    def __init__(
        self,
        locator: WorkspaceLocator,
        config: SpecRootConfig | None = None,
        confirm: Confirmer | None = None,
    ):
        self.locator = locator
        self.config = config or SpecRootConfig()
        self.confirm = confirm

    @property
    def backend(self):
        return self.locator.backend

    def _absolute(self, path: Path) -> Path:
        """Relative paths are taken from the locator's directory."""
        return Path(os.path.normpath(self.locator.current_dir / path))

    def create(self, branch_name: str, target_path: Path | None = None) -> Path:
        """
        Check out branch_name in a new linked worktree and return its path.

        An existing branch is attached as-is; otherwise branch and
        worktree are created by a single `git worktree add -b`.
        """
        root = self.locator.require_canonical_root()

        if not branch_name:
            raise InvalidBranchName(
                branch_name, "empty",
                "Branch name required\n\nExample:\n  specroot workspace create 001-user-auth",
            )
        validate_branch_name(branch_name, self.config.branches.max_length)

        if target_path is None:
            target_path = root.parent / self.config.paths.workspaces_dir / branch_name
        target_path = self._absolute(target_path)

        if target_path.exists():
            raise PathAlreadyExists(target_path)
        target_path.parent.mkdir(parents=True, exist_ok=True)

        if self.backend.branch_exists(root, branch_name):
            logger.info(f"[WORKSPACE] Creating worktree for existing branch '{branch_name}'...")
            self.backend.add_workspace(root, target_path, branch_name, new_branch=False)
        else:
            logger.info(f"[WORKSPACE] Creating new branch '{branch_name}' and worktree...")
            self.backend.add_workspace(root, target_path, branch_name, new_branch=True)

        logger.info(f"[WORKSPACE] Worktree ready: {target_path}")
        return target_path

    def remove(self, workspace_path: Path | str | None) -> None:
        """Remove a linked worktree, asking first if it has local changes."""
        root = self.locator.require_canonical_root()

        if not workspace_path:
            raise WorkspacePathRequired()
        path = self._absolute(Path(workspace_path))

        force = False
        if path.is_dir():
            changes = self.backend.local_changes(path)
            if changes.strip():
                logger.warning(f"[WORKSPACE] Worktree has uncommitted changes:\n{changes.rstrip()}")
                if self.confirm is None or not self.confirm(path, changes):
                    raise UserDeclinedRemoval(path)
                # git refuses to drop a dirty worktree without --force
                force = True

        self.backend.remove_workspace(root, path, force=force)
        logger.info(f"[WORKSPACE] Removed worktree: {path}")

    def list_workspaces(self) -> list[WorkspaceEntry]:
        root = self.locator.require_canonical_root()
        return self.backend.list_workspaces(root)

    def prune(self) -> None:
        """Drop git's records of worktrees whose directories are gone."""
        root = self.locator.require_canonical_root()
        self.backend.prune_workspaces(root)
        logger.info("[WORKSPACE] Pruned stale worktree references")

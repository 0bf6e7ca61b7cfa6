"""
Version control capability layer.

Everything specroot needs to know about git goes through a
VersionControlBackend. GitBackend shells out to the `git` CLI;
tests swap in an in-memory fake with the same interface.

Queries (toplevel, current branch, ...) return None when there is no
repository. Commands (worktree add/remove/list/prune, status) raise
VersionControlError with git's exit status and stderr.
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from specroot.errors import VersionControlError


class WorkspaceEntry(BaseModel):
    """One worktree as reported by `git worktree list --porcelain`."""
    path: Path
    head: str = ""
    branch: str | None = None  # None when detached
    is_primary: bool = False
    locked: bool = False
    prunable: bool = False


class VersionControlBackend(ABC):
    """Capabilities the locator and lifecycle manager rely on."""

    @abstractmethod
    def toplevel(self, cwd: Path) -> Path | None:
        """Top-level directory of the worktree containing cwd."""

    @abstractmethod
    def is_linked_workspace(self, cwd: Path) -> bool:
        """True if cwd is inside a linked (non-primary) worktree."""

    @abstractmethod
    def shared_root(self, cwd: Path) -> Path | None:
        """Directory holding the shared metadata dir (the main checkout)."""

    @abstractmethod
    def current_branch(self, cwd: Path) -> str | None:
        """Abbreviated HEAD name; the detached marker when detached."""

    @abstractmethod
    def branch_exists(self, cwd: Path, name: str) -> bool: ...

    @abstractmethod
    def add_workspace(self, cwd: Path, path: Path, branch: str, new_branch: bool) -> None: ...

    @abstractmethod
    def remove_workspace(self, cwd: Path, path: Path, force: bool = False) -> None: ...

    @abstractmethod
    def list_workspaces(self, cwd: Path) -> list[WorkspaceEntry]: ...

    @abstractmethod
    def prune_workspaces(self, cwd: Path) -> None: ...

    @abstractmethod
    def local_changes(self, cwd: Path) -> str:
        """Porcelain status lines; empty when the worktree is clean."""


class GitBackend(VersionControlBackend):
    """Production backend: one `git` subprocess per call."""

    def __init__(self, executable: str = "git"):
        self.executable = executable

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def toplevel(self, cwd: Path) -> Path | None:
        out = self._query(cwd, "rev-parse", "--show-toplevel")
        return Path(out) if out else None

    def is_linked_workspace(self, cwd: Path) -> bool:
        git_dir = self._query(cwd, "rev-parse", "--git-dir")
        common_dir = self._query(cwd, "rev-parse", "--git-common-dir")
        if not git_dir or not common_dir:
            return False
        # A linked worktree keeps its own metadata under <common>/worktrees/<name>
        return (cwd / git_dir).resolve() != (cwd / common_dir).resolve()

    def shared_root(self, cwd: Path) -> Path | None:
        common_dir = self._query(cwd, "rev-parse", "--git-common-dir")
        if not common_dir:
            return None
        return (cwd / common_dir).resolve().parent

    def current_branch(self, cwd: Path) -> str | None:
        return self._query(cwd, "rev-parse", "--abbrev-ref", "HEAD")

    def branch_exists(self, cwd: Path, name: str) -> bool:
        return self._query(cwd, "rev-parse", "--verify", "--quiet", f"refs/heads/{name}") is not None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_workspace(self, cwd: Path, path: Path, branch: str, new_branch: bool) -> None:
        if new_branch:
            self._git(cwd, "worktree", "add", "-b", branch, str(path))
        else:
            self._git(cwd, "worktree", "add", str(path), branch)

    def remove_workspace(self, cwd: Path, path: Path, force: bool = False) -> None:
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        self._git(cwd, *args, str(path))

    def list_workspaces(self, cwd: Path) -> list[WorkspaceEntry]:
        return parse_worktree_porcelain(self._git(cwd, "worktree", "list", "--porcelain"))

    def prune_workspaces(self, cwd: Path) -> None:
        self._git(cwd, "worktree", "prune")

    def local_changes(self, cwd: Path) -> str:
        return self._git(cwd, "status", "--porcelain")

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _query(self, cwd: Path, *args: str) -> str | None:
        """Run a read-only git command; None if it fails or git is missing."""
        try:
            result = subprocess.run(
                [self.executable, *args], cwd=cwd, capture_output=True, text=True
            )
        except (FileNotFoundError, NotADirectoryError):
            return None
        if result.returncode != 0:
            return None
        out = result.stdout.strip()
        return out or None

    def _git(self, cwd: Path, *args: str) -> str:
        cmd = [self.executable, *args]
        logger.debug(f"[GIT] {' '.join(cmd)} (cwd={cwd})")
        result = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True)
        if result.returncode != 0:
            raise VersionControlError(cmd, result.returncode, result.stderr)
        return result.stdout


def parse_worktree_porcelain(text: str) -> list[WorkspaceEntry]:
    """Parse `git worktree list --porcelain`. The first record is the primary."""
    entries: list[WorkspaceEntry] = []
    current: dict | None = None

    for line in text.splitlines():
        if line.startswith("worktree "):
            if current is not None:
                entries.append(WorkspaceEntry(**current))
            current = {"path": Path(line[len("worktree "):])}
        elif current is None:
            continue
        elif line.startswith("HEAD "):
            current["head"] = line[len("HEAD "):]
        elif line.startswith("branch "):
            current["branch"] = line[len("branch "):].removeprefix("refs/heads/")
        elif line.startswith("locked"):
            current["locked"] = True
        elif line.startswith("prunable"):
            current["prunable"] = True
        elif not line.strip():
            entries.append(WorkspaceEntry(**current))
            current = None

    if current is not None:
        entries.append(WorkspaceEntry(**current))

    if entries:
        entries[0].is_primary = True
    return entries

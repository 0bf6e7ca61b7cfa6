"""
Workspace Locator

Answers two questions from any directory inside any worktree:
  - Am I in a linked worktree or the main checkout?
  - Where is the canonical root that owns specs/ and history/?

The canonical root is the same path for every worktree of a repository.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from specroot.errors import NotAVersionControlledDirectory
from specroot.vcs import GitBackend, VersionControlBackend

# Without git, the project root is this many levels above the install dir
_FALLBACK_DEPTH = 3


def _vendored_project_root() -> Path | None:
    """The project holding this package when it was copied under .specify/, else None."""
    for parent in Path(__file__).resolve().parents:
        if parent.name == ".specify":
            return parent.parent
    return None


class WorkspaceLocator:
    """
    Resolves workspace roots for an explicit current directory.

    Nothing here reads the process cwd; callers pass the directory in,
    so two locators for two worktrees can coexist in one process.
    """

    def __init__(
        self,
        current_dir: Path,
        backend: VersionControlBackend | None = None,
        install_dir: Path | None = None,
    ):
        self.current_dir = current_dir.resolve()
        self.backend = backend or GitBackend()
        self.install_dir = install_dir.resolve() if install_dir else None

    def has_version_control(self) -> bool:
        return self.backend.toplevel(self.current_dir) is not None

    def is_linked_workspace(self) -> bool:
        return self.backend.is_linked_workspace(self.current_dir)

    def canonical_root(self) -> Path:
        """
        Root where shared project state lives.

        Main checkout  -> its top-level directory.
        Linked worktree -> the directory holding the shared .git, never
                           the worktree itself.
        No git         -> the project the tool is installed in (three levels
                          above install_dir, or the parent of a .specify/
                          tree holding this package) when current_dir lies
                          inside it, else current_dir.
        """
        toplevel = self.backend.toplevel(self.current_dir)
        if toplevel is None:
            root = self._fallback_root()
            logger.debug(f"[LOCATOR] No git at {self.current_dir}; using fallback root {root}")
            return root

        if self.backend.is_linked_workspace(self.current_dir):
            shared = self.backend.shared_root(self.current_dir)
            if shared is not None:
                logger.debug(f"[LOCATOR] Linked worktree {toplevel} -> canonical root {shared}")
                return shared

        return toplevel

    def _fallback_root(self) -> Path:
        if self.install_dir is not None:
            parents = self.install_dir.parents
            candidate = parents[_FALLBACK_DEPTH - 1] if len(parents) >= _FALLBACK_DEPTH else None
        else:
            candidate = _vendored_project_root()

        if candidate is not None and candidate != Path(candidate.anchor):
            if candidate == self.current_dir or candidate in self.current_dir.parents:
                return candidate
        return self.current_dir

    def require_canonical_root(self) -> Path:
        if not self.has_version_control():
            raise NotAVersionControlledDirectory(self.current_dir)
        return self.canonical_root()

    def active_workspace_root(self) -> Path:
        """Top-level of whichever worktree we are in, or current_dir without git."""
        return self.backend.toplevel(self.current_dir) or self.current_dir

"""
Error taxonomy for specroot.

Every failure the core can report is a SpecRootError. Messages are
written for the person at the terminal: they say what went wrong and
what to do next.
"""

from __future__ import annotations

from pathlib import Path


class SpecRootError(Exception):
    pass


class NotAVersionControlledDirectory(SpecRootError):
    """Raised when an operation needs git and none was found."""

    def __init__(self, path: Path | None = None):
        self.path = path
        where = f" at {path}" if path else ""
        super().__init__(
            f"Not in a git repository{where}\n\n"
            "Worktrees require a git repository. Initialize one with:\n"
            "  git init"
        )


class InvalidBranchName(SpecRootError):
    def __init__(self, name: str, rule: str, message: str):
        self.name = name
        self.rule = rule
        super().__init__(message)


class PathAlreadyExists(SpecRootError):
    def __init__(self, path: Path):
        self.path = path
        hint = "Choose a different path"
        if path.is_dir():
            hint = f"Remove the directory first:\n  rm -rf '{path}'\nOr choose a different path"
        super().__init__(f"Path already exists: {path}\n{hint}")


class DetachedState(SpecRootError):
    def __init__(self):
        super().__init__(
            "Currently in detached HEAD state\n\n"
            "Please checkout or create a feature branch first:\n"
            "  git checkout -b 001-feature-name\n"
            "  or\n"
            "  git checkout main  # return to main branch"
        )


class NotAFeatureBranch(SpecRootError):
    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(
            f"Not on a feature branch. Current branch: {branch}\n"
            "Feature branches should be named like: 001-feature-name"
        )


class AmbiguousFeaturePrefix(SpecRootError):
    def __init__(self, prefix: str, matches: list[str]):
        self.prefix = prefix
        self.matches = list(matches)
        super().__init__(
            f"Multiple spec directories found with prefix '{prefix}': {' '.join(self.matches)}\n"
            "Please ensure only one spec directory exists per numeric prefix."
        )


class WorkspacePathRequired(SpecRootError):
    def __init__(self):
        super().__init__(
            "Worktree path required\n\n"
            "To list existing worktrees:\n"
            "  specroot workspace list"
        )


class UserDeclinedRemoval(SpecRootError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Aborted. Worktree left in place: {path}")


class VersionControlError(SpecRootError):
    """A git command exited non-zero. Carries its exit status and stderr."""

    def __init__(self, command: list[str], returncode: int, stderr: str):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"Git failed ({returncode}): {' '.join(command)}\n{stderr.strip()}"
        )

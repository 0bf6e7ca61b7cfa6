from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest
from loguru import logger

from specroot.errors import VersionControlError
from specroot.vcs import VersionControlBackend, WorkspaceEntry


class FakeBackend(VersionControlBackend):
    """In-memory repository: one primary checkout plus linked worktrees."""

    def __init__(self, primary: Path | None = None, head: str | None = "main"):
        self.primary = primary
        self.branches: set[str] = {head} if head and head != "HEAD" else set()
        self.heads: dict[Path, str | None] = {}
        self.dirty: dict[Path, str] = {}
        self.calls: list[tuple] = []
        if primary is not None:
            primary.mkdir(parents=True, exist_ok=True)
            self.heads[primary] = head

    def toplevel(self, cwd: Path) -> Path | None:
        for root in self.heads:
            if cwd == root or root in cwd.parents:
                return root
        return None

    def is_linked_workspace(self, cwd: Path) -> bool:
        top = self.toplevel(cwd)
        return top is not None and top != self.primary

    def shared_root(self, cwd: Path) -> Path | None:
        return self.primary if self.toplevel(cwd) else None

    def current_branch(self, cwd: Path) -> str | None:
        top = self.toplevel(cwd)
        return self.heads.get(top) if top else None

    def branch_exists(self, cwd: Path, name: str) -> bool:
        return name in self.branches

    def add_workspace(self, cwd: Path, path: Path, branch: str, new_branch: bool) -> None:
        self.calls.append(("add", path, branch, new_branch))
        if new_branch and branch in self.branches:
            raise VersionControlError(["git", "worktree", "add"], 255, f"a branch named '{branch}' already exists")
        if branch in self.heads.values():
            raise VersionControlError(["git", "worktree", "add"], 128, f"'{branch}' is already checked out")
        path.mkdir(parents=True)
        self.branches.add(branch)
        self.heads[path] = branch

    def remove_workspace(self, cwd: Path, path: Path, force: bool = False) -> None:
        self.calls.append(("remove", path, force))
        if path not in self.heads or path == self.primary:
            raise VersionControlError(["git", "worktree", "remove"], 128, f"'{path}' is not a working tree")
        if self.dirty.get(path) and not force:
            raise VersionControlError(["git", "worktree", "remove"], 128, "contains modified or untracked files")
        shutil.rmtree(path)
        del self.heads[path]
        self.dirty.pop(path, None)

    def list_workspaces(self, cwd: Path) -> list[WorkspaceEntry]:
        return [
            WorkspaceEntry(path=p, branch=b, is_primary=(p == self.primary), prunable=not p.exists())
            for p, b in self.heads.items()
        ]

    def prune_workspaces(self, cwd: Path) -> None:
        self.calls.append(("prune",))
        for p in [p for p in self.heads if p != self.primary and not p.exists()]:
            del self.heads[p]

    def local_changes(self, cwd: Path) -> str:
        top = self.toplevel(cwd)
        return self.dirty.get(top, "") if top else ""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("SPECIFY_FEATURE", raising=False)
    monkeypatch.delenv("SPECIFY_WORKTREE_MODE", raising=False)


@pytest.fixture
def tmp(tmp_path: Path) -> Path:
    # macOS /tmp is a symlink; git reports resolved paths
    return tmp_path.resolve()


@pytest.fixture
def fake(tmp: Path) -> FakeBackend:
    return FakeBackend(tmp / "project")


@pytest.fixture
def log_messages():
    messages: list[tuple[str, str]] = []
    handler_id = logger.add(lambda m: messages.append((m.record["level"].name, m.record["message"])))
    yield messages
    logger.remove(handler_id)


# ---------------------------------------------------------------------------
# Real git
# ---------------------------------------------------------------------------

def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=cwd, capture_output=True, text=True, check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def run_git():
    return git


@pytest.fixture
def git_repo(tmp: Path) -> Path:
    """A primary checkout on 'main' with one commit, at <tmp>/project."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    repo = tmp / "project"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    (repo / "README.md").write_text("# project\n")
    git(repo, "add", "README.md")
    git(repo, "commit", "-q", "-m", "init")
    return repo


@pytest.fixture
def make_backend():
    return FakeBackend

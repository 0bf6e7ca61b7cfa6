from pathlib import Path

import pytest

from specroot.errors import NotAVersionControlledDirectory
from specroot.locator import WorkspaceLocator
from specroot.vcs import GitBackend


def test_primary_checkout_is_its_own_root(fake):
    locator = WorkspaceLocator(fake.primary, backend=fake)
    assert locator.has_version_control()
    assert not locator.is_linked_workspace()
    assert locator.canonical_root() == fake.primary
    assert locator.active_workspace_root() == fake.primary


def test_linked_workspace_resolves_to_primary(fake, tmp):
    linked = tmp / "workspaces" / "001-alpha"
    fake.add_workspace(fake.primary, linked, "001-alpha", new_branch=True)
    nested = linked / "src" / "pkg"
    nested.mkdir(parents=True)

    for cwd in (linked, nested):
        locator = WorkspaceLocator(cwd, backend=fake)
        assert locator.is_linked_workspace()
        assert locator.canonical_root() == fake.primary
        assert locator.active_workspace_root() == linked


def test_without_git_falls_back_to_install_location(make_backend, tmp):
    project = tmp / "plain-project"
    install_dir = project / ".specify" / "scripts" / "python"
    install_dir.mkdir(parents=True)
    inside = project / "docs"
    inside.mkdir()

    locator = WorkspaceLocator(inside, backend=make_backend(), install_dir=install_dir)
    assert not locator.has_version_control()
    assert not locator.is_linked_workspace()
    assert locator.canonical_root() == project
    assert locator.active_workspace_root() == inside


def test_without_git_outside_install_tree_uses_current_dir(make_backend, tmp):
    outside = tmp / "plain"
    outside.mkdir()
    install_dir = tmp / "venv" / "lib" / "site-packages" / "specroot"
    install_dir.mkdir(parents=True)

    locator = WorkspaceLocator(outside, backend=make_backend(), install_dir=install_dir)
    assert locator.canonical_root() == outside


@pytest.mark.parametrize("install_dir", [Path("/opt"), Path("/opt/specroot/pkg")])
def test_without_git_never_resolves_to_filesystem_root(make_backend, tmp, install_dir):
    outside = tmp / "plain"
    outside.mkdir()
    locator = WorkspaceLocator(outside, backend=make_backend(), install_dir=install_dir)
    assert locator.canonical_root() == outside


def test_without_git_default_install_uses_current_dir(make_backend, tmp):
    outside = tmp / "plain"
    outside.mkdir()
    assert WorkspaceLocator(outside, backend=make_backend()).canonical_root() == outside


def test_require_canonical_root_without_git(fake, tmp):
    outside = tmp / "plain"
    outside.mkdir()
    with pytest.raises(NotAVersionControlledDirectory):
        WorkspaceLocator(outside, backend=fake).require_canonical_root()


# ---------------------------------------------------------------------------
# Real git
# ---------------------------------------------------------------------------

def test_git_primary_not_linked(git_repo):
    locator = WorkspaceLocator(git_repo, backend=GitBackend())
    assert not locator.is_linked_workspace()
    assert locator.canonical_root() == git_repo


def test_git_subdirectory_of_primary(git_repo):
    sub = git_repo / "docs"
    sub.mkdir()
    locator = WorkspaceLocator(sub, backend=GitBackend())
    assert not locator.is_linked_workspace()
    assert locator.canonical_root() == git_repo
    assert locator.active_workspace_root() == git_repo


def test_git_linked_worktree_shares_canonical_root(git_repo, run_git, tmp):
    worktree = tmp / "worktrees" / "002-beta"
    run_git(git_repo, "worktree", "add", "-q", "-b", "002-beta", str(worktree))
    nested = worktree / "subdir" / "nested"
    nested.mkdir(parents=True)

    primary = WorkspaceLocator(git_repo, backend=GitBackend())
    for cwd in (worktree, nested):
        locator = WorkspaceLocator(cwd, backend=GitBackend())
        assert locator.is_linked_workspace()
        assert locator.canonical_root() == primary.canonical_root() == git_repo
        assert locator.active_workspace_root() == worktree


def test_git_absent_directory(tmp):
    plain = tmp / "plain"
    plain.mkdir()
    backend = GitBackend()
    assert backend.toplevel(plain) is None
    assert backend.is_linked_workspace(plain) is False
    assert backend.current_branch(plain) is None


def test_missing_git_executable_means_no_vcs(tmp):
    backend = GitBackend(executable="git-does-not-exist")
    assert backend.toplevel(tmp) is None
    assert not WorkspaceLocator(tmp, backend=backend).has_version_control()

"""
specroot CLI

Path resolution for collaborators:
  specroot paths [--json] [--check] [--require-feature]
  specroot check-branch
  specroot status

Worktree lifecycle:
  specroot workspace create <branch> [--path <dir>]
  specroot workspace remove <path> [--yes]
  specroot workspace list
  specroot workspace prune
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from loguru import logger
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from specroot.branches import check_feature_branch
from specroot.config_loader import load_config
from specroot.errors import SpecRootError
from specroot.features import get_feature_paths
from specroot.identity import __codename__, __tagline__, __version__
from specroot.locator import WorkspaceLocator
from specroot.workspace import WorkspaceManager, is_workspace_mode_enabled

load_dotenv()

app = typer.Typer(
    name="specroot",
    help=f"{__codename__} — {__tagline__}",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
workspace_app = typer.Typer(help="Create, remove, list and prune linked worktrees.", no_args_is_help=True)
app.add_typer(workspace_app, name="workspace")

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool):
    if value:
        console.print(f"{__codename__} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    pass


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------

@app.command()
def paths(
    directory: Optional[Path] = typer.Option(None, "--dir", "-C", help="Resolve as if run from this directory"),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of KEY=value lines"),
    check: bool = typer.Option(False, "--check", help="Show which feature documents exist"),
    require_feature: bool = typer.Option(False, "--require-feature", help="Fail unless on a feature branch"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Print the resolved feature paths for the current worktree."""
    _configure_logging(verbose)
    cwd = (directory or Path.cwd()).resolve()

    with _handle_errors():
        fp = get_feature_paths(cwd)
        if require_feature:
            check_feature_branch(fp.current_branch, fp.has_git, load_config(fp.repo_root))

    if as_json:
        typer.echo(fp.model_dump_json(indent=2))
    else:
        typer.echo(fp.to_env())

    if check:
        table = Table(title=f"Feature documents: {fp.feature_dir.name}", border_style="cyan")
        table.add_column("Document")
        table.add_column("Status")
        for name, present in fp.doc_status().items():
            table.add_row(name, "[green]✓[/]" if present else "[red]✗[/]")
        err_console.print(table)


@app.command("check-branch")
def check_branch(
    directory: Optional[Path] = typer.Option(None, "--dir", "-C"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Fail unless the current branch is a feature branch (NNN-name)."""
    _configure_logging(verbose)
    cwd = (directory or Path.cwd()).resolve()

    with _handle_errors():
        fp = get_feature_paths(cwd)
        check_feature_branch(fp.current_branch, fp.has_git, load_config(fp.repo_root))

    console.print(f"[green]✓ Feature branch: {fp.current_branch}[/]")


@app.command()
def status(
    directory: Optional[Path] = typer.Option(None, "--dir", "-C"),
):
    """Show how the current directory resolves."""
    _configure_logging(False)
    cwd = (directory or Path.cwd()).resolve()
    locator = WorkspaceLocator(cwd)

    with _handle_errors():
        fp = get_feature_paths(cwd)
        config = load_config(fp.repo_root)

    table = Table(title="Workspace", border_style="cyan")
    table.add_column("Property")
    table.add_column("Value")
    table.add_row("Git repository", "✓" if fp.has_git else "✗")
    table.add_row("Linked worktree", "✓" if locator.is_linked_workspace() else "✗")
    table.add_row("Canonical root", str(fp.repo_root))
    table.add_row("Active worktree", str(locator.active_workspace_root()))
    table.add_row("Branch", fp.current_branch)
    table.add_row("Feature dir", str(fp.feature_dir))
    table.add_row("Worktree mode", "on" if is_workspace_mode_enabled(config=config) else "off")
    console.print(table)


# ---------------------------------------------------------------------------
# Workspace lifecycle
# ---------------------------------------------------------------------------

@workspace_app.command("create")
def workspace_create(
    branch: str = typer.Argument(..., help="Branch to check out, e.g. 001-user-auth"),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Worktree location (default: ../workspaces/<branch>)"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Create a linked worktree for a new or existing branch."""
    _configure_logging(verbose)
    manager = _manager()

    with _handle_errors():
        created = manager.create(branch, path)

    typer.echo(str(created))


@workspace_app.command("remove")
def workspace_remove(
    path: Path = typer.Argument(..., help="Worktree to remove"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Remove even with uncommitted changes, without asking"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Remove a linked worktree."""
    _configure_logging(verbose)
    manager = _manager(confirm=(lambda _path, _changes: True) if yes else _confirm_removal)

    with _handle_errors():
        manager.remove(path)

    console.print(f"[green]✓ Removed {path}[/]")


@workspace_app.command("list")
def workspace_list():
    """List all worktrees of this repository."""
    _configure_logging(False)
    manager = _manager()

    with _handle_errors():
        entries = manager.list_workspaces()

    table = Table(title="Worktrees", border_style="cyan")
    table.add_column("Path")
    table.add_column("Branch", no_wrap=True)
    table.add_column("HEAD", style="dim")
    table.add_column("")
    for entry in entries:
        flags = []
        if entry.is_primary:
            flags.append("primary")
        if entry.locked:
            flags.append("locked")
        if entry.prunable:
            flags.append("[yellow]prunable[/]")
        table.add_row(str(entry.path), entry.branch or "[dim](detached)[/]", entry.head[:8], " ".join(flags))
    console.print(table)


@workspace_app.command("prune")
def workspace_prune():
    """Forget worktrees whose directories were deleted by hand."""
    _configure_logging(False)
    manager = _manager()

    with _handle_errors():
        manager.prune()

    console.print("[green]✓ Pruned stale worktree references[/]")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _manager(confirm=None) -> WorkspaceManager:
    locator = WorkspaceLocator(Path.cwd())
    config = load_config(locator.canonical_root())
    return WorkspaceManager(locator, config, confirm=confirm)


def _confirm_removal(path: Path, changes: str) -> bool:
    err_console.print(f"[yellow]WARNING: Worktree has uncommitted changes:[/] {path}")
    for line in changes.splitlines():
        err_console.print(f"  [dim]{line}[/]")
    return Confirm.ask("[bold]Continue with removal?[/]", default=False, console=err_console)


@contextmanager
def _handle_errors():
    """Turn SpecRootError into a red message and exit status 1."""
    try:
        yield
    except SpecRootError as e:
        err_console.print(f"ERROR: {e}", style="red", markup=False, highlight=False)
        raise typer.Exit(1)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    if verbose:
        logger.add(
            lambda msg: err_console.print(msg, end="", highlight=False, markup=False, style="dim"),
            level="DEBUG",
            format="{time:HH:mm:ss} | {level:<7} | {message}",
        )
    else:
        logger.add(
            lambda msg: err_console.print(msg, end="", highlight=False, markup=False),
            level="WARNING",
            format="{message}",
        )


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()

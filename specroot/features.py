"""
Feature Directory Resolver

Maps a branch name to its spec directory under <canonical root>/specs.
Matching is by numeric prefix, so 004-fix-bug and 004-add-feature both
resolve to specs/004-whatever-it-was-named.

get_feature_paths() is the entry point collaborators call: it runs the
locator, branch resolver and this resolver, and returns every well-known
document path for the active feature.
"""

from __future__ import annotations

import shlex
from collections.abc import Mapping
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field, computed_field

from specroot.branches import BranchResolver, feature_prefix
from specroot.config_loader import SpecRootConfig, load_config
from specroot.errors import AmbiguousFeaturePrefix
from specroot.locator import WorkspaceLocator
from specroot.vcs import VersionControlBackend


class FeatureResolution(BaseModel):
    path: Path
    prefix: str | None = None
    matches: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def ambiguous(self) -> bool:
        return len(self.matches) > 1

    def error(self) -> AmbiguousFeaturePrefix | None:
        if not self.ambiguous:
            return None
        return AmbiguousFeaturePrefix(self.prefix or "", self.matches)


def find_feature_dir(repo_root: Path, branch: str, specs_dir_name: str = "specs") -> FeatureResolution:
    """
    Resolve branch -> spec directory.

    No prefix      -> specs/<branch> (exact name).
    No match       -> specs/<branch>, so later "file not found" errors name it.
    One match      -> that directory.
    Several        -> logged as an error; specs/<branch> is returned, never a guess.
    """
    specs_dir = repo_root / specs_dir_name
    literal = specs_dir / branch

    prefix = feature_prefix(branch)
    if prefix is None:
        return FeatureResolution(path=literal)

    matches: list[str] = []
    if specs_dir.is_dir():
        matches = sorted(
            d.name for d in specs_dir.glob(f"{prefix}-*") if d.is_dir()
        )

    if len(matches) == 1:
        return FeatureResolution(path=specs_dir / matches[0], prefix=prefix, matches=matches)

    resolution = FeatureResolution(path=literal, prefix=prefix, matches=matches)
    if resolution.ambiguous:
        logger.error(f"[FEATURE] {resolution.error()}")
    return resolution


def ensure_repo_structure(repo_root: Path, config: SpecRootConfig | None = None) -> None:
    """Create specs/ and history/ (with .gitkeep) if missing. Never deletes."""
    config = config or SpecRootConfig()
    for name in (config.paths.specs_dir, config.paths.history_dir):
        directory = repo_root / name
        directory.mkdir(parents=True, exist_ok=True)
        keep = directory / ".gitkeep"
        if not keep.is_file():
            keep.touch()


# ---------------------------------------------------------------------------
# Path bundle
# ---------------------------------------------------------------------------

class FeaturePaths(BaseModel):
    """Everything a collaborator needs to find the active feature's documents."""
    repo_root: Path
    current_branch: str
    has_git: bool
    feature_dir: Path
    feature_spec: Path
    impl_plan: Path
    tasks: Path
    research: Path
    data_model: Path
    quickstart: Path
    contracts_dir: Path
    ambiguous_matches: list[str] = Field(default_factory=list)

    @classmethod
    def for_feature(cls, repo_root: Path, branch: str, has_git: bool, feature_dir: Path) -> "FeaturePaths":
        return cls(
            repo_root=repo_root,
            current_branch=branch,
            has_git=has_git,
            feature_dir=feature_dir,
            feature_spec=feature_dir / "spec.md",
            impl_plan=feature_dir / "plan.md",
            tasks=feature_dir / "tasks.md",
            research=feature_dir / "research.md",
            data_model=feature_dir / "data-model.md",
            quickstart=feature_dir / "quickstart.md",
            contracts_dir=feature_dir / "contracts",
        )

    def to_env(self) -> str:
        """Shell-evaluable KEY=value lines, each value quoted for eval."""
        values = {
            "REPO_ROOT": self.repo_root,
            "CURRENT_BRANCH": self.current_branch,
            "HAS_GIT": "true" if self.has_git else "false",
            "FEATURE_DIR": self.feature_dir,
            "FEATURE_SPEC": self.feature_spec,
            "IMPL_PLAN": self.impl_plan,
            "TASKS": self.tasks,
            "RESEARCH": self.research,
            "DATA_MODEL": self.data_model,
            "QUICKSTART": self.quickstart,
            "CONTRACTS_DIR": self.contracts_dir,
        }
        return "\n".join(f"{key}={shlex.quote(str(value))}" for key, value in values.items())

    def doc_status(self) -> dict[str, bool]:
        """Which optional documents exist. contracts/ must also be non-empty."""
        status = {
            "spec.md": self.feature_spec.is_file(),
            "plan.md": self.impl_plan.is_file(),
            "tasks.md": self.tasks.is_file(),
            "research.md": self.research.is_file(),
            "data-model.md": self.data_model.is_file(),
            "quickstart.md": self.quickstart.is_file(),
        }
        status["contracts/"] = self.contracts_dir.is_dir() and any(self.contracts_dir.iterdir())
        return status


def get_feature_paths(
    current_dir: Path,
    backend: VersionControlBackend | None = None,
    environ: Mapping[str, str] | None = None,
    config: SpecRootConfig | None = None,
    install_dir: Path | None = None,
) -> FeaturePaths:
    locator = WorkspaceLocator(current_dir, backend=backend, install_dir=install_dir)
    repo_root = locator.canonical_root()
    config = config or load_config(repo_root)

    ensure_repo_structure(repo_root, config)

    branch = BranchResolver(locator, config, environ).resolve()
    resolution = find_feature_dir(repo_root, branch, config.paths.specs_dir)

    paths = FeaturePaths.for_feature(
        repo_root, branch, locator.has_version_control(), resolution.path
    )
    if resolution.ambiguous:
        paths.ambiguous_matches = resolution.matches
    return paths

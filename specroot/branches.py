"""
Branch resolution and the feature-branch gate.

Feature branches carry a three-digit prefix: 001-user-auth, 042-fix-login.
Several branches may share one prefix and therefore one spec directory.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path

from loguru import logger

from specroot.config_loader import SpecRootConfig
from specroot.errors import DetachedState, NotAFeatureBranch
from specroot.locator import WorkspaceLocator

# Exactly three digits then a hyphen; "1234-x" and "42-x" do not qualify
FEATURE_PREFIX_RE = re.compile(r"^([0-9]{3})-")


def feature_prefix(name: str) -> str | None:
    """Return the three-digit prefix of a feature branch name, if any."""
    m = FEATURE_PREFIX_RE.match(name)
    return m.group(1) if m else None


def is_feature_branch(name: str) -> bool:
    return feature_prefix(name) is not None


def latest_feature_dir(specs_dir: Path) -> str | None:
    """Name of the spec directory with the highest numeric prefix."""
    if not specs_dir.is_dir():
        return None

    latest: str | None = None
    highest = -1
    for entry in sorted(specs_dir.iterdir()):
        if not entry.is_dir():
            continue
        prefix = feature_prefix(entry.name)
        if prefix is None:
            continue
        number = int(prefix)
        if number > highest:
            highest = number
            latest = entry.name
    return latest


class BranchResolver:
    """
    Produces the branch identifier for this invocation.

    First hit wins:
      1. the override environment variable (SPECIFY_FEATURE)
      2. git's current branch
      3. the highest-numbered spec directory (projects without git)
      4. the configured fallback ("main")
    """

    def __init__(
        self,
        locator: WorkspaceLocator,
        config: SpecRootConfig | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self.locator = locator
        self.config = config or SpecRootConfig()
        self.environ = os.environ if environ is None else environ

    def resolve(self) -> str:
        override = self.environ.get(self.config.env.feature_override, "")
        if override:
            logger.debug(f"[BRANCH] Using {self.config.env.feature_override}={override}")
            return override

        branch = self.locator.backend.current_branch(self.locator.current_dir)
        if branch:
            return branch

        specs_dir = self.locator.canonical_root() / self.config.paths.specs_dir
        latest = latest_feature_dir(specs_dir)
        if latest:
            logger.debug(f"[BRANCH] No git branch; latest feature directory is {latest}")
            return latest

        return self.config.branches.fallback


def check_feature_branch(branch: str, has_git: bool, config: SpecRootConfig | None = None) -> None:
    """Raise unless branch is usable as a feature branch."""
    config = config or SpecRootConfig()

    if not has_git:
        logger.warning("[BRANCH] Git repository not detected; skipped branch validation")
        return

    if branch == config.branches.detached:
        raise DetachedState()

    if not is_feature_branch(branch):
        raise NotAFeatureBranch(branch)

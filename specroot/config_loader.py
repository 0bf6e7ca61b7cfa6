"""
Configuration loader for specroot.
Merges defaults with per-repo .specroot/config.yaml overrides.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class PathsConfig(BaseModel):
    specs_dir: str = "specs"
    history_dir: str = "history"
    workspaces_dir: str = "workspaces"


class BranchesConfig(BaseModel):
    fallback: str = "main"
    detached: str = "HEAD"
    max_length: int = 200


class EnvConfig(BaseModel):
    feature_override: str = "SPECIFY_FEATURE"
    workspace_mode: str = "SPECIFY_WORKTREE_MODE"


class SpecRootConfig(BaseModel):
    paths: PathsConfig = Field(default_factory=PathsConfig)
    branches: BranchesConfig = Field(default_factory=BranchesConfig)
    env: EnvConfig = Field(default_factory=EnvConfig)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(repo_path: Path | None = None) -> SpecRootConfig:
    """
    Load config by merging:
      1. Built-in defaults (specroot/config.yaml)
      2. Repo-level overrides (<canonical root>/.specroot/config.yaml)
    """
    with open(_DEFAULT_CONFIG_PATH, "r") as f:
        base: dict[str, Any] = yaml.safe_load(f) or {}

    if repo_path:
        repo_config = repo_path / ".specroot" / "config.yaml"
        if repo_config.exists():
            with open(repo_config, "r") as f:
                overrides: dict[str, Any] = yaml.safe_load(f) or {}
            base = _deep_merge(base, overrides)

    return SpecRootConfig(**base)

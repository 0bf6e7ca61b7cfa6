"""
specroot: workspace path resolution for spec-driven development.

Keeps specs/ and history/ anchored to the main checkout while any
number of git worktrees are active on their own feature branches.
"""

from specroot.identity import __version__

__all__ = ["__version__"]

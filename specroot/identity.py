__version__ = "0.3.0"
__codename__ = "SPECROOT"
__tagline__ = "One spec tree, many worktrees."

"""
OpenManager - sandboxed coding agent sessions

OpenManager runs a coding agent inside a container against an isolated git
worktree of a repository, with pluggable hooks before and after the agent runs.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

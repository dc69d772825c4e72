"""Git helpers built on :func:`openmanager.core.utils.subprocess.run_git_command`."""
from __future__ import annotations

from .status import (
    binary_diff,
    has_pending_changes,
    list_untracked_files,
    resolve_commit,
)

__all__ = [
    "binary_diff",
    "has_pending_changes",
    "list_untracked_files",
    "resolve_commit",
]

"""Session worktree management."""
from __future__ import annotations

from .cleanup import CleanupReport, cleanup_all_worktrees, list_session_worktree_dirs
from .manager import (
    apply_tracked_changes,
    copy_untracked_files,
    create_worktree,
    prune_worktrees,
    remove_worktree,
    resolve_worktree_path,
    sync_local_changes,
)

__all__ = [
    "CleanupReport",
    "cleanup_all_worktrees",
    "list_session_worktree_dirs",
    "apply_tracked_changes",
    "copy_untracked_files",
    "create_worktree",
    "prune_worktrees",
    "remove_worktree",
    "resolve_worktree_path",
    "sync_local_changes",
]

"""Bulk removal of every session worktree under ``.openmanager/worktrees``."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from openmanager.core.exceptions import ExternalToolFailure
from openmanager.core.paths import ManagementPaths
from openmanager.core.utils.subprocess import run_git_command

from .manager import prune_worktrees

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    """Outcome of :func:`cleanup_all_worktrees`."""

    worktree_root: Path
    found: List[Path] = field(default_factory=list)
    removed: List[Path] = field(default_factory=list)
    failed: List[Tuple[Path, str]] = field(default_factory=list)
    pruned: bool = False
    prune_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.failed and self.prune_error is None

    def to_dict(self) -> dict:
        return {
            "worktreeRoot": str(self.worktree_root),
            "found": [str(p) for p in self.found],
            "removed": [str(p) for p in self.removed],
            "failed": [{"path": str(p), "message": m} for p, m in self.failed],
            "pruned": self.pruned,
            "pruneError": self.prune_error,
        }


def list_session_worktree_dirs(repo_path: Path) -> List[Path]:
    """Return the session worktree directories, sorted by name."""
    root = ManagementPaths(Path(repo_path)).worktrees_root
    if not root.is_dir():
        return []
    return sorted(p for p in root.iterdir() if p.is_dir())


def cleanup_all_worktrees(repo_path: Path) -> CleanupReport:
    """Force-remove every session worktree, then prune stale registrations.

    Individual failures are recorded and do not stop the remaining removals.
    """
    repo_path = Path(repo_path)
    report = CleanupReport(worktree_root=ManagementPaths(repo_path).worktrees_root)
    report.found = list_session_worktree_dirs(repo_path)
    if not report.found:
        return report

    for path in report.found:
        try:
            run_git_command(
                ["git", "worktree", "remove", "--force", str(path)],
                cwd=repo_path,
            )
            report.removed.append(path)
        except ExternalToolFailure as exc:
            logger.warning("failed to remove worktree %s: %s", path, exc)
            report.failed.append((path, str(exc)))

    try:
        prune_worktrees(repo_path)
        report.pruned = True
    except ExternalToolFailure as exc:
        logger.warning("failed to prune worktree references: %s", exc)
        report.prune_error = str(exc)

    return report


__all__ = ["CleanupReport", "list_session_worktree_dirs", "cleanup_all_worktrees"]

"""Session-scoped git worktree creation, local-change sync and removal."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from openmanager.core.exceptions import ConflictError, ExternalToolFailure
from openmanager.core.paths import MANAGEMENT_DIR_NAME, ManagementPaths
from openmanager.core.utils.git import binary_diff, list_untracked_files
from openmanager.core.utils.io import copy_path, ensure_directory
from openmanager.core.utils.subprocess import run_git_command

logger = logging.getLogger(__name__)

__all__ = [
    "resolve_worktree_path",
    "create_worktree",
    "sync_local_changes",
    "apply_tracked_changes",
    "copy_untracked_files",
    "remove_worktree",
    "prune_worktrees",
]


def resolve_worktree_path(repo_path: Path, session_id: str) -> Path:
    """Deterministic worktree location for ``session_id``."""
    return ManagementPaths(Path(repo_path)).worktree_path(session_id)


def create_worktree(repo_path: Path, git_ref: Optional[str], session_id: str) -> Path:
    """Create an isolated checkout of ``git_ref`` for ``session_id``.

    The checkout lives at ``<repo>/.openmanager/worktrees/<session_id>``. An
    existing directory at that path is never overwritten: it may belong to a
    live session. ``--force`` only replaces a stale registration for the
    same path.

    Raises:
        ConflictError: If the target directory already exists.
        ExternalToolFailure: If ``git worktree add`` fails.
    """
    repo_path = Path(repo_path)
    ManagementPaths(repo_path).ensure_root()
    worktree_path = resolve_worktree_path(repo_path, session_id)
    ensure_directory(worktree_path.parent)

    if worktree_path.exists():
        raise ConflictError(
            f"Worktree path {worktree_path} already exists. "
            "Remove it or choose a different session ID.",
            path=worktree_path,
        )

    cmd = ["git", "worktree", "add", "--force", "--detach", str(worktree_path)]
    if git_ref:
        cmd.append(git_ref)

    logger.info("creating worktree %s at %s", worktree_path, git_ref or "HEAD")
    run_git_command(cmd, cwd=repo_path)
    return worktree_path


def apply_tracked_changes(repo_path: Path, worktree_path: Path) -> bool:
    """Apply the primary checkout's uncommitted tracked changes to the worktree.

    Returns:
        True when a non-empty diff was applied.
    """
    diff = binary_diff(Path(repo_path), "HEAD")
    if not diff.strip():
        return False

    run_git_command(
        ["git", "apply", "--binary", "--whitespace=nowarn"],
        cwd=worktree_path,
        input=diff,
        text=False,
    )
    return True


def _is_management_path(relative: str) -> bool:
    return relative.split("/", 1)[0].rstrip("/") == MANAGEMENT_DIR_NAME


def copy_untracked_files(repo_path: Path, worktree_path: Path) -> List[str]:
    """Copy untracked (non-ignored) files from the primary checkout into the worktree.

    Returns:
        The relative paths that were copied.
    """
    repo_path = Path(repo_path)
    worktree_path = Path(worktree_path)
    copied: List[str] = []
    for relative in list_untracked_files(repo_path):
        if _is_management_path(relative):
            continue
        source = repo_path / relative
        if not source.exists() and not source.is_symlink():
            continue
        copy_path(source, worktree_path / relative)
        copied.append(relative)
    return copied


def sync_local_changes(repo_path: Path, worktree_path: Path) -> None:
    """Overlay uncommitted local changes onto the session worktree.

    Both steps always run: a failed ``git apply`` does not prevent untracked
    files from being copied. Failures are raised afterwards.

    Raises:
        ExternalToolFailure: If either step failed (OSError for a failed copy).
    """
    errors: List[Exception] = []

    try:
        if apply_tracked_changes(repo_path, worktree_path):
            logger.info("applied tracked changes into %s", worktree_path)
    except ExternalToolFailure as exc:
        logger.warning("applying tracked changes failed: %s", exc)
        errors.append(exc)

    try:
        copied = copy_untracked_files(repo_path, worktree_path)
        if copied:
            logger.info("copied %d untracked path(s) into %s", len(copied), worktree_path)
    except (ExternalToolFailure, OSError) as exc:
        logger.warning("copying untracked files failed: %s", exc)
        errors.append(exc)

    if not errors:
        return
    if len(errors) == 1:
        raise errors[0]
    raise ExternalToolFailure(
        "Syncing local changes failed:\n" + "\n".join(str(e) for e in errors),
        stderr="\n".join(getattr(e, "stderr", "") for e in errors if getattr(e, "stderr", "")),
    )


def prune_worktrees(repo_path: Path) -> None:
    """Prune stale worktree registrations."""
    run_git_command(["git", "worktree", "prune"], cwd=repo_path)


def remove_worktree(repo_path: Path, worktree_path: Path) -> bool:
    """Remove a session worktree and prune stale registrations.

    Idempotent: when the directory is already gone only the prune runs. The
    prune is attempted even when removal fails so git metadata stays
    consistent.

    Returns:
        True if a worktree directory was removed, False if it was already absent.

    Raises:
        ExternalToolFailure: If removal or pruning fails.
    """
    worktree_path = Path(worktree_path)
    if not worktree_path.exists():
        logger.info("worktree %s already removed; pruning", worktree_path)
        prune_worktrees(repo_path)
        return False

    try:
        run_git_command(
            ["git", "worktree", "remove", "--force", str(worktree_path)],
            cwd=repo_path,
        )
    except ExternalToolFailure:
        try:
            prune_worktrees(repo_path)
        except ExternalToolFailure as prune_exc:
            logger.warning("prune after failed removal also failed: %s", prune_exc)
        raise

    prune_worktrees(repo_path)
    return True

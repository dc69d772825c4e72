"""Working tree status, diff and revision helpers."""
from __future__ import annotations

import os
from pathlib import Path
from typing import List

from openmanager.core.utils.subprocess import run_git_command


def has_pending_changes(path: Path) -> bool:
    """Return True when the checkout at ``path`` has staged, unstaged or untracked changes."""
    result = run_git_command(["git", "status", "--porcelain"], cwd=path)
    return (result.stdout or "").strip() != ""


def resolve_commit(path: Path, ref: str = "HEAD") -> str:
    """Resolve ``ref`` to a full commit id inside the checkout at ``path``."""
    result = run_git_command(
        ["git", "rev-parse", "--verify", f"{ref}^{{commit}}"],
        cwd=path,
    )
    return (result.stdout or "").strip()


def binary_diff(path: Path, against: str = "HEAD") -> bytes:
    """Return a binary-safe diff of the working tree at ``path`` against ``against``.

    Output is raw bytes so binary hunks and non-UTF-8 content survive intact.
    """
    result = run_git_command(
        ["git", "diff", "--binary", against],
        cwd=path,
        text=False,
    )
    return result.stdout or b""


def list_untracked_files(path: Path) -> List[str]:
    """List untracked paths (honouring ignore rules) relative to ``path``.

    Uses NUL-separated output so unusual file names are returned verbatim.
    """
    result = run_git_command(
        ["git", "ls-files", "-z", "--others", "--exclude-standard"],
        cwd=path,
        text=False,
    )
    raw = result.stdout or b""
    return [os.fsdecode(entry) for entry in raw.split(b"\0") if entry]


__all__ = [
    "has_pending_changes",
    "resolve_commit",
    "binary_diff",
    "list_untracked_files",
]

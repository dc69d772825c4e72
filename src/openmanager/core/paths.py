"""Centralized resolution of the per-repository state layout.

Everything OpenManager persists inside a target repository lives under a
single dot-directory::

    <repo>/.openmanager/
        worktrees/<session_id>/                 isolated checkout
        sessions/<session_id>/prompt/prompt.txt materialized prompt
        cache/docker/<sanitized_tag>/Dockerfile generated build context
        logs/openmanager.log                    stdlib logging sink
"""
from __future__ import annotations

import re
from pathlib import Path

TOOL_NAME = "openmanager"
MANAGEMENT_DIR_NAME = f".{TOOL_NAME}"

_REF_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")
_TAG_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


class ManagementPaths:
    """Resolve all paths under ``<repo>/.openmanager``."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = Path(repo_root)

    @property
    def root(self) -> Path:
        return self.repo_root / MANAGEMENT_DIR_NAME

    @property
    def worktrees_root(self) -> Path:
        return self.root / "worktrees"

    @property
    def sessions_root(self) -> Path:
        return self.root / "sessions"

    @property
    def docker_cache_root(self) -> Path:
        return self.root / "cache" / "docker"

    @property
    def log_file(self) -> Path:
        return self.root / "logs" / f"{TOOL_NAME}.log"

    def worktree_path(self, session_id: str) -> Path:
        return self.worktrees_root / session_id

    def session_root(self, session_id: str) -> Path:
        return self.sessions_root / session_id

    def build_context_dir(self, image_tag: str) -> Path:
        return self.docker_cache_root / sanitize_image_tag(image_tag)

    def ensure_root(self) -> Path:
        """Create the management directory, ignored by git as a whole."""
        self.root.mkdir(parents=True, exist_ok=True)
        gitignore = self.root / ".gitignore"
        if not gitignore.exists():
            gitignore.write_text("*\n", encoding="utf-8")
        return self.root


def sanitize_ref(ref: str) -> str:
    """Make a git ref safe for use in a file name (``[A-Za-z0-9._-]`` only)."""
    return _REF_UNSAFE.sub("-", ref)


def sanitize_image_tag(tag: str) -> str:
    """Make an image tag safe for use as a directory name."""
    return _TAG_UNSAFE.sub("_", tag)


__all__ = [
    "TOOL_NAME",
    "MANAGEMENT_DIR_NAME",
    "ManagementPaths",
    "sanitize_ref",
    "sanitize_image_tag",
]

"""Shared CLI utility functions."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from openmanager.core.paths import ManagementPaths
from openmanager.core.stdlib_logging import configure_stdlib_logging, resolve_log_level

logger = logging.getLogger(__name__)


def get_repo_root(args: argparse.Namespace) -> Path:
    """Repository path from ``--repo`` or the current directory."""
    value = getattr(args, "repo", None)
    if value:
        return Path(value).resolve()
    return Path.cwd().resolve()


def setup_command_logging(repo_root: Path, args: argparse.Namespace) -> None:
    """Send log records to ``<repo>/.openmanager/logs/openmanager.log``.

    Skipped when the repository directory does not exist, so validation
    errors for a bad ``--repo`` never create stray directories.
    """
    if not repo_root.is_dir():
        return
    paths = ManagementPaths(repo_root)
    paths.ensure_root()
    configure_stdlib_logging(
        log_path=paths.log_file,
        level=resolve_log_level(bool(getattr(args, "verbose", False))),
    )


__all__ = ["get_repo_root", "setup_command_logging"]

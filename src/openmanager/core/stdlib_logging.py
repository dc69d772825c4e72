from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from openmanager.core.utils.io import ensure_directory

LOG_LEVEL_ENV = "OPENMANAGER_LOG_LEVEL"

_CONFIGURED_LOG_PATH: str | None = None
_OPENMANAGER_FILE_HANDLER: logging.Handler | None = None


def _level_from_name(name: str) -> int:
    level = getattr(logging, str(name).upper(), None)
    return level if isinstance(level, int) else logging.INFO


def resolve_log_level(verbose: bool = False) -> str:
    """Pick the log level: ``--verbose`` wins, then ``OPENMANAGER_LOG_LEVEL``, then INFO."""
    if verbose:
        return "DEBUG"
    return os.environ.get(LOG_LEVEL_ENV, "").strip() or "INFO"


def configure_stdlib_logging(*, log_path: Path, level: str = "INFO") -> None:
    """Configure Python stdlib logging to write to `log_path` (no stderr handler).

    Operator-facing progress lines go to stdout/stderr directly; log records
    only go to the file. Idempotent per-process: if already configured for
    the same file, only the level is updated.
    """
    global _CONFIGURED_LOG_PATH, _OPENMANAGER_FILE_HANDLER

    resolved = str(Path(log_path).resolve())
    root = logging.getLogger()
    root.setLevel(_level_from_name(level))

    if _CONFIGURED_LOG_PATH == resolved and _OPENMANAGER_FILE_HANDLER is not None:
        _OPENMANAGER_FILE_HANDLER.setLevel(_level_from_name(level))
        return

    ensure_directory(Path(resolved).parent)

    # FileHandler is also a StreamHandler; only drop the stdout/stderr ones.
    for h in list(root.handlers):
        if isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) in (sys.stdout, sys.stderr):
            root.removeHandler(h)
            h.close()

    if _OPENMANAGER_FILE_HANDLER is not None:
        root.removeHandler(_OPENMANAGER_FILE_HANDLER)
        _OPENMANAGER_FILE_HANDLER.close()
        _OPENMANAGER_FILE_HANDLER = None

    fh = logging.FileHandler(resolved, encoding="utf-8")
    fh.setLevel(_level_from_name(level))
    fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(fh)

    _OPENMANAGER_FILE_HANDLER = fh
    _CONFIGURED_LOG_PATH = resolved


def reset_stdlib_logging_for_tests() -> None:
    """Test-only: remove the handler installed by :func:`configure_stdlib_logging`."""
    global _CONFIGURED_LOG_PATH, _OPENMANAGER_FILE_HANDLER
    if _OPENMANAGER_FILE_HANDLER is not None:
        logging.getLogger().removeHandler(_OPENMANAGER_FILE_HANDLER)
        _OPENMANAGER_FILE_HANDLER.close()
    _CONFIGURED_LOG_PATH = None
    _OPENMANAGER_FILE_HANDLER = None


__all__ = [
    "LOG_LEVEL_ENV",
    "configure_stdlib_logging",
    "reset_stdlib_logging_for_tests",
    "resolve_log_level",
]

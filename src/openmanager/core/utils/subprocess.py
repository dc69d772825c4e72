from __future__ import annotations

"""Subprocess helpers for the version-control client and container runtime.

This module is the single place where OpenManager spawns external processes:
- Argument lists only, never a shell
- Optional timeout (none by default: builds and agents run to completion)
- ``check=True`` converts non-zero exits into :class:`ExternalToolFailure`
  so raw process-layer errors never cross component boundaries
"""

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Any, List, MutableMapping, Optional, Sequence

from openmanager.core.exceptions import ExternalToolFailure

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER_RUNTIME = "docker"
CONTAINER_RUNTIME_ENV = "OPENMANAGER_CONTAINER_RUNTIME"


def _flatten_cmd(cmd: Any) -> List[str]:
    if isinstance(cmd, (list, tuple)):
        return [str(p) for p in cmd]
    return shlex.split(str(cmd))


def _to_cwd(cwd: Optional[Path | str]) -> Optional[str]:
    """Convert Path or str cwd to str for subprocess."""
    if cwd is None:
        return None
    return str(cwd)


def _decode(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _failure_message(argv: Sequence[str], returncode: int, stderr: str) -> str:
    detail = stderr.strip()
    base = f"Command failed with exit code {returncode}: {shlex.join(argv)}"
    return f"{base}\n{detail}" if detail else base


def run_with_timeout(cmd: Any, **kwargs: Any) -> subprocess.CompletedProcess:
    """Run a subprocess, translating failures into :class:`ExternalToolFailure`.

    Args:
        cmd: Command list/str passed through to ``subprocess.run``.
        **kwargs: Additional arguments forwarded to ``subprocess.run``
            (``timeout`` defaults to None).

    Returns:
        CompletedProcess from ``subprocess.run``.

    Raises:
        ExternalToolFailure: When ``check=True`` and the command exits non-zero,
            or when the executable cannot be started at all.
    """
    argv = _flatten_cmd(cmd)
    check = bool(kwargs.pop("check", False))
    kwargs.setdefault("timeout", None)

    logger.debug("exec argv=%s cwd=%s", argv, kwargs.get("cwd"))
    try:
        result = subprocess.run(argv, **kwargs)
    except FileNotFoundError as exc:
        logger.warning("executable not found: %s", argv[0] if argv else "")
        raise ExternalToolFailure(
            f"Executable not found: {argv[0] if argv else cmd}",
            argv=argv,
            returncode=127,
            stderr=str(exc),
        ) from exc
    except subprocess.TimeoutExpired as exc:
        logger.warning("command timed out after %ss: %s", exc.timeout, argv)
        raise ExternalToolFailure(
            f"Command timed out after {exc.timeout}s: {shlex.join(argv)}",
            argv=argv,
            stdout=_decode(exc.output),
            stderr=_decode(exc.stderr),
        ) from exc

    if check and result.returncode != 0:
        stderr = _decode(result.stderr)
        logger.warning("command failed rc=%s argv=%s", result.returncode, argv)
        raise ExternalToolFailure(
            _failure_message(argv, result.returncode, stderr),
            argv=argv,
            returncode=result.returncode,
            stdout=_decode(result.stdout),
            stderr=stderr,
        )
    return result


def run_command(
    cmd: Sequence[str],
    *,
    cwd: Optional[Path | str] = None,
    env: Optional[MutableMapping[str, str]] = None,
    timeout: Optional[float] = None,
    capture_output: bool = False,
    text: bool = True,
    check: bool = False,
    input: Any = None,
) -> subprocess.CompletedProcess:
    """
    Thin wrapper around subprocess.run with safe defaults.

    Args:
        cmd: Command sequence to execute
        cwd: Working directory (Path or str)
        env: Environment variables
        timeout: Timeout in seconds (None waits forever)
        capture_output: Capture stdout/stderr
        text: Return output as text instead of bytes
        check: Raise ExternalToolFailure on non-zero exit
        input: Data passed on stdin

    Returns:
        CompletedProcess from subprocess.run
    """
    return run_with_timeout(
        list(cmd),
        cwd=_to_cwd(cwd),
        env=env,
        timeout=timeout,
        capture_output=capture_output,
        text=text,
        check=check,
        input=input,
    )


def run_git_command(
    cmd: Sequence[str],
    *,
    cwd: Optional[Path | str] = None,
    env: Optional[MutableMapping[str, str]] = None,
    timeout: Optional[float] = None,
    capture_output: bool = True,
    text: bool = True,
    check: bool = True,
    input: Any = None,
    allow_branch_switch: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run a git command.

    A ``checkout``/``switch`` subcommand is refused unless
    ``allow_branch_switch`` is set: only session worktrees may change
    branches, never the primary checkout. Arguments (refs, commit messages)
    may contain those words freely.

    Args:
        cmd: Git command sequence to execute (starting with ``git``)
        cwd: Working directory (Path or str)
        env: Environment variables
        timeout: Timeout in seconds
        capture_output: Capture stdout/stderr (default: True)
        text: Return output as text instead of bytes
        check: Raise ExternalToolFailure on non-zero exit (default: True)
        input: Data passed on stdin
        allow_branch_switch: Permit ``checkout``/``switch`` subcommands

    Returns:
        CompletedProcess from subprocess.run
    """
    if not allow_branch_switch and len(cmd) > 1 and cmd[0] == "git" and cmd[1] in {"checkout", "switch"}:
        raise ValueError(
            "Forbidden git branch switch detected (checkout/switch). "
            "Branches may only change inside a session worktree."
        )

    return run_command(
        cmd,
        cwd=cwd,
        env=env,
        timeout=timeout,
        capture_output=capture_output,
        text=text,
        check=check,
        input=input,
    )


def container_runtime_binary() -> str:
    """Return the container runtime executable (``docker`` unless overridden)."""
    value = os.environ.get(CONTAINER_RUNTIME_ENV, "").strip()
    return value or DEFAULT_CONTAINER_RUNTIME


def run_docker_command(
    args: Sequence[str],
    *,
    cwd: Optional[Path | str] = None,
    env: Optional[MutableMapping[str, str]] = None,
    timeout: Optional[float] = None,
    capture_output: bool = True,
    text: bool = True,
    check: bool = True,
    input: Any = None,
) -> subprocess.CompletedProcess:
    """
    Run a container runtime command.

    ``args`` excludes the executable itself; it is resolved through
    :func:`container_runtime_binary` so ``podman`` can stand in for ``docker``.

    Args:
        args: Runtime arguments (e.g., ``["image", "inspect", tag]``)
        cwd: Working directory (Path or str)
        env: Environment variables
        timeout: Timeout in seconds
        capture_output: Capture stdout/stderr (default: True). Pass False to
            hand the invoking terminal's streams to the child.
        text: Return output as text instead of bytes
        check: Raise ExternalToolFailure on non-zero exit (default: True)
        input: Data passed on stdin

    Returns:
        CompletedProcess from subprocess.run
    """
    return run_command(
        [container_runtime_binary(), *args],
        cwd=cwd,
        env=env,
        timeout=timeout,
        capture_output=capture_output,
        text=text,
        check=check,
        input=input,
    )


__all__ = [
    "run_with_timeout",
    "run_command",
    "run_git_command",
    "run_docker_command",
    "container_runtime_binary",
    "DEFAULT_CONTAINER_RUNTIME",
    "CONTAINER_RUNTIME_ENV",
]

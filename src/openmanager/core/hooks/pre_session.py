"""Built-in pre-session hooks.

Pre-session hooks run after the image is resolved and before the agent
container starts. Options are validated against bundled JSON schemas.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from openmanager.core.exceptions import MissingPrerequisite
from openmanager.core.runtime import ContainerRuntime, DockerRuntime
from openmanager.core.schemas import validate_payload
from openmanager.core.utils.subprocess import run_command

from .base import HookRegistry, HookResult, SessionHook

if TYPE_CHECKING:
    from openmanager.core.config import DockerConfig
    from openmanager.core.session.context import SessionContext

logger = logging.getLogger(__name__)

PACKAGE_MANAGER_ENV = "OPENMANAGER_DEFAULT_PACKAGE_MANAGER"
FALLBACK_PACKAGE_MANAGER = "pnpm"
PACKAGE_MANAGERS = ("pnpm", "npm", "yarn")


def _require_worktree(context: "SessionContext") -> Path:
    if context.worktree_path is None:
        raise MissingPrerequisite("Session worktree path is not available.")
    return context.worktree_path


def _output_data(result: Any) -> Dict[str, str]:
    return {
        "stdout": (getattr(result, "stdout", "") or "").strip(),
        "stderr": (getattr(result, "stderr", "") or "").strip(),
    }


class RunCommandHook(SessionHook):
    """Run an arbitrary command on the host or in a throwaway container."""

    name = "run-command"

    def __init__(self, runtime: Optional[ContainerRuntime] = None) -> None:
        self.runtime: ContainerRuntime = runtime or DockerRuntime()

    def execute(
        self,
        context: "SessionContext",
        options: Mapping[str, Any],
        *,
        phase_config: Optional["DockerConfig"] = None,
    ) -> HookResult:
        validate_payload(dict(options), "run-command")
        command = str(options["command"])
        args = [str(a) for a in options.get("args") or []]
        cwd = options.get("cwd")
        env = {str(k): str(v) for k, v in (options.get("env") or {}).items()}

        if options.get("runInContainer"):
            return self._execute_in_container(context, command, args, cwd, env)
        return self._execute_on_host(context, command, args, cwd, env)

    def _execute_on_host(
        self,
        context: "SessionContext",
        command: str,
        args: List[str],
        cwd: Optional[str],
        env: Dict[str, str],
    ) -> HookResult:
        worktree = _require_worktree(context)
        workdir = (worktree / cwd).resolve() if cwd else worktree
        merged_env = {**os.environ, **env}

        logger.info("run-command on host: %s %s (cwd=%s)", command, args, workdir)
        result = run_command(
            [command, *args],
            cwd=workdir,
            env=merged_env,
            capture_output=True,
            check=True,
        )
        return HookResult.ok(f"Executed '{command}' on host", _output_data(result))

    def _execute_in_container(
        self,
        context: "SessionContext",
        command: str,
        args: List[str],
        cwd: Optional[str],
        env: Dict[str, str],
    ) -> HookResult:
        if not context.container_image:
            raise MissingPrerequisite(
                "Container image not available. Ensure the image is built "
                "before running container commands."
            )
        worktree = _require_worktree(context)

        logger.info("run-command in %s: %s %s", context.container_image, command, args)
        result = self.runtime.run_transient(
            context.container_image,
            worktree,
            [command, *args],
            cwd=cwd,
            env=env,
        )
        return HookResult.ok(f"Executed '{command}' inside container", _output_data(result))


def default_package_manager() -> str:
    """``OPENMANAGER_DEFAULT_PACKAGE_MANAGER`` when valid, else pnpm."""
    value = os.environ.get(PACKAGE_MANAGER_ENV, "").strip()
    if value in PACKAGE_MANAGERS:
        return value
    return FALLBACK_PACKAGE_MANAGER


class InstallNodeDependenciesHook(SessionHook):
    """Install Node dependencies in the worktree (in-container by default)."""

    name = "install-node-deps"

    def __init__(self, run_command_hook: RunCommandHook) -> None:
        self.run_command_hook = run_command_hook

    def execute(
        self,
        context: "SessionContext",
        options: Mapping[str, Any],
        *,
        phase_config: Optional["DockerConfig"] = None,
    ) -> HookResult:
        validate_payload(dict(options), "install-node-deps")
        package_manager = options.get("packageManager") or default_package_manager()
        args = options.get("additionalArgs")
        if args is None:
            args = ["install"]

        return self.run_command_hook.execute(
            context,
            {
                "command": package_manager,
                "args": list(args),
                "runInContainer": options.get("runInContainer", True),
            },
            phase_config=phase_config,
        )


def create_pre_session_registry(runtime: Optional[ContainerRuntime] = None) -> HookRegistry:
    """Registry holding the built-in pre-session hooks."""
    registry = HookRegistry(label="Pre-session hook")
    run_command_hook = RunCommandHook(runtime)
    registry.register(run_command_hook.name, run_command_hook)
    registry.register(InstallNodeDependenciesHook.name, InstallNodeDependenciesHook(run_command_hook))
    return registry


__all__ = [
    "RunCommandHook",
    "InstallNodeDependenciesHook",
    "create_pre_session_registry",
    "default_package_manager",
    "PACKAGE_MANAGER_ENV",
]

"""Container runtime adapter: launch, attach to and wait on agent containers."""
from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from openmanager.core.exceptions import AgentExitError, ExternalToolFailure, MissingPrerequisite
from openmanager.core.image.shared import (
    CONTAINER_NAME_PREFIX,
    PROMPT_TARGET_DIR,
    SESSION_LABEL,
    WORKTREE_TARGET,
    get_agent_profile,
)
from openmanager.core.utils.subprocess import run_docker_command

if TYPE_CHECKING:
    from openmanager.core.session.context import SessionContext

logger = logging.getLogger(__name__)

DockerRunner = Callable[..., Any]


@dataclass(frozen=True)
class AttachOutcome:
    """How an interactive attach ended.

    ``detached`` is True when the operator let go of the terminal while the
    container kept running; ``exit_code`` is the attach process status.
    """

    container_id: str
    exit_code: int
    detached: bool


class ContainerRuntime(Protocol):
    """Capabilities the session lifecycle needs from a container engine."""

    def launch(self, context: "SessionContext", image: str, *, interactive: bool) -> str: ...

    def attach(self, container_id: str) -> AttachOutcome: ...

    def wait(self, container_id: str) -> int: ...

    def is_running(self, container_id: str) -> bool: ...

    def run_transient(
        self,
        image: str,
        worktree_path: Path,
        command: Sequence[str],
        *,
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> Any: ...


def container_name(session_id: str) -> str:
    return f"{CONTAINER_NAME_PREFIX}{session_id}"


def worktree_mount(worktree_path: Path) -> List[str]:
    return ["--mount", f"type=bind,src={worktree_path},dst={WORKTREE_TARGET}"]


def prompt_mount(prompt_dir: Path) -> List[str]:
    return ["--mount", f"type=bind,src={prompt_dir},dst={PROMPT_TARGET_DIR},ro"]


def container_workdir(relative: Optional[str] = None) -> str:
    """In-container working directory, optionally relocated under the worktree."""
    if not relative:
        return WORKTREE_TARGET
    return posixpath.normpath(posixpath.join(WORKTREE_TARGET, relative.replace("\\", "/")))


def env_args(env: Mapping[str, str]) -> List[str]:
    args: List[str] = []
    for key, value in env.items():
        args.extend(["-e", f"{key}={value}"])
    return args


def session_environment(context: "SessionContext") -> Dict[str, str]:
    prompt_target = posixpath.join(PROMPT_TARGET_DIR, context.prompt_path.name)
    return {
        "OPENMANAGER_SESSION_ID": context.session_id,
        "OPENMANAGER_AGENT_ID": context.agent_id,
        "OPENMANAGER_REPO_PATH": str(context.repo_path),
        "OPENMANAGER_WORKTREE": WORKTREE_TARGET,
        "OPENMANAGER_PROMPT_FILE": prompt_target,
    }


def build_launch_args(context: "SessionContext", image: str, *, interactive: bool) -> List[str]:
    """Arguments (without the runtime executable) for the agent container."""
    if context.worktree_path is None:
        raise MissingPrerequisite(
            "Session worktree path is not set.",
            context={"session_id": context.session_id},
        )

    profile = get_agent_profile(context.agent_id)
    prompt_text = context.read_prompt().strip()

    args = ["run", "--detach", "--rm"]
    if interactive:
        args.extend(["--interactive", "--tty"])
    args.extend([
        "--name", container_name(context.session_id),
        "--label", f"{SESSION_LABEL}={context.session_id}",
        "--workdir", WORKTREE_TARGET,
    ])
    args.extend(worktree_mount(context.worktree_path))
    args.extend(prompt_mount(context.prompt_dir))
    args.extend(env_args(session_environment(context)))
    args.append(image)
    args.extend(profile.entry_command(prompt_text))
    return args


class DockerRuntime:
    """:class:`ContainerRuntime` backed by the docker-compatible CLI.

    Args:
        runner: Callable with the :func:`run_docker_command` signature.
    """

    def __init__(self, runner: Optional[DockerRunner] = None) -> None:
        self._run = runner or run_docker_command

    def launch(self, context: "SessionContext", image: str, *, interactive: bool) -> str:
        args = build_launch_args(context, image, interactive=interactive)
        logger.info("launching container %s from %s", container_name(context.session_id), image)
        result = self._run(args)
        container_id = (result.stdout or "").strip()
        if not container_id:
            raise ExternalToolFailure(
                f"Container runtime returned no container id for session {context.session_id}",
                argv=args,
            )
        return container_id

    def attach(self, container_id: str) -> AttachOutcome:
        """Hand the terminal to the container until detach or exit.

        Raises:
            AgentExitError: If the container exited with a non-zero status.
        """
        logger.info("attaching to container %s", container_id)
        result = self._run(["attach", container_id], capture_output=False, check=False)
        exit_code = int(result.returncode)

        if self.is_running(container_id):
            logger.info("detached from container %s (still running)", container_id)
            return AttachOutcome(container_id=container_id, exit_code=exit_code, detached=True)

        if exit_code != 0:
            raise AgentExitError(
                f"Agent container {container_id} exited with code {exit_code}.",
                argv=["attach", container_id],
                returncode=exit_code,
            )
        return AttachOutcome(container_id=container_id, exit_code=exit_code, detached=False)

    def wait(self, container_id: str) -> int:
        """Block until the container exits.

        Raises:
            AgentExitError: If waiting fails or the container exits non-zero.
        """
        logger.info("waiting for container %s", container_id)
        try:
            result = self._run(["wait", container_id])
        except ExternalToolFailure as exc:
            raise AgentExitError(
                f"Failed to wait for container {container_id}: {exc}",
                argv=exc.argv,
                returncode=exc.returncode,
                stdout=exc.stdout,
                stderr=exc.stderr,
            ) from exc

        output = (result.stdout or "").strip().splitlines()
        try:
            exit_code = int(output[-1]) if output else 0
        except ValueError:
            exit_code = 0
            logger.warning("unexpected wait output for %s: %r", container_id, result.stdout)

        if exit_code != 0:
            raise AgentExitError(
                f"Agent container {container_id} exited with code {exit_code}.",
                argv=["wait", container_id],
                returncode=exit_code,
            )
        return exit_code

    def is_running(self, container_id: str) -> bool:
        result = self._run(
            ["container", "inspect", "--format", "{{.State.Running}}", container_id],
            check=False,
        )
        if result.returncode != 0:
            return False
        return (result.stdout or "").strip().lower() == "true"

    def run_transient(
        self,
        image: str,
        worktree_path: Path,
        command: Sequence[str],
        *,
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Run ``command`` to completion in a throwaway container on the worktree mount."""
        args = ["run", "--rm", "--workdir", container_workdir(cwd)]
        args.extend(worktree_mount(Path(worktree_path)))
        args.extend(env_args(env or {}))
        args.append(image)
        args.extend(command)
        return self._run(args)


__all__ = [
    "AttachOutcome",
    "ContainerRuntime",
    "DockerRuntime",
    "build_launch_args",
    "container_name",
    "container_workdir",
    "session_environment",
]

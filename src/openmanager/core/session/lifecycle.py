"""Session lifecycle: the ordered pipeline from worktree to post-session hooks.

States advance strictly forward::

    Created -> WorktreeReady -> [LocalChangesSynced] -> ImageResolved
            -> PreHooksRun -> ContainerLaunched -> AgentFinished
            -> PostHooksRun -> Done

Everything up to the pre-session hooks fails fast: the first error moves the
session to ``Failed`` and propagates. Once a container has been launched,
post-session hooks always run, even when the agent exits abnormally or the
wait is interrupted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from openmanager.core.exceptions import HookFailure, OpenManagerError, SessionStateError
from openmanager.core.hooks import HookRegistry, HookResult, create_post_session_registry, create_pre_session_registry
from openmanager.core.image import ImageCache
from openmanager.core.runtime import ContainerRuntime, DockerRuntime
from openmanager.core.utils.git import resolve_commit
from openmanager.core.worktree import create_worktree, sync_local_changes

from .context import SessionContext, create_session_context
from .options import StartOptions
from .reporting import FAILURE_MARK, ProgressReporter

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CREATED = "Created"
    WORKTREE_READY = "WorktreeReady"
    LOCAL_CHANGES_SYNCED = "LocalChangesSynced"
    IMAGE_RESOLVED = "ImageResolved"
    PRE_HOOKS_RUN = "PreHooksRun"
    CONTAINER_LAUNCHED = "ContainerLaunched"
    AGENT_FINISHED = "AgentFinished"
    POST_HOOKS_RUN = "PostHooksRun"
    DONE = "Done"
    FAILED = "Failed"


TERMINAL_STATES = frozenset({SessionState.DONE, SessionState.FAILED})

TRANSITIONS: Dict[SessionState, Tuple[SessionState, ...]] = {
    SessionState.CREATED: (SessionState.WORKTREE_READY,),
    SessionState.WORKTREE_READY: (SessionState.LOCAL_CHANGES_SYNCED, SessionState.IMAGE_RESOLVED),
    SessionState.LOCAL_CHANGES_SYNCED: (SessionState.IMAGE_RESOLVED,),
    SessionState.IMAGE_RESOLVED: (SessionState.PRE_HOOKS_RUN,),
    SessionState.PRE_HOOKS_RUN: (SessionState.CONTAINER_LAUNCHED,),
    SessionState.CONTAINER_LAUNCHED: (SessionState.AGENT_FINISHED,),
    SessionState.AGENT_FINISHED: (SessionState.POST_HOOKS_RUN,),
    SessionState.POST_HOOKS_RUN: (SessionState.DONE,),
    SessionState.DONE: (),
    SessionState.FAILED: (),
}


def allowed_targets(current: SessionState) -> List[SessionState]:
    targets = list(TRANSITIONS.get(current, ()))
    if current not in TERMINAL_STATES:
        targets.append(SessionState.FAILED)
    return targets


@dataclass
class SessionReport:
    """What happened during one session run."""

    context: Optional[SessionContext]
    state: SessionState = SessionState.CREATED
    pre_hook_results: List[Tuple[str, HookResult]] = field(default_factory=list)
    post_hook_results: List[Tuple[str, HookResult]] = field(default_factory=list)
    container_id: Optional[str] = None
    agent_error: Optional[OpenManagerError] = None
    history: List[SessionState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is SessionState.DONE and self.agent_error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session": self.context.to_dict() if self.context else None,
            "state": self.state.value,
            "containerId": self.container_id,
            "preSessionHooks": [{"name": n, **r.to_dict()} for n, r in self.pre_hook_results],
            "postSessionHooks": [{"name": n, **r.to_dict()} for n, r in self.post_hook_results],
            "agentError": self.agent_error.to_json_error() if self.agent_error else None,
            "history": [s.value for s in self.history],
        }


class SessionLifecycle:
    """Run one session end to end.

    Collaborators are injectable so the pipeline can run against fakes:

    Args:
        options: Validated start options.
        runtime: Container runtime (docker CLI by default).
        image_cache: Image resolver (built for ``options.repo_path`` by default).
        pre_hooks: Pre-session registry (built-ins by default).
        post_hooks: Post-session registry (built-ins by default).
        reporter: Receives operator-facing progress lines.
        session_id: Fixed id instead of a generated one.
    """

    def __init__(
        self,
        options: StartOptions,
        *,
        runtime: Optional[ContainerRuntime] = None,
        image_cache: Optional[ImageCache] = None,
        pre_hooks: Optional[HookRegistry] = None,
        post_hooks: Optional[HookRegistry] = None,
        reporter: Optional[ProgressReporter] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.options = options
        self.runtime: ContainerRuntime = runtime or DockerRuntime()
        self.image_cache = image_cache or ImageCache(options.repo_path, agent_id=options.agent_id)
        self.pre_hooks = pre_hooks or create_pre_session_registry(self.runtime)
        self.post_hooks = post_hooks or create_post_session_registry()
        self.reporter = reporter or ProgressReporter()
        self._session_id = session_id
        self.state = SessionState.CREATED
        self.report = SessionReport(context=None, history=[SessionState.CREATED])

    @property
    def context(self) -> Optional[SessionContext]:
        return self.report.context

    def _require_context(self) -> SessionContext:
        if self.context is None:
            raise SessionStateError("Session context has not been created yet.")
        return self.context

    def _transition(self, target: SessionState) -> None:
        if target not in allowed_targets(self.state):
            allowed = ", ".join(s.value for s in allowed_targets(self.state)) or "none"
            raise SessionStateError(
                f"Invalid transition {self.state.value!r} -> {target.value!r}: not allowed. "
                f"Allowed next: {allowed}.",
                session_id=self.context.session_id if self.context else None,
            )
        logger.debug("session %s: %s -> %s",
                     self.context.session_id if self.context else "?", self.state.value, target.value)
        self.state = target
        self.report.state = target
        self.report.history.append(target)

    def run(self) -> SessionReport:
        """Run the pipeline.

        Returns:
            The session report. An abnormal agent exit is recorded in
            ``report.agent_error`` after post-session hooks have run.

        Raises:
            OpenManagerError: For any failure before the container launched.
            SessionStateError: If :meth:`run` is called twice.
        """
        if self.state is not SessionState.CREATED or self.context is not None:
            raise SessionStateError("Session lifecycle has already run.")

        try:
            self._prepare()
            container_id = self._launch()
        except BaseException:
            if self.state not in TERMINAL_STATES:
                self._transition(SessionState.FAILED)
            raise

        self._run_agent_then_post_hooks(container_id)
        return self.report

    def _prepare(self) -> None:
        options = self.options
        context = create_session_context(
            options.repo_path,
            git_ref=options.git_ref,
            agent_id=options.agent_id,
            prompt=options.prompt,
            session_id=self._session_id,
        )
        self.report.context = context
        self.reporter.phase(f"Session {context.session_id} created.")

        worktree_path = create_worktree(context.repo_path, context.git_ref, context.session_id)
        context.bind_worktree(worktree_path)
        context.bind_base_commit(resolve_commit(worktree_path, "HEAD"))
        self._transition(SessionState.WORKTREE_READY)
        self.reporter.phase(f"Worktree ready at {worktree_path} ({context.git_ref}).")

        if options.include_local_changes:
            sync_local_changes(context.repo_path, worktree_path)
            self._transition(SessionState.LOCAL_CHANGES_SYNCED)
            self.reporter.phase("Local changes synced into worktree.")

        image = self.image_cache.resolve_image(options.docker_config)
        context.bind_image(image)
        self._transition(SessionState.IMAGE_RESOLVED)
        self.reporter.phase(f"Using container image {image}.")

        self._run_pre_hooks(context)
        self._transition(SessionState.PRE_HOOKS_RUN)

    def _run_pre_hooks(self, context: SessionContext) -> None:
        invocations = self.options.pre_session_hooks
        if not invocations:
            return

        self.reporter.phase(
            "Running pre-session hooks: " + ", ".join(inv.name for inv in invocations)
        )
        for invocation in invocations:
            result = self.pre_hooks.invoke(
                invocation.name,
                context,
                invocation.options,
                phase_config=self.options.docker_config,
            )
            self.report.pre_hook_results.append((invocation.name, result))
            if not result.success:
                raise HookFailure(
                    f"{FAILURE_MARK} {invocation.name}: {result.message}",
                    hook=invocation.name,
                    context={"session_id": context.session_id},
                )
            self.reporter.hook_result(invocation.name, result)

    def _launch(self) -> str:
        context = self._require_context()
        if context.container_image is None:
            raise SessionStateError(
                f"Container image has not been resolved for session {context.session_id}.",
                session_id=context.session_id,
            )
        container_id = self.runtime.launch(
            context,
            context.container_image,
            interactive=self.options.interactive,
        )
        self.report.container_id = container_id
        self._transition(SessionState.CONTAINER_LAUNCHED)
        self.reporter.phase(f"Container {container_id} launched.")
        return container_id

    def _run_agent_then_post_hooks(self, container_id: str) -> None:
        try:
            self._await_agent(container_id)
        except OpenManagerError as exc:
            logger.warning("agent for container %s ended abnormally: %s", container_id, exc)
            self.report.agent_error = exc
            self.reporter.warning(f"Agent error: {exc}")
        finally:
            self._transition(SessionState.AGENT_FINISHED)
            self._run_post_hooks()
            self._transition(SessionState.POST_HOOKS_RUN)
            self._transition(SessionState.DONE)

    def _await_agent(self, container_id: str) -> None:
        if not self.options.interactive:
            self.runtime.wait(container_id)
            return

        outcome = self.runtime.attach(container_id)
        if outcome.detached:
            self.reporter.phase(
                f"Detached from container {container_id}; waiting for it to exit before cleanup."
            )
            self.runtime.wait(container_id)

    def _run_post_hooks(self) -> None:
        context = self._require_context()
        names = list(self.options.post_session_hooks)
        if not names:
            return

        self.reporter.phase("Running post-session hooks: " + ", ".join(names))
        results = self.post_hooks.invoke_sequence(names, context, self.options.post_hook_options())
        for name, result in results:
            self.report.post_hook_results.append((name, result))
            self.reporter.hook_result(name, result)


def start_session(options: StartOptions, **kwargs: Any) -> SessionReport:
    """Run a session and raise the agent's error, if any, after cleanup."""
    report = SessionLifecycle(options, **kwargs).run()
    if report.agent_error is not None:
        raise report.agent_error
    return report


__all__ = [
    "SessionState",
    "TRANSITIONS",
    "allowed_targets",
    "SessionReport",
    "SessionLifecycle",
    "start_session",
]

from __future__ import annotations

from pathlib import Path
from typing import Any, List

import pytest

from helpers.fakes import FakeImageCache, FakeRuntime
from helpers.git_helpers import git, git_list_worktrees
from openmanager.core.config import DockerConfig, HookInvocation
from openmanager.core.exceptions import AgentExitError, ExternalToolFailure, HookFailure, SessionStateError
from openmanager.core.hooks import HookResult
from openmanager.core.session import (
    PromptSource,
    ProgressReporter,
    SessionLifecycle,
    SessionState,
    StartOptions,
    create_session_context,
    start_session,
)


class ListReporter(ProgressReporter):
    def __init__(self) -> None:
        self.lines: List[str] = []

    def phase(self, message: str) -> None:
        self.lines.append(message)

    def warning(self, message: str) -> None:
        self.lines.append(f"warning: {message}")

    def hook_result(self, name: str, result: HookResult) -> None:
        self.lines.append(f"{name}: {result.message}")


def _options(repo: Path, **overrides: Any) -> StartOptions:
    values: dict = {
        "repo_path": repo.resolve(),
        "prompt": PromptSource.from_text("Make it better"),
        "git_ref": "main",
        "interactive": False,
    }
    values.update(overrides)
    return StartOptions(**values)


def _lifecycle(repo: Path, runtime: FakeRuntime, **overrides: Any) -> SessionLifecycle:
    return SessionLifecycle(
        _options(repo, **overrides),
        runtime=runtime,
        image_cache=FakeImageCache(),
        reporter=ListReporter(),
        session_id="life1",
    )


def test_happy_path_without_changes(git_repo: Path) -> None:
    runtime = FakeRuntime()
    lifecycle = _lifecycle(git_repo, runtime)

    report = lifecycle.run()

    assert report.ok
    assert report.history == [
        SessionState.CREATED,
        SessionState.WORKTREE_READY,
        SessionState.IMAGE_RESOLVED,
        SessionState.PRE_HOOKS_RUN,
        SessionState.CONTAINER_LAUNCHED,
        SessionState.AGENT_FINISHED,
        SessionState.POST_HOOKS_RUN,
        SessionState.DONE,
    ]
    assert runtime.events == ["launch", "wait"]
    assert runtime.launched[0]["image"] == "openmanager/opencode:latest"
    assert report.container_id == "container-life1"

    names = [name for name, _ in report.post_hook_results]
    assert names == ["create-patch", "prune-worktree"]
    assert all(result.success for _, result in report.post_hook_results)
    assert report.post_hook_results[0][1].data is None

    context = report.context
    assert context is not None
    assert context.base_commit == git(git_repo, "rev-parse", "main").strip()
    assert not context.worktree_path.exists()
    assert git_list_worktrees(git_repo) == [git_repo.resolve()]


def test_agent_changes_are_captured_in_patch(git_repo: Path) -> None:
    def agent(worktree: Path) -> None:
        (worktree / "README.md").write_text("# sample\nimproved\n", encoding="utf-8")
        (worktree / "NEW.md").write_text("new\n", encoding="utf-8")

    report = _lifecycle(git_repo, FakeRuntime(on_wait=agent)).run()

    assert report.ok
    patch_result = dict(report.post_hook_results)["create-patch"]
    patch_path = Path(patch_result.data["patchPath"])
    assert patch_path == report.context.session_root / "session-life1.patch"
    content = patch_path.read_text(encoding="utf-8")
    assert "+improved" in content
    assert "NEW.md" in content
    # the primary checkout is untouched
    assert (git_repo / "README.md").read_text(encoding="utf-8") == "# sample\n"


def test_agent_failure_still_runs_post_hooks(git_repo: Path) -> None:
    runtime = FakeRuntime(exit_code=3, on_wait=lambda wt: (wt / "partial.txt").write_text("x\n"))
    lifecycle = _lifecycle(git_repo, runtime)

    report = lifecycle.run()

    assert not report.ok
    assert report.state is SessionState.DONE
    assert isinstance(report.agent_error, AgentExitError)
    assert [name for name, _ in report.post_hook_results] == ["create-patch", "prune-worktree"]
    assert Path(dict(report.post_hook_results)["create-patch"].data["patchPath"]).is_file()
    assert any(line.startswith("warning: Agent error") for line in lifecycle.reporter.lines)


def test_start_session_raises_agent_error_after_cleanup(git_repo: Path) -> None:
    runtime = FakeRuntime(exit_code=1)

    with pytest.raises(AgentExitError):
        start_session(
            _options(git_repo),
            runtime=runtime,
            image_cache=FakeImageCache(),
            session_id="life2",
        )

    assert not (git_repo / ".openmanager" / "worktrees" / "life2").exists()


def test_pre_hook_failure_stops_before_launch(git_repo: Path) -> None:
    runtime = FakeRuntime()
    lifecycle = _lifecycle(
        git_repo,
        runtime,
        pre_session_hooks=[
            HookInvocation(name="run-command", options={"command": "git", "args": ["no-such-subcommand"]}),
            HookInvocation(name="install-node-deps"),
        ],
    )

    with pytest.raises(HookFailure) as excinfo:
        lifecycle.run()

    assert excinfo.value.context["hook"] == "run-command"
    assert str(excinfo.value).startswith("✗ run-command:")
    assert lifecycle.state is SessionState.FAILED
    assert runtime.launched == []
    assert runtime.transient == []
    assert len(lifecycle.report.pre_hook_results) == 1


def test_unknown_pre_hook_fails(git_repo: Path) -> None:
    lifecycle = _lifecycle(git_repo, FakeRuntime(), pre_session_hooks=[HookInvocation(name="nope")])

    with pytest.raises(HookFailure, match="Pre-session hook 'nope' not found"):
        lifecycle.run()


def test_pre_hooks_run_in_order_with_docker_config(git_repo: Path) -> None:
    runtime = FakeRuntime()
    cache = FakeImageCache(image="openmanager/opencode:abc123abc123")
    config = DockerConfig(steps=["RUN echo hi"])
    lifecycle = SessionLifecycle(
        _options(
            git_repo,
            docker_config=config,
            pre_session_hooks=[
                HookInvocation(name="run-command", options={"command": "git", "args": ["status"]}),
                HookInvocation(name="install-node-deps", options={"packageManager": "npm"}),
            ],
        ),
        runtime=runtime,
        image_cache=cache,
        session_id="life3",
    )

    report = lifecycle.run()

    assert report.ok
    assert cache.calls == [config]
    assert [name for name, _ in report.pre_hook_results] == ["run-command", "install-node-deps"]
    assert runtime.transient[0]["image"] == "openmanager/opencode:abc123abc123"
    assert runtime.transient[0]["command"] == ["npm", "install"]
    assert runtime.launched[0]["image"] == "openmanager/opencode:abc123abc123"


def test_include_local_changes(git_repo: Path) -> None:
    (git_repo / "README.md").write_text("# sample\nlocal edit\n", encoding="utf-8")
    (git_repo / "scratch.txt").write_text("scratch\n", encoding="utf-8")
    seen = {}

    def agent(worktree: Path) -> None:
        seen["readme"] = (worktree / "README.md").read_text(encoding="utf-8")
        seen["scratch"] = (worktree / "scratch.txt").is_file()

    report = _lifecycle(git_repo, FakeRuntime(on_wait=agent), include_local_changes=True).run()

    assert SessionState.LOCAL_CHANGES_SYNCED in report.history
    assert seen == {"readme": "# sample\nlocal edit\n", "scratch": True}


def test_interactive_attach_and_detach(git_repo: Path) -> None:
    attached = FakeRuntime()
    report = _lifecycle(git_repo, attached, interactive=True).run()
    assert report.ok
    assert attached.events == ["launch", "attach"]
    assert attached.launched[0]["interactive"] is True


def test_detached_session_waits_before_post_hooks(git_repo: Path) -> None:
    runtime = FakeRuntime(detach=True)
    lifecycle = _lifecycle(git_repo, runtime, interactive=True)

    report = lifecycle.run()

    assert report.ok
    assert runtime.events == ["launch", "attach", "wait"]
    assert any("Detached from container" in line for line in lifecycle.reporter.lines)


def test_launch_failure_marks_session_failed(git_repo: Path) -> None:
    lifecycle = _lifecycle(git_repo, FakeRuntime(fail_launch=True))

    with pytest.raises(ExternalToolFailure):
        lifecycle.run()

    assert lifecycle.state is SessionState.FAILED
    assert lifecycle.report.post_hook_results == []


def test_bad_ref_fails_before_image_resolution(git_repo: Path) -> None:
    cache = FakeImageCache()
    lifecycle = SessionLifecycle(
        _options(git_repo, git_ref="does-not-exist"),
        runtime=FakeRuntime(),
        image_cache=cache,
        session_id="life4",
    )

    with pytest.raises(ExternalToolFailure):
        lifecycle.run()

    assert lifecycle.report.history == [SessionState.CREATED, SessionState.FAILED]
    assert cache.calls == []


def test_lifecycle_runs_once(git_repo: Path) -> None:
    lifecycle = _lifecycle(git_repo, FakeRuntime())
    lifecycle.run()

    with pytest.raises(SessionStateError):
        lifecycle.run()


def test_invalid_transition_is_rejected(git_repo: Path) -> None:
    lifecycle = _lifecycle(git_repo, FakeRuntime())

    with pytest.raises(SessionStateError, match="Allowed next: WorktreeReady, Failed"):
        lifecycle._transition(SessionState.DONE)


def test_launch_requires_context_and_image(git_repo: Path) -> None:
    runtime = FakeRuntime()
    lifecycle = _lifecycle(git_repo, runtime)

    with pytest.raises(SessionStateError, match="has not been created"):
        lifecycle._launch()
    with pytest.raises(SessionStateError, match="has not been created"):
        lifecycle._run_post_hooks()

    lifecycle.report.context = create_session_context(
        git_repo,
        git_ref="main",
        agent_id="opencode",
        prompt=PromptSource.from_text("x"),
        session_id="life5",
    )
    with pytest.raises(SessionStateError, match="Container image has not been resolved for session life5"):
        lifecycle._launch()
    assert runtime.launched == []

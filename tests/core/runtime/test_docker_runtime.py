from __future__ import annotations

from pathlib import Path

import pytest

from openmanager.core.exceptions import AgentExitError, MissingPrerequisite
from openmanager.core.runtime import DockerRuntime, build_launch_args
from openmanager.core.runtime.docker import container_workdir
from openmanager.core.session.context import PromptSource, create_session_context
from helpers.fakes import RecordingDockerRunner


@pytest.fixture
def context(tmp_path: Path):
    repo = tmp_path / "repo"
    repo.mkdir()
    ctx = create_session_context(
        repo,
        git_ref="HEAD",
        agent_id="opencode",
        prompt=PromptSource.from_text("  fix the lint errors\n"),
        session_id="abc123",
    )
    worktree = repo / ".openmanager" / "worktrees" / "abc123"
    worktree.mkdir(parents=True)
    ctx.bind_worktree(worktree)
    return ctx


def test_launch_args_bind_worktree_and_prompt(context) -> None:
    args = build_launch_args(context, "openmanager/opencode:latest", interactive=False)

    assert args[:3] == ["run", "--detach", "--rm"]
    assert "--tty" not in args
    assert args[args.index("--name") + 1] == "openmanager-session-abc123"
    assert args[args.index("--label") + 1] == "openmanager.session=abc123"
    assert args[args.index("--workdir") + 1] == "/openmanager/worktree"
    assert f"type=bind,src={context.worktree_path},dst=/openmanager/worktree" in args
    assert f"type=bind,src={context.prompt_path.parent},dst=/openmanager/prompt,ro" in args
    for env in (
        "OPENMANAGER_SESSION_ID=abc123",
        "OPENMANAGER_AGENT_ID=opencode",
        f"OPENMANAGER_REPO_PATH={context.repo_path}",
        "OPENMANAGER_WORKTREE=/openmanager/worktree",
        "OPENMANAGER_PROMPT_FILE=/openmanager/prompt/prompt.txt",
    ):
        assert env in args
    assert args[-4:] == ["openmanager/opencode:latest", "opencode", "run", "fix the lint errors"]


def test_interactive_launch_allocates_tty(context) -> None:
    args = build_launch_args(context, "img", interactive=True)
    assert "--interactive" in args and "--tty" in args


def test_launch_requires_worktree(tmp_path: Path) -> None:
    ctx = create_session_context(
        tmp_path,
        git_ref="HEAD",
        agent_id="opencode",
        prompt=PromptSource.from_text("x"),
    )
    with pytest.raises(MissingPrerequisite):
        DockerRuntime(runner=RecordingDockerRunner()).launch(ctx, "img", interactive=False)


def test_launch_returns_container_id(context) -> None:
    runner = RecordingDockerRunner(container_id="deadbeef")
    assert DockerRuntime(runner=runner).launch(context, "img", interactive=False) == "deadbeef"


def test_wait_success_and_failure() -> None:
    assert DockerRuntime(runner=RecordingDockerRunner(wait_output="0\n")).wait("c1") == 0

    with pytest.raises(AgentExitError) as excinfo:
        DockerRuntime(runner=RecordingDockerRunner(wait_output="137\n")).wait("c1")
    assert excinfo.value.returncode == 137


def test_attach_distinguishes_detach_from_exit() -> None:
    detached = DockerRuntime(runner=RecordingDockerRunner(attach_returncode=1, running=True)).attach("c1")
    assert detached.detached is True

    exited = DockerRuntime(runner=RecordingDockerRunner(attach_returncode=0, running=False)).attach("c1")
    assert exited.detached is False and exited.exit_code == 0

    with pytest.raises(AgentExitError, match="exited with code 2"):
        DockerRuntime(runner=RecordingDockerRunner(attach_returncode=2, running=False)).attach("c1")


def test_run_transient_uses_same_mount_layout(tmp_path: Path) -> None:
    runner = RecordingDockerRunner()
    DockerRuntime(runner=runner).run_transient(
        "img", tmp_path, ["pnpm", "install"], cwd="packages/web", env={"CI": "1"}
    )

    (call,) = runner.calls_for("run")
    assert call == [
        "run", "--rm",
        "--workdir", "/openmanager/worktree/packages/web",
        "--mount", f"type=bind,src={tmp_path},dst=/openmanager/worktree",
        "-e", "CI=1",
        "img", "pnpm", "install",
    ]


def test_container_workdir_normalizes_windows_separators() -> None:
    assert container_workdir(None) == "/openmanager/worktree"
    assert container_workdir("a\\b") == "/openmanager/worktree/a/b"

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import pytest

from openmanager.core.config import DockerConfig, HookInvocation, SessionConfig
from openmanager.core.exceptions import ConfigError, ValidationError
from openmanager.core.hooks import PatchOptions, PrOptions
from openmanager.core.session.options import parse_start_options


def _raw(repo: Path, /, **overrides: Any) -> Dict[str, Any]:
    raw: Dict[str, Any] = {"repo": str(repo), "prompt_text": "do things"}
    raw.update(overrides)
    return raw


def test_defaults(tmp_path: Path) -> None:
    options = parse_start_options(_raw(tmp_path), config=SessionConfig())

    assert options.repo_path == tmp_path.resolve()
    assert options.git_ref == "HEAD"
    assert options.agent_id == "opencode"
    assert options.prompt.text == "do things"
    assert options.interactive is True
    assert options.include_local_changes is False
    assert options.post_session_hooks == ["create-patch", "prune-worktree"]
    assert options.patch_options is None
    assert options.pr_options is None
    assert options.post_hook_options() == {}


def test_both_prompts_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="not both"):
        parse_start_options(_raw(tmp_path, prompt_file="p.txt"), config=SessionConfig())


def test_missing_prompt_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="An initial prompt is required"):
        parse_start_options({"repo": str(tmp_path)}, config=SessionConfig())


@pytest.mark.parametrize("key", ["ref", "agent", "prompt_text", "repo"])
def test_empty_strings_rejected(tmp_path: Path, key: str) -> None:
    with pytest.raises(ValidationError):
        parse_start_options(_raw(tmp_path, **{key: ""}), config=SessionConfig())


def test_prompt_file_resolved_against_repo(tmp_path: Path) -> None:
    (tmp_path / "prompts").mkdir()
    (tmp_path / "prompts" / "task.txt").write_text("task\n", encoding="utf-8")

    options = parse_start_options(
        {"repo": str(tmp_path), "prompt_file": "prompts/task.txt"},
        config=SessionConfig(),
    )

    assert options.prompt.file == (tmp_path / "prompts" / "task.txt").resolve()


def test_missing_prompt_file_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="not readable"):
        parse_start_options({"repo": str(tmp_path), "prompt_file": "nope.txt"}, config=SessionConfig())


def test_missing_repo_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="does not exist"):
        parse_start_options(_raw(tmp_path / "missing"), config=SessionConfig())


def test_unknown_agent_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="Unknown agent 'claude'"):
        parse_start_options(_raw(tmp_path, agent="claude"), config=SessionConfig())


def test_empty_hook_list_falls_back_to_defaults(tmp_path: Path) -> None:
    options = parse_start_options(_raw(tmp_path, post_session_hooks=[]), config=SessionConfig())
    assert options.post_session_hooks == ["create-patch", "prune-worktree"]

    options = parse_start_options(_raw(tmp_path, post_session_hooks=["create-pr"]), config=SessionConfig())
    assert options.post_session_hooks == ["create-pr"]


def test_patch_and_pr_options_only_when_flags_given(tmp_path: Path) -> None:
    options = parse_start_options(
        _raw(
            tmp_path,
            patch_file_name="x.patch",
            pr_auto_push=True,
            pr_title="Title",
            non_interactive=True,
            include_local_changes=True,
        ),
        config=SessionConfig(),
    )

    assert options.patch_options == PatchOptions(patch_file_name="x.patch")
    assert options.pr_options == PrOptions(title="Title", auto_push=True)
    assert options.interactive is False
    assert options.include_local_changes is True
    assert options.post_hook_options() == {
        "create-patch": {"includeBaseDiff": False, "patchFileName": "x.patch"},
        "create-pr": {"autoPush": True, "title": "Title"},
    }


def test_explicit_no_push_still_creates_pr_options(tmp_path: Path) -> None:
    options = parse_start_options(_raw(tmp_path, pr_auto_push=False), config=SessionConfig())
    assert options.pr_options == PrOptions(auto_push=False)


def test_config_is_carried_over(tmp_path: Path) -> None:
    config = SessionConfig(
        docker=DockerConfig(base_image="node:22"),
        pre_session_hooks=[HookInvocation(name="install-node-deps")],
    )

    options = parse_start_options(_raw(tmp_path), config=config)

    assert options.docker_config == DockerConfig(base_image="node:22")
    assert options.pre_session_hooks == [HookInvocation(name="install-node-deps")]


def test_config_is_loaded_from_repository(tmp_path: Path) -> None:
    (tmp_path / "openmanager").mkdir()
    (tmp_path / "openmanager" / "config.yml").write_text("docker:\n  steps: ['RUN x']\n", encoding="utf-8")

    options = parse_start_options(_raw(tmp_path))

    assert options.docker_config == DockerConfig(steps=["RUN x"])


def test_invalid_repository_config_surfaces(tmp_path: Path) -> None:
    (tmp_path / ".openmanager").mkdir()
    (tmp_path / ".openmanager" / "config.yml").write_text("nope: 1\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        parse_start_options(_raw(tmp_path))


def test_prompt_file_must_be_utf8(tmp_path: Path) -> None:
    (tmp_path / "prompt.txt").write_bytes(b"caf\xe9 fix\n")

    with pytest.raises(ValidationError, match="not valid UTF-8"):
        parse_start_options({"repo": str(tmp_path), "prompt_file": "prompt.txt"}, config=SessionConfig())

    assert not (tmp_path / ".openmanager").exists()

"""Validated start options for a session."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from openmanager.core.config import DockerConfig, HookInvocation, SessionConfig, load_session_config
from openmanager.core.exceptions import ValidationError
from openmanager.core.hooks.post_session import DEFAULT_POST_SESSION_HOOKS, PatchOptions, PrOptions
from openmanager.core.image.shared import AGENT_PROFILES, DEFAULT_AGENT_ID

from .context import PromptSource

DEFAULT_GIT_REF = "HEAD"

_NON_EMPTY_FIELDS = {
    "repo": "Repository path is required",
    "ref": "Git ref must not be empty",
    "agent": "Agent identifier must not be empty",
    "prompt_file": "Prompt file path must not be empty",
    "prompt_text": "Prompt text must not be empty",
}


@dataclass(frozen=True)
class StartOptions:
    repo_path: Path
    prompt: PromptSource
    git_ref: str = DEFAULT_GIT_REF
    agent_id: str = DEFAULT_AGENT_ID
    interactive: bool = True
    include_local_changes: bool = False
    post_session_hooks: List[str] = field(default_factory=lambda: list(DEFAULT_POST_SESSION_HOOKS))
    patch_options: Optional[PatchOptions] = None
    pr_options: Optional[PrOptions] = None
    docker_config: Optional[DockerConfig] = None
    pre_session_hooks: List[HookInvocation] = field(default_factory=list)

    def post_hook_options(self) -> Dict[str, Dict[str, Any]]:
        """Options for the built-in post-session hooks, keyed by hook name."""
        options: Dict[str, Dict[str, Any]] = {}
        if self.patch_options is not None:
            options["create-patch"] = self.patch_options.to_options()
        if self.pr_options is not None:
            options["create-pr"] = self.pr_options.to_options()
        return options


def _check_non_empty(raw: Mapping[str, Any]) -> None:
    for key, message in _NON_EMPTY_FIELDS.items():
        value = raw.get(key)
        if value is not None and not str(value).strip():
            raise ValidationError(message, context={"field": key})


def _resolve_repo_path(value: Optional[str], cwd: Optional[Path]) -> Path:
    base = Path(cwd) if cwd is not None else Path.cwd()
    repo_path = (base / value).resolve() if value else base.resolve()
    if not repo_path.is_dir():
        raise ValidationError(
            f"Repository path {repo_path} does not exist or is not a directory.",
            context={"repo_path": str(repo_path)},
        )
    return repo_path


def _resolve_prompt(prompt_file: Optional[str], prompt_text: Optional[str], repo_path: Path) -> PromptSource:
    if prompt_file and prompt_text:
        raise ValidationError("Specify either --prompt-file or --prompt-text, not both.")
    if not prompt_file and not prompt_text:
        raise ValidationError("An initial prompt is required. Provide --prompt-file or --prompt-text.")

    if prompt_text:
        return PromptSource.from_text(prompt_text)

    path = (repo_path / str(prompt_file)).resolve()
    if not path.is_file() or not os.access(path, os.R_OK):
        raise ValidationError(
            f"Prompt file {path} does not exist or is not readable.",
            context={"prompt_file": str(path)},
        )
    try:
        path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationError(
            f"Prompt file {path} is not valid UTF-8 text: {exc.reason} at byte {exc.start}.",
            context={"prompt_file": str(path)},
        ) from exc
    return PromptSource.from_file(path)


def _patch_options(raw: Mapping[str, Any]) -> Optional[PatchOptions]:
    if not (raw.get("patch_output_dir") or raw.get("patch_file_name") or raw.get("patch_include_base_diff")):
        return None
    output_dir = raw.get("patch_output_dir")
    return PatchOptions(
        output_dir=Path(output_dir).resolve() if output_dir else None,
        patch_file_name=raw.get("patch_file_name") or None,
        include_base_diff=bool(raw.get("patch_include_base_diff")),
    )


def _pr_options(raw: Mapping[str, Any]) -> Optional[PrOptions]:
    if not (
        raw.get("pr_title")
        or raw.get("pr_description")
        or raw.get("pr_branch_prefix")
        or raw.get("pr_auto_push") is not None
    ):
        return None
    return PrOptions(
        title=raw.get("pr_title") or None,
        description=raw.get("pr_description") or None,
        branch_prefix=raw.get("pr_branch_prefix") or None,
        auto_push=raw.get("pr_auto_push") is True,
    )


def parse_start_options(
    raw: Mapping[str, Any],
    *,
    config: Optional[SessionConfig] = None,
    cwd: Optional[Path] = None,
) -> StartOptions:
    """Validate raw CLI-style options and build :class:`StartOptions`.

    ``raw`` uses the argparse destination names (``repo``, ``ref``,
    ``prompt_file``, ``pr_auto_push``...). Unset values are ``None``.
    When ``config`` is omitted the repository's session config is loaded.

    Raises:
        ValidationError: On any malformed input, before side effects.
        ConfigError: If the repository's session config is invalid.
    """
    _check_non_empty(raw)

    repo_path = _resolve_repo_path(raw.get("repo"), cwd)
    agent_id = raw.get("agent") or DEFAULT_AGENT_ID
    if agent_id not in AGENT_PROFILES:
        raise ValidationError(
            f"Unknown agent '{agent_id}'. Known agents: {', '.join(sorted(AGENT_PROFILES))}",
            context={"agent": agent_id},
        )

    prompt = _resolve_prompt(raw.get("prompt_file"), raw.get("prompt_text"), repo_path)

    hooks = [str(h) for h in raw.get("post_session_hooks") or []]
    if not hooks:
        hooks = list(DEFAULT_POST_SESSION_HOOKS)

    if config is None:
        config = load_session_config(repo_path)

    return StartOptions(
        repo_path=repo_path,
        prompt=prompt,
        git_ref=raw.get("ref") or DEFAULT_GIT_REF,
        agent_id=agent_id,
        interactive=not bool(raw.get("non_interactive")),
        include_local_changes=bool(raw.get("include_local_changes")),
        post_session_hooks=hooks,
        patch_options=_patch_options(raw),
        pr_options=_pr_options(raw),
        docker_config=config.docker,
        pre_session_hooks=list(config.pre_session_hooks),
    )


__all__ = ["DEFAULT_GIT_REF", "StartOptions", "parse_start_options"]

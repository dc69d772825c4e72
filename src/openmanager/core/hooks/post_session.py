"""Built-in post-session hooks: patch extraction, PR branch creation, pruning.

These run after the agent container has finished, in the order the operator
requested. Each hook raises on failure; the registry records the failure and
moves on to the next hook.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from openmanager.core.exceptions import ExternalToolFailure, MissingPrerequisite
from openmanager.core.paths import sanitize_ref
from openmanager.core.utils.git import binary_diff, has_pending_changes
from openmanager.core.utils.io import write_bytes
from openmanager.core.utils.subprocess import run_git_command
from openmanager.core.worktree import remove_worktree

from .base import HookRegistry, HookResult, SessionHook

if TYPE_CHECKING:
    from openmanager.core.config import DockerConfig
    from openmanager.core.session.context import SessionContext

logger = logging.getLogger(__name__)

DEFAULT_POST_SESSION_HOOKS = ["create-patch", "prune-worktree"]
DEFAULT_BRANCH_PREFIX = "openmanager/session"


@dataclass(frozen=True)
class PatchOptions:
    output_dir: Optional[Path] = None
    patch_file_name: Optional[str] = None
    include_base_diff: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PatchOptions":
        output_dir = data.get("outputDir")
        return cls(
            output_dir=Path(output_dir) if output_dir else None,
            patch_file_name=data.get("patchFileName") or None,
            include_base_diff=bool(data.get("includeBaseDiff", False)),
        )

    def to_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"includeBaseDiff": self.include_base_diff}
        if self.output_dir is not None:
            options["outputDir"] = str(self.output_dir)
        if self.patch_file_name:
            options["patchFileName"] = self.patch_file_name
        return options


@dataclass(frozen=True)
class PrOptions:
    title: Optional[str] = None
    description: Optional[str] = None
    branch_prefix: Optional[str] = None
    auto_push: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PrOptions":
        return cls(
            title=data.get("title") or None,
            description=data.get("description") or None,
            branch_prefix=data.get("branchPrefix") or None,
            auto_push=data.get("autoPush") is True,
        )

    def to_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"autoPush": self.auto_push}
        if self.title:
            options["title"] = self.title
        if self.description:
            options["description"] = self.description
        if self.branch_prefix:
            options["branchPrefix"] = self.branch_prefix
        return options


def _require_worktree(context: "SessionContext", *, must_exist: bool = True) -> Path:
    if context.worktree_path is None:
        raise MissingPrerequisite("Session worktree path is not available.")
    if must_exist and not context.worktree_path.is_dir():
        raise MissingPrerequisite(f"Session worktree {context.worktree_path} no longer exists.")
    return context.worktree_path


def _with_trailing_newline(diff: bytes) -> bytes:
    return diff if diff.endswith(b"\n") else diff + b"\n"


class CreatePatchHook(SessionHook):
    """Write the session's changes (tracked and untracked) to a patch file.

    Untracked files are marked intent-to-add so the diff includes them; the
    index is reset afterwards even if diffing fails.
    """

    name = "create-patch"

    def execute(
        self,
        context: "SessionContext",
        options: Mapping[str, Any],
        *,
        phase_config: Optional["DockerConfig"] = None,
    ) -> HookResult:
        worktree = _require_worktree(context)
        patch_options = PatchOptions.from_mapping(options)
        output_dir = patch_options.output_dir or context.session_root
        patch_file_name = patch_options.patch_file_name or f"session-{context.session_id}.patch"
        base_ref = context.base_commit or context.git_ref

        run_git_command(["git", "add", "-N", "."], cwd=worktree)
        try:
            diff = binary_diff(worktree, "HEAD")
            base_diff = binary_diff(worktree, base_ref) if patch_options.include_base_diff else b""
        finally:
            run_git_command(["git", "reset", "--mixed", "--quiet"], cwd=worktree)

        if not diff.strip():
            return HookResult.ok("No changes detected in worktree; skipping patch creation.")

        patch_path = write_bytes(Path(output_dir) / patch_file_name, _with_trailing_newline(diff))
        logger.info("patch for session %s written to %s", context.session_id, patch_path)

        data: Dict[str, Any] = {"patchPath": str(patch_path)}
        if base_diff.strip():
            stem = patch_file_name[: -len(".patch")] if patch_file_name.endswith(".patch") else patch_file_name
            base_patch_path = write_bytes(
                Path(output_dir) / f"{stem}-vs-{sanitize_ref(context.git_ref)}.patch",
                _with_trailing_newline(base_diff),
            )
            data["basePatchPath"] = str(base_patch_path)

        return HookResult.ok(f"Patch written to {patch_path}", data)


class CreatePrHook(SessionHook):
    """Commit the session's changes to ``<prefix>/<session_id>`` and optionally push."""

    name = "create-pr"

    def execute(
        self,
        context: "SessionContext",
        options: Mapping[str, Any],
        *,
        phase_config: Optional["DockerConfig"] = None,
    ) -> HookResult:
        worktree = _require_worktree(context)
        pr_options = PrOptions.from_mapping(options)

        if not has_pending_changes(worktree):
            return HookResult.ok("No changes detected in worktree; skipping PR preparation.")

        branch_prefix = pr_options.branch_prefix or DEFAULT_BRANCH_PREFIX
        branch_name = f"{branch_prefix}/{context.session_id}"
        title = pr_options.title or f"OpenManager session {context.session_id}"
        body = pr_options.description or (
            f"Automated changes generated by OpenManager session {context.session_id}."
        )

        run_git_command(["git", "checkout", "-B", branch_name], cwd=worktree, allow_branch_switch=True)
        run_git_command(["git", "add", "."], cwd=worktree)
        run_git_command(["git", "commit", "-m", title, "-m", body], cwd=worktree)
        logger.info("session %s committed to branch %s", context.session_id, branch_name)

        if not pr_options.auto_push:
            return HookResult.ok(
                f"Branch '{branch_name}' created locally. Push to remote to open a PR.",
                {"branchName": branch_name, "pushed": False},
            )

        try:
            run_git_command(["git", "push", "-u", "origin", branch_name], cwd=worktree)
        except ExternalToolFailure as exc:
            logger.warning("push of %s failed: %s", branch_name, exc)
            return HookResult.failed(
                f"Branch '{branch_name}' created but push failed: {exc}",
                {"branchName": branch_name, "pushed": False, "partial": True},
            )

        return HookResult.ok(
            f"Branch '{branch_name}' created and pushed.",
            {"branchName": branch_name, "pushed": True},
        )


class PruneWorktreeHook(SessionHook):
    """Remove the session worktree; a second call is a harmless prune."""

    name = "prune-worktree"

    def execute(
        self,
        context: "SessionContext",
        options: Mapping[str, Any],
        *,
        phase_config: Optional["DockerConfig"] = None,
    ) -> HookResult:
        worktree = _require_worktree(context, must_exist=False)
        if remove_worktree(context.repo_path, worktree):
            return HookResult.ok(f"Worktree '{worktree}' removed and references pruned.")
        return HookResult.ok(f"Worktree '{worktree}' already removed. Pruned stale references.")


def create_post_session_registry() -> HookRegistry:
    """Registry holding the built-in post-session hooks."""
    registry = HookRegistry(label="Hook")
    for hook in (CreatePatchHook(), CreatePrHook(), PruneWorktreeHook()):
        registry.register(hook.name, hook)
    return registry


__all__ = [
    "DEFAULT_POST_SESSION_HOOKS",
    "DEFAULT_BRANCH_PREFIX",
    "PatchOptions",
    "PrOptions",
    "CreatePatchHook",
    "CreatePrHook",
    "PruneWorktreeHook",
    "create_post_session_registry",
]

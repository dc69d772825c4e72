"""Per-session state record and prompt materialization."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from openmanager.core.exceptions import SessionStateError, ValidationError
from openmanager.core.paths import ManagementPaths
from openmanager.core.utils.io import ensure_directory, write_text

logger = logging.getLogger(__name__)

PROMPT_DIR_NAME = "prompt"
PROMPT_FILE_NAME = "prompt.txt"


@dataclass(frozen=True)
class PromptSource:
    """Where the initial prompt comes from: a file path or inline text."""

    file: Optional[Path] = None
    text: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.file is None) == (self.text is None):
            raise ValidationError("Exactly one of prompt file or prompt text must be set.")

    @classmethod
    def from_file(cls, path: Path) -> "PromptSource":
        return cls(file=Path(path))

    @classmethod
    def from_text(cls, text: str) -> "PromptSource":
        return cls(text=text)

    @property
    def kind(self) -> str:
        return "file" if self.file is not None else "text"

    def read(self) -> str:
        if self.file is not None:
            return self.file.read_text(encoding="utf-8")
        return self.text or ""

    def to_dict(self) -> Dict[str, str]:
        if self.file is not None:
            return {"file": str(self.file)}
        return {"text": self.text or ""}


@dataclass
class SessionContext:
    """State of one session, owned by the lifecycle that created it.

    ``worktree_path``, ``container_image`` and ``base_commit`` start unset
    and may each be bound exactly once.
    """

    session_id: str
    repo_path: Path
    session_root: Path
    git_ref: str
    agent_id: str
    prompt: PromptSource
    prompt_path: Path
    worktree_path: Optional[Path] = None
    container_image: Optional[str] = None
    base_commit: Optional[str] = None

    def bind_worktree(self, path: Path) -> None:
        if self.worktree_path is not None:
            raise SessionStateError(
                f"Worktree already bound to {self.worktree_path}",
                session_id=self.session_id,
            )
        self.worktree_path = Path(path)

    def bind_image(self, image: str) -> None:
        if self.container_image is not None:
            raise SessionStateError(
                f"Container image already resolved to {self.container_image}",
                session_id=self.session_id,
            )
        self.container_image = image

    def bind_base_commit(self, commit: str) -> None:
        if self.base_commit is not None:
            raise SessionStateError("Base commit already recorded", session_id=self.session_id)
        self.base_commit = commit

    @property
    def prompt_dir(self) -> Path:
        return self.prompt_path.parent

    def read_prompt(self) -> str:
        return self.prompt_path.read_text(encoding="utf-8")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "repoPath": str(self.repo_path),
            "sessionRoot": str(self.session_root),
            "worktreePath": str(self.worktree_path) if self.worktree_path else None,
            "gitRef": self.git_ref,
            "agentId": self.agent_id,
            "promptPath": str(self.prompt_path),
            "prompt": self.prompt.to_dict(),
            "containerImage": self.container_image,
            "baseCommit": self.base_commit,
        }


def generate_session_id() -> str:
    """Random, URL-safe session identifier."""
    return uuid.uuid4().hex[:16]


def materialize_prompt(prompt: PromptSource, session_root: Path) -> Path:
    """Copy the prompt into ``<session_root>/prompt/prompt.txt`` and return that path."""
    prompt_dir = ensure_directory(Path(session_root) / PROMPT_DIR_NAME)
    return write_text(prompt_dir / PROMPT_FILE_NAME, prompt.read())


def create_session_context(
    repo_path: Path,
    *,
    git_ref: str,
    agent_id: str,
    prompt: PromptSource,
    session_id: Optional[str] = None,
) -> SessionContext:
    """Allocate a session id, create its scratch root and materialize the prompt."""
    repo_path = Path(repo_path).resolve()
    session_id = session_id or generate_session_id()

    paths = ManagementPaths(repo_path)
    paths.ensure_root()
    session_root = ensure_directory(paths.session_root(session_id))
    prompt_path = materialize_prompt(prompt, session_root)
    logger.info("session %s: prompt materialized at %s", session_id, prompt_path)

    return SessionContext(
        session_id=session_id,
        repo_path=repo_path,
        session_root=session_root,
        git_ref=git_ref,
        agent_id=agent_id,
        prompt=prompt,
        prompt_path=prompt_path,
    )


__all__ = [
    "PromptSource",
    "SessionContext",
    "generate_session_id",
    "materialize_prompt",
    "create_session_context",
]

"""Container constants and agent profiles shared by the image cache and runtime."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

IMAGE_NAMESPACE = "openmanager"
DEFAULT_AGENT_ID = "opencode"
DEFAULT_BASE_IMAGE = "node:24"

WORKTREE_TARGET = "/openmanager/worktree"
PROMPT_TARGET_DIR = "/openmanager/prompt"

SESSION_LABEL = "openmanager.session"
CONTAINER_NAME_PREFIX = "openmanager-session-"


@dataclass(frozen=True)
class AgentProfile:
    """How to install and invoke one agent flavor inside the container."""

    agent_id: str
    command: Tuple[str, ...]
    build_steps: Tuple[str, ...]

    @property
    def default_image(self) -> str:
        return f"{IMAGE_NAMESPACE}/{self.agent_id}:latest"

    def entry_command(self, prompt: str) -> List[str]:
        return [*self.command, prompt]


AGENT_PROFILES: Dict[str, AgentProfile] = {
    "opencode": AgentProfile(
        agent_id="opencode",
        command=("opencode", "run"),
        build_steps=(
            "RUN corepack enable",
            "RUN npm install -g opencode-ai",
        ),
    ),
}

DEFAULT_IMAGE = AGENT_PROFILES[DEFAULT_AGENT_ID].default_image
DEFAULT_BUILD_STEPS = list(AGENT_PROFILES[DEFAULT_AGENT_ID].build_steps)


def get_agent_profile(agent_id: str) -> AgentProfile:
    """Return the profile for ``agent_id``.

    Raises:
        KeyError: If the agent is unknown.
    """
    try:
        return AGENT_PROFILES[agent_id]
    except KeyError:
        known = ", ".join(sorted(AGENT_PROFILES))
        raise KeyError(f"Unknown agent '{agent_id}'. Known agents: {known}") from None


__all__ = [
    "IMAGE_NAMESPACE",
    "DEFAULT_AGENT_ID",
    "DEFAULT_BASE_IMAGE",
    "DEFAULT_IMAGE",
    "DEFAULT_BUILD_STEPS",
    "WORKTREE_TARGET",
    "PROMPT_TARGET_DIR",
    "SESSION_LABEL",
    "CONTAINER_NAME_PREFIX",
    "AgentProfile",
    "AGENT_PROFILES",
    "get_agent_profile",
]

"""Session configuration loading."""
from __future__ import annotations

from .session import (
    CONFIG_LOCATIONS,
    DockerConfig,
    HookInvocation,
    SessionConfig,
    find_session_config_file,
    load_session_config,
)

__all__ = [
    "CONFIG_LOCATIONS",
    "DockerConfig",
    "HookInvocation",
    "SessionConfig",
    "find_session_config_file",
    "load_session_config",
]

"""Pre-session and post-session hook pipelines."""
from .base import HookRegistry, HookResult, SessionHook
from .post_session import (
    DEFAULT_POST_SESSION_HOOKS,
    CreatePatchHook,
    CreatePrHook,
    PatchOptions,
    PrOptions,
    PruneWorktreeHook,
    create_post_session_registry,
)
from .pre_session import (
    InstallNodeDependenciesHook,
    RunCommandHook,
    create_pre_session_registry,
)

__all__ = [
    "HookRegistry",
    "HookResult",
    "SessionHook",
    "DEFAULT_POST_SESSION_HOOKS",
    "CreatePatchHook",
    "CreatePrHook",
    "PatchOptions",
    "PrOptions",
    "PruneWorktreeHook",
    "create_post_session_registry",
    "InstallNodeDependenciesHook",
    "RunCommandHook",
    "create_pre_session_registry",
]

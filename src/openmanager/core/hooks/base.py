"""Hook abstractions shared by the pre-session and post-session pipelines.

- HookResult: uniform outcome of a hook invocation
- SessionHook: base class every hook implements
- HookRegistry: name -> hook mapping with exception-safe dispatch
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional

if TYPE_CHECKING:
    from openmanager.core.config import DockerConfig
    from openmanager.core.session.context import SessionContext

logger = logging.getLogger(__name__)


@dataclass
class HookResult:
    """Outcome of one hook invocation."""

    success: bool
    message: str
    data: Optional[Dict[str, Any]] = field(default=None)

    @classmethod
    def ok(cls, message: str, data: Optional[Dict[str, Any]] = None) -> "HookResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def failed(cls, message: str, data: Optional[Dict[str, Any]] = None) -> "HookResult":
        return cls(success=False, message=message, data=data)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload


class SessionHook(ABC):
    """A named unit of side-effecting work run at a fixed session phase.

    Implementations raise on failure; :class:`HookRegistry` converts the
    exception into a failed :class:`HookResult`.
    """

    name: str = ""

    @abstractmethod
    def execute(
        self,
        context: "SessionContext",
        options: Mapping[str, Any],
        *,
        phase_config: Optional["DockerConfig"] = None,
    ) -> HookResult:
        """Run the hook against ``context``."""


class HookRegistry:
    """Registry of hooks for one pipeline phase.

    Example:
        registry = HookRegistry(label="Hook")
        registry.register("create-patch", CreatePatchHook())
        result = registry.invoke("create-patch", context, {"includeBaseDiff": True})
    """

    def __init__(self, label: str = "Hook") -> None:
        self.label = label
        self._hooks: Dict[str, SessionHook] = {}

    def register(self, name: str, hook: SessionHook) -> None:
        """Register ``hook`` under ``name``, replacing any previous entry."""
        if name in self._hooks:
            logger.debug("replacing %s '%s'", self.label.lower(), name)
        self._hooks[name] = hook

    def list_hooks(self) -> List[str]:
        return sorted(self._hooks)

    def invoke(
        self,
        name: str,
        context: "SessionContext",
        options: Optional[Mapping[str, Any]] = None,
        *,
        phase_config: Optional["DockerConfig"] = None,
    ) -> HookResult:
        """Run hook ``name``. Never raises."""
        hook = self._hooks.get(name)
        if hook is None:
            available = ", ".join(self.list_hooks())
            return HookResult.failed(
                f"{self.label} '{name}' not found. Available hooks: {available}"
            )

        logger.info("running %s '%s' for session %s", self.label.lower(), name, context.session_id)
        try:
            result = hook.execute(context, dict(options or {}), phase_config=phase_config)
        except Exception as exc:
            logger.warning("%s '%s' raised: %s", self.label.lower(), name, exc)
            return HookResult.failed(f"{self.label} '{name}' failed: {exc}")

        logger.info("%s '%s' finished success=%s", self.label.lower(), name, result.success)
        return result

    def invoke_sequence(
        self,
        names: Iterable[str],
        context: "SessionContext",
        options: Optional[Mapping[str, Mapping[str, Any]]] = None,
        *,
        phase_config: Optional["DockerConfig"] = None,
    ) -> List[tuple[str, HookResult]]:
        """Run every hook in ``names`` in order, regardless of earlier failures.

        Args:
            names: Hook names to run.
            context: The session the hooks act on.
            options: Per-hook options keyed by hook name.

        Returns:
            ``(name, result)`` pairs in invocation order.
        """
        per_hook = options or {}
        results: List[tuple[str, HookResult]] = []
        for name in names:
            result = self.invoke(name, context, per_hook.get(name), phase_config=phase_config)
            results.append((name, result))
        return results


__all__ = ["HookResult", "SessionHook", "HookRegistry"]

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence


class OpenManagerError(Exception):
    """Base exception for OpenManager."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ValidationError(OpenManagerError, ValueError):
    """Raised when caller input is malformed (before any side effect)."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        OpenManagerError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class ConfigError(ValidationError):
    """Raised when a session configuration file cannot be read or is invalid."""


class ConflictError(OpenManagerError, FileExistsError):
    """Raised when a session-scoped path already exists."""

    def __init__(self, message: str = "", *, path: Any = None, context: Mapping[str, Any] | None = None) -> None:
        ctx = dict(context or {})
        if path is not None:
            ctx["path"] = str(path)
        OpenManagerError.__init__(self, message, context=ctx)
        FileExistsError.__init__(self, message)
        self.path = path


class ExternalToolFailure(OpenManagerError, RuntimeError):
    """Raised when a version-control or container-runtime command fails."""

    def __init__(
        self,
        message: str,
        *,
        argv: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if argv is not None:
            ctx["argv"] = list(argv)
        if returncode is not None:
            ctx["returncode"] = returncode
        if stderr:
            ctx["stderr"] = stderr
        OpenManagerError.__init__(self, message, context=ctx)
        RuntimeError.__init__(self, message)
        self.argv = list(argv) if argv is not None else []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class ImageBuildFailure(ExternalToolFailure):
    """Raised when building a container image fails."""


class AgentExitError(ExternalToolFailure):
    """Raised when the agent container exits abnormally."""


class HookFailure(OpenManagerError, RuntimeError):
    """Raised when a pre-session hook fails and the session must stop."""

    def __init__(self, message: str = "", *, hook: str | None = None, context: Mapping[str, Any] | None = None) -> None:
        ctx = dict(context or {})
        if hook:
            ctx["hook"] = hook
        OpenManagerError.__init__(self, message, context=ctx)
        RuntimeError.__init__(self, message)
        self.hook = hook


class MissingPrerequisite(OpenManagerError, RuntimeError):
    """Raised when an operation runs before the state it depends on exists."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        OpenManagerError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class SessionStateError(OpenManagerError, RuntimeError):
    """Raised when a session lifecycle transition is not allowed."""

    def __init__(
        self,
        message: str,
        *,
        session_id: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if session_id:
            ctx["session_id"] = session_id
        OpenManagerError.__init__(self, message, context=ctx)
        RuntimeError.__init__(self, message)


__all__ = [
    "OpenManagerError",
    "ValidationError",
    "ConfigError",
    "ConflictError",
    "ExternalToolFailure",
    "ImageBuildFailure",
    "AgentExitError",
    "HookFailure",
    "MissingPrerequisite",
    "SessionStateError",
]

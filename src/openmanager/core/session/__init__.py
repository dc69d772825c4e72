"""Session context, options and lifecycle orchestration."""
from .context import PromptSource, SessionContext, create_session_context, generate_session_id
from .lifecycle import SessionLifecycle, SessionReport, SessionState, start_session
from .options import StartOptions, parse_start_options
from .reporting import ConsoleReporter, ProgressReporter, format_hook_result

__all__ = [
    "PromptSource",
    "SessionContext",
    "create_session_context",
    "generate_session_id",
    "SessionLifecycle",
    "SessionReport",
    "SessionState",
    "start_session",
    "StartOptions",
    "parse_start_options",
    "ConsoleReporter",
    "ProgressReporter",
    "format_hook_result",
]

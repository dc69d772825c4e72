"""Operator-facing progress output for a running session.

Progress lines are printed directly (not logged) so they stay visible when
file logging is configured.
"""
from __future__ import annotations

import json
import sys
from typing import List

from openmanager.core.hooks.base import HookResult

SUCCESS_MARK = "✓"
FAILURE_MARK = "✗"


def format_hook_result(name: str, result: HookResult) -> List[str]:
    """Render a hook result as a marker line plus any JSON-rendered data."""
    marker = SUCCESS_MARK if result.success else FAILURE_MARK
    lines = [f"{marker} {name}: {result.message}"]
    if result.data:
        lines.append(json.dumps(result.data, indent=2, default=str))
    return lines


class ProgressReporter:
    """Silent reporter; subclasses decide where progress goes."""

    def phase(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        pass

    def hook_result(self, name: str, result: HookResult) -> None:
        pass


class ConsoleReporter(ProgressReporter):
    """Print phases and successful hooks to stdout, failures to stderr."""

    def phase(self, message: str) -> None:
        print(message)

    def warning(self, message: str) -> None:
        print(message, file=sys.stderr)

    def hook_result(self, name: str, result: HookResult) -> None:
        stream = sys.stdout if result.success else sys.stderr
        for line in format_hook_result(name, result):
            print(line, file=stream)


__all__ = [
    "SUCCESS_MARK",
    "FAILURE_MARK",
    "format_hook_result",
    "ProgressReporter",
    "ConsoleReporter",
]

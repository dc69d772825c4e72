"""CLI output formatting.

Commands print either human-readable text or a single JSON document,
depending on ``--json``. Errors always go to stderr.
"""
from __future__ import annotations

import json
import sys
from typing import Any, Dict, Optional

from openmanager.core.exceptions import OpenManagerError


class OutputFormatter:
    """Output formatter shared by all commands."""

    def __init__(self, json_mode: bool = False, indent: int = 2):
        self.json_mode = json_mode
        self.indent = indent

    def error(self, error: Exception, message: Optional[str] = None, *, error_code: str = "error") -> None:
        """Report ``error`` on stderr.

        In JSON mode the payload carries the exception's structured context
        when it is an :class:`OpenManagerError`.
        """
        msg = message or str(error)
        if self.json_mode:
            output: Dict[str, Any] = {"error": error_code, "message": msg}
            if isinstance(error, OpenManagerError):
                output["code"] = error.__class__.__name__
                output["context"] = error.context
            print(json.dumps(output, indent=self.indent, default=str), file=sys.stderr)
        else:
            print(f"Error: {msg}", file=sys.stderr)

    def json_output(self, data: Any) -> None:
        print(json.dumps(data, indent=self.indent, default=str))

    def text(self, message: str) -> None:
        if not self.json_mode:
            print(message)


__all__ = ["OutputFormatter"]

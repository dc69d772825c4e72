"""
OpenManager CLI package.

Commands are auto-discovered from ``openmanager.cli.commands``: each module
exposes ``SUMMARY``, ``register_args(parser)`` and ``main(args) -> int``.

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Shared CLI utilities
"""
from ._args import add_json_flag, add_repo_flag, add_standard_flags, add_verbose_flag
from ._output import OutputFormatter
from ._utils import get_repo_root, setup_command_logging

__all__ = [
    "OutputFormatter",
    "add_json_flag",
    "add_repo_flag",
    "add_verbose_flag",
    "add_standard_flags",
    "get_repo_root",
    "setup_command_logging",
]

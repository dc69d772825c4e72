"""Common CLI argument registration helpers."""
from __future__ import annotations

import argparse


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_repo_flag(parser: argparse.ArgumentParser) -> None:
    """Add -r/--repo for the target repository (defaults to the current directory)."""
    parser.add_argument(
        "-r",
        "--repo",
        type=str,
        default=None,
        help="Path to the target Git repository (default: current directory)",
    )


def add_verbose_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Write DEBUG-level records to the log file",
    )


def add_standard_flags(parser: argparse.ArgumentParser) -> None:
    """Adds: --repo, --json, --verbose"""
    add_repo_flag(parser)
    add_json_flag(parser)
    add_verbose_flag(parser)


__all__ = [
    "add_json_flag",
    "add_repo_flag",
    "add_verbose_flag",
    "add_standard_flags",
]

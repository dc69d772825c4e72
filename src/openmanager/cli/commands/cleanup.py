"""
OpenManager cleanup command.

SUMMARY: Remove every session worktree under .openmanager/worktrees
"""
from __future__ import annotations

import argparse
import sys

from openmanager.cli import OutputFormatter, add_standard_flags, get_repo_root, setup_command_logging
from openmanager.core.exceptions import OpenManagerError
from openmanager.core.worktree import cleanup_all_worktrees

SUMMARY = "Remove every session worktree under .openmanager/worktrees"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Remove all session worktrees, reporting each one."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        repo_root = get_repo_root(args)
        setup_command_logging(repo_root, args)
        report = cleanup_all_worktrees(repo_root)
    except (OpenManagerError, OSError) as e:
        formatter.error(e, error_code="cleanup_error")
        return 1
    except Exception as e:
        formatter.error(e, error_code="error")
        return 1

    if formatter.json_mode:
        formatter.json_output(report.to_dict())
        return 0 if report.ok else 1

    if not report.found:
        formatter.text("No OpenManager worktrees found; nothing to clean up.")
    else:
        formatter.text(f"Cleaning up {len(report.found)} worktree(s) in {report.worktree_root}")
        for path in report.removed:
            formatter.text(f"✓ Removed {path}")
        for path, message in report.failed:
            print(f"✗ Failed to remove {path}: {message}", file=sys.stderr)

    if report.prune_error:
        print(f"✗ git worktree prune failed: {report.prune_error}", file=sys.stderr)
    elif report.pruned:
        formatter.text("✓ Pruned stale worktree references")

    return 0 if report.ok else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    cli_args = parser.parse_args()
    sys.exit(main(cli_args))

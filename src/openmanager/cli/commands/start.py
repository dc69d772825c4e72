"""
OpenManager start command.

SUMMARY: Start a sandboxed coding agent session
"""
from __future__ import annotations

import argparse
import sys

from openmanager.cli import OutputFormatter, add_standard_flags, get_repo_root, setup_command_logging
from openmanager.core.exceptions import OpenManagerError
from openmanager.core.image import ImageCache
from openmanager.core.runtime import DockerRuntime
from openmanager.core.session import ConsoleReporter, ProgressReporter, SessionLifecycle, parse_start_options

SUMMARY = "Start a sandboxed coding agent session"

EPILOG = """\
Examples:
  $ openmanager start --repo /path/to/repo --prompt-file prompt.txt
  $ openmanager start --prompt-text "Fix lint issues" --post-session-hooks create-patch
  $ openmanager start --prompt-text "Ship feature" --post-session-hooks create-pr prune-worktree \\
      --pr-title "Add feature" --pr-auto-push
"""

_OPTION_KEYS = (
    "repo",
    "ref",
    "agent",
    "prompt_file",
    "prompt_text",
    "include_local_changes",
    "non_interactive",
    "post_session_hooks",
    "patch_output_dir",
    "patch_file_name",
    "patch_include_base_diff",
    "pr_title",
    "pr_description",
    "pr_branch_prefix",
    "pr_auto_push",
)


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_standard_flags(parser)
    parser.add_argument("--ref", default="HEAD", help="Git ref to base the session on (default: HEAD)")
    parser.add_argument("-a", "--agent", default="opencode", help="Agent provider identifier (default: opencode)")
    parser.add_argument("--prompt-file", help="Path to a file containing the initial prompt")
    parser.add_argument("--prompt-text", help="Inline text to use as the initial prompt")
    parser.add_argument(
        "--include-local-changes",
        action="store_true",
        help="Copy current uncommitted changes into the session worktree",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Wait for the agent to finish instead of attaching the terminal",
    )
    parser.add_argument(
        "--post-session-hooks",
        nargs="+",
        metavar="HOOK",
        help="Hooks to run after the agent finishes (e.g. create-patch create-pr prune-worktree)",
    )

    patch = parser.add_argument_group("create-patch options")
    patch.add_argument("--patch-output-dir", help="Directory to write generated patch files")
    patch.add_argument("--patch-file-name", help="Custom filename for the generated patch")
    patch.add_argument(
        "--patch-include-base-diff",
        action="store_true",
        default=None,
        help="Also emit a patch against the original git ref",
    )

    pr = parser.add_argument_group("create-pr options")
    pr.add_argument("--pr-title", help="Title for the generated PR commit")
    pr.add_argument("--pr-description", help="Body for the generated PR commit")
    pr.add_argument(
        "--pr-branch-prefix",
        help="Prefix for the generated PR branch (default: openmanager/session)",
    )
    pr.add_argument(
        "--pr-auto-push",
        action="store_true",
        default=None,
        help="Push the generated PR branch to origin",
    )


def main(args: argparse.Namespace) -> int:
    """Validate options, run the session and report every phase."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    reporter: ProgressReporter = ProgressReporter() if formatter.json_mode else ConsoleReporter()

    try:
        repo_root = get_repo_root(args)
        setup_command_logging(repo_root, args)
        raw = {key: getattr(args, key, None) for key in _OPTION_KEYS}
        raw["repo"] = str(repo_root)
        options = parse_start_options(raw)

        lifecycle = SessionLifecycle(
            options,
            runtime=DockerRuntime(),
            image_cache=ImageCache(options.repo_path, agent_id=options.agent_id),
            reporter=reporter,
        )
        report = lifecycle.run()
    except (OpenManagerError, OSError) as e:
        formatter.error(e, error_code="start_error")
        return 1
    except Exception as e:
        formatter.error(e, error_code="error")
        return 1

    if formatter.json_mode:
        formatter.json_output(report.to_dict())
    elif report.agent_error is not None:
        formatter.error(report.agent_error)
    else:
        formatter.text(f"Session {report.context.session_id} finished.")

    return 0 if report.ok else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    cli_args = parser.parse_args()
    sys.exit(main(cli_args))

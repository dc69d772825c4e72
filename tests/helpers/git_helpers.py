"""Git operation helpers for tests against real temporary repositories."""
from __future__ import annotations

from pathlib import Path
from typing import List

from openmanager.core.utils.subprocess import run_with_timeout


def git(repo_path: Path, *args: str) -> str:
    """Run ``git <args>`` in ``repo_path`` and return stdout."""
    result = run_with_timeout(
        ["git", *args],
        cwd=repo_path,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


def git_init(repo_path: Path, branch: str = "main") -> None:
    """Initialize a git repository with a local identity.

    Args:
        repo_path: Path to repository
        branch: Initial branch name
    """
    repo_path.mkdir(parents=True, exist_ok=True)
    git(repo_path, "init", "-b", branch)
    git(repo_path, "config", "user.name", "OpenManager Tests")
    git(repo_path, "config", "user.email", "tests@openmanager.invalid")
    git(repo_path, "config", "commit.gpgsign", "false")


def git_commit(repo_path: Path, message: str, allow_empty: bool = False) -> None:
    """Stage everything and commit.

    Args:
        repo_path: Path to repository/worktree
        message: Commit message
        allow_empty: Allow empty commits
    """
    git(repo_path, "add", "-A")
    cmd = ["commit", "-m", message]
    if allow_empty:
        cmd.append("--allow-empty")
    git(repo_path, *cmd)


def git_head(repo_path: Path) -> str:
    return git(repo_path, "rev-parse", "HEAD").strip()


def git_current_branch(repo_path: Path) -> str:
    return git(repo_path, "rev-parse", "--abbrev-ref", "HEAD").strip()


def git_status(repo_path: Path) -> str:
    return git(repo_path, "status", "--porcelain")


def git_list_worktrees(repo_path: Path) -> List[Path]:
    """Return the worktree paths registered with the repository."""
    paths: List[Path] = []
    for line in git(repo_path, "worktree", "list", "--porcelain").splitlines():
        if line.startswith("worktree "):
            paths.append(Path(line[len("worktree "):]).resolve())
    return paths


def create_sample_repo(repo_path: Path) -> Path:
    """Create a repository with one committed file on ``main``."""
    git_init(repo_path)
    (repo_path / "README.md").write_text("# sample\n", encoding="utf-8")
    (repo_path / "src").mkdir()
    (repo_path / "src" / "app.txt").write_text("line one\nline two\n", encoding="utf-8")
    git_commit(repo_path, "initial commit")
    return repo_path

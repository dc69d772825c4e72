from __future__ import annotations

from pathlib import Path

import pytest

from openmanager.core.worktree import cleanup_all_worktrees, create_worktree, list_session_worktree_dirs
from helpers.git_helpers import git_list_worktrees


@pytest.mark.requires_git
def test_nothing_to_clean_up(git_repo: Path) -> None:
    report = cleanup_all_worktrees(git_repo)

    assert report.found == []
    assert report.ok
    assert not report.pruned


@pytest.mark.requires_git
def test_removes_every_session_worktree(git_repo: Path) -> None:
    first = create_worktree(git_repo, "HEAD", "a")
    second = create_worktree(git_repo, "HEAD", "b")
    (second / "dirty.txt").write_text("x\n", encoding="utf-8")

    assert list_session_worktree_dirs(git_repo) == [first, second]

    report = cleanup_all_worktrees(git_repo)

    assert report.ok
    assert report.removed == [first, second]
    assert report.pruned
    assert not first.exists() and not second.exists()
    assert git_list_worktrees(git_repo) == [git_repo.resolve()]


@pytest.mark.requires_git
def test_failures_are_reported_and_do_not_stop_others(git_repo: Path) -> None:
    good = create_worktree(git_repo, "HEAD", "good")
    stray = git_repo / ".openmanager" / "worktrees" / "stray"
    stray.mkdir()

    report = cleanup_all_worktrees(git_repo)

    assert good in report.removed
    assert [p for p, _ in report.failed] == [stray]
    assert not report.ok
    assert report.to_dict()["failed"][0]["path"] == str(stray)

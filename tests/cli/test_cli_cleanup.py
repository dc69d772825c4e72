from __future__ import annotations

import json
from pathlib import Path

import pytest

from helpers.git_helpers import git_list_worktrees
from openmanager.cli._dispatcher import main
from openmanager.core.worktree import create_worktree


def test_nothing_to_clean(git_repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["cleanup", "--repo", str(git_repo)]) == 0
    assert "No OpenManager worktrees found; nothing to clean up." in capsys.readouterr().out


def test_removes_every_session_worktree(git_repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    first = create_worktree(git_repo, "main", "one")
    second = create_worktree(git_repo, "main", "two")
    (second / "dirty.txt").write_text("dirty\n", encoding="utf-8")

    code = main(["cleanup", "--repo", str(git_repo)])

    out = capsys.readouterr().out
    assert code == 0
    assert "Cleaning up 2 worktree(s)" in out
    assert f"✓ Removed {first.resolve()}" in out
    assert f"✓ Removed {second.resolve()}" in out
    assert "✓ Pruned stale worktree references" in out
    assert not first.exists()
    assert not second.exists()
    assert git_list_worktrees(git_repo) == [git_repo.resolve()]


def test_json_report(git_repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    create_worktree(git_repo, "main", "one")

    code = main(["cleanup", "--repo", str(git_repo), "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert len(payload["removed"]) == 1
    assert payload["failed"] == []
    assert payload["pruned"] is True

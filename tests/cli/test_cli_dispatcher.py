from __future__ import annotations

import pytest

from openmanager import __version__
from openmanager.cli._dispatcher import discover_commands, main


def test_commands_are_discovered() -> None:
    commands = discover_commands()

    assert {"start", "cleanup"} <= set(commands)
    for info in commands.values():
        assert callable(info["main"])
        assert callable(info["register_args"])


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])

    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "start" in out
    assert "cleanup" in out


def test_start_help_lists_hook_options(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit):
        main(["start", "--help"])

    help_text = capsys.readouterr().out
    assert "--prompt-file" in help_text
    assert "--post-session-hooks" in help_text
    assert "--pr-auto-push" in help_text
    assert "--patch-include-base-diff" in help_text

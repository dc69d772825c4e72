import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'openmanager' and tests/ as 'helpers'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from openmanager.core.stdlib_logging import reset_stdlib_logging_for_tests
from helpers.git_helpers import create_sample_repo


_LEAK_PRONE_ENV_KEYS = [
    "OPENMANAGER_CONTAINER_RUNTIME",
    "OPENMANAGER_DEFAULT_PACKAGE_MANAGER",
    "OPENMANAGER_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Clear OpenManager env vars and give git a deterministic identity."""
    for key in _LEAK_PRONE_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("GIT_AUTHOR_NAME", "OpenManager Tests")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "tests@openmanager.invalid")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "OpenManager Tests")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "tests@openmanager.invalid")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    home = tmp_path / "_home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    yield
    reset_stdlib_logging_for_tests()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A real git repository on ``main`` with one commit."""
    return create_sample_repo(tmp_path / "repo")

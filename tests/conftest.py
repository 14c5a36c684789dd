"""Pytest configuration and fixtures."""

import subprocess
from pathlib import Path
from typing import Callable

import pytest

from gitback.core.exceptions import AuthenticationError, ListingError
from gitback.services.reporting import RunReporter


def git(cwd: Path, *args: str) -> str:
    """Run git in ``cwd`` for test setup and return stdout."""
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every git process a committer and isolate it from user config."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@test.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@test.com")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", "/dev/null")


@pytest.fixture
def commit_file() -> Callable[..., str]:
    """Write a file into a working copy, commit it and return the new HEAD."""

    def _commit(repo: Path, filename: str, content: str, message: str = "update") -> str:
        (repo / filename).write_text(content)
        git(repo, "add", filename)
        git(repo, "commit", "-m", message)
        return git(repo, "rev-parse", "HEAD")

    return _commit


@pytest.fixture
def make_upstream(tmp_path: Path, commit_file) -> Callable[..., Path]:
    """Create a repository with one commit that mirrors can be cloned from."""

    def _make(name: str = "upstream", empty: bool = False) -> Path:
        path = tmp_path / "remotes" / name
        path.mkdir(parents=True)
        git(path, "init", "--quiet")
        if not empty:
            commit_file(path, "README.md", f"# {name}\n", "Initial commit")
        return path

    return _make


@pytest.fixture
def backup_root(tmp_path: Path) -> Path:
    root = tmp_path / "backup"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def reporter() -> RunReporter:
    return RunReporter(show_progress=False)


class StubProviderClient:
    """Stands in for a ProviderClient, recording its lifecycle calls."""

    def __init__(self, name: str, repos=None, fail_on: str | None = None) -> None:
        self.name = name
        self.repos = repos or []
        self.fail_on = fail_on
        self.calls: list[str] = []

    def init(self) -> None:
        self.calls.append("init")
        if self.fail_on == "init":
            raise AuthenticationError(f"bad token for {self.name}")

    def list_repositories(self) -> list:
        self.calls.append("list")
        if self.fail_on == "list":
            raise ListingError(f"listing failed for {self.name}")
        return list(self.repos)

    def close(self) -> None:
        self.calls.append("close")


@pytest.fixture
def stub_client() -> type[StubProviderClient]:
    return StubProviderClient

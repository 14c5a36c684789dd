"""Tests for the command line interface."""

from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from gitback.cli import cli
from gitback.config.settings import get_settings
from gitback.git.repository import GitRepository


@pytest.fixture(autouse=True)
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GITBACK_PROGRESS", "false")
    for name in ("GITBACK_CONFIG", "GITBACK_LOG_FILE", "GITBACK_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    # the runner's stderr is closed once a test ends
    structlog.reset_defaults()


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def write_config(path: Path, root: Path, extra: str = "") -> Path:
    path.write_text(f"repository: {root}\naccounts: []\n{extra}")
    return path


@pytest.mark.unit
class TestCli:
    def test_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("backup", "check", "update"):
            assert command in result.output

    def test_check_prints_table(self, runner, tmp_path: Path, backup_root) -> None:
        config = write_config(tmp_path / "gitback.yml", backup_root)

        result = runner.invoke(cli, ["-c", str(config), "check"])

        assert result.exit_code == 0, result.output
        assert "Found the following repositories:" in result.output
        assert "Provider" in result.output

    def test_default_config_path(self, runner, tmp_path: Path, backup_root) -> None:
        write_config(tmp_path / "config.yml", backup_root)
        result = runner.invoke(cli, ["check"])
        assert result.exit_code == 0, result.output

    def test_config_from_environment(
        self, runner, tmp_path: Path, backup_root, monkeypatch
    ) -> None:
        config = write_config(tmp_path / "elsewhere.yml", backup_root)
        monkeypatch.setenv("GITBACK_CONFIG", str(config))
        result = runner.invoke(cli, ["check"])
        assert result.exit_code == 0, result.output

    def test_missing_config(self, runner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.yml"), "check"])
        assert result.exit_code == 1
        assert "Error: failed to read config" in result.output

    def test_missing_backup_root(self, runner, tmp_path: Path) -> None:
        config = write_config(tmp_path / "gitback.yml", tmp_path / "no-such-dir")
        result = runner.invoke(cli, ["-c", str(config), "backup"])
        assert result.exit_code == 1
        assert "is not a directory" in result.output

    def test_invalid_filter(self, runner, tmp_path: Path, backup_root) -> None:
        config = tmp_path / "gitback.yml"
        config.write_text(
            f"repository: {backup_root}\n"
            "accounts:\n"
            "  - name: personal\n"
            "    provider: 0\n"
            "    token: t\n"
            "    filters: ['r := owner &&']\n"
        )

        result = runner.invoke(cli, ["-c", str(config), "check"])

        assert result.exit_code == 1
        assert "Error: invalid filter for account 'personal'" in result.output

    def test_backup_with_no_accounts(self, runner, tmp_path: Path, backup_root) -> None:
        config = write_config(tmp_path / "gitback.yml", backup_root, "handle_orphaned: 0\n")

        result = runner.invoke(cli, ["-c", str(config), "-v", "backup"])

        assert result.exit_code == 0, result.output
        assert "Synced 0 repositories" in result.output

    def test_backup_removes_orphans(
        self, runner, tmp_path: Path, backup_root, make_upstream
    ) -> None:
        stale = backup_root / "org" / "stale"
        GitRepository.clone(str(make_upstream()), stale)
        config = write_config(tmp_path / "gitback.yml", backup_root, "handle_orphaned: 2\n")

        result = runner.invoke(cli, ["-c", str(config), "backup"])

        assert result.exit_code == 0, result.output
        assert "Handled 1 orphaned repositories" in result.output
        assert not stale.exists()

    def test_update(self, runner, tmp_path: Path, backup_root) -> None:
        config = write_config(tmp_path / "gitback.yml", backup_root)
        result = runner.invoke(cli, ["-c", str(config), "update"])
        assert result.exit_code == 0, result.output
        assert "Updated origin of 0 repositories" in result.output

    def test_log_file_option(self, runner, tmp_path: Path, backup_root) -> None:
        config = write_config(tmp_path / "gitback.yml", backup_root)
        log_file = tmp_path / "errors.log"
        result = runner.invoke(cli, ["-c", str(config), "--log-file", str(log_file), "backup"])
        assert result.exit_code == 0, result.output
        assert log_file.exists()
        assert log_file.read_text() == ""

    def test_log_file_in_missing_directory(self, runner, tmp_path: Path, backup_root) -> None:
        config = write_config(tmp_path / "gitback.yml", backup_root)
        log_file = tmp_path / "no" / "errors.log"

        result = runner.invoke(cli, ["-c", str(config), "--log-file", str(log_file), "check"])

        assert result.exit_code == 1
        assert "Error: cannot open error log" in result.output
        assert not isinstance(result.exception, OSError)

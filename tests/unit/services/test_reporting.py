"""Tests for RunReporter."""

from pathlib import Path

import pytest

from gitback.core.exceptions import CloneError, ConfigurationError, PullError
from gitback.services.reporting import RunReporter


@pytest.mark.unit
class TestRunReporter:
    def test_collects_errors(self, reporter: RunReporter) -> None:
        assert reporter.has_errors is False
        reporter.report(CloneError("Failed to clone org/a", repository="org/a"))
        assert reporter.has_errors is True
        assert [e.repository for e in reporter.errors] == ["org/a"]

    def test_writes_error_log(self, tmp_path: Path) -> None:
        log_path = tmp_path / "errors.log"
        with RunReporter(error_log=log_path, show_progress=False) as reporter:
            reporter.report(CloneError("Failed to clone org/a", repository="org/a"))
            reporter.report(PullError("Failed to pull org/b", repository="org/b"))

        lines = log_path.read_text().splitlines()
        assert len(lines) == 2
        assert lines[0].endswith("CloneError Failed to clone org/a")
        assert lines[1].endswith("PullError Failed to pull org/b")

    def test_error_log_is_appended(self, tmp_path: Path) -> None:
        log_path = tmp_path / "errors.log"
        log_path.write_text("earlier run\n")
        with RunReporter(error_log=log_path, show_progress=False) as reporter:
            reporter.report(PullError("Failed to pull org/b", repository="org/b"))
        assert log_path.read_text().startswith("earlier run\n")
        assert len(log_path.read_text().splitlines()) == 2

    def test_without_error_log(self, tmp_path: Path) -> None:
        with RunReporter(show_progress=False) as reporter:
            reporter.report(PullError("Failed", repository="x"))
        assert list(tmp_path.iterdir()) == []

    def test_track_without_progress(self, reporter: RunReporter) -> None:
        with reporter.track(iter([1, 2, 3]), "Counting") as items:
            assert list(items) == [1, 2, 3]

    def test_track_with_progress(self) -> None:
        reporter = RunReporter(show_progress=True)
        with reporter.track(["a", "b"], "Letters") as items:
            assert list(items) == ["a", "b"]

    def test_track_empty(self) -> None:
        reporter = RunReporter(show_progress=True)
        with reporter.track([], "Nothing") as items:
            assert list(items) == []

    def test_unwritable_error_log(self, tmp_path: Path) -> None:
        reporter = RunReporter(error_log=tmp_path / "no" / "errors.log", show_progress=False)
        with pytest.raises(ConfigurationError, match="cannot open error log") as exc_info:
            reporter.open()
        assert exc_info.value.details == {"path": str(tmp_path / "no" / "errors.log")}

"""Run-scoped reporting: progress, structured log and the error log file."""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import IO, Iterable, Iterator, TypeVar

import click
import structlog

from gitback.core.exceptions import ConfigurationError, RepositoryError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _item_label(item: object) -> str | None:
    if item is None:
        return None
    return str(getattr(item, "name", item))


class RunReporter:
    """Collects per-repository errors for one run.

    Errors are logged, kept in ``errors`` and, when ``error_log`` is set,
    appended to that file one line each. The file is opened on ``open``
    (or entering the context) and closed on ``close``.
    """

    def __init__(
        self,
        error_log: str | Path | None = None,
        show_progress: bool = True,
    ) -> None:
        self._error_log_path = Path(error_log).expanduser() if error_log else None
        self._error_log: IO[str] | None = None
        self._show_progress = show_progress
        self.errors: list[RepositoryError] = []

    def __enter__(self) -> "RunReporter":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        """Open the error log for appending.

        Raises:
            ConfigurationError: the error log cannot be opened.
        """
        if self._error_log_path is not None and self._error_log is None:
            try:
                self._error_log = self._error_log_path.open("a", encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(
                    f"cannot open error log {self._error_log_path}: {e}",
                    details={"path": str(self._error_log_path)},
                ) from e

    def close(self) -> None:
        if self._error_log is not None:
            self._error_log.close()
            self._error_log = None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @contextmanager
    def track(self, items: Iterable[T], label: str) -> Iterator[Iterable[T]]:
        """Iterate ``items`` behind a progress bar (when enabled)."""
        items = list(items)
        if not self._show_progress or not items:
            yield items
            return
        with click.progressbar(
            items,
            label=label,
            item_show_func=_item_label,
            file=click.get_text_stream("stderr"),
        ) as bar:
            yield bar

    def report(self, error: RepositoryError) -> None:
        """Record a recoverable error; never raises it."""
        self.errors.append(error)
        logger.error(
            error.message,
            repository=error.repository,
            error_type=type(error).__name__,
        )
        if self._error_log is not None:
            timestamp = datetime.now().isoformat(timespec="seconds")
            self._error_log.write(f"{timestamp} {type(error).__name__} {error.message}\n")
            self._error_log.flush()

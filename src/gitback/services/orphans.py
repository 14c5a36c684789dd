"""Detection and disposal of mirrors that left the catalog."""

import shutil
from enum import Enum
from pathlib import Path
from typing import Iterator

import structlog

from gitback.core.exceptions import GitCommandError, OrphanError
from gitback.core.models.config import OrphanPolicy
from gitback.git.repository import GitClient
from gitback.services.reporting import RunReporter

logger = structlog.get_logger(__name__)


class OrphanOutcome(str, Enum):
    REMOVED = "removed"
    PULLED = "pulled"
    FAILED = "failed"


def is_git_root(path: Path) -> bool:
    return (path / ".git").exists()


def iter_git_roots(root: Path) -> Iterator[Path]:
    """Yield every git root below ``root``.

    A directory holding ``.git`` is yielded and not descended into; any
    other directory is searched, however deep. Symlinks are not followed.
    """
    try:
        entries = sorted(root.iterdir())
    except OSError as e:
        logger.warning("Cannot read directory", path=str(root), error=str(e))
        return
    for entry in entries:
        if entry.name == ".git" or entry.is_symlink() or not entry.is_dir():
            continue
        if is_git_root(entry):
            yield entry
        else:
            yield from iter_git_roots(entry)


def find_orphans(root: Path, known: set[Path]) -> list[Path]:
    """Git roots under ``root`` whose path is not in ``known``."""
    return [path for path in iter_git_roots(root) if path not in known]


class OrphanScanner:
    """Applies the orphan policy after a reconcile pass."""

    def __init__(
        self,
        root: Path | str,
        policy: OrphanPolicy,
        reporter: RunReporter,
        git: GitClient | None = None,
    ) -> None:
        self._root = Path(root).resolve()
        self._policy = policy
        self._reporter = reporter
        self._git = git or GitClient()

    def scan(self, realized: set[Path]) -> list[Path]:
        return find_orphans(self._root, realized)

    def handle(self, realized: set[Path]) -> dict[Path, OrphanOutcome]:
        """Find orphans and apply the policy to each, isolating failures."""
        if self._policy == OrphanPolicy.IGNORE:
            return {}

        orphans = self.scan(realized)
        logger.info("Orphaned mirrors found", count=len(orphans), policy=self._policy.name)

        results: dict[Path, OrphanOutcome] = {}
        with self._reporter.track(orphans, "Orphans") as paths:
            for path in paths:
                if self._policy == OrphanPolicy.REMOVE:
                    results[path] = self._remove(path)
                else:
                    results[path] = self._pull(path)
        return results

    def _remove(self, path: Path) -> OrphanOutcome:
        try:
            shutil.rmtree(path)
        except OSError as e:
            self._reporter.report(
                OrphanError(f"Failed to remove orphaned repo {path}: {e}", repository=str(path))
            )
            return OrphanOutcome.FAILED
        logger.info("Removed orphaned repo", path=str(path))
        return OrphanOutcome.REMOVED

    def _pull(self, path: Path) -> OrphanOutcome:
        try:
            result = self._git.open(path).pull()
        except GitCommandError as e:
            self._reporter.report(
                OrphanError(f"Failed to pull orphaned repo {path}: {e}", repository=str(path))
            )
            return OrphanOutcome.FAILED
        logger.info("Pulled orphaned repo", path=str(path), result=result.value)
        return OrphanOutcome.PULLED

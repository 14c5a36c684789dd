"""Clone-or-pull reconciliation of the catalog against the backup root."""

import os
import shutil
from enum import Enum
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from gitback.core.exceptions import (
    CloneError,
    ConflictRecoveryError,
    GitCommandError,
    PullError,
)
from gitback.core.models.repository import Repository
from gitback.git.repository import GitClient, PullResult
from gitback.services.catalog import Catalog, target_path
from gitback.services.reporting import RunReporter

logger = structlog.get_logger(__name__)

CONFLICT_SUFFIX = "_conflict"


class SyncOutcome(str, Enum):
    """Terminal state of one repository after a reconcile pass."""

    CLONED = "cloned"
    CLONE_FAILED = "clone_failed"
    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"
    PULL_FAILED = "pull_failed"
    OVERWRITTEN = "overwritten"
    ROLLED_BACK = "rolled_back"
    BROKEN = "broken"


class ConflictState(str, Enum):
    """States of the overwrite-on-conflict transaction.

    STABLE -> STAGING (mirror moved aside) -> COMMITTED (fresh clone in
    place) | ROLLED_BACK (mirror moved back) | BROKEN (could not move
    it back). A failure to move the mirror aside leaves it STABLE.
    """

    STABLE = "stable"
    STAGING = "staging"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    BROKEN = "broken"


_CONFLICT_OUTCOMES = {
    ConflictState.STABLE: SyncOutcome.PULL_FAILED,
    ConflictState.COMMITTED: SyncOutcome.OVERWRITTEN,
    ConflictState.ROLLED_BACK: SyncOutcome.ROLLED_BACK,
    ConflictState.BROKEN: SyncOutcome.BROKEN,
}

FAILED_OUTCOMES = frozenset(
    {
        SyncOutcome.CLONE_FAILED,
        SyncOutcome.PULL_FAILED,
        SyncOutcome.ROLLED_BACK,
        SyncOutcome.BROKEN,
    }
)


class RepositoryOutcome(BaseModel):
    name: str
    path: Path
    outcome: SyncOutcome


class SyncReport(BaseModel):
    """Result of a reconcile pass."""

    outcomes: list[RepositoryOutcome] = Field(default_factory=list)
    realized: set[Path] = Field(default_factory=set)

    def record(self, repo: Repository, path: Path, outcome: SyncOutcome) -> None:
        self.outcomes.append(RepositoryOutcome(name=repo.name, path=path, outcome=outcome))

    def count(self, outcome: SyncOutcome) -> int:
        return sum(1 for item in self.outcomes if item.outcome == outcome)

    @property
    def failed(self) -> list[RepositoryOutcome]:
        return [item for item in self.outcomes if item.outcome in FAILED_OUTCOMES]


def conflict_path(path: Path) -> Path:
    return path.with_name(path.name + CONFLICT_SUFFIX)


class SyncReconciler:
    """Brings every mirror under ``root`` in line with the catalog.

    Missing mirrors are cloned, existing ones pulled. With
    ``overwrite_on_conflict`` a mirror that cannot be pulled is moved to
    ``<path>_conflict`` and cloned afresh; the moved copy is kept.
    Failures are reported per repository and never stop the pass.
    """

    def __init__(
        self,
        root: Path | str,
        reporter: RunReporter,
        overwrite_on_conflict: bool = False,
        git: GitClient | None = None,
    ) -> None:
        self._root = Path(root).resolve()
        self._reporter = reporter
        self._overwrite = overwrite_on_conflict
        self._git = git or GitClient()

    @property
    def root(self) -> Path:
        return self._root

    def target_path(self, repo: Repository) -> Path:
        return target_path(self._root, repo)

    def reconcile(self, catalog: Catalog) -> SyncReport:
        report = SyncReport()
        with self._reporter.track(catalog, "Syncing") as repos:
            for repo in repos:
                path = self.target_path(repo)
                report.realized.add(path)
                report.record(repo, path, self.sync_repository(repo, path))

        logger.info(
            "Reconcile finished",
            repositories=len(report.outcomes),
            failed=len(report.failed),
        )
        return report

    def sync_repository(self, repo: Repository, path: Path) -> SyncOutcome:
        if not path.exists():
            return self._clone(repo, path)
        return self._pull(repo, path)

    def _clone(self, repo: Repository, path: Path) -> SyncOutcome:
        logger.debug("Cloning", repository=repo.name, path=str(path))
        try:
            self._git.clone(repo.clone_url, path)
        except GitCommandError as e:
            self._reporter.report(
                CloneError(f"Failed to clone {repo.name}: {e}", repository=repo.name)
            )
            return SyncOutcome.CLONE_FAILED
        return SyncOutcome.CLONED

    def _pull(self, repo: Repository, path: Path) -> SyncOutcome:
        logger.debug("Pulling", repository=repo.name, path=str(path))
        try:
            result = self._git.open(path).pull()
        except GitCommandError as e:
            if not self._overwrite:
                self._reporter.report(
                    PullError(f"Failed to pull {repo.name}: {e}", repository=repo.name)
                )
                return SyncOutcome.PULL_FAILED
            logger.warning("Pull failed, overwriting", repository=repo.name, error=str(e))
            return _CONFLICT_OUTCOMES[self.overwrite(repo, path)]

        if result is PullResult.UP_TO_DATE:
            return SyncOutcome.UP_TO_DATE
        return SyncOutcome.UPDATED

    def overwrite(self, repo: Repository, path: Path) -> ConflictState:
        """Replace the mirror at ``path`` with a fresh clone.

        Returns the terminal state of the transaction. Every state but
        COMMITTED has been reported by the time this returns.
        """
        aside = conflict_path(path)

        try:
            self._rename(path, aside)
        except OSError as e:
            self._reporter.report(
                PullError(
                    f"Failed to move {path} aside after a conflict: {e}",
                    repository=repo.name,
                )
            )
            return ConflictState.STABLE

        state = ConflictState.STAGING
        logger.debug("Conflict copy staged", repository=repo.name, path=str(aside), state=state)

        try:
            self._git.clone(repo.clone_url, path)
        except GitCommandError as clone_error:
            logger.error("Failed to clone, reverting", repository=repo.name, error=str(clone_error))
            try:
                if path.exists():
                    shutil.rmtree(path)
                self._rename(aside, path)
            except OSError as e:
                self._reporter.report(
                    ConflictRecoveryError(
                        f"Failed to restore {path} from {aside} after a failed overwrite "
                        f"({clone_error}): {e}; both paths need manual attention",
                        repository=repo.name,
                        details={"path": str(path), "conflict_path": str(aside)},
                    )
                )
                return ConflictState.BROKEN
            self._reporter.report(
                PullError(
                    f"Failed to pull {repo.name}, overwrite failed and was rolled back: "
                    f"{clone_error}",
                    repository=repo.name,
                )
            )
            return ConflictState.ROLLED_BACK

        logger.info("Overwritten", repository=repo.name, conflict_copy=str(aside))
        return ConflictState.COMMITTED

    @staticmethod
    def _rename(source: Path, destination: Path) -> None:
        os.rename(source, destination)

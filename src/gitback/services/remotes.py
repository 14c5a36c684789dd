"""Repair of stale origin URLs in existing mirrors."""

from pathlib import Path

import structlog

from gitback.core.exceptions import GitCommandError, RemoteUpdateError
from gitback.core.models.repository import Repository
from gitback.git.repository import ORIGIN, GitClient
from gitback.git.urls import strip_credentials
from gitback.services.catalog import Catalog, target_path
from gitback.services.reporting import RunReporter

logger = structlog.get_logger(__name__)

OLD_REMOTE = "old-remote"


class RemoteUrlUpdater:
    """Points each mirror's ``origin`` at the catalog's clone URL.

    The previous URL is kept as the ``old-remote`` remote. Mirrors whose
    origin already matches are not touched, so running twice writes
    nothing the second time.
    """

    def __init__(
        self,
        root: Path | str,
        reporter: RunReporter,
        git: GitClient | None = None,
    ) -> None:
        self._root = Path(root).resolve()
        self._reporter = reporter
        self._git = git or GitClient()

    def update(self, catalog: Catalog) -> list[str]:
        """Return the names of the repositories whose origin was rewritten."""
        updated = []
        for repo in catalog:
            path = target_path(self._root, repo)
            if not path.exists():
                continue
            try:
                changed = self.update_repository(repo, path)
            except GitCommandError as e:
                self._reporter.report(
                    RemoteUpdateError(
                        f"Failed to update origin of {repo.name}: {e}", repository=repo.name
                    )
                )
                continue
            if changed:
                updated.append(repo.name)

        logger.info("Remote update finished", updated=len(updated))
        return updated

    def update_repository(self, repo: Repository, path: Path) -> bool:
        local = self._git.open(path)
        current = local.get_remote_url(ORIGIN)
        if current == repo.clone_url:
            return False

        logger.info(
            "Origin outdated, updating",
            repository=repo.name,
            old=strip_credentials(current) if current else None,
            new=strip_credentials(repo.clone_url),
        )
        if current is not None:
            local.set_remote(OLD_REMOTE, current)
        local.set_remote(ORIGIN, repo.clone_url)
        return True

"""Backup service tying providers, reconciler, orphan scanner and updater."""

from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from gitback.core.exceptions import ConfigurationError
from gitback.core.models.config import BackupConfig, OrphanPolicy
from gitback.git.repository import GitClient
from gitback.providers.base import ProviderClient
from gitback.providers.factory import ProviderClientFactory
from gitback.services.catalog import Catalog, CatalogBuilder
from gitback.services.orphans import OrphanOutcome, OrphanScanner
from gitback.services.reconciler import SyncReconciler, SyncReport
from gitback.services.remotes import RemoteUrlUpdater
from gitback.services.reporting import RunReporter

logger = structlog.get_logger(__name__)


class BackupResult(BaseModel):
    sync: SyncReport
    orphans: dict[Path, OrphanOutcome] = Field(default_factory=dict)


class BackupService:
    """The ``backup``, ``check`` and ``update`` operations.

    Provider failures (``ProviderError``) propagate and abort the
    operation; per-repository failures end up in the reporter.
    """

    def __init__(
        self,
        config: BackupConfig,
        reporter: RunReporter,
        clients: list[ProviderClient] | None = None,
        git: GitClient | None = None,
    ) -> None:
        root = Path(config.repository).expanduser()
        if not root.is_dir():
            logger.debug("Backup root is not a directory", path=str(root))
            raise ConfigurationError(
                f"{root} is not a directory", details={"repository": str(root)}
            )

        self._config = config
        self._root = root.resolve()
        self._reporter = reporter
        self._git = git or GitClient()
        if clients is None:
            clients = ProviderClientFactory().create_clients(config.accounts)
        self._clients = clients

    @property
    def root(self) -> Path:
        return self._root

    def check(self) -> Catalog:
        """List and filter every account without touching the filesystem."""
        return CatalogBuilder(self._clients).build()

    def backup(self, catalog: Catalog | None = None) -> BackupResult:
        """Reconcile all mirrors, then deal with orphans."""
        if catalog is None:
            catalog = self.check()

        reconciler = SyncReconciler(
            self._root,
            self._reporter,
            overwrite_on_conflict=self._config.overwrite_on_conflict,
            git=self._git,
        )
        report = reconciler.reconcile(catalog)

        orphans: dict[Path, OrphanOutcome] = {}
        if self._config.handle_orphaned != OrphanPolicy.IGNORE:
            scanner = OrphanScanner(
                self._root, self._config.handle_orphaned, self._reporter, git=self._git
            )
            orphans = scanner.handle(report.realized)

        return BackupResult(sync=report, orphans=orphans)

    def update(self, catalog: Catalog | None = None) -> list[str]:
        """Repair stale origin URLs only."""
        if catalog is None:
            catalog = self.check()
        return RemoteUrlUpdater(self._root, self._reporter, git=self._git).update(catalog)

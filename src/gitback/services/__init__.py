"""Business logic services for gitback."""

from gitback.services.backup import BackupResult, BackupService
from gitback.services.catalog import Catalog, CatalogBuilder, format_catalog_table
from gitback.services.orphans import OrphanOutcome, OrphanScanner
from gitback.services.reconciler import SyncOutcome, SyncReconciler, SyncReport
from gitback.services.remotes import RemoteUrlUpdater
from gitback.services.reporting import RunReporter

__all__ = [
    "BackupResult",
    "BackupService",
    "Catalog",
    "CatalogBuilder",
    "format_catalog_table",
    "OrphanOutcome",
    "OrphanScanner",
    "SyncOutcome",
    "SyncReconciler",
    "SyncReport",
    "RemoteUrlUpdater",
    "RunReporter",
]

"""Domain models for gitback."""

from gitback.core.models.config import AccountConfig, BackupConfig, OrphanPolicy, Provider
from gitback.core.models.repository import Repository, Visibility

__all__ = [
    "Repository",
    "Visibility",
    "AccountConfig",
    "BackupConfig",
    "Provider",
    "OrphanPolicy",
]

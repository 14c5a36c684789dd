"""Core domain models and exceptions for gitback."""

from gitback.core.exceptions import (
    AuthenticationError,
    CloneError,
    ConfigurationError,
    ConflictRecoveryError,
    FilterError,
    FilterEvaluationError,
    FilterSyntaxError,
    GitbackError,
    GitCommandError,
    ListingError,
    OrphanError,
    ProviderError,
    PullError,
    RemoteUpdateError,
    RepositoryError,
)
from gitback.core.models import (
    AccountConfig,
    BackupConfig,
    OrphanPolicy,
    Provider,
    Repository,
    Visibility,
)

__all__ = [
    # Models
    "Repository",
    "Visibility",
    "AccountConfig",
    "BackupConfig",
    "Provider",
    "OrphanPolicy",
    # Exceptions
    "GitbackError",
    "ConfigurationError",
    "GitCommandError",
    "FilterError",
    "FilterSyntaxError",
    "FilterEvaluationError",
    "ProviderError",
    "AuthenticationError",
    "ListingError",
    "RepositoryError",
    "CloneError",
    "PullError",
    "RemoteUpdateError",
    "OrphanError",
    "ConflictRecoveryError",
]

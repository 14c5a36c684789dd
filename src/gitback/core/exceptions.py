"""Exception hierarchy for gitback."""

from typing import Any


class GitbackError(Exception):
    """Base exception for all gitback errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigurationError(GitbackError):
    """Invalid or unreadable configuration. Raised before any provider contact."""


class GitCommandError(GitbackError):
    """A git invocation exited with a non-zero status."""


class FilterError(GitbackError):
    """Base class for filter rule errors."""


class FilterSyntaxError(FilterError):
    """A filter rule could not be compiled."""


class FilterEvaluationError(FilterError):
    """A filter rule failed while being evaluated against a repository."""


class ProviderError(GitbackError):
    """A provider client failed. Fatal for the whole run."""


class AuthenticationError(ProviderError):
    """A provider session could not be established."""


class ListingError(ProviderError):
    """Remote repositories could not be listed."""


class RepositoryError(GitbackError):
    """Failure scoped to a single repository. Reported, never fatal."""

    def __init__(
        self,
        message: str,
        repository: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.repository = repository


class CloneError(RepositoryError):
    """Cloning a repository failed."""


class PullError(RepositoryError):
    """Pulling an existing mirror failed."""


class RemoteUpdateError(RepositoryError):
    """Rewriting a mirror's origin remote failed."""


class OrphanError(RepositoryError):
    """Disposing of an orphaned mirror failed."""


class ConflictRecoveryError(RepositoryError):
    """Overwrite after a conflict failed and the rollback failed too.

    Both the mirror path and its ``_conflict`` copy may exist and need
    manual attention.
    """

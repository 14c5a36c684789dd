"""Git integration module for gitback."""

from gitback.git.repository import GitClient, GitRepository, PullResult, run_git
from gitback.git.urls import redact, strip_credentials, with_credentials

__all__ = [
    "GitClient",
    "GitRepository",
    "PullResult",
    "run_git",
    "redact",
    "strip_credentials",
    "with_credentials",
]

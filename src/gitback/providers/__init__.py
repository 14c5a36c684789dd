"""Provider clients for gitback."""

from gitback.providers.base import ProviderClient
from gitback.providers.factory import (
    ProviderClientFactory,
    register_provider,
    registered_providers,
)
from gitback.providers.github import GitHubClient
from gitback.providers.gitlab import GitLabClient

__all__ = [
    "ProviderClient",
    "ProviderClientFactory",
    "GitHubClient",
    "GitLabClient",
    "register_provider",
    "registered_providers",
]

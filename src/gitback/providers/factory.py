"""Factory for creating provider clients."""

import httpx
import structlog

from gitback.core.exceptions import ConfigurationError, FilterSyntaxError
from gitback.core.models.config import AccountConfig, Provider
from gitback.filters.engine import compile_filters
from gitback.providers.base import ProviderClient
from gitback.providers.github import GitHubClient
from gitback.providers.gitlab import GitLabClient

logger = structlog.get_logger(__name__)

_REGISTRY: dict[Provider, type[ProviderClient]] = {
    Provider.GITHUB: GitHubClient,
    Provider.GITLAB: GitLabClient,
}


def register_provider(provider: Provider, client_class: type[ProviderClient]) -> None:
    """Make ``client_class`` the implementation for ``provider`` accounts."""
    _REGISTRY[provider] = client_class


def registered_providers() -> dict[Provider, type[ProviderClient]]:
    return dict(_REGISTRY)


class ProviderClientFactory:
    """Creates one client per configured account, with filters installed."""

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport

    def create_client(self, account: AccountConfig) -> ProviderClient:
        client_class = _REGISTRY.get(account.provider)
        if client_class is None:
            raise ConfigurationError(
                f"Unknown provider for account {account.name!r}: {account.provider!r}",
                details={"account": account.name},
            )

        try:
            chain = compile_filters(account.filters)
        except FilterSyntaxError as e:
            raise ConfigurationError(
                f"invalid filter for account {account.name!r}: {e}",
                details={"account": account.name, **e.details},
            ) from e

        client = client_class(account, transport=self._transport)
        client.register_filter(chain)
        logger.debug(
            "Provider client created",
            account=account.name,
            provider=account.provider.name,
            filters=len(chain),
        )
        return client

    def create_clients(self, accounts: list[AccountConfig]) -> list[ProviderClient]:
        return [self.create_client(account) for account in accounts]

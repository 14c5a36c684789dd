"""Base class for provider clients."""

from abc import ABC, abstractmethod
from typing import Any, Iterator

import httpx
import pydantic
import structlog

from gitback.core.exceptions import AuthenticationError, ListingError
from gitback.core.models.config import AccountConfig, Provider
from gitback.core.models.repository import Repository
from gitback.filters.engine import FilterChain

logger = structlog.get_logger(__name__)


class ProviderClient(ABC):
    """Lists the repositories one account can see.

    Lifecycle: ``register_filter`` (optional), then ``init`` to open an
    authenticated session, then ``list_repositories``. The listing is
    already filtered.
    """

    provider: Provider
    DEFAULT_TIMEOUT = 30.0
    PAGE_SIZE = 100

    def __init__(
        self,
        account: AccountConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._account = account
        self._token = account.token.get_secret_value()
        self._transport = transport
        self._filters = FilterChain()
        self._client: httpx.Client | None = None

    @property
    def name(self) -> str:
        return self._account.name

    @property
    def filters(self) -> FilterChain:
        return self._filters

    def register_filter(self, chain: FilterChain) -> None:
        """Install the filter chain applied by ``list_repositories``."""
        self._filters = chain

    @abstractmethod
    def _base_url(self) -> str:
        """API root for this account."""

    @abstractmethod
    def _auth_headers(self) -> dict[str, str]:
        """Headers authenticating every request."""

    @abstractmethod
    def _authenticate(self) -> None:
        """Resolve the identity behind the token (called by ``init``)."""

    @abstractmethod
    def _iter_repositories(self) -> Iterator[Repository]:
        """Yield every visible repository, unfiltered, across all pages."""

    def init(self) -> None:
        """Open an authenticated session.

        Raises:
            AuthenticationError: the session or the identity lookup failed.
        """
        self.close()
        self._client = httpx.Client(
            base_url=self._base_url(),
            headers={"Accept": "application/json", **self._auth_headers()},
            timeout=self.DEFAULT_TIMEOUT,
            transport=self._transport,
        )
        try:
            self._authenticate()
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            self.close()
            raise AuthenticationError(
                f"failed to authenticate {self.provider.name.lower()} account "
                f"{self.name!r}: {e}",
                details={"account": self.name},
            ) from e
        logger.debug("Provider session established", account=self.name)

    def list_repositories(self) -> list[Repository]:
        """Return the repositories that pass the installed filters.

        Raises:
            ListingError: the client was not initialised, a request failed
                or the provider returned something unexpected.
        """
        if self._client is None:
            raise ListingError(f"client {self.name!r} is not initialised")

        try:
            repos = list(self._iter_repositories())
        except (httpx.HTTPError, pydantic.ValidationError, KeyError, TypeError, ValueError) as e:
            raise ListingError(
                f"failed to list repositories for {self.name!r}: {e}",
                details={"account": self.name},
            ) from e

        accepted = self._filters.apply(repos)
        logger.info(
            "Repositories listed",
            account=self.name,
            total=len(repos),
            accepted=len(accepted),
        )
        return accepted

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        assert self._client is not None
        response = self._client.get(url, params=params)
        response.raise_for_status()
        return response

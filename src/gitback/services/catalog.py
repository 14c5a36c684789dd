"""Run-scoped catalog of repositories across all accounts."""

from pathlib import Path
from typing import Iterator

import structlog

from gitback.core.exceptions import ProviderError
from gitback.core.models.repository import Repository
from gitback.providers.base import ProviderClient

logger = structlog.get_logger(__name__)

TABLE_FORMAT = "| {:>10.10} | {:<60.60} | {:>10.10} | {:>10.10} |"


class Catalog:
    """Filtered repositories of every account, in account then listing order."""

    def __init__(self, repositories: list[Repository] | None = None) -> None:
        self._repositories = list(repositories or [])

    def __iter__(self) -> Iterator[Repository]:
        return iter(self._repositories)

    def __len__(self) -> int:
        return len(self._repositories)

    def names(self) -> list[str]:
        return [repo.name for repo in self._repositories]


def target_path(root: Path, repo: Repository) -> Path:
    """Where the mirror of ``repo`` lives under ``root``."""
    return root.joinpath(*repo.relative_path.parts)


class CatalogBuilder:
    """Runs every provider client and aggregates their listings.

    The first client that fails aborts the build: there is no
    partial-account catalog.
    """

    def __init__(self, clients: list[ProviderClient]) -> None:
        self._clients = clients

    def build(self) -> Catalog:
        repositories: list[Repository] = []
        for client in self._clients:
            try:
                client.init()
                listed = client.list_repositories()
            except ProviderError as e:
                logger.error("Provider failed", account=client.name, error=str(e))
                raise
            finally:
                client.close()
            repositories.extend(listed)

        logger.info(
            "Catalog built",
            accounts=len(self._clients),
            repositories=len(repositories),
        )
        return Catalog(repositories)


def format_catalog_table(catalog: Catalog) -> str:
    """Render the Provider/Name/CreatedAt/Size table printed by ``check``."""
    lines = [
        "Found the following repositories:",
        TABLE_FORMAT.format("Provider", "Name", "CreatedAt", "Size"),
    ]
    for repo in catalog:
        lines.append(
            TABLE_FORMAT.format(
                repo.provider_name,
                repo.name,
                repo.created_at.strftime("%Y-%m-%d"),
                str(repo.size),
            )
        )
    return "\n".join(lines)

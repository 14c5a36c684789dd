"""Tests for the catalog builder and table output."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from gitback.core.exceptions import AuthenticationError, ListingError
from gitback.services.catalog import Catalog, CatalogBuilder, format_catalog_table, target_path
from tests.factories import RepositoryFactory


@pytest.mark.unit
class TestCatalogBuilder:
    def test_aggregates_in_account_order(self, stub_client) -> None:
        first = stub_client("gh", [RepositoryFactory(name="a/one"), RepositoryFactory(name="a/two")])
        second = stub_client("gl", [RepositoryFactory(name="b/three")])

        catalog = CatalogBuilder([first, second]).build()

        assert catalog.names() == ["a/one", "a/two", "b/three"]
        assert len(catalog) == 3
        assert first.calls == ["init", "list", "close"]

    def test_failed_client_aborts(self, stub_client) -> None:
        good = stub_client("gh", [RepositoryFactory()])
        bad = stub_client("gl", fail_on="list")
        never = stub_client("other")

        with pytest.raises(ListingError):
            CatalogBuilder([good, bad, never]).build()

        assert bad.calls == ["init", "list", "close"]
        assert never.calls == []

    def test_authentication_failure_closes_client(self, stub_client) -> None:
        bad = stub_client("gh", fail_on="init")
        with pytest.raises(AuthenticationError):
            CatalogBuilder([bad]).build()
        assert bad.calls == ["init", "close"]

    def test_no_accounts(self) -> None:
        assert len(CatalogBuilder([]).build()) == 0


@pytest.mark.unit
class TestTargetPath:
    def test_nested_name(self, tmp_path: Path) -> None:
        repo = RepositoryFactory(name="group/sub/project")
        assert target_path(tmp_path, repo) == tmp_path / "group" / "sub" / "project"


@pytest.mark.unit
class TestFormatCatalogTable:
    def test_rows(self) -> None:
        catalog = Catalog([
            RepositoryFactory(
                provider_name="personal",
                name="octocat/hello-world",
                created_at=datetime(2019, 5, 1, tzinfo=timezone.utc),
                size=1200,
            )
        ])

        lines = format_catalog_table(catalog).splitlines()

        assert lines[0] == "Found the following repositories:"
        assert lines[1].startswith("|   Provider | Name ")
        assert lines[2].startswith("|   personal | octocat/hello-world ")
        assert lines[2].endswith("| 2019-05-01 |       1200 |")

    def test_long_values_truncated(self) -> None:
        catalog = Catalog([RepositoryFactory(provider_name="a-very-long-account", name="x" * 80)])
        row = format_catalog_table(catalog).splitlines()[2]
        assert "a-very-lon" in row
        assert "x" * 61 not in row
        assert len(row) == len(format_catalog_table(Catalog()).splitlines()[1])

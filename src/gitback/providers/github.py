"""GitHub provider client."""

from typing import Any, Iterator

import structlog

from gitback.core.models.config import Provider
from gitback.core.models.repository import Repository, Visibility
from gitback.git.urls import with_credentials
from gitback.providers.base import ProviderClient

logger = structlog.get_logger(__name__)


class GitHubClient(ProviderClient):
    """Lists repositories through the GitHub REST API.

    Account args: ``[user login, api base url]``, both optional. The
    login decides which repositories count as owned and, when given, is
    embedded with the token in clone URLs. Without it the login of the
    token's user is used for ownership only.
    """

    provider = Provider.GITHUB
    DEFAULT_BASE_URL = "https://api.github.com"

    def __init__(self, account, transport=None) -> None:
        super().__init__(account, transport=transport)
        self.user = account.arg(0)
        self._login = self.user

    def _base_url(self) -> str:
        return self._account.arg(1, self.DEFAULT_BASE_URL).rstrip("/")

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _authenticate(self) -> None:
        login = self._get("/user").json()["login"]
        if not self._login:
            self._login = login
        logger.debug("GitHub user resolved", account=self.name, login=login)

    def _iter_repositories(self) -> Iterator[Repository]:
        url: str | None = "/user/repos"
        params: dict[str, Any] | None = {
            "visibility": "all",
            "sort": "created",
            "per_page": self.PAGE_SIZE,
        }
        while url:
            response = self._get(url, params=params)
            for item in response.json():
                yield self._parse_repository(item)
            # the next link carries its own query string
            url = response.links.get("next", {}).get("url")
            params = None

    def _parse_repository(self, item: dict[str, Any]) -> Repository:
        logger.debug("Got repository", name=item["full_name"], size=item.get("size"))

        clone_url = item["clone_url"]
        if self.user:
            clone_url = with_credentials(clone_url, self.user, self._token)

        owner_login = (item.get("owner") or {}).get("login", "")
        permissions = item.get("permissions") or {}

        return Repository(
            clone_url=clone_url,
            name=item["full_name"],
            size=item.get("size", -1),
            created_at=item["created_at"],
            owner=owner_login.lower() == self._login.lower() and bool(owner_login),
            member=bool(permissions.get("push", False)),
            visibility=self._visibility(item),
            provider_name=self.name,
            archived=bool(item.get("archived", False)),
        )

    @staticmethod
    def _visibility(item: dict[str, Any]) -> Visibility:
        value = item.get("visibility")
        if value == "public":
            return Visibility.PUBLIC
        if value == "internal":
            return Visibility.INTERNAL
        if value == "private":
            return Visibility.PRIVATE
        return Visibility.PRIVATE if item.get("private", True) else Visibility.PUBLIC

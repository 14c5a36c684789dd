"""GitLab provider client.

Supports both gitlab.com and self-hosted GitLab instances.
"""

from typing import Any, Iterator

import structlog

from gitback.core.models.config import Provider
from gitback.core.models.repository import Repository, Visibility
from gitback.git.urls import with_credentials
from gitback.providers.base import ProviderClient

logger = structlog.get_logger(__name__)

_VISIBILITY = {
    "public": Visibility.PUBLIC,
    "private": Visibility.PRIVATE,
    "internal": Visibility.INTERNAL,
}


def project_path_name(name_with_namespace: str) -> str:
    """Turn ``"Group / Sub Group / Project"`` into ``"Group/Sub_Group/Project"``."""
    return name_with_namespace.replace(" / ", "/").replace(" ", "_")


class GitLabClient(ProviderClient):
    """Lists projects through the GitLab v4 REST API.

    Account args: ``[base url]`` for self-hosted instances.
    """

    provider = Provider.GITLAB
    DEFAULT_BASE_URL = "https://gitlab.com"
    API_PATH = "/api/v4"

    def __init__(self, account, transport=None) -> None:
        super().__init__(account, transport=transport)
        self.user_id: int | None = None

    def _base_url(self) -> str:
        base = self._account.arg(0, self.DEFAULT_BASE_URL).rstrip("/")
        if not base.endswith(self.API_PATH):
            base += self.API_PATH
        return base

    def _auth_headers(self) -> dict[str, str]:
        return {"PRIVATE-TOKEN": self._token}

    def _authenticate(self) -> None:
        user = self._get("/user").json()
        self.user_id = int(user["id"])
        logger.debug(
            "GitLab user resolved",
            account=self.name,
            user_id=self.user_id,
            username=user.get("username"),
        )

    def _paginate(self, url: str, params: dict[str, Any] | None = None) -> Iterator[Any]:
        """Yield items of every page, following ``X-Next-Page``."""
        params = {"per_page": self.PAGE_SIZE, **(params or {})}
        while True:
            response = self._get(url, params=params)
            yield from response.json()
            next_page = response.headers.get("X-Next-Page", "").strip()
            if not next_page:
                return
            params = {**params, "page": next_page}

    def _is_member(self, project_id: int) -> bool:
        for member in self._paginate(f"/projects/{project_id}/members/all"):
            if member.get("id") == self.user_id:
                return True
        return False

    def _iter_repositories(self) -> Iterator[Repository]:
        for project in self._paginate("/projects", {"statistics": "true"}):
            yield self._parse_project(project)

    def _parse_project(self, project: dict[str, Any]) -> Repository:
        statistics = project.get("statistics")
        size = statistics.get("storage_size", -1) if statistics else -1

        owner_id = (project.get("owner") or {}).get("id")

        return Repository(
            clone_url=with_credentials(project["http_url_to_repo"], "oauth2", self._token),
            name=project_path_name(project["name_with_namespace"]),
            size=size,
            created_at=project["created_at"],
            owner=owner_id is not None and owner_id == self.user_id,
            member=self._is_member(project["id"]),
            visibility=_VISIBILITY.get(project.get("visibility", ""), Visibility.PRIVATE),
            provider_name=self.name,
            archived=bool(project.get("archived", False)),
        )

"""Repository record model."""

from datetime import datetime, timezone
from enum import IntEnum
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Visibility(IntEnum):
    """Repository visibility. Ordinals are exposed to filter rules."""

    PUBLIC = 0
    PRIVATE = 1
    INTERNAL = 2


class Repository(BaseModel):
    """A remote repository as normalized by a provider client.

    ``name`` is both the catalog key and the path of the mirror relative
    to the backup root, so nested namespaces like ``group/sub/project``
    produce nested directories.
    """

    clone_url: str = Field(repr=False)  # may embed credentials
    name: str
    size: int = -1  # -1 when the provider does not report it
    created_at: datetime = Field(
        default_factory=lambda: datetime.fromtimestamp(0, tz=timezone.utc)
    )
    owner: bool = False
    member: bool = False
    visibility: Visibility = Visibility.PRIVATE
    provider_name: str = ""
    archived: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator("name")
    @classmethod
    def _check_relative_path(cls, value: str) -> str:
        if not value or value.startswith("/") or "\\" in value:
            raise ValueError(f"repository name is not a relative path: {value!r}")
        parts = value.split("/")
        if any(part in ("", ".", "..") for part in parts):
            raise ValueError(f"repository name is not filesystem safe: {value!r}")
        return value

    @property
    def relative_path(self) -> PurePosixPath:
        return PurePosixPath(self.name)

"""Account and backup configuration models."""

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class Provider(IntEnum):
    """Source hosting provider of an account."""

    GITHUB = 0
    GITLAB = 1


class OrphanPolicy(IntEnum):
    """What to do with local mirrors that are no longer in the catalog."""

    IGNORE = 0
    PULL = 1
    REMOVE = 2


class AccountConfig(BaseModel):
    """A single provider account.

    ``args`` are provider specific: the user login (and optionally an API
    base URL) for GitHub, the instance base URL for GitLab.
    """

    name: str
    provider: Provider
    token: SecretStr
    args: list[str] = Field(default_factory=list)
    filters: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def arg(self, index: int, default: str = "") -> str:
        """Return ``args[index]`` or ``default`` when it is missing or blank."""
        if index < len(self.args) and self.args[index]:
            return self.args[index]
        return default


class BackupConfig(BaseModel):
    """Top level configuration as read from the YAML file."""

    repository: str
    accounts: list[AccountConfig] = Field(default_factory=list)
    overwrite_on_conflict: bool = False
    handle_orphaned: OrphanPolicy = OrphanPolicy.IGNORE

    model_config = ConfigDict(frozen=True)

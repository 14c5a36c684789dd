"""Load and validate the YAML backup configuration."""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from gitback.core.exceptions import ConfigurationError
from gitback.core.models.config import BackupConfig

logger = structlog.get_logger(__name__)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its top-level mapping."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(
            f"failed to read config at {path}: {e}", details={"path": str(path)}
        ) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"failed to parse config at {path}: {e}", details={"path": str(path)}
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"config at {path} must be a mapping, got {type(data).__name__}",
            details={"path": str(path)},
        )
    return data


def parse_config(data: dict[str, Any]) -> BackupConfig:
    """Validate raw config data."""
    try:
        return BackupConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid config: {e}") from e


def load_config(path: str | Path) -> BackupConfig:
    """Read ``path`` and return the validated backup configuration."""
    config_path = Path(path).expanduser()
    config = parse_config(load_yaml(config_path))
    logger.debug(
        "Config loaded",
        path=str(config_path),
        repository=config.repository,
        accounts=[account.name for account in config.accounts],
    )
    return config

"""Configuration management for Markdown GitDB."""

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from . import CONFIG_FILE, GITDB_DIR, LANCEDB_DIR
from .errors import ConfigError


class GitDBConfig(BaseModel):
    """Configuration for Markdown GitDB."""

    version: int = 1
    repo_url: str | None = None
    branch: str = "main"
    checkout_path: str = "database"
    database_subdir: str = ""
    max_concurrency: int = Field(default=4, ge=1)
    log_level: str = "INFO"


# Environment variable -> config field
ENV_OVERRIDES = {
    "MGDB_REPO_URL": "repo_url",
    "MGDB_BRANCH": "branch",
    "MGDB_CHECKOUT_PATH": "checkout_path",
    "MGDB_DATABASE_SUBDIR": "database_subdir",
    "MGDB_MAX_CONCURRENCY": "max_concurrency",
    "MGDB_LOG_LEVEL": "log_level",
}


def get_gitdb_dir(project_root: Path) -> Path:
    """Get the .markdown-gitdb directory path."""
    return project_root / GITDB_DIR


def get_config_path(project_root: Path) -> Path:
    """Get the config file path."""
    return get_gitdb_dir(project_root) / CONFIG_FILE


def get_lancedb_path(project_root: Path) -> Path:
    """Get the LanceDB directory path."""
    return get_gitdb_dir(project_root) / LANCEDB_DIR


def resolve_checkout_path(config: GitDBConfig, project_root: Path) -> Path:
    """Resolve the checkout path against the project root."""
    path = Path(config.checkout_path).expanduser()
    if not path.is_absolute():
        path = project_root / path
    return path


def load_config(project_root: Path) -> GitDBConfig:
    """Load configuration from the project's config file.

    Falls back to defaults if file doesn't exist.
    Environment variables can override config values.
    """
    config_path = get_config_path(project_root)

    try:
        if config_path.exists():
            with open(config_path) as f:
                data = json.load(f)
            config = GitDBConfig.model_validate(data)
        else:
            config = GitDBConfig()

        # Apply environment variable overrides
        config = _apply_env_overrides(config)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    return config


def save_config(config: GitDBConfig, project_root: Path) -> None:
    """Save configuration to the project's config file."""
    config_path = get_config_path(project_root)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config.model_dump(), f, indent=2)


def _apply_env_overrides(config: GitDBConfig) -> GitDBConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    for env_var, field_name in ENV_OVERRIDES.items():
        if (value := os.environ.get(env_var)) is not None:
            data[field_name] = value

    return GitDBConfig.model_validate(data)

"""Settings for talking to the PagerDuty API, loaded from YAML and CLI flags."""

from __future__ import annotations

from pathlib import Path

import yaml
from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, Field, ValidationError

DEFAULT_BASE_URL = "https://api.pagerduty.com"
TOKEN_ENV_VAR = "PAGERDUTY_TOKEN"


class ConfigError(Exception):
    """Exception raised when a config file cannot be read or is invalid."""


class Settings(BaseModel):
    api_token: str | None = None
    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=30, gt=0)
    page_size: int = Field(default=100, ge=1, le=100)


def load_settings(
    config_path: Path | None = None, api_token: str | None = None
) -> Settings:
    """Build the settings for one CLI run.

    Args:
        config_path: Optional YAML file. Values may sit at the top level or
            under a ``pagerduty`` key.
        api_token: Token from ``--api-token`` or ``PAGERDUTY_TOKEN``. Takes
            precedence over the file.

    Returns:
        A validated ``Settings`` instance.

    Raises:
        ConfigError: If the file is missing, is not YAML, or fails validation.
    """
    data: dict = {}

    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            with open(config_path) as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")
        data = loaded.get("pagerduty", loaded)
        if not isinstance(data, dict):
            raise ConfigError(f"'pagerduty' in {config_path} must be a mapping")

    if api_token:
        data = {**data, "api_token": api_token}

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e


def token_from_dotenv() -> str | None:
    """Return ``PAGERDUTY_TOKEN`` from the nearest ``.env`` at or above the cwd.

    The file is read without touching ``os.environ``.
    """
    path = find_dotenv(usecwd=True)
    if not path:
        return None
    return dotenv_values(path).get(TOKEN_ENV_VAR) or None

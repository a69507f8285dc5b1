"""Configuration management for benchwarden.

This module provides configuration classes using pydantic-settings
for environment variable management and validation.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from benchwarden.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables with
    the BENCHWARDEN_ prefix.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        max_attempts: Attempts of the load/append/persist cycle before a conflict is fatal.
        base_delay_seconds: First backoff delay after a conflict.
        max_delay_seconds: Upper bound of the backoff delay.
        max_items: Keep only this many newest entries per tool (None = unlimited).
        webhook_url: Optional URL that receives a summary of every run.

    Example:
        >>> # Set via environment variables:
        >>> # export BENCHWARDEN_MAX_ATTEMPTS=3
        >>> # export BENCHWARDEN_LOG_LEVEL=DEBUG
        >>>
        >>> settings = Settings()
        >>> print(settings.max_attempts)
        3

    Environment Variables:
        BENCHWARDEN_LOG_LEVEL: Logging level (default: WARNING)
        BENCHWARDEN_MAX_ATTEMPTS: Retry budget for conflicts (default: 5)
        BENCHWARDEN_BASE_DELAY_SECONDS: First backoff delay (default: 0.5)
        BENCHWARDEN_MAX_DELAY_SECONDS: Backoff cap (default: 8.0)
        BENCHWARDEN_MAX_ITEMS: Per-tool history cap (optional)
        BENCHWARDEN_WEBHOOK_URL: Notification webhook (optional)
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCHWARDEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(
        default="WARNING",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    # Optimistic concurrency retries
    max_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Attempts of the load/append/persist cycle",
    )
    base_delay_seconds: float = Field(
        default=0.5,
        ge=0,
        description="First backoff delay after a conflict, in seconds",
    )
    max_delay_seconds: float = Field(
        default=8.0,
        ge=0,
        description="Upper bound of the backoff delay, in seconds",
    )

    max_items: int | None = Field(
        default=None,
        ge=1,
        description="Keep only this many newest entries per tool",
    )
    webhook_url: str | None = Field(
        default=None,
        description="Optional URL that receives a summary of every run",
    )


def configure_logging(level: str) -> None:
    """Configure root logging for command-line use.

    Args:
        level: Level name such as "INFO" or "DEBUG". Unknown names fall back to WARNING.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_yaml_section(path: Path | str, section: str) -> dict[str, Any]:
    """Read one top-level section of a YAML configuration file.

    Args:
        path: Path to the YAML configuration file.
        section: Name of the section, e.g. "regression".

    Returns:
        The section's mapping (empty if the file or the section is empty).

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ConfigurationError: If the file is not valid YAML or is not shaped
            as a mapping of sections.
    """
    import yaml

    path = Path(path)
    if not path.exists():
        msg = f"Configuration file not found: {path}"
        raise FileNotFoundError(msg)

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        msg = f"Configuration file {path} is not valid YAML: {e}"
        raise ConfigurationError(msg) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Configuration file {path} must contain a mapping, got {type(data).__name__}"
        raise ConfigurationError(msg)

    content = data.get(section)
    if content is None:
        return {}
    if not isinstance(content, dict):
        msg = f"Section '{section}' of {path} must be a mapping, got {type(content).__name__}"
        raise ConfigurationError(msg)
    return content

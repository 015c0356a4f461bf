"""
Configuration management for the lights-agent chat loop.

This module provides a Settings class that loads configuration from environment
variables (and an optional ``.env`` file). The three connection values are
required and read from unprefixed variables:

- ``MODEL_ID``: model identifier (the deployment name for Azure OpenAI).
- ``AZURE_OPENAI_ENDPOINT``: service endpoint URL.
- ``AZURE_OPENAI_API_KEY``: access credential.

Everything else is optional and uses the ``LIGHTS_AGENT_`` prefix.
"""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Field name -> environment variable reported when the value is missing.
_REQUIRED_ENV_VARS: dict[str, str] = {
    "deployment_name": "MODEL_ID",
    "endpoint": "AZURE_OPENAI_ENDPOINT",
    "api_key": "AZURE_OPENAI_API_KEY",
}


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Provider connection (required)
    deployment_name: str = Field(
        min_length=1,
        validation_alias=AliasChoices("MODEL_ID", "LIGHTS_AGENT_MODEL_ID"),
    )
    endpoint: str = Field(
        min_length=1,
        validation_alias=AliasChoices("AZURE_OPENAI_ENDPOINT", "LIGHTS_AGENT_ENDPOINT"),
    )
    api_key: str = Field(
        min_length=1,
        validation_alias=AliasChoices("AZURE_OPENAI_API_KEY", "LIGHTS_AGENT_API_KEY"),
    )

    # Provider tuning
    api_flavor: Literal["azure", "openai"] = "azure"
    api_version: str = "2024-06-01"
    temperature: float = 0.7

    # Conversation
    max_iterations: int = 10
    system_prompt: str | None = None

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="LIGHTS_AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


def load_settings(env_file: str | None = ".env") -> Settings:
    """Load settings, translating validation failures into ``ConfigurationError``.

    Args:
        env_file: Path to a dotenv file to read in addition to the process
            environment. ``None`` reads the environment only.

    Returns:
        The populated ``Settings`` instance.

    Raises:
        ConfigurationError: If a required value is absent or empty, or an
            optional value fails validation.
    """
    try:
        return Settings(_env_file=env_file)
    except ValidationError as exc:
        missing: list[str] = []
        other: list[str] = []
        for error in exc.errors():
            field_name = str(error["loc"][0]) if error["loc"] else ""
            env_var = _required_env_var(field_name)
            if env_var is not None:
                missing.append(env_var)
            else:
                other.append(f"{field_name}: {error['msg']}")
        messages = [f"{name} not found in environment" for name in missing]
        messages.extend(other)
        raise ConfigurationError("; ".join(messages)) from exc


def _required_env_var(loc: str) -> str | None:
    """Map a validation error location back to the required variable name."""
    if loc in _REQUIRED_ENV_VARS:
        return _REQUIRED_ENV_VARS[loc]
    # Errors for aliased fields are reported under the first alias.
    if loc in _REQUIRED_ENV_VARS.values():
        return loc
    return None

"""Configuration types with environment variable support.

All settings can be configured via environment variables with the HOOKVERIFY_ prefix.
Example: HOOKVERIFY_PROVIDER=github HOOKVERIFY_SECRET=... selects and keys a provider.

Several endpoints can instead be described in a YAML or TOML file:

    providers:
      - name: github
        secret: gh_webhook_secret
      - name: slack
        secret: slack_signing_secret
        tolerance: 120
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from hookverify.webhooks.errors import ConfigurationError
from hookverify.webhooks.providers import DEFAULT_TOLERANCE, get_provider
from hookverify.webhooks.verifier import WebhookProvider

# Keyword each provider uses for its key material.
SECRET_FIELDS: dict[str, str] = {
    "stripe": "secret",
    "github": "secret",
    "slack": "signing_secret",
    "shopify": "secret",
    "twilio": "auth_token",
    "line": "channel_secret",
    "discord": "public_key",
    "standard-webhooks": "secret",
}

# Providers without a timestamp check take no tolerance.
TOLERANCE_PROVIDERS = frozenset({"stripe", "slack", "discord", "standard-webhooks"})


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(content) or {}
        elif path.suffix == ".toml":
            return tomllib.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e


class ProviderConfig(BaseModel):
    """One configured webhook endpoint."""

    name: str
    secret: str = Field(
        repr=False,
        description="Signing secret, auth token, channel secret or Discord public key.",
    )
    tolerance: int | None = Field(
        default=None,
        ge=0,
        description="Timestamp tolerance in seconds. None uses the provider default.",
    )


class WebhookSettings(BaseSettings):
    """Single-provider configuration read from the environment.

    All settings can be overridden via environment variables:
    - HOOKVERIFY_PROVIDER: Provider name (e.g. github, standard-webhooks)
    - HOOKVERIFY_SECRET: Key material for that provider
    - HOOKVERIFY_TOLERANCE: Timestamp tolerance in seconds
    - HOOKVERIFY_DISCORD_TOLERANCE: Tolerance for Discord (unchecked if unset)
    - HOOKVERIFY_LOG_LEVEL: Log level for the CLI
    """

    model_config = SettingsConfigDict(
        env_prefix="HOOKVERIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str | None = Field(
        default=None,
        description="Webhook provider name.",
    )
    secret: str | None = Field(
        default=None,
        repr=False,
        description="Key material for the provider.",
    )
    tolerance: int = Field(
        default=DEFAULT_TOLERANCE,
        ge=0,
        description="Timestamp tolerance in seconds (5 minutes default).",
    )
    discord_tolerance: int | None = Field(
        default=None,
        ge=0,
        description="Discord timestamp tolerance in seconds. Unset skips the check.",
    )
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="warning",
        description="Log level: debug, info, warning or error.",
    )

    def to_provider_config(self) -> ProviderConfig:
        if not self.provider:
            raise ConfigurationError("HOOKVERIFY_PROVIDER is not set")
        if self.secret is None:
            raise ConfigurationError(f"{self.provider}: HOOKVERIFY_SECRET is not set")
        name = self.provider.lower()
        tolerance = self.discord_tolerance if name == "discord" else self.tolerance
        return ProviderConfig(name=name, secret=self.secret, tolerance=tolerance)


def build_provider(config: ProviderConfig | WebhookSettings) -> WebhookProvider:
    """Create a provider from configuration.

    Raises:
        ConfigurationError: If the provider is unknown or its secret unusable.
    """
    if isinstance(config, WebhookSettings):
        config = config.to_provider_config()

    name = config.name.lower()
    secret_field = SECRET_FIELDS.get(name)
    if secret_field is None:
        raise ConfigurationError(f"Unknown webhook provider: {config.name}")

    kwargs: dict[str, Any] = {secret_field: config.secret}
    if name in TOLERANCE_PROVIDERS and config.tolerance is not None:
        kwargs["tolerance"] = config.tolerance
    return get_provider(name, **kwargs)


def load_provider_configs(path: str | Path) -> list[ProviderConfig]:
    """Read the ``providers`` list from a YAML or TOML file.

    Raises:
        ConfigurationError: If an entry is missing fields or has bad values.
    """
    data = load_config_from_file(path)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    entries = data.get("providers", [])
    if not isinstance(entries, list):
        raise ConfigurationError(f"'providers' in {path} must be a list")
    try:
        return [ProviderConfig.model_validate(entry) for entry in entries]
    except ValidationError as e:
        raise ConfigurationError(f"Invalid provider entry in {path}: {e}") from e


def load_providers(path: str | Path) -> dict[str, WebhookProvider]:
    """Build every provider listed in a config file, keyed by name."""
    return {config.name.lower(): build_provider(config) for config in load_provider_configs(path)}


_settings: WebhookSettings | None = None


def get_settings() -> WebhookSettings:
    """Get the global settings instance.

    Returns a cached instance of WebhookSettings that reads from environment variables.
    To reload settings (e.g., in tests), call clear_settings() first.
    """
    global _settings
    if _settings is None:
        _settings = WebhookSettings()
    return _settings


def clear_settings() -> None:
    """Clear the cached settings.

    Call this to force reloading of environment variables on next get_settings() call.
    Useful for testing.
    """
    global _settings
    _settings = None

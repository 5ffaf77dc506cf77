"""Core."""

from .config import (
    ProviderConfig,
    WebhookSettings,
    build_provider,
    clear_settings,
    get_settings,
    load_config_from_file,
    load_provider_configs,
    load_providers,
)

__all__ = [
    "ProviderConfig",
    "WebhookSettings",
    "build_provider",
    "clear_settings",
    "get_settings",
    "load_config_from_file",
    "load_provider_configs",
    "load_providers",
]

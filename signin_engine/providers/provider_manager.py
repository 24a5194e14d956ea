"""
Provider manager for named provider configurations.

This module turns the providers section of the process configuration into
validated ProviderConfig instances, merging in the built-in presets, and hands
them out by name.
"""

import logging
from typing import Dict, Any, List, Optional

from .base_provider import ProviderConfig, ProviderConfigurationError
from .presets import merge_with_preset


class ProviderManagerError(Exception):
    """Raised when provider manager encounters an error."""
    pass


class ProviderManager:
    """
    Registry of provider configurations.

    Providers are registered once at start-up; the resulting ProviderConfig
    instances are immutable and safe to share across threads.
    """

    def __init__(self, config=None):
        """
        Initialize the provider manager.

        Args:
            config: Optional Config instance whose enabled providers are registered
        """
        self.providers: Dict[str, ProviderConfig] = {}
        self.logger = logging.getLogger(__name__)
        self.config = config

        if config is not None:
            self.register_providers_from_config()

    def register_provider(self, name: str, config: Dict[str, Any]) -> ProviderConfig:
        """
        Register a provider from configuration values.

        Args:
            name: Provider name
            config: Provider configuration dictionary (merged over its preset)

        Returns:
            The validated provider configuration

        Raises:
            ProviderManagerError: If provider registration fails
        """
        try:
            provider = ProviderConfig.from_dict(name, merge_with_preset(name, config))
        except ProviderConfigurationError as e:
            self.logger.error(f"Provider configuration error for {name}: {e}")
            raise ProviderManagerError(f"Failed to register provider {name}: {e}") from e

        self.providers[name] = provider
        self.logger.info(f"Registered provider: {name} ({provider.display_name})")
        return provider

    def register_providers_from_config(self) -> None:
        """Register every enabled provider of the attached configuration."""
        for name in self.config.get_enabled_providers():
            self.register_provider(name, self.config.get_provider_config(name))

        if not self.providers:
            self.logger.warning("No providers registered")

    def get_provider(self, name: str) -> Optional[ProviderConfig]:
        """
        Get a registered provider by name.

        Args:
            name: Provider name

        Returns:
            Provider configuration or None if not found
        """
        return self.providers.get(name)

    def get_all_providers(self) -> Dict[str, ProviderConfig]:
        return self.providers.copy()

    def get_provider_info(self) -> List[Dict[str, Any]]:
        """
        Get displayable information about all registered providers.

        Returns:
            List of provider information dictionaries (no credentials)
        """
        return [
            {
                'name': provider.name,
                'display_name': provider.display_name,
                'openid_connect': provider.capabilities.requires_nonce,
                'pkce': provider.capabilities.requires_pkce,
                'profile_fetch': provider.capabilities.requires_profile_fetch,
                'scope': provider.scope
            }
            for provider in self.providers.values()
        ]

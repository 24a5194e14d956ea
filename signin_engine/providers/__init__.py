"""
Identity provider configuration for the sign-in engine.

Providers are plain configuration plus capability flags; the built-in presets
cover GitHub (OAuth2 + profile), Google (OpenID Connect) and Spotify
(OAuth2 + PKCE + profile).
"""

from .base_provider import (
    ProviderConfig,
    ProviderCapabilities,
    ProfileFieldMap,
    ProviderConfigurationError
)
from .presets import BUILTIN_PRESETS, merge_with_preset
from .provider_manager import ProviderManager, ProviderManagerError

__all__ = [
    'ProviderConfig',
    'ProviderCapabilities',
    'ProfileFieldMap',
    'ProviderConfigurationError',
    'ProviderManager',
    'ProviderManagerError',
    'BUILTIN_PRESETS',
    'merge_with_preset'
]

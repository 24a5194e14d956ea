"""
Process configuration for the sign-in engine.

Values come from a JSON providers file:

    {"providers": {"github": {...}, ...}, "settings": {...}}

Provider credentials are normally kept out of that file and written as
'env:VARIABLE' references, resolved from the environment after a .env file
has been loaded. Engine settings may also be overridden with SIGNIN_*
environment variables.
"""

import json
import os
from typing import Dict, Any, Optional, List

from dotenv import load_dotenv

ENV_PREFIX = 'env:'
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_DISCOVERY_CACHE_TTL = 3600
DEFAULT_USER_AGENT = 'signin-engine/1.0'
CACHE_BACKENDS = ('memory', 'redis')


class ConfigurationError(Exception):
    """Raised when the providers file or engine settings are unusable."""
    pass


def _resolve_env_refs(provider_name: str, values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace 'env:NAME' strings with the value of environment variable NAME.

    Args:
        provider_name: Provider name, for error messages
        values: Raw provider entry from the providers file

    Returns:
        A new dictionary with references resolved (None when unset)

    Raises:
        ConfigurationError: If a referenced variable is unset for an enabled provider
    """
    enabled = values.get('enabled', True)
    resolved = {}
    for key, value in values.items():
        if not (isinstance(value, str) and value.startswith(ENV_PREFIX)):
            resolved[key] = value
            continue
        variable = value[len(ENV_PREFIX):]
        resolved[key] = os.getenv(variable)
        # Disabled providers may leave their variables unset
        if resolved[key] is None and enabled:
            raise ConfigurationError(
                f"Environment variable {variable} not found for provider {provider_name}"
            )
    return resolved


class Config:
    """
    Loaded providers file plus engine settings.

    Attributes:
        PROVIDER_CONFIGS: Provider entries exactly as written in the file
        RESOLVED_PROVIDERS: Provider entries with env references resolved
        ENGINE_CONFIG: REQUEST_TIMEOUT, DISCOVERY_CACHE_TTL, DISCOVERY_CACHE_BACKEND,
            REDIS_URL and USER_AGENT
    """

    def __init__(self, providers_config_path: str = "providers.json", load_env: bool = True):
        """
        Load the providers file.

        Args:
            providers_config_path: Path to the providers JSON file
            load_env: Load a .env file into the environment first

        Raises:
            ConfigurationError: If the file is missing, invalid, or references unset variables
        """
        if load_env:
            load_dotenv()

        self.providers_config_path = providers_config_path
        document = self._read_document()

        self.PROVIDER_CONFIGS: Dict[str, Dict[str, Any]] = document.get('providers', {})
        self.PROVIDER_SETTINGS: Dict[str, Any] = document.get('settings') or {}
        self.RESOLVED_PROVIDERS = {
            name: _resolve_env_refs(name, entry) for name, entry in self.PROVIDER_CONFIGS.items()
        }
        self.ENGINE_CONFIG = self._engine_settings(self.PROVIDER_SETTINGS)

    def _read_document(self) -> Dict[str, Any]:
        try:
            with open(self.providers_config_path, 'r') as f:
                document = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Providers file not found: {self.providers_config_path}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {self.providers_config_path}: {e}")

        providers = document.get('providers', {}) if isinstance(document, dict) else None
        if not isinstance(providers, dict) or not all(isinstance(v, dict) for v in providers.values()):
            raise ConfigurationError("Providers file must contain a 'providers' object of objects")
        return document

    @staticmethod
    def _engine_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
        """
        Build engine settings, environment first, then file, then defaults.

        Raises:
            ConfigurationError: On a non-positive timeout, an unknown cache backend,
                or the redis backend without a URL
        """
        def setting(env_name, file_key, default):
            return os.getenv(env_name, settings.get(file_key, default))

        try:
            engine = {
                'REQUEST_TIMEOUT': float(setting('SIGNIN_REQUEST_TIMEOUT', 'request_timeout',
                                                 DEFAULT_REQUEST_TIMEOUT)),
                'DISCOVERY_CACHE_TTL': int(setting('SIGNIN_DISCOVERY_CACHE_TTL', 'discovery_cache_ttl',
                                                   DEFAULT_DISCOVERY_CACHE_TTL)),
                'DISCOVERY_CACHE_BACKEND': str(setting('SIGNIN_DISCOVERY_CACHE_BACKEND',
                                                       'discovery_cache_backend', 'memory')).lower(),
                'REDIS_URL': setting('SIGNIN_REDIS_URL', 'redis_url', None),
                'USER_AGENT': setting('SIGNIN_USER_AGENT', 'user_agent', DEFAULT_USER_AGENT)
            }
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid engine setting: {e}")

        if engine['REQUEST_TIMEOUT'] <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if engine['DISCOVERY_CACHE_BACKEND'] not in CACHE_BACKENDS:
            raise ConfigurationError(f"Unknown discovery cache backend: {engine['DISCOVERY_CACHE_BACKEND']}")
        if engine['DISCOVERY_CACHE_BACKEND'] == 'redis' and not engine['REDIS_URL']:
            raise ConfigurationError("redis_url is required for the redis discovery cache backend")
        return engine

    def get_provider_config(self, provider: str) -> Dict[str, Any]:
        """
        Resolved configuration of one provider.

        Raises:
            ConfigurationError: If the provider is not configured or is disabled
        """
        if provider not in self.RESOLVED_PROVIDERS:
            raise ConfigurationError(f"Unsupported provider: {provider}")
        if not self.is_provider_enabled(provider):
            raise ConfigurationError(f"Provider is disabled: {provider}")
        return self.RESOLVED_PROVIDERS[provider]

    def get_engine_config(self) -> Dict[str, Any]:
        return self.ENGINE_CONFIG.copy()

    def get_enabled_providers(self) -> List[str]:
        """Names of enabled providers, in file order."""
        return [name for name in self.PROVIDER_CONFIGS if self.is_provider_enabled(name)]

    def is_provider_enabled(self, provider: str) -> bool:
        entry = self.PROVIDER_CONFIGS.get(provider)
        return entry is not None and bool(entry.get('enabled', True))


_config: Optional[Config] = None


def get_config(providers_config_path: Optional[str] = None) -> Config:
    """
    Process-wide configuration, loaded on first use.

    Args:
        providers_config_path: Providers file path; defaults to the
            SIGNIN_PROVIDERS_CONFIG environment variable or 'providers.json'
    """
    global _config
    if _config is None:
        _config = Config(providers_config_path or os.getenv('SIGNIN_PROVIDERS_CONFIG', 'providers.json'))
    return _config

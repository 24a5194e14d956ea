"""
Provider configuration and capability model.

A provider is described entirely by data: its endpoints, its client
credentials and a small set of capability flags. The flags (not the provider's
identity) decide which steps the orchestrator runs, so GitHub-style, Google-style
and Spotify-style providers share one sign-in implementation.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Any, Optional, Tuple, Mapping
from urllib.parse import urlparse


class ProviderConfigurationError(Exception):
    """Raised when provider configuration is invalid."""
    pass


@dataclass(frozen=True)
class ProviderCapabilities:
    """
    Capability flags selecting the sign-in variant.

    Attributes:
        requires_nonce: OpenID Connect provider; identity comes from a verified ID token
        requires_pkce: Send a S256 code challenge and prove it at token exchange
        requires_profile_fetch: Identity (or part of it) comes from the profile endpoint
    """
    requires_nonce: bool = False
    requires_pkce: bool = False
    requires_profile_fetch: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ProviderCapabilities':
        return cls(
            requires_nonce=bool(data.get('requires_nonce', False)),
            requires_pkce=bool(data.get('requires_pkce', False)),
            requires_profile_fetch=bool(data.get('requires_profile_fetch', False))
        )


@dataclass(frozen=True)
class ProfileFieldMap:
    """Where a provider's profile document keeps the identity fields."""
    subject: str = 'id'
    display_name: Tuple[str, ...] = ('name',)
    email: str = 'email'

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ProfileFieldMap':
        display_name = data.get('display_name', ('name',))
        if isinstance(display_name, str):
            display_name = (display_name,)
        return cls(
            subject=data.get('subject', 'id'),
            display_name=tuple(display_name),
            email=data.get('email', 'email')
        )


def _is_valid_url(url: str) -> bool:
    """
    Validate URL format.

    Args:
        url: URL to validate

    Returns:
        True if the URL has an http(s) scheme and a host
    """
    try:
        result = urlparse(url)
    except ValueError:
        return False
    return result.scheme in ('http', 'https') and bool(result.netloc)


@dataclass(frozen=True)
class ProviderConfig:
    """
    Immutable configuration of one identity provider.

    Loaded once per process and shared read-only by every sign-in attempt.
    """
    name: str
    client_id: str
    redirect_uri: str
    scope: str
    capabilities: ProviderCapabilities = field(default_factory=ProviderCapabilities)
    client_secret: Optional[str] = field(default=None, repr=False)
    issuer: Optional[str] = None
    authorization_endpoint: Optional[str] = None
    token_endpoint: Optional[str] = None
    userinfo_endpoint: Optional[str] = None
    extra_authorization_params: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    profile_fields: ProfileFieldMap = field(default_factory=ProfileFieldMap)
    profile_auth_scheme: str = 'Bearer'
    profile_headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    display_name: Optional[str] = None

    URL_FIELDS = ('issuer', 'authorization_endpoint', 'token_endpoint', 'userinfo_endpoint', 'redirect_uri')

    def __post_init__(self):
        self._validate()

    def _validate(self) -> None:
        """
        Validate provider configuration.

        Raises:
            ProviderConfigurationError: If required configuration is missing or inconsistent
        """
        missing_fields = [
            name for name in ('client_id', 'redirect_uri', 'scope')
            if not getattr(self, name)
        ]
        if missing_fields:
            raise ProviderConfigurationError(
                f"Missing required configuration for {self.name} provider: {', '.join(missing_fields)}"
            )

        for name in self.URL_FIELDS:
            url = getattr(self, name)
            if url and not _is_valid_url(url):
                raise ProviderConfigurationError(f"Invalid {name} for {self.name} provider: {url}")

        capabilities = self.capabilities
        if capabilities.requires_nonce and not self.issuer:
            raise ProviderConfigurationError(f"issuer is required for OpenID Connect provider {self.name}")
        if not capabilities.requires_nonce and not capabilities.requires_profile_fetch:
            raise ProviderConfigurationError(
                f"Provider {self.name} must require a nonce (OpenID Connect) or a profile fetch "
                f"to identify the user"
            )
        if capabilities.requires_profile_fetch and not self.userinfo_endpoint:
            raise ProviderConfigurationError(f"userinfo_endpoint is required for provider {self.name}")
        if not capabilities.requires_nonce:
            for name in ('authorization_endpoint', 'token_endpoint'):
                if not getattr(self, name):
                    raise ProviderConfigurationError(f"{name} is required for provider {self.name}")
        if not self.client_secret and not capabilities.requires_pkce:
            raise ProviderConfigurationError(
                f"client_secret is required for provider {self.name} unless PKCE is enabled"
            )

    @property
    def is_openid(self) -> bool:
        return self.capabilities.requires_nonce

    @property
    def is_public_client(self) -> bool:
        """True when the client authenticates with PKCE alone."""
        return not self.client_secret

    @classmethod
    def from_dict(cls, name: str, config: Mapping[str, Any]) -> 'ProviderConfig':
        """
        Build a provider configuration from a plain dictionary.

        Args:
            name: Provider name (e.g., 'github', 'google')
            config: Configuration values, as loaded from the providers file

        Returns:
            Validated ProviderConfig

        Raises:
            ProviderConfigurationError: If configuration is invalid
        """
        for key in ('client_id', 'client_secret', 'redirect_uri'):
            value = config.get(key)
            if value is not None and not isinstance(value, str):
                raise ProviderConfigurationError(f"{key} must be a string for {name} provider")

        scope = config.get('scope', '')
        if isinstance(scope, (list, tuple)):
            scope = ' '.join(scope)
        elif not isinstance(scope, str):
            raise ProviderConfigurationError(f"scope must be a string or a list for {name} provider")

        extra_params = config.get('extra_authorization_params') or {}
        profile_headers = config.get('profile_headers') or {}
        if not isinstance(extra_params, dict) or not isinstance(profile_headers, dict):
            raise ProviderConfigurationError(
                f"extra_authorization_params and profile_headers must be objects for {name} provider"
            )

        return cls(
            name=name,
            client_id=config.get('client_id') or '',
            client_secret=config.get('client_secret') or None,
            redirect_uri=config.get('redirect_uri') or '',
            scope=scope,
            capabilities=ProviderCapabilities.from_dict(config.get('capabilities') or {}),
            issuer=config.get('issuer'),
            authorization_endpoint=config.get('authorization_endpoint'),
            token_endpoint=config.get('token_endpoint'),
            userinfo_endpoint=config.get('userinfo_endpoint'),
            extra_authorization_params=MappingProxyType(
                {str(k): str(v) for k, v in extra_params.items()}
            ),
            profile_fields=ProfileFieldMap.from_dict(config.get('profile_fields') or {}),
            profile_auth_scheme=config.get('profile_auth_scheme', 'Bearer'),
            profile_headers=MappingProxyType(dict(profile_headers)),
            display_name=config.get('display_name', name.title())
        )

    def __str__(self) -> str:
        return f"ProviderConfig(name='{self.name}', display_name='{self.display_name}')"

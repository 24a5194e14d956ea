"""
Provider sign-in engine.

Relying-party implementation of the OAuth2 Authorization Code flow with
optional OpenID Connect ID-token verification and PKCE, for GitHub-style,
Google-style and Spotify-style identity providers.
"""

from .authorization import AuthorizationRequestBuilder
from .callback import CallbackVerifier
from .config import Config, ConfigurationError, get_config
from .correlation import CorrelationStore, correlation_key
from .discovery import DiscoveryResolver, InMemoryDiscoveryCache, RedisDiscoveryCache
from .engine import SigninEngine, create_engine
from .errors import (
    SigninError,
    SigninErrorKind,
    DiscoveryFailureReason,
    CorrelationMissingError,
    StateMismatchError,
    NonceMismatchError,
    PkceVerifierMissingError,
    MalformedTokenError,
    UnsupportedAlgorithmError,
    SigningKeyNotFoundError,
    SignatureInvalidError,
    InvalidIssuerError,
    InvalidAudienceError,
    TokenExpiredError,
    DiscoveryFailedError,
    TokenRequestFailedError,
    ProfileFetchFailedError,
    NetworkError,
    InvalidEndpointUrlError,
    AuthorizationDeniedError
)
from .id_token import IdTokenVerifier
from .models import (
    AuthorizationRequest,
    CallbackPayload,
    CorrelationAttributes,
    Identity,
    IdTokenClaims,
    JsonWebKey,
    JsonWebKeySet,
    OpenIdConfiguration,
    TokenResponse
)
from .orchestrator import SigninAttempt, SigninOrchestrator, SigninState
from .profile import ProfileClient
from .providers import ProviderCapabilities, ProviderConfig, ProviderManager
from .token_exchange import TokenExchangeClient
from .transport import Deadline, HttpTransport

__version__ = "1.0.0"

__all__ = [
    'AuthorizationRequest',
    'AuthorizationRequestBuilder',
    'AuthorizationDeniedError',
    'CallbackPayload',
    'CallbackVerifier',
    'Config',
    'ConfigurationError',
    'CorrelationAttributes',
    'CorrelationMissingError',
    'CorrelationStore',
    'Deadline',
    'DiscoveryFailedError',
    'DiscoveryFailureReason',
    'DiscoveryResolver',
    'HttpTransport',
    'Identity',
    'IdTokenClaims',
    'IdTokenVerifier',
    'InMemoryDiscoveryCache',
    'InvalidAudienceError',
    'InvalidEndpointUrlError',
    'InvalidIssuerError',
    'JsonWebKey',
    'JsonWebKeySet',
    'MalformedTokenError',
    'NetworkError',
    'NonceMismatchError',
    'OpenIdConfiguration',
    'PkceVerifierMissingError',
    'ProfileClient',
    'ProfileFetchFailedError',
    'ProviderCapabilities',
    'ProviderConfig',
    'ProviderManager',
    'RedisDiscoveryCache',
    'SignatureInvalidError',
    'SigningKeyNotFoundError',
    'SigninAttempt',
    'SigninEngine',
    'SigninError',
    'SigninErrorKind',
    'SigninOrchestrator',
    'SigninState',
    'StateMismatchError',
    'TokenExchangeClient',
    'TokenExpiredError',
    'TokenRequestFailedError',
    'TokenResponse',
    'UnsupportedAlgorithmError',
    'correlation_key',
    'create_engine',
    'get_config'
]

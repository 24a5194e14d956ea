"""
Error taxonomy for the sign-in engine.

Every failure that aborts a sign-in attempt is raised as a SigninError subclass
carrying a precise SigninErrorKind. Only NetworkError is retryable; every other
kind is terminal for the attempt and requires a fresh authorization request.
"""

from enum import Enum
from typing import Optional


class SigninErrorKind(Enum):
    """Kinds of sign-in failures."""
    CORRELATION_MISSING = "correlation_missing"
    STATE_MISMATCH = "state_mismatch"
    NONCE_MISMATCH = "nonce_mismatch"
    PKCE_VERIFIER_MISSING = "pkce_verifier_missing"
    MALFORMED_TOKEN = "malformed_token"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    SIGNING_KEY_NOT_FOUND = "signing_key_not_found"
    SIGNATURE_INVALID = "signature_invalid"
    INVALID_ISSUER = "invalid_issuer"
    INVALID_AUDIENCE = "invalid_audience"
    TOKEN_EXPIRED = "token_expired"
    DISCOVERY_FAILED = "discovery_failed"
    TOKEN_REQUEST_FAILED = "token_request_failed"
    PROFILE_FETCH_FAILED = "profile_fetch_failed"
    NETWORK_ERROR = "network_error"
    INVALID_ENDPOINT_URL = "invalid_endpoint_url"
    AUTHORIZATION_DENIED = "authorization_denied"


class DiscoveryFailureReason(Enum):
    """Why an OpenID configuration or key set could not be resolved."""
    HTTP_ERROR = "http_error"
    DECODE_ERROR = "decode_error"
    ISSUER_MISMATCH = "issuer_mismatch"


class SigninError(Exception):
    """Base exception for all sign-in failures."""

    kind: SigninErrorKind = SigninErrorKind.NETWORK_ERROR
    retryable: bool = False

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        # Set by the orchestrator to the attempt that failed
        self.attempt = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind='{self.kind.value}', provider={self.provider!r})"


class CorrelationMissingError(SigninError):
    """Raised when no saved correlation attributes exist for the callback."""
    kind = SigninErrorKind.CORRELATION_MISSING


class StateMismatchError(SigninError):
    """Raised when the callback state differs from the saved state."""
    kind = SigninErrorKind.STATE_MISMATCH


class NonceMismatchError(SigninError):
    """Raised when the ID token nonce differs from the saved nonce."""
    kind = SigninErrorKind.NONCE_MISMATCH


class PkceVerifierMissingError(SigninError):
    """Raised when a PKCE provider callback has no saved code_verifier."""
    kind = SigninErrorKind.PKCE_VERIFIER_MISSING


class MalformedTokenError(SigninError):
    """Raised when an ID token cannot be decoded or lacks required claims."""
    kind = SigninErrorKind.MALFORMED_TOKEN


class UnsupportedAlgorithmError(SigninError):
    """Raised when an ID token is signed with an algorithm other than RS256."""
    kind = SigninErrorKind.UNSUPPORTED_ALGORITHM


class SigningKeyNotFoundError(SigninError):
    """Raised when no published key matches the ID token kid."""
    kind = SigninErrorKind.SIGNING_KEY_NOT_FOUND


class SignatureInvalidError(SigninError):
    """Raised when the ID token signature does not verify."""
    kind = SigninErrorKind.SIGNATURE_INVALID


class InvalidIssuerError(SigninError):
    kind = SigninErrorKind.INVALID_ISSUER


class InvalidAudienceError(SigninError):
    kind = SigninErrorKind.INVALID_AUDIENCE


class TokenExpiredError(SigninError):
    kind = SigninErrorKind.TOKEN_EXPIRED


class DiscoveryFailedError(SigninError):
    """Raised when discovery or key set retrieval fails."""

    kind = SigninErrorKind.DISCOVERY_FAILED

    def __init__(self, message: str, reason: DiscoveryFailureReason, provider: Optional[str] = None):
        super().__init__(message, provider)
        self.reason = reason


class TokenRequestFailedError(SigninError):
    """
    Raised when the token endpoint rejects the exchange or answers garbage.

    Attributes:
        status: HTTP status code returned by the token endpoint
        body: Provider error body (truncated), empty for successful statuses
    """

    kind = SigninErrorKind.TOKEN_REQUEST_FAILED

    def __init__(self, message: str, status: int, body: str = '', provider: Optional[str] = None):
        super().__init__(message, provider)
        self.status = status
        self.body = body


class ProfileFetchFailedError(SigninError):
    """Raised when the profile endpoint cannot produce a usable identity."""

    kind = SigninErrorKind.PROFILE_FETCH_FAILED

    def __init__(self, message: str, status: Optional[int] = None, provider: Optional[str] = None):
        super().__init__(message, provider)
        self.status = status


class NetworkError(SigninError):
    """Raised on timeouts, connection failures and expired deadlines."""
    kind = SigninErrorKind.NETWORK_ERROR
    retryable = True


class InvalidEndpointUrlError(SigninError):
    kind = SigninErrorKind.INVALID_ENDPOINT_URL


class AuthorizationDeniedError(SigninError):
    """
    Raised when the provider redirects back with an OAuth error.

    Attributes:
        error: OAuth error code (e.g. 'access_denied')
        error_description: Optional provider description
        user_message: Human readable message suitable for display
    """

    kind = SigninErrorKind.AUTHORIZATION_DENIED

    USER_MESSAGES = {
        'access_denied': 'You cancelled the authorization. Please try again if you want to sign in.',
        'invalid_request': 'Invalid authorization request. Please try again.',
        'unauthorized_client': 'Application not authorized. Please contact support.',
        'unsupported_response_type': 'Configuration error. Please contact support.',
        'invalid_scope': 'Invalid permissions requested. Please contact support.',
        'server_error': 'The provider reported a server error. Please try again later.',
        'temporarily_unavailable': 'The provider is temporarily unavailable. Please try again later.'
    }

    def __init__(self, error: str, error_description: Optional[str] = None, provider: Optional[str] = None):
        super().__init__(f"Authorization denied by provider: {error}", provider)
        self.error = error
        self.error_description = error_description
        self.user_message = self.USER_MESSAGES.get(error, error_description or 'Sign-in failed')

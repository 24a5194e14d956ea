"""
Sign-in orchestration.

SigninOrchestrator composes the engine components into the two caller-facing
operations, `start` and `complete`. The provider's capability flags decide
which steps run; there is no per-provider code path.

Each call tracks its progress in a SigninAttempt:

    INIT -> AUTHORIZATION_BUILT -> (redirect + callback, outside the engine)
         -> CALLBACK_VERIFIED -> TOKEN_EXCHANGED -> [ID_TOKEN_VERIFIED]
         -> IDENTITY_RESOLVED

or FAILED at any step. Failures are raised as SigninError with the attempt
attached; nothing is retried here.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .audit_logger import AuditEventType, get_audit_logger
from .authorization import AuthorizationRequestBuilder
from .callback import CallbackVerifier
from .discovery import DiscoveryResolver
from .errors import MalformedTokenError, ProfileFetchFailedError, SigninError, SigninErrorKind
from .id_token import IdTokenVerifier
from .models import AuthorizationRequest, CallbackPayload, CorrelationAttributes, Identity
from .profile import ProfileClient
from .providers.base_provider import ProviderConfig
from .token_exchange import TokenExchangeClient
from .transport import Deadline, HttpTransport


class SigninState(Enum):
    """Progress of one sign-in attempt."""
    INIT = "init"
    AUTHORIZATION_BUILT = "authorization_built"
    CALLBACK_VERIFIED = "callback_verified"
    TOKEN_EXCHANGED = "token_exchanged"
    ID_TOKEN_VERIFIED = "id_token_verified"
    IDENTITY_RESOLVED = "identity_resolved"
    FAILED = "failed"


@dataclass
class SigninAttempt:
    provider: str
    state: SigninState = SigninState.INIT
    history: List[SigninState] = field(default_factory=list)
    error_kind: Optional[SigninErrorKind] = None

    def __post_init__(self):
        self.history.append(self.state)

    def advance(self, state: SigninState) -> None:
        self.state = state
        self.history.append(state)

    def fail(self, error: SigninError) -> None:
        self.error_kind = error.kind
        self.advance(SigninState.FAILED)

    @property
    def failed_after(self) -> Optional[SigninState]:
        """Last state reached before the failure, if the attempt failed."""
        if self.state != SigninState.FAILED:
            return None
        return self.history[-2]


class SigninOrchestrator:
    """
    Runs sign-in attempts for any configured provider.

    Args:
        transport: HTTP transport shared by all components
        resolver: Discovery resolver (shared cache); created from transport if omitted
        timeout: Default time budget in seconds for each start/complete call
    """

    def __init__(self, transport: HttpTransport, resolver: Optional[DiscoveryResolver] = None,
                 timeout: Optional[float] = None,
                 builder: Optional[AuthorizationRequestBuilder] = None,
                 token_client: Optional[TokenExchangeClient] = None,
                 id_token_verifier: Optional[IdTokenVerifier] = None,
                 profile_client: Optional[ProfileClient] = None):
        self.transport = transport
        self.resolver = resolver or DiscoveryResolver(transport)
        self.timeout = timeout if timeout is not None else transport.timeout
        self.builder = builder or AuthorizationRequestBuilder()
        self.token_client = token_client or TokenExchangeClient(transport)
        self.id_token_verifier = id_token_verifier or IdTokenVerifier(self.resolver)
        self.profile_client = profile_client or ProfileClient(transport)
        self.logger = logging.getLogger(__name__)
        self.audit = get_audit_logger()

    def start(self, config: ProviderConfig, timeout: Optional[float] = None) -> AuthorizationRequest:
        """
        Begin a sign-in attempt.

        The caller must persist `request.attributes` (single use) and redirect
        the user to `request.request_uri`.

        Args:
            config: Provider configuration
            timeout: Time budget for a discovery fetch, when one is needed

        Returns:
            AuthorizationRequest

        Raises:
            SigninError: InvalidEndpointUrlError, or discovery/network errors for
                OpenID Connect providers without a configured authorization endpoint
        """
        attempt = SigninAttempt(config.name)
        try:
            endpoint = config.authorization_endpoint
            if not endpoint and config.is_openid:
                deadline = Deadline(timeout if timeout is not None else self.timeout)
                endpoint = self.resolver.resolve(config.issuer, deadline).authorization_endpoint

            request = self.builder.build(config, endpoint)
            attempt.advance(SigninState.AUTHORIZATION_BUILT)
        except SigninError as e:
            self._record_failure(config, attempt, e)
            raise

        self.audit.log_event(AuditEventType.SIGNIN_STARTED, provider=config.name)
        self.logger.info(f"Started {config.name} sign-in")
        return request

    def complete(self, config: ProviderConfig, callback: CallbackPayload,
                 saved: Optional[CorrelationAttributes], timeout: Optional[float] = None) -> Identity:
        """
        Finish a sign-in attempt from the provider callback.

        Args:
            config: Provider configuration
            callback: Untrusted callback parameters
            saved: Attributes taken (and deleted) from the correlation store
            timeout: Time budget in seconds for all outbound calls of this completion

        Returns:
            Normalized Identity

        Raises:
            SigninError: The precise failure; NetworkError is the only retryable kind
        """
        attempt = SigninAttempt(config.name, state=SigninState.AUTHORIZATION_BUILT)
        deadline = Deadline(timeout if timeout is not None else self.timeout)

        try:
            identity = self._complete(config, callback, saved, attempt, deadline)
        except SigninError as e:
            self._record_failure(config, attempt, e)
            raise

        attempt.advance(SigninState.IDENTITY_RESOLVED)
        self.audit.log_event(AuditEventType.SIGNIN_COMPLETED, provider=config.name)
        self.logger.info(f"Completed {config.name} sign-in for subject {identity.subject_id}")
        return identity

    def _complete(self, config: ProviderConfig, callback: CallbackPayload,
                  saved: Optional[CorrelationAttributes], attempt: SigninAttempt,
                  deadline: Deadline) -> Identity:
        attributes = CallbackVerifier(config.capabilities, config.name).verify(callback, saved)
        attempt.advance(SigninState.CALLBACK_VERIFIED)

        openid_config = None
        token_endpoint = config.token_endpoint
        if config.is_openid and not token_endpoint:
            openid_config = self.resolver.resolve(config.issuer, deadline)
            token_endpoint = openid_config.token_endpoint

        tokens = self.token_client.exchange(
            config, callback.code,
            code_verifier=attributes.code_verifier,
            token_endpoint=token_endpoint,
            deadline=deadline
        )
        attempt.advance(SigninState.TOKEN_EXCHANGED)

        identity = None
        if config.is_openid:
            if not tokens.id_token:
                raise MalformedTokenError("Token response has no id_token")
            if openid_config is None:
                openid_config = self.resolver.resolve(config.issuer, deadline)
            claims = self.id_token_verifier.verify(
                tokens.id_token, openid_config,
                issuer=config.issuer,
                expected_audience=config.client_id,
                expected_nonce=attributes.nonce,
                deadline=deadline
            )
            attempt.advance(SigninState.ID_TOKEN_VERIFIED)
            identity = Identity(
                subject_id=claims.sub,
                provider=config.name,
                display_name=claims.name,
                email=claims.email,
                provider_access_token=tokens.access_token
            )

        if config.capabilities.requires_profile_fetch:
            profile = self.profile_client.fetch(config, tokens.access_token, deadline)
            profile_identity = self.profile_client.to_identity(config, profile, tokens.access_token)
            if identity is None:
                identity = profile_identity
            elif profile_identity.subject_id != identity.subject_id:
                raise ProfileFetchFailedError("Profile subject does not match the ID token subject")
            else:
                identity.display_name = identity.display_name or profile_identity.display_name
                identity.email = identity.email or profile_identity.email

        return identity

    def _record_failure(self, config: ProviderConfig, attempt: SigninAttempt, error: SigninError) -> None:
        if error.provider is None:
            error.provider = config.name
        attempt.fail(error)
        error.attempt = attempt

        # Kind and provider only; messages may quote provider responses
        log = self.logger.warning if error.retryable else self.logger.error
        log(f"{config.name} sign-in failed after {attempt.failed_after.value}: {error.kind.value}")
        self.audit.log_event(
            AuditEventType.SIGNIN_FAILED,
            provider=config.name,
            success=False,
            error_kind=error.kind.value,
            details={'failed_after': attempt.failed_after.value, 'retryable': error.retryable}
        )

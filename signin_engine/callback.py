"""
Callback verification against the saved correlation attributes.
"""

import logging
from typing import Optional

from .errors import (
    AuthorizationDeniedError,
    CorrelationMissingError,
    NonceMismatchError,
    PkceVerifierMissingError,
    StateMismatchError
)
from .models import CallbackPayload, CorrelationAttributes
from .providers.base_provider import ProviderCapabilities


class CallbackVerifier:
    """
    Validates an inbound provider callback.

    Checks run in order and stop at the first failure: saved attributes
    present, state equal, no provider-reported error, PKCE verifier present
    (PKCE providers), nonce present (OpenID Connect providers), authorization
    code present. The nonce itself lives in the ID token and is compared by
    IdTokenVerifier after the token exchange.
    """

    def __init__(self, capabilities: Optional[ProviderCapabilities] = None, provider: Optional[str] = None):
        self.capabilities = capabilities or ProviderCapabilities()
        self.provider = provider
        self.logger = logging.getLogger(__name__)

    def verify(self, callback: CallbackPayload, saved: Optional[CorrelationAttributes]) -> CorrelationAttributes:
        """
        Verify a callback.

        Args:
            callback: Untrusted callback parameters
            saved: Attributes taken from the correlation store, or None

        Returns:
            The validated attributes, for the token exchange and nonce check

        Raises:
            CorrelationMissingError: No attributes were saved (or already consumed)
            StateMismatchError: Callback state differs from the saved state
            AuthorizationDeniedError: Provider reported an error, or sent no code
            PkceVerifierMissingError: PKCE provider without a saved verifier
            NonceMismatchError: OpenID Connect provider without a saved nonce
        """
        if saved is None:
            self.logger.warning(f"No saved correlation attributes for {self.provider} callback")
            raise CorrelationMissingError("No saved sign-in attempt found", self.provider)

        # Exact, case-sensitive comparison
        if callback.state != saved.state:
            self.logger.warning(f"State mismatch on {self.provider} callback")
            raise StateMismatchError("Callback state does not match the saved state", self.provider)

        if callback.error:
            self.logger.warning(f"Provider {self.provider} returned error: {callback.error}")
            raise AuthorizationDeniedError(callback.error, callback.error_description, self.provider)

        if self.capabilities.requires_pkce and not saved.code_verifier:
            raise PkceVerifierMissingError("Saved attempt has no PKCE code verifier", self.provider)

        if self.capabilities.requires_nonce and not saved.nonce:
            raise NonceMismatchError("Saved attempt has no nonce", self.provider)

        if not callback.code:
            raise AuthorizationDeniedError('invalid_request', 'Missing authorization code', self.provider)

        return saved

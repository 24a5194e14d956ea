"""
Authorization request construction.

Builds the provider authorization URL and the correlation attributes the
caller must keep until the callback. The query carries state for every
provider, a nonce for OpenID Connect providers and a S256 code challenge for
PKCE providers; the PKCE verifier itself never leaves the attributes.
"""

import logging
from typing import Callable, Optional
from urllib.parse import urlencode, urlparse

from . import pkce, random_token
from .errors import InvalidEndpointUrlError
from .models import AuthorizationRequest, CorrelationAttributes
from .providers.base_provider import ProviderConfig

logger = logging.getLogger(__name__)


class AuthorizationRequestBuilder:
    """
    Builds authorization requests for any provider variant.

    Args:
        token_generator: Random string source for state and nonce
        pkce_generator: Verifier/challenge pair source
    """

    def __init__(self, token_generator: Callable[[], str] = random_token.generate,
                 pkce_generator: Callable[[], pkce.PkcePair] = pkce.generate):
        self.token_generator = token_generator
        self.pkce_generator = pkce_generator

    def build(self, config: ProviderConfig, authorization_endpoint: Optional[str] = None) -> AuthorizationRequest:
        """
        Build the authorization URL and correlation attributes for one attempt.

        Args:
            config: Provider configuration
            authorization_endpoint: Endpoint override, e.g. taken from discovery

        Returns:
            AuthorizationRequest with the URL to redirect to and the attributes to persist

        Raises:
            InvalidEndpointUrlError: If the authorization endpoint is malformed
        """
        endpoint = authorization_endpoint or config.authorization_endpoint
        parsed = urlparse(endpoint or '')
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise InvalidEndpointUrlError(f"Invalid authorization endpoint: {endpoint!r}", config.name)

        attributes = CorrelationAttributes(state=self.token_generator())
        params = [
            ('response_type', 'code'),
            ('client_id', config.client_id),
            ('redirect_uri', config.redirect_uri),
            ('scope', config.scope),
            ('state', attributes.state)
        ]

        if config.capabilities.requires_nonce:
            attributes.nonce = self.token_generator()
            params.append(('nonce', attributes.nonce))

        if config.capabilities.requires_pkce:
            pair = self.pkce_generator()
            attributes.code_verifier = pair.code_verifier
            params.append(('code_challenge', pair.code_challenge))
            params.append(('code_challenge_method', pkce.CHALLENGE_METHOD))

        params.extend(config.extra_authorization_params.items())

        separator = '&' if parsed.query else '?'
        request_uri = f"{endpoint}{separator}{urlencode(params)}"

        logger.debug(f"Built authorization request for {config.name} with scope: {config.scope}")
        return AuthorizationRequest(request_uri=request_uri, attributes=attributes)

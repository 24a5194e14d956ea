"""
Authorization code exchange at the provider token endpoint.
"""

import logging
from typing import Any, Optional

from .errors import TokenRequestFailedError
from .models import TokenResponse
from .providers.base_provider import ProviderConfig
from .transport import Deadline, HttpTransport

MAX_ERROR_BODY = 512


class TokenExchangeClient:
    """
    Exchanges authorization codes for tokens.

    Raw token responses are parsed into a TokenResponse and never logged.
    """

    def __init__(self, transport: HttpTransport):
        self.transport = transport
        self.logger = logging.getLogger(__name__)

    def exchange(self, config: ProviderConfig, code: str, code_verifier: Optional[str] = None,
                 token_endpoint: Optional[str] = None, deadline: Optional[Deadline] = None) -> TokenResponse:
        """
        Exchange an authorization code for tokens.

        Args:
            config: Provider configuration
            code: Authorization code from the callback
            code_verifier: PKCE verifier saved with the attempt
            token_endpoint: Endpoint override, e.g. taken from discovery
            deadline: Optional deadline for the network call

        Returns:
            Parsed token response

        Raises:
            TokenRequestFailedError: On non-2xx status or an unusable response body
            NetworkError: On transport failure
        """
        endpoint = token_endpoint or config.token_endpoint
        token_data = {
            'grant_type': 'authorization_code',
            'client_id': config.client_id,
            'code': code,
            'redirect_uri': config.redirect_uri
        }
        if config.client_secret:
            token_data['client_secret'] = config.client_secret
        if code_verifier:
            token_data['code_verifier'] = code_verifier

        self.logger.debug(f"Exchanging authorization code for {config.name} tokens")
        response = self.transport.post_form(endpoint, token_data, deadline=deadline)

        if not 200 <= response.status_code < 300:
            body = (response.text or '')[:MAX_ERROR_BODY]
            self.logger.error(f"{config.name} token exchange failed with status {response.status_code}")
            raise TokenRequestFailedError(
                f"Token exchange failed with status {response.status_code}",
                status=response.status_code, body=body, provider=config.name
            )

        try:
            token_response = response.json()
        except ValueError:
            token_response = None

        tokens = self._parse(token_response, config)
        if tokens is None:
            self.logger.error(f"Invalid token response from {config.name}")
            raise TokenRequestFailedError(
                f"Invalid token response from {config.name}",
                status=response.status_code, provider=config.name
            )

        self.logger.info(f"Exchanged code for {config.name} tokens - expires_in: {tokens.expires_in}")
        return tokens

    def _parse(self, token_response: Any, config: ProviderConfig) -> Optional[TokenResponse]:
        """
        Validate and normalize a token response body.

        Returns:
            TokenResponse, or None if the body is not a usable token response
        """
        if not isinstance(token_response, dict):
            return None

        # GitHub answers 200 with an error object for bad codes
        if token_response.get('error') or not token_response.get('access_token'):
            return None

        for name in ('access_token', 'id_token', 'refresh_token'):
            value = token_response.get(name)
            if value is not None and not isinstance(value, str):
                self.logger.warning(f"Non-string {name} in token response from {config.name}")
                return None

        expires_in = token_response.get('expires_in', 3600)
        try:
            expires_in = int(expires_in)
        except (TypeError, ValueError):
            self.logger.warning(f"Non-numeric expires_in value from {config.name}")
            return None

        return TokenResponse(
            access_token=token_response['access_token'],
            token_type=token_response.get('token_type') or 'Bearer',
            scope=token_response.get('scope', config.scope),
            expires_in=expires_in,
            id_token=token_response.get('id_token'),
            refresh_token=token_response.get('refresh_token')
        )

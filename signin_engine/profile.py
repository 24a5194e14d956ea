"""
Profile ("who am I") retrieval for providers that do not issue ID tokens.
"""

import logging
from typing import Dict, Any, Optional

from .errors import ProfileFetchFailedError
from .models import Identity
from .providers.base_provider import ProviderConfig
from .transport import Deadline, HttpTransport


class ProfileClient:
    """Fetches the signed-in user's profile with the provider access token."""

    def __init__(self, transport: HttpTransport):
        self.transport = transport
        self.logger = logging.getLogger(__name__)

    def fetch(self, config: ProviderConfig, access_token: str,
              deadline: Optional[Deadline] = None) -> Dict[str, Any]:
        """
        Retrieve the user profile document.

        Args:
            config: Provider configuration (userinfo_endpoint, auth scheme, headers)
            access_token: Access token from the token exchange
            deadline: Optional deadline for the network call

        Returns:
            Profile document

        Raises:
            ProfileFetchFailedError: On non-2xx status or a non-JSON-object body
            NetworkError: On transport failure
        """
        headers = dict(config.profile_headers)
        headers['Authorization'] = f"{config.profile_auth_scheme} {access_token}"

        self.logger.debug(f"Retrieving {config.name} user profile")
        response = self.transport.get(config.userinfo_endpoint, headers=headers, deadline=deadline)

        if not 200 <= response.status_code < 300:
            self.logger.error(f"{config.name} profile request failed with status {response.status_code}")
            raise ProfileFetchFailedError(
                f"Profile request failed with status {response.status_code}",
                status=response.status_code, provider=config.name
            )

        try:
            profile = response.json()
        except ValueError as e:
            raise ProfileFetchFailedError("Profile response is not JSON",
                                          status=response.status_code, provider=config.name) from e
        if not isinstance(profile, dict):
            raise ProfileFetchFailedError("Profile response is not a JSON object",
                                          status=response.status_code, provider=config.name)
        return profile

    def to_identity(self, config: ProviderConfig, profile: Dict[str, Any],
                    access_token: Optional[str] = None) -> Identity:
        """
        Map a profile document to an Identity.

        Raises:
            ProfileFetchFailedError: If the profile carries no subject identifier
        """
        fields = config.profile_fields
        subject = profile.get(fields.subject)
        if subject in (None, ''):
            raise ProfileFetchFailedError(
                f"Profile has no '{fields.subject}' field", provider=config.name
            )

        display_name = next(
            (profile[name] for name in fields.display_name if profile.get(name)),
            None
        )
        return Identity(
            subject_id=str(subject),
            provider=config.name,
            display_name=display_name,
            email=profile.get(fields.email) or None,
            provider_access_token=access_token
        )

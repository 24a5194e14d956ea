"""
ID token verification for OpenID Connect providers.

Signatures are checked with Authlib's JOSE implementation against the key
published under the token's kid; claims are then validated for issuer,
audience, expiry and nonce, in that order.
"""

import binascii
import json
import logging
import time
from typing import Any, Callable, Dict, Optional

from authlib.common.encoding import to_bytes, urlsafe_b64decode
from authlib.jose import JsonWebSignature
from authlib.jose.errors import BadSignatureError, JoseError

from .discovery import DiscoveryResolver
from .errors import (
    InvalidAudienceError,
    InvalidIssuerError,
    MalformedTokenError,
    NonceMismatchError,
    SignatureInvalidError,
    SigningKeyNotFoundError,
    TokenExpiredError,
    UnsupportedAlgorithmError
)
from .models import IdTokenClaims, OpenIdConfiguration
from .transport import Deadline

SUPPORTED_ALGORITHM = 'RS256'


def _decode_segment(segment: str) -> Dict[str, Any]:
    """
    Base64url-decode and JSON-parse one compact JWT segment.

    Raises:
        MalformedTokenError: If the segment is not a base64url JSON object
    """
    try:
        decoded = json.loads(urlsafe_b64decode(to_bytes(segment, 'ascii')))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise MalformedTokenError("ID token segment is not base64url JSON") from e
    if not isinstance(decoded, dict):
        raise MalformedTokenError("ID token segment is not a JSON object")
    return decoded


class IdTokenVerifier:
    """
    Verifies compact RS256 ID tokens.

    Args:
        resolver: Discovery resolver providing the issuer's signing keys
        clock: Returns the current UTC time in seconds; injectable for tests
    """

    def __init__(self, resolver: DiscoveryResolver, clock: Callable[[], float] = time.time):
        self.resolver = resolver
        self.clock = clock
        self.jws = JsonWebSignature(algorithms=[SUPPORTED_ALGORITHM])
        self.logger = logging.getLogger(__name__)

    def verify(self, id_token: str, openid_config: OpenIdConfiguration, issuer: str,
               expected_audience: str, expected_nonce: Optional[str],
               deadline: Optional[Deadline] = None) -> IdTokenClaims:
        """
        Verify an ID token and return its claims.

        Args:
            id_token: Compact serialized JWT from the token response
            openid_config: Issuer configuration (for jwks_uri)
            issuer: Expected iss claim
            expected_audience: Expected aud claim (the client_id)
            expected_nonce: Nonce saved with the attempt
            deadline: Optional deadline for a key set fetch

        Returns:
            Claims, only if every check passed

        Raises:
            MalformedTokenError: Wrong segment count, undecodable parts or missing claims
            UnsupportedAlgorithmError: Header alg other than RS256
            SigningKeyNotFoundError: No published key for the header kid
            SignatureInvalidError: Signature does not verify
            InvalidIssuerError, InvalidAudienceError, TokenExpiredError, NonceMismatchError
        """
        if not isinstance(id_token, str):
            raise MalformedTokenError("ID token is not a compact serialized string")
        segments = id_token.split('.')
        if len(segments) != 3:
            raise MalformedTokenError(f"ID token has {len(segments)} segments, expected 3")

        header = _decode_segment(segments[0])
        alg = header.get('alg')
        if alg != SUPPORTED_ALGORITHM:
            raise UnsupportedAlgorithmError(f"Unsupported ID token algorithm: {alg}")

        kid = header.get('kid')
        if not kid:
            raise SigningKeyNotFoundError("ID token header has no kid")
        jwk = self.resolver.find_signing_key(openid_config.jwks_uri, kid, deadline=deadline)
        if jwk.kty != 'RSA':
            raise UnsupportedAlgorithmError(f"Signing key {kid} is {jwk.kty}, not RSA")

        try:
            self.jws.deserialize_compact(id_token, jwk.to_dict())
        except BadSignatureError as e:
            self.logger.warning(f"ID token signature check failed for issuer {issuer}")
            raise SignatureInvalidError("ID token signature is invalid") from e
        except (JoseError, ValueError) as e:
            raise MalformedTokenError(f"ID token could not be verified: {e.__class__.__name__}") from e

        payload = _decode_segment(segments[1])
        try:
            claims = IdTokenClaims.from_payload(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedTokenError(f"ID token lacks required claim {e}") from e

        if claims.iss != issuer:
            raise InvalidIssuerError(f"ID token issuer {claims.iss} does not match {issuer}")

        if not self._audience_matches(claims.aud, expected_audience):
            raise InvalidAudienceError("ID token audience does not match the client id")

        if self.clock() >= claims.exp:
            raise TokenExpiredError("ID token has expired")

        if expected_nonce is None or claims.nonce != expected_nonce:
            raise NonceMismatchError("ID token nonce does not match the saved nonce")

        return claims

    @staticmethod
    def _audience_matches(aud: Any, expected_audience: str) -> bool:
        if isinstance(aud, list):
            return expected_audience in aud
        return aud == expected_audience

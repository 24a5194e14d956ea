"""
Data model for the sign-in engine.

These values flow between the engine components during one sign-in attempt.
None of them is persisted by the engine; CorrelationAttributes is handed to the
caller's session store between the authorization redirect and the callback.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional, Mapping, Union


@dataclass
class CorrelationAttributes:
    """Per-attempt values the caller persists until the callback arrives."""
    state: str
    nonce: Optional[str] = None
    code_verifier: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary suitable for a session store."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CorrelationAttributes':
        """Rebuild attributes read back from a session store."""
        return cls(
            state=data['state'],
            nonce=data.get('nonce'),
            code_verifier=data.get('code_verifier')
        )

    def __repr__(self) -> str:
        return (f"CorrelationAttributes(state='{self.state[:6]}...', "
                f"nonce={'set' if self.nonce else None}, "
                f"code_verifier={'set' if self.code_verifier else None})")


@dataclass
class AuthorizationRequest:
    """Where to send the user, and what to remember until they come back."""
    request_uri: str
    attributes: CorrelationAttributes


@dataclass
class CallbackPayload:
    """
    Untrusted query parameters from the provider redirect.

    Providers send either code/state or error/error_description (plus state)
    when the user declines consent.
    """
    state: str
    code: str = ''
    scope: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> 'CallbackPayload':
        """
        Build a payload from a parsed query string mapping.

        Args:
            query: Mapping of query parameter names to values

        Returns:
            CallbackPayload with missing parameters defaulted
        """
        return cls(
            state=query.get('state') or '',
            code=query.get('code') or '',
            scope=query.get('scope'),
            error=query.get('error'),
            error_description=query.get('error_description')
        )


@dataclass
class TokenResponse:
    access_token: str
    token_type: str = 'Bearer'
    scope: str = ''
    expires_in: int = 3600
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None

    def __repr__(self) -> str:
        return (f"TokenResponse(token_type='{self.token_type}', scope='{self.scope}', "
                f"expires_in={self.expires_in}, id_token={'set' if self.id_token else None}, "
                f"refresh_token={'set' if self.refresh_token else None})")


@dataclass
class OpenIdConfiguration:
    """Endpoints published by an issuer's discovery document."""
    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    jwks_uri: str
    userinfo_endpoint: Optional[str] = None

    REQUIRED_FIELDS = ('issuer', 'authorization_endpoint', 'token_endpoint', 'jwks_uri')

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'OpenIdConfiguration':
        """
        Parse a discovery document.

        Raises:
            KeyError: If a required field is missing or not a string
        """
        for name in cls.REQUIRED_FIELDS:
            if not isinstance(data.get(name), str) or not data[name]:
                raise KeyError(name)
        return cls(
            issuer=data['issuer'],
            authorization_endpoint=data['authorization_endpoint'],
            token_endpoint=data['token_endpoint'],
            jwks_uri=data['jwks_uri'],
            userinfo_endpoint=data.get('userinfo_endpoint')
        )


@dataclass(frozen=True)
class JsonWebKey:
    kid: str
    kty: str
    n: str
    e: str
    alg: Optional[str] = None
    use: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'JsonWebKey':
        return cls(
            kid=data['kid'],
            kty=data.get('kty', ''),
            n=data.get('n', ''),
            e=data.get('e', ''),
            alg=data.get('alg'),
            use=data.get('use')
        )

    def to_dict(self) -> Dict[str, str]:
        """Public JWK members, as accepted by the JOSE library."""
        jwk = {'kty': self.kty, 'kid': self.kid, 'n': self.n, 'e': self.e}
        if self.alg:
            jwk['alg'] = self.alg
        if self.use:
            jwk['use'] = self.use
        return jwk


class JsonWebKeySet:
    """
    Ordered collection of signing keys indexed by kid.

    When a kid appears more than once the first key wins.
    """

    def __init__(self, keys: List[JsonWebKey]):
        self.keys = list(keys)
        self._by_kid: Dict[str, JsonWebKey] = {}
        for key in self.keys:
            self._by_kid.setdefault(key.kid, key)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'JsonWebKeySet':
        """
        Parse a JWKS document, skipping entries without a kid.

        Raises:
            KeyError: If the document has no 'keys' list
        """
        entries = data['keys']
        if not isinstance(entries, list):
            raise KeyError('keys')
        return cls([
            JsonWebKey.from_dict(entry) for entry in entries
            if isinstance(entry, dict) and entry.get('kid')
        ])

    def find_by_kid(self, kid: str) -> Optional[JsonWebKey]:
        return self._by_kid.get(kid)

    def __len__(self) -> int:
        return len(self.keys)

    def __repr__(self) -> str:
        return f"JsonWebKeySet(kids={[key.kid for key in self.keys]})"


@dataclass
class IdTokenClaims:
    """Verified claims of an ID token."""
    iss: str
    aud: Union[str, List[str]]
    sub: str
    exp: int
    nonce: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    REQUIRED_CLAIMS = ('iss', 'aud', 'sub', 'exp')

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> 'IdTokenClaims':
        """
        Build claims from a decoded payload.

        Raises:
            KeyError: If a required claim is missing
            ValueError: If exp is not numeric
        """
        for name in cls.REQUIRED_CLAIMS:
            if payload.get(name) in (None, ''):
                raise KeyError(name)
        return cls(
            iss=payload['iss'],
            aud=payload['aud'],
            sub=str(payload['sub']),
            exp=int(payload['exp']),
            nonce=payload.get('nonce'),
            email=payload.get('email'),
            name=payload.get('name'),
            raw=dict(payload)
        )


@dataclass
class Identity:
    """Normalized identity returned to the caller after a successful sign-in."""
    subject_id: str
    provider: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    provider_access_token: Optional[str] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Public identity fields, without the provider access token."""
        return {
            'subject_id': self.subject_id,
            'provider': self.provider,
            'display_name': self.display_name,
            'email': self.email
        }

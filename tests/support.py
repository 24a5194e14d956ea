"""
Shared fixtures for the sign-in engine tests.

Provides RSA signing keys and ID token builders (via Authlib), canned HTTP
responses and a URL-routed fake requests session so that whole sign-in
attempts can run without network access.
"""

import json
import os
import sys
from unittest.mock import MagicMock

from authlib.common.encoding import to_bytes, to_unicode, urlsafe_b64encode
from authlib.jose import JsonWebKey as JoseKey, JsonWebSignature

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from signin_engine.providers.base_provider import ProviderConfig
from signin_engine.providers.presets import merge_with_preset
from signin_engine.transport import HttpTransport

ISSUER = 'https://accounts.example.com'
JWKS_URI = f'{ISSUER}/jwks'
DISCOVERY_URL = f'{ISSUER}/.well-known/openid-configuration'
NOW = 1_700_000_000

_keys = {}


def rsa_key(kid):
    """Private RSA key for kid, generated once per test run."""
    if kid not in _keys:
        _keys[kid] = JoseKey.generate_key('RSA', 2048, is_private=True)
    return _keys[kid]


def public_jwk(kid):
    jwk = dict(rsa_key(kid).as_dict(is_private=False))
    jwk.update({'kid': kid, 'alg': 'RS256', 'use': 'sig'})
    return jwk


def jwks_document(*kids):
    return {'keys': [public_jwk(kid) for kid in kids]}


def discovery_document(issuer=ISSUER):
    return {
        'issuer': issuer,
        'authorization_endpoint': f'{issuer}/authorize',
        'token_endpoint': f'{issuer}/token',
        'jwks_uri': f'{issuer}/jwks',
        'userinfo_endpoint': f'{issuer}/userinfo'
    }


def id_token_claims(**overrides):
    claims = {
        'iss': ISSUER,
        'aud': 'oidc-client-id',
        'sub': '1234567890',
        'exp': NOW + 600,
        'iat': NOW,
        'nonce': 'saved-nonce',
        'email': 'ada@example.com',
        'name': 'Ada Lovelace'
    }
    claims.update(overrides)
    return claims


def sign_id_token(claims, kid='key-01', signing_kid=None):
    """RS256 compact JWT with kid in the header, signed by signing_kid's key (default: kid)."""
    header = {'alg': 'RS256'}
    if kid is not None:
        header['kid'] = kid
    token = JsonWebSignature().serialize_compact(
        header, to_bytes(json.dumps(claims)), rsa_key(signing_kid or kid or 'key-01')
    )
    return to_unicode(token)


def encode_segment(value):
    return to_unicode(urlsafe_b64encode(to_bytes(json.dumps(value))))


def unsigned_token(header, claims, signature='c2lnbmF0dXJl'):
    return '.'.join([encode_segment(header), encode_segment(claims), signature])


def json_response(body, status=200):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = body
    response.text = json.dumps(body)
    return response


def text_response(text, status=200):
    response = MagicMock()
    response.status_code = status
    response.json.side_effect = ValueError('No JSON object could be decoded')
    response.text = text
    return response


class FakeSession:
    """
    Stand-in for requests.Session routing requests by URL.

    A route value may be a response, an exception instance to raise, or a
    list of either consumed in order.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.headers = {}
        self.request = MagicMock(side_effect=self._route)
        self.closed = False

    def _route(self, method, url, timeout=None, **kwargs):
        if url not in self.routes:
            raise AssertionError(f"Unexpected {method} request to {url}")
        outcome = self.routes[url]
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def calls_to(self, url):
        return [c for c in self.request.call_args_list if c.args[1] == url]

    def close(self):
        self.closed = True


def make_transport(routes=None, timeout=5.0):
    session = FakeSession(routes)
    return HttpTransport(timeout=timeout, session=session), session


def github_config(**overrides):
    config = {
        'client_id': 'github-client-id',
        'client_secret': 'github-client-secret',
        'redirect_uri': 'http://localhost:5000/oauth/github/callback'
    }
    config.update(overrides)
    return ProviderConfig.from_dict('github', merge_with_preset('github', config))


def oidc_config(**overrides):
    """OpenID Connect provider whose endpoints come from discovery."""
    config = {
        'client_id': 'oidc-client-id',
        'client_secret': 'oidc-client-secret',
        'redirect_uri': 'http://localhost:5000/oauth/example/callback',
        'issuer': ISSUER,
        'scope': 'openid email profile',
        'capabilities': {'requires_nonce': True}
    }
    config.update(overrides)
    return ProviderConfig.from_dict('example', config)


def spotify_config(**overrides):
    config = {
        'client_id': 'spotify-client-id',
        'redirect_uri': 'http://localhost:5000/oauth/spotify/callback'
    }
    config.update(overrides)
    return ProviderConfig.from_dict('spotify', merge_with_preset('spotify', config))

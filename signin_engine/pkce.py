"""
Proof Key for Code Exchange (RFC 7636), S256 method only.
"""

import hashlib
from dataclasses import dataclass

from authlib.common.encoding import to_bytes, to_unicode, urlsafe_b64encode

from . import random_token

CHALLENGE_METHOD = 'S256'


@dataclass(frozen=True)
class PkcePair:
    code_verifier: str
    code_challenge: str

    def __repr__(self) -> str:
        return f"PkcePair(code_challenge='{self.code_challenge}')"


def challenge_for(code_verifier: str) -> str:
    """
    Derive the S256 code challenge of a verifier.

    Args:
        code_verifier: The verifier text

    Returns:
        Base64url (unpadded) SHA-256 digest of the verifier
    """
    digest = hashlib.sha256(to_bytes(code_verifier, 'ascii')).digest()
    return to_unicode(urlsafe_b64encode(digest))


def generate(verifier_byte_length: int = random_token.DEFAULT_BYTE_LENGTH) -> PkcePair:
    """Generate a fresh verifier and its challenge."""
    verifier = random_token.generate(verifier_byte_length)
    return PkcePair(code_verifier=verifier, code_challenge=challenge_for(verifier))

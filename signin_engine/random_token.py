"""
Cryptographically secure random strings for state, nonce and PKCE verifiers.
"""

import secrets

DEFAULT_BYTE_LENGTH = 32


def generate(byte_length: int = DEFAULT_BYTE_LENGTH) -> str:
    """
    Generate a URL-safe, unpadded base64 string of random bytes.

    Args:
        byte_length: Number of random bytes to encode

    Returns:
        Base64url text without '=' padding

    Raises:
        ValueError: If byte_length is not positive
    """
    if byte_length < 1:
        raise ValueError(f"byte_length must be positive, got {byte_length}")
    # token_urlsafe strips the padding itself
    return secrets.token_urlsafe(byte_length)

"""
Built-in provider defaults.

Each preset fixes a provider's endpoints and capability flags; a deployment
only supplies client credentials, the redirect URI and (optionally) a scope.
Any preset value can be overridden in the providers file.
"""

from typing import Dict, Any

GITHUB = {
    'display_name': 'GitHub',
    'authorization_endpoint': 'https://github.com/login/oauth/authorize',
    'token_endpoint': 'https://github.com/login/oauth/access_token',
    'userinfo_endpoint': 'https://api.github.com/user',
    'scope': 'read:user user:email',
    'capabilities': {'requires_profile_fetch': True},
    'profile_auth_scheme': 'token',
    'profile_headers': {'Accept': 'application/vnd.github.v3+json'},
    'profile_fields': {'subject': 'id', 'display_name': ['name', 'login'], 'email': 'email'}
}

GOOGLE = {
    'display_name': 'Google Account',
    'issuer': 'https://accounts.google.com',
    'authorization_endpoint': 'https://accounts.google.com/o/oauth2/v2/auth',
    'token_endpoint': 'https://oauth2.googleapis.com/token',
    'scope': 'openid email profile',
    'capabilities': {'requires_nonce': True}
}

SPOTIFY = {
    'display_name': 'Spotify',
    'authorization_endpoint': 'https://accounts.spotify.com/authorize',
    'token_endpoint': 'https://accounts.spotify.com/api/token',
    'userinfo_endpoint': 'https://api.spotify.com/v1/me',
    'scope': 'user-read-email user-read-private',
    'capabilities': {'requires_pkce': True, 'requires_profile_fetch': True},
    'profile_fields': {'subject': 'id', 'display_name': ['display_name'], 'email': 'email'}
}

BUILTIN_PRESETS: Dict[str, Dict[str, Any]] = {
    'github': GITHUB,
    'google': GOOGLE,
    'spotify': SPOTIFY
}


def merge_with_preset(name: str, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge configured values over the preset for a provider.

    Nested 'capabilities' mappings are merged key by key so a deployment can
    flip one flag without restating the others.

    Args:
        name: Provider name, or the preset named by config['preset']
        config: Configured values

    Returns:
        Merged configuration dictionary (the preset is not modified)
    """
    preset = BUILTIN_PRESETS.get(config.get('preset', name), {})
    merged = {**preset, **config}
    if 'capabilities' in preset and 'capabilities' in config:
        merged['capabilities'] = {**preset['capabilities'], **config['capabilities']}
    merged.pop('preset', None)
    return merged

"""
Unit tests for provider configuration, presets and the provider manager.
"""

import unittest
import sys
import os
from unittest.mock import MagicMock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from signin_engine.providers import (
    ProviderConfig,
    ProviderConfigurationError,
    ProviderManager,
    ProviderManagerError,
    merge_with_preset
)


class TestProviderConfig(unittest.TestCase):
    """Test cases for ProviderConfig validation."""

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.valid_config = {
            'client_id': 'test_client_id_123',
            'client_secret': 'test_client_secret_456',
            'redirect_uri': 'http://localhost:5000/oauth/acme/callback',
            'authorization_endpoint': 'https://acme.example.com/oauth/authorize',
            'token_endpoint': 'https://acme.example.com/oauth/token',
            'userinfo_endpoint': 'https://api.acme.example.com/me',
            'scope': ['read', 'email'],
            'capabilities': {'requires_profile_fetch': True}
        }

    def test_from_dict(self):
        """Test a complete configuration is accepted."""
        config = ProviderConfig.from_dict('acme', self.valid_config)
        self.assertEqual(config.scope, 'read email')
        self.assertEqual(config.display_name, 'Acme')
        self.assertFalse(config.is_openid)
        self.assertFalse(config.is_public_client)

    def test_secret_not_in_repr(self):
        """Test the client secret is excluded from repr and str."""
        config = ProviderConfig.from_dict('acme', self.valid_config)
        self.assertNotIn('test_client_secret_456', repr(config))
        self.assertNotIn('test_client_secret_456', str(config))

    def test_missing_client_id(self):
        """Test a configuration without client_id is rejected."""
        del self.valid_config['client_id']
        with self.assertRaises(ProviderConfigurationError):
            ProviderConfig.from_dict('acme', self.valid_config)

    def test_invalid_url(self):
        """Test malformed endpoint URLs are rejected."""
        self.valid_config['token_endpoint'] = 'not-a-url'
        with self.assertRaises(ProviderConfigurationError):
            ProviderConfig.from_dict('acme', self.valid_config)

    def test_secret_required_without_pkce(self):
        """Test a confidential client needs a secret unless PKCE is enabled."""
        del self.valid_config['client_secret']
        with self.assertRaises(ProviderConfigurationError):
            ProviderConfig.from_dict('acme', self.valid_config)

        self.valid_config['capabilities'] = {'requires_profile_fetch': True, 'requires_pkce': True}
        self.assertTrue(ProviderConfig.from_dict('acme', self.valid_config).is_public_client)

    def test_identity_source_required(self):
        """Test a provider must identify the user through an ID token or a profile."""
        self.valid_config['capabilities'] = {}
        with self.assertRaises(ProviderConfigurationError):
            ProviderConfig.from_dict('acme', self.valid_config)

    def test_openid_requires_issuer(self):
        """Test an OpenID Connect provider needs an issuer."""
        self.valid_config['capabilities'] = {'requires_nonce': True}
        with self.assertRaises(ProviderConfigurationError):
            ProviderConfig.from_dict('acme', self.valid_config)

    def test_openid_endpoints_optional(self):
        """Test an OpenID Connect provider may rely on discovery for endpoints."""
        config = ProviderConfig.from_dict('acme', {
            'client_id': 'id', 'client_secret': 'secret',
            'redirect_uri': 'https://app.example.com/callback',
            'issuer': 'https://login.acme.example.com', 'scope': 'openid',
            'capabilities': {'requires_nonce': True}
        })
        self.assertTrue(config.is_openid)
        self.assertIsNone(config.token_endpoint)

    def test_profile_fetch_requires_userinfo_endpoint(self):
        """Test profile providers need a profile endpoint."""
        del self.valid_config['userinfo_endpoint']
        with self.assertRaises(ProviderConfigurationError):
            ProviderConfig.from_dict('acme', self.valid_config)

    def test_config_is_immutable(self):
        """Test provider configuration cannot be modified after loading."""
        config = ProviderConfig.from_dict('acme', dict(self.valid_config, extra_authorization_params={'a': 'b'}))
        with self.assertRaises(AttributeError):
            config.client_id = 'other'
        with self.assertRaises(TypeError):
            config.extra_authorization_params['a'] = 'c'


class TestPresets(unittest.TestCase):
    """Test cases for built-in provider presets."""

    def test_github_preset(self):
        """Test GitHub defaults are profile-based with the token scheme."""
        merged = merge_with_preset('github', {'client_id': 'id'})
        self.assertEqual(merged['userinfo_endpoint'], 'https://api.github.com/user')
        self.assertEqual(merged['profile_auth_scheme'], 'token')
        self.assertEqual(merged['capabilities'], {'requires_profile_fetch': True})

    def test_capabilities_merged_per_flag(self):
        """Test a configured flag is merged into the preset capabilities."""
        merged = merge_with_preset('github', {'capabilities': {'requires_pkce': True}})
        self.assertEqual(merged['capabilities'], {'requires_profile_fetch': True, 'requires_pkce': True})

    def test_named_preset(self):
        """Test a provider can reuse another provider's preset."""
        merged = merge_with_preset('google-work', {'preset': 'google', 'client_id': 'id'})
        self.assertEqual(merged['issuer'], 'https://accounts.google.com')
        self.assertNotIn('preset', merged)

    def test_unknown_provider_has_no_preset(self):
        """Test providers without a preset are taken as configured."""
        self.assertEqual(merge_with_preset('acme', {'client_id': 'id'}), {'client_id': 'id'})


class TestProviderManager(unittest.TestCase):
    """Test cases for ProviderManager."""

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.manager = ProviderManager()

    def test_register_preset_provider(self):
        """Test a preset provider needs only credentials and a redirect URI."""
        provider = self.manager.register_provider('google', {
            'client_id': 'google-id', 'client_secret': 'google-secret',
            'redirect_uri': 'http://localhost:5000/oauth/google/callback'
        })
        self.assertTrue(provider.is_openid)
        self.assertEqual(provider.token_endpoint, 'https://oauth2.googleapis.com/token')
        self.assertIs(self.manager.get_provider('google'), provider)

    def test_register_invalid_provider(self):
        """Test invalid configuration is reported as ProviderManagerError."""
        with self.assertRaises(ProviderManagerError):
            self.manager.register_provider('github', {'client_id': 'id'})
        self.assertIsNone(self.manager.get_provider('github'))

    def test_register_from_config(self):
        """Test enabled providers are registered from a Config."""
        config = MagicMock()
        config.get_enabled_providers.return_value = ['spotify']
        config.get_provider_config.return_value = {
            'client_id': 'spotify-id', 'redirect_uri': 'http://localhost:5000/oauth/spotify/callback'
        }

        manager = ProviderManager(config)

        self.assertEqual(list(manager.get_all_providers()), ['spotify'])
        config.get_provider_config.assert_called_once_with('spotify')

    def test_provider_info(self):
        """Test provider info lists capabilities without credentials."""
        self.manager.register_provider('spotify', {
            'client_id': 'spotify-id', 'redirect_uri': 'http://localhost:5000/oauth/spotify/callback'
        })
        info = self.manager.get_provider_info()
        self.assertEqual(info[0]['name'], 'spotify')
        self.assertTrue(info[0]['pkce'])
        self.assertNotIn('client_id', info[0])


if __name__ == '__main__':
    unittest.main()

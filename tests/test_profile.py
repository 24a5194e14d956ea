"""
Unit tests for profile retrieval and identity mapping.
"""

import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from support import github_config, json_response, make_transport, spotify_config, text_response

from signin_engine.errors import NetworkError, ProfileFetchFailedError
from signin_engine.profile import ProfileClient
from signin_engine.transport import Deadline

GITHUB_USER_URL = 'https://api.github.com/user'
SPOTIFY_ME_URL = 'https://api.spotify.com/v1/me'


class TestProfileClient(unittest.TestCase):
    """Test cases for ProfileClient."""

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.mock_user_info = {
            'id': 583231,
            'login': 'octocat',
            'name': 'The Octocat',
            'email': 'octocat@github.com'
        }

    def test_fetch_sends_provider_auth_header(self):
        """Test GitHub profile requests use the 'token' scheme and v3 Accept header."""
        transport, session = make_transport({GITHUB_USER_URL: json_response(self.mock_user_info)})

        profile = ProfileClient(transport).fetch(github_config(), 'gho_access')

        self.assertEqual(profile['login'], 'octocat')
        headers = session.request.call_args.kwargs['headers']
        self.assertEqual(headers['Authorization'], 'token gho_access')
        self.assertEqual(headers['Accept'], 'application/vnd.github.v3+json')

    def test_fetch_bearer_scheme(self):
        """Test providers default to the Bearer scheme."""
        transport, session = make_transport({SPOTIFY_ME_URL: json_response({'id': 'wizzler'})})

        ProfileClient(transport).fetch(spotify_config(), 'spotify-access')

        self.assertEqual(session.request.call_args.kwargs['headers']['Authorization'], 'Bearer spotify-access')

    def test_fetch_http_error(self):
        """Test a non-2xx profile response fails with its status."""
        transport, _ = make_transport({GITHUB_USER_URL: json_response({'message': 'Bad credentials'}, status=401)})
        with self.assertRaises(ProfileFetchFailedError) as cm:
            ProfileClient(transport).fetch(github_config(), 'gho_access')
        self.assertEqual(cm.exception.status, 401)

    def test_fetch_non_json(self):
        """Test a non-JSON profile body fails."""
        transport, _ = make_transport({GITHUB_USER_URL: text_response('<html></html>')})
        with self.assertRaises(ProfileFetchFailedError):
            ProfileClient(transport).fetch(github_config(), 'gho_access')

    def test_fetch_non_object(self):
        """Test a JSON array profile body fails."""
        transport, _ = make_transport({GITHUB_USER_URL: json_response([1, 2])})
        with self.assertRaises(ProfileFetchFailedError):
            ProfileClient(transport).fetch(github_config(), 'gho_access')

    def test_fetch_network_error(self):
        """Test an already expired deadline is reported as NetworkError."""
        transport, session = make_transport({GITHUB_USER_URL: json_response(self.mock_user_info)})
        with self.assertRaises(NetworkError):
            ProfileClient(transport).fetch(github_config(), 'gho_access', Deadline(-1))
        session.request.assert_not_called()

    def test_to_identity(self):
        """Test GitHub profile fields map to an Identity."""
        transport, _ = make_transport()
        identity = ProfileClient(transport).to_identity(github_config(), self.mock_user_info, 'gho_access')

        self.assertEqual(identity.subject_id, '583231')
        self.assertEqual(identity.provider, 'github')
        self.assertEqual(identity.display_name, 'The Octocat')
        self.assertEqual(identity.email, 'octocat@github.com')
        self.assertEqual(identity.provider_access_token, 'gho_access')

    def test_to_identity_display_name_fallback(self):
        """Test the login is used when the profile has no name."""
        transport, _ = make_transport()
        profile = dict(self.mock_user_info, name=None, email=None)

        identity = ProfileClient(transport).to_identity(github_config(), profile)

        self.assertEqual(identity.display_name, 'octocat')
        self.assertIsNone(identity.email)

    def test_to_identity_missing_subject(self):
        """Test a profile without an id fails."""
        transport, _ = make_transport()
        with self.assertRaises(ProfileFetchFailedError):
            ProfileClient(transport).to_identity(github_config(), {'login': 'octocat'})


if __name__ == '__main__':
    unittest.main()

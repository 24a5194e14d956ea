"""
Unit tests for callback verification.
"""

import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from signin_engine.callback import CallbackVerifier
from signin_engine.errors import (
    AuthorizationDeniedError,
    CorrelationMissingError,
    NonceMismatchError,
    PkceVerifierMissingError,
    SigninErrorKind,
    StateMismatchError
)
from signin_engine.models import CallbackPayload, CorrelationAttributes
from signin_engine.providers.base_provider import ProviderCapabilities


class TestCallbackVerifier(unittest.TestCase):
    """Test cases for CallbackVerifier."""

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.verifier = CallbackVerifier(ProviderCapabilities(requires_profile_fetch=True), 'github')
        self.pkce_verifier = CallbackVerifier(
            ProviderCapabilities(requires_pkce=True, requires_profile_fetch=True), 'spotify'
        )
        self.saved = CorrelationAttributes(state='saved-state')

    def test_valid_callback(self):
        """Test a matching callback returns the saved attributes."""
        result = self.verifier.verify(CallbackPayload(state='saved-state', code='code-1'), self.saved)
        self.assertIs(result, self.saved)

    def test_missing_correlation(self):
        """Test a callback with nothing saved fails."""
        with self.assertRaises(CorrelationMissingError) as cm:
            self.verifier.verify(CallbackPayload(state='saved-state', code='code-1'), None)
        self.assertEqual(cm.exception.kind, SigninErrorKind.CORRELATION_MISSING)
        self.assertEqual(cm.exception.provider, 'github')

    def test_state_mismatch(self):
        """Test a different state fails."""
        with self.assertRaises(StateMismatchError):
            self.verifier.verify(CallbackPayload(state='other-state', code='code-1'), self.saved)

    def test_state_comparison_is_case_sensitive(self):
        """Test states differing only in case do not match."""
        with self.assertRaises(StateMismatchError):
            self.verifier.verify(CallbackPayload(state='SAVED-STATE', code='code-1'), self.saved)

    def test_state_checked_before_provider_error(self):
        """Test a forged error callback is reported as a state mismatch."""
        with self.assertRaises(StateMismatchError):
            self.verifier.verify(CallbackPayload(state='forged', error='access_denied'), self.saved)

    def test_provider_error(self):
        """Test a declined consent surfaces as AuthorizationDeniedError."""
        callback = CallbackPayload(state='saved-state', error='access_denied',
                                   error_description='The user denied access')
        with self.assertRaises(AuthorizationDeniedError) as cm:
            self.verifier.verify(callback, self.saved)
        self.assertEqual(cm.exception.error, 'access_denied')
        self.assertIn('cancelled', cm.exception.user_message)
        self.assertFalse(cm.exception.retryable)

    def test_missing_code(self):
        """Test a callback without code or error fails."""
        with self.assertRaises(AuthorizationDeniedError) as cm:
            self.verifier.verify(CallbackPayload(state='saved-state'), self.saved)
        self.assertEqual(cm.exception.error, 'invalid_request')

    def test_pkce_verifier_missing(self):
        """Test a PKCE provider requires a saved verifier."""
        with self.assertRaises(PkceVerifierMissingError):
            self.pkce_verifier.verify(CallbackPayload(state='saved-state', code='code-1'), self.saved)

    def test_pkce_verifier_present(self):
        """Test a PKCE callback passes with a saved verifier."""
        saved = CorrelationAttributes(state='saved-state', code_verifier='verifier')
        result = self.pkce_verifier.verify(CallbackPayload(state='saved-state', code='code-1'), saved)
        self.assertEqual(result.code_verifier, 'verifier')

    def test_nonce_missing_for_openid_provider(self):
        """Test an OpenID Connect provider requires a saved nonce."""
        verifier = CallbackVerifier(ProviderCapabilities(requires_nonce=True), 'example')
        with self.assertRaises(NonceMismatchError) as cm:
            verifier.verify(CallbackPayload(state='saved-state', code='code-1'), self.saved)
        self.assertEqual(cm.exception.kind, SigninErrorKind.NONCE_MISMATCH)

    def test_nonce_present_for_openid_provider(self):
        """Test an OpenID Connect callback passes with a saved nonce."""
        verifier = CallbackVerifier(ProviderCapabilities(requires_nonce=True), 'example')
        saved = CorrelationAttributes(state='saved-state', nonce='saved-nonce')
        self.assertIs(verifier.verify(CallbackPayload(state='saved-state', code='code-1'), saved), saved)


if __name__ == '__main__':
    unittest.main()

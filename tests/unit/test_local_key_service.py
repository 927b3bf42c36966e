"""Tests for the local key service."""

import base64
import unittest

from sneaker_vault.clients.local import LocalKeyService, generate_master_key
from sneaker_vault.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ContextMismatchError,
)
from tests.test_utility import TestDataHelper


class TestLocalKeyService(unittest.TestCase):
    """Test cases for LocalKeyService."""

    def setUp(self):
        self.service = TestDataHelper.create_key_service()

    def test_generate_and_decrypt(self):
        """Test that a wrapped key unwraps to the same plaintext."""
        plaintext, wrapped = self.service.generate_data_key({"env": "prod"})

        self.assertEqual(len(plaintext), 32)
        self.assertNotIn(plaintext, wrapped)
        self.assertEqual(self.service.decrypt_data_key(wrapped, {"env": "prod"}), plaintext)

    def test_fresh_key_each_call(self):
        """Test that every call yields a new key."""
        first, _ = self.service.generate_data_key()
        second, _ = self.service.generate_data_key()

        self.assertNotEqual(first, second)

    def test_none_and_empty_context_equivalent(self):
        """Test that no context and an empty context are interchangeable."""
        plaintext, wrapped = self.service.generate_data_key(None)

        self.assertEqual(self.service.decrypt_data_key(wrapped, {}), plaintext)

    def test_context_mismatch(self):
        """Test unwrapping under a different context."""
        _, wrapped = self.service.generate_data_key({"env": "prod"})

        with self.assertRaises(ContextMismatchError):
            self.service.decrypt_data_key(wrapped, {"env": "staging"})
        with self.assertRaises(ContextMismatchError):
            self.service.decrypt_data_key(wrapped, None)

    def test_tampered_wrapped_key(self):
        """Test that a damaged blob fails authentication, not context checks."""
        _, wrapped = self.service.generate_data_key({"env": "prod"})
        tampered = wrapped[:-1] + bytes([wrapped[-1] ^ 0x01])

        with self.assertRaises(AuthenticationError):
            self.service.decrypt_data_key(tampered, {"env": "prod"})

    def test_truncated_wrapped_key(self):
        """Test a wrapped key of the wrong length."""
        _, wrapped = self.service.generate_data_key()

        with self.assertRaises(AuthenticationError):
            self.service.decrypt_data_key(wrapped[:-3])

    def test_other_master_key(self):
        """Test that another master key cannot unwrap the data key."""
        _, wrapped = self.service.generate_data_key()
        other = TestDataHelper.create_key_service(TestDataHelper.OTHER_MASTER_KEY_B64)

        with self.assertRaises(AuthenticationError):
            other.decrypt_data_key(wrapped)

    def test_invalid_master_key(self):
        """Test master key validation."""
        with self.assertRaises(ConfigurationError):
            LocalKeyService(b"short")
        with self.assertRaises(ConfigurationError):
            LocalKeyService.from_base64("not base64!")
        with self.assertRaises(ConfigurationError):
            LocalKeyService.from_base64(base64.b64encode(b"x" * 16).decode())

    def test_generate_master_key(self):
        """Test master key generation."""
        key = generate_master_key()

        self.assertEqual(len(base64.b64decode(key)), 32)
        LocalKeyService.from_base64(key)


if __name__ == "__main__":
    unittest.main()

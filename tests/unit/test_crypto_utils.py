"""Tests for the crypto_utils module."""

import unittest

from sneaker_vault.constants import Constants
from sneaker_vault.crypto_utils import CryptoUtils
from sneaker_vault.exceptions import AuthenticationError, ValidationError


class TestCryptoUtils(unittest.TestCase):
    """Test cases for the CryptoUtils class."""

    def setUp(self):
        self.key = bytes(CryptoUtils.generate_random_key())
        self.nonce = CryptoUtils.generate_nonce()

    def test_generate_random_key(self):
        """Test random key generation."""
        key = CryptoUtils.generate_random_key()

        self.assertIsInstance(key, bytearray)
        self.assertEqual(len(key), Constants.KEY_SIZE_BYTES())
        self.assertNotEqual(key, CryptoUtils.generate_random_key())

    def test_generate_nonce(self):
        """Test nonce generation."""
        nonce = CryptoUtils.generate_nonce()

        self.assertEqual(len(nonce), Constants.NONCE_SIZE())
        self.assertNotEqual(nonce, CryptoUtils.generate_nonce())

    def test_encrypt_decrypt_round_trip(self):
        """Test AES-GCM encryption followed by decryption."""
        ciphertext, tag = CryptoUtils.encrypt_with_aesgcm(self.key, self.nonce, b"secret data")

        self.assertEqual(len(tag), Constants.TAG_SIZE())
        self.assertEqual(len(ciphertext), len(b"secret data"))
        self.assertNotEqual(ciphertext, b"secret data")
        self.assertEqual(
            CryptoUtils.decrypt_with_aesgcm(self.key, self.nonce, ciphertext, tag),
            b"secret data"
        )

    def test_encrypt_empty_plaintext(self):
        """Test that empty plaintext produces an empty ciphertext and a tag."""
        ciphertext, tag = CryptoUtils.encrypt_with_aesgcm(self.key, self.nonce, b"")

        self.assertEqual(ciphertext, b"")
        self.assertEqual(len(tag), Constants.TAG_SIZE())
        self.assertEqual(CryptoUtils.decrypt_with_aesgcm(self.key, self.nonce, ciphertext, tag), b"")

    def test_decrypt_with_tampered_ciphertext(self):
        """Test that a flipped ciphertext bit fails authentication."""
        ciphertext, tag = CryptoUtils.encrypt_with_aesgcm(self.key, self.nonce, b"secret data")
        tampered = bytes([ciphertext[0] ^ 0x01]) + ciphertext[1:]

        with self.assertRaises(AuthenticationError):
            CryptoUtils.decrypt_with_aesgcm(self.key, self.nonce, tampered, tag)

    def test_decrypt_with_wrong_associated_data(self):
        """Test that associated data is authenticated."""
        ciphertext, tag = CryptoUtils.encrypt_with_aesgcm(
            self.key, self.nonce, b"secret data", associated_data=b"env=prod"
        )

        with self.assertRaises(AuthenticationError):
            CryptoUtils.decrypt_with_aesgcm(
                self.key, self.nonce, ciphertext, tag, associated_data=b"env=staging"
            )

    def test_decrypt_with_short_tag(self):
        """Test that a truncated tag fails authentication."""
        ciphertext, tag = CryptoUtils.encrypt_with_aesgcm(self.key, self.nonce, b"data")

        with self.assertRaises(AuthenticationError):
            CryptoUtils.decrypt_with_aesgcm(self.key, self.nonce, ciphertext, tag[:-1])

    def test_invalid_key_size(self):
        """Test that keys of the wrong size are rejected."""
        with self.assertRaises(ValidationError):
            CryptoUtils.encrypt_with_aesgcm(b"short", self.nonce, b"data")

    def test_invalid_nonce_size(self):
        """Test that nonces of the wrong size are rejected."""
        with self.assertRaises(ValidationError):
            CryptoUtils.encrypt_with_aesgcm(self.key, b"123", b"data")

    def test_derive_entry_nonce(self):
        """Test per-entry nonce derivation."""
        base = bytes(12)

        self.assertEqual(CryptoUtils.derive_entry_nonce(base, 0), base)
        self.assertEqual(CryptoUtils.derive_entry_nonce(base, 1), bytes(11) + b"\x01")
        self.assertEqual(CryptoUtils.derive_entry_nonce(base, 256), bytes(10) + b"\x01\x00")

    def test_derive_entry_nonce_distinct(self):
        """Test that derived nonces never repeat within an archive."""
        nonces = {CryptoUtils.derive_entry_nonce(self.nonce, i) for i in range(1000)}

        self.assertEqual(len(nonces), 1000)

    def test_derive_entry_nonce_invalid(self):
        """Test invalid inputs to nonce derivation."""
        with self.assertRaises(ValidationError):
            CryptoUtils.derive_entry_nonce(b"short", 0)
        with self.assertRaises(ValidationError):
            CryptoUtils.derive_entry_nonce(self.nonce, -1)

    def test_canonical_context(self):
        """Test canonical context encoding."""
        self.assertEqual(CryptoUtils.canonical_context(None), b"")
        self.assertEqual(CryptoUtils.canonical_context({}), b"")
        self.assertEqual(
            CryptoUtils.canonical_context({"b": "2", "a": "1"}),
            b'{"a":"1","b":"2"}'
        )

    def test_canonical_context_order_independent(self):
        """Test that insertion order does not change the encoding."""
        self.assertEqual(
            CryptoUtils.canonical_context({"env": "prod", "app": "web"}),
            CryptoUtils.canonical_context({"app": "web", "env": "prod"})
        )

    def test_context_from_bytes(self):
        """Test decoding the canonical context."""
        context = {"env": "prod", "team": "ops"}

        self.assertEqual(CryptoUtils.context_from_bytes(CryptoUtils.canonical_context(context)), context)
        self.assertEqual(CryptoUtils.context_from_bytes(b""), {})

    def test_context_from_bytes_invalid(self):
        """Test that malformed context bytes are rejected."""
        with self.assertRaises(ValidationError):
            CryptoUtils.context_from_bytes(b"not json")
        with self.assertRaises(ValidationError):
            CryptoUtils.context_from_bytes(b'["a"]')
        with self.assertRaises(ValidationError):
            CryptoUtils.context_from_bytes(b'{"a":1}')

    def test_constant_time_compare(self):
        """Test constant-time comparison."""
        self.assertTrue(CryptoUtils.constant_time_compare(b"abc", b"abc"))
        self.assertFalse(CryptoUtils.constant_time_compare(b"abc", b"abd"))
        self.assertFalse(CryptoUtils.constant_time_compare(b"abc", b"ab"))

    def test_secure_zero(self):
        """Test zeroing a buffer in place."""
        data = bytearray(b"sensitive")
        CryptoUtils.secure_zero(data)

        self.assertEqual(data, bytearray(len(b"sensitive")))


if __name__ == "__main__":
    unittest.main()

"""Cryptographic utilities for the Sneaker Vault secret store."""

import hmac
import json
import secrets

from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sneaker_vault.exceptions import AuthenticationError
from sneaker_vault.exceptions import CryptoError
from sneaker_vault.exceptions import ValidationError


class CryptoUtils:
    """Cryptographic primitives shared by the envelope cipher and the archive codec."""

    _KEY_SIZE_BYTES = 32  # AES-256
    _NONCE_SIZE = 12  # 96-bit GCM nonce
    _TAG_SIZE = 16  # 128-bit GCM tag

    @staticmethod
    def constant_time_compare(a: bytes, b: bytes) -> bool:
        """Perform constant-time comparison of two byte strings.

        Args:
            a: First byte string
            b: Second byte string

        Returns:
            True if strings are equal, False otherwise
        """
        return hmac.compare_digest(a, b)

    @classmethod
    def generate_random_key(cls) -> bytearray:
        """Generate a random 256-bit key.

        Returns:
            Random 256-bit key as a mutable buffer so it can be zeroed
        """
        return bytearray(secrets.token_bytes(cls._KEY_SIZE_BYTES))

    @classmethod
    def generate_nonce(cls) -> bytes:
        """Generate a random 96-bit nonce.

        Returns:
            Random nonce as bytes
        """
        return secrets.token_bytes(cls._NONCE_SIZE)

    @classmethod
    def derive_entry_nonce(cls, base_nonce: bytes, index: int) -> bytes:
        """Derive the nonce for one archive entry.

        The entry index is XORed into the low-order bytes of the base nonce,
        so every entry under a shared data key gets a distinct nonce.

        Args:
            base_nonce: Random nonce stored in the archive header
            index: Zero-based entry index

        Returns:
            Per-entry nonce

        Raises:
            ValidationError: If the base nonce has the wrong size or index is negative
        """
        if len(base_nonce) != cls._NONCE_SIZE:
            raise ValidationError(f"Base nonce must be exactly {cls._NONCE_SIZE} bytes")
        if index < 0:
            raise ValidationError("Entry index cannot be negative")

        counter = index.to_bytes(cls._NONCE_SIZE, "big")
        return bytes(a ^ b for a, b in zip(base_nonce, counter))

    @staticmethod
    def canonical_context(context: Optional[dict[str, str]]) -> bytes:
        """Encode an encryption context to its canonical byte form.

        No context and an empty context share the empty byte string.

        Args:
            context: Encryption context mapping, or None

        Returns:
            UTF-8 JSON with sorted keys, or b"" for an empty context
        """
        if not context:
            return b""
        return json.dumps(
            context,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False
        ).encode("utf-8")

    @staticmethod
    def context_from_bytes(data: bytes) -> dict[str, str]:
        """Decode a canonical context produced by canonical_context.

        Raises:
            ValidationError: If the bytes are not a JSON object of strings
        """
        if not data:
            return {}
        try:
            context = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationError(f"Invalid encryption context encoding: {e}") from e
        if not isinstance(context, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in context.items()
        ):
            raise ValidationError("Encryption context must map strings to strings")
        return context

    @classmethod
    def encrypt_with_aesgcm(
        cls,
        key: bytes | bytearray,
        nonce: bytes,
        plaintext: bytes,
        *,
        associated_data: bytes | None = None
    ) -> tuple[bytes, bytes]:
        """Encrypt data using AES-256-GCM.

        Args:
            key: Encryption key (32 bytes)
            nonce: 96-bit nonce, never reused under the same key
            plaintext: Data to encrypt (may be empty)
            associated_data: Data authenticated but not encrypted

        Returns:
            Tuple of (ciphertext, tag)

        Raises:
            CryptoError: If encryption fails
            ValidationError: If key or nonce size is invalid
        """
        cls._validate_key_and_nonce(key, nonce)

        try:
            sealed = AESGCM(key).encrypt(nonce, plaintext, associated_data or None)
        except Exception as e:
            raise CryptoError(f"Encryption failed: {e}") from e

        return sealed[:-cls._TAG_SIZE], sealed[-cls._TAG_SIZE:]

    @classmethod
    def decrypt_with_aesgcm(
        cls,
        key: bytes | bytearray,
        nonce: bytes,
        ciphertext: bytes,
        tag: bytes,
        *,
        associated_data: bytes | None = None
    ) -> bytes:
        """Decrypt and authenticate data using AES-256-GCM.

        The tag is verified before any plaintext is returned.

        Args:
            key: Decryption key (32 bytes)
            nonce: Nonce used at encryption time
            ciphertext: Encrypted data
            tag: Authentication tag
            associated_data: Associated data used at encryption time

        Returns:
            Decrypted data as bytes

        Raises:
            AuthenticationError: If the tag does not verify
            CryptoError: If decryption fails for any other reason
            ValidationError: If key or nonce size is invalid
        """
        cls._validate_key_and_nonce(key, nonce)
        if len(tag) != cls._TAG_SIZE:
            raise AuthenticationError(f"Authentication tag must be exactly {cls._TAG_SIZE} bytes")

        try:
            return AESGCM(key).decrypt(nonce, ciphertext + tag, associated_data or None)
        except InvalidTag as e:
            raise AuthenticationError("Authentication tag verification failed") from e
        except Exception as e:
            raise CryptoError(f"Decryption failed: {e}") from e

    @classmethod
    def _validate_key_and_nonce(cls, key: bytes | bytearray, nonce: bytes) -> None:
        if len(key) != cls._KEY_SIZE_BYTES:
            raise ValidationError(f"Key must be exactly {cls._KEY_SIZE_BYTES} bytes")
        if len(nonce) != cls._NONCE_SIZE:
            raise ValidationError(f"Nonce must be exactly {cls._NONCE_SIZE} bytes")

    @staticmethod
    def secure_zero(data: bytearray) -> None:
        """Securely zero sensitive data from memory.

        Args:
            data: Data to zero (must be bytearray for in-place modification)
        """
        if data:
            # Zero the data in place
            for i in range(len(data)):
                data[i] = 0

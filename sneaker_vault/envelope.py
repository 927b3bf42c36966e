"""Envelope encryption of individual secrets.

Each seal asks the key service for a fresh data key, encrypts locally with
AES-256-GCM, and keeps only the wrapped form of the key next to the
ciphertext. The encryption context is bound twice: by the key service when it
wraps the data key, and locally as GCM associated data.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sneaker_vault.clients.base import KeyService
from sneaker_vault.crypto_utils import CryptoUtils
from sneaker_vault.exceptions import (
    AuthenticationError,
    ContextMismatchError,
    CryptoError,
    KeyServiceError,
    SneakerError,
    ValidationError,
)
from sneaker_vault.models import CipherUnit, DataKey
from sneaker_vault.validation_utils import validate_encryption_context

logger = logging.getLogger(__name__)


def normalize_context(context: Optional[dict[str, str]]) -> dict[str, str]:
    """Return a validated copy of ``context``; None becomes the empty context."""
    validate_encryption_context(context)
    return dict(context or {})


class EnvelopeCipher:
    """Seals and opens CipherUnits through a key service."""

    def __init__(self, key_service: KeyService):
        """Initialize the envelope cipher.

        Args:
            key_service: Key service that generates and unwraps data keys
        """
        self._key_service = key_service

    @property
    def key_service(self) -> KeyService:
        """Key service used for data keys."""
        return self._key_service

    @contextmanager
    def data_key(self, context: Optional[dict[str, str]] = None) -> Iterator[DataKey]:
        """Generate a data key bound to ``context``; zeroed when the block exits.

        Raises:
            KeyServiceError: If key generation fails
        """
        context = normalize_context(context)
        try:
            plaintext, wrapped = self._key_service.generate_data_key(context or None)
        except SneakerError:
            raise
        except Exception as e:
            raise KeyServiceError(f"Data key generation failed: {e}") from e

        try:
            data_key = DataKey(plaintext=bytearray(plaintext), wrapped=bytes(wrapped))
        except ValueError as e:
            raise KeyServiceError(f"Key service returned an invalid data key: {e}") from e

        try:
            yield data_key
        finally:
            data_key.zero()

    @contextmanager
    def unwrap(
        self,
        wrapped_key: bytes,
        context: Optional[dict[str, str]] = None
    ) -> Iterator[bytearray]:
        """Unwrap a data key via the key service; zeroed when the block exits.

        Raises:
            ContextMismatchError: If the key service rejects ``context``
            AuthenticationError: If the wrapped key is corrupt
            KeyServiceError: If the key service fails
        """
        context = normalize_context(context)
        try:
            plaintext = self._key_service.decrypt_data_key(wrapped_key, context or None)
        except (ContextMismatchError, AuthenticationError, KeyServiceError):
            raise
        except Exception as e:
            raise KeyServiceError(f"Data key unwrap failed: {e}") from e

        key = bytearray(plaintext)
        try:
            yield key
        finally:
            CryptoUtils.secure_zero(key)

    def seal(
        self,
        plaintext: bytes,
        context: Optional[dict[str, str]] = None
    ) -> CipherUnit:
        """Encrypt ``plaintext`` under a fresh data key bound to ``context``.

        Args:
            plaintext: Secret bytes (may be empty)
            context: Encryption context; None and {} are equivalent

        Returns:
            A new CipherUnit

        Raises:
            KeyServiceError: If key generation fails
            CryptoError: If local encryption fails
        """
        if not isinstance(plaintext, (bytes, bytearray)):
            raise ValidationError("Plaintext must be bytes")

        context = normalize_context(context)
        nonce = CryptoUtils.generate_nonce()

        with self.data_key(context) as data_key:
            try:
                ciphertext, tag = CryptoUtils.encrypt_with_aesgcm(
                    data_key.plaintext,
                    nonce,
                    bytes(plaintext),
                    associated_data=CryptoUtils.canonical_context(context)
                )
            except ValidationError as e:
                raise CryptoError(f"Sealing failed: {e}") from e

            return CipherUnit(
                wrapped_key=data_key.wrapped,
                nonce=nonce,
                ciphertext=ciphertext,
                tag=tag,
                context=context,
            )

    def open(
        self,
        unit: CipherUnit,
        context: Optional[dict[str, str]] = None
    ) -> bytes:
        """Decrypt a CipherUnit sealed under ``context``.

        Args:
            unit: CipherUnit produced by seal
            context: Encryption context supplied by the caller

        Returns:
            The original plaintext

        Raises:
            ContextMismatchError: If ``context`` differs from the sealing context
            AuthenticationError: If the unit has been tampered with
            KeyServiceError: If the key service fails
        """
        context = normalize_context(context)

        with self.unwrap(unit.wrapped_key, context) as key:
            try:
                return CryptoUtils.decrypt_with_aesgcm(
                    key,
                    unit.nonce,
                    unit.ciphertext,
                    unit.tag,
                    associated_data=CryptoUtils.canonical_context(context)
                )
            except ValidationError as e:
                raise AuthenticationError(f"Malformed cipher unit: {e}") from e

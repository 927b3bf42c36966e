"""Local key service that wraps data keys under a master key held in memory.

Wrapped key layout: ``[nonce 12B][AES-GCM(master, data_key | context_mac) + tag]``.
The context MAC lets a wrong context be told apart from a damaged blob, which
the remote service cannot do.
"""

import base64
import binascii
import logging
import secrets
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac

from sneaker_vault.clients.base import KeyService
from sneaker_vault.constants import Constants
from sneaker_vault.crypto_utils import CryptoUtils
from sneaker_vault.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ContextMismatchError,
)

logger = logging.getLogger(__name__)

_WRAP_AAD = b"sneaker-vault-local-v1"
_MAC_SIZE = 32


def generate_master_key() -> str:
    """Generate a random 32-byte master key and return it base64-encoded."""
    return base64.b64encode(secrets.token_bytes(Constants.KEY_SIZE_BYTES())).decode("ascii")


class LocalKeyService(KeyService):
    """Key service for offline use and tests."""

    def __init__(self, master_key: bytes) -> None:
        """Initialize the local key service.

        Args:
            master_key: Raw 32-byte master key

        Raises:
            ConfigurationError: If the master key has the wrong size
        """
        if len(master_key) != Constants.KEY_SIZE_BYTES():
            raise ConfigurationError(
                f"Master key must be exactly {Constants.KEY_SIZE_BYTES()} bytes, got {len(master_key)}"
            )
        self._master_key = bytes(master_key)

    @classmethod
    def from_base64(cls, value: str) -> "LocalKeyService":
        """Create a LocalKeyService from a base64-encoded master key.

        Raises:
            ConfigurationError: If the value is not valid base64 or has the wrong size
        """
        try:
            master_key = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(f"Master key is not valid base64: {e}") from e
        return cls(master_key)

    def _context_mac(self, context: Optional[dict[str, str]]) -> bytes:
        mac = crypto_hmac.HMAC(self._master_key, hashes.SHA256())
        mac.update(CryptoUtils.canonical_context(context))
        return mac.finalize()

    def generate_data_key(
        self,
        context: Optional[dict[str, str]] = None
    ) -> tuple[bytes, bytes]:
        data_key = CryptoUtils.generate_random_key()
        nonce = CryptoUtils.generate_nonce()
        try:
            ciphertext, tag = CryptoUtils.encrypt_with_aesgcm(
                self._master_key,
                nonce,
                bytes(data_key) + self._context_mac(context),
                associated_data=_WRAP_AAD
            )
            return bytes(data_key), nonce + ciphertext + tag
        finally:
            CryptoUtils.secure_zero(data_key)

    def decrypt_data_key(
        self,
        wrapped_key: bytes,
        context: Optional[dict[str, str]] = None
    ) -> bytes:
        nonce_size = Constants.NONCE_SIZE()
        tag_size = Constants.TAG_SIZE()
        expected = nonce_size + Constants.KEY_SIZE_BYTES() + _MAC_SIZE + tag_size
        if len(wrapped_key) != expected:
            raise AuthenticationError("Wrapped data key has an invalid length")

        payload = CryptoUtils.decrypt_with_aesgcm(
            self._master_key,
            wrapped_key[:nonce_size],
            wrapped_key[nonce_size:-tag_size],
            wrapped_key[-tag_size:],
            associated_data=_WRAP_AAD
        )
        data_key = payload[:Constants.KEY_SIZE_BYTES()]
        sealed_mac = payload[Constants.KEY_SIZE_BYTES():]

        if not CryptoUtils.constant_time_compare(sealed_mac, self._context_mac(context)):
            raise ContextMismatchError("Encryption context does not match the wrapped data key")

        return data_key

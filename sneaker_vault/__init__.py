"""Sneaker Vault - envelope-encrypted secrets in object storage.

This package stores secrets in S3 (or a local directory) encrypted under
per-secret data keys issued by AWS KMS (or a local master key), packs them
into encrypted archives for transport, and rotates them to fresh data keys.
"""

from sneaker_vault.archive import ArchiveCodec
from sneaker_vault.config import SneakerConfig
from sneaker_vault.envelope import EnvelopeCipher
from sneaker_vault.exceptions import (
    AuthenticationError,
    CompositeError,
    ConfigurationError,
    ContextMismatchError,
    CorruptArchiveError,
    CryptoError,
    KeyServiceError,
    NotFoundError,
    SneakerError,
    StoreError,
    UnsupportedFormatError,
    ValidationError,
)
from sneaker_vault.models import CipherUnit, RotationResult, Secret, StoredObject
from sneaker_vault.secret_manager import SecretManager

try:
    from importlib.metadata import version
    __version__ = version("sneaker-vault")
except ImportError:
    # Fallback for environments without importlib.metadata
    __version__ = "unknown"

__all__ = [
    "ArchiveCodec",
    "AuthenticationError",
    "CipherUnit",
    "CompositeError",
    "ConfigurationError",
    "ContextMismatchError",
    "CorruptArchiveError",
    "CryptoError",
    "EnvelopeCipher",
    "KeyServiceError",
    "NotFoundError",
    "RotationResult",
    "Secret",
    "SecretManager",
    "SneakerConfig",
    "SneakerError",
    "StoreError",
    "StoredObject",
    "UnsupportedFormatError",
    "ValidationError",
]

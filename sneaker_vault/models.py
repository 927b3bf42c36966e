"""Data models for the Sneaker Vault secret store."""

import struct
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sneaker_vault.constants import Constants
from sneaker_vault.crypto_utils import CryptoUtils
from sneaker_vault.exceptions import AuthenticationError

_LENGTH = struct.Struct(">I")


@dataclass
class DataKey:
    """A short-lived data key: plaintext form in memory, wrapped form for storage."""

    plaintext: bytearray = field(repr=False)
    wrapped: bytes

    def __post_init__(self) -> None:
        """Validate and process fields after initialization."""
        if not isinstance(self.plaintext, bytearray):
            self.plaintext = bytearray(self.plaintext)
        if len(self.plaintext) != Constants.KEY_SIZE_BYTES():
            raise ValueError(f"Data key must be exactly {Constants.KEY_SIZE_BYTES()} bytes")
        if not self.wrapped:
            raise ValueError("wrapped key cannot be empty")

    def zero(self) -> None:
        """Overwrite the plaintext key in place."""
        CryptoUtils.secure_zero(self.plaintext)


@dataclass(frozen=True)
class CipherUnit:
    """The at-rest result of one envelope encryption."""

    wrapped_key: bytes
    nonce: bytes
    ciphertext: bytes = field(repr=False)
    tag: bytes
    context: Optional[dict[str, str]] = None

    def to_bytes(self) -> bytes:
        """Serialize to the single-secret object format.

        Layout: ``[wrapped-key-length u32][wrapped key][nonce][tag][ciphertext]``.
        The context is not stored; the reader supplies it.
        """
        return b"".join((
            _LENGTH.pack(len(self.wrapped_key)),
            self.wrapped_key,
            self.nonce,
            self.tag,
            self.ciphertext,
        ))

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        context: Optional[dict[str, str]] = None
    ) -> "CipherUnit":
        """Parse the single-secret object format.

        Args:
            data: Serialized object
            context: Context the caller expects the unit to be bound to

        Returns:
            Parsed CipherUnit

        Raises:
            AuthenticationError: If the object is truncated or malformed
        """
        nonce_size = Constants.NONCE_SIZE()
        tag_size = Constants.TAG_SIZE()

        if len(data) < _LENGTH.size:
            raise AuthenticationError("Stored object is too short to be a cipher unit")

        (key_length,) = _LENGTH.unpack_from(data, 0)
        offset = _LENGTH.size
        if key_length == 0 or offset + key_length + nonce_size + tag_size > len(data):
            raise AuthenticationError("Stored object is truncated or has a corrupt key length")

        wrapped_key = data[offset:offset + key_length]
        offset += key_length
        nonce = data[offset:offset + nonce_size]
        offset += nonce_size
        tag = data[offset:offset + tag_size]
        offset += tag_size

        return cls(
            wrapped_key=bytes(wrapped_key),
            nonce=bytes(nonce),
            ciphertext=bytes(data[offset:]),
            tag=bytes(tag),
            context=context,
        )


@dataclass
class Secret:
    """A named plaintext secret; exists only in memory."""

    path: str
    plaintext: bytes = field(repr=False)


@dataclass
class StoredObject:
    """Object metadata reported by the object store."""

    path: str
    last_modified: datetime
    size: int
    etag: str

    def __post_init__(self) -> None:
        """Validate and process fields after initialization."""
        if isinstance(self.last_modified, str):
            self.last_modified = datetime.fromisoformat(self.last_modified.replace("Z", "+00:00"))
        if self.last_modified.tzinfo is None:
            self.last_modified = self.last_modified.replace(tzinfo=timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with proper datetime serialization."""
        return {
            "path": self.path,
            "last_modified": self.last_modified.isoformat(),
            "size": self.size,
            "etag": self.etag,
        }


@dataclass
class ArchiveHeader:
    """Parsed archive header."""

    version: int
    context: dict[str, str]
    wrapped_key: bytes
    base_nonce: bytes
    entry_count: int


@dataclass
class RotationResult:
    """Outcome of one rotation pass."""

    rotated: list[str] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        """True when every selected secret was rotated."""
        return not self.failures and not self.skipped

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "rotated": list(self.rotated),
            "failed": {path: str(error) for path, error in self.failures.items()},
            "skipped": list(self.skipped),
            "cancelled": self.cancelled,
        }

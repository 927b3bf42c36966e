"""Binary archive codec bundling many secrets under one data key.

Layout, big-endian throughout::

    magic "SNKA" | version u16
    context-length u32 | context bytes (canonical JSON)
    wrapped-key-length u32 | wrapped key
    base nonce (12) | entry-count u32
    entry-count x [ name-length u32 | name | ciphertext-length u32 | ciphertext | tag (16) ]

Entry ``i`` is encrypted with the shared data key under the base nonce with
``i`` XORed into its low-order bytes. Its associated data is the whole header
followed by its index and name, so entries cannot be reordered or renamed and
the header cannot be edited undetected.
"""

import logging
import struct
from typing import Optional, Sequence

from sneaker_vault.constants import Constants
from sneaker_vault.crypto_utils import CryptoUtils
from sneaker_vault.envelope import EnvelopeCipher, normalize_context
from sneaker_vault.exceptions import (
    AuthenticationError,
    ContextMismatchError,
    CorruptArchiveError,
    UnsupportedFormatError,
    ValidationError,
)
from sneaker_vault.models import ArchiveHeader, Secret
from sneaker_vault.validation_utils import validate_secret_path

logger = logging.getLogger(__name__)

_PREFIX = struct.Struct(">4sH")
_U32 = struct.Struct(">I")


class _Reader:
    """Bounds-checked cursor over archive bytes."""

    def __init__(self, data: bytes, offset: int = 0):
        self._data = data
        self.offset = offset

    def read(self, size: int, what: str, entry_name: str | None = None) -> bytes:
        end = self.offset + size
        if end > len(self._data):
            raise CorruptArchiveError(f"Archive truncated while reading {what}", entry_name=entry_name)
        chunk = self._data[self.offset:end]
        self.offset = end
        return bytes(chunk)

    def read_u32(self, what: str, entry_name: str | None = None) -> int:
        (value,) = _U32.unpack(self.read(_U32.size, what, entry_name))
        return value

    @property
    def remaining(self) -> int:
        return len(self._data) - self.offset


class ArchiveCodec:
    """Packs and unpacks secret archives."""

    def __init__(self, cipher: EnvelopeCipher):
        """Initialize the archive codec.

        Args:
            cipher: Envelope cipher providing the shared data key
        """
        self._cipher = cipher

    @staticmethod
    def _entry_aad(header: bytes, index: int, name: bytes) -> bytes:
        return header + _U32.pack(index) + name

    def pack(
        self,
        secrets: Sequence[Secret],
        context: Optional[dict[str, str]] = None
    ) -> bytes:
        """Serialize secrets into one encrypted archive.

        One data key is generated for the whole archive. Entries keep the
        order of ``secrets``; an empty sequence yields a header-only archive.

        Args:
            secrets: Secrets to pack, in order
            context: Encryption context for the archive

        Returns:
            Archive bytes

        Raises:
            ValidationError: If an entry name is invalid or repeated
            KeyServiceError: If key generation fails
            CryptoError: If encryption fails
        """
        context = normalize_context(context)
        self._validate_secrets(secrets)

        context_bytes = CryptoUtils.canonical_context(context)
        base_nonce = CryptoUtils.generate_nonce()

        with self._cipher.data_key(context) as data_key:
            header = b"".join((
                _PREFIX.pack(Constants.ARCHIVE_MAGIC(), Constants.ARCHIVE_VERSION()),
                _U32.pack(len(context_bytes)),
                context_bytes,
                _U32.pack(len(data_key.wrapped)),
                data_key.wrapped,
                base_nonce,
                _U32.pack(len(secrets)),
            ))

            records = []
            for index, secret in enumerate(secrets):
                name = secret.path.encode("utf-8")
                ciphertext, tag = CryptoUtils.encrypt_with_aesgcm(
                    data_key.plaintext,
                    CryptoUtils.derive_entry_nonce(base_nonce, index),
                    bytes(secret.plaintext),
                    associated_data=self._entry_aad(header, index, name)
                )
                records.append(b"".join((
                    _U32.pack(len(name)),
                    name,
                    _U32.pack(len(ciphertext)),
                    ciphertext,
                    tag,
                )))

        logger.info("Archive packed", extra={
            "entries": len(records),
            "event": "archive_packed"
        })
        return header + b"".join(records)

    def read_header(self, data: bytes) -> ArchiveHeader:
        """Parse the archive header without contacting the key service.

        Raises:
            CorruptArchiveError: If the header is malformed
            UnsupportedFormatError: If the format version is unknown
        """
        header, _ = self._parse_header(data)
        return header

    def unpack(
        self,
        data: bytes,
        context: Optional[dict[str, str]] = None
    ) -> list[Secret]:
        """Decrypt every entry of an archive.

        Either every entry is returned, in archive order, or an error is raised.

        Args:
            data: Archive bytes
            context: Encryption context the archive was packed with

        Returns:
            Secrets in archive order

        Raises:
            UnsupportedFormatError: If the format version is unknown
            ContextMismatchError: If ``context`` is not the archive's context
            AuthenticationError: If the shared data key fails to unwrap, or the header
                was edited so that no entry authenticates
            CorruptArchiveError: If the archive is malformed, an entry name is unsafe
                or repeated, or an entry fails its tag
        """
        header, offset = self._parse_header(data)
        context = normalize_context(context)

        if not CryptoUtils.constant_time_compare(
            CryptoUtils.canonical_context(context),
            CryptoUtils.canonical_context(header.context)
        ):
            raise ContextMismatchError("Supplied encryption context does not match the archive")

        entries = self._parse_entries(data, offset, header.entry_count)
        header_bytes = bytes(data[:offset])

        secrets = []
        failures = []
        with self._cipher.unwrap(header.wrapped_key, context) as key:
            for index, (name, ciphertext, tag) in enumerate(entries):
                try:
                    plaintext = CryptoUtils.decrypt_with_aesgcm(
                        key,
                        CryptoUtils.derive_entry_nonce(header.base_nonce, index),
                        ciphertext,
                        tag,
                        associated_data=self._entry_aad(header_bytes, index, name.encode("utf-8"))
                    )
                except (AuthenticationError, ValidationError) as e:
                    failures.append((name, e))
                    continue
                secrets.append(Secret(path=name, plaintext=plaintext))

        if failures:
            # Every entry binds the header, so an edited header fails them all
            if len(entries) > 1 and len(failures) == len(entries):
                raise AuthenticationError("Archive header failed authentication") from failures[0][1]
            name, error = failures[0]
            raise CorruptArchiveError(
                f"Archive entry {name!r} failed authentication",
                entry_name=name
            ) from error

        logger.info("Archive unpacked", extra={
            "entries": len(secrets),
            "event": "archive_unpacked"
        })
        return secrets

    def _parse_header(self, data: bytes) -> tuple[ArchiveHeader, int]:
        reader = _Reader(data)
        magic, version = _PREFIX.unpack(reader.read(_PREFIX.size, "magic"))
        if magic != Constants.ARCHIVE_MAGIC():
            raise CorruptArchiveError("Not a sneaker archive (bad magic)")
        if version not in Constants.SUPPORTED_ARCHIVE_VERSIONS():
            raise UnsupportedFormatError(f"Unsupported archive format version {version}")

        context_bytes = reader.read(reader.read_u32("context length"), "context")
        try:
            context = CryptoUtils.context_from_bytes(context_bytes)
        except ValidationError as e:
            raise CorruptArchiveError(f"Archive header has a malformed context: {e}") from e

        wrapped_key = reader.read(reader.read_u32("wrapped key length"), "wrapped key")
        if not wrapped_key:
            raise CorruptArchiveError("Archive header has an empty wrapped key")

        base_nonce = reader.read(Constants.NONCE_SIZE(), "nonce")
        entry_count = reader.read_u32("entry count")

        header = ArchiveHeader(
            version=version,
            context=context,
            wrapped_key=wrapped_key,
            base_nonce=base_nonce,
            entry_count=entry_count,
        )
        return header, reader.offset

    def _parse_entries(
        self,
        data: bytes,
        offset: int,
        entry_count: int
    ) -> list[tuple[str, bytes, bytes]]:
        reader = _Reader(data, offset)
        entries = []
        seen = set()
        for index in range(entry_count):
            label = f"#{index}"
            raw_name = reader.read(reader.read_u32("name length", label), "name", label)
            try:
                name = raw_name.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CorruptArchiveError(
                    f"Archive entry {label} has an invalid name", entry_name=label
                ) from e
            try:
                validate_secret_path(name)
            except ValidationError as e:
                raise CorruptArchiveError(
                    f"Archive entry {name!r} has an unsafe name: {e}", entry_name=name
                ) from e
            if name in seen:
                raise CorruptArchiveError(
                    f"Archive entry {name!r} appears more than once", entry_name=name
                )
            seen.add(name)
            ciphertext = reader.read(reader.read_u32("ciphertext length", name), "ciphertext", name)
            tag = reader.read(Constants.TAG_SIZE(), "tag", name)
            entries.append((name, ciphertext, tag))

        if reader.remaining:
            raise CorruptArchiveError(f"Archive has {reader.remaining} trailing byte(s)")
        return entries

    @staticmethod
    def _validate_secrets(secrets: Sequence[Secret]) -> None:
        seen = set()
        for secret in secrets:
            validate_secret_path(secret.path)
            if not isinstance(secret.plaintext, (bytes, bytearray)):
                raise ValidationError(f"Plaintext for {secret.path!r} must be bytes")
            if secret.path in seen:
                raise ValidationError(f"Duplicate archive entry name: {secret.path!r}")
            seen.add(secret.path)

"""Secret manager: the caller-facing operations over the service layer."""

import logging
import threading
from typing import Callable, List, Optional, Sequence

from sneaker_vault.archive import ArchiveCodec
from sneaker_vault.clients import (
    FileSystemObjectStore,
    KeyService,
    KmsKeyService,
    LocalKeyService,
    ObjectStore,
    S3ObjectStore,
)
from sneaker_vault.config import SneakerConfig
from sneaker_vault.envelope import EnvelopeCipher
from sneaker_vault.exceptions import NotFoundError
from sneaker_vault.models import RotationResult, Secret, StoredObject
from sneaker_vault.services import BatchExecutor, RotationManager, SecretStoreService

logger = logging.getLogger(__name__)


class SecretManager:
    """Stores, archives and rotates envelope-encrypted secrets."""

    @classmethod
    def from_config(cls, config: SneakerConfig) -> "SecretManager":
        """Build a SecretManager with the clients named by ``config``.

        Args:
            config: Validated configuration

        Returns:
            SecretManager instance
        """
        key_service: KeyService
        if config.uses_kms:
            key_service = KmsKeyService(config.key_id, region=config.region)
        else:
            key_service = LocalKeyService.from_base64(config.master_key)

        object_store: ObjectStore
        if config.storage_scheme == "s3":
            object_store = S3ObjectStore(config.bucket, region=config.region)
        else:
            object_store = FileSystemObjectStore(config.root_dir)

        return cls(
            key_service,
            object_store,
            prefix=config.prefix,
            context=config.context,
            max_workers=config.max_workers,
        )

    def __init__(
        self,
        key_service: KeyService,
        object_store: ObjectStore,
        *,
        prefix: str = "",
        context: Optional[dict[str, str]] = None,
        max_workers: int | None = None
    ) -> None:
        """Initialize the Secret Manager.

        Args:
            key_service: Key service for data keys
            object_store: Object store for sealed secrets
            prefix: Object-key prefix under which secrets live
            context: Default encryption context for stored secrets
            max_workers: Worker limit for batch operations (default: 10)
        """
        self._cipher = EnvelopeCipher(key_service)
        self._executor = BatchExecutor(max_workers)
        self._secret_service = SecretStoreService(
            object_store,
            self._cipher,
            prefix=prefix,
            context=context,
            executor=self._executor
        )
        self._archive_codec = ArchiveCodec(self._cipher)
        self._rotation_manager = RotationManager(self._secret_service, self._executor)

    @property
    def secret_service(self) -> SecretStoreService:
        return self._secret_service

    @property
    def archive_codec(self) -> ArchiveCodec:
        return self._archive_codec

    def list(self, pattern: str | None = "") -> list[StoredObject]:
        """List stored secrets matching comma-separated globs (empty means all)."""
        return self._secret_service.list(pattern)

    def upload(self, path: str, data: bytes) -> None:
        """Encrypt and store ``data`` at ``path``, replacing any previous secret."""
        self._secret_service.put(path, data)

    def read(self, path: str) -> bytes:
        """Fetch and decrypt the secret at ``path``."""
        return self._secret_service.get(path)

    def remove(self, path: str) -> None:
        """Delete the secret at ``path``."""
        self._secret_service.delete(path)

    def download(
        self,
        paths: Sequence[str],
        *,
        cancel_event: threading.Event | None = None
    ) -> dict[str, bytes]:
        """Fetch and decrypt several secrets concurrently.

        Raises:
            CompositeError: If any secret could not be read
        """
        return self._secret_service.get_many(paths, cancel_event=cancel_event)

    def pack(
        self,
        paths: Sequence[str],
        context: Optional[dict[str, str]] = None,
        *,
        cancel_event: threading.Event | None = None
    ) -> bytes:
        """Download secrets and pack them into one archive.

        Entries follow the order of ``paths`` whatever order the downloads
        finish in.

        Args:
            paths: Secret paths to include
            context: Encryption context for the archive (independent of the
                stored secrets' context)
            cancel_event: When set, downloads not yet started are skipped

        Returns:
            Archive bytes

        Raises:
            CompositeError: If any secret could not be downloaded
        """
        plaintexts = self.download(paths, cancel_event=cancel_event)
        secrets = [Secret(path=path, plaintext=plaintexts[path]) for path in plaintexts]

        logger.info("Packing secrets", extra={
            "count": len(secrets),
            "event": "pack_started"
        })
        return self._archive_codec.pack(secrets, context)

    def unpack(
        self,
        data: bytes,
        context: Optional[dict[str, str]] = None
    ) -> List[Secret]:
        """Decrypt every secret in an archive, in archive order."""
        return self._archive_codec.unpack(data, context)

    def unpack_entry(
        self,
        data: bytes,
        path: str,
        context: Optional[dict[str, str]] = None
    ) -> bytes:
        """Decrypt an archive and return the plaintext of one entry.

        The whole archive is verified first.

        Raises:
            NotFoundError: If the archive has no entry named ``path``
        """
        for secret in self.unpack(data, context):
            if secret.path == path:
                return secret.plaintext
        raise NotFoundError(f"Archive has no entry named {path!r}")

    def rotate(
        self,
        pattern: str | None = "",
        progress: Optional[Callable[[str], None]] = None,
        *,
        cancel_event: threading.Event | None = None
    ) -> RotationResult:
        """Re-encrypt matching secrets under fresh data keys.

        Raises:
            CompositeError: If any secret failed to rotate
        """
        return self._rotation_manager.rotate(
            pattern,
            progress=progress,
            cancel_event=cancel_event
        )

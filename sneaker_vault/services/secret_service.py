"""Secret service mapping logical secret paths to envelope-encrypted objects."""

import fnmatch
import logging
import threading
from typing import Optional, Sequence

from sneaker_vault.clients.base import ObjectStore
from sneaker_vault.envelope import EnvelopeCipher, normalize_context
from sneaker_vault.exceptions import CompositeError
from sneaker_vault.models import CipherUnit, StoredObject
from sneaker_vault.services.batch import BatchExecutor
from sneaker_vault.validation_utils import parse_patterns, validate_secret_path

logger = logging.getLogger(__name__)


def normalize_prefix(prefix: str | None) -> str:
    """Normalize an object-key prefix to ``""`` or ``"some/prefix/"``."""
    prefix = (prefix or "").strip("/")
    return f"{prefix}/" if prefix else ""


class SecretStoreService:
    """Stores one secret per object, each under its own data key."""

    def __init__(
        self,
        object_store: ObjectStore,
        cipher: EnvelopeCipher,
        *,
        prefix: str = "",
        context: Optional[dict[str, str]] = None,
        executor: BatchExecutor | None = None
    ):
        """Initialize the secret service.

        Args:
            object_store: Object store holding the sealed secrets
            cipher: Envelope cipher for sealing and opening
            prefix: Object-key prefix under which secrets live
            context: Default encryption context for stored secrets
            executor: Batch executor for get_many (default: 10 workers)
        """
        self._object_store = object_store
        self._cipher = cipher
        self._prefix = normalize_prefix(prefix)
        self._context = normalize_context(context)
        self._executor = executor or BatchExecutor()

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def context(self) -> dict[str, str]:
        """Default encryption context (a copy)."""
        return dict(self._context)

    @property
    def executor(self) -> BatchExecutor:
        return self._executor

    def object_key(self, path: str) -> str:
        """Map a secret path to its object key.

        Raises:
            ValidationError: If the path is invalid
        """
        validate_secret_path(path)
        return self._prefix + path

    def list(self, pattern: str | None = "") -> list[StoredObject]:
        """List stored secrets whose path matches any comma-separated glob.

        Args:
            pattern: Globs such as ``"*.txt,db/*"``; empty means all

        Returns:
            StoredObject entries with paths relative to the prefix, sorted by path
        """
        patterns = parse_patterns(pattern)
        secrets = []
        for stored in self._object_store.list(self._prefix):
            path = stored.path[len(self._prefix):]
            if not path:
                continue
            if patterns and not any(fnmatch.fnmatchcase(path, p) for p in patterns):
                continue
            secrets.append(StoredObject(
                path=path,
                last_modified=stored.last_modified,
                size=stored.size,
                etag=stored.etag,
            ))
        return sorted(secrets, key=lambda s: s.path)

    def seal(self, plaintext: bytes) -> CipherUnit:
        """Seal ``plaintext`` under the default context with a fresh data key."""
        return self._cipher.seal(plaintext, self._context)

    def write_unit(self, path: str, unit: CipherUnit) -> None:
        """Write a sealed unit at ``path``, replacing any existing object."""
        self._object_store.put(self.object_key(path), unit.to_bytes())
        logger.debug("Secret written", extra={
            "path": path,
            "event": "secret_written"
        })

    def put(self, path: str, plaintext: bytes) -> None:
        """Seal ``plaintext`` and store it at ``path`` (last write wins).

        Raises:
            ValidationError: If the path is invalid
            KeyServiceError: If the data key cannot be generated
            StoreError: If the object store write fails
        """
        object_key = self.object_key(path)
        unit = self.seal(plaintext)
        self._object_store.put(object_key, unit.to_bytes())
        logger.info("Secret stored", extra={
            "path": path,
            "event": "secret_stored"
        })

    def read_unit(self, path: str) -> CipherUnit:
        """Read and parse the sealed unit at ``path``.

        Raises:
            NotFoundError: If no object exists for ``path``
            AuthenticationError: If the object is malformed
        """
        data = self._object_store.get(self.object_key(path))
        return CipherUnit.from_bytes(data, self._context)

    def get(self, path: str) -> bytes:
        """Read and decrypt the secret at ``path``.

        Raises:
            NotFoundError: If no object exists for ``path``
            ContextMismatchError: If the object was sealed under another context
            AuthenticationError: If the object is corrupt or tampered with
        """
        return self._cipher.open(self.read_unit(path), self._context)

    def get_many(
        self,
        paths: Sequence[str],
        *,
        cancel_event: threading.Event | None = None
    ) -> dict[str, bytes]:
        """Read several secrets concurrently.

        Args:
            paths: Secret paths; duplicates are read once
            cancel_event: When set, paths not yet started are skipped

        Returns:
            Mapping of path to plaintext, in the order of ``paths``

        Raises:
            CompositeError: If any path failed or was skipped; carries the partial results
        """
        unique_paths = list(dict.fromkeys(paths))
        outcome = self._executor.run(unique_paths, self.get, cancel_event=cancel_event)

        if not outcome.complete:
            raise CompositeError(
                "download",
                outcome.failures,
                succeeded=list(outcome.results),
                skipped=outcome.skipped,
                results=outcome.results,
            )
        return outcome.results

    def delete(self, path: str) -> None:
        """Delete the secret at ``path``.

        Raises:
            NotFoundError: If no object exists for ``path``
        """
        self._object_store.delete(self.object_key(path))
        logger.info("Secret deleted", extra={
            "path": path,
            "event": "secret_deleted"
        })

"""Interfaces for the key-management service and the object store.

The core only talks to these two abstractions. Concrete implementations are
passed in at construction time, so tests and offline use can swap the AWS
clients for the local ones.
"""

from abc import ABC, abstractmethod
from typing import Optional

from sneaker_vault.models import StoredObject


class KeyService(ABC):
    """A key-management service that generates and unwraps data keys."""

    @abstractmethod
    def generate_data_key(
        self,
        context: Optional[dict[str, str]] = None
    ) -> tuple[bytes, bytes]:
        """Generate a fresh data key bound to ``context``.

        Returns:
            Tuple of (plaintext_key, wrapped_key)

        Raises:
            KeyServiceError: If the service fails
        """

    @abstractmethod
    def decrypt_data_key(
        self,
        wrapped_key: bytes,
        context: Optional[dict[str, str]] = None
    ) -> bytes:
        """Unwrap a data key previously produced by generate_data_key.

        Returns:
            The plaintext key

        Raises:
            ContextMismatchError: If ``context`` differs from the one used at wrap time
            AuthenticationError: If the wrapped key is corrupt
            KeyServiceError: If the service fails
        """


class ObjectStore(ABC):
    """A flat key/value object store."""

    @abstractmethod
    def list(self, prefix: str = "") -> list[StoredObject]:
        """List objects whose key starts with ``prefix``.

        The ``path`` of each returned StoredObject is the full object key.

        Raises:
            StoreError: If the listing fails
        """

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Read an object.

        Raises:
            NotFoundError: If no object exists at ``key``
            StoreError: If the read fails
        """

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """Write (or overwrite) an object.

        Raises:
            StoreError: If the write fails
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete an object.

        Raises:
            NotFoundError: If no object exists at ``key``
            StoreError: If the delete fails
        """

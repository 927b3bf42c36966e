"""Key service and object store clients for Sneaker Vault."""

from sneaker_vault.clients.aws import KmsKeyService, S3ObjectStore
from sneaker_vault.clients.base import KeyService, ObjectStore
from sneaker_vault.clients.filesystem import FileSystemObjectStore
from sneaker_vault.clients.local import LocalKeyService, generate_master_key

__all__ = [
    "FileSystemObjectStore",
    "KeyService",
    "KmsKeyService",
    "LocalKeyService",
    "ObjectStore",
    "S3ObjectStore",
    "generate_master_key",
]

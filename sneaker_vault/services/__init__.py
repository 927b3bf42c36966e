"""Services package for Sneaker Vault."""

from sneaker_vault.services.batch import BatchExecutor, BatchOutcome
from sneaker_vault.services.secret_service import SecretStoreService
from sneaker_vault.services.rotation import RotationManager

__all__ = [
    "BatchExecutor",
    "BatchOutcome",
    "RotationManager",
    "SecretStoreService",
]

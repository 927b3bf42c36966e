"""Rotation services package for Sneaker Vault."""

from sneaker_vault.services.rotation.manager import RotationManager
from sneaker_vault.services.rotation.operations import rotate_secret

__all__ = [
    "RotationManager",
    "rotate_secret",
]

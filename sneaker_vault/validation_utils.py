"""Validation utilities for the sneaker vault package."""

from typing import Any

from sneaker_vault.constants import Constants
from sneaker_vault.exceptions import ValidationError


def validate_secret_path(path: str) -> None:
    """Validate a logical secret path.

    Paths are slash-separated names such as ``"db/password"``. They become
    object-store keys under the configured prefix and archive entry names.

    Args:
        path: Secret path to validate

    Raises:
        ValidationError: If path doesn't meet requirements
    """
    if path is None:
        raise ValidationError("Secret path cannot be None")

    if not isinstance(path, str):
        raise ValidationError("Secret path must be a string")

    if path == "":
        raise ValidationError("Secret path cannot be empty")

    if path.strip() == "":
        raise ValidationError("Secret path cannot contain only whitespace")

    if len(path) > Constants.MAX_PATH_LENGTH():
        raise ValidationError(
            f"Secret path is too long (maximum {Constants.MAX_PATH_LENGTH()} characters)"
        )

    if '\x00' in path:
        raise ValidationError("Secret path cannot contain null bytes")

    if path.startswith("/") or path.endswith("/"):
        raise ValidationError("Secret path cannot start or end with '/'")

    if any(part in ("", ".", "..") for part in path.split("/")):
        raise ValidationError(f"Secret path has an empty or relative segment: {path!r}")


def validate_encryption_context(context: Any) -> None:
    """Validate an encryption context.

    ``None`` is accepted and treated as the empty context.

    Args:
        context: Mapping of string keys to string values, or None

    Raises:
        ValidationError: If the context is not a string-to-string mapping
    """
    if context is None:
        return

    if not isinstance(context, dict):
        raise ValidationError("Encryption context must be a dictionary")

    if len(context) > Constants.MAX_CONTEXT_ENTRIES():
        raise ValidationError(
            f"Encryption context has too many entries (maximum {Constants.MAX_CONTEXT_ENTRIES()})"
        )

    for key, value in context.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValidationError("Encryption context keys and values must be strings")
        if key.strip() == "":
            raise ValidationError("Encryption context keys cannot be empty")


def parse_patterns(pattern: str | None) -> list[str]:
    """Split a comma-separated glob pattern list.

    Args:
        pattern: Patterns such as ``"*.txt,db/*"``; empty or None means all

    Returns:
        List of non-empty patterns (empty list means match everything)
    """
    if not pattern:
        return []
    return [p.strip() for p in pattern.split(",") if p.strip()]

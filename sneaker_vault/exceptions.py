"""Custom exceptions for the Sneaker Vault secret store."""

from typing import Any


class SneakerError(Exception):
    """Base exception for all Sneaker Vault errors."""


class ValidationError(SneakerError):
    """Raised when caller-supplied data fails validation."""


class ConfigurationError(SneakerError):
    """Raised when the environment or configuration is missing or invalid."""


class NotFoundError(SneakerError):
    """Raised when no object exists at the requested key."""


class ContextMismatchError(SneakerError):
    """Raised when the supplied encryption context does not match the sealed one."""


class AuthenticationError(SneakerError):
    """Raised when an authentication tag fails to verify."""


class CryptoError(SneakerError):
    """Raised when a local cipher operation fails for a reason other than tampering."""


class UnsupportedFormatError(SneakerError):
    """Raised when an archive declares a format version this library cannot read."""


class CorruptArchiveError(SneakerError):
    """Raised when an archive is structurally malformed or an entry fails its tag."""

    def __init__(self, message: str, *, entry_name: str | None = None) -> None:
        super().__init__(message)
        self.entry_name = entry_name


class KeyServiceError(SneakerError):
    """Raised when the key-management service fails."""


class StoreError(SneakerError):
    """Raised when the object store fails."""


class CompositeError(SneakerError):
    """Aggregates the per-item failures of a batch operation.

    Attributes:
        failures: Mapping of item (path or key) to the exception it raised
        succeeded: Items that completed successfully
        skipped: Items never started because the batch was cancelled
        results: Partial results keyed by item, when the batch produces values
    """

    def __init__(
        self,
        operation: str,
        failures: dict[str, Exception],
        *,
        succeeded: list[str] | None = None,
        skipped: list[str] | None = None,
        results: dict[str, Any] | None = None
    ) -> None:
        self.operation = operation
        self.failures = dict(failures)
        self.succeeded = list(succeeded or [])
        self.skipped = list(skipped or [])
        self.results = dict(results or {})
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = []
        if self.failures:
            parts.append(f"{_operation_label(self.operation)} failed for {len(self.failures)} item(s)")
        if self.skipped:
            parts.append(f"{len(self.skipped)} item(s) skipped after cancellation")
        lines = ["; ".join(parts) or f"{_operation_label(self.operation)} incomplete"]
        for item, error in self.failures.items():
            lines.append(f"  {item}: {type(error).__name__}: {error}")
        return "\n".join(lines)


def _operation_label(operation: str) -> str:
    """Return a capitalised label for an operation name."""
    return operation[:1].upper() + operation[1:] if operation else "Batch"

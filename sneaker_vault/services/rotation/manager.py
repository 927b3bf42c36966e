"""Rotation manager that orchestrates re-encryption of stored secrets."""

import logging
import threading
from typing import Callable, Optional

from sneaker_vault.exceptions import CompositeError
from sneaker_vault.models import RotationResult
from sneaker_vault.services.batch import BatchExecutor
from sneaker_vault.services.rotation.operations import rotate_secret
from sneaker_vault.services.secret_service import SecretStoreService

logger = logging.getLogger(__name__)


class RotationManager:
    """Rotates every stored secret matching a pattern.

    Rotation is per secret, not all-or-nothing: a secret that fails keeps its
    old object while the others move to new data keys.
    """

    def __init__(
        self,
        secret_service: SecretStoreService,
        executor: BatchExecutor | None = None
    ):
        """Initialize the rotation manager.

        Args:
            secret_service: Secret service holding the secrets
            executor: Batch executor (default: the secret service's executor)
        """
        self._secret_service = secret_service
        self._executor = executor or secret_service.executor

    def rotate(
        self,
        pattern: str | None = "",
        *,
        progress: Optional[Callable[[str], None]] = None,
        cancel_event: threading.Event | None = None
    ) -> RotationResult:
        """Rotate the secrets whose path matches ``pattern``.

        Args:
            pattern: Comma-separated globs; empty means every secret
            progress: Called with each path before it is processed
            cancel_event: When set, secrets not yet started are skipped

        Returns:
            RotationResult listing rotated and skipped paths

        Raises:
            CompositeError: If any secret failed; every failed path is listed
            StoreError: If the secrets cannot be listed
        """
        paths = [stored.path for stored in self._secret_service.list(pattern)]

        logger.info("Secret rotation started", extra={
            "pattern": pattern or "*",
            "selected": len(paths),
            "event": "rotation_started"
        })

        outcome = self._executor.run(
            paths,
            lambda path: rotate_secret(path, self._secret_service),
            on_item=progress,
            cancel_event=cancel_event
        )

        result = RotationResult(
            rotated=list(outcome.results),
            failures=outcome.failures,
            skipped=outcome.skipped,
            cancelled=outcome.cancelled,
        )

        logger.info("Secret rotation finished", extra={
            "rotated": len(result.rotated),
            "failed": len(result.failures),
            "skipped": len(result.skipped),
            "event": "rotation_completed"
        })

        if result.failures:
            raise CompositeError(
                "rotation",
                result.failures,
                succeeded=result.rotated,
                skipped=result.skipped,
            )
        return result

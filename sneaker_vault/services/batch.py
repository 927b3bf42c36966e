"""Bounded worker pool shared by batch operations."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from sneaker_vault.constants import Constants
from sneaker_vault.exceptions import ValidationError

logger = logging.getLogger(__name__)

_SKIPPED = object()


@dataclass
class BatchOutcome:
    """Per-item results of one batch run.

    ``results`` preserves the input order of the items that succeeded.
    """

    results: dict[str, Any] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def complete(self) -> bool:
        """True when every item succeeded."""
        return not self.failures and not self.skipped


class BatchExecutor:
    """Runs one callable per item on a bounded thread pool.

    Every item runs to completion or failure independently; one failing item
    never stops the others. Setting ``cancel_event`` stops items that have not
    started yet; they are reported as skipped.
    """

    def __init__(self, max_workers: int | None = None):
        """Initialize the batch executor.

        Args:
            max_workers: Maximum concurrent items (default: 10)

        Raises:
            ValidationError: If max_workers is out of range
        """
        if max_workers is None:
            max_workers = Constants.DEFAULT_MAX_WORKERS()
        if max_workers < 1 or max_workers > Constants.MAX_WORKERS_LIMIT():
            raise ValidationError(
                f"max_workers must be between 1 and {Constants.MAX_WORKERS_LIMIT()}"
            )
        self._max_workers = max_workers

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def run(
        self,
        items: Sequence[str],
        operation: Callable[[str], Any],
        *,
        on_item: Optional[Callable[[str], None]] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> BatchOutcome:
        """Apply ``operation`` to every item.

        Args:
            items: Item identifiers (paths or keys), processed concurrently
            operation: Callable invoked once per item; its return value is kept
            on_item: Observer called on the worker thread before each item starts
            cancel_event: When set, items not yet started are skipped

        Returns:
            BatchOutcome with results in input order, failures and skipped items
        """
        def run_one(item: str) -> Any:
            if cancel_event is not None and cancel_event.is_set():
                return _SKIPPED
            if on_item is not None:
                on_item(item)
            return operation(item)

        outcome = BatchOutcome()
        if not items:
            return outcome

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(items))) as executor:
            futures = [executor.submit(run_one, item) for item in items]

        # Collected in submission order so results keep the caller's order
        for item, future in zip(items, futures):
            error = future.exception()
            if error is not None:
                outcome.failures[item] = error
                continue
            value = future.result()
            if value is _SKIPPED:
                outcome.skipped.append(item)
            else:
                outcome.results[item] = value

        outcome.cancelled = cancel_event is not None and cancel_event.is_set()

        logger.debug("Batch finished", extra={
            "items": len(items),
            "failed": len(outcome.failures),
            "skipped": len(outcome.skipped),
            "event": "batch_finished"
        })
        return outcome

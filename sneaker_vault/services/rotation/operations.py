"""Stateless rotation operations for re-encrypting stored secrets."""

import logging

from sneaker_vault.services.secret_service import SecretStoreService

logger = logging.getLogger(__name__)


def rotate_secret(path: str, secret_service: SecretStoreService) -> None:
    """Re-encrypt one stored secret under a fresh data key.

    Fetch, reseal, then replace. The stored object is only touched by the
    final write, so any earlier failure leaves it as it was, and a failed
    write leaves the previous object authoritative.

    Args:
        path: Secret path to rotate
        secret_service: Secret service holding the secret

    Raises:
        Whatever the failing step raised, unchanged, so callers see the real kind
    """
    stage = "fetch"
    try:
        plaintext = secret_service.get(path)

        stage = "reseal"
        unit = secret_service.seal(plaintext)

        stage = "replace"
        secret_service.write_unit(path, unit)
    except Exception as e:
        logger.warning(f"Rotation of {path} failed during {stage}", extra={
            "path": path,
            "stage": stage,
            "error": type(e).__name__,
            "event": "secret_rotation_failed"
        })
        raise

    logger.debug(f"Rotated {path}", extra={
        "path": path,
        "event": "secret_rotated"
    })

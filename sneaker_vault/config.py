"""Configuration management for the Sneaker Vault secret store."""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional
from urllib.parse import urlparse

from sneaker_vault.constants import Constants
from sneaker_vault.exceptions import ConfigurationError, ValidationError
from sneaker_vault.validation_utils import validate_encryption_context

ENV_REGION = "SNEAKER_REGION"
ENV_KEY_ID = "SNEAKER_KEY_ID"
ENV_STORAGE_PATH = "SNEAKER_S3_PATH"
ENV_CONTEXT = "SNEAKER_ENC_CONTEXT"
ENV_MASTER_KEY = "SNEAKER_MASTER_KEY"
ENV_MAX_WORKERS = "SNEAKER_MAX_WORKERS"

_SUPPORTED_SCHEMES = ("s3", "file")


def parse_context(value: str | None) -> Optional[dict[str, str]]:
    """Parse a ``k1=v1,k2=v2`` encryption context.

    Args:
        value: Context string; empty or None means no context

    Returns:
        Context mapping, or None for an empty string

    Raises:
        ValidationError: If a pair is not of the form key=value
    """
    if not value:
        return None

    context = {}
    for pair in value.split(","):
        key, sep, val = pair.partition("=")
        if not sep or not key.strip():
            raise ValidationError(f"Unable to parse context: {pair!r}")
        context[key.strip()] = val.strip()
    return context


@dataclass
class SneakerConfig:
    """Validated configuration for a SecretManager."""

    # Storage location: s3://bucket/prefix or file:///path/to/dir
    storage_url: str
    region: Optional[str] = None

    # Key service: a KMS key id, or a base64 master key for local mode
    key_id: Optional[str] = None
    master_key: Optional[str] = field(default=None, repr=False)

    context: dict[str, str] = field(default_factory=dict)
    max_workers: int = Constants.DEFAULT_MAX_WORKERS()

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.storage_url:
            raise ConfigurationError(f"Missing storage location ({ENV_STORAGE_PATH})")

        parsed = urlparse(self.storage_url)
        if parsed.scheme not in _SUPPORTED_SCHEMES:
            raise ConfigurationError(
                f"Bad {ENV_STORAGE_PATH}: scheme must be one of {', '.join(_SUPPORTED_SCHEMES)}"
            )
        if parsed.scheme == "s3" and not parsed.netloc:
            raise ConfigurationError(f"Bad {ENV_STORAGE_PATH}: missing bucket name")
        if parsed.scheme == "file" and not parsed.path:
            raise ConfigurationError(f"Bad {ENV_STORAGE_PATH}: missing directory")

        if not self.key_id and not self.master_key:
            raise ConfigurationError(f"Either {ENV_KEY_ID} or {ENV_MASTER_KEY} is required")
        if self.key_id and self.master_key:
            raise ConfigurationError(f"Cannot specify both {ENV_KEY_ID} and {ENV_MASTER_KEY}")

        if (parsed.scheme == "s3" or self.key_id) and not self.region:
            raise ConfigurationError(f"Missing {ENV_REGION}")

        try:
            validate_encryption_context(self.context)
        except ValidationError as e:
            raise ConfigurationError(f"Bad {ENV_CONTEXT}: {e}") from e
        self.context = dict(self.context or {})

        if self.max_workers < 1 or self.max_workers > Constants.MAX_WORKERS_LIMIT():
            raise ConfigurationError(
                f"max_workers must be between 1 and {Constants.MAX_WORKERS_LIMIT()}"
            )

    @property
    def storage_scheme(self) -> str:
        """``"s3"`` or ``"file"``."""
        return urlparse(self.storage_url).scheme

    @property
    def bucket(self) -> str:
        """S3 bucket name (empty for file storage)."""
        parsed = urlparse(self.storage_url)
        return parsed.netloc if parsed.scheme == "s3" else ""

    @property
    def prefix(self) -> str:
        """Object-key prefix inside the bucket (empty for file storage)."""
        parsed = urlparse(self.storage_url)
        return parsed.path.strip("/") if parsed.scheme == "s3" else ""

    @property
    def root_dir(self) -> str:
        """Local directory for file storage (empty for S3)."""
        parsed = urlparse(self.storage_url)
        return parsed.path if parsed.scheme == "file" else ""

    @property
    def uses_kms(self) -> bool:
        return bool(self.key_id)

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> "SneakerConfig":
        """Create SneakerConfig from environment variables.

        Args:
            environ: Mapping to read (default: os.environ)

        Raises:
            ConfigurationError: If required variables are missing or invalid
        """
        if environ is None:
            environ = os.environ

        try:
            context = parse_context(environ.get(ENV_CONTEXT, ""))
        except ValidationError as e:
            raise ConfigurationError(f"Bad {ENV_CONTEXT}: {e}") from e

        raw_workers = environ.get(ENV_MAX_WORKERS, "")
        try:
            max_workers = int(raw_workers) if raw_workers else Constants.DEFAULT_MAX_WORKERS()
        except ValueError as e:
            raise ConfigurationError(f"Bad {ENV_MAX_WORKERS}: {raw_workers!r}") from e

        return cls(
            storage_url=environ.get(ENV_STORAGE_PATH, ""),
            region=environ.get(ENV_REGION) or None,
            key_id=environ.get(ENV_KEY_ID) or None,
            master_key=environ.get(ENV_MASTER_KEY) or None,
            context=context or {},
            max_workers=max_workers,
        )

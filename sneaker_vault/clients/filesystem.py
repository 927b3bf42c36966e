"""Object store over a local directory, with atomic writes."""

import hashlib
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from sneaker_vault.clients.base import ObjectStore
from sneaker_vault.exceptions import NotFoundError, StoreError, ValidationError
from sneaker_vault.models import StoredObject

logger = logging.getLogger(__name__)

_TEMP_SUFFIX = ".sneaker-temp"


def write_bytes_atomic(file_path: Path, data: bytes, *, secure: bool = True) -> None:
    """Write bytes atomically using a temporary file.

    Args:
        file_path: Target file
        data: Bytes to write
        secure: Restrict the file to owner read/write (600)

    Raises:
        OSError: If the write fails; the target is left untouched
    """
    temp_file = file_path.with_name(file_path.name + _TEMP_SUFFIX)

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with temp_file.open("wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        if secure:
            _set_secure_permissions(temp_file)

        # Replace is atomic; the old file stays intact until it succeeds
        os.replace(temp_file, file_path)

    except OSError:
        if temp_file.exists():
            temp_file.unlink()
        raise


def _set_secure_permissions(file_path: Path) -> None:
    """Set owner read/write only permissions (600)."""
    try:
        os.chmod(file_path, 0o600)
    except OSError:
        # Not every filesystem supports POSIX modes
        logger.debug("Could not restrict permissions", extra={
            "file": str(file_path),
            "event": "permissions_skipped"
        })


class FileSystemObjectStore(ObjectStore):
    """Stores each object as one file under a root directory."""

    def __init__(self, root_dir: str) -> None:
        """Initialize the filesystem object store.

        Args:
            root_dir: Directory holding the objects; created if missing
        """
        self._root_dir = Path(root_dir)
        self._ensure_root_directory()

    def _ensure_root_directory(self) -> None:
        try:
            self._root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Failed to create store directory {self._root_dir}: {e}") from e

    def _object_path(self, key: str) -> Path:
        """Resolve an object key to a file path inside the root directory.

        Raises:
            ValidationError: If the key would escape the root directory
        """
        if not key or key.startswith("/") or any(
            part in ("", ".", "..") for part in key.split("/")
        ):
            raise ValidationError(f"Invalid object key: {key!r}")
        if key.endswith(_TEMP_SUFFIX):
            raise ValidationError(f"Object key cannot end with {_TEMP_SUFFIX}")
        return self._root_dir.joinpath(*key.split("/"))

    def list(self, prefix: str = "") -> list[StoredObject]:
        objects = []
        try:
            for file_path in sorted(self._root_dir.rglob("*")):
                if not file_path.is_file() or file_path.name.endswith(_TEMP_SUFFIX):
                    continue
                key = file_path.relative_to(self._root_dir).as_posix()
                if not key.startswith(prefix):
                    continue
                stat = file_path.stat()
                objects.append(StoredObject(
                    path=key,
                    last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    size=stat.st_size,
                    etag=hashlib.md5(file_path.read_bytes()).hexdigest(),
                ))
        except OSError as e:
            raise StoreError(f"Failed to list {self._root_dir}: {e}") from e
        return objects

    def get(self, key: str) -> bytes:
        file_path = self._object_path(key)
        try:
            return file_path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"No object at {key}") from e
        except OSError as e:
            raise StoreError(f"Failed to read object {key}: {e}") from e

    def put(self, key: str, data: bytes) -> None:
        try:
            write_bytes_atomic(self._object_path(key), data)
        except OSError as e:
            raise StoreError(f"Failed to write object {key}: {e}") from e

    def delete(self, key: str) -> None:
        file_path = self._object_path(key)
        try:
            file_path.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(f"No object at {key}") from e
        except OSError as e:
            raise StoreError(f"Failed to delete object {key}: {e}") from e

    @property
    def root_directory(self) -> Path:
        """Get the root directory path."""
        return self._root_dir

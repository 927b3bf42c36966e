"""Library-wide constants.

These constants centralize the wire-format sizes and tunable defaults used
across modules so the codec, the cipher and the services agree on them.
"""


class Constants:

    # Cipher parameters (AES-256-GCM)
    _KEY_SIZE: int = 256
    _KEY_SIZE_BYTES: int = 32
    _NONCE_SIZE: int = 12
    _TAG_SIZE: int = 16

    # Archive format
    _ARCHIVE_MAGIC: bytes = b"SNKA"
    _ARCHIVE_VERSION: int = 1
    _SUPPORTED_ARCHIVE_VERSIONS: tuple[int, ...] = (1,)

    # Naming policy
    _MAX_PATH_LENGTH: int = 1024
    _MAX_CONTEXT_ENTRIES: int = 64

    # Batch policy
    _DEFAULT_MAX_WORKERS: int = 10
    _MAX_WORKERS_LIMIT: int = 64

    @classmethod
    def KEY_SIZE(cls) -> int:
        return cls._KEY_SIZE

    # Key size in bytes
    @classmethod
    def KEY_SIZE_BYTES(cls) -> int:
        return cls._KEY_SIZE_BYTES

    # 96-bit GCM nonce
    @classmethod
    def NONCE_SIZE(cls) -> int:
        return cls._NONCE_SIZE

    @classmethod
    def TAG_SIZE(cls) -> int:
        return cls._TAG_SIZE

    @classmethod
    def ARCHIVE_MAGIC(cls) -> bytes:
        return cls._ARCHIVE_MAGIC

    @classmethod
    def ARCHIVE_VERSION(cls) -> int:
        return cls._ARCHIVE_VERSION

    @classmethod
    def SUPPORTED_ARCHIVE_VERSIONS(cls) -> tuple[int, ...]:
        return cls._SUPPORTED_ARCHIVE_VERSIONS

    @classmethod
    def MAX_PATH_LENGTH(cls) -> int:
        return cls._MAX_PATH_LENGTH

    @classmethod
    def MAX_CONTEXT_ENTRIES(cls) -> int:
        return cls._MAX_CONTEXT_ENTRIES

    # Worker pool
    @classmethod
    def DEFAULT_MAX_WORKERS(cls) -> int:
        return cls._DEFAULT_MAX_WORKERS

    @classmethod
    def MAX_WORKERS_LIMIT(cls) -> int:
        return cls._MAX_WORKERS_LIMIT

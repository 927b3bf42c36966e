"""AWS implementations of the key service (KMS) and object store (S3)."""

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sneaker_vault.clients.base import KeyService, ObjectStore
from sneaker_vault.exceptions import (
    ConfigurationError,
    ContextMismatchError,
    KeyServiceError,
    NotFoundError,
    StoreError,
)
from sneaker_vault.models import StoredObject

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class KmsKeyService(KeyService):
    """Key service backed by AWS KMS ``GenerateDataKey`` / ``Decrypt``."""

    def __init__(
        self,
        key_id: str,
        *,
        region: str | None = None,
        client: Any = None
    ) -> None:
        """Initialize the KMS key service.

        Args:
            key_id: KMS key id, ARN or alias used for new data keys
            region: AWS region (ignored when ``client`` is given)
            client: Pre-built boto3 KMS client
        """
        if not key_id:
            raise ConfigurationError("A KMS key id is required")
        self._key_id = key_id
        self._client = client or boto3.client("kms", region_name=region)

    @property
    def key_id(self) -> str:
        """KMS key used for new data keys."""
        return self._key_id

    def generate_data_key(
        self,
        context: Optional[dict[str, str]] = None
    ) -> tuple[bytes, bytes]:
        request: dict[str, Any] = {"KeyId": self._key_id, "KeySpec": "AES_256"}
        if context:
            request["EncryptionContext"] = dict(context)

        try:
            response = self._client.generate_data_key(**request)
        except (ClientError, BotoCoreError) as e:
            raise KeyServiceError(f"KMS GenerateDataKey failed: {e}") from e

        return response["Plaintext"], response["CiphertextBlob"]

    def decrypt_data_key(
        self,
        wrapped_key: bytes,
        context: Optional[dict[str, str]] = None
    ) -> bytes:
        request: dict[str, Any] = {"CiphertextBlob": wrapped_key}
        if context:
            request["EncryptionContext"] = dict(context)

        try:
            response = self._client.decrypt(**request)
        except ClientError as e:
            # KMS reports a wrong context and a damaged blob with the same code
            if _error_code(e) == "InvalidCiphertextException":
                raise ContextMismatchError(
                    "KMS rejected the data key: encryption context does not match "
                    "or the wrapped key is invalid"
                ) from e
            raise KeyServiceError(f"KMS Decrypt failed: {e}") from e
        except BotoCoreError as e:
            raise KeyServiceError(f"KMS Decrypt failed: {e}") from e

        return response["Plaintext"]


class S3ObjectStore(ObjectStore):
    """Object store backed by one S3 bucket."""

    def __init__(
        self,
        bucket: str,
        *,
        region: str | None = None,
        client: Any = None
    ) -> None:
        """Initialize the S3 object store.

        Args:
            bucket: Bucket name
            region: AWS region (ignored when ``client`` is given)
            client: Pre-built boto3 S3 client
        """
        if not bucket:
            raise ConfigurationError("An S3 bucket is required")
        self._bucket = bucket
        self._client = client or boto3.client("s3", region_name=region)

    @property
    def bucket(self) -> str:
        """Bucket name."""
        return self._bucket

    def list(self, prefix: str = "") -> list[StoredObject]:
        objects = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    objects.append(StoredObject(
                        path=item["Key"],
                        last_modified=item["LastModified"],
                        size=item["Size"],
                        etag=item.get("ETag", "").strip('"'),
                    ))
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to list s3://{self._bucket}/{prefix}: {e}") from e

        logger.debug("Listed objects", extra={
            "bucket": self._bucket,
            "prefix": prefix,
            "count": len(objects),
            "event": "s3_list"
        })
        return objects

    def get(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise NotFoundError(f"No object at s3://{self._bucket}/{key}") from e
            raise StoreError(f"Failed to read s3://{self._bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to read s3://{self._bucket}/{key}: {e}") from e

    def put(self, key: str, data: bytes) -> None:
        try:
            self._client.put_object(Bucket=self._bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to write s3://{self._bucket}/{key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            # S3 deletes are silent for missing keys
            self._client.head_object(Bucket=self._bucket, Key=key)
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise NotFoundError(f"No object at s3://{self._bucket}/{key}") from e
            raise StoreError(f"Failed to delete s3://{self._bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to delete s3://{self._bucket}/{key}: {e}") from e

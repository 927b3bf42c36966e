"""Tests for the KMS key service and S3 object store using botocore stubs."""

import io
from datetime import datetime, timezone

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from sneaker_vault.clients.aws import KmsKeyService, S3ObjectStore
from sneaker_vault.exceptions import (
    ConfigurationError,
    ContextMismatchError,
    KeyServiceError,
    NotFoundError,
    StoreError,
)

KEY_ID = "alias/sneaker-test"
BUCKET = "sneaker-test-bucket"


def _client(service: str):
    return boto3.client(
        service,
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


class TestKmsKeyService:
    """Test KmsKeyService request mapping and error translation."""

    @pytest.fixture
    def kms(self):
        client = _client("kms")
        with Stubber(client) as stubber:
            yield client, stubber
            stubber.assert_no_pending_responses()

    def test_generate_data_key_with_context(self, kms):
        """Test GenerateDataKey carries the encryption context."""
        client, stubber = kms
        stubber.add_response(
            "generate_data_key",
            {"CiphertextBlob": b"wrapped", "Plaintext": b"k" * 32, "KeyId": KEY_ID},
            {"KeyId": KEY_ID, "KeySpec": "AES_256", "EncryptionContext": {"env": "prod"}},
        )

        plaintext, wrapped = KmsKeyService(KEY_ID, client=client).generate_data_key({"env": "prod"})

        assert plaintext == b"k" * 32
        assert wrapped == b"wrapped"

    def test_generate_data_key_without_context(self, kms):
        """Test that an empty context is omitted from the request."""
        client, stubber = kms
        stubber.add_response(
            "generate_data_key",
            {"CiphertextBlob": b"wrapped", "Plaintext": b"k" * 32, "KeyId": KEY_ID},
            {"KeyId": KEY_ID, "KeySpec": "AES_256"},
        )

        KmsKeyService(KEY_ID, client=client).generate_data_key({})

    def test_generate_data_key_failure(self, kms):
        """Test service failures become KeyServiceError."""
        client, stubber = kms
        stubber.add_client_error("generate_data_key", service_error_code="NotFoundException")

        with pytest.raises(KeyServiceError):
            KmsKeyService(KEY_ID, client=client).generate_data_key()

    def test_decrypt_data_key(self, kms):
        """Test Decrypt passes the blob and context."""
        client, stubber = kms
        stubber.add_response(
            "decrypt",
            {"Plaintext": b"k" * 32, "KeyId": KEY_ID},
            {"CiphertextBlob": b"wrapped", "EncryptionContext": {"env": "prod"}},
        )

        assert KmsKeyService(KEY_ID, client=client).decrypt_data_key(b"wrapped", {"env": "prod"}) == b"k" * 32

    def test_decrypt_invalid_ciphertext(self, kms):
        """Test InvalidCiphertextException maps to a context mismatch."""
        client, stubber = kms
        stubber.add_client_error(
            "decrypt",
            service_error_code="InvalidCiphertextException",
            http_status_code=400,
        )

        with pytest.raises(ContextMismatchError):
            KmsKeyService(KEY_ID, client=client).decrypt_data_key(b"wrapped", {"env": "staging"})

    def test_decrypt_other_failure(self, kms):
        """Test other Decrypt failures become KeyServiceError."""
        client, stubber = kms
        stubber.add_client_error("decrypt", service_error_code="AccessDeniedException", http_status_code=400)

        with pytest.raises(KeyServiceError):
            KmsKeyService(KEY_ID, client=client).decrypt_data_key(b"wrapped")

    def test_requires_key_id(self):
        """Test that a key id is required."""
        with pytest.raises(ConfigurationError):
            KmsKeyService("", client=object())


class TestS3ObjectStore:
    """Test S3ObjectStore request mapping and error translation."""

    @pytest.fixture
    def s3(self):
        client = _client("s3")
        with Stubber(client) as stubber:
            yield client, stubber
            stubber.assert_no_pending_responses()

    def test_list(self, s3):
        """Test listing objects under a prefix."""
        client, stubber = s3
        modified = datetime(2024, 1, 1, tzinfo=timezone.utc)
        stubber.add_response(
            "list_objects_v2",
            {
                "IsTruncated": False,
                "Contents": [
                    {"Key": "team/a", "LastModified": modified, "Size": 10, "ETag": '"abc"'},
                    {"Key": "team/b", "LastModified": modified, "Size": 20, "ETag": '"def"'},
                ],
            },
            {"Bucket": BUCKET, "Prefix": "team/"},
        )

        objects = S3ObjectStore(BUCKET, client=client).list("team/")

        assert [o.path for o in objects] == ["team/a", "team/b"]
        assert objects[0].etag == "abc"
        assert objects[1].size == 20

    def test_list_empty(self, s3):
        """Test listing an empty prefix."""
        client, stubber = s3
        stubber.add_response("list_objects_v2", {"IsTruncated": False}, {"Bucket": BUCKET, "Prefix": ""})

        assert S3ObjectStore(BUCKET, client=client).list() == []

    def test_get(self, s3):
        """Test reading an object body."""
        client, stubber = s3
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(b"sealed"), len(b"sealed"))},
            {"Bucket": BUCKET, "Key": "team/a"},
        )

        assert S3ObjectStore(BUCKET, client=client).get("team/a") == b"sealed"

    def test_get_missing(self, s3):
        """Test NoSuchKey maps to NotFoundError."""
        client, stubber = s3
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)

        with pytest.raises(NotFoundError):
            S3ObjectStore(BUCKET, client=client).get("team/missing")

    def test_get_failure(self, s3):
        """Test other failures map to StoreError."""
        client, stubber = s3
        stubber.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)

        with pytest.raises(StoreError):
            S3ObjectStore(BUCKET, client=client).get("team/a")

    def test_put(self, s3):
        """Test writing an object."""
        client, stubber = s3
        stubber.add_response("put_object", {}, {"Bucket": BUCKET, "Key": "team/a", "Body": b"sealed"})

        S3ObjectStore(BUCKET, client=client).put("team/a", b"sealed")

    def test_delete(self, s3):
        """Test deleting an existing object."""
        client, stubber = s3
        stubber.add_response("head_object", {}, {"Bucket": BUCKET, "Key": "team/a"})
        stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "team/a"})

        S3ObjectStore(BUCKET, client=client).delete("team/a")

    def test_delete_missing(self, s3):
        """Test deleting a missing object."""
        client, stubber = s3
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

        with pytest.raises(NotFoundError):
            S3ObjectStore(BUCKET, client=client).delete("team/missing")

    def test_requires_bucket(self):
        """Test that a bucket is required."""
        with pytest.raises(ConfigurationError):
            S3ObjectStore("", client=object())

"""Tests for secret rotation."""

import tempfile
import threading

import pytest

from sneaker_vault.envelope import EnvelopeCipher
from sneaker_vault.exceptions import CompositeError, NotFoundError, StoreError
from sneaker_vault.models import CipherUnit
from sneaker_vault.services.batch import BatchExecutor
from sneaker_vault.services.rotation import RotationManager, rotate_secret
from sneaker_vault.services.secret_service import SecretStoreService
from tests.test_utility import FailingPutObjectStore, TestDataHelper

CONTEXT = {"env": "prod"}


class TestRotation:
    """Test rotate_secret and RotationManager."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for testing."""
        with tempfile.TemporaryDirectory() as temp_dir:
            yield temp_dir

    @pytest.fixture
    def store(self, temp_dir):
        return FailingPutObjectStore(temp_dir)

    @pytest.fixture
    def service(self, store):
        cipher = EnvelopeCipher(TestDataHelper.create_key_service())
        service = SecretStoreService(
            store,
            cipher,
            context=CONTEXT,
            executor=BatchExecutor(max_workers=4)
        )
        for path, value in TestDataHelper.create_secrets().items():
            service.put(path, value)
        return service

    @pytest.fixture
    def manager(self, service):
        return RotationManager(service)

    def _wrapped_keys(self, store) -> dict[str, bytes]:
        return {
            stored.path: CipherUnit.from_bytes(store.get(stored.path)).wrapped_key
            for stored in store.list()
        }

    def test_rotate_secret(self, service, store):
        """Test rotating one secret changes its key but not its value."""
        before = store.get("db/password")

        rotate_secret("db/password", service)

        after = store.get("db/password")
        assert after != before
        assert CipherUnit.from_bytes(after).wrapped_key != CipherUnit.from_bytes(before).wrapped_key
        assert service.get("db/password") == b"hunter2"

    def test_rotate_secret_missing(self, service):
        """Test that the original error kind is preserved."""
        with pytest.raises(NotFoundError):
            rotate_secret("missing", service)

    def test_rotate_all(self, manager, service, store):
        """Test rotating every secret."""
        before = self._wrapped_keys(store)

        result = manager.rotate()

        after = self._wrapped_keys(store)
        assert sorted(result.rotated) == sorted(TestDataHelper.create_secrets())
        assert result.succeeded
        assert all(after[path] != before[path] for path in before)
        for path, value in TestDataHelper.create_secrets().items():
            assert service.get(path) == value

    def test_rotate_pattern(self, manager, store):
        """Test that only matching secrets are rotated."""
        before = self._wrapped_keys(store)

        result = manager.rotate("db/*")

        after = self._wrapped_keys(store)
        assert result.rotated == ["db/password", "db/username"]
        assert after["api/token"] == before["api/token"]
        assert after["db/password"] != before["db/password"]

    def test_rotate_nothing_matches(self, manager):
        """Test a pattern that selects no secrets."""
        result = manager.rotate("nomatch/*")

        assert result.rotated == []
        assert result.succeeded

    def test_failed_write_leaves_object_untouched(self, manager, store):
        """Test that a failed replace keeps the old object and others still rotate."""
        originals = {stored.path: store.get(stored.path) for stored in store.list()}
        store.fail_puts.add("db/username")

        with pytest.raises(CompositeError) as exc_info:
            manager.rotate()

        error = exc_info.value
        assert list(error.failures) == ["db/username"]
        assert isinstance(error.failures["db/username"], StoreError)
        assert sorted(error.succeeded) == ["api/token", "db/password", "empty"]

        assert store.get("db/username") == originals["db/username"]
        for path in ("api/token", "db/password", "empty"):
            assert store.get(path) != originals[path]

    def test_progress_callback(self, manager):
        """Test that progress reports every selected path."""
        seen = []
        lock = threading.Lock()

        def progress(path):
            with lock:
                seen.append(path)

        manager.rotate("db/*", progress=progress)

        assert sorted(seen) == ["db/password", "db/username"]

    def test_cancellation(self, service):
        """Test that cancelling skips secrets not yet started."""
        cancel = threading.Event()
        manager = RotationManager(service, BatchExecutor(max_workers=1))

        result = manager.rotate(progress=lambda path: cancel.set(), cancel_event=cancel)

        assert len(result.rotated) == 1
        assert len(result.skipped) == 3
        assert result.cancelled
        assert not result.succeeded

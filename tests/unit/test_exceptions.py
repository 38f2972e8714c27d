"""Tests for custom exception hierarchy."""

import pytest

from fsblobstore.exceptions import (
    BlobStoreError,
    ConfigurationError,
    ContainerNotFoundError,
    ContentLengthMismatchError,
    InvalidNameError,
    StorageIOError,
)


class TestExceptionHierarchy:
    """Test suite for custom exception hierarchy."""

    def test_base_exception_is_blob_store_error(self):
        """Test that base exception is BlobStoreError."""
        error = BlobStoreError("Test error")
        assert isinstance(error, Exception)
        assert str(error) == "Test error"

    def test_invalid_name_error_is_also_value_error(self):
        """Test that InvalidNameError inherits from base and ValueError."""
        error = InvalidNameError("Container name 'a/b' must not contain '/'")
        assert isinstance(error, BlobStoreError)
        assert isinstance(error, ValueError)
        assert str(error) == "Container name 'a/b' must not contain '/'"

    def test_storage_io_error_stores_path_and_operation(self):
        """Test that StorageIOError keeps the failing path and operation."""
        error = StorageIOError("put_blob failed", path="/data/c/k", operation="put_blob")
        assert isinstance(error, BlobStoreError)
        assert error.path == "/data/c/k"
        assert error.operation == "put_blob"

    def test_storage_io_error_defaults(self):
        """Test that path and operation are optional."""
        error = StorageIOError("disk full")
        assert error.path is None
        assert error.operation is None

    def test_content_length_mismatch_is_storage_io_error(self):
        """Test that ContentLengthMismatchError carries both lengths."""
        error = ContentLengthMismatchError(
            "Content length mismatch", expected=512, actual=1024, path="/data/c/k"
        )
        assert isinstance(error, StorageIOError)
        assert error.expected == 512
        assert error.actual == 1024
        assert error.path == "/data/c/k"

    def test_container_not_found_error_inherits_from_base(self):
        """Test that ContainerNotFoundError inherits from base."""
        error = ContainerNotFoundError("Container not found: photos", container="photos")
        assert isinstance(error, BlobStoreError)
        assert error.container == "photos"

    def test_configuration_error_inherits_from_base(self):
        """Test that ConfigurationError inherits from base."""
        error = ConfigurationError("Invalid config")
        assert isinstance(error, BlobStoreError)
        assert str(error) == "Invalid config"

    def test_exceptions_can_store_context(self):
        """Test that exceptions can store additional context."""
        error = InvalidNameError("Bad key", key="/test.jpg", container="photos")
        assert error.key == "/test.jpg"
        assert error.container == "photos"

    def test_can_catch_all_errors_with_base_exception(self):
        """Test that base exception catches all custom errors."""
        errors = [
            InvalidNameError("name"),
            StorageIOError("io"),
            ContentLengthMismatchError("length", expected=1, actual=2),
            ContainerNotFoundError("missing"),
            ConfigurationError("config"),
        ]

        for error in errors:
            try:
                raise error
            except BlobStoreError as e:
                assert isinstance(e, BlobStoreError)
            else:
                pytest.fail(f"Failed to catch {type(error).__name__}")

"""Unit tests for the blob store domain model."""

import io
import tempfile
from pathlib import Path

import pytest

from fsblobstore.domain import (
    BlobBuilder,
    BlobKey,
    KeyKind,
    ListContainerOptions,
    ListResult,
    Payload,
    StorageMetadata,
    StorageType,
)


@pytest.mark.unit
class TestBlobKey:
    """Test suite for key parsing."""

    def test_file_key(self):
        """Test that a key without trailing separator is a file key."""
        key = BlobKey.parse("photos/cat.jpg")

        assert key.kind is KeyKind.FILE
        assert key.path == "photos/cat.jpg"
        assert key.parts == ["photos", "cat.jpg"]
        assert str(key) == "photos/cat.jpg"

    def test_directory_key(self):
        """Test that a trailing separator makes a directory key."""
        key = BlobKey.parse("photos/2026/")

        assert key.is_directory
        assert key.path == "photos/2026"
        assert key.name == "photos/2026/"

    def test_same_path_different_kind(self):
        """Test that 'k' and 'k/' are different keys over one path."""
        file_key = BlobKey.parse("k")
        dir_key = BlobKey.parse("k/")

        assert file_key != dir_key
        assert file_key.parts == dir_key.parts


@pytest.mark.unit
class TestPayload:
    """Test suite for payload sources."""

    def test_bytes_payload(self):
        """Test that byte payloads have a known length and can be read twice."""
        payload = Payload(b"hello")

        assert payload.content_length == 5
        assert payload.read() == b"hello"
        assert payload.read() == b"hello"

    def test_str_payload_is_utf8(self):
        """Test that text is stored as UTF-8."""
        payload = Payload("héllo")

        assert payload.read() == "héllo".encode("utf-8")

    def test_stream_payload(self):
        """Test that a stream payload has no known length."""
        payload = Payload(io.BytesIO(b"stream"))

        assert payload.content_length is None
        assert payload.read() == b"stream"

    def test_file_payload(self):
        """Test that a file payload takes its length from the file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "data.bin"
            source.write_bytes(b"0123456789")
            payload = Payload(source)

            assert payload.content_length == 10
            assert payload.read() == b"0123456789"

    def test_missing_file_payload(self):
        """Test that a missing file has no length and fails to open."""
        payload = Payload(Path("/nonexistent/data.bin"))

        assert payload.content_length is None
        with pytest.raises(FileNotFoundError):
            payload.open()


@pytest.mark.unit
class TestBlobBuilder:
    """Test suite for the fluent blob builder."""

    def test_build_full_blob(self):
        """Test that every builder field reaches the metadata."""
        blob = (
            BlobBuilder()
            .name("reports/2026.pdf")
            .payload(b"%PDF")
            .content_type("application/pdf")
            .user_metadata({"owner": "finance"})
            .build()
        )

        assert blob.name == "reports/2026.pdf"
        assert blob.metadata.content_type == "application/pdf"
        assert blob.metadata.content_length == 4
        assert blob.metadata.user_metadata == {"owner": "finance"}
        assert blob.payload.read() == b"%PDF"

    def test_explicit_content_length_wins(self):
        """Test that a declared length is kept even when it is wrong."""
        blob = BlobBuilder().name("k").payload(b"1234").content_length(2).build()

        assert blob.metadata.content_length == 2

    def test_name_is_required(self):
        """Test that building without a name fails."""
        with pytest.raises(ValueError):
            BlobBuilder().build()

    def test_user_metadata_is_copied(self):
        """Test that later changes to the caller's dict do not leak in."""
        metadata = {"a": "1"}
        blob = BlobBuilder().name("k").user_metadata(metadata).build()
        metadata["b"] = "2"

        assert blob.metadata.user_metadata == {"a": "1"}

    def test_set_payload(self):
        """Test replacing a blob's payload."""
        blob = BlobBuilder().name("k").build()
        blob.set_payload(b"new")

        assert blob.payload.read() == b"new"
        assert blob.key == BlobKey.parse("k")


@pytest.mark.unit
class TestListContainerOptions:
    """Test suite for listing options."""

    def test_non_recursive_uses_separator(self):
        """Test that non-recursive listings roll up at '/'."""
        assert ListContainerOptions().effective_delimiter() == "/"

    def test_recursive_has_no_delimiter(self):
        """Test that recursive listings are flat."""
        assert ListContainerOptions(recursive=True).effective_delimiter() is None

    def test_explicit_delimiter(self):
        """Test that an explicit delimiter is always used."""
        options = ListContainerOptions(delimiter="-", recursive=True)

        assert options.effective_delimiter() == "-"


@pytest.mark.unit
class TestListResult:
    """Test suite for listing pages."""

    def test_iterates_entries(self):
        """Test iteration and length over a page."""
        entries = [StorageMetadata("a", StorageType.BLOB), StorageMetadata("b/", StorageType.FOLDER)]
        result = ListResult(entries=entries, next_marker="b/")

        assert len(result) == 2
        assert [e.name for e in result] == ["a", "b/"]

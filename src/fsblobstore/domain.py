"""Domain model for the filesystem blob store."""

import io
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Union

SEPARATOR = "/"
DIRECTORY_CONTENT_TYPE = "application/x-directory"

PayloadSource = Union[bytes, bytearray, str, Path, IO[bytes]]


class KeyKind(Enum):
    """Whether a key names file content or an empty pseudo-folder."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class BlobKey:
    """A blob key split into its path and kind.

    ``"photos/cat.jpg"`` and ``"photos/cat.jpg/"`` share a path but are
    different keys: the first is a file blob, the second a directory blob.
    """

    path: str
    kind: KeyKind

    @classmethod
    def parse(cls, name: str) -> "BlobKey":
        if name.endswith(SEPARATOR):
            return cls(name.rstrip(SEPARATOR), KeyKind.DIRECTORY)
        return cls(name, KeyKind.FILE)

    @property
    def is_directory(self) -> bool:
        return self.kind is KeyKind.DIRECTORY

    @property
    def name(self) -> str:
        """The key as callers spell it, trailing separator included."""
        if self.is_directory:
            return self.path + SEPARATOR
        return self.path

    @property
    def parts(self) -> List[str]:
        return [part for part in self.path.split(SEPARATOR) if part]

    def __str__(self) -> str:
        return self.name


class ContainerAccess(Enum):
    """Container visibility, kept as a marker beside the container."""

    PRIVATE = "private"
    PUBLIC_READ = "public-read"


class StorageType(Enum):
    """Kind of entry returned by a container listing."""

    BLOB = "blob"
    FOLDER = "folder"
    RELATIVE_PATH = "relative_path"


@dataclass
class Location:
    """Geographic location of a container."""

    id: str
    description: Optional[str] = None


class Payload:
    """Blob content backed by bytes, a binary stream or a local file.

    Byte and file payloads can be opened any number of times. A stream
    payload is consumed by the first reader.
    """

    def __init__(self, source: PayloadSource) -> None:
        if isinstance(source, str):
            source = source.encode("utf-8")
        if isinstance(source, bytearray):
            source = bytes(source)
        self.source = source

    @property
    def content_length(self) -> Optional[int]:
        """Length when it is known without reading, else None."""
        if isinstance(self.source, bytes):
            return len(self.source)
        if isinstance(self.source, Path) and self.source.is_file():
            return self.source.stat().st_size
        return None

    def open(self) -> IO[bytes]:
        """Return a readable binary stream over the content.

        Raises:
            FileNotFoundError: If a file payload's file does not exist
        """
        if isinstance(self.source, bytes):
            return io.BytesIO(self.source)
        if isinstance(self.source, Path):
            return open(self.source, "rb")
        return self.source

    def read(self) -> bytes:
        with self.open() as stream:
            return stream.read()


@dataclass
class BlobMetadata:
    """Metadata for a blob; ``name`` is the key including any trailing separator."""

    name: str
    container: Optional[str] = None
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    content_md5: Optional[str] = None
    etag: Optional[str] = None
    user_metadata: Dict[str, str] = field(default_factory=dict)
    last_modified: Optional[datetime] = None
    creation_date: Optional[datetime] = None
    size: Optional[int] = None

    @property
    def key(self) -> BlobKey:
        return BlobKey.parse(self.name)


@dataclass
class Blob:
    """A blob handle: metadata plus an optional payload."""

    metadata: BlobMetadata
    payload: Optional[Payload] = None

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def key(self) -> BlobKey:
        return self.metadata.key

    def set_payload(self, source: PayloadSource) -> None:
        self.payload = source if isinstance(source, Payload) else Payload(source)


class BlobBuilder:
    """Fluent builder for Blob instances.

    Example:
        blob = (
            BlobBuilder()
            .name("reports/2026.pdf")
            .payload(Path("2026.pdf"))
            .content_type("application/pdf")
            .user_metadata({"owner": "finance"})
            .build()
        )
    """

    def __init__(self) -> None:
        self._name: Optional[str] = None
        self._payload: Optional[Payload] = None
        self._content_type: Optional[str] = None
        self._content_length: Optional[int] = None
        self._user_metadata: Dict[str, str] = {}

    def name(self, name: str) -> "BlobBuilder":
        self._name = name
        return self

    def payload(self, source: Union[Payload, PayloadSource]) -> "BlobBuilder":
        self._payload = source if isinstance(source, Payload) else Payload(source)
        return self

    def content_type(self, content_type: Optional[str]) -> "BlobBuilder":
        self._content_type = content_type
        return self

    def content_length(self, content_length: Optional[int]) -> "BlobBuilder":
        self._content_length = content_length
        return self

    def user_metadata(self, user_metadata: Dict[str, str]) -> "BlobBuilder":
        self._user_metadata = dict(user_metadata)
        return self

    def build(self) -> Blob:
        if self._name is None:
            raise ValueError("Blob name is required")
        content_length = self._content_length
        if content_length is None and self._payload is not None:
            content_length = self._payload.content_length
        metadata = BlobMetadata(
            name=self._name,
            content_type=self._content_type,
            content_length=content_length,
            user_metadata=dict(self._user_metadata),
        )
        return Blob(metadata=metadata, payload=self._payload)


@dataclass
class ContainerMetadata:
    """Metadata describing a container."""

    name: str
    creation_date: Optional[datetime] = None
    location: Optional[Location] = None
    access: ContainerAccess = ContainerAccess.PRIVATE


@dataclass
class StorageMetadata:
    """One entry of a container listing."""

    name: str
    type: StorageType
    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None


@dataclass
class ListContainerOptions:
    """Filters for listing, counting and clearing a container.

    Attributes:
        prefix: Only keys starting with this string
        delimiter: Roll keys up to the first delimiter after the prefix
        recursive: Descend into pseudo-folders; non-recursive listings use
            ``"/"`` as delimiter unless one is given
        max_results: Page size for ``list()``
        marker: Only keys sorting after this one
    """

    prefix: Optional[str] = None
    delimiter: Optional[str] = None
    recursive: bool = False
    max_results: Optional[int] = None
    marker: Optional[str] = None

    def effective_delimiter(self) -> Optional[str]:
        if self.delimiter:
            return self.delimiter
        return None if self.recursive else SEPARATOR


@dataclass
class ListResult:
    """A page of listing entries plus the marker for the next page."""

    entries: List[StorageMetadata]
    next_marker: Optional[str] = None

    def __iter__(self) -> Any:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

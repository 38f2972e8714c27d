"""Object-store semantics on top of a local filesystem.

A container is a directory under the base directory and a blob key is a
``/``-separated path inside it. Keys ending in ``/`` are directory blobs:
empty pseudo-folders stored as real directories. User metadata, content
types and ETags live in a sidecar store keyed by the blob's mapped path.
"""

import hashlib
import mimetypes
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .config_loader import StoreConfig
from .domain import (
    DIRECTORY_CONTENT_TYPE,
    SEPARATOR,
    Blob,
    BlobBuilder,
    BlobKey,
    BlobMetadata,
    ContainerAccess,
    ContainerMetadata,
    ListContainerOptions,
    ListResult,
    Location,
    StorageMetadata,
    StorageType,
)
from .exceptions import (
    BlobStoreError,
    ContainerNotFoundError,
    ContentLengthMismatchError,
    InvalidNameError,
    StorageIOError,
)
from .logging_config import get_logger
from .metadata_store import SidecarMetadataStore
from .validators import (
    BlobKeyValidator,
    ContainerNameValidator,
    FilesystemBlobKeyValidator,
    FilesystemContainerNameValidator,
)

logger = get_logger("storage_strategy")

CHUNK_SIZE = 64 * 1024
TMP_DIR = "tmp"

KIND_FILE = "file"
KIND_DIRECTORY = "directory"

_EMPTY_ETAG = hashlib.md5(b"").hexdigest()


class LocalStorageStrategy(ABC):
    """Contract between a blob store facade and its local storage.

    Implementations map containers and blobs onto some local medium. Deleting
    things that do not exist is a no-op, lookups of missing things return
    None or False, and only genuine I/O failures raise.
    """

    @abstractmethod
    def create_container(self, name: str) -> bool:
        """Create a container; return False if it already existed."""

    @abstractmethod
    def container_exists(self, name: str) -> bool:
        """Return True if the container exists."""

    @abstractmethod
    def delete_container(self, name: str) -> None:
        """Delete a container and everything in it."""

    @abstractmethod
    def clear_container(self, name: str, options: Optional[ListContainerOptions] = None) -> None:
        """Delete blobs from a container, keeping the container."""

    @abstractmethod
    def get_all_container_names(self) -> Iterator[str]:
        """Iterate over the names of all containers."""

    @abstractmethod
    def get_container_access(self, name: str) -> ContainerAccess:
        """Return the container's access marker."""

    @abstractmethod
    def set_container_access(self, name: str, access: ContainerAccess) -> None:
        """Store the container's access marker."""

    @abstractmethod
    def get_container_metadata(self, name: str) -> Optional[ContainerMetadata]:
        """Return the container's metadata, or None if it does not exist."""

    @abstractmethod
    def create_directory(self, container: str, path: Optional[str] = None) -> None:
        """Create a pseudo-folder chain inside a container."""

    @abstractmethod
    def directory_exists(self, container: str, path: Optional[str] = None) -> bool:
        """Return True if the pseudo-folder exists."""

    @abstractmethod
    def delete_directory(self, container: str, path: Optional[str] = None) -> None:
        """Delete a pseudo-folder and everything under it."""

    @abstractmethod
    def new_blob(self, key: str) -> Blob:
        """Return an empty blob handle for ``key``."""

    @abstractmethod
    def put_blob(self, container: str, blob: Blob) -> str:
        """Store a blob and return its ETag."""

    @abstractmethod
    def get_blob(self, container: str, key: str) -> Optional[Blob]:
        """Return the blob stored under ``key``, or None."""

    @abstractmethod
    def get_blob_metadata(self, container: str, key: str) -> Optional[BlobMetadata]:
        """Return the metadata of the blob under ``key``, or None."""

    @abstractmethod
    def blob_exists(self, container: str, key: str) -> bool:
        """Return True if a blob is stored under exactly ``key``."""

    @abstractmethod
    def remove_blob(self, container: str, key: str) -> None:
        """Remove the blob stored under ``key``."""

    @abstractmethod
    def get_blob_keys_inside_container(
        self, container: str, prefix: Optional[str] = None, delimiter: Optional[str] = None
    ) -> Iterator[str]:
        """Iterate over the keys in a container."""

    @abstractmethod
    def count_blobs(self, container: str, options: Optional[ListContainerOptions] = None) -> int:
        """Count the keys a listing with ``options`` would return."""

    @abstractmethod
    def list(self, container: str, options: Optional[ListContainerOptions] = None) -> ListResult:
        """Return one page of listing entries with their metadata."""

    @abstractmethod
    def get_file_for_blob_key(self, container: str, key: str) -> Path:
        """Return the absolute path a key maps to."""


class FilesystemStorageStrategy(LocalStorageStrategy):
    """Store containers and blobs as directories and files under ``base_dir``.

    Collaborators are injected so that blob construction and name policy
    stay with the caller:

    Args:
        base_dir: Directory holding one subdirectory per container. May be
            relative; it is made absolute once at construction.
        auto_detect_content_type: Guess content types from file extensions
            for blobs stored without one
        blob_builder_factory: Returns a fresh BlobBuilder for each blob
        container_name_validator: Policy for container names
        blob_key_validator: Policy for blob keys
        default_location: Supplies the location reported for containers
        metadata_store: Sidecar store; defaults to JSON records under
            ``base_dir/metadata_dir_name``
        metadata_dir_name: Hidden directory for sidecar records and
            in-flight writes
    """

    def __init__(
        self,
        base_dir: Union[str, Path],
        auto_detect_content_type: bool = False,
        blob_builder_factory: Callable[[], BlobBuilder] = BlobBuilder,
        container_name_validator: Optional[ContainerNameValidator] = None,
        blob_key_validator: Optional[BlobKeyValidator] = None,
        default_location: Callable[[], Optional[Location]] = lambda: None,
        metadata_store: Optional[SidecarMetadataStore] = None,
        metadata_dir_name: str = ".fsblobstore",
    ):
        self.base_dir = Path(os.path.abspath(base_dir))
        self.auto_detect_content_type = auto_detect_content_type
        self.blob_builder_factory = blob_builder_factory
        self.container_name_validator = container_name_validator or FilesystemContainerNameValidator()
        self.blob_key_validator = blob_key_validator or FilesystemBlobKeyValidator()
        self.default_location = default_location
        self.metadata_store = metadata_store or SidecarMetadataStore(self.base_dir, metadata_dir_name)
        self.tmp_dir = self.base_dir / metadata_dir_name / TMP_DIR

    @classmethod
    def from_config(cls, config: StoreConfig, **kwargs: Any) -> "FilesystemStorageStrategy":
        """Build a strategy from a validated StoreConfig."""
        return cls(
            config.base_dir,
            auto_detect_content_type=config.auto_detect_content_type,
            metadata_dir_name=config.metadata_dir_name,
            **kwargs,
        )

    @contextmanager
    def _io_errors(self, operation: str, path: Any = None) -> Iterator[None]:
        """Translate OS and path errors into StorageIOError."""
        try:
            yield
        except BlobStoreError:
            raise
        except (OSError, ValueError) as e:
            logger.warning(
                f"{operation} failed: {e}",
                extra={"operation": operation, "path": str(path)},
            )
            raise StorageIOError(
                f"{operation} failed for {path}: {e}", path=path, operation=operation
            ) from e

    def _container_dir(self, container: str, strip_separators: bool = False) -> Path:
        if strip_separators and container:
            container = container.rstrip("/\\")
        self.container_name_validator.validate(container)
        return self.base_dir / container

    @staticmethod
    def _normalize_directory(path: Optional[str]) -> str:
        if not path:
            return ""
        return path.replace(os.sep, SEPARATOR).strip(SEPARATOR)

    def _directory_path(self, container: str, path: Optional[str]) -> Path:
        container_dir = self._container_dir(container, strip_separators=True)
        directory = self._normalize_directory(path)
        if not directory:
            return container_dir
        self.blob_key_validator.validate(directory)
        return container_dir.joinpath(*directory.split(SEPARATOR))

    def _parse_key(self, key: str) -> Optional[BlobKey]:
        """Parse a key for a lookup; invalid keys cannot name a stored blob."""
        try:
            self.blob_key_validator.validate(key)
        except InvalidNameError:
            logger.debug("Treating invalid key as absent", extra={"key": repr(key)})
            return None
        return BlobKey.parse(key)

    @staticmethod
    def _blob_path(container_dir: Path, blob_key: BlobKey) -> Path:
        return container_dir.joinpath(*blob_key.parts)

    def _is_directory_blob(self, path: Path) -> bool:
        record = self.metadata_store.get(path)
        return record is not None and record.get("kind") == KIND_DIRECTORY

    def _exists(self, path: Path, blob_key: BlobKey) -> bool:
        if blob_key.is_directory:
            return path.is_dir() and self._is_directory_blob(path)
        return path.is_file()

    def create_container(self, name: str) -> bool:
        container_dir = self._container_dir(name)
        with self._io_errors("create_container", container_dir):
            if container_dir.is_dir():
                return False
            try:
                container_dir.mkdir(parents=True)
            except FileExistsError:
                if container_dir.is_dir():
                    return False
                raise
        logger.debug("Created container", extra={"container": name})
        return True

    def container_exists(self, name: str) -> bool:
        return self._container_dir(name).is_dir()

    def delete_container(self, name: str) -> None:
        container_dir = self._container_dir(name)
        with self._io_errors("delete_container", container_dir):
            if container_dir.is_dir():
                shutil.rmtree(container_dir)
                logger.debug("Deleted container", extra={"container": name})
            self.metadata_store.remove_container(name)

    def clear_container(self, name: str, options: Optional[ListContainerOptions] = None) -> None:
        """Delete blobs from a container, keeping the container directory.

        Without options, or with recursive options and no prefix, everything
        goes. A recursive prefix removes every key starting with the prefix,
        pseudo-folders included. A non-recursive prefix removes only the
        file blobs directly at that level.

        Raises:
            InvalidNameError: If the prefix could walk outside the container
        """
        container_dir = self._container_dir(name)
        if options is not None:
            self._listing_start(options.prefix or "")
        if not container_dir.is_dir():
            return

        with self._io_errors("clear_container", container_dir):
            if options is None or (options.recursive and not options.prefix):
                for child in list(container_dir.iterdir()):
                    if child.is_dir() and not child.is_symlink():
                        shutil.rmtree(child)
                    else:
                        child.unlink()
                self.metadata_store.remove_tree(container_dir)
                logger.debug("Cleared container", extra={"container": name})
                return

            prefix = options.prefix or ""
            if options.recursive:
                keys = sorted(self._iter_keys(container_dir, prefix))
                removed_dirs: List[str] = []
                for key in keys:
                    if any(key.startswith(d) for d in removed_dirs):
                        continue
                    blob_key = BlobKey.parse(key)
                    path = self._blob_path(container_dir, blob_key)
                    if blob_key.is_directory:
                        shutil.rmtree(path, ignore_errors=True)
                        self.metadata_store.remove_tree(path)
                        removed_dirs.append(key)
                    else:
                        path.unlink(missing_ok=True)
                        self.metadata_store.remove(path)
                    self._prune_empty_parents(container_dir, path.parent)
            else:
                keys = list(
                    self._apply_delimiter(self._iter_keys(container_dir, prefix), prefix, SEPARATOR)
                )
                for key in keys:
                    if key.endswith(SEPARATOR):
                        continue
                    path = self._blob_path(container_dir, BlobKey.parse(key))
                    path.unlink(missing_ok=True)
                    self.metadata_store.remove(path)
                    self._prune_empty_parents(container_dir, path.parent)
        logger.debug(
            "Cleared container subset",
            extra={"container": name, "prefix": prefix, "recursive": options.recursive},
        )

    def get_all_container_names(self) -> Iterator[str]:
        """Lazily yield the container names found directly under base_dir."""
        if not self.base_dir.is_dir():
            return iter(())
        return self._iter_container_names()

    def _iter_container_names(self) -> Iterator[str]:
        with self._io_errors("get_all_container_names", self.base_dir):
            with os.scandir(self.base_dir) as entries:
                for entry in entries:
                    if entry.is_dir() and not entry.name.startswith("."):
                        yield entry.name

    def get_container_access(self, name: str) -> ContainerAccess:
        self.container_name_validator.validate(name)
        record = self.metadata_store.get_container_record(name) or {}
        return ContainerAccess(record.get("access", ContainerAccess.PRIVATE.value))

    def set_container_access(self, name: str, access: ContainerAccess) -> None:
        self.container_name_validator.validate(name)
        with self._io_errors("set_container_access", name):
            record = self.metadata_store.get_container_record(name) or {}
            record["access"] = ContainerAccess(access).value
            self.metadata_store.put_container_record(name, record)

    def get_container_metadata(self, name: str) -> Optional[ContainerMetadata]:
        container_dir = self._container_dir(name)
        with self._io_errors("get_container_metadata", container_dir):
            if not container_dir.is_dir():
                return None
            created = datetime.fromtimestamp(container_dir.stat().st_mtime, tz=timezone.utc)
        return ContainerMetadata(
            name=name,
            creation_date=created,
            location=self.default_location(),
            access=self.get_container_access(name),
        )

    def create_directory(self, container: str, path: Optional[str] = None) -> None:
        directory = self._directory_path(container, path)
        with self._io_errors("create_directory", directory):
            directory.mkdir(parents=True, exist_ok=True)

    def directory_exists(self, container: str, path: Optional[str] = None) -> bool:
        return self._directory_path(container, path).is_dir()

    def delete_directory(self, container: str, path: Optional[str] = None) -> None:
        """Remove a pseudo-folder and everything under it.

        An empty path clears the whole container but keeps the container.
        """
        if not self._normalize_directory(path):
            self.clear_container(container.rstrip("/\\") if container else container)
            return
        directory = self._directory_path(container, path)
        with self._io_errors("delete_directory", directory):
            if directory.is_dir():
                shutil.rmtree(directory)
            self.metadata_store.remove_tree(directory)

    def new_blob(self, key: str) -> Blob:
        self.blob_key_validator.validate(key)
        return self.blob_builder_factory().name(key).build()

    def blob_exists(self, container: str, key: str) -> bool:
        blob_key = self._parse_key(key)
        if blob_key is None:
            return False
        path = self._blob_path(self._container_dir(container), blob_key)
        return self._exists(path, blob_key)

    def put_blob(self, container: str, blob: Blob) -> str:
        """Store a blob and return its ETag (hex MD5 of the content).

        File content is streamed into a temporary file next to the sidecar
        records and moved onto the final name with ``os.replace``, so
        readers only ever see the old or the new content.

        Raises:
            InvalidNameError: If the container name or key is invalid
            ContentLengthMismatchError: If the payload length differs from
                the declared content length; nothing is written
            StorageIOError: If the filesystem rejects the write
        """
        self.blob_key_validator.validate(blob.name)
        container_dir = self._container_dir(container)
        blob_key = BlobKey.parse(blob.name)
        path = self._blob_path(container_dir, blob_key)
        user_metadata = dict(blob.metadata.user_metadata or {})

        with self._io_errors("put_blob", path):
            if blob_key.is_directory:
                path.mkdir(parents=True, exist_ok=True)
                self.metadata_store.put(
                    path,
                    {
                        "kind": KIND_DIRECTORY,
                        "content_type": DIRECTORY_CONTENT_TYPE,
                        "etag": _EMPTY_ETAG,
                        "user_metadata": user_metadata,
                    },
                )
                logger.debug(
                    "Stored directory blob", extra={"container": container, "key": blob.name}
                )
                return _EMPTY_ETAG

            path.parent.mkdir(parents=True, exist_ok=True)
            etag = self._write_payload(blob, path)

            content_type = blob.metadata.content_type
            if content_type is None and self.auto_detect_content_type:
                content_type = self._detect_content_type(path)
            try:
                self.metadata_store.put(
                    path,
                    {
                        "kind": KIND_FILE,
                        "content_type": content_type,
                        "etag": etag,
                        "user_metadata": user_metadata,
                    },
                )
            except BaseException:
                path.unlink(missing_ok=True)
                raise

        logger.debug(
            "Stored blob",
            extra={"container": container, "key": blob.name, "etag": etag},
        )
        return etag

    def _write_payload(self, blob: Blob, path: Path) -> str:
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.tmp_dir, prefix="put-")
        digest = hashlib.md5()
        written = 0
        try:
            with os.fdopen(fd, "wb") as target:
                if blob.payload is not None:
                    with blob.payload.open() as source:
                        for chunk in iter(lambda: source.read(CHUNK_SIZE), b""):
                            digest.update(chunk)
                            target.write(chunk)
                            written += len(chunk)

            expected = blob.metadata.content_length
            if expected is not None and expected != written:
                raise ContentLengthMismatchError(
                    f"Content length mismatch for '{blob.name}': "
                    f"declared {expected}, got {written}",
                    expected=expected,
                    actual=written,
                    path=path,
                    operation="put_blob",
                )
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return digest.hexdigest()

    @staticmethod
    def _detect_content_type(path: Path) -> Optional[str]:
        content_type, _ = mimetypes.guess_type(path.name)
        return content_type

    def get_blob_metadata(self, container: str, key: str) -> Optional[BlobMetadata]:
        """Return a blob's metadata without opening its content."""
        blob_key = self._parse_key(key)
        if blob_key is None:
            return None
        path = self._blob_path(self._container_dir(container), blob_key)
        with self._io_errors("get_blob_metadata", path):
            if not self._exists(path, blob_key):
                return None
            stat = path.stat()
            record: Dict[str, Any] = self.metadata_store.get(path) or {}

            if blob_key.is_directory:
                size = 0
                content_type: Optional[str] = DIRECTORY_CONTENT_TYPE
            else:
                size = stat.st_size
                content_type = record.get("content_type")
                if content_type is None and self.auto_detect_content_type:
                    content_type = self._detect_content_type(path)

            etag = record.get("etag") or self._file_md5(path)
            modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

        return BlobMetadata(
            name=blob_key.name,
            container=container,
            content_type=content_type,
            content_length=size,
            content_md5=etag,
            etag=etag,
            user_metadata=dict(record.get("user_metadata") or {}),
            last_modified=modified,
            creation_date=modified,
            size=size,
        )

    @staticmethod
    def _file_md5(path: Path) -> str:
        if path.is_dir():
            return _EMPTY_ETAG
        digest = hashlib.md5()
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def get_blob(self, container: str, key: str) -> Optional[Blob]:
        """Return the blob stored under exactly ``key``, or None.

        The payload reads the stored file lazily; directory blobs have none.
        """
        metadata = self.get_blob_metadata(container, key)
        if metadata is None:
            return None

        builder = self.blob_builder_factory().name(metadata.name)
        if not metadata.key.is_directory:
            builder.payload(self.get_file_for_blob_key(container, key))
        blob = builder.build()
        blob.metadata = metadata
        return blob

    def get_file_for_blob_key(self, container: str, key: str) -> Path:
        self.blob_key_validator.validate(key)
        return self._blob_path(self._container_dir(container), BlobKey.parse(key))

    def remove_blob(self, container: str, key: str) -> None:
        """Remove a blob and prune the directories left empty by it.

        Removing a directory blob that still has children only drops its
        marker. Pruning stops at the container root, at a non-empty
        directory, and at a directory that is itself a directory blob.
        """
        blob_key = self._parse_key(key)
        if blob_key is None:
            return
        container_dir = self._container_dir(container)
        path = self._blob_path(container_dir, blob_key)

        with self._io_errors("remove_blob", path):
            if blob_key.is_directory:
                if not path.is_dir():
                    return
                self.metadata_store.remove(path)
                if any(path.iterdir()):
                    return
                path.rmdir()
            else:
                if not path.is_file():
                    logger.debug(
                        "Blob not found, nothing to remove",
                        extra={"container": container, "key": key},
                    )
                    return
                path.unlink()
                self.metadata_store.remove(path)

            self._prune_empty_parents(container_dir, path.parent)
        logger.debug("Removed blob", extra={"container": container, "key": key})

    def _prune_empty_parents(self, container_dir: Path, directory: Path) -> None:
        while directory != container_dir and container_dir in directory.parents:
            if self._is_directory_blob(directory):
                return
            try:
                directory.rmdir()
            except OSError:
                # Not empty, or a concurrent writer got there first
                return
            directory = directory.parent

    def get_blob_keys_inside_container(
        self, container: str, prefix: Optional[str] = None, delimiter: Optional[str] = None
    ) -> Iterator[str]:
        """Lazily yield keys: one per file, one with a trailing ``/`` per directory.

        Entries are sorted by name within each directory. ``prefix`` keeps
        keys starting with it; ``delimiter`` rolls keys up to the first
        delimiter after the prefix. A missing container yields nothing.

        Raises:
            InvalidNameError: If the prefix has ``.``/``..`` segments, a
                leading separator or NUL
        """
        container_dir = self._container_dir(container)
        self._listing_start(prefix or "")
        if not container_dir.is_dir():
            return iter(())
        keys = self._iter_keys(container_dir, prefix or "")
        if delimiter:
            keys = self._apply_delimiter(keys, prefix or "", delimiter)
        return keys

    def _listing_start(self, prefix: str) -> str:
        """Return the folder part of a listing prefix, validated like a key.

        Raises:
            InvalidNameError: If the prefix could walk outside the container
        """
        if "\x00" in prefix:
            raise InvalidNameError("Prefix must not contain NUL", prefix=prefix)
        if SEPARATOR not in prefix:
            return ""
        start = prefix[: prefix.rindex(SEPARATOR) + 1]
        try:
            self.blob_key_validator.validate(start)
        except InvalidNameError as e:
            raise InvalidNameError(f"Invalid prefix '{prefix}': {e}", prefix=prefix) from e
        return start

    def _iter_keys(self, container_dir: Path, prefix: str) -> Iterator[str]:
        start = self._listing_start(prefix)
        start_dir = container_dir.joinpath(*BlobKey.parse(start).parts)
        with self._io_errors("list", container_dir):
            yield from self._walk(start_dir, start, prefix)

    def _walk(self, directory: Path, relative: str, prefix: str) -> Iterator[str]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except (FileNotFoundError, NotADirectoryError):
            return

        for entry in entries:
            key = relative + entry.name
            if entry.is_dir(follow_symlinks=False):
                dir_key = key + SEPARATOR
                if dir_key.startswith(prefix):
                    yield dir_key
                    yield from self._walk(Path(entry.path), dir_key, prefix)
                elif prefix.startswith(dir_key):
                    yield from self._walk(Path(entry.path), dir_key, prefix)
            elif entry.is_file() and key.startswith(prefix):
                yield key

    @staticmethod
    def _apply_delimiter(keys: Iterator[str], prefix: str, delimiter: str) -> Iterator[str]:
        seen = set()
        for key in keys:
            rest = key[len(prefix):]
            index = rest.find(delimiter)
            if index == -1:
                yield key
                continue
            rolled = prefix + rest[: index + len(delimiter)]
            if rolled not in seen:
                seen.add(rolled)
                yield rolled

    def count_blobs(self, container: str, options: Optional[ListContainerOptions] = None) -> int:
        """Count keys under ``options``; no options counts every key recursively."""
        if options is None:
            options = ListContainerOptions(recursive=True)
        keys = self.get_blob_keys_inside_container(
            container, options.prefix, options.effective_delimiter()
        )
        return sum(1 for _ in keys)

    def list(self, container: str, options: Optional[ListContainerOptions] = None) -> ListResult:
        """List a container with per-entry metadata, one page at a time.

        Keys are sorted lexicographically. Pseudo-folders produced by the
        delimiter or by intermediate directories are RELATIVE_PATH entries,
        directory blobs are FOLDER entries.

        Raises:
            ContainerNotFoundError: If the container does not exist
        """
        options = options or ListContainerOptions()
        self._listing_start(options.prefix or "")
        if not self.container_exists(container):
            raise ContainerNotFoundError(
                f"Container not found: {container}", container=container
            )

        keys = sorted(
            self.get_blob_keys_inside_container(
                container, options.prefix, options.effective_delimiter()
            )
        )
        if options.marker:
            keys = [k for k in keys if k > options.marker]

        next_marker = None
        if options.max_results is not None and len(keys) > options.max_results:
            keys = keys[: options.max_results]
            next_marker = keys[-1] if keys else None

        entries = [self._storage_metadata(container, key) for key in keys]
        return ListResult(entries=[e for e in entries if e is not None], next_marker=next_marker)

    def _storage_metadata(self, container: str, key: str) -> Optional[StorageMetadata]:
        if key.endswith(SEPARATOR):
            metadata = self.get_blob_metadata(container, key)
            if metadata is None:
                return StorageMetadata(name=key, type=StorageType.RELATIVE_PATH)
            return StorageMetadata(
                name=key,
                type=StorageType.FOLDER,
                size=0,
                last_modified=metadata.last_modified,
                etag=metadata.etag,
                content_type=metadata.content_type,
            )

        metadata = self.get_blob_metadata(container, key)
        if metadata is None:
            # Removed between the walk and the stat
            return None
        return StorageMetadata(
            name=key,
            type=StorageType.BLOB,
            size=metadata.size,
            last_modified=metadata.last_modified,
            etag=metadata.etag,
            content_type=metadata.content_type,
        )

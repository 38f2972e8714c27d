"""Sidecar storage for metadata a plain file cannot carry.

Records are JSON documents kept under a hidden directory inside the base
directory::

    <base>/.fsblobstore/blobs/<container>/<sha256 of key path>.json
    <base>/.fsblobstore/containers/<container>.json

Naming blob records by a digest of the key path keeps every record in one
flat directory per container, so no key can collide with another key's
record and no record ever shows up inside a container's directory tree.
"""

import hashlib
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from .logging_config import get_logger

logger = get_logger("metadata_store")

BLOBS_DIR = "blobs"
CONTAINERS_DIR = "containers"


class SidecarMetadataStore:
    """Stores per-blob and per-container records as JSON sidecar files.

    Blob records are keyed by the blob's mapped filesystem path, which must
    lie inside ``base_dir``.
    """

    def __init__(self, base_dir: Path, dir_name: str = ".fsblobstore"):
        """
        Args:
            base_dir: Absolute base directory of the store
            dir_name: Hidden directory under base_dir holding the records
        """
        self.base_dir = Path(base_dir)
        self.root = self.base_dir / dir_name

    def _relative(self, path: Path) -> Path:
        try:
            return Path(path).relative_to(self.base_dir)
        except ValueError:
            raise ValueError(f"Path is outside the store: {path}") from None

    def _record_path(self, path: Path) -> Path:
        relative = self._relative(path)
        container = relative.parts[0]
        key_path = "/".join(relative.parts[1:])
        digest = hashlib.sha256(key_path.encode("utf-8", "surrogateescape")).hexdigest()
        return self.root / BLOBS_DIR / container / f"{digest}.json"

    def _write_json(self, target: Path, data: Dict[str, Any]) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    @staticmethod
    def _read_json(target: Path) -> Optional[Dict[str, Any]]:
        try:
            with open(target, "r") as f:
                data: Dict[str, Any] = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable sidecar record", extra={"record": str(target)})
            return None
        return data

    def put(self, path: Path, metadata: Dict[str, Any]) -> None:
        """Replace the record for ``path`` with ``metadata``."""
        record = dict(metadata)
        record["path"] = "/".join(self._relative(path).parts)
        self._write_json(self._record_path(path), record)

    def get(self, path: Path) -> Optional[Dict[str, Any]]:
        """Return the record for ``path``, or None if there is none."""
        record = self._read_json(self._record_path(path))
        if record is None:
            return None
        record.pop("path", None)
        return record

    def remove(self, path: Path) -> None:
        """Delete the record for ``path``; missing records are ignored."""
        self._record_path(path).unlink(missing_ok=True)

    def remove_tree(self, path: Path) -> int:
        """Delete the records of ``path`` and of every path below it.

        Returns:
            Number of records removed
        """
        relative = self._relative(path)
        container_dir = self.root / BLOBS_DIR / relative.parts[0]
        if len(relative.parts) == 1:
            removed = sum(1 for _ in container_dir.glob("*.json")) if container_dir.is_dir() else 0
            shutil.rmtree(container_dir, ignore_errors=True)
            return removed

        prefix = "/".join(relative.parts[1:])
        removed = 0
        for record_file, record_path in self._iter_records(container_dir):
            if record_path == prefix or record_path.startswith(prefix + "/"):
                record_file.unlink(missing_ok=True)
                removed += 1
        return removed

    def _iter_records(self, container_dir: Path) -> Iterator:
        if not container_dir.is_dir():
            return
        for record_file in container_dir.glob("*.json"):
            record = self._read_json(record_file)
            if record is None:
                continue
            stored = record.get("path", "")
            # Stored paths include the container as first segment
            yield record_file, stored.split("/", 1)[1] if "/" in stored else ""

    def get_container_record(self, container: str) -> Optional[Dict[str, Any]]:
        return self._read_json(self.root / CONTAINERS_DIR / f"{container}.json")

    def put_container_record(self, container: str, record: Dict[str, Any]) -> None:
        self._write_json(self.root / CONTAINERS_DIR / f"{container}.json", record)

    def remove_container(self, container: str) -> None:
        """Drop the container record and every blob record of the container."""
        (self.root / CONTAINERS_DIR / f"{container}.json").unlink(missing_ok=True)
        shutil.rmtree(self.root / BLOBS_DIR / container, ignore_errors=True)

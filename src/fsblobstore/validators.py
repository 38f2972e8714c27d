"""Validation of container names and blob keys used as filesystem paths."""

from abc import ABC, abstractmethod
from typing import Optional

from .exceptions import InvalidNameError

_SEPARATORS = ("/", "\\")
_RESERVED_SEGMENTS = (".", "..")


class ContainerNameValidator(ABC):
    """Checks that a container name is acceptable."""

    @abstractmethod
    def validate(self, name: Optional[str]) -> None:
        """Raise InvalidNameError if ``name`` cannot be used."""


class BlobKeyValidator(ABC):
    """Checks that a blob key is acceptable."""

    @abstractmethod
    def validate(self, key: Optional[str]) -> None:
        """Raise InvalidNameError if ``key`` cannot be used."""


class FilesystemContainerNameValidator(ContainerNameValidator):
    """Containers are single directories directly under the base directory.

    Rejects empty names, names containing ``/`` or ``\\``, and hidden names
    (leading ``.``), which covers ``.``, ``..`` and the store's own sidecar
    directory.
    """

    def validate(self, name: Optional[str]) -> None:
        if not name:
            raise InvalidNameError("Container name must not be empty", container=name)
        if not isinstance(name, str):
            raise InvalidNameError(f"Container name must be a string: {name!r}", container=name)
        for separator in _SEPARATORS:
            if separator in name:
                raise InvalidNameError(
                    f"Container name '{name}' must not contain '{separator}'", container=name
                )
        if name.startswith("."):
            raise InvalidNameError(
                f"Container name '{name}' is reserved (leading '.')", container=name
            )
        if "\x00" in name:
            raise InvalidNameError("Container name must not contain NUL", container=name)


class FilesystemBlobKeyValidator(BlobKeyValidator):
    """Keys are relative ``/``-separated paths inside a container.

    Embedded separators express hierarchy and a trailing separator marks a
    directory blob. A leading separator, ``.``/``..`` segments and NUL
    characters could resolve outside the container and are rejected. Empty
    segments (``"a//b"``) are rejected so each blob has a single spelling.
    """

    def validate(self, key: Optional[str]) -> None:
        if not key:
            raise InvalidNameError("Blob key must not be empty", key=key)
        if not isinstance(key, str):
            raise InvalidNameError(f"Blob key must be a string: {key!r}", key=key)
        if key.startswith(_SEPARATORS):
            raise InvalidNameError(
                f"Blob key '{key}' must not start with a path separator", key=key
            )
        if "\x00" in key:
            raise InvalidNameError("Blob key must not contain NUL", key=key)
        if key.strip("/") == "":
            raise InvalidNameError(f"Blob key '{key}' has no path segments", key=key)
        segments = key.replace("\\", "/").split("/")
        if key.endswith(_SEPARATORS):
            segments = segments[:-1]
        for segment in segments:
            if not segment:
                raise InvalidNameError(
                    f"Blob key '{key}' must not contain empty path segments", key=key
                )
            if segment in _RESERVED_SEGMENTS:
                raise InvalidNameError(
                    f"Blob key '{key}' must not contain '{segment}' segments", key=key
                )

"""Filesystem abstraction layer.

This module provides an abstract, path-based filesystem interface that can
be implemented with different backends (SharePoint, local disk, S3, etc.),
plus the factory that builds the configured backend.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, BinaryIO

from pydantic import BaseModel

from sharepoint_fs.config import get_settings
from sharepoint_fs.core.exceptions import ConfigurationError


class FileAttributes(BaseModel):
    """Attributes of a single file; unknown attributes are None."""

    path: str
    file_size: int | None = None
    visibility: str | None = None
    last_modified: int | None = None
    mime_type: str | None = None


class FilesystemAdapter(ABC):
    """Abstract base class for filesystem backends.

    ``config`` arguments are optional per-call mappings; backends read only
    the keys they understand.
    """

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """Check if a file exists."""
        pass

    @abstractmethod
    def write(
        self, path: str, contents: bytes, config: Mapping[str, Any] | None = None
    ) -> None:
        """Write contents to a file, replacing it if present."""
        pass

    @abstractmethod
    def write_stream(
        self, path: str, stream: BinaryIO, config: Mapping[str, Any] | None = None
    ) -> None:
        """Write a stream to a file, replacing it if present."""
        pass

    @abstractmethod
    def read(self, path: str) -> bytes:
        """Read a file's contents."""
        pass

    @abstractmethod
    def read_stream(self, path: str) -> BinaryIO:
        """Open a file for reading. The caller closes the stream."""
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete a file."""
        pass

    @abstractmethod
    def delete_directory(self, path: str) -> None:
        """Delete a directory and its contents."""
        pass

    @abstractmethod
    def create_directory(
        self, path: str, config: Mapping[str, Any] | None = None
    ) -> None:
        """Create a directory."""
        pass

    @abstractmethod
    def set_visibility(self, path: str, visibility: str) -> None:
        """Set a file's visibility."""
        pass

    @abstractmethod
    def visibility(self, path: str) -> FileAttributes:
        """Get a file's visibility."""
        pass

    @abstractmethod
    def mime_type(self, path: str) -> FileAttributes:
        """Get a file's mimetype."""
        pass

    @abstractmethod
    def last_modified(self, path: str) -> FileAttributes:
        """Get a file's last-modified time."""
        pass

    @abstractmethod
    def file_size(self, path: str) -> FileAttributes:
        """Get a file's size."""
        pass

    @abstractmethod
    def list_contents(self, path: str = "", recursive: bool = False) -> list[Any]:
        """List the entries under a directory."""
        pass

    @abstractmethod
    def move(
        self, source: str, destination: str, config: Mapping[str, Any] | None = None
    ) -> None:
        """Move a file."""
        pass

    @abstractmethod
    def copy(
        self, source: str, destination: str, config: Mapping[str, Any] | None = None
    ) -> None:
        """Copy a file."""
        pass


# Default filesystem instance
_filesystem: FilesystemAdapter | None = None


def get_filesystem() -> FilesystemAdapter:
    """Get the configured filesystem backend.

    Returns a SharePointAdapter over a SharePointRestClient when SharePoint
    is configured.

    Raises:
        ConfigurationError: If SharePoint is not configured
    """
    global _filesystem
    if _filesystem is None:
        settings = get_settings()
        if not settings.is_sharepoint_configured:
            raise ConfigurationError(
                "SharePoint is not configured: set SHAREPOINT_SITE_URL, "
                "SHAREPOINT_TENANT_ID, SHAREPOINT_CLIENT_ID and a credential"
            )

        # Imported here to avoid a circular import with the adapter module
        from sharepoint_fs.core.sharepoint.adapter import SharePointAdapter
        from sharepoint_fs.core.sharepoint.auth import get_sharepoint_auth
        from sharepoint_fs.core.sharepoint.client import SharePointRestClient

        client = SharePointRestClient(get_sharepoint_auth(), settings=settings)
        _filesystem = SharePointAdapter(client)
    return _filesystem


def reset_filesystem() -> None:
    """Reset the filesystem singleton, closing its client when possible.

    Used primarily for testing to ensure clean state between tests.
    """
    global _filesystem
    if _filesystem is not None:
        close = getattr(getattr(_filesystem, "client", None), "close", None)
        if callable(close):
            close()
    _filesystem = None

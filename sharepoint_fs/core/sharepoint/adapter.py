"""SharePoint filesystem adapter implementing the FilesystemAdapter interface.

Maps path-based filesystem calls onto a SharePointClient. The adapter holds
no protocol logic of its own: it prefixes paths, forwards calls and turns
raw item records into NormalizedEntry objects.
"""

import mimetypes
from collections.abc import Mapping
from typing import Any, BinaryIO

from sharepoint_fs.core.exceptions import UnsupportedOperationError
from sharepoint_fs.core.filesystem import FileAttributes, FilesystemAdapter
from sharepoint_fs.core.logging import get_logger
from sharepoint_fs.core.sharepoint.client import SharePointClient
from sharepoint_fs.core.sharepoint.normalize import (
    NormalizedEntry,
    apply_path_prefix,
    normalize_response,
)

logger = get_logger(__name__)


class SharePointAdapter(FilesystemAdapter):
    """FilesystemAdapter implementation for a SharePoint document library.

    Every path handed to the client is prefixed first (one leading slash,
    no trailing slash). Client failures propagate unchanged, except in
    has()/file_exists(), which report any failure as non-existence.

    Attributes:
        _client: SharePointClient performing the remote calls
    """

    def __init__(self, client: SharePointClient) -> None:
        """Initialize the adapter.

        Args:
            client: Client implementing the SharePointClient protocol
        """
        self._client = client

    @property
    def client(self) -> SharePointClient:
        """Get the underlying SharePoint client."""
        return self._client

    def apply_path_prefix(self, path: str) -> str:
        """Normalize a path to one leading slash and no trailing slash."""
        return apply_path_prefix(path)

    # Writing

    def write(
        self, path: str, contents: bytes, config: Mapping[str, Any] | None = None
    ) -> None:
        self._upload(path, contents)

    def write_stream(
        self, path: str, stream: BinaryIO, config: Mapping[str, Any] | None = None
    ) -> None:
        self._upload(path, stream)

    def update(
        self, path: str, contents: bytes, config: Mapping[str, Any] | None = None
    ) -> NormalizedEntry:
        """Upload contents over an existing file and return its metadata."""
        return self._upload(path, contents)

    def update_stream(
        self, path: str, stream: BinaryIO, config: Mapping[str, Any] | None = None
    ) -> NormalizedEntry:
        """Upload a stream over an existing file and return its metadata."""
        return self._upload(path, stream)

    def _upload(self, path: str, contents: bytes | BinaryIO) -> NormalizedEntry:
        path = self.apply_path_prefix(path)

        logger.info("sharepoint_adapter_upload", path=path)

        response = self._client.upload(path, contents)
        return normalize_response(response)

    # Reading

    def read(self, path: str) -> bytes:
        """Read a whole file into memory.

        The stream returned by read_stream() is always closed, including
        when reading it fails.
        """
        stream = self.read_stream(path)
        try:
            contents = stream.read()
        finally:
            stream.close()

        logger.debug("sharepoint_adapter_read", path=path, size=len(contents))
        return contents

    def read_stream(self, path: str) -> BinaryIO:
        """Open a file for reading.

        Returns:
            The client's raw stream handle; the caller must close it
        """
        path = self.apply_path_prefix(path)

        logger.info("sharepoint_adapter_read_stream", path=path)

        return self._client.download(path)

    # Moving and copying

    def rename(self, path: str, new_path: str) -> bool:
        """Move a file or folder, sending the source's guessed mimetype."""
        path = self.apply_path_prefix(path)
        mime_type = self.get_mimetype(path)
        new_path = self.apply_path_prefix(new_path)

        logger.info(
            "sharepoint_adapter_rename",
            path=path,
            new_path=new_path,
            mime_type=mime_type,
        )

        return self._client.move(path, new_path, mime_type)

    def move(
        self, source: str, destination: str, config: Mapping[str, Any] | None = None
    ) -> None:
        self.rename(source, destination)

    def copy(
        self, source: str, destination: str, config: Mapping[str, Any] | None = None
    ) -> None:
        """Copy a file.

        The mimetype handed to the client comes from ``config["mime"]``;
        None when absent.
        """
        path = self.apply_path_prefix(source)
        new_path = self.apply_path_prefix(destination)
        mime_type = (config or {}).get("mime")

        logger.info(
            "sharepoint_adapter_copy",
            path=path,
            new_path=new_path,
            mime_type=mime_type,
        )

        self._client.copy(path, new_path, mime_type)

    # Deleting

    def delete(self, path: str) -> None:
        path = self.apply_path_prefix(path)

        logger.info("sharepoint_adapter_delete", path=path)

        self._client.delete(path)

    def delete_dir(self, path: str) -> None:
        self.delete(path)

    def delete_directory(self, path: str) -> None:
        self.delete(path)

    # Directories

    def create_dir(self, path: str, config: Mapping[str, Any] | None = None) -> bool:
        path = self.apply_path_prefix(path)

        logger.info("sharepoint_adapter_create_dir", path=path)

        return self._client.create_folder(path)

    def create_directory(
        self, path: str, config: Mapping[str, Any] | None = None
    ) -> None:
        self.create_dir(path, config)

    def list_contents(
        self, path: str = "", recursive: bool = False
    ) -> list[NormalizedEntry]:
        """List the entries of a folder.

        With ``recursive`` set, the entries of each subfolder follow that
        subfolder, listed by the folder's raw ``Name``.

        Args:
            path: Folder path (default: library root)
            recursive: Descend into subfolders

        Returns:
            Normalized entries in listing order
        """
        path = self.apply_path_prefix(path)

        logger.debug("sharepoint_adapter_list_contents", path=path, recursive=recursive)

        items = self._client.list_folder(path, recursive)

        entries: list[NormalizedEntry] = []
        for item in items:
            entry = normalize_response(item)
            entries.append(entry)

            if recursive and entry.is_dir:
                entries.extend(self.list_contents(item["Name"], True))

        return entries

    # Metadata

    def has(self, path: str) -> bool:
        """Check whether a file or folder exists.

        Any failure, including authentication or connection errors,
        is reported as non-existence.
        """
        try:
            path = self.apply_path_prefix(path)
            mime_type = self.get_mimetype(path)
            metadata = self._client.get_metadata(path, mime_type)
        except Exception as e:
            logger.debug(
                "sharepoint_adapter_has_false",
                path=path,
                error_type=type(e).__name__,
                error=str(e),
            )
            return False

        return bool(metadata)

    def file_exists(self, path: str) -> bool:
        return self.has(path)

    def get_metadata(self, path: str) -> NormalizedEntry:
        path = self.apply_path_prefix(path)
        mime_type = self.get_mimetype(path)

        logger.debug("sharepoint_adapter_get_metadata", path=path, mime_type=mime_type)

        metadata = self._client.get_metadata(path, mime_type)
        return normalize_response(metadata)

    def get_size(self, path: str) -> NormalizedEntry:
        return self.get_metadata(path)

    def get_mimetype(self, path: str) -> str | None:
        """Guess a mimetype from the filename extension; content is never read."""
        mime_type, _ = mimetypes.guess_type(path, strict=False)
        return mime_type

    def mime_type(self, path: str) -> FileAttributes:
        return FileAttributes(path=path, mime_type=self.get_mimetype(path))

    def last_modified(self, path: str) -> FileAttributes:
        entry = self.get_metadata(path)
        return FileAttributes(path=path, last_modified=entry.timestamp)

    def file_size(self, path: str) -> FileAttributes:
        entry = self.get_metadata(path)
        return FileAttributes(path=path, file_size=entry.size)

    # Visibility

    def visibility(self, path: str) -> FileAttributes:
        raise UnsupportedOperationError(
            "SharePoint document libraries have no file visibility",
            operation="visibility",
        )

    def set_visibility(self, path: str, visibility: str) -> None:
        raise UnsupportedOperationError(
            "SharePoint document libraries have no file visibility",
            operation="set_visibility",
        )

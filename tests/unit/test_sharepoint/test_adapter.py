"""Tests for SharePoint filesystem adapter."""

import io
from unittest.mock import MagicMock, patch

import pytest

from sharepoint_fs.config import Settings
from sharepoint_fs.core.exceptions import UnsupportedOperationError
from sharepoint_fs.core.filesystem import FileAttributes, FilesystemAdapter
from sharepoint_fs.core.sharepoint.adapter import SharePointAdapter
from sharepoint_fs.core.sharepoint.client import SharePointRestClient
from sharepoint_fs.core.sharepoint.exceptions import (
    SharePointAuthenticationError,
    SharePointError,
    SharePointNotFoundError,
)
from sharepoint_fs.core.sharepoint.normalize import NormalizedEntry

FILE_ITEM = {
    "Name": "bar.txt",
    "ServerRelativeUrl": "/sites/team/Shared Documents/foo/bar.txt",
    "TimeLastModified": "2024-01-15T10:30:00Z",
    "size": 12,
    "__metadata": {"type": "SP.File"},
}


def _file(name: str, parent: str = "") -> dict:
    prefix = f"{parent}/" if parent else ""
    return {
        "Name": name,
        "ServerRelativeUrl": f"/sites/team/Shared Documents/{prefix}{name}",
        "__metadata": {"type": "SP.File"},
    }


def _folder(name: str, parent: str = "") -> dict:
    prefix = f"{parent}/" if parent else ""
    return {
        "Name": name,
        "ServerRelativeUrl": f"/sites/team/Shared Documents/{prefix}{name}",
        "__metadata": {"type": "SP.Folder"},
    }


@pytest.fixture
def mock_adapter():
    """Create adapter with a mocked client."""
    client = MagicMock()
    return SharePointAdapter(client), client


class TestSharePointAdapterInit:
    """Tests for SharePointAdapter initialization."""

    def test_is_filesystem_adapter(self, mock_adapter):
        """Adapter implements the FilesystemAdapter interface."""
        adapter, _ = mock_adapter
        assert isinstance(adapter, FilesystemAdapter)

    def test_exposes_client(self, mock_adapter):
        """client property returns the injected client."""
        adapter, client = mock_adapter
        assert adapter.client is client

    def test_apply_path_prefix(self, mock_adapter):
        """apply_path_prefix normalizes slashes."""
        adapter, _ = mock_adapter
        assert adapter.apply_path_prefix("//foo/bar/") == "/foo/bar"


class TestSharePointAdapterWrite:
    """Tests for write/update methods."""

    def test_write_uploads_prefixed_path(self, mock_adapter):
        """write() uploads to the prefixed path and returns None."""
        adapter, client = mock_adapter
        client.upload.return_value = FILE_ITEM

        result = adapter.write("foo/bar.txt", b"hello world!")

        assert result is None
        client.upload.assert_called_once_with("/foo/bar.txt", b"hello world!")

    def test_write_stream_passes_stream(self, mock_adapter):
        """write_stream() hands the stream to the client unchanged."""
        adapter, client = mock_adapter
        client.upload.return_value = FILE_ITEM
        stream = io.BytesIO(b"data")

        adapter.write_stream("/foo/bar.txt/", stream)

        client.upload.assert_called_once_with("/foo/bar.txt", stream)

    def test_update_returns_normalized_entry(self, mock_adapter):
        """update() returns the normalized upload result."""
        adapter, client = mock_adapter
        client.upload.return_value = FILE_ITEM

        entry = adapter.update("foo/bar.txt", b"hello world!")

        assert isinstance(entry, NormalizedEntry)
        assert entry.path == "foo/bar.txt"
        assert entry.size == 12
        assert entry.type == "file"

    def test_update_stream_returns_normalized_entry(self, mock_adapter):
        """update_stream() returns the normalized upload result."""
        adapter, client = mock_adapter
        client.upload.return_value = FILE_ITEM

        entry = adapter.update_stream("foo/bar.txt", io.BytesIO(b"x"))

        assert entry.path == "foo/bar.txt"

    def test_write_propagates_client_errors(self, mock_adapter):
        """Client failures reach the caller unchanged."""
        adapter, client = mock_adapter
        client.upload.side_effect = SharePointError("boom")

        with pytest.raises(SharePointError, match="boom"):
            adapter.write("a.txt", b"")


class TestSharePointAdapterRead:
    """Tests for read/read_stream methods."""

    def test_read_stream_returns_client_stream(self, mock_adapter):
        """read_stream() returns the client's raw stream handle."""
        adapter, client = mock_adapter
        stream = io.BytesIO(b"content")
        client.download.return_value = stream

        result = adapter.read_stream("foo/bar.txt")

        assert result is stream
        client.download.assert_called_once_with("/foo/bar.txt")

    def test_read_returns_contents_and_closes_stream(self, mock_adapter):
        """read() materializes the stream and closes it."""
        adapter, client = mock_adapter
        stream = io.BytesIO(b"content")
        client.download.return_value = stream

        result = adapter.read("foo/bar.txt")

        assert result == b"content"
        assert stream.closed

    def test_read_closes_stream_on_error(self, mock_adapter):
        """read() closes the stream even when reading fails."""
        adapter, client = mock_adapter
        stream = MagicMock()
        stream.read.side_effect = OSError("connection reset")
        client.download.return_value = stream

        with pytest.raises(OSError):
            adapter.read("foo/bar.txt")

        stream.close.assert_called_once()

    def test_read_propagates_not_found(self, mock_adapter):
        """read() propagates client errors."""
        adapter, client = mock_adapter
        client.download.side_effect = SharePointNotFoundError("missing")

        with pytest.raises(SharePointNotFoundError):
            adapter.read("missing.txt")


class TestSharePointAdapterMoveCopy:
    """Tests for rename/move/copy methods."""

    def test_rename_passes_source_mimetype(self, mock_adapter):
        """rename() prefixes both paths and passes the source mimetype."""
        adapter, client = mock_adapter
        client.move.return_value = True

        result = adapter.rename("a/report.pdf", "/b/report.pdf/")

        assert result is True
        client.move.assert_called_once_with(
            "/a/report.pdf", "/b/report.pdf", "application/pdf"
        )

    def test_rename_folder_passes_none_mimetype(self, mock_adapter):
        """Extensionless paths are moved with no mimetype."""
        adapter, client = mock_adapter

        adapter.rename("old-folder", "new-folder")

        client.move.assert_called_once_with("/old-folder", "/new-folder", None)

    def test_move_uses_rename(self, mock_adapter):
        """move() issues the same client call as rename() and returns None."""
        adapter, client = mock_adapter

        result = adapter.move("a.txt", "b.txt")

        assert result is None
        client.move.assert_called_once_with("/a.txt", "/b.txt", "text/plain")

    def test_copy_uses_mime_from_config(self, mock_adapter):
        """copy() takes the mimetype from config['mime']."""
        adapter, client = mock_adapter

        adapter.copy("a.bin", "b.bin", {"mime": "application/pdf"})

        client.copy.assert_called_once_with("/a.bin", "/b.bin", "application/pdf")

    def test_copy_without_config_passes_none(self, mock_adapter):
        """copy() passes None when no mime is configured."""
        adapter, client = mock_adapter

        adapter.copy("a.txt", "b.txt")

        client.copy.assert_called_once_with("/a.txt", "/b.txt", None)


class TestSharePointAdapterDelete:
    """Tests for delete methods."""

    def test_delete_prefixes_path(self, mock_adapter):
        """delete() prefixes the path."""
        adapter, client = mock_adapter

        adapter.delete("foo/bar.txt")

        client.delete.assert_called_once_with("/foo/bar.txt")

    @pytest.mark.parametrize("method", ["delete_dir", "delete_directory"])
    def test_delete_dir_delegates_to_delete(self, mock_adapter, method):
        """Directory deletion uses the same client call."""
        adapter, client = mock_adapter

        getattr(adapter, method)("foo/")

        client.delete.assert_called_once_with("/foo")


class TestSharePointAdapterDirectories:
    """Tests for create_dir and list_contents."""

    def test_create_dir_returns_client_result(self, mock_adapter):
        """create_dir() returns the client's result."""
        adapter, client = mock_adapter
        client.create_folder.return_value = True

        assert adapter.create_dir("reports/2024") is True
        client.create_folder.assert_called_once_with("/reports/2024")

    def test_create_directory_returns_none(self, mock_adapter):
        """create_directory() creates the folder and returns None."""
        adapter, client = mock_adapter

        assert adapter.create_directory("/reports/") is None
        client.create_folder.assert_called_once_with("/reports")

    def test_list_contents_empty(self, mock_adapter):
        """Empty folders list as an empty list."""
        adapter, client = mock_adapter
        client.list_folder.return_value = []

        assert adapter.list_contents("empty") == []
        client.list_folder.assert_called_once_with("/empty", False)

    def test_list_contents_normalizes_entries(self, mock_adapter):
        """Each entry is normalized."""
        adapter, client = mock_adapter
        client.list_folder.return_value = [_folder("sub"), _file("a.txt")]

        entries = adapter.list_contents()

        assert [e.path for e in entries] == ["sub", "a.txt"]
        assert [e.type for e in entries] == ["dir", "file"]
        client.list_folder.assert_called_once_with("/", False)

    def test_list_contents_non_recursive(self, mock_adapter):
        """Non-recursive listing returns only direct entries."""
        adapter, client = mock_adapter
        listings = {
            "/": [_file("a.txt"), _folder("sub")],
            "/sub": [_file("b.txt", parent="sub")],
        }
        client.list_folder.side_effect = lambda path, recursive: listings[path]

        entries = adapter.list_contents("")

        assert len(entries) == 2
        client.list_folder.assert_called_once_with("/", False)

    def test_list_contents_recursive(self, mock_adapter):
        """Recursive listing descends into folders by their raw name."""
        adapter, client = mock_adapter
        listings = {
            "/": [_file("a.txt"), _folder("sub")],
            "/sub": [_file("b.txt", parent="sub")],
        }
        client.list_folder.side_effect = lambda path, recursive: listings[path]

        entries = adapter.list_contents("", recursive=True)

        assert [e.path for e in entries] == ["a.txt", "sub", "sub/b.txt"]
        assert client.list_folder.call_count == 2
        client.list_folder.assert_any_call("/sub", True)

    def test_list_contents_recursive_does_not_descend_into_files(self, mock_adapter):
        """Files are never listed as folders."""
        adapter, client = mock_adapter
        client.list_folder.return_value = [_file("a.txt")]

        adapter.list_contents("/", recursive=True)

        client.list_folder.assert_called_once_with("/", True)


class TestSharePointAdapterHas:
    """Tests for has/file_exists."""

    def test_has_true_when_metadata_present(self, mock_adapter):
        """has() is True for non-empty metadata."""
        adapter, client = mock_adapter
        client.get_metadata.return_value = FILE_ITEM

        assert adapter.has("foo/bar.txt") is True
        client.get_metadata.assert_called_once_with("/foo/bar.txt", "text/plain")

    def test_has_false_when_metadata_empty(self, mock_adapter):
        """has() is False for empty metadata."""
        adapter, client = mock_adapter
        client.get_metadata.return_value = {}

        assert adapter.has("foo/bar.txt") is False

    @pytest.mark.parametrize(
        "error",
        [
            SharePointNotFoundError("missing"),
            SharePointAuthenticationError("denied"),
            RuntimeError("anything"),
        ],
    )
    def test_has_false_on_any_error(self, mock_adapter, error):
        """has() reports every failure as non-existence."""
        adapter, client = mock_adapter
        client.get_metadata.side_effect = error

        assert adapter.has("foo/bar.txt") is False

    def test_file_exists_uses_has(self, mock_adapter):
        """file_exists() mirrors has()."""
        adapter, client = mock_adapter
        client.get_metadata.return_value = FILE_ITEM

        assert adapter.file_exists("foo/bar.txt") is True


class TestSharePointAdapterMetadata:
    """Tests for metadata methods."""

    def test_get_metadata_normalizes(self, mock_adapter):
        """get_metadata() passes the mimetype and normalizes the result."""
        adapter, client = mock_adapter
        client.get_metadata.return_value = FILE_ITEM

        entry = adapter.get_metadata("foo/bar.txt")

        assert entry.path == "foo/bar.txt"
        assert entry.size == 12
        client.get_metadata.assert_called_once_with("/foo/bar.txt", "text/plain")

    def test_get_metadata_propagates_errors(self, mock_adapter):
        """get_metadata() does not swallow client errors."""
        adapter, client = mock_adapter
        client.get_metadata.side_effect = SharePointNotFoundError("missing")

        with pytest.raises(SharePointNotFoundError):
            adapter.get_metadata("missing.txt")

    def test_get_size_returns_metadata(self, mock_adapter):
        """get_size() returns the full normalized entry."""
        adapter, client = mock_adapter
        client.get_metadata.return_value = FILE_ITEM

        assert adapter.get_size("foo/bar.txt").size == 12

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("report.pdf", "application/pdf"),
            ("/a/b/notes.txt", "text/plain"),
            ("image.PNG", "image/png"),
            ("folder", None),
            ("archive.unknownext", None),
        ],
    )
    def test_get_mimetype_from_extension(self, mock_adapter, path, expected):
        """get_mimetype() only looks at the extension."""
        adapter, client = mock_adapter

        assert adapter.get_mimetype(path) == expected
        client.assert_not_called()
        client.download.assert_not_called()

    def test_mime_type_returns_attributes(self, mock_adapter):
        """mime_type() wraps the mimetype in FileAttributes."""
        adapter, _ = mock_adapter

        attrs = adapter.mime_type("a.pdf")

        assert attrs == FileAttributes(path="a.pdf", mime_type="application/pdf")

    def test_last_modified_returns_timestamp(self, mock_adapter):
        """last_modified() reads the normalized timestamp."""
        adapter, client = mock_adapter
        client.get_metadata.return_value = FILE_ITEM

        attrs = adapter.last_modified("foo/bar.txt")

        assert attrs.path == "foo/bar.txt"
        assert attrs.last_modified == 1705314600

    def test_file_size_returns_size(self, mock_adapter):
        """file_size() reads the normalized size."""
        adapter, client = mock_adapter
        client.get_metadata.return_value = FILE_ITEM

        attrs = adapter.file_size("foo/bar.txt")

        assert attrs.file_size == 12
        assert attrs.mime_type is None


class TestSharePointAdapterVisibility:
    """Tests for visibility methods."""

    def test_visibility_unsupported(self, mock_adapter):
        """visibility() raises UnsupportedOperationError."""
        adapter, _ = mock_adapter

        with pytest.raises(UnsupportedOperationError) as exc_info:
            adapter.visibility("a.txt")

        assert exc_info.value.operation == "visibility"

    def test_set_visibility_unsupported(self, mock_adapter):
        """set_visibility() raises UnsupportedOperationError."""
        adapter, client = mock_adapter

        with pytest.raises(UnsupportedOperationError):
            adapter.set_visibility("a.txt", "public")

        assert client.method_calls == []


class TestSharePointAdapterWithRestClient:
    """Tests wiring the adapter to SharePointRestClient."""

    LIBRARY = "/sites/team/Shared%20Documents"

    @pytest.fixture
    def rest_adapter(self):
        settings = Settings(
            _env_file=None,
            sharepoint_site_url="https://contoso.sharepoint.com/sites/team",
        )
        return SharePointAdapter(SharePointRestClient(MagicMock(), settings=settings))

    def test_copy_with_default_config_copies_file(self, rest_adapter):
        """copy() without a mime config still uses the file endpoint."""
        with patch.object(rest_adapter.client, "_request") as mock_request:
            rest_adapter.copy("report.txt", "copy.txt")

        mock_request.assert_called_once_with(
            "POST",
            f"/web/GetFileByServerRelativeUrl('{self.LIBRARY}/report.txt')"
            f"/copyto(strnewurl='{self.LIBRARY}/copy.txt',boverwrite=true)",
        )

    def test_rename_extensionless_file(self, rest_adapter):
        """rename() of a file with no extension moves it as a file."""
        with patch.object(rest_adapter.client, "_request") as mock_request:
            rest_adapter.rename("Makefile", "Makefile.bak")

        mock_request.assert_called_once_with(
            "POST",
            f"/web/GetFileByServerRelativeUrl('{self.LIBRARY}/Makefile')"
            f"/moveto(newurl='{self.LIBRARY}/Makefile.bak',flags=1)",
        )

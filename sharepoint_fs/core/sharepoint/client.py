"""SharePoint REST API client for document library operations.

Defines the SharePointClient protocol the adapter depends on and a
synchronous httpx implementation against ``/_api/web`` with:
- Library-relative path to server-relative URL translation
- OData verbose envelope unwrapping
- Streamed downloads exposed as a readable binary stream
- Error mapping from HTTP status codes to SharePoint exception classes
"""

import io
from typing import Any, BinaryIO, Protocol
from urllib.parse import quote

import httpx

from sharepoint_fs.config import Settings, get_settings
from sharepoint_fs.core.logging import get_logger
from sharepoint_fs.core.sharepoint.auth import SharePointAuthService
from sharepoint_fs.core.sharepoint.exceptions import (
    SharePointAuthenticationError,
    SharePointError,
    SharePointNotFoundError,
    SharePointPermissionError,
    SharePointRateLimitError,
    SharePointUploadError,
)
from sharepoint_fs.core.sharepoint.normalize import LIBRARY_SEGMENT

logger = get_logger(__name__)

ODATA_VERBOSE = "application/json;odata=verbose"

# Hidden folder holding the library's list forms
FORMS_FOLDER = "Forms"


class SharePointClient(Protocol):
    """Operations the filesystem adapter needs from a SharePoint client.

    Paths are library-relative with one leading slash (``/foo/bar.txt``).
    A ``mime_type`` of None means the type is unknown: the path names a
    folder or an extensionless file.
    """

    def upload(self, path: str, contents: bytes | BinaryIO) -> dict[str, Any]: ...

    def download(self, path: str) -> BinaryIO: ...

    def move(self, path: str, new_path: str, mime_type: str | None) -> bool: ...

    def copy(self, path: str, new_path: str, mime_type: str | None) -> bool: ...

    def delete(self, path: str) -> bool: ...

    def create_folder(self, path: str) -> bool: ...

    def get_metadata(self, path: str, mime_type: str | None) -> dict[str, Any]: ...

    def list_folder(self, path: str, recursive: bool = False) -> list[dict[str, Any]]: ...


def odata_literal(value: str) -> str:
    """Quote a value as an OData string literal for use in a URL path."""
    return "'" + quote(value.replace("'", "''"), safe="/") + "'"


class ResponseStream(io.RawIOBase):
    """Readable binary stream over a streamed httpx response.

    Closing the stream closes the underlying response.
    """

    def __init__(self, response: httpx.Response, chunk_size: int = 64 * 1024) -> None:
        self._response = response
        self._chunks = response.iter_bytes(chunk_size)
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self) -> None:
        if not self.closed:
            self._response.close()
        super().close()


class SharePointRestClient:
    """Synchronous SharePoint REST client for one document library.

    Attributes:
        CHUNK_SIZE: Size of chunks yielded by download streams (64KB)
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        auth_service: SharePointAuthService,
        settings: Settings | None = None,
    ) -> None:
        """Initialize client with authentication service.

        Args:
            auth_service: SharePointAuthService for token acquisition
            settings: Settings naming the site and library
                (default: cached application settings)
        """
        self._auth = auth_service
        self._settings = settings or get_settings()
        self._client: httpx.Client | None = None

    def __enter__(self) -> "SharePointRestClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def api_url(self) -> str:
        """Base URL of the site's REST API."""
        return f"{self._settings.sharepoint_site_url}/_api"

    @property
    def library_url(self) -> str:
        """Server-relative URL of the document library root."""
        return f"{self._settings.sharepoint_site_path}/{LIBRARY_SEGMENT}"

    def server_relative_url(self, path: str) -> str:
        """Map a library-relative path to a server-relative URL.

        "/foo/bar.txt" -> "/sites/team/Shared Documents/foo/bar.txt"
        """
        relative = path.strip("/")
        return f"{self.library_url}/{relative}" if relative else self.library_url

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.api_url,
                headers={"Accept": ODATA_VERBOSE},
                timeout=self._settings.sharepoint_timeout,
            )
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        """Bearer header with a current token.

        MSAL serves the token from its cache until it nears expiry.
        """
        return {"Authorization": f"Bearer {self._auth.get_app_token()}"}

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client:
            self._client.close()
            self._client = None
            logger.debug("sharepoint_client_closed")

    def _raise_for_status(self, response: httpx.Response, path: str) -> None:
        """Map an error response onto the SharePoint exception classes.

        Raises:
            SharePointAuthenticationError: On HTTP 401
            SharePointPermissionError: On HTTP 403
            SharePointNotFoundError: On HTTP 404
            SharePointRateLimitError: On HTTP 429
            SharePointError: On any other status >= 400
        """
        status = response.status_code

        if status == 401:
            logger.error("sharepoint_authentication_error", path=path)
            raise SharePointAuthenticationError(
                f"Authentication failed: {response.text}", status_code=status
            )

        if status == 403:
            logger.error("sharepoint_permission_error", path=path)
            raise SharePointPermissionError(
                f"Permission denied: {response.text}", status_code=status
            )

        if status == 404:
            logger.warning("sharepoint_not_found", path=path)
            raise SharePointNotFoundError(
                f"Resource not found: {path}", status_code=status
            )

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning(
                "sharepoint_rate_limited",
                path=path,
                retry_after=retry_after,
            )
            raise SharePointRateLimitError(
                "Rate limit exceeded",
                retry_after_seconds=(
                    int(retry_after) if retry_after and retry_after.isdigit() else None
                ),
            )

        logger.error(
            "sharepoint_request_error",
            path=path,
            status_code=status,
            response=response.text[:500],
        )
        raise SharePointError(
            f"SharePoint API error {status}: {response.text}", status_code=status
        )

    def _request(
        self,
        method: str,
        path: str,
        stream: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and map failures to SharePoint exceptions.

        Args:
            method: HTTP method
            path: API path relative to /_api (e.g. /web/folders)
            stream: Leave the response body unread for streaming
            **kwargs: Additional arguments for the httpx request

        Returns:
            httpx.Response with status < 400
        """
        client = self._get_client()
        kwargs["headers"] = {**kwargs.get("headers", {}), **self._auth_headers()}

        logger.debug("sharepoint_request", method=method, path=path)

        try:
            if stream:
                request = client.build_request(method, path, **kwargs)
                response = client.send(request, stream=True)
            else:
                response = client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(
                "sharepoint_connection_error",
                method=method,
                path=path,
                error=str(e),
            )
            raise SharePointError(f"Connection error: {e}") from e

        if response.status_code >= 400:
            if stream:
                response.read()
                response.close()
            self._raise_for_status(response, path)

        return response

    @staticmethod
    def _unwrap(payload: Any) -> Any:
        """Strip the OData verbose ``d`` / ``results`` envelope."""
        if isinstance(payload, dict) and "d" in payload:
            payload = payload["d"]
        if isinstance(payload, dict) and isinstance(payload.get("results"), list):
            return payload["results"]
        return payload

    @staticmethod
    def _shape(item: dict[str, Any]) -> dict[str, Any]:
        """Surface the item's Length as an integer ``size``."""
        shaped = dict(item)
        length = shaped.get("Length")
        if "size" not in shaped and length not in (None, ""):
            shaped["size"] = int(length)
        return shaped

    def _item(self, response: httpx.Response) -> dict[str, Any]:
        return self._shape(self._unwrap(response.json()))

    def _file_path(self, path: str) -> str:
        return f"/web/GetFileByServerRelativeUrl({odata_literal(self.server_relative_url(path))})"

    def _folder_path(self, path: str) -> str:
        return f"/web/GetFolderByServerRelativeUrl({odata_literal(self.server_relative_url(path))})"

    def upload(self, path: str, contents: bytes | BinaryIO) -> dict[str, Any]:
        """Upload a file, overwriting any existing file at the path.

        Args:
            path: Library-relative file path
            contents: File content as bytes or a readable binary stream

        Returns:
            Raw item metadata for the uploaded file

        Raises:
            SharePointUploadError: If the upload fails
        """
        folder, _, filename = path.strip("/").rpartition("/")
        if not filename:
            raise SharePointUploadError("Upload path must name a file", filename=path)

        data = contents if isinstance(contents, bytes) else contents.read()

        logger.info(
            "sharepoint_upload_start",
            path=path,
            size=len(data),
        )

        try:
            response = self._request(
                "POST",
                f"{self._folder_path(folder)}/Files/add"
                f"(url={odata_literal(filename)},overwrite=true)",
                content=data,
                headers={"Content-Type": "application/octet-stream"},
            )
        except (
            SharePointAuthenticationError,
            SharePointPermissionError,
            SharePointRateLimitError,
        ):
            raise
        except SharePointError as e:
            raise SharePointUploadError(
                f"Failed to upload {filename}: {e}",
                filename=filename,
            ) from e

        item = self._item(response)
        logger.info(
            "sharepoint_upload_success",
            path=path,
            server_relative_url=item.get("ServerRelativeUrl"),
        )
        return item

    def download(self, path: str) -> BinaryIO:
        """Open a streamed download of a file.

        Returns:
            Readable binary stream; the caller must close it

        Raises:
            SharePointNotFoundError: If the file does not exist
        """
        logger.info("sharepoint_download_start", path=path)
        response = self._request("GET", f"{self._file_path(path)}/$value", stream=True)
        return ResponseStream(response, self.CHUNK_SIZE)  # type: ignore[return-value]

    def move(self, path: str, new_path: str, mime_type: str | None) -> bool:
        """Move a file or folder.

        With mime_type None the file endpoint is tried first and the folder
        endpoint on not-found.
        """
        target = odata_literal(self.server_relative_url(new_path))

        logger.info(
            "sharepoint_move",
            path=path,
            new_path=new_path,
            mime_type=mime_type,
        )

        try:
            self._request(
                "POST", f"{self._file_path(path)}/moveto(newurl={target},flags=1)"
            )
        except SharePointNotFoundError:
            if mime_type is not None:
                raise
            self._request("POST", f"{self._folder_path(path)}/MoveTo(newUrl={target})")
        return True

    def copy(self, path: str, new_path: str, mime_type: str | None) -> bool:
        """Copy a file or folder.

        With mime_type None the file endpoint is tried first and the folder
        copy on not-found.
        """
        logger.info(
            "sharepoint_copy",
            path=path,
            new_path=new_path,
            mime_type=mime_type,
        )

        target = odata_literal(self.server_relative_url(new_path))
        try:
            self._request(
                "POST",
                f"{self._file_path(path)}/copyto(strnewurl={target},boverwrite=true)",
            )
        except SharePointNotFoundError:
            if mime_type is not None:
                raise
            origin = self._settings.sharepoint_site_origin
            self._request(
                "POST",
                "/SP.MoveCopyUtil.CopyFolder()",
                json={
                    "srcUrl": origin + self.server_relative_url(path),
                    "destUrl": origin + self.server_relative_url(new_path),
                },
                headers={"Content-Type": ODATA_VERBOSE},
            )
        return True

    def delete(self, path: str) -> bool:
        """Send a file or folder to the recycle bin.

        Raises:
            SharePointNotFoundError: If neither a file nor a folder exists
        """
        logger.info("sharepoint_delete_start", path=path)
        try:
            self._request("POST", f"{self._file_path(path)}/recycle()")
        except SharePointNotFoundError:
            self._request("POST", f"{self._folder_path(path)}/recycle()")

        logger.info("sharepoint_delete_success", path=path)
        return True

    def create_folder(self, path: str) -> bool:
        """Create a folder; its parent must exist."""
        url = self.server_relative_url(path)
        logger.info("sharepoint_create_folder", path=path, server_relative_url=url)
        self._request(
            "POST",
            "/web/folders",
            json={"__metadata": {"type": "SP.Folder"}, "ServerRelativeUrl": url},
            headers={"Content-Type": ODATA_VERBOSE},
        )
        return True

    def get_metadata(self, path: str, mime_type: str | None) -> dict[str, Any]:
        """Get raw item metadata.

        With mime_type None the folder endpoint is tried first and the file
        endpoint second, so extensionless files still resolve.

        Raises:
            SharePointNotFoundError: If the item does not exist
        """
        logger.debug("sharepoint_get_metadata", path=path, mime_type=mime_type)

        if mime_type is None:
            try:
                item = self._item(self._request("GET", self._folder_path(path)))
                if item.get("Exists") is False:
                    raise SharePointNotFoundError(f"Resource not found: {path}")
                return item
            except SharePointNotFoundError:
                pass

        item = self._item(self._request("GET", self._file_path(path)))
        if item.get("Exists") is False:
            raise SharePointNotFoundError(f"Resource not found: {path}")
        return item

    def list_folder(self, path: str, recursive: bool = False) -> list[dict[str, Any]]:
        """List direct child folders followed by direct child files.

        The library's hidden Forms folder is left out of the root listing.
        ``recursive`` is accepted for interface compatibility; descending into
        subfolders is left to the caller.
        """
        folder = self._folder_path(path)
        logger.debug("sharepoint_list_folder", path=path, recursive=recursive)

        folders = self._unwrap(self._request("GET", f"{folder}/Folders").json())
        files = self._unwrap(self._request("GET", f"{folder}/Files").json())

        if not path.strip("/"):
            folders = [item for item in folders if item.get("Name") != FORMS_FOLDER]

        entries = [self._shape(item) for item in [*folders, *files]]
        logger.debug("sharepoint_list_folder_result", path=path, count=len(entries))
        return entries

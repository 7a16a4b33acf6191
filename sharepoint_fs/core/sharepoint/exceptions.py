"""SharePoint-specific exception classes.

These exceptions map to common SharePoint REST API error scenarios
for file and folder operations.
"""

from sharepoint_fs.core.exceptions import ExternalServiceError


class SharePointError(ExternalServiceError):
    """Base exception for SharePoint operations.

    All SharePoint-related errors should inherit from this class
    to allow catching all SharePoint errors with a single except clause.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SharePointAuthenticationError(SharePointError):
    """Raised when SharePoint authentication fails.

    This can occur when:
    - Client credentials are invalid
    - Token acquisition fails
    - The token is rejected (HTTP 401)
    """

    pass


class SharePointRateLimitError(SharePointError):
    """Raised when SharePoint throttles the request (HTTP 429).

    The retry_after_seconds attribute carries the Retry-After header,
    if the service sent one. No retry is attempted here.
    """

    def __init__(self, message: str, retry_after_seconds: int | None = None):
        super().__init__(message, status_code=429)
        self.retry_after_seconds = retry_after_seconds


class SharePointNotFoundError(SharePointError):
    """Raised when a requested file or folder does not exist.

    This maps to HTTP 404 responses.
    """

    pass


class SharePointPermissionError(SharePointError):
    """Raised when the app lacks permission for the requested operation.

    This maps to HTTP 403 responses.
    Distinct from AuthenticationError which is about credential validity.
    """

    pass


class SharePointUploadError(SharePointError):
    """Raised when a file upload fails."""

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        bytes_uploaded: int | None = None,
    ):
        super().__init__(message)
        self.filename = filename
        self.bytes_uploaded = bytes_uploaded

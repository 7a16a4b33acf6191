"""SharePoint integration for the filesystem abstraction.

This package adapts a SharePoint Online document library to the
path-based FilesystemAdapter interface.

Modules:
    - exceptions: SharePoint-specific exception classes
    - auth: MSAL token management for Azure AD authentication
    - client: SharePointClient protocol and REST implementation
    - normalize: Path prefixing and response normalization
    - adapter: FilesystemAdapter implementation
"""

from sharepoint_fs.core.sharepoint.adapter import SharePointAdapter
from sharepoint_fs.core.sharepoint.auth import (
    SharePointAuthService,
    get_sharepoint_auth,
    reset_sharepoint_auth,
)
from sharepoint_fs.core.sharepoint.client import (
    SharePointClient,
    SharePointRestClient,
)
from sharepoint_fs.core.sharepoint.exceptions import (
    SharePointAuthenticationError,
    SharePointError,
    SharePointNotFoundError,
    SharePointPermissionError,
    SharePointRateLimitError,
    SharePointUploadError,
)
from sharepoint_fs.core.sharepoint.normalize import (
    NormalizedEntry,
    apply_path_prefix,
    normalize_response,
)

__all__ = [
    # Exceptions
    "SharePointError",
    "SharePointAuthenticationError",
    "SharePointRateLimitError",
    "SharePointNotFoundError",
    "SharePointPermissionError",
    "SharePointUploadError",
    # Auth
    "SharePointAuthService",
    "get_sharepoint_auth",
    "reset_sharepoint_auth",
    # Client
    "SharePointClient",
    "SharePointRestClient",
    # Normalization
    "NormalizedEntry",
    "apply_path_prefix",
    "normalize_response",
    # Adapter
    "SharePointAdapter",
]

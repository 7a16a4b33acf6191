"""Path-based filesystem adapter for SharePoint Online document libraries."""

from sharepoint_fs.core.filesystem import (
    FileAttributes,
    FilesystemAdapter,
    get_filesystem,
    reset_filesystem,
)
from sharepoint_fs.core.sharepoint import NormalizedEntry, SharePointAdapter

__all__ = [
    "FileAttributes",
    "FilesystemAdapter",
    "NormalizedEntry",
    "SharePointAdapter",
    "get_filesystem",
    "reset_filesystem",
]

__version__ = "0.1.0"

"""Core exception classes.

All package-specific errors inherit from SharePointFSError, so callers can
catch every adapter failure with a single except clause while still telling
configuration problems apart from remote-service failures.

Exception Hierarchy:
    SharePointFSError (base)
    +-- ConfigurationError (missing/invalid configuration)
    +-- UnsupportedOperationError (operation has no remote counterpart)
    +-- ExternalServiceError (remote service failures)
        +-- SharePointError (defined in core.sharepoint.exceptions)
"""


class SharePointFSError(Exception):
    """Base exception for all package errors.

    Example:
        try:
            adapter.write("reports/q1.pdf", content)
        except SharePointFSError as e:
            logger.error("write_failed", error=str(e), exc_info=True)
            raise
    """

    pass


class ConfigurationError(SharePointFSError):
    """Raised when required configuration is missing or invalid.

    Example:
        if not settings.is_sharepoint_configured:
            raise ConfigurationError("SharePoint is not configured")
    """

    pass


class UnsupportedOperationError(SharePointFSError):
    """Raised for filesystem operations the remote service cannot express.

    Attributes:
        operation: Name of the unsupported operation
    """

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class ExternalServiceError(SharePointFSError):
    """Base exception for remote service/API failures.

    Subclasses exist per service to enable targeted error handling.
    """

    pass

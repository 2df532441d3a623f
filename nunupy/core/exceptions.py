"""
Custom exceptions for build uploads.

Every failure surfaced by the upload engine is one of these classes, so
callers can tell configuration mistakes, control-plane failures and
storage transfer failures apart.
"""
from typing import Optional, List, Any


# Appended to connection failures so users know where to look first.
CONNECTION_HINTS = (
    "Possible causes:\n"
    " - Firewall blocking the endpoint\n"
    " - Network proxy required (set HTTPS_PROXY environment variable)\n"
    " - DNS resolution failure"
)


class NunuException(Exception):
    """Base exception for all nunupy errors."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            status: HTTP status code (if available)
            body: Raw response body (if available)
        """
        self.message = message
        self.status = status
        self.body = body
        super().__init__(message)


class ConfigError(NunuException):
    """Invalid configuration or input. Never retried."""
    pass


class PlatformInferenceError(ConfigError):
    """Raised when the build platform cannot be inferred from a file name."""

    def __init__(self, message: str, extension: str = "") -> None:
        self.extension = extension
        super().__init__(message)


class ApiError(NunuException):
    """Non-success response from a control-plane call."""

    @classmethod
    def from_response(cls, status: int, body: str, action: str = "") -> 'ApiError':
        prefix = f"{action} failed - " if action else ""
        return cls(f"{prefix}Status {status}: {body}", status=status, body=body)


class ApiParseError(ApiError):
    """Control-plane response body could not be parsed."""

    def __init__(self, reason: str, body: str, status: Optional[int] = None) -> None:
        super().__init__(
            f"Failed to parse response: {reason}. Body was: {body}",
            status=status,
            body=body
        )
        self.reason = reason


class ApiConnectionError(ApiError):
    """The backend API could not be reached."""

    def __init__(self, url: str, cause: BaseException) -> None:
        super().__init__(
            f"Cannot connect to {url}. {CONNECTION_HINTS}\nError details: {cause}"
        )
        self.url = url
        self.cause = cause


class UploadError(NunuException):
    """Failure while transferring bytes to storage."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
        code: Optional[str] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            status: HTTP status code returned by storage
            body: Raw response body
            code: Storage error code decoded from the response envelope
        """
        super().__init__(message, status=status, body=body)
        self.code = code


class StorageConnectionError(UploadError):
    """The storage endpoint could not be reached at all."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(
            f"Cannot connect to storage. {CONNECTION_HINTS}\nError details: {cause}"
        )
        self.cause = cause


class UploadCancelledError(NunuException):
    """Raised when uploads are torn down by an external cancellation signal."""

    def __init__(self, message: str = "Upload cancelled", aborted: Optional[List[Any]] = None) -> None:
        super().__init__(message)
        self.aborted = list(aborted or [])

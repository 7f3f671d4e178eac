"""Custom exceptions for upstream data sources."""

from typing import Any


class VaultError(Exception):
    """Base exception for all data source errors.
    
    Attributes:
        message: Human-readable error description.
        code: Short error code string (e.g., "CORRUPT_LOG").
        details: Optional dictionary with additional context.
    """
    
    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize VaultError.
        
        Args:
            message: Human-readable error description.
            code: Short error code string.
            details: Optional dictionary with additional context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
    
    def __str__(self) -> str:
        """Return formatted error string."""
        if self.details:
            return f"[{self.code}] {self.message} (details: {self.details})"
        return f"[{self.code}] {self.message}"
    
    def __repr__(self) -> str:
        """Return repr string."""
        return f"{self.__class__.__name__}(message={self.message!r}, code={self.code!r}, details={self.details!r})"


class StoreError(VaultError):
    """Raised when the local log store cannot serve a request.
    
    Common codes:
        - INVALID_ID: Device ID, date or data type is not a safe path part.
        - CORRUPT_LOG: Log file exists but is not a JSON object.
        - WRITE_FAILED: Log file could not be written.
    """
    pass


class UpstreamError(VaultError):
    """Raised when the remote vault API fails.
    
    Common codes:
        - UPSTREAM_UNAVAILABLE: Connection or timeout failure.
        - UPSTREAM_ERROR: The API answered with an error payload.
        - HTTP_<status>: The API answered with a non-2xx status.
        - INVALID_RESPONSE: The body is not JSON.
    """
    pass

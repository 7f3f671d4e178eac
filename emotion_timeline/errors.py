"""Custom exceptions for emotion timeline normalization."""

from typing import Any


class TimelineError(Exception):
    """Base exception for all emotion timeline errors.
    
    Attributes:
        message: Human-readable error description.
        code: Short error code string (e.g., "MISSING_FIELDS").
        details: Optional dictionary with additional context.
    """
    
    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize TimelineError.
        
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


class NormalizationError(TimelineError):
    """Describes why a raw timeline could not be normalized normally.
    
    Instances are carried on NormalizationResult.error rather than raised
    out of normalize().
    
    Common codes:
        - MISSING_FIELDS: timePoints or emotionScores is absent.
        - INTERNAL_ERROR: An unexpected exception interrupted a stage.
        - FALLBACK_FAILED: The fallback record could not be built either.
    """
    
    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize NormalizationError.
        
        Args:
            message: Human-readable error description.
            code: Short error code string. Defaults to "INTERNAL_ERROR".
            details: Optional dictionary with additional context.
        """
        super().__init__(message, code, details)

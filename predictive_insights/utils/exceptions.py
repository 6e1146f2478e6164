"""
Custom exceptions for the engine.
Insufficient data is not an exception: it is reported through
``PredictiveInsights.data_quality``.
"""

from typing import List, Optional


class AppException(Exception):
    """Base exception for all engine exceptions."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        status_code: int = 500,
        details: Optional[List[str]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or []
        super().__init__(self.message)


class ValidationError(AppException):
    """Raised when caller input is invalid (bad window size, empty user id)."""

    def __init__(
        self,
        message: str = "Validation error",
        details: Optional[List[str]] = None
    ):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=422,
            details=details
        )


class DataUnavailableError(AppException):
    """Raised when the transaction store or category directory fails or times out."""

    def __init__(
        self,
        message: str = "Financial data unavailable",
        source: str = "unknown",
        details: Optional[List[str]] = None
    ):
        self.source = source
        super().__init__(
            message=message,
            code="DATA_UNAVAILABLE",
            status_code=503,
            details=details or [f"Source: {source}"]
        )


class ComputationError(AppException):
    """Raised inside a recommendation rule when its inputs cannot be scored."""

    def __init__(
        self,
        message: str = "Computation failed",
        details: Optional[List[str]] = None
    ):
        super().__init__(
            message=message,
            code="COMPUTATION_ERROR",
            status_code=500,
            details=details
        )

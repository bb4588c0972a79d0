"""
Error types for the trackflags SDK.

Every failure inside flag evaluation is normalised into a TrackflagsError and
handed to an ErrorHandler. Nothing here is raised to the caller of an
evaluation method.
"""

import logging
from enum import Enum
from typing import Optional

import httpx


class ErrorCategory(str, Enum):
    """Categories of errors for classification."""

    NETWORK = "network"
    SERVER = "server"
    RULE = "rule"
    TRACKING = "tracking"
    UNKNOWN = "unknown"


class TrackflagsError(Exception):
    """Base exception for all trackflags SDK errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, category={self.category})"


class NetworkError(TrackflagsError):
    """Raised on timeouts, refused connections and DNS failures."""

    def __init__(self, message: str = "Network error"):
        super().__init__(
            message,
            category=ErrorCategory.NETWORK,
            status_code=None,
        )


class ServerError(TrackflagsError):
    """Raised on a non-200 response or an unparseable body."""

    def __init__(self, message: str = "Server error", status_code: Optional[int] = None):
        super().__init__(
            message,
            category=ErrorCategory.SERVER,
            status_code=status_code,
        )


class RuleEvaluationError(TrackflagsError):
    """Raised when a runtime evaluation rule cannot be applied."""

    def __init__(self, message: str = "Invalid runtime evaluation rule"):
        super().__init__(message, category=ErrorCategory.RULE)


class TrackingError(TrackflagsError):
    """Wraps a failure raised by the exposure tracker callback."""

    def __init__(self, message: str = "Exposure tracking failed"):
        super().__init__(message, category=ErrorCategory.TRACKING)


def classify_error(error: Exception, status_code: Optional[int] = None) -> TrackflagsError:
    """
    Classify an exception into a TrackflagsError.

    Args:
        error: The original exception
        status_code: Optional HTTP status code

    Returns:
        A classified TrackflagsError
    """
    if isinstance(error, TrackflagsError):
        return error

    message = str(error)

    if isinstance(error, httpx.TimeoutException):
        return NetworkError(f"Request timeout: {message}")
    if isinstance(error, httpx.TransportError):
        return NetworkError(f"Network error: {message}")

    if status_code:
        return ServerError(message, status_code)

    return TrackflagsError(message)


class ErrorHandler:
    """
    Receives every error the SDK contains.

    The default implementation ignores errors. Subclass it and override
    ``handle`` to log or count them:

        ```python
        class MyErrorHandler(ErrorHandler):
            def handle(self, error):
                sentry_sdk.capture_exception(error)
        ```

    ``handle`` may be called concurrently from the poller and from
    evaluation calls.
    """

    def handle(self, error: TrackflagsError) -> None:
        pass


class LoggingErrorHandler(ErrorHandler):
    """Error handler that writes every error to a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.ERROR):
        self._logger = logger or logging.getLogger("trackflags")
        self._level = level

    def handle(self, error: TrackflagsError) -> None:
        category = getattr(error, "category", ErrorCategory.UNKNOWN)
        self._logger.log(self._level, f"[{category.value}] {error}")

"""Lightspeed X-Series client exceptions."""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class LightspeedError(Exception):
    """Base exception for all Lightspeed client errors."""

    def __init__(
        self,
        message: str,
        original_exception: Optional[Exception] = None,
        **context
    ):
        """
        Initialize the error with context and log it.

        Args:
            message (str): Primary error message
            original_exception (Optional[Exception]): Underlying exception, if any
            **context: Additional error context
        """
        self.message = message
        self.original_exception = original_exception
        self.context = context

        log_message = f"{self.__class__.__name__}: {message}"
        if context:
            log_message += f" | Context: {context}"

        logger.error(log_message)

        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for structured logs."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class InvalidVersionFormat(LightspeedError):
    """Raised when a version is not in YYYY-MM form."""

    def __init__(self, version: str, example: str = "'2026-01', '2026-04'", **kwargs):
        self.version = version
        self.example = example
        super().__init__(
            f"Invalid API version format: '{version}'. "
            f"Expected YYYY-MM format (e.g., {example}).",
            **kwargs
        )


class InvalidMethod(LightspeedError):
    """Raised for an HTTP verb the API does not accept."""

    def __init__(self, method: str, **kwargs):
        self.method = method
        super().__init__(
            f"Invalid HTTP method: {method}. Use: get, post, put, delete",
            **kwargs
        )


class UnexpectedNullResult(LightspeedError):
    """Raised when the response body decodes to null or does not decode at all."""

    def __init__(self, raw_body: str = "", **kwargs):
        self.raw_body = raw_body
        super().__init__("Received null result from API", **kwargs)


class RateLimitError(LightspeedError):
    """Base class for rate-limit failures that are not retried."""

    def __init__(self, message: str, retry_after: Optional[float] = None, **kwargs):
        self.retry_after = retry_after
        super().__init__(message, **kwargs)


class RateLimitClockSkew(RateLimitError):
    """Raised when the server's retry-after is already in the past."""

    def __init__(self, retry_after: Optional[float] = None, **kwargs):
        super().__init__(
            "Rate limit hit and retry-after is in the past. "
            "Check system time or set allow_time_slip = True",
            retry_after=retry_after,
            **kwargs
        )


class RateLimitTimeout(RateLimitError):
    """Raised when waiting out a rate limit would exceed the caller's budget."""

    def __init__(
        self,
        waited: float,
        max_wait: float,
        retry_after: Optional[float] = None,
        **kwargs
    ):
        self.waited = waited
        self.max_wait = max_wait
        super().__init__(
            f"Rate limit wait budget of {max_wait:g}s exhausted "
            f"after {waited:g}s",
            retry_after=retry_after,
            **kwargs
        )


class HttpError(LightspeedError):
    """Raised for HTTP status codes of 400 and above (other than 429)."""

    def __init__(self, status_code: int, message: str, raw_body: str = "", **kwargs):
        self.status_code = status_code
        self.error_message = message
        self.raw_body = raw_body
        super().__init__(f"HTTP {status_code}: {message} - {raw_body}", **kwargs)


class ApplicationError(LightspeedError):
    """Raised when a successful response carries an `error` field."""

    def __init__(self, message: str, details: Optional[str] = None, **kwargs):
        self.error_message = message
        self.details = details
        full = f"{message}: {details}" if details else message
        super().__init__(full, **kwargs)


class OAuthError(LightspeedError):
    """Raised when the token endpoint rejects a request."""

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        self.error_message = message
        self.status_code = status_code
        super().__init__(f"OAuth error: {message}", **kwargs)


class OAuthResponseError(LightspeedError):
    """Raised when the token endpoint answers with something other than JSON."""

    def __init__(self, raw_body: str = "", **kwargs):
        self.raw_body = raw_body
        super().__init__("Invalid JSON response from OAuth endpoint", **kwargs)


class TransportError(LightspeedError):
    """Raised when the HTTP exchange itself fails."""

    def __init__(self, message: str, error_type: str = "unknown", **kwargs):
        self.error_type = error_type
        super().__init__(message, **kwargs)


class EntityError(LightspeedError):
    """Raised when an entity operation cannot be carried out."""
    pass

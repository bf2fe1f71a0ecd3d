"""
Exception hierarchy for request contexts.
Every failure surfaces synchronously to the caller; nothing is retried.
"""

from typing import Optional, Dict, Any
import traceback


class RoxException(Exception):
    """Base exception for all reqrox errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause
        self.traceback = traceback.format_exc() if cause else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/reporting."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        base = f"{self.__class__.__name__}: {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        if self.cause:
            base += f" | Caused by: {self.cause}"
        return base


class ConfigError(RoxException):
    """Invalid configuration detected at setter or load time."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details.update({"config_key": config_key, "config_value": config_value})
        super().__init__(message, details=details, **kwargs)
        self.config_key = config_key
        self.config_value = config_value


class TransportError(RoxException):
    """
    The underlying HTTP call failed.
    `message` carries the transport's own error text.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        method: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details.update({"url": url, "method": method})
        super().__init__(message, details=details, **kwargs)
        self.url = url
        self.method = method


class TransportTimeoutError(TransportError):
    """Connect or read timeout exceeded."""

    pass


class TransportConnectionError(TransportError):
    """DNS failure, refused connection and similar."""

    pass


class TLSError(TransportConnectionError):
    """TLS handshake or certificate verification failure."""

    pass


class StateError(RoxException):
    """Operation requires a request that has not been executed yet."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        details.update({"operation": operation})
        super().__init__(message, details=details, **kwargs)
        self.operation = operation


class ParseError(RoxException):
    """Stored body could not be parsed as the requested format."""

    def __init__(self, message: str, content_format: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        details.update({"format": content_format})
        super().__init__(message, details=details, **kwargs)
        self.content_format = content_format

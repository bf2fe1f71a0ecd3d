"""Core request context components."""

from .context import RequestContext
from .config import ContextConfig, DEFAULT_USER_AGENT
from .cookie_store import CookieStore
from .request_wrapper import RequestDescriptor, HTTPMethod, build_descriptor, encode_form_payload
from .transport import Transport, TransportResult
from .pool import FetchOutcome, fetch_all
from .exceptions import (
    RoxException,
    ConfigError,
    TransportError,
    TransportTimeoutError,
    TransportConnectionError,
    TLSError,
    StateError,
    ParseError,
)
from .logger import get_logger, setup_logging

__all__ = [
    "RequestContext",
    "ContextConfig",
    "DEFAULT_USER_AGENT",
    "CookieStore",
    "RequestDescriptor",
    "HTTPMethod",
    "build_descriptor",
    "encode_form_payload",
    "Transport",
    "TransportResult",
    "FetchOutcome",
    "fetch_all",
    "RoxException",
    "ConfigError",
    "TransportError",
    "TransportTimeoutError",
    "TransportConnectionError",
    "TLSError",
    "StateError",
    "ParseError",
    "get_logger",
    "setup_logging",
]

"""
reqrox - GET/POST request contexts with a per-context cookie jar.
"""

__version__ = "1.0.0"
__license__ = "MIT"

from reqrox.core.context import RequestContext
from reqrox.core.config import ContextConfig
from reqrox.core.exceptions import (
    RoxException,
    ConfigError,
    TransportError,
    StateError,
    ParseError,
)
from reqrox.core.pool import fetch_all
from reqrox.core.logger import get_logger

__all__ = [
    "RequestContext",
    "ContextConfig",
    "RoxException",
    "ConfigError",
    "TransportError",
    "StateError",
    "ParseError",
    "fetch_all",
    "get_logger",
    "__version__",
]

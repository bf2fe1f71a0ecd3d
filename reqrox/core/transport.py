"""
HTTP transport on top of requests.
Executes one RequestDescriptor per call against a fresh session whose
cookies are read from and written back to the descriptor's cookie file.
"""

import sys
import time
from dataclasses import dataclass, field
from email.message import Message
from http.cookiejar import MozillaCookieJar, LoadError
from typing import Optional, Dict, Any, BinaryIO, Union

import requests
from urllib3.exceptions import InsecureRequestWarning

from .request_wrapper import RequestDescriptor
from .exceptions import (
    TransportError,
    TransportTimeoutError,
    TransportConnectionError,
    TLSError,
)
from .logger import get_logger

# Verification is off unless a context opts in; don't warn on every request
requests.packages.urllib3.disable_warnings(InsecureRequestWarning)

logger = get_logger("transport")


def declared_charset(content_type: Optional[str]) -> Optional[str]:
    """Charset parameter of a Content-Type header, None when not given."""
    if not content_type:
        return None
    message = Message()
    message["Content-Type"] = content_type
    return message.get_content_charset()


@dataclass
class TransportResult:
    """Body bytes, declared charset and protocol metadata of one completed request."""
    body: Optional[bytes]
    metadata: Dict[str, Any] = field(default_factory=dict)
    encoding: Optional[str] = None


class RefererSession(requests.Session):
    """
    Session that sets Referer to the previous URL on every redirect hop
    when `auto_referer` is on.
    """

    def __init__(self, auto_referer: bool = True):
        super().__init__()
        self.auto_referer = auto_referer

    def rebuild_auth(self, prepared_request, response):
        super().rebuild_auth(prepared_request, response)
        if self.auto_referer:
            prepared_request.headers["Referer"] = response.url


class Transport:
    """
    perform(descriptor) -> TransportResult, or raises TransportError.

    No pooling and no retries: every call opens and closes its own session.
    """

    def __init__(self, output_stream: Optional[BinaryIO] = None):
        self._output_stream = output_stream

    @property
    def output_stream(self) -> BinaryIO:
        """Binary stream bodies go to when the descriptor does not return them."""
        if self._output_stream is not None:
            return self._output_stream
        sys.stdout.flush()
        return sys.stdout.buffer

    def perform(self, descriptor: RequestDescriptor) -> TransportResult:
        """
        Execute a single HTTP request.

        Raises:
            TLSError: On certificate or handshake failure
            TransportTimeoutError: On connect or read timeout
            TransportConnectionError: On DNS or connection failure
            TransportError: On any other transport failure
        """
        method = descriptor.method.value
        jar = self._load_jar(descriptor)

        session = RefererSession(auto_referer=descriptor.auto_referer)
        session.cookies = jar

        kwargs = {
            "method": method,
            "url": descriptor.url,
            "headers": dict(descriptor.headers),
            "timeout": descriptor.timeouts,
            "allow_redirects": descriptor.follow_redirects,
            "verify": descriptor.verify,
        }
        if descriptor.is_post and descriptor.body is not None:
            kwargs["data"] = descriptor.body

        start_time = time.time()
        try:
            logger.debug(f"Sending {method} request to {descriptor.url}")
            response = session.request(**kwargs)
            elapsed = time.time() - start_time
        except requests.exceptions.SSLError as e:
            raise TLSError(str(e), url=descriptor.url, method=method, cause=e)
        except requests.exceptions.Timeout as e:
            raise TransportTimeoutError(str(e), url=descriptor.url, method=method, cause=e)
        except requests.exceptions.ConnectionError as e:
            raise TransportConnectionError(str(e), url=descriptor.url, method=method, cause=e)
        except requests.exceptions.RequestException as e:
            raise TransportError(str(e), url=descriptor.url, method=method, cause=e)
        finally:
            session.close()

        self._save_jar(jar, descriptor)

        logger.debug(
            f"Response: {response.status_code} "
            f"({len(response.content)} bytes, {elapsed:.3f}s)"
        )

        body: Optional[bytes] = response.content
        if not descriptor.return_body_as_string:
            stream = self.output_stream
            stream.write(body)
            stream.flush()
            body = None

        return TransportResult(
            body=body,
            metadata=self._build_metadata(descriptor, response, elapsed),
            encoding=declared_charset(response.headers.get("Content-Type")),
        )

    @staticmethod
    def _load_jar(descriptor: RequestDescriptor) -> MozillaCookieJar:
        if descriptor.cookie_file is None:
            return MozillaCookieJar()

        jar = MozillaCookieJar(str(descriptor.cookie_file))
        try:
            jar.load(ignore_discard=True, ignore_expires=True)
        except (LoadError, OSError) as e:
            raise TransportError(
                f"Cannot read cookie jar {descriptor.cookie_file}: {e}",
                url=descriptor.url,
                method=descriptor.method.value,
                cause=e,
            )
        return jar

    @staticmethod
    def _save_jar(jar: MozillaCookieJar, descriptor: RequestDescriptor) -> None:
        if descriptor.cookie_file is None:
            return
        try:
            jar.save(ignore_discard=True, ignore_expires=True)
        except OSError as e:
            raise TransportError(
                f"Cannot write cookie jar {descriptor.cookie_file}: {e}",
                url=descriptor.url,
                method=descriptor.method.value,
                cause=e,
            )

    @staticmethod
    def _build_metadata(
        descriptor: RequestDescriptor,
        response: requests.Response,
        elapsed: float,
    ) -> Dict[str, Any]:
        body: Union[str, bytes, None] = descriptor.body if descriptor.is_post else None
        if isinstance(body, str):
            size_upload = len(body.encode("utf-8"))
        else:
            size_upload = len(body) if body else 0

        return {
            "url": response.url,
            "http_code": response.status_code,
            "method": response.request.method,
            "content_type": response.headers.get("Content-Type"),
            "redirect_count": len(response.history),
            "redirect_history": [r.url for r in response.history],
            "total_time": elapsed,
            "size_download": len(response.content),
            "size_upload": size_upload,
            "request_headers": dict(response.request.headers),
            "response_headers": dict(response.headers),
            "tls_verify": descriptor.verify is not False,
        }

"""
RequestContext: configuration, execution and inspection of GET/POST requests
sharing one cookie jar file.
"""

import dataclasses
import fcntl
import json
import uuid
from http.cookiejar import MozillaCookieJar
from pathlib import Path
from typing import Optional, Dict, Any, Callable, Union

from .config import ContextConfig, HeadersInput, validate_timeout, validate_ca_cert
from .cookie_store import CookieStore
from .document import parse_html
from .exceptions import StateError, ParseError
from .logger import get_logger, LogContext
from .request_wrapper import (
    PayloadInput,
    RequestDescriptor,
    build_descriptor,
    encode_form_payload,
    normalize_headers,
)
from .transport import Transport

logger = get_logger("context")

STATUS_KEY = "http_code"
HTTP_OK = 200


class RequestContext:
    """
    One configurable HTTP client with its own cookie jar.

    Configuration setters return the context so calls can be chained:

        with RequestContext() as ctx:
            ctx.set_uri("http://example.com/login").set_post_payload(
                {"user": "me", "password": "secret"}
            ).execute_post()
            ctx.set_uri("http://example.com/account").execute_get()
            print(ctx.get_last_status_code())

    Cookies set by any response are replayed on every later request made
    through the same context. A context is not safe to use from several
    threads at once; give each worker its own.
    """

    def __init__(
        self,
        config: Optional[ContextConfig] = None,
        transport: Optional[Transport] = None,
        **overrides,
    ):
        base = config if config is not None else ContextConfig()
        self._config = dataclasses.replace(base, **overrides)
        self._config.headers = normalize_headers(self._config.headers)
        self._transport = transport if transport is not None else Transport()

        self.id = str(uuid.uuid4())[:8]
        self._cookie_store = CookieStore(self._config.resolved_temp_dir)

        self._post_payload: Optional[Union[str, bytes]] = None
        self._post_payload_source: PayloadInput = None

        self._raw_response_body: Optional[bytes] = None
        self._response_encoding: Optional[str] = None
        self._response_metadata: Dict[str, Any] = {}
        self._has_executed = False

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def enable_tls_verification(self, ca_cert_path: Union[str, Path]) -> "RequestContext":
        """
        Verify peer certificate and hostname against `ca_cert_path`.

        Raises:
            ConfigError: If the CA file does not exist. Verification stays off.
        """
        path = validate_ca_cert(ca_cert_path)
        self._config.ca_cert_path = path
        self._config.tls_verify = True
        return self

    def disable_tls_verification(self) -> "RequestContext":
        self._config.tls_verify = False
        return self

    def set_post_payload(self, payload: PayloadInput) -> "RequestContext":
        """
        Set the POST body. Mappings and pair sequences are form-encoded now;
        `post_payload` returns the encoded form from then on.
        """
        self._post_payload = encode_form_payload(payload)
        self._post_payload_source = payload
        return self

    def set_uri(self, uri: str) -> "RequestContext":
        self._config.uri = uri
        return self

    def set_user_agent(self, user_agent: str) -> "RequestContext":
        self._config.user_agent = user_agent
        return self

    def set_timeout(self, timeout: int) -> "RequestContext":
        self._config.timeout = validate_timeout(timeout)
        return self

    def set_follow_redirects(self, follow: bool) -> "RequestContext":
        self._config.follow_redirects = bool(follow)
        return self

    def set_auto_referer(self, auto_referer: bool) -> "RequestContext":
        self._config.auto_referer = bool(auto_referer)
        return self

    def set_headers(self, headers: HeadersInput) -> "RequestContext":
        self._config.headers = normalize_headers(headers)
        return self

    def set_return_body_as_string(self, enabled: bool) -> "RequestContext":
        self._config.return_body_as_string = bool(enabled)
        return self

    @property
    def config(self) -> ContextConfig:
        """A copy of the current configuration."""
        return dataclasses.replace(self._config, headers=dict(self._config.headers))

    @property
    def uri(self) -> str:
        return self._config.uri

    @property
    def user_agent(self) -> str:
        return self._config.user_agent

    @property
    def timeout(self) -> int:
        return self._config.timeout

    @property
    def follow_redirects(self) -> bool:
        return self._config.follow_redirects

    @property
    def auto_referer(self) -> bool:
        return self._config.auto_referer

    @property
    def tls_verify(self) -> bool:
        return self._config.tls_verify

    @property
    def ca_cert_path(self) -> Optional[Path]:
        return self._config.ca_cert_path

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._config.headers)

    @property
    def return_body_as_string(self) -> bool:
        return self._config.return_body_as_string

    @property
    def post_payload(self) -> Optional[Union[str, bytes]]:
        """Encoded POST body, as it will be sent."""
        return self._post_payload

    @property
    def post_payload_source(self) -> PayloadInput:
        """The value last given to `set_post_payload`."""
        return self._post_payload_source

    @property
    def cookie_store_path(self) -> Path:
        return self._cookie_store.path

    @property
    def cookies(self) -> MozillaCookieJar:
        """Cookies currently persisted in this context's jar."""
        self._ensure_open("cookies")
        return self._cookie_store.load()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def build_descriptor(self, is_post: bool = False) -> RequestDescriptor:
        """The descriptor the next GET (or POST) would send."""
        return build_descriptor(
            self._config,
            self._cookie_store.path,
            post_payload=self._post_payload,
            is_post=is_post,
        )

    def execute_get(self) -> "RequestContext":
        """
        Perform a GET on `uri` and record body and metadata.

        Raises:
            TransportError: If the request could not be completed. Non-2xx
                responses are not errors.
        """
        return self._execute(is_post=False)

    def execute_post(self) -> "RequestContext":
        """Perform a POST with the encoded payload; see `execute_get`."""
        return self._execute(is_post=True)

    def _execute(self, is_post: bool) -> "RequestContext":
        self._ensure_open("execute_post" if is_post else "execute_get")
        descriptor = self.build_descriptor(is_post=is_post)

        with LogContext(logger, context_id=self.id, url=descriptor.url):
            result = self._transport.perform(descriptor)
            logger.debug(
                f"{descriptor.method.value} {descriptor.url} -> "
                f"{result.metadata.get(STATUS_KEY)}"
            )

        # Only a completed request replaces the previous outcome
        self._raw_response_body = result.body
        self._response_encoding = result.encoding
        self._response_metadata = dict(result.metadata)
        self._has_executed = True
        return self

    # ------------------------------------------------------------------
    # Response introspection
    # ------------------------------------------------------------------

    @property
    def has_executed(self) -> bool:
        return self._has_executed

    @property
    def raw_response_body(self) -> Optional[bytes]:
        return self._raw_response_body

    @property
    def response_encoding(self) -> Optional[str]:
        """Charset declared by the last response, if any."""
        return self._response_encoding

    @property
    def response_text(self) -> Optional[str]:
        """
        Last body decoded with its declared charset, UTF-8 when none was
        declared. Undecodable bytes are replaced.
        """
        if self._raw_response_body is None:
            return None
        encoding = self._response_encoding or "utf-8"
        try:
            return self._raw_response_body.decode(encoding, "replace")
        except LookupError:
            return self._raw_response_body.decode("utf-8", "replace")

    @property
    def response_metadata(self) -> Dict[str, Any]:
        return dict(self._response_metadata)

    def get_metadata(self, key: Optional[str] = None) -> Any:
        """Whole metadata mapping, or one field (None when absent)."""
        if key is None:
            return dict(self._response_metadata)
        return self._response_metadata.get(key)

    def get_response_body(self, decode_json: bool = False) -> Any:
        """
        Last response body as received (bytes), optionally decoded as JSON.

        Raises:
            ParseError: If `decode_json` is set and the body is not valid JSON.
        """
        body = self._raw_response_body
        if not decode_json or body is None:
            return body

        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(
                f"Response body is not valid JSON: {e}",
                content_format="json",
                cause=e,
            )

    def is_success_status(self) -> bool:
        """True only for an exact 200 status."""
        return self._response_metadata.get(STATUS_KEY) == HTTP_OK

    def get_last_status_code(self) -> int:
        if not self._has_executed:
            raise StateError(
                "No request executed yet to get the last http code",
                operation="get_last_status_code",
            )
        return self._response_metadata.get(STATUS_KEY)

    def invoke_with_parsed_document(
        self,
        callback: Callable[[Optional[bytes], Any, "RequestContext"], Any],
    ) -> "RequestContext":
        """
        Parse the body as HTML and call `callback(raw_body, document, self)`
        once, in the calling thread.
        """
        if not callable(callback):
            raise TypeError(f"{callback!r} is not a valid callable")
        if not self._has_executed:
            raise StateError(
                "No request executed yet to parse a document from",
                operation="invoke_with_parsed_document",
            )

        raw_body = self._raw_response_body
        document = parse_html(raw_body, encoding=self._response_encoding or "utf-8")
        callback(raw_body, document, self)
        return self

    def write_response_to_file(self, path: Union[str, Path]) -> "RequestContext":
        """
        Replace the contents of `path` with the last body, holding an
        exclusive lock on the file while writing.
        """
        if self._raw_response_body is None:
            raise StateError(
                "No response body to write",
                operation="write_response_to_file",
            )

        # Append mode so opening does not truncate before the lock is held
        with open(path, "ab") as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                handle.seek(0)
                handle.truncate()
                handle.write(self._raw_response_body)
                handle.flush()
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

        logger.info(f"Wrote response to {path}")
        return self

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._cookie_store.closed

    def close(self) -> None:
        """Remove the cookie jar file. Further requests raise StateError."""
        self._cookie_store.close()

    def _ensure_open(self, operation: str) -> None:
        if self.closed:
            raise StateError("Request context is closed", operation=operation)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return (
            f"RequestContext(id={self.id!r}, uri={self._config.uri!r}, "
            f"has_executed={self._has_executed}, closed={self.closed})"
        )

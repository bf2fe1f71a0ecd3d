"""
Request descriptor assembly.
Turns a context's configuration into the immutable description the
transport executes.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, Mapping, Sequence, Tuple, Union
from urllib.parse import urlencode
from enum import Enum

from .config import ContextConfig, HeadersInput
from .exceptions import ConfigError


class HTTPMethod(Enum):
    """Supported HTTP methods."""
    GET = "GET"
    POST = "POST"


class ContentType(Enum):
    """Content types the wrapper sets itself."""
    FORM = "application/x-www-form-urlencoded"


PayloadInput = Union[str, bytes, Mapping[str, Any], Sequence[Tuple[str, Any]], None]


def encode_form_payload(payload: PayloadInput) -> Optional[Union[str, bytes]]:
    """
    Encode `payload` as an application/x-www-form-urlencoded body.

    Mappings and sequences of pairs are encoded (`a=1&b=x+y`, list values
    repeated). Strings and bytes are taken to be encoded already.
    """
    if payload is None or isinstance(payload, (str, bytes)):
        return payload

    if isinstance(payload, Mapping):
        return urlencode(list(payload.items()), doseq=True)

    if isinstance(payload, Sequence):
        try:
            pairs = [(key, value) for key, value in payload]
        except (TypeError, ValueError) as e:
            raise ConfigError(
                "Post payload sequence must contain (key, value) pairs",
                config_key="post_payload",
                config_value=payload,
                cause=e,
            )
        return urlencode(pairs, doseq=True)

    raise ConfigError(
        f"Unsupported post payload type: {type(payload).__name__}",
        config_key="post_payload",
        config_value=payload,
    )


def normalize_headers(headers: Optional[HeadersInput]) -> Dict[str, str]:
    """Accept a header mapping or a list of `Name: value` lines."""
    if not headers:
        return {}

    if isinstance(headers, Mapping):
        return {str(name): str(value) for name, value in headers.items()}

    normalized: Dict[str, str] = {}
    for line in headers:
        if not isinstance(line, str) or ":" not in line:
            raise ConfigError(
                f"Malformed header line: {line!r}",
                config_key="headers",
                config_value=line,
            )
        name, value = line.split(":", 1)
        if not name.strip():
            raise ConfigError(
                f"Malformed header line: {line!r}",
                config_key="headers",
                config_value=line,
            )
        normalized[name.strip()] = value.strip()
    return normalized


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    name_lower = name.lower()
    return any(key.lower() == name_lower for key in headers)


@dataclass(frozen=True)
class RequestDescriptor:
    """
    Immutable description of one request, as handed to the transport.
    """
    url: str
    method: HTTPMethod = HTTPMethod.GET
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Union[str, bytes]] = None
    timeout: int = 30
    follow_redirects: bool = True
    auto_referer: bool = True
    # False, or the CA bundle used for peer and hostname verification
    verify: Union[bool, str] = False
    cookie_file: Optional[Path] = None
    return_body_as_string: bool = True

    @property
    def is_post(self) -> bool:
        return self.method is HTTPMethod.POST

    @property
    def timeouts(self) -> Optional[Tuple[int, int]]:
        """(connect, read) timeouts, or None when the timeout is 0 (no limit)."""
        if self.timeout == 0:
            return None
        return (self.timeout, self.timeout)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "url": self.url,
            "method": self.method.value,
            "headers": dict(self.headers),
            "body": self.body,
            "timeout": self.timeout,
            "follow_redirects": self.follow_redirects,
            "auto_referer": self.auto_referer,
            "verify": self.verify,
            "cookie_file": str(self.cookie_file) if self.cookie_file else None,
            "return_body_as_string": self.return_body_as_string,
        }

    def to_curl(self) -> str:
        """Generate the equivalent curl command."""
        parts = [f"curl -X {self.method.value}"]

        for key, value in self.headers.items():
            parts.append(f"-H '{key}: {value}'")

        if self.cookie_file:
            parts.append(f"-b '{self.cookie_file}' -c '{self.cookie_file}'")

        if self.body is not None:
            body = self.body.decode("utf-8", "replace") if isinstance(self.body, bytes) else self.body
            parts.append(f"-d '{body}'")

        parts.append(f"--max-time {self.timeout} --connect-timeout {self.timeout}")

        if self.follow_redirects:
            parts.append("-L")

        if self.verify is False:
            parts.append("-k")
        else:
            parts.append(f"--cacert '{self.verify}'")

        parts.append(f"'{self.url}'")

        return " \\\n  ".join(parts)


def build_descriptor(
    config: ContextConfig,
    cookie_file: Optional[Path],
    post_payload: Optional[Union[str, bytes]] = None,
    is_post: bool = False,
) -> RequestDescriptor:
    """
    Assemble the transport descriptor from the current configuration.

    The uri is not checked here; an empty or malformed one fails in the
    transport.
    """
    headers: Dict[str, str] = {"User-Agent": config.user_agent}
    explicit = normalize_headers(config.headers)
    for name in list(headers):
        if _has_header(explicit, name):
            del headers[name]
    headers.update(explicit)

    verify: Union[bool, str] = False
    if config.tls_verify:
        verify = str(config.ca_cert_path)

    method = HTTPMethod.GET
    body = None
    if is_post:
        method = HTTPMethod.POST
        body = post_payload
        if not _has_header(headers, "Content-Type"):
            headers["Content-Type"] = ContentType.FORM.value

    return RequestDescriptor(
        url=config.uri,
        method=method,
        headers=headers,
        body=body,
        timeout=config.timeout,
        follow_redirects=config.follow_redirects,
        auto_referer=config.auto_referer,
        verify=verify,
        cookie_file=cookie_file,
        return_body_as_string=config.return_body_as_string,
    )

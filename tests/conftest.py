"""
Pytest configuration and shared fixtures.
"""

import json
import socket
import ssl
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import List
from urllib.parse import parse_qsl, urlparse

import pytest
import trustme

from reqrox.core.config import ContextConfig
from reqrox.core.request_wrapper import RequestDescriptor
from reqrox.core.transport import Transport, TransportResult


# ============================================================
# Local HTTP endpoint
# ============================================================


HTML_PAGE = """<!DOCTYPE html>
<html>
  <head><title>Links</title></head>
  <body>
    <a href="/one">One</a>
    <a href="/two">Two</a>
    <p class="note">plain text</p>
  </body>
</html>
"""

# Not valid UTF-8
BINARY_BODY = b"\x89PNG\r\n\x1a\n\x00\xff\xfe\x80caf\xc3\xa9"

# Served as text/html with no charset parameter
UTF8_PAGE = "<html><body><p class=\"name\">café</p></body></html>"


class EchoHandler(BaseHTTPRequestHandler):
    """Small test server: echoes forms and headers, sets cookies, redirects."""

    def log_message(self, format, *args):
        pass

    def _send(self, status: int, body, content_type: str = "application/json", extra=None):
        data = body if isinstance(body, bytes) else body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        for name, value in (extra or []):
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(data)

    def _headers_json(self) -> str:
        return json.dumps({"headers": dict(self.headers.items()), "method": self.command})

    def _route(self, body: str = ""):
        path = urlparse(self.path).path

        if path == "/echo":
            fields = dict(parse_qsl(body, keep_blank_values=True))
            self._send(200, json.dumps(fields))
        elif path == "/headers":
            self._send(200, self._headers_json())
        elif path == "/cookie":
            self._send(200, self._headers_json(), extra=[("Set-Cookie", "session=abc123; Path=/")])
        elif path == "/redirect":
            self._send(302, "", content_type="text/plain", extra=[("Location", "/headers")])
        elif path == "/html":
            self._send(200, HTML_PAGE, content_type="text/html; charset=utf-8")
        elif path == "/text":
            self._send(200, "not json at all", content_type="text/plain; charset=utf-8")
        elif path == "/binary":
            self._send(200, BINARY_BODY, content_type="application/octet-stream")
        elif path == "/utf8-page":
            self._send(200, UTF8_PAGE.encode("utf-8"), content_type="text/html")
        elif path.startswith("/status/"):
            code = int(path.rsplit("/", 1)[1])
            self._send(code, json.dumps({"status": code}))
        elif path == "/slow":
            time.sleep(2)
            self._send(200, "{}")
        else:
            self._send(404, json.dumps({"error": "not found"}))

    def do_GET(self):
        self._route()

    def do_POST(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length).decode("utf-8")
        self._route(body)


@pytest.fixture(scope="session")
def http_server():
    """Base URL of a threaded local HTTP server."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), EchoHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"

    server.shutdown()
    server.server_close()


@pytest.fixture(scope="session")
def tls_authority():
    return trustme.CA()


@pytest.fixture(scope="session")
def https_server(tls_authority):
    """Base URL of a local HTTPS server with a certificate from `tls_authority`."""
    server_context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    tls_authority.issue_cert("127.0.0.1", "localhost").configure_cert(server_context)

    server = ThreadingHTTPServer(("127.0.0.1", 0), EchoHandler)
    server.daemon_threads = True
    server.socket = server_context.wrap_socket(server.socket, server_side=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    host, port = server.server_address[:2]
    yield f"https://{host}:{port}"

    server.shutdown()
    server.server_close()


@pytest.fixture(scope="session")
def trusted_ca_file(tls_authority, tmp_path_factory):
    """PEM bundle holding the CA that signed the HTTPS server certificate."""
    path = tmp_path_factory.mktemp("tls") / "trusted-ca.pem"
    tls_authority.cert_pem.write_to_path(str(path))
    return path


@pytest.fixture(scope="session")
def foreign_ca_file(tmp_path_factory):
    """PEM bundle holding an unrelated CA."""
    path = tmp_path_factory.mktemp("tls") / "foreign-ca.pem"
    trustme.CA().cert_pem.write_to_path(str(path))
    return path


@pytest.fixture(autouse=True)
def no_proxy_env(monkeypatch):
    """Keep requests to the local server off any proxy from the environment."""
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def closed_port_url():
    """A URL on a local port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/"


# ============================================================
# Configuration and transport doubles
# ============================================================


@pytest.fixture
def config(tmp_path):
    """Default configuration with cookie files under tmp_path."""
    return ContextConfig(temp_dir=tmp_path)


@pytest.fixture
def ca_bundle(tmp_path):
    """An existing file to use as CA bundle path."""
    path = tmp_path / "ca.pem"
    path.write_text("-----BEGIN CERTIFICATE-----\n-----END CERTIFICATE-----\n")
    return path


class RecordingTransport(Transport):
    """Transport that records descriptors and replays canned results."""

    def __init__(self, results=None, error=None):
        super().__init__()
        self.results: List[TransportResult] = list(results or [])
        self.error = error
        self.descriptors: List[RequestDescriptor] = []

    def perform(self, descriptor: RequestDescriptor) -> TransportResult:
        self.descriptors.append(descriptor)
        if self.error is not None:
            raise self.error
        if self.results:
            return self.results.pop(0)
        return TransportResult(body=b'{"ok": true}', metadata={"http_code": 200, "url": descriptor.url})


@pytest.fixture
def recording_transport():
    return RecordingTransport()

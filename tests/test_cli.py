"""
Tests for the command-line interface.
"""

import importlib
import json

import pytest

from reqrox.cli.arguments import parse_arguments
from reqrox.cli.main import create_config_from_args, main, parse_post_fields

from .conftest import BINARY_BODY

cli_main = importlib.import_module("reqrox.cli.main")


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli_main, "setup_logging", lambda **kwargs: None)


class TestArguments:
    """Argument parsing and validation."""

    def test_defaults(self):
        args = parse_arguments(["http://example.com"])
        assert args.urls == ["http://example.com"]
        assert args.post == []
        assert args.header == []
        assert args.threads == 4
        assert args.timeout is None

    def test_bad_post_field(self):
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments(["http://example.com", "--post", "novalue"])
        assert exc_info.value.code == 2

    def test_output_needs_single_url(self):
        with pytest.raises(SystemExit):
            parse_arguments(["http://a", "http://b", "--output", "x.txt"])

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(SystemExit):
            parse_arguments(["http://a", "--config", str(tmp_path / "nope.yaml")])

    def test_config_from_args(self, tmp_path):
        config_file = tmp_path / "ctx.yaml"
        config_file.write_text("user_agent: from-file\ntimeout: 9\n")
        args = parse_arguments([
            "http://a", "--config", str(config_file), "--timeout", "3",
            "--no-follow", "--no-referer", "-H", "Accept: text/html",
        ])
        config = create_config_from_args(args)

        assert config.user_agent == "from-file"
        assert config.timeout == 3
        assert config.follow_redirects is False
        assert config.auto_referer is False
        assert config.headers == ["Accept: text/html"]

    def test_post_fields(self):
        assert parse_post_fields([]) is None
        assert parse_post_fields(["a=1", "b=x=y"]) == [("a", "1"), ("b", "x=y")]


class TestMain:
    """End-to-end CLI runs against the local server."""

    def test_get_prints_body(self, http_server, capsys):
        assert main([f"{http_server}/html"]) == 0
        assert "<a href=\"/one\">One</a>" in capsys.readouterr().out

    def test_post_json(self, http_server, capsys):
        code = main([f"{http_server}/echo", "--post", "test=1", "--post", "foo=bar", "--json"])
        assert code == 0
        assert json.loads(capsys.readouterr().out) == {"test": "1", "foo": "bar"}

    def test_info(self, http_server, capsys):
        assert main([f"{http_server}/status/404", "--info", "http_code"]) == 0
        assert capsys.readouterr().out.strip() == "404"

    def test_output_file(self, http_server, tmp_path):
        target = tmp_path / "body.html"
        assert main([f"{http_server}/html", "--output", str(target)]) == 0
        assert "<title>Links</title>" in target.read_text(encoding="utf-8")

    def test_zero_timeout(self, http_server, capsys):
        assert main([f"{http_server}/status/200", "--timeout", "0", "--info", "http_code"]) == 0
        assert capsys.readouterr().out.strip() == "200"

    def test_binary_output_file(self, http_server, tmp_path):
        target = tmp_path / "body.bin"
        assert main([f"{http_server}/binary", "--output", str(target)]) == 0
        assert target.read_bytes() == BINARY_BODY

    def test_transport_failure(self, closed_port_url):
        assert main([closed_port_url]) == 1

    def test_missing_cacert(self, http_server, tmp_path):
        assert main([f"{http_server}/headers", "--cacert", str(tmp_path / "none.pem")]) == 1

    def test_many_urls(self, http_server, closed_port_url, capsys):
        code = main([f"{http_server}/headers", closed_port_url, "--threads", "2"])
        lines = capsys.readouterr().out.strip().splitlines()

        assert code == 1
        assert lines[0].startswith(f"200 {http_server}/headers")
        assert lines[1].startswith(f"ERR {closed_port_url}")

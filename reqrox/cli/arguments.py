"""
Command-line argument parsing for reqrox.
"""

import argparse
from pathlib import Path
from typing import Optional, List

from reqrox import __version__


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""

    parser = argparse.ArgumentParser(
        prog="reqrox",
        description=(
            "reqrox - GET/POST requests with a per-context cookie jar"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s http://127.0.0.1:8000/
  %(prog)s http://127.0.0.1:8000/api --post test=1 --post foo=bar --json
  %(prog)s https://example.com --cacert /etc/ssl/certs/ca-certificates.crt
  %(prog)s http://a.example http://b.example --threads 2
        """,
    )

    parser.add_argument(
        "urls",
        nargs="+",
        metavar="URL",
        help="Target URL(s); several URLs are fetched concurrently",
    )

    request_opts = parser.add_argument_group("Request Options")
    request_opts.add_argument(
        "--post", "-d",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Form field to POST (can be used multiple times)",
    )
    request_opts.add_argument(
        "--header", "-H",
        action="append",
        default=[],
        help="Custom header (can be used multiple times, e.g., -H 'Accept: text/html')",
    )
    request_opts.add_argument(
        "--user-agent",
        type=str,
        default=None,
        help="Custom User-Agent header",
    )
    request_opts.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="Connect and total timeout in seconds (default: 30, 0 for no limit)",
    )
    request_opts.add_argument(
        "--no-follow",
        action="store_true",
        default=False,
        help="Do not follow HTTP redirects",
    )
    request_opts.add_argument(
        "--no-referer",
        action="store_true",
        default=False,
        help="Do not set Referer when following redirects",
    )
    request_opts.add_argument(
        "--cacert",
        type=str,
        default=None,
        metavar="PATH",
        help="Verify TLS peer and hostname against this CA bundle",
    )
    request_opts.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to configuration file (YAML or JSON)",
    )

    output_opts = parser.add_argument_group("Output Options")
    output_opts.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Decode the body as JSON and pretty-print it",
    )
    output_opts.add_argument(
        "--info",
        type=str,
        default=None,
        metavar="KEY",
        help="Print one response metadata field instead of the body (e.g. http_code)",
    )
    output_opts.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Write the body to this file instead of stdout",
    )
    output_opts.add_argument(
        "--threads", "-t",
        type=int,
        default=4,
        help="Concurrent workers when several URLs are given (default: 4)",
    )

    log_opts = parser.add_argument_group("Logging")
    log_opts.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=False,
        help="Enable verbose output",
    )
    log_opts.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output",
    )
    log_opts.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Write JSON logs to this file",
    )
    log_opts.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored log output",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: List of arguments (defaults to sys.argv)

    Returns:
        Parsed arguments namespace
    """
    parser = create_argument_parser()
    parsed_args = parser.parse_args(args)

    _validate_arguments(parsed_args, parser)

    return parsed_args


def _validate_arguments(args: argparse.Namespace, parser: argparse.ArgumentParser):
    """Validate parsed arguments."""

    for field in args.post:
        if "=" not in field:
            parser.error(f"Invalid --post field (expected KEY=VALUE): {field}")

    if args.threads < 1:
        parser.error("Threads must be at least 1")

    if args.timeout is not None and args.timeout < 0:
        parser.error("Timeout must be non-negative")

    if args.config and not Path(args.config).exists():
        parser.error(f"Configuration file not found: {args.config}")

    if args.output and len(args.urls) > 1:
        parser.error("--output can only be used with a single URL")

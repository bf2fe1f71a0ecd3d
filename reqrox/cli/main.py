"""
Main CLI entry point for reqrox.
"""

import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from reqrox.core.config import ContextConfig
from reqrox.core.context import RequestContext
from reqrox.core.exceptions import RoxException
from reqrox.core.logger import setup_logging, get_logger
from reqrox.core.pool import fetch_all
from .arguments import parse_arguments


logger = get_logger("main")


def create_config_from_args(args) -> ContextConfig:
    """Build a ContextConfig from the config file (if any) and CLI flags."""
    config = ContextConfig.from_file(Path(args.config)) if args.config else ContextConfig()

    if args.user_agent:
        config.user_agent = args.user_agent

    if args.timeout is not None:
        config.timeout = args.timeout

    if args.no_follow:
        config.follow_redirects = False

    if args.no_referer:
        config.auto_referer = False

    if args.header:
        config.headers = list(args.header)

    return config


def parse_post_fields(fields: List[str]) -> Optional[List[Tuple[str, str]]]:
    """Turn KEY=VALUE flags into form pairs, or None when there are none."""
    if not fields:
        return None
    return [tuple(field.split("=", 1)) for field in fields]


def get_log_level(args) -> str:
    """Determine logging level from flags."""
    if args.debug:
        return "DEBUG"
    elif args.verbose:
        return "INFO"
    return "WARNING"


def run_single(args, config: ContextConfig) -> int:
    """Fetch one URL and print the requested view of the response."""
    with RequestContext(config, uri=args.urls[0]) as context:
        if args.cacert:
            context.enable_tls_verification(args.cacert)

        payload = parse_post_fields(args.post)
        if payload is not None:
            context.set_post_payload(payload).execute_post()
        else:
            context.execute_get()

        if args.info:
            print(context.get_metadata(args.info))
        elif args.output:
            context.write_response_to_file(args.output)
        elif args.json:
            print(json.dumps(context.get_response_body(decode_json=True), indent=2))
        elif context.return_body_as_string:
            print(context.response_text)

        logger.info(
            f"{context.get_last_status_code()} {context.get_metadata('url')} "
            f"in {context.get_metadata('total_time')}s"
        )
    return 0


def run_many(args, config: ContextConfig) -> int:
    """Fetch several URLs concurrently and print one status line each."""
    if args.cacert:
        config.ca_cert_path = Path(args.cacert)
        config.tls_verify = True
        config = ContextConfig.from_dict(config.to_dict())

    outcomes = fetch_all(
        args.urls,
        config=config,
        post_payload=parse_post_fields(args.post),
        max_workers=args.threads,
    )

    exit_code = 0
    for outcome in outcomes:
        if outcome.error is not None:
            print(f"ERR {outcome.url} {outcome.error.message}")
            exit_code = 1
        else:
            print(f"{outcome.status_code} {outcome.url} {len(outcome.body or b'')} bytes")
    return exit_code


def main(args: Optional[List[str]] = None):
    """Main entry point."""
    parsed_args = parse_arguments(args)

    setup_logging(
        level=get_log_level(parsed_args),
        log_file=parsed_args.log_file,
        use_colors=not parsed_args.no_color,
    )

    try:
        config = create_config_from_args(parsed_args)

        if len(parsed_args.urls) == 1:
            return run_single(parsed_args, config)
        return run_many(parsed_args, config)

    except KeyboardInterrupt:
        print("\n[!] Interrupted by user", file=sys.stderr)
        return 130

    except RoxException as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())

# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Command-line tool for signing recorded CloudFront requests offline.

Usage:
    edge-signer sign event.json                  # Print signed request
    edge-signer canonical event.json             # Print canonical request
    edge-signer sign - < event.json              # Read event from stdin
    edge-signer sign event.json --timestamp 20260101T000000Z

EVENT is either a full Lambda@Edge event or a bare CloudFront request
object.  The canonical command is the first thing to compare when a
backend answers "signature does not match".
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from edge_signer.clock import check_clock_skew, parse_amz_date
from edge_signer.cloudfront import (
    from_cloudfront_request,
    sign_cloudfront_request,
)
from edge_signer.config import SignerConfig, load_config
from edge_signer.engine import build_canonical_request
from edge_signer.errors import (
    CanonicalizationError,
    ConfigurationError,
    SigningError,
)
from edge_signer.logging import configure_logging


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_INPUT_ERROR = 2
EXIT_SIGNING_ERROR = 3


def _load_request(source: str) -> dict[str, Any]:
    """Read a CloudFront request from a file or stdin (``-``)."""
    text = sys.stdin.read() if source == "-" else Path(source).read_text()
    data = json.loads(text)
    if "Records" in data:
        data = data["Records"][0]["cf"]["request"]
    if not isinstance(data, dict):
        raise ValueError("event is not a JSON object")
    return data


def _signing_time(timestamp: str | None) -> datetime | None:
    if timestamp is None:
        return None
    now = parse_amz_date(timestamp)
    is_skewed, drift_minutes = check_clock_skew(timestamp)
    if is_skewed:
        logger.warning(
            "Timestamp %s is %d minutes from system time; "
            "a live backend would reject this signature",
            timestamp,
            drift_minutes,
        )
    return now


def _run(
    command: str,
    cf_request: dict[str, Any],
    config: SignerConfig,
    now: datetime | None,
) -> str:
    if command == "sign":
        signed = sign_cloudfront_request(cf_request, config, now=now)
        return json.dumps(signed, indent=2)

    creq, result = build_canonical_request(
        from_cloudfront_request(cf_request), config, now=now
    )
    return (
        f"Canonical request:\n{creq}\n\n"
        f"String to sign:\n{result.string_to_sign}\n\n"
        f"Authorization:\n{result.authorization}"
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0=success, 1=config error, 2=input error,
        3=signing error).
    """
    parser = argparse.ArgumentParser(
        prog="edge-signer",
        description="Sign CloudFront origin requests with AWS SigV4",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help=(
            "Path to edge-signer.yaml config file"
            " (default: $EDGE_SIGNER_CONFIG, ./edge-signer.yaml,"
            " ~/.config/edge-signer/edge-signer.yaml, then environment)"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("sign", "Print the signed CloudFront request as JSON"),
        ("canonical", "Print the canonical request and string to sign"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "event",
            metavar="EVENT",
            help="Event JSON file ('-' reads stdin)",
        )
        sub.add_argument(
            "--timestamp",
            metavar="YYYYMMDDTHHMMSSZ",
            default=None,
            help="Sign at this fixed UTC time instead of now",
        )
    args = parser.parse_args(argv)

    configure_logging(level=logging.DEBUG if args.debug else logging.INFO)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.critical("Configuration error: %s", e)
        return EXIT_CONFIG_ERROR

    try:
        cf_request = _load_request(args.event)
    except (OSError, ValueError, KeyError, IndexError, TypeError) as e:
        logger.error("Cannot read event %s: %s", args.event, e)
        return EXIT_INPUT_ERROR

    try:
        output = _run(
            args.command, cf_request, config, _signing_time(args.timestamp)
        )
    except CanonicalizationError as e:
        logger.error("Cannot canonicalize request: %s", e)
        return EXIT_INPUT_ERROR
    except SigningError as e:
        logger.error("Signing failed: %s", e)
        return EXIT_SIGNING_ERROR

    print(output)
    return EXIT_OK

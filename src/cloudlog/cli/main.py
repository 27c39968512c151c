"""
Command-line entry point for pushing events to CloudLog over HTTP.

Events are taken from the positional arguments, or read line by line from
stdin when none are given, and sent in a single push.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Sequence, TextIO

from ..client import AsyncClient
from ..core.errors import ConfigurationError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudlog-push",
        description="Push events to a CloudLog index.",
    )
    parser.add_argument("--index", required=True, help="CloudLog index name")
    parser.add_argument("--token", required=True, help="Authorization token")
    parser.add_argument("--api-url", default=None, help="Override the API base URL")
    parser.add_argument("--client-type", default=None, help="Custom client type label")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for delivery before giving up",
    )
    parser.add_argument("events", nargs="*", help="Events to push (default: stdin)")
    return parser


def _read_events(stream: TextIO) -> list[str]:
    return [line.rstrip("\r\n") for line in stream if line.strip()]


async def main(argv: Sequence[str] | None = None, stdin: TextIO | None = None) -> int:
    """Push the events and return a process exit code."""
    args = build_parser().parse_args(argv)
    events = list(args.events) or _read_events(stdin or sys.stdin)
    if not events:
        print("Error: no events given", file=sys.stderr)
        return 2
    try:
        client = AsyncClient.over_http(args.index, args.token, api_url=args.api_url)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    if args.client_type:
        client.set_client_type(args.client_type)

    async with client:
        delivery = client.push_events(events)
        drained = await client.flush(args.timeout)
        if not drained:
            print("Error: timed out waiting for delivery", file=sys.stderr)
            return 1
        result = await delivery
    return 0 if result.ok else 1


def cli_main() -> int:
    """CLI main function for non-async entry."""
    return asyncio.run(main())


if __name__ == "__main__":
    sys.exit(cli_main())

"""
Basic usage example for the CloudLog client.

Pushes a plain-text event and a structured event, then waits for the
deliveries before exiting. Set CLOUDLOG_INDEX and CLOUDLOG_TOKEN first.
"""

import asyncio
import os
import sys

from cloudlog import AsyncClient, ConfigurationError


async def main() -> int:
    try:
        client = AsyncClient.over_http(
            os.getenv("CLOUDLOG_INDEX", ""),
            os.getenv("CLOUDLOG_TOKEN", ""),
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    async with client:
        client.set_client_type("example-script")
        client.push_event("Application started")
        delivery = client.push_events(
            ['{"message": "user signed in", "user_id": 42}', "plain follow-up"]
        )
        if not await client.flush(timeout=5.0):
            print("Timed out waiting for delivery", file=sys.stderr)
            return 1
        result = await delivery
        print(f"delivered={result.ok} records={result.records}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

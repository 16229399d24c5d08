#!/usr/bin/env python3
"""Print dashboard push events as they arrive.

Usage:
    python scripts/watch_events.py --url http://localhost:8000/api/ssevents
    python scripts/watch_events.py --cache .sfudash-cache.json --retry 5
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal

from sfudash.client import StreamConsumer, TTLStore
from sfudash.core.envelopes import Envelope


def _print_event(envelope: Envelope) -> None:
    print(json.dumps(envelope.to_wire(), ensure_ascii=False), flush=True)


def _print_status(connected: bool) -> None:
    print(f"# {'connected' if connected else 'disconnected'}", flush=True)


async def _watch(args: argparse.Namespace) -> None:
    store = TTLStore(args.cache) if args.cache else None
    consumer = StreamConsumer(
        args.url,
        _print_event,
        store=store,
        retry_delay=args.retry,
        on_status=_print_status,
    )
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    consumer.start()
    await stop.wait()
    await consumer.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Watch the SFU dashboard event stream")
    parser.add_argument(
        "--url", default="http://localhost:8000/api/ssevents", help="Stream endpoint URL"
    )
    parser.add_argument("--cache", default=None, help="JSON file for auth metadata cache")
    parser.add_argument("--retry", type=float, default=3.0, help="Seconds between reconnects")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    asyncio.run(_watch(args))


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
cwlogs-ship: send lines from files or stdin to a CloudWatch log stream.

    cwlogs-ship --group my-app --stream deploy-42 deploy.log
    journalctl -u my-app | cwlogs-ship --group my-app --stream host-1

Credentials and region come from the usual AWS_* environment variables, or
from a .env file.
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Iterable, Iterator

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .batcher import LargeMessageBehavior
from .config import from_env
from .engine import CloudWatch
from .errors import CloudWatchError

console = Console(stderr=True)


def read_lines(paths: list[str]) -> Iterator[str]:
    """Yield lines (without newlines) from the given files, or stdin if none."""
    if not paths:
        for line in sys.stdin:
            yield line.rstrip("\n")
        return
    for path in paths:
        with open(path, encoding="utf-8", errors="replace") as f:
            for line in f:
                yield line.rstrip("\n")


def chunked(lines: Iterable[str], size: int) -> Iterator[list[str]]:
    chunk = []
    for line in lines:
        chunk.append(line)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


async def ship(engine: CloudWatch, lines: Iterable[str], chunk_size: int = 1000) -> dict:
    """Send lines in chunks and return the engine's stats."""
    try:
        for chunk in chunked(lines, chunk_size):
            await engine.log_many(chunk)
    finally:
        await engine.aclose()
    return engine.get_stats()


def render_stats(stats: dict) -> Table:
    table = Table(title=f"{stats['group_name']}/{stats['stream_name']}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    for key in ("sent_batches", "sent_events", "pending_batches", "pending_events", "error_count"):
        table.add_row(key, str(stats[key]))
    if stats["last_error"]:
        table.add_row("last_error", f"[red]{stats['last_error'][:200]}[/red]")
    return table


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ship log lines to AWS CloudWatch Logs")
    parser.add_argument("files", nargs="*", help="Files to read (default: stdin)")
    parser.add_argument("--group", required=True, help="Log group name")
    parser.add_argument("--stream", required=True, help="Log stream name")
    parser.add_argument(
        "--large-messages",
        choices=[behavior.value for behavior in LargeMessageBehavior],
        help="How to handle messages over 262118 bytes (default: truncate)",
    )
    parser.add_argument("--delay", type=float, help="Seconds to wait between requests")
    parser.add_argument("--retries", type=int, help="Attempts per request")
    parser.add_argument("--chunk-size", type=int, default=1000, help="Lines per log_many call")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    load_dotenv()

    overrides = {}
    if args.large_messages:
        overrides["large_message_behavior"] = args.large_messages
    if args.delay is not None:
        overrides["delay"] = args.delay
    if args.retries is not None:
        overrides["retries"] = args.retries

    try:
        config = from_env(**overrides)
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        return 2

    engine = CloudWatch(config, group_name=args.group, stream_name=args.stream)
    try:
        stats = asyncio.run(ship(engine, read_lines(args.files), args.chunk_size))
    except CloudWatchError as e:
        console.print(f"[red]✗[/red] {e}")
        console.print(render_stats(engine.get_stats()))
        return 1

    console.print(render_stats(stats))
    console.print(f"[green]✓[/green] Shipped {stats['sent_events']} events")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Minimal CLI entry point for manual testing of the LifeOS Ingestor."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime

from lifeos_ingestor.analysis.analyzer import build_analysis_payload
from lifeos_ingestor.config.settings import LifeOSIngestorSettings
from lifeos_ingestor.core.auth import AuthSessionManager
from lifeos_ingestor.core.google_client import GoogleApiClient
from lifeos_ingestor.core.models import IngestionResult
from lifeos_ingestor.pipeline.orchestrator import IngestionOrchestrator


def setup_logging(level: str) -> None:
    """Configure logging with timestamp and module info."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="LifeOS Ingestor - Load calendar events and Gmail threads"
    )
    parser.add_argument("--client-id", help="OAuth client ID (default: from settings)")
    parser.add_argument(
        "--revoke",
        action="store_true",
        help="Revoke the Google grant once the command finishes",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    load_parser = subparsers.add_parser("load", help="Load and print events and threads")
    load_parser.add_argument(
        "--messages", action="store_true", help="Also print every message of each thread"
    )

    subparsers.add_parser("payload", help="Print the summarizer input bundle as JSON")
    return parser


def print_result(result: IngestionResult, *, show_messages: bool = False) -> None:
    """Print a loaded result in a compact table-like form."""
    print(f"\nUpcoming events ({len(result.events)}):\n")
    for event in result.events:
        print(f"  {event.start:25s} {event.title}")

    print(f"\nThreads ({len(result.threads)}):\n")
    for thread in result.threads:
        print(
            f"  [{thread.status.value:6s}] {thread.timestamp:%Y-%m-%d %H:%M} "
            f"{thread.sender[:30]:30s} {thread.subject} ({thread.message_count})"
        )
        if show_messages:
            for message in thread.messages:
                print(f"      {message.timestamp:%Y-%m-%d %H:%M} {message.sender}: {message.snippet}")


async def run(args: argparse.Namespace, settings: LifeOSIngestorSettings) -> None:
    client_id = args.client_id or settings.client_id
    api_client = GoogleApiClient(settings.user_id, num_retries=settings.num_retries)
    auth = AuthSessionManager.from_settings(settings, api_client)

    try:
        await auth.initialize(client_id)
        if not await auth.request_login():
            print("\nLogin cancelled")
            return

        orchestrator = IngestionOrchestrator(api_client, settings=settings, auth=auth)
        result = await orchestrator.load_all()

        if args.command == "load":
            print_result(result, show_messages=args.messages)
        elif args.command == "payload":
            payload = build_analysis_payload(
                result.events,
                result.threads,
                datetime.now(UTC),
                description_chars=settings.description_preview_chars,
                body_chars=settings.body_preview_chars,
            )
            print(json.dumps(payload, indent=2, ensure_ascii=False))
    finally:
        if args.revoke:
            await auth.logout()
        auth.close()


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    settings = LifeOSIngestorSettings()
    setup_logging(settings.log_level)

    try:
        asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

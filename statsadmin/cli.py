"""
Stats Admin Command Line Interface

Provides command-line access to a running stats admin server.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Dict, Optional

import httpx

DEFAULT_URL = "http://localhost:9901"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statsadmin",
        description="Stats Admin CLI",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("server", help="Start the stats admin server")
    server_parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    server_parser.add_argument("--port", type=int, default=9901, help="Port")
    server_parser.add_argument("--reload", action="store_true", help="Auto-reload")

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Export stats")
    stats_parser.add_argument("--format", choices=["json", "prometheus"], help="Output format")
    stats_parser.add_argument("--filter", help="Regex that metric names must match")
    stats_parser.add_argument("--usedonly", action="store_true", help="Only used metrics")
    stats_parser.add_argument("--url", default=DEFAULT_URL, help="Server URL")

    # Reset counters command
    reset_parser = subparsers.add_parser("reset-counters", help="Reset all counters")
    reset_parser.add_argument("--url", default=DEFAULT_URL, help="Server URL")

    # Recent lookups commands
    lookups_parser = subparsers.add_parser("recentlookups", help="Recent lookups tracking")
    lookups_parser.add_argument(
        "action",
        nargs="?",
        default="show",
        choices=["show", "enable", "disable", "clear"],
    )
    lookups_parser.add_argument("--url", default=DEFAULT_URL, help="Server URL")

    return parser


def stats_params(
    format_name: Optional[str],
    filter_pattern: Optional[str],
    used_only: bool,
) -> Dict[str, str]:
    """Query parameters for ``/stats``; ``usedonly`` is presence-only."""
    params: Dict[str, str] = {}
    if used_only:
        params["usedonly"] = ""
    if filter_pattern is not None:
        params["filter"] = filter_pattern
    if format_name is not None:
        params["format"] = format_name
    return params


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return

    if args.command == "server":
        from statsadmin.main import run_server
        run_server(host=args.host, port=args.port, reload=args.reload)

    elif args.command == "stats":
        params = stats_params(args.format, args.filter, args.usedonly)
        sys.exit(asyncio.run(cmd_get(args.url, "/stats", params)))

    elif args.command == "reset-counters":
        sys.exit(asyncio.run(cmd_post(args.url, "/reset_counters")))

    elif args.command == "recentlookups":
        if args.action == "show":
            sys.exit(asyncio.run(cmd_get(args.url, "/stats/recentlookups")))
        else:
            sys.exit(asyncio.run(cmd_post(args.url, f"/stats/recentlookups/{args.action}")))


async def cmd_get(base_url: str, path: str, params: Optional[Dict[str, str]] = None) -> int:
    """GET an admin endpoint and print the body."""
    async with httpx.AsyncClient() as client:
        response = await client.get(f"{base_url}{path}", params=params, timeout=10.0)

    print(response.text, end="")
    if response.status_code != 200:
        print(f"Error: {response.status_code}", file=sys.stderr)
        return 1
    return 0


async def cmd_post(base_url: str, path: str) -> int:
    """POST to an administrative endpoint."""
    async with httpx.AsyncClient() as client:
        response = await client.post(f"{base_url}{path}", timeout=10.0)

    print(response.text, end="")
    if response.status_code != 200:
        print(f"Error: {response.status_code}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Command-line interface for locator_resolver.

Resolves candidate image locators for an entity and prints the working and
failed locators, or dumps the effective configuration.
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from ..config import ConfigService, LoggingConfig, LogLevel
from ..convenience import build_service
from ..logging import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="locator-resolver",
        description="Find retrievable alternatives for candidate image locators",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Per-probe logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve locators for one entity")
    resolve.add_argument("locators", nargs="+", help="Candidate locators")
    resolve.add_argument("-e", "--entity", help="Entity name (enables placeholder bookkeeping)")
    resolve.add_argument("-c", "--concurrency", type=int, help="Locators resolved at once")
    resolve.add_argument("-t", "--timeout", type=int, help="Probe timeout in milliseconds")
    resolve.add_argument(
        "-p",
        "--proxy",
        action="append",
        dest="proxies",
        help="Proxy endpoint template (repeatable, replaces configured list)",
    )
    resolve.add_argument("--base-url", help="Base for relative locators")
    resolve.add_argument("--json", action="store_true", help="Print the result as JSON")

    subparsers.add_parser("config", help="Print the effective configuration")

    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.verbose:
        overrides["debug_enabled"] = True
    if getattr(args, "timeout", None):
        overrides["probe_timeout_ms"] = args.timeout
    if getattr(args, "proxies", None):
        overrides["proxy_endpoints"] = args.proxies
    if getattr(args, "base_url", None):
        overrides["base_url"] = args.base_url
    return overrides


async def run_resolve(args: argparse.Namespace) -> int:
    """Resolve locators and print the outcome."""
    service = build_service(_overrides(args))

    def progress(percent: float) -> None:
        if args.verbose:
            print(f"\r{percent:5.1f}%", end="", file=sys.stderr, flush=True)

    async with service:
        result = await service.resolve(
            args.entity, args.locators, concurrency_limit=args.concurrency, on_progress=progress
        )

    if args.verbose:
        print(file=sys.stderr)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(f"Working ({len(result.working)}):")
        for locator in result.working:
            print(f"  {locator}")
        print(f"Failed ({len(result.failed)}):")
        for locator in result.failed:
            print(f"  {locator}")
        print(f"Success rate: {result.success_rate_percent:.1f}%")

    return 0 if result.working else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``locator-resolver`` command."""
    args = create_parser().parse_args(argv)
    setup_logging(LoggingConfig(level=LogLevel.INFO if args.verbose else LogLevel.WARNING))

    if args.command == "config":
        print(ConfigService(overrides=_overrides(args)).export_config())
        return 0

    return asyncio.run(run_resolve(args))


if __name__ == "__main__":
    sys.exit(main())

"""Command-line interface for the lending data aggregator."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .logging_setup import configure_logging
from .services import Monitor


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="lend-aggregator",
        description="Supra lending market data aggregator",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("snapshot", help="Fetch and print the asset price table")
    sub.add_parser("pools", help="Fetch and print protocol pool metrics")

    wallet_parser = sub.add_parser("wallet", help="Reconcile one account's positions")
    wallet_parser.add_argument("account", help="Wallet address")

    monitor_parser = sub.add_parser("monitor", help="Run all pipelines continuously")
    monitor_parser.add_argument(
        "--account",
        default=None,
        help="Wallet address to track (overrides config)",
    )

    return parser


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    monitor = Monitor(config)

    if args.command == "snapshot":
        rows = await monitor.refresh_assets()
        print(Monitor.format_assets(rows))
    elif args.command == "pools":
        metrics = await monitor.refresh_pool_metrics()
        print(Monitor.format_pool_metrics(metrics))
    elif args.command == "wallet":
        monitor.track_account(args.account)
        await monitor.refresh_assets()
        positions = await monitor.refresh_wallet()
        print(monitor.format_positions(positions))
    elif args.command == "monitor":
        if args.account:
            monitor.track_account(args.account)
        await monitor.run_continuous()
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        pass

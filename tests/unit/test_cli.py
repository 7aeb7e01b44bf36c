"""Unit tests for CLI argument parsing."""
from __future__ import annotations

from lend_aggregator.cli import build_parser


class TestBuildParser:
    def test_snapshot_command(self) -> None:
        args = build_parser().parse_args(["snapshot"])
        assert args.command == "snapshot"

    def test_pools_command(self) -> None:
        args = build_parser().parse_args(["pools"])
        assert args.command == "pools"

    def test_wallet_command(self) -> None:
        args = build_parser().parse_args(["wallet", "0xACCOUNT"])
        assert args.command == "wallet"
        assert args.account == "0xACCOUNT"

    def test_monitor_command_default_account(self) -> None:
        args = build_parser().parse_args(["monitor"])
        assert args.command == "monitor"
        assert args.account is None

    def test_monitor_command_with_account(self) -> None:
        args = build_parser().parse_args(["monitor", "--account", "0x1"])
        assert args.account == "0x1"

    def test_config_flag(self) -> None:
        args = build_parser().parse_args(["--config", "/tmp/c.yaml", "pools"])
        assert args.config == "/tmp/c.yaml"

    def test_log_level_flag(self) -> None:
        args = build_parser().parse_args(["--log-level", "DEBUG", "snapshot"])
        assert args.log_level == "DEBUG"

    def test_no_command(self) -> None:
        args = build_parser().parse_args([])
        assert args.command is None

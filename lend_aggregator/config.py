"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import TrackedAsset

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QuoteFeedConfig:
    url: str = "https://prod-api.cerberus.supra.com/graphql"
    timeout: int = 10
    instrument_type_id: str = "1"
    dora_type: str = "2"
    provider_id: str = "20"


@dataclass(frozen=True)
class PollerConfig:
    pair: str = "SUPRA/USDT"
    instrument_id: str = "1009"
    provider_name: str = "Supra Premium"
    interval_seconds: float = 8.0
    lookback_days: int = 30
    granularity_seconds: int = 7200
    history_window_ms: int = 300_000


@dataclass(frozen=True)
class SnapshotDefaultsConfig:
    ltv: str = "80"
    bw: str = "90"
    deposit_apr: str = "5"
    borrow_apr: str = "8"


@dataclass(frozen=True)
class SnapshotConfig:
    assets: tuple[TrackedAsset, ...] = ()
    stable_asset: str = "HUSDC"
    interval_seconds: float = 60.0
    lookback_hours: int = 24
    granularity_seconds: int = 60
    retry_delay_seconds: float = 1.0
    defaults: SnapshotDefaultsConfig = field(default_factory=SnapshotDefaultsConfig)


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 10


@dataclass(frozen=True)
class CoinConfig:
    symbol: str = ""
    type_tag: str = ""


@dataclass(frozen=True)
class ProtocolConfig:
    coins: tuple[CoinConfig, ...] = ()
    token_decimals: dict[str, int] = field(default_factory=dict)
    lending_market_view: str = ""
    obligation_view: str = ""
    balance_view: str = "0x1::coin::balance"
    pool_ratio_decimals: int = 18
    obligation_ratio_divisor: int = 100


@dataclass(frozen=True)
class MonitorConfig:
    pool_metrics_interval_seconds: float = 30.0
    wallet_interval_seconds: float = 30.0
    account: str = ""


@dataclass(frozen=True)
class AppConfig:
    quote_feed: QuoteFeedConfig = field(default_factory=QuoteFeedConfig)
    poller: PollerConfig = field(default_factory=PollerConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_quote_feed(raw: dict[str, Any]) -> QuoteFeedConfig:
    return QuoteFeedConfig(
        url=raw.get("url", QuoteFeedConfig.url),
        timeout=int(raw.get("timeout", 10)),
        instrument_type_id=str(raw.get("instrument_type_id", "1")),
        dora_type=str(raw.get("dora_type", "2")),
        provider_id=str(raw.get("provider_id", "20")),
    )


def _build_poller(raw: dict[str, Any]) -> PollerConfig:
    return PollerConfig(
        pair=raw.get("pair", PollerConfig.pair),
        instrument_id=str(raw.get("instrument_id", PollerConfig.instrument_id)),
        provider_name=raw.get("provider_name", PollerConfig.provider_name),
        interval_seconds=float(raw.get("interval_seconds", 8.0)),
        lookback_days=int(raw.get("lookback_days", 30)),
        granularity_seconds=int(raw.get("granularity_seconds", 7200)),
        history_window_ms=int(raw.get("history_window_ms", 300_000)),
    )


def _build_assets(raw: list[dict[str, Any]]) -> tuple[TrackedAsset, ...]:
    assets: list[TrackedAsset] = []
    for a in raw:
        assets.append(
            TrackedAsset(
                name=a.get("name", ""),
                instrument_id=str(a.get("instrument_id", "")),
                pair=a.get("pair", ""),
                display_name=a.get("display_name", "") or "",
                aliases=tuple(a.get("aliases", [])),
            )
        )
    return tuple(assets)


def _build_snapshot(raw: dict[str, Any]) -> SnapshotConfig:
    defaults = raw.get("defaults", {})
    return SnapshotConfig(
        assets=_build_assets(raw.get("assets", [])),
        stable_asset=raw.get("stable_asset", SnapshotConfig.stable_asset) or "",
        interval_seconds=float(raw.get("interval_seconds", 60.0)),
        lookback_hours=int(raw.get("lookback_hours", 24)),
        granularity_seconds=int(raw.get("granularity_seconds", 60)),
        retry_delay_seconds=float(raw.get("retry_delay_seconds", 1.0)),
        defaults=SnapshotDefaultsConfig(
            ltv=str(defaults.get("ltv", "80")),
            bw=str(defaults.get("bw", "90")),
            deposit_apr=str(defaults.get("deposit_apr", "5")),
            borrow_apr=str(defaults.get("borrow_apr", "8")),
        ),
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [])),
        rpc_timeout=int(raw.get("rpc_timeout", 10)),
    )


def _build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    coins = tuple(
        CoinConfig(symbol=c.get("symbol", ""), type_tag=c.get("type_tag", ""))
        for c in raw.get("coins", [])
    )
    return ProtocolConfig(
        coins=coins,
        token_decimals={k: int(v) for k, v in raw.get("token_decimals", {}).items()},
        lending_market_view=raw.get("lending_market_view", ""),
        obligation_view=raw.get("obligation_view", ""),
        balance_view=raw.get("balance_view", ProtocolConfig.balance_view),
        pool_ratio_decimals=int(raw.get("pool_ratio_decimals", 18)),
        obligation_ratio_divisor=int(raw.get("obligation_ratio_divisor", 100)),
    )


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    return MonitorConfig(
        pool_metrics_interval_seconds=float(
            raw.get("pool_metrics_interval_seconds", 30.0)
        ),
        wallet_interval_seconds=float(raw.get("wallet_interval_seconds", 30.0)),
        account=raw.get("account", "") or "",
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        quote_feed=_build_quote_feed(raw.get("quote_feed") or {}),
        poller=_build_poller(raw.get("poller") or {}),
        snapshot=_build_snapshot(raw.get("snapshot") or {}),
        chain=_build_chain(raw.get("chain") or {}),
        protocol=_build_protocol(raw.get("protocol") or {}),
        monitor=_build_monitor(raw.get("monitor") or {}),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")

    if cfg.poller.interval_seconds <= 0:
        raise ValueError("Poller interval must be positive")

    # Exponents are never guessed.
    for coin in cfg.protocol.coins:
        if not coin.symbol or not coin.type_tag:
            raise ValueError(f"Coin entry {coin} needs both symbol and type_tag")
        if coin.symbol not in cfg.protocol.token_decimals:
            raise ValueError(
                f"Coin '{coin.symbol}' has no decimal exponent in token_decimals"
            )

    if cfg.protocol.obligation_ratio_divisor <= 0:
        raise ValueError("obligation_ratio_divisor must be positive")

    names = {a.name for a in cfg.snapshot.assets}
    if cfg.snapshot.stable_asset and names and cfg.snapshot.stable_asset not in names:
        raise ValueError(
            f"Stable asset '{cfg.snapshot.stable_asset}' is not a tracked asset"
        )

"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from lend_aggregator.config import (
    AppConfig,
    ChainConfig,
    CoinConfig,
    MonitorConfig,
    PollerConfig,
    ProtocolConfig,
    QuoteFeedConfig,
    SnapshotConfig,
)
from lend_aggregator.models import CatalogInfo, PriceUpdate, Quote, TrackedAsset

BASE_TIME = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

HUSDC_TYPE = "0xabc::hyper_coin::HyperUsdcCoin"
SUP_TYPE = "0x1::supra_coin::SupraCoin"
ETH_TYPE = "0xdef::test_eth::TestETH"


def _make_quote(average: str, seconds: float = 0.0) -> Quote:
    """Quote whose timestamp is ``seconds`` after ``BASE_TIME``."""
    return Quote(
        timestamp=BASE_TIME + timedelta(seconds=seconds),
        average=average,
        median=average,
        high=average,
        low=average,
    )


def _make_update(average: str, seconds: float = 0.0) -> PriceUpdate:
    return PriceUpdate(
        quote=_make_quote(average, seconds),
        catalog_info=CatalogInfo(pair="SUPRA/USDT", index="1009", provider="Supra Premium"),
    )


@pytest.fixture()
def make_quote():
    return _make_quote


@pytest.fixture()
def make_update():
    return _make_update


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=5,
    )


@pytest.fixture()
def sample_protocol_config() -> ProtocolConfig:
    return ProtocolConfig(
        coins=(
            CoinConfig(symbol="HUSDC", type_tag=HUSDC_TYPE),
            CoinConfig(symbol="SUP", type_tag=SUP_TYPE),
            CoinConfig(symbol="ETH", type_tag=ETH_TYPE),
        ),
        token_decimals={"HUSDC": 6, "SUP": 8, "ETH": 8},
        lending_market_view="0xlend::lending_market::view_pool_metrics",
        obligation_view="0xobl::obligation::view_obligation",
        balance_view="0x1::coin::balance",
    )


@pytest.fixture()
def sample_assets() -> tuple[TrackedAsset, ...]:
    return (
        TrackedAsset(name="SUP", instrument_id="1009", pair="SUPRA/USDT", aliases=("WSUP",)),
        TrackedAsset(name="ETH", instrument_id="1", pair="ETH/USDT"),
        TrackedAsset(name="HUSDC", instrument_id="2", pair="USDC/USDT"),
    )


@pytest.fixture()
def sample_snapshot_config(sample_assets: tuple[TrackedAsset, ...]) -> SnapshotConfig:
    return SnapshotConfig(
        assets=sample_assets,
        stable_asset="HUSDC",
        retry_delay_seconds=0.0,
    )


@pytest.fixture()
def sample_poller_config() -> PollerConfig:
    return PollerConfig(interval_seconds=0.01)


@pytest.fixture()
def sample_app_config(
    sample_chain_config: ChainConfig,
    sample_protocol_config: ProtocolConfig,
    sample_snapshot_config: SnapshotConfig,
    sample_poller_config: PollerConfig,
) -> AppConfig:
    return AppConfig(
        quote_feed=QuoteFeedConfig(url="https://quotes.example.com/graphql", timeout=5),
        poller=sample_poller_config,
        snapshot=sample_snapshot_config,
        chain=sample_chain_config,
        protocol=sample_protocol_config,
        monitor=MonitorConfig(
            pool_metrics_interval_seconds=0.01,
            wallet_interval_seconds=0.01,
        ),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    quote_feed:
      url: "https://quotes.example.com/graphql"
      timeout: 7
    poller:
      pair: "SUPRA/USDT"
      instrument_id: "1009"
      interval_seconds: 8
    snapshot:
      stable_asset: HUSDC
      retry_delay_seconds: 0.5
      assets:
        - name: SUP
          instrument_id: "1009"
          pair: "SUPRA/USDT"
          aliases: [WSUP]
        - name: HUSDC
          instrument_id: "2"
          pair: "USDC/USDT"
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    protocol:
      lending_market_view: "0xlend::lending_market::view_pool_metrics"
      obligation_view: "0xobl::obligation::view_obligation"
      token_decimals: {HUSDC: 6, SUP: 8}
      coins:
        - symbol: HUSDC
          type_tag: "0xabc::hyper_coin::HyperUsdcCoin"
        - symbol: SUP
          type_tag: "0x1::supra_coin::SupraCoin"
    monitor:
      pool_metrics_interval_seconds: 15
      account: "0xACCOUNT"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file

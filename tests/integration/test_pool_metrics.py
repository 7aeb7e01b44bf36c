"""Integration tests for pool metrics aggregation over a scripted view client."""
from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from lend_aggregator.config import CoinConfig, ProtocolConfig
from lend_aggregator.errors import TransportError
from lend_aggregator.services.pool_metrics import PoolMetricsAggregator

HUSDC_TYPE = "0xabc::hyper_coin::HyperUsdcCoin"
SUP_TYPE = "0x1::supra_coin::SupraCoin"
ETH_TYPE = "0xdef::test_eth::TestETH"
E18 = 10**18


def _view_client(by_type: dict) -> AsyncMock:
    async def call_view(function, type_arguments, arguments):
        reply = by_type[type_arguments[0]]
        if isinstance(reply, Exception):
            raise reply
        return reply

    client = AsyncMock()
    client.call_view = AsyncMock(side_effect=call_view)
    return client


class TestRefresh:
    @pytest.mark.asyncio
    async def test_normalizes_per_asset_decimals(
        self, sample_protocol_config: ProtocolConfig
    ) -> None:
        client = _view_client(
            {
                HUSDC_TYPE: ["5000000000", "1000000000", str(8 * E18 // 10), str(E18)],
                SUP_TYPE: ["300000000000", "0", str(6 * E18 // 10), str(12 * E18 // 10)],
                ETH_TYPE: ["150000000", "50000000", str(7 * E18 // 10), str(E18)],
            }
        )
        aggregator = PoolMetricsAggregator(client, sample_protocol_config)

        metrics = await aggregator.refresh()

        assert list(metrics) == ["HUSDC", "SUP", "ETH"]
        assert metrics["HUSDC"].deposits == Decimal(5000)
        assert metrics["HUSDC"].borrows == Decimal(1000)
        assert metrics["HUSDC"].ltv == Decimal("0.8")
        assert metrics["SUP"].deposits == Decimal(3000)
        assert metrics["SUP"].bw == Decimal("1.2")
        assert metrics["ETH"].deposits == Decimal("1.5")
        assert aggregator.metrics == metrics

    @pytest.mark.asyncio
    async def test_calls_lending_market_view_with_type_argument(
        self, sample_protocol_config: ProtocolConfig
    ) -> None:
        reply = ["1", "1", "1", "1"]
        client = _view_client({HUSDC_TYPE: reply, SUP_TYPE: reply, ETH_TYPE: reply})
        await PoolMetricsAggregator(client, sample_protocol_config).refresh()

        calls = [c.args for c in client.call_view.call_args_list]
        assert (sample_protocol_config.lending_market_view, [SUP_TYPE], []) in calls
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_failed_asset_is_absent(self, sample_protocol_config: ProtocolConfig) -> None:
        client = _view_client(
            {
                HUSDC_TYPE: ["1000000", "0", "0", "0"],
                SUP_TYPE: TransportError("All RPC endpoints failed"),
                ETH_TYPE: [],
            }
        )
        metrics = await PoolMetricsAggregator(client, sample_protocol_config).refresh()
        assert set(metrics) == {"HUSDC"}

    @pytest.mark.asyncio
    async def test_shared_symbol_is_combined(self) -> None:
        config = ProtocolConfig(
            coins=(
                CoinConfig(symbol="SUP", type_tag=SUP_TYPE),
                CoinConfig(symbol="SUP", type_tag="0x2::wrapped::WSup"),
            ),
            token_decimals={"SUP": 8},
            lending_market_view="0xlend::lending_market::view_pool_metrics",
        )
        client = _view_client(
            {
                SUP_TYPE: ["100000000", "0", str(E18 // 2), str(E18)],
                "0x2::wrapped::WSup": ["200000000", "100000000", str(E18), str(E18)],
            }
        )
        metrics = await PoolMetricsAggregator(client, config).refresh()
        assert metrics["SUP"].deposits == Decimal(3)
        assert metrics["SUP"].borrows == Decimal(1)
        assert metrics["SUP"].ltv == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_refresh_replaces_mapping(self, sample_protocol_config: ProtocolConfig) -> None:
        replies = {
            HUSDC_TYPE: ["1000000", "0", "0", "0"],
            SUP_TYPE: ["100000000", "0", "0", "0"],
            ETH_TYPE: ["100000000", "0", "0", "0"],
        }
        client = _view_client(replies)
        aggregator = PoolMetricsAggregator(client, sample_protocol_config)
        await aggregator.refresh()
        before = aggregator.metrics

        replies[SUP_TYPE] = TransportError("down")
        await aggregator.refresh()

        assert "SUP" in before
        assert "SUP" not in aggregator.metrics
        with pytest.raises(TypeError):
            aggregator.metrics["SUP"] = None  # type: ignore[index]

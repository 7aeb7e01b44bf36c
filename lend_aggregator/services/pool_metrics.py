"""Protocol pool metrics read with one view-call per tracked coin type."""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from ..config import CoinConfig, ProtocolConfig
from ..interfaces.chain import ViewClient
from ..models import PoolMetrics
from ..protocols.supralend.parser import (
    combine_pool_metrics,
    get_decimals,
    parse_pool_metrics,
)
from .batch import gather_keyed

logger = logging.getLogger(__name__)


class PoolMetricsAggregator:
    """Reads deposits/borrows/LTV/borrow-weight for every tracked coin.

    A coin whose call fails is absent from the mapping, never zero-valued.
    """

    def __init__(
        self,
        client: ViewClient,
        config: ProtocolConfig,
        timeout: float | None = None,
    ) -> None:
        self._client = client
        self._config = config
        self._timeout = timeout
        self._metrics: Mapping[str, PoolMetrics] = MappingProxyType({})

    @property
    def metrics(self) -> Mapping[str, PoolMetrics]:
        return self._metrics

    async def _fetch(self, coin: CoinConfig) -> PoolMetrics:
        decimals = get_decimals(coin.symbol, self._config.token_decimals)
        result = await self._client.call_view(
            self._config.lending_market_view, [coin.type_tag], []
        )
        return parse_pool_metrics(result, decimals, self._config.pool_ratio_decimals)

    async def refresh(self) -> dict[str, PoolMetrics]:
        coins = self._config.coins
        results = await gather_keyed(
            {i: (lambda c=coin: self._fetch(c)) for i, coin in enumerate(coins)},
            timeout=self._timeout,
        )

        metrics: dict[str, PoolMetrics] = {}
        for i, result in results.items():
            coin = coins[i]
            if not result.ok:
                logger.error(
                    "Error fetching pool metrics for %s: %s", coin.symbol, result.error
                )
                continue
            if coin.symbol in metrics:
                metrics[coin.symbol] = combine_pool_metrics(
                    metrics[coin.symbol], result.value
                )
            else:
                metrics[coin.symbol] = result.value

        self._metrics = MappingProxyType(dict(metrics))
        logger.info("Fetched pool metrics for %s", ", ".join(metrics) or "no assets")
        return metrics

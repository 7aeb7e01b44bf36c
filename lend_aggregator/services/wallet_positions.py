"""Wallet balances merged with lending obligations, keyed by asset symbol."""
from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from ..config import CoinConfig, ProtocolConfig
from ..errors import EmptyResultError
from ..interfaces.chain import ViewClient
from ..models import ObligationData, WalletPosition
from ..protocols.supralend.parser import (
    combine_obligations,
    get_decimals,
    parse_balance,
    parse_obligation,
)
from .batch import gather_keyed

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


def _log_failure(what: str, symbol: str, error: Exception | None) -> None:
    # An empty result means no coin store or no obligation for that asset.
    if isinstance(error, EmptyResultError):
        logger.debug("No %s for %s", what, symbol)
    else:
        logger.error("Error fetching %s for %s: %s", what, symbol, error)


class WalletPositionReconciler:
    """Builds the per-asset position mapping for one account.

    Each pass replaces the published mappings as a whole, so readers see
    either the previous pass or the new one.
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
        self._positions: Mapping[str, WalletPosition] = MappingProxyType({})
        self._obligations: Mapping[str, ObligationData] = MappingProxyType({})
        self._generation = 0

    @property
    def positions(self) -> Mapping[str, WalletPosition]:
        return self._positions

    @property
    def obligations(self) -> Mapping[str, ObligationData]:
        return self._obligations

    def clear(self) -> None:
        """Drop published state; a reconcile already in flight will not publish."""
        self._generation += 1
        self._positions = MappingProxyType({})
        self._obligations = MappingProxyType({})

    async def _fetch_balance(self, coin: CoinConfig, account: str) -> Decimal:
        decimals = get_decimals(coin.symbol, self._config.token_decimals)
        result = await self._client.call_view(
            self._config.balance_view, [coin.type_tag], [account]
        )
        return parse_balance(result, decimals)

    async def _fetch_obligation(self, coin: CoinConfig, account: str) -> ObligationData:
        decimals = get_decimals(coin.symbol, self._config.token_decimals)
        result = await self._client.call_view(
            self._config.obligation_view, [coin.type_tag], [account]
        )
        return parse_obligation(
            result, decimals, self._config.obligation_ratio_divisor
        )

    async def reconcile(
        self,
        account: str,
        prices: Mapping[str, Decimal] | None = None,
    ) -> dict[str, WalletPosition]:
        """Fetch balances and obligations for ``account`` and merge them.

        Args:
            account: Wallet address.
            prices: Optional symbol → USD price used to value each position.
        """
        generation = self._generation
        coins = self._config.coins
        balance_results, obligation_results = await asyncio.gather(
            gather_keyed(
                {
                    i: (lambda c=coin: self._fetch_balance(c, account))
                    for i, coin in enumerate(coins)
                },
                timeout=self._timeout,
            ),
            gather_keyed(
                {
                    i: (lambda c=coin: self._fetch_obligation(c, account))
                    for i, coin in enumerate(coins)
                },
                timeout=self._timeout,
            ),
        )

        balances: dict[str, Decimal] = {}
        for i, result in balance_results.items():
            symbol = coins[i].symbol
            if not result.ok:
                _log_failure("balance", symbol, result.error)
                continue
            balances[symbol] = balances.get(symbol, ZERO) + result.value

        obligations: dict[str, ObligationData] = {}
        for i, result in obligation_results.items():
            symbol = coins[i].symbol
            if not result.ok:
                _log_failure("obligation", symbol, result.error)
                continue
            if symbol in obligations:
                obligations[symbol] = combine_obligations(obligations[symbol], result.value)
            else:
                obligations[symbol] = result.value

        if generation != self._generation:
            logger.info("Discarding stale reconcile for %s", account)
            return {}

        prices = prices or {}
        positions: dict[str, WalletPosition] = {}
        for symbol, amount in balances.items():
            usd_price = prices.get(symbol, ZERO)
            obligation = obligations.get(symbol)
            positions[symbol] = WalletPosition(
                asset=symbol,
                amount=amount,
                usd_price=usd_price,
                total_value=amount * usd_price,
                borrowed=obligation.debt_amount if obligation else ZERO,
                deposited=obligation.collateral_amount if obligation else ZERO,
                obligation=obligation,
            )

        self._positions = MappingProxyType(dict(positions))
        self._obligations = MappingProxyType(dict(obligations))
        logger.info(
            "Reconciled wallet %s: %d positions, %d obligations",
            account,
            len(positions),
            len(obligations),
        )
        return positions

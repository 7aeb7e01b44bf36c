"""Aggregation orchestration — runs the price, asset, pool and wallet pipelines."""
from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

from ..chains.supra import SupraClient
from ..config import AppConfig
from ..interfaces.chain import ViewClient
from ..interfaces.price_oracle import QuoteSource
from ..interfaces.wallet import WalletSession
from ..models import (
    STATUS_ACTIVE,
    AssetSnapshot,
    ObligationData,
    PoolMetrics,
    PriceUpdate,
    WalletPosition,
)
from ..oracles import SupraQuoteClient
from ..protocols.supralend.parser import to_decimal
from .asset_snapshot import AssetSnapshotBuilder
from .pool_metrics import PoolMetricsAggregator
from .price_history import PriceHistoryWindow
from .price_poller import PricePoller
from .scheduler import PeriodicTask
from .wallet_positions import WalletPositionReconciler

logger = logging.getLogger(__name__)

# Called with the new update and the window's direction ("up", "down" or None).
PriceSubscriber = Callable[[PriceUpdate, Optional[str]], Any]


class Monitor:
    """Owns all aggregated state and the four independent refresh loops."""

    def __init__(
        self,
        config: AppConfig,
        quote_source: QuoteSource | None = None,
        view_client: ViewClient | None = None,
    ) -> None:
        self._config = config
        self._quotes: QuoteSource = quote_source or SupraQuoteClient(config.quote_feed)
        self._chain: ViewClient = view_client or SupraClient(config.chain)

        self._poller = PricePoller(self._quotes, config.poller)
        self._history = PriceHistoryWindow(config.poller.history_window_ms)
        self._assets = AssetSnapshotBuilder(self._quotes, config.snapshot)
        # Each view-call may walk every endpoint before giving up.
        call_timeout = config.chain.rpc_timeout * max(1, len(config.chain.rpc_endpoints))
        self._pools = PoolMetricsAggregator(
            self._chain, config.protocol, timeout=call_timeout
        )
        self._wallet = WalletPositionReconciler(
            self._chain, config.protocol, timeout=call_timeout
        )

        self._subscribers: list[PriceSubscriber] = []
        self._price_update: PriceUpdate | None = None
        self._price_direction: str | None = None

        self._account: str | None = config.monitor.account or None
        self._session: WalletSession | None = None
        self._tasks: list[PeriodicTask] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def price_update(self) -> PriceUpdate | None:
        return self._price_update

    @property
    def price_direction(self) -> str | None:
        return self._price_direction

    @property
    def asset_snapshots(self) -> list[AssetSnapshot]:
        return self._assets.snapshots

    @property
    def pool_metrics(self) -> Mapping[str, PoolMetrics]:
        return self._pools.metrics

    @property
    def wallet_positions(self) -> Mapping[str, WalletPosition]:
        return self._wallet.positions

    @property
    def obligations(self) -> Mapping[str, ObligationData]:
        return self._wallet.obligations

    @property
    def account(self) -> str | None:
        return self._account

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _format_wallet(address: str) -> str:
        if len(address) > 16:
            return f"{address[:10]}...{address[-6:]}"
        return address

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    @staticmethod
    def format_assets(rows: list[AssetSnapshot]) -> str:
        lines = [f"{'Asset':<8}{'Price':>16}{'24h %':>10}  {'Pair':<12}Status"]
        for r in rows:
            lines.append(
                f"{r.name:<8}{r.price:>16}{r.price_change:>10.2f}  {r.data_pair:<12}{r.status}"
            )
        return "\n".join(lines)

    @staticmethod
    def format_pool_metrics(metrics: Mapping[str, PoolMetrics]) -> str:
        if not metrics:
            return "No pool metrics available."
        lines = [f"{'Asset':<8}{'Deposits':>20}{'Borrows':>20}{'LTV':>8}{'BW':>8}"]
        for symbol, m in metrics.items():
            lines.append(
                f"{symbol:<8}{m.deposits:>20,.4f}{m.borrows:>20,.4f}"
                f"{m.ltv:>8.2f}{m.bw:>8.2f}"
            )
        return "\n".join(lines)

    def format_positions(self, positions: Mapping[str, WalletPosition]) -> str:
        header = f"📊 Wallet {self._format_wallet(self._account or '—')}"
        if not positions:
            return f"{header}\n\nNo balances found.\n\n{self._now_str()} UTC"
        lines = [header, ""]
        for p in positions.values():
            lines.append(
                f"{p.asset}: {p.amount:,.4f} (${p.total_value:,.2f}) · "
                f"Deposited: {p.deposited:,.4f} · Borrowed: {p.borrowed:,.4f}"
            )
        lines.extend(["", f"{self._now_str()} UTC"])
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Price stream
    # ------------------------------------------------------------------

    def subscribe(self, callback: PriceSubscriber) -> Callable[[], None]:
        """Register for price updates; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def _on_price_update(self, update: PriceUpdate) -> None:
        self._history.push(update)
        self._price_update = update
        self._price_direction = self._history.direction()
        logger.info(
            "Price %s: %s (%s)",
            update.catalog_info.pair,
            update.average,
            self._price_direction or "flat",
        )

        for subscriber in list(self._subscribers):
            try:
                outcome = subscriber(update, self._price_direction)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error("Price subscriber failed: %s", e)

    # ------------------------------------------------------------------
    # Refresh workflows
    # ------------------------------------------------------------------

    def _asset_prices(self) -> dict[str, Decimal]:
        prices: dict[str, Decimal] = {}
        for row in self._assets.snapshots:
            if row.status == STATUS_ACTIVE:
                prices[row.name] = to_decimal(row.price)
        return prices

    async def refresh_price(self) -> PriceUpdate | None:
        update = await self._poller.poll_once()
        if update is not None:
            await self._on_price_update(update)
        return update

    async def refresh_assets(self) -> list[AssetSnapshot]:
        return await self._assets.build()

    async def refresh_pool_metrics(self) -> dict[str, PoolMetrics]:
        return await self._pools.refresh()

    async def refresh_wallet(self) -> dict[str, WalletPosition]:
        account = self._account
        if not account:
            self._wallet.clear()
            return {}
        return await self._wallet.reconcile(account, self._asset_prices())

    async def check_once(self) -> None:
        """Run every pipeline once, concurrently."""
        await asyncio.gather(
            self.refresh_price(),
            self.refresh_assets(),
            self.refresh_pool_metrics(),
            self.refresh_wallet(),
        )

    # ------------------------------------------------------------------
    # Wallet session
    # ------------------------------------------------------------------

    async def connect_wallet(self, session: WalletSession) -> str | None:
        """Connect through ``session`` and reconcile the new account at once."""
        try:
            await session.init()
            if not session.is_available():
                logger.error("Wallet not available.")
                return None
            account = await session.connect()
        except Exception as e:
            logger.error("Error connecting wallet: %s", e)
            return None

        if not account or account == "undefined":
            logger.error("Invalid account returned from wallet connect")
            return None

        self._session = session
        self._set_account(account)
        logger.info("Connected wallet %s", self._format_wallet(account))
        await self.refresh_wallet()
        return account

    def _set_account(self, account: str | None) -> None:
        account = account or None
        if account != self._account:
            self._wallet.clear()
        self._account = account

    def track_account(self, account: str | None) -> None:
        """Track ``account`` without a wallet session (read-only views)."""
        self._set_account(account)

    async def disconnect_wallet(self) -> None:
        session, self._session = self._session, None
        self._set_account(None)
        self._wallet.clear()
        if session is not None:
            try:
                await session.disconnect()
            except Exception as e:
                logger.error("Failed to disconnect wallet: %s", e)
        logger.info("Wallet disconnected")

    async def submit_transaction(self, payload: dict[str, Any]) -> str:
        if self._session is None or not self._account:
            raise RuntimeError("No wallet connected")
        return await self._session.submit_transaction(payload)

    # ------------------------------------------------------------------
    # Continuous operation
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start all four pipelines; each runs on its own schedule."""
        if self._tasks:
            raise RuntimeError("Monitor already started")
        monitor_cfg = self._config.monitor
        self._poller.start(self._on_price_update)
        self._tasks = [
            PeriodicTask(
                self.refresh_assets,
                self._config.snapshot.interval_seconds,
                name="asset-snapshot",
            ).start(),
            PeriodicTask(
                self.refresh_pool_metrics,
                monitor_cfg.pool_metrics_interval_seconds,
                name="pool-metrics",
            ).start(),
            PeriodicTask(
                self.refresh_wallet,
                monitor_cfg.wallet_interval_seconds,
                name="wallet-positions",
            ).start(),
        ]

    def stop(self) -> None:
        self._poller.stop()
        for task in self._tasks:
            task.stop()

    async def wait(self) -> None:
        await asyncio.gather(self._poller.wait(), *(t.wait() for t in self._tasks))

    async def run_continuous(self) -> None:
        """Run until stopped or cancelled."""
        logger.info(
            "Starting continuous aggregation (price every %ss, pools every %ss)",
            self._config.poller.interval_seconds,
            self._config.monitor.pool_metrics_interval_seconds,
        )
        self.start()
        try:
            await self.wait()
        finally:
            self.stop()

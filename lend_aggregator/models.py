"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

UP = "up"
DOWN = "down"

STATUS_ACTIVE = "active"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class Quote:
    """One price observation. Prices are kept as the feed's decimal strings."""

    timestamp: datetime
    average: str
    median: str
    high: str
    low: str


@dataclass(frozen=True)
class CatalogInfo:
    pair: str
    index: str
    provider: str


@dataclass(frozen=True)
class PriceUpdate:
    """A quote emitted by one poll cycle, tagged with its source."""

    quote: Quote
    catalog_info: CatalogInfo

    @property
    def timestamp(self) -> datetime:
        return self.quote.timestamp

    @property
    def average(self) -> str:
        return self.quote.average


@dataclass(frozen=True)
class TrackedAsset:
    """Static descriptor of an asset priced by the quote feed.

    ``aliases`` are extra display names that share the asset's computed row.
    """

    name: str
    instrument_id: str
    pair: str
    display_name: str = ""
    aliases: tuple[str, ...] = ()

    @property
    def display_names(self) -> tuple[str, ...]:
        return (self.display_name or self.name,) + self.aliases


@dataclass(frozen=True)
class AssetSnapshot:
    """One row of the asset table."""

    name: str
    deposits: str
    borrows: str
    ltv: str
    bw: str
    deposit_apr: str
    borrow_apr: str
    price: str
    price_change: float
    data_pair: str
    status: str = STATUS_ACTIVE


@dataclass(frozen=True)
class PoolMetrics:
    """Protocol-level figures for one asset, normalized to human scale."""

    deposits: Decimal
    borrows: Decimal
    ltv: Decimal
    bw: Decimal


@dataclass(frozen=True)
class ObligationData:
    collateral_amount: Decimal
    debt_amount: Decimal
    ltv: Decimal
    liquidation_threshold: Decimal


@dataclass(frozen=True)
class WalletPosition:
    """Consolidated per-asset wallet record (balance merged with obligation)."""

    asset: str
    amount: Decimal
    usd_price: Decimal = Decimal(0)
    total_value: Decimal = Decimal(0)
    borrowed: Decimal = Decimal(0)
    deposited: Decimal = Decimal(0)
    obligation: ObligationData | None = None

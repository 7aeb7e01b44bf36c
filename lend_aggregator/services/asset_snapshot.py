"""Per-asset market snapshot table built from parallel quote fetches."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from ..config import SnapshotConfig
from ..errors import EmptyResultError
from ..interfaces.price_oracle import QuoteSource
from ..models import STATUS_ACTIVE, STATUS_ERROR, AssetSnapshot, TrackedAsset
from ..protocols.supralend.parser import percent_change, select_latest, select_previous
from .batch import gather_keyed

logger = logging.getLogger(__name__)

STABLE_PRICE = "1.00"
DEFAULT_PRICE = "0"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssetSnapshotBuilder:
    """Builds one row per asset display name; failures stay per asset."""

    def __init__(
        self,
        source: QuoteSource,
        config: SnapshotConfig,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = source
        self._config = config
        self._clock = clock
        self._snapshots: tuple[AssetSnapshot, ...] = ()

    @property
    def snapshots(self) -> list[AssetSnapshot]:
        return list(self._snapshots)

    async def _attempt(self, asset: TrackedAsset) -> tuple[str, float]:
        """Fetch the asset's recent quotes; return (price, percent change)."""
        now = self._clock()
        quotes = await self._source.fetch_quotes(
            asset,
            now - timedelta(hours=self._config.lookback_hours),
            now,
            self._config.granularity_seconds,
            force_update=True,
        )
        if not quotes:
            raise EmptyResultError(f"No price data available for {asset.pair}")

        latest = select_latest(quotes)
        previous = select_previous(quotes, latest)
        change = percent_change(
            latest.average, previous.average if previous is not None else None
        )
        return latest.average, change

    async def _resolve(self, asset: TrackedAsset) -> tuple[str, float]:
        try:
            return await self._attempt(asset)
        except Exception as e:
            logger.warning("Error fetching data for %s: %s; retrying", asset.name, e)
        await asyncio.sleep(self._config.retry_delay_seconds)
        return await self._attempt(asset)

    def _rows(
        self, asset: TrackedAsset, price: str, change: float, status: str
    ) -> list[AssetSnapshot]:
        if asset.name == self._config.stable_asset:
            price, change = STABLE_PRICE, 0.0

        defaults = self._config.defaults
        return [
            AssetSnapshot(
                name=name,
                deposits="0",
                borrows="0",
                ltv=defaults.ltv,
                bw=defaults.bw,
                deposit_apr=defaults.deposit_apr,
                borrow_apr=defaults.borrow_apr,
                price=price,
                price_change=change,
                data_pair=asset.pair,
                status=status,
            )
            for name in asset.display_names
        ]

    async def build(self) -> list[AssetSnapshot]:
        """Fetch every tracked asset concurrently and publish the new table."""
        assets = {asset.name: asset for asset in self._config.assets}
        results = await gather_keyed(
            {name: (lambda a=asset: self._resolve(a)) for name, asset in assets.items()}
        )

        rows: list[AssetSnapshot] = []
        for name, result in results.items():
            asset = assets[name]
            if result.ok:
                price, change = result.value
                rows.extend(self._rows(asset, price, change, STATUS_ACTIVE))
            else:
                logger.error(
                    "Retry failed for %s: %s; using default values", name, result.error
                )
                rows.extend(self._rows(asset, DEFAULT_PRICE, 0.0, STATUS_ERROR))

        self._snapshots = tuple(rows)
        logger.info(
            "Asset snapshot built: %d rows, %d errors",
            len(rows),
            sum(1 for r in rows if r.status == STATUS_ERROR),
        )
        return rows

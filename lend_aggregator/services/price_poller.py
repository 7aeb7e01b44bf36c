"""Fixed-cadence price poller feeding a subscriber callback."""
from __future__ import annotations

import inspect
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from ..config import PollerConfig
from ..interfaces.price_oracle import QuoteSource
from ..models import CatalogInfo, PriceUpdate, TrackedAsset
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)

IDLE = "idle"
RUNNING = "running"
STOPPED = "stopped"

PriceCallback = Callable[[PriceUpdate], Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PricePoller:
    """Polls one trading pair forever, one cycle at a time.

    Every outcome of a cycle (update, no data, failure) is followed by the
    same full interval before the next one; there is no retry budget.
    """

    def __init__(
        self,
        source: QuoteSource,
        config: PollerConfig,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = source
        self._config = config
        self._clock = clock
        self._pair = TrackedAsset(
            name=config.pair, instrument_id=config.instrument_id, pair=config.pair
        )
        self._catalog_info = CatalogInfo(
            pair=config.pair,
            index=config.instrument_id,
            provider=config.provider_name,
        )
        self._task: PeriodicTask | None = None
        self._state = IDLE

    @property
    def state(self) -> str:
        return self._state

    async def poll_once(self) -> PriceUpdate | None:
        """Run one cycle; returns the update or None when nothing was emitted."""
        now = self._clock()
        start = now - timedelta(days=self._config.lookback_days)
        try:
            quotes = await self._source.fetch_quotes(
                self._pair,
                start,
                now,
                self._config.granularity_seconds,
                force_update=False,
            )
        except Exception as e:
            logger.error("Error polling price for %s: %s", self._config.pair, e)
            return None

        if not quotes:
            logger.info("No price data received for %s", self._config.pair)
            return None

        # The feed lists its current price first.
        return PriceUpdate(quote=quotes[0], catalog_info=self._catalog_info)

    def start(
        self, callback: PriceCallback, interval: float | None = None
    ) -> Callable[[], None]:
        """Begin polling and return the ``stop`` handle."""
        if self._state != IDLE:
            raise RuntimeError(f"Price poller cannot start from state '{self._state}'")

        async def cycle() -> None:
            update = await self.poll_once()
            if update is None:
                return
            try:
                outcome = callback(update)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error("Price update subscriber failed: %s", e)

        period = interval if interval is not None else self._config.interval_seconds
        self._task = PeriodicTask(
            cycle,
            period,
            name=f"price-poller[{self._config.pair}]",
        ).start()
        self._state = RUNNING
        logger.info("Polling %s every %ss", self._config.pair, period)
        return self.stop

    def stop(self) -> None:
        if self._task is not None:
            self._task.stop()
        if self._state == RUNNING:
            self._state = STOPPED

    async def wait(self) -> None:
        if self._task is not None:
            await self._task.wait()

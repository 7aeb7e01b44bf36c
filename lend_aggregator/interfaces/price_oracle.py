"""Quote source protocol — price feed abstraction."""
from datetime import datetime
from typing import Protocol

from ..models import Quote, TrackedAsset


class QuoteSource(Protocol):
    """Abstract interface for fetching OHLC-style quotes for a trading pair."""

    async def fetch_quotes(
        self,
        pair: TrackedAsset,
        range_start: datetime,
        range_end: datetime,
        granularity_seconds: int,
        force_update: bool = False,
    ) -> list[Quote]: ...

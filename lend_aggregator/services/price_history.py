"""Rolling in-memory price history and trend direction."""
from __future__ import annotations

from ..models import DOWN, UP, PriceUpdate
from ..protocols.supralend.parser import to_decimal

DEFAULT_WINDOW_MS = 300_000


class PriceHistoryWindow:
    """Time-bounded append log of price updates.

    Pruning drops entries more than ``window_ms`` older than the update being
    pushed (never wall-clock time) and is the only way entries leave the
    window. Entries newer than the pushed update are kept.
    """

    def __init__(self, window_ms: int = DEFAULT_WINDOW_MS) -> None:
        self._window_ms = window_ms
        self._entries: list[PriceUpdate] = []
        self._latest: PriceUpdate | None = None

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[PriceUpdate, ...]:
        return tuple(self._entries)

    @property
    def latest(self) -> PriceUpdate | None:
        return self._latest

    def push(self, update: PriceUpdate) -> None:
        self._entries.append(update)
        self._latest = update
        anchor = update.timestamp
        self._entries = [
            entry
            for entry in self._entries
            if (anchor - entry.timestamp).total_seconds() * 1000 <= self._window_ms
        ]

    def direction(self) -> str | None:
        """``"up"``/``"down"`` comparing newest to oldest surviving, else None."""
        if not self._entries or self._latest is None:
            return None
        newest = to_decimal(self._latest.average)
        oldest = to_decimal(self._entries[0].average)
        if newest > oldest:
            return UP
        if newest < oldest:
            return DOWN
        return None

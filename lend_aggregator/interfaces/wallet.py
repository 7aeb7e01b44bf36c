"""Wallet session protocol — wallet-connect SDK abstraction."""
from typing import Any, Protocol


class WalletSession(Protocol):
    """Abstract interface for a browser or hardware wallet session."""

    async def init(self) -> None: ...

    def is_available(self) -> bool: ...

    async def connect(self) -> str: ...

    async def disconnect(self) -> None: ...

    async def submit_transaction(self, payload: dict[str, Any]) -> str: ...

"""Chain client protocol — read-only view-call abstraction."""
from typing import Any, Protocol


class ViewClient(Protocol):
    """Abstract interface for on-chain view-calls."""

    async def call_view(
        self,
        function: str,
        type_arguments: list[str],
        arguments: list[Any],
    ) -> list[Any]: ...

"""Keyed concurrent batch runner — every member settles, none cancels another."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Hashable, Mapping, TypeVar

from ..errors import EmptyResultError, TransportError

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of one batch member: a value or the error it failed with."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _settle(
    key: Hashable,
    operation: Callable[[], Awaitable[T]],
    timeout: float | None,
) -> Result[T]:
    try:
        if timeout is None:
            value = await operation()
        else:
            value = await asyncio.wait_for(operation(), timeout)
    except asyncio.TimeoutError:
        logger.warning("Batch member %s timed out after %ss", key, timeout)
        return Result(error=TransportError(f"{key} timed out after {timeout}s"))
    except EmptyResultError as e:
        logger.debug("Batch member %s returned no data: %s", key, e)
        return Result(error=e)
    except Exception as e:
        logger.warning("Batch member %s failed: %s", key, e)
        return Result(error=e)
    return Result(value=value)


async def gather_keyed(
    operations: Mapping[K, Callable[[], Awaitable[T]]],
    timeout: float | None = None,
) -> dict[K, Result[T]]:
    """Run keyed async operations concurrently and collect their outcomes.

    Args:
        operations: Key → zero-argument coroutine factory.
        timeout: Optional per-member timeout in seconds; a member that runs
            over it settles with a ``TransportError``.

    Returns:
        Key → ``Result`` in the input's key order. Picking a fallback for
        failed members is left to the caller.
    """
    keys = list(operations)
    results = await asyncio.gather(
        *(_settle(key, operations[key], timeout) for key in keys)
    )
    return dict(zip(keys, results))

"""Unit tests for the keyed batch combinator."""
from __future__ import annotations

import asyncio

import pytest

from lend_aggregator.errors import TransportError
from lend_aggregator.services.batch import Result, gather_keyed


async def _value(v, delay: float = 0.0):
    await asyncio.sleep(delay)
    return v


async def _fail(msg: str):
    raise ValueError(msg)


class TestResult:
    def test_ok(self) -> None:
        assert Result(value=1).ok
        assert not Result(error=ValueError("x")).ok


class TestGatherKeyed:
    @pytest.mark.asyncio
    async def test_all_succeed(self) -> None:
        results = await gather_keyed(
            {"a": lambda: _value(1), "b": lambda: _value(2)}
        )
        assert {k: r.value for k, r in results.items()} == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_others(self) -> None:
        results = await gather_keyed(
            {
                "slow": lambda: _value("done", delay=0.02),
                "bad": lambda: _fail("boom"),
            }
        )
        assert results["slow"].ok
        assert results["slow"].value == "done"
        assert not results["bad"].ok
        assert isinstance(results["bad"].error, ValueError)

    @pytest.mark.asyncio
    async def test_preserves_key_order(self) -> None:
        results = await gather_keyed(
            {
                3: lambda: _value("c", delay=0.01),
                1: lambda: _value("a"),
                2: lambda: _value("b", delay=0.005),
            }
        )
        assert list(results) == [3, 1, 2]

    @pytest.mark.asyncio
    async def test_timeout_settles_as_transport_error(self) -> None:
        results = await gather_keyed(
            {"stuck": lambda: _value(1, delay=1.0), "fast": lambda: _value(2)},
            timeout=0.01,
        )
        assert isinstance(results["stuck"].error, TransportError)
        assert results["fast"].value == 2

    @pytest.mark.asyncio
    async def test_empty_batch(self) -> None:
        assert await gather_keyed({}) == {}

"""Supra price-catalog GraphQL client."""
from __future__ import annotations

import logging
import ssl
from datetime import datetime, timezone
from typing import Any

import aiohttp
import certifi

from ..config import QuoteFeedConfig
from ..errors import NormalizationError, TransportError
from ..models import Quote, TrackedAsset
from ..protocols.supralend.parser import parse_quote

logger = logging.getLogger(__name__)

OPERATION_NAME = "GetCatalogTradingPairPricesGraph"

PRICES_GRAPH_QUERY = """
query GetCatalogTradingPairPricesGraph($input: CatalogTradingPairPricesAndGraphInput) {
  catalogTradingPairPricesGraph(input: $input) {
    average
    median
    high
    low
    timestamp
    __typename
  }
}
"""


def _iso(moment: datetime) -> str:
    """Render an instant the way the catalog API expects (UTC, millis, Z)."""
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class SupraQuoteClient:
    """Fetch OHLC-style price statistics from the Supra price catalog."""

    def __init__(self, config: QuoteFeedConfig) -> None:
        self.url = config.url
        self.timeout = config.timeout
        self.instrument_type_id = config.instrument_type_id
        self.dora_type = config.dora_type
        self.provider_id = config.provider_id

    def build_input(
        self,
        pair: TrackedAsset,
        range_start: datetime,
        range_end: datetime,
        granularity_seconds: int,
        force_update: bool = False,
    ) -> dict[str, Any]:
        return {
            "instrumentTypeId": self.instrument_type_id,
            "instrumentId": pair.instrument_id,
            "doraType": self.dora_type,
            "instrumentPairDisplayName": pair.pair,
            "createdAtStart": _iso(range_start),
            "createdAtEnd": _iso(range_end),
            "interval": granularity_seconds,
            "providerId": self.provider_id,
            "forceUpdate": force_update,
        }

    async def _post(self, operations: list[dict[str, Any]]) -> list[dict[str, Any]]:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    self.url,
                    json=operations,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise TransportError(
                            f"Price catalog returned HTTP {response.status}"
                        )
                    data = await response.json()
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Price catalog request failed: {e}") from e

        if not isinstance(data, list) or not data:
            raise NormalizationError("Price catalog returned an unexpected payload")
        if data[0].get("errors"):
            raise TransportError(f"GraphQL request failed: {data[0]['errors']}")
        return data

    async def fetch_quotes(
        self,
        pair: TrackedAsset,
        range_start: datetime,
        range_end: datetime,
        granularity_seconds: int,
        force_update: bool = False,
    ) -> list[Quote]:
        """Fetch quotes for ``pair`` in ``[range_start, range_end)``.

        Entries come back in the feed's order, which is not guaranteed to be
        sorted by timestamp. An empty list is returned as-is.

        Raises:
            TransportError: network, HTTP or GraphQL failure.
            NormalizationError: malformed payload or quote entry.
        """
        operation = {
            "operationName": OPERATION_NAME,
            "query": PRICES_GRAPH_QUERY,
            "variables": {
                "input": self.build_input(
                    pair, range_start, range_end, granularity_seconds, force_update
                )
            },
        }

        data = await self._post([operation])
        graph = (data[0].get("data") or {}).get("catalogTradingPairPricesGraph") or []

        quotes = [parse_quote(entry) for entry in graph]
        logger.debug("Fetched %d quotes for %s", len(quotes), pair.pair)
        return quotes

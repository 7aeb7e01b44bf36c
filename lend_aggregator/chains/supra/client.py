"""Supra RPC client with fallback support."""
from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import TransportError

logger = logging.getLogger(__name__)


class SupraClient:
    """Supra view-call client with automatic endpoint fallback."""

    VIEW_PATH = "/rpc/v1/view"

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0

    async def _post(self, rpc_url: str, payload: dict[str, Any]) -> dict[str, Any]:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                rpc_url.rstrip("/") + self.VIEW_PATH,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    raise TransportError(f"HTTP {response.status}")
                result = await response.json()
                if "error" in result:
                    raise TransportError(f"RPC Error: {result['error']}")
                return result

    async def call_view(
        self,
        function: str,
        type_arguments: list[str],
        arguments: list[Any],
    ) -> list[Any]:
        """Invoke a read-only Move function and return its positional result.

        Endpoints are tried in turn starting from the last one that worked.
        An empty list means the call succeeded without returning data.
        """
        if not self.endpoints:
            raise TransportError("No RPC endpoints configured")

        payload = {
            "function": function,
            "type_arguments": type_arguments,
            "arguments": arguments,
        }

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                result = await self._post(rpc_url, payload)
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

            if rpc_index != self.current_rpc_index:
                logger.info("Switched to RPC endpoint: %s", rpc_url)
                self.current_rpc_index = rpc_index

            return list(result.get("result") or [])

        raise TransportError(f"All RPC endpoints failed. Last error: {last_error}")

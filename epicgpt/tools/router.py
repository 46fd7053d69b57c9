"""
Tool router for the built-in Solana tools.

Dispatches model-requested function calls by name, validates required
arguments, and shapes upstream responses into the JSON the model sees.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from epicgpt.config.settings import ToolSettings
from epicgpt.tools.base import ToolAdapter, ToolResult
from epicgpt.tools.birdeye import BirdeyeClient
from epicgpt.tools.schemas import (
    GET_SOLANA_BALANCE,
    GET_TOKEN_PRICE,
    GET_TOKEN_SUPPLY,
    TOOL_SCHEMAS,
)
from epicgpt.tools.solana import SolanaClient

logger = logging.getLogger(__name__)


class ToolRouter(ToolAdapter):
    """
    Executes the statically declared tool set.

    Owns one ``httpx.AsyncClient`` shared by the Solana and Birdeye clients;
    it is opened in ``initialize()`` and closed in ``shutdown()``. Clients can
    also be injected directly, which is how the tests drive the router.
    """

    def __init__(
        self,
        settings: ToolSettings,
        solana: SolanaClient | None = None,
        birdeye: BirdeyeClient | None = None,
    ):
        self._settings = settings
        self._http: httpx.AsyncClient | None = None
        self._solana = solana
        self._birdeye = birdeye

    async def initialize(self) -> None:
        if self._solana is not None and self._birdeye is not None:
            return
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(self._settings.http_timeout))
        if self._solana is None:
            self._solana = SolanaClient(self._http, self._settings.solana_rpc_url)
        if self._birdeye is None:
            self._birdeye = BirdeyeClient(self._http, self._settings.birdeye_api_key)
        logger.info(f"Tool router ready (RPC: {self._settings.solana_rpc_url})")

    async def shutdown(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def list_tools(self) -> list[dict[str, Any]]:
        return TOOL_SCHEMAS

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        try:
            if tool_name == GET_SOLANA_BALANCE:
                return await self._get_solana_balance(arguments)
            if tool_name == GET_TOKEN_SUPPLY:
                return await self._get_token_supply(arguments)
            if tool_name == GET_TOKEN_PRICE:
                return await self._get_token_price(arguments)
            return ToolResult.fail(f"Unknown tool: {tool_name}")
        except Exception as e:
            # Returned to the model as {"error": ...} instead of failing the run
            logger.warning(f"Tool '{tool_name}' failed: {e}")
            return ToolResult.fail(str(e) or "Tool execution failed")

    def _require_clients(self) -> tuple[SolanaClient, BirdeyeClient]:
        if self._solana is None or self._birdeye is None:
            raise RuntimeError("Tool router not initialized")
        return self._solana, self._birdeye

    async def _get_solana_balance(self, arguments: dict[str, Any]) -> ToolResult:
        address = arguments.get("address")
        if not address or not isinstance(address, str):
            return ToolResult.fail("Missing address parameter")
        solana, _ = self._require_clients()
        balance = await solana.get_balance(address)
        return ToolResult.ok({
            "address": address,
            "balance": balance.sol,
            "balanceLamports": balance.lamports,
            "unit": "SOL",
        })

    async def _get_token_supply(self, arguments: dict[str, Any]) -> ToolResult:
        mint = arguments.get("mint")
        if not mint or not isinstance(mint, str):
            return ToolResult.fail("Missing mint parameter")
        solana, _ = self._require_clients()
        supply = await solana.get_token_supply(mint)
        return ToolResult.ok({
            "mint": mint,
            "supply": supply.supply,
            "decimals": supply.decimals,
        })

    async def _get_token_price(self, arguments: dict[str, Any]) -> ToolResult:
        mint_or_symbol = arguments.get("mintOrSymbol")
        if not mint_or_symbol or not isinstance(mint_or_symbol, str):
            return ToolResult.fail("Missing mintOrSymbol parameter")
        _, birdeye = self._require_clients()
        price = await birdeye.get_price(mint_or_symbol)

        result: dict[str, Any] = {
            "token": price.symbol,
            "price": price.price,
            "priceUSD": f"${price.price:.6f}",
        }
        if price.price_change_24h:
            change = price.price_change_24h
            result["priceChange24h"] = f"{'+' if change > 0 else ''}{change:.2f}%"
        return ToolResult.ok(result)

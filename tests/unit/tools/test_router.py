"""
Unit tests for ToolRouter.

The Solana and Birdeye clients are replaced with mocks so these tests cover
dispatch, argument checks and result shaping only.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from epicgpt.config.settings import ToolSettings
from epicgpt.tools.birdeye import TokenPrice, TokenPriceNotFound
from epicgpt.tools.router import ToolRouter
from epicgpt.tools.schemas import TOOL_SCHEMAS
from epicgpt.tools.solana import SolanaBalance, TokenSupply

WALLET = "So11111111111111111111111111111111111111112"


@pytest.fixture
def solana():
    client = MagicMock()
    client.get_balance = AsyncMock(return_value=SolanaBalance(lamports=1_500_000_000))
    client.get_token_supply = AsyncMock(return_value=TokenSupply(supply=1000.0, decimals=6))
    return client


@pytest.fixture
def birdeye():
    client = MagicMock()
    client.get_price = AsyncMock(
        return_value=TokenPrice(mint=WALLET, symbol="SOL", price=142.5, price_change_24h=2.345)
    )
    return client


@pytest.fixture
def router(solana, birdeye):
    return ToolRouter(ToolSettings(), solana=solana, birdeye=birdeye)


class TestToolDeclarations:

    def test_lists_three_function_tools(self, router):
        tools = router.list_tools()
        assert tools is TOOL_SCHEMAS
        names = {tool["function"]["name"] for tool in tools}
        assert names == {"get_solana_balance", "get_token_supply", "get_token_price"}
        assert all(tool["type"] == "function" for tool in tools)


class TestExecute:

    @pytest.mark.asyncio
    async def test_balance(self, router, solana):
        result = await router.execute("get_solana_balance", {"address": WALLET})

        solana.get_balance.assert_awaited_once_with(WALLET)
        assert result.success is True
        assert result.result == {
            "address": WALLET,
            "balance": 1.5,
            "balanceLamports": 1_500_000_000,
            "unit": "SOL",
        }

    @pytest.mark.asyncio
    async def test_supply(self, router):
        result = await router.execute("get_token_supply", {"mint": WALLET})
        assert result.result == {"mint": WALLET, "supply": 1000.0, "decimals": 6}

    @pytest.mark.asyncio
    async def test_price_formats_usd_and_change(self, router, birdeye):
        result = await router.execute("get_token_price", {"mintOrSymbol": "sol"})

        birdeye.get_price.assert_awaited_once_with("sol")
        assert result.result == {
            "token": "SOL",
            "price": 142.5,
            "priceUSD": "$142.500000",
            "priceChange24h": "+2.35%",
        }

    @pytest.mark.asyncio
    async def test_price_without_change_omits_field(self, router, birdeye):
        birdeye.get_price.return_value = TokenPrice(mint=WALLET, symbol="SOL", price=1.0)
        result = await router.execute("get_token_price", {"mintOrSymbol": "SOL"})
        assert "priceChange24h" not in result.result

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "tool_name, expected_error",
        [
            ("get_solana_balance", "Missing address parameter"),
            ("get_token_supply", "Missing mint parameter"),
            ("get_token_price", "Missing mintOrSymbol parameter"),
        ],
    )
    async def test_missing_arguments(self, router, solana, tool_name, expected_error):
        result = await router.execute(tool_name, {})
        assert result.success is False
        assert result.error == expected_error
        solana.get_balance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_tool(self, router):
        result = await router.execute("launch_rocket", {})
        assert result.success is False
        assert result.error == "Unknown tool: launch_rocket"

    @pytest.mark.asyncio
    async def test_client_errors_become_failed_results(self, router, solana, birdeye):
        solana.get_balance.side_effect = ValueError("Invalid Solana address format")
        birdeye.get_price.side_effect = TokenPriceNotFound("Token price not found")

        balance = await router.execute("get_solana_balance", {"address": "bad"})
        price = await router.execute("get_token_price", {"mintOrSymbol": "XYZ"})

        assert balance.error == "Invalid Solana address format"
        assert price.error == "Token price not found"

    @pytest.mark.asyncio
    async def test_http_errors_become_failed_results(self, router, solana):
        solana.get_token_supply.side_effect = httpx.ConnectError("connection refused")
        result = await router.execute("get_token_supply", {"mint": WALLET})
        assert result.success is False
        assert "connection refused" in result.error


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_context_manager_builds_and_closes_http_client(self):
        async with ToolRouter(ToolSettings()) as router:
            assert router._http is not None
            assert router._solana is not None
            assert router._birdeye is not None
        assert router._http is None

    @pytest.mark.asyncio
    async def test_injected_clients_skip_http_client(self, router):
        await router.initialize()
        assert router._http is None

    @pytest.mark.asyncio
    async def test_execute_before_initialize_fails_cleanly(self):
        result = await ToolRouter(ToolSettings()).execute("get_solana_balance", {"address": WALLET})
        assert result.success is False
        assert result.error == "Tool router not initialized"

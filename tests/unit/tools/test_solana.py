"""Tests for the Solana RPC client, driven through httpx.MockTransport."""

import json

import httpx
import pytest

from epicgpt.tools.solana import (
    LAMPORTS_PER_SOL,
    SolanaClient,
    SolanaRPCError,
    is_valid_solana_address,
)

RPC_URL = "https://rpc.test"
WRAPPED_SOL = "So11111111111111111111111111111111111111112"
SYSTEM_PROGRAM = "11111111111111111111111111111111"


def _client(handler) -> SolanaClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SolanaClient(http, RPC_URL)


class TestAddressValidation:
    @pytest.mark.parametrize("address", [WRAPPED_SOL, SYSTEM_PROGRAM, "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"])
    def test_valid(self, address):
        assert is_valid_solana_address(address) is True

    @pytest.mark.parametrize(
        "address",
        [
            "",
            "abc",
            "0" * 44,  # '0' is not in the base58 alphabet
            "So1111111111111111111111111111111111111111l",  # 'l' is not either
            "z" * 44,  # decodes to more than 32 bytes
        ],
    )
    def test_invalid(self, address):
        assert is_valid_solana_address(address) is False


class TestGetBalance:
    @pytest.mark.asyncio
    async def test_sends_json_rpc_and_converts_lamports(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["host"] = request.url.host
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": 2_500_000_000}})

        balance = await _client(handler).get_balance(WRAPPED_SOL)

        assert seen["host"] == "rpc.test"
        assert seen["body"]["method"] == "getBalance"
        assert seen["body"]["params"][0] == WRAPPED_SOL
        assert balance.lamports == 2_500_000_000
        assert balance.sol == 2_500_000_000 / LAMPORTS_PER_SOL

    @pytest.mark.asyncio
    async def test_invalid_address_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(ValueError, match="Invalid Solana address format"):
            await _client(handler).get_balance("not-an-address")

    @pytest.mark.asyncio
    async def test_rpc_error_object_raises(self):
        def handler(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid param"}})

        with pytest.raises(SolanaRPCError, match="Invalid param"):
            await _client(handler).get_balance(WRAPPED_SOL)

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        def handler(request):
            return httpx.Response(503)

        with pytest.raises(httpx.HTTPStatusError):
            await _client(handler).get_balance(WRAPPED_SOL)


class TestGetTokenSupply:
    @pytest.mark.asyncio
    async def test_uses_ui_amount(self):
        def handler(request):
            assert json.loads(request.content)["method"] == "getTokenSupply"
            return httpx.Response(
                200,
                json={"result": {"value": {"amount": "1000000000", "decimals": 6, "uiAmount": 1000.0}}},
            )

        supply = await _client(handler).get_token_supply(WRAPPED_SOL)
        assert supply.supply == 1000.0
        assert supply.decimals == 6

    @pytest.mark.asyncio
    async def test_invalid_mint(self):
        with pytest.raises(ValueError, match="Invalid mint address format"):
            await _client(lambda r: httpx.Response(200)).get_token_supply("xyz")

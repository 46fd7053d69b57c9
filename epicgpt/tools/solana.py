"""
Solana JSON-RPC client.

Read-only lookups (SOL balance, SPL token supply) against a public or private
RPC node. Addresses are validated locally before any request is made.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000

_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {char: index for index, char in enumerate(_BASE58_ALPHABET)}


class SolanaRPCError(RuntimeError):
    """The RPC node answered with a JSON-RPC error object."""


def _base58_byte_length(value: str) -> int | None:
    """Decoded length of a base58 string, or None if it contains invalid characters."""
    number = 0
    for char in value:
        digit = _BASE58_INDEX.get(char)
        if digit is None:
            return None
        number = number * 58 + digit
    leading_zeros = len(value) - len(value.lstrip("1"))
    return leading_zeros + (number.bit_length() + 7) // 8


def is_valid_solana_address(address: str) -> bool:
    """True if ``address`` is a base58 string decoding to a 32-byte public key."""
    if not address or not 32 <= len(address) <= 44:
        return False
    return _base58_byte_length(address) == 32


@dataclass(frozen=True)
class SolanaBalance:
    lamports: int

    @property
    def sol(self) -> float:
        return self.lamports / LAMPORTS_PER_SOL


@dataclass(frozen=True)
class TokenSupply:
    supply: float
    decimals: int


class SolanaClient:
    """
    Minimal async Solana RPC client.

    Args:
        http: Shared HTTP client (owned by the caller)
        rpc_url: JSON-RPC endpoint
        commitment: Commitment level sent with every request
    """

    def __init__(self, http: httpx.AsyncClient, rpc_url: str, commitment: str = "confirmed"):
        self._http = http
        self._rpc_url = rpc_url
        self._commitment = commitment
        self._ids = itertools.count(1)

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        response = await self._http.post(self._rpc_url, json=payload)
        response.raise_for_status()
        body = response.json()
        if "error" in body:
            error = body["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise SolanaRPCError(f"{method} failed: {message}")
        return body.get("result")

    async def get_balance(self, address: str) -> SolanaBalance:
        """
        Fetch the SOL balance of a wallet.

        Raises:
            ValueError: If the address is not a valid public key
            SolanaRPCError: If the node rejects the request
            httpx.HTTPError: On transport or HTTP status failures
        """
        if not is_valid_solana_address(address):
            raise ValueError("Invalid Solana address format")
        result = await self._rpc("getBalance", [address, {"commitment": self._commitment}])
        return SolanaBalance(lamports=int(result["value"]))

    async def get_token_supply(self, mint: str) -> TokenSupply:
        """Fetch the UI-denominated total supply of an SPL token mint."""
        if not is_valid_solana_address(mint):
            raise ValueError("Invalid mint address format")
        result = await self._rpc("getTokenSupply", [mint, {"commitment": self._commitment}])
        value = result["value"]
        return TokenSupply(
            supply=float(value.get("uiAmount") or 0),
            decimals=int(value["decimals"]),
        )

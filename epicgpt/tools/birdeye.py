"""Birdeye token price client."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from epicgpt.tools.solana import is_valid_solana_address

logger = logging.getLogger(__name__)

BIRDEYE_API_BASE = "https://public-api.birdeye.so"

# Common token symbols to mint addresses
TOKEN_SYMBOLS: dict[str, str] = {
    "SOL": "So11111111111111111111111111111111111111112",
    "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    "BONK": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
    "JUP": "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",
    "RAY": "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
    "ORCA": "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE",
    "MNGO": "MangoCzJ36AjZyKwVj3VnYU4GTonjfVEnJmvvWaxLac",
    "STEP": "StepAscQoEioFxxWGnh2sLBDFp9d8rvKz2Yp39iDpyT",
    "SRM": "SRMuApVNdxXokk5GT7XD5cUUgXMBCoAz2LHeuAoKWRt",
}


class TokenPriceNotFound(LookupError):
    """Birdeye has no price for the requested mint."""


@dataclass(frozen=True)
class TokenPrice:
    mint: str
    symbol: str
    price: float
    price_change_24h: float | None = None


def resolve_mint(mint_or_symbol: str) -> str:
    """Map a known symbol (case-insensitive) to its mint; anything else is returned as-is."""
    return TOKEN_SYMBOLS.get(mint_or_symbol.upper(), mint_or_symbol)


def symbol_for_mint(mint: str) -> str | None:
    for symbol, known_mint in TOKEN_SYMBOLS.items():
        if known_mint == mint:
            return symbol
    return None


class BirdeyeClient:
    """Fetches USD token prices from the Birdeye public API."""

    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str = BIRDEYE_API_BASE):
        self._http = http
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def get_price(self, mint_or_symbol: str) -> TokenPrice:
        """
        Look up the current price of a token.

        Raises:
            ValueError: If the input is neither a known symbol nor a valid mint
            TokenPriceNotFound: If Birdeye returns no data for the mint
            httpx.HTTPError: On transport or HTTP status failures
        """
        mint = resolve_mint(mint_or_symbol)
        if not is_valid_solana_address(mint):
            raise ValueError("Invalid token mint address or unknown symbol")

        response = await self._http.get(
            f"{self._base_url}/defi/price",
            params={"address": mint},
            headers={"X-API-KEY": self._api_key, "Accept": "application/json"},
        )
        response.raise_for_status()
        body = response.json()

        data = body.get("data")
        if not body.get("success") or not data:
            raise TokenPriceNotFound("Token price not found")

        return TokenPrice(
            mint=mint,
            symbol=symbol_for_mint(mint) or mint_or_symbol,
            price=float(data["value"]),
            price_change_24h=data.get("priceChange24h"),
        )

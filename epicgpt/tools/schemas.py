"""Function-calling schemas for the built-in Solana tools."""

from typing import Any

GET_SOLANA_BALANCE = "get_solana_balance"
GET_TOKEN_SUPPLY = "get_token_supply"
GET_TOKEN_PRICE = "get_token_price"

TOOL_SCHEMAS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": GET_SOLANA_BALANCE,
            "description": "Get the SOL balance for a Solana wallet address",
            "parameters": {
                "type": "object",
                "properties": {
                    "address": {
                        "type": "string",
                        "description": "The Solana wallet address (base58 encoded public key)",
                    },
                },
                "required": ["address"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": GET_TOKEN_SUPPLY,
            "description": "Get the total supply of a Solana token by its mint address",
            "parameters": {
                "type": "object",
                "properties": {
                    "mint": {
                        "type": "string",
                        "description": "The token mint address (base58 encoded public key)",
                    },
                },
                "required": ["mint"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": GET_TOKEN_PRICE,
            "description": "Get the current price of a token in USD",
            "parameters": {
                "type": "object",
                "properties": {
                    "mintOrSymbol": {
                        "type": "string",
                        "description": 'The token mint address or symbol (e.g., "SOL", "USDC", '
                                       "or a mint address)",
                    },
                },
                "required": ["mintOrSymbol"],
            },
        },
    },
]

TOOL_NAMES = frozenset(schema["function"]["name"] for schema in TOOL_SCHEMAS)

"""
Tool Integration Layer.

Read-only Solana lookups the LLM can invoke (balance, token supply, token
price) and the web search client used by /search.
"""

from epicgpt.tools.base import ToolAdapter, ToolResult
from epicgpt.tools.router import ToolRouter
from epicgpt.tools.schemas import TOOL_SCHEMAS
from epicgpt.tools.web_search import SerperClient, WebSearchResponse, WebSearchResult

__all__ = [
    "SerperClient",
    "TOOL_SCHEMAS",
    "ToolAdapter",
    "ToolResult",
    "ToolRouter",
    "WebSearchResponse",
    "WebSearchResult",
]

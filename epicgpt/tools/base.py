"""
Base classes for tool adapters.

Provides the abstract interface for external tools the LLM can invoke during
response generation, and the result value every tool call produces.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class ToolResult(BaseModel):
    """Outcome of a tool call. Failures are values, not exceptions."""

    success: bool
    result: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, result: Any) -> "ToolResult":
        return cls(success=True, result=result)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)


class ToolAdapter(ABC):
    """
    Abstract base class for tool adapters.

    Tool adapters provide a uniform interface for calling external tools,
    whether they're JSON-RPC nodes, REST APIs, or other integrations.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the tool adapter.

        This may involve opening HTTP connection pools or performing
        handshakes with external services.
        """

    @abstractmethod
    async def shutdown(self) -> None:
        """Cleanly shut down the tool adapter and release its resources."""

    @abstractmethod
    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        """
        Call a tool with the given arguments.

        Implementations must not raise for tool-level failures (bad arguments,
        upstream errors); those come back as ``ToolResult(success=False)`` so
        the model can explain the failure instead of the run aborting.

        Args:
            tool_name: Name of the tool to invoke
            arguments: Tool-specific arguments

        Returns:
            ToolResult carrying either the structured result or an error message
        """

    @abstractmethod
    def list_tools(self) -> list[dict[str, Any]]:
        """
        List all available tools in OpenAI function-calling format.

        Example:
            [
                {
                    "type": "function",
                    "function": {
                        "name": "get_solana_balance",
                        "description": "Get the SOL balance for a Solana wallet address",
                        "parameters": {
                            "type": "object",
                            "properties": {"address": {"type": "string"}},
                            "required": ["address"]
                        }
                    }
                }
            ]
        """

    async def __aenter__(self):
        """Context manager entry - initialize the adapter."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - shutdown the adapter."""
        await self.shutdown()
        return False

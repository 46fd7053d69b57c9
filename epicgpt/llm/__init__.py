"""
LLM Orchestration Layer.

Drives one conversational turn against the completion API (via LiteLLM):

    SessionStore.load() + KB / web context  →  message sequence
                                                   ↓
    ConversationOrchestrator.run(guild, user, channel, prompt)
                                                   ↓
                         acompletion()  ←→  ToolRouter (bounded tool rounds)
                                                   ↓
                                        RunResult  →  Discord cog formats and sends

Key responsibilities:
- Assemble a cache-friendly message sequence (static system prompt first)
- Branch on model capabilities for request parameters
- Run tool calls and feed results back to the model
- Persist the new turn pair and report token usage
"""

from epicgpt.llm.models import (
    ConversationTurn,
    LLMError,
    RunResult,
    TokenUsage,
    ToolCallRecord,
)
from epicgpt.llm.orchestrator import ConversationOrchestrator

__all__ = [
    "ConversationOrchestrator",
    "ConversationTurn",
    "LLMError",
    "RunResult",
    "TokenUsage",
    "ToolCallRecord",
]

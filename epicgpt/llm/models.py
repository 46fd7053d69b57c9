"""
Data models for the conversation layer.

These are the values that flow between the orchestrator, its collaborators,
and the Discord cogs. None of them are persisted except ConversationTurn,
which the session store serialises as JSON.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class LLMError(Exception):
    """Raised when the completion API cannot be reached or rejects a request."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class ConversationTurn(BaseModel):
    """One message of a stored conversation."""

    role: Literal["user", "assistant"]
    content: str

    model_config = ConfigDict(frozen=True)

    def to_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ToolCallRecord(BaseModel):
    """A tool invocation made during a single run, kept for logging and display."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class TokenUsage(BaseModel):
    """Token counts accumulated over every completion call of a run."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached_tokens: int = Field(
        default=0, description="Prompt tokens served from the provider's prompt cache"
    )


class RunResult(BaseModel):
    """Outcome of one orchestrator run."""

    success: bool
    response: str | None = None
    error: str | None = None
    used_file_search: bool = False
    used_web_search: bool = False
    citations: list[str] = Field(
        default_factory=list, description="Knowledge base sources behind the answer"
    )
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    usage: TokenUsage | None = None

    @classmethod
    def failure(cls, error: str) -> RunResult:
        return cls(success=False, error=error)

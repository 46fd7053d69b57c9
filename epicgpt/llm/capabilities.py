"""
Per-model request parameter rules.

OpenAI model families disagree on request shape: the gpt-5 family takes
``max_completion_tokens`` instead of ``max_tokens``, gpt-5-nano rejects any
temperature other than the default, and only some families accept the 24h
prompt cache retention. The table below is consulted once when the
orchestrator is built; matching is by longest identifier prefix after the
LiteLLM provider prefix is removed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

TokenLimitParam = Literal["max_tokens", "max_completion_tokens"]


@dataclass(frozen=True)
class ModelCapabilities:
    """Request dialect and feature flags for one model family."""

    token_limit_param: TokenLimitParam = "max_tokens"
    supports_temperature: bool = True
    supports_extended_cache: bool = False

    def request_params(
        self,
        max_tokens: int,
        temperature: float,
        cache_retention: str | None = None,
    ) -> dict[str, Any]:
        """Build the model-dependent part of a completion request."""
        params: dict[str, Any] = {self.token_limit_param: max_tokens}
        if self.supports_temperature:
            params["temperature"] = temperature
        if self.supports_extended_cache and cache_retention == "24h":
            params["prompt_cache_retention"] = cache_retention
        return params


DEFAULT_CAPABILITIES = ModelCapabilities()

MODEL_CAPABILITIES: dict[str, ModelCapabilities] = {
    "gpt-5": ModelCapabilities(token_limit_param="max_completion_tokens"),
    "gpt-5-mini": ModelCapabilities(token_limit_param="max_completion_tokens"),
    "gpt-5-nano": ModelCapabilities(
        token_limit_param="max_completion_tokens",
        supports_temperature=False,
    ),
    "gpt-5.1": ModelCapabilities(
        token_limit_param="max_completion_tokens",
        supports_extended_cache=True,
    ),
    "gpt-5.2": ModelCapabilities(
        token_limit_param="max_completion_tokens",
        supports_extended_cache=True,
    ),
    "gpt-4.1": ModelCapabilities(supports_extended_cache=True),
}


def resolve_capabilities(model: str) -> ModelCapabilities:
    """
    Look up the capability entry for a model identifier.

    ``openai/gpt-5-nano-2025-08-07`` resolves to the ``gpt-5-nano`` entry;
    unknown models get ``DEFAULT_CAPABILITIES``.
    """
    name = model.rsplit("/", 1)[-1].lower()
    best: str | None = None
    for prefix in MODEL_CAPABILITIES:
        if name.startswith(prefix) and (best is None or len(prefix) > len(best)):
            best = prefix
    return MODEL_CAPABILITIES[best] if best else DEFAULT_CAPABILITIES

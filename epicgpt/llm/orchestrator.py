"""
Conversation Orchestrator: one user prompt in, one answer out.

Data flow for a single run:

    GuildStore.get_vector_store_id()  →  KB handle (or None)
    SessionStore.load()               →  prior turns
    KnowledgeBaseRetriever.search()   →  KB context        (optional, degrades)
    SerperClient.search()             →  web results       (only for /search, degrades)
                                      ↓
    [system] + prior turns + [user message with KB/web context]
                                      ↓
                      LiteLLM acompletion()  ←→  ToolRouter (bounded loop)
                                      ↓
    SessionStore.save()  →  RunResult → Discord cog

Design decisions:
- The system message depends only on the template, the web-search flag and
  the advisory sentences, so it stays byte-stable across requests and the
  provider's prompt cache can reuse it. Retrieved context goes into the user
  message instead.
- KB lookup, web search and individual tool calls are allowed to fail; the run
  continues without that piece. Only completion and persistence failures end
  the run, and they are reported as an unsuccessful RunResult rather than
  raised, so callers never see an exception from run().
- Tool calls in one assistant message are executed concurrently. Results are
  appended in the order the model issued the calls.
- At most ``max_tool_rounds`` tool rounds run. After that the next request is
  sent without tool definitions, forcing a text answer.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

from litellm import acompletion

from epicgpt.config.settings import LLMSettings
from epicgpt.guards.rate_limit import OperationClass, RateLimiter
from epicgpt.llm.capabilities import resolve_capabilities
from epicgpt.llm.citations import format_web_search_results
from epicgpt.llm.models import (
    ConversationTurn,
    LLMError,
    RunResult,
    TokenUsage,
    ToolCallRecord,
)
from epicgpt.llm.prompts import build_system_prompt, detect_advisories
from epicgpt.tools.base import ToolAdapter, ToolResult

if TYPE_CHECKING:
    from epicgpt.kb.search import KnowledgeBaseResult
    from epicgpt.storage.sessions import SessionStore
    from epicgpt.tools.web_search import WebSearchResponse, WebSearchResult

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = "I apologize, but I was unable to generate a response."


class KnowledgeBaseResolver(Protocol):
    async def get_vector_store_id(self, guild_id: str) -> str | None: ...


class Retriever(Protocol):
    async def search(self, vector_store_id: str, query: str, guild_id: str) -> KnowledgeBaseResult: ...


class WebSearcher(Protocol):
    async def search(self, query: str) -> WebSearchResponse: ...


def _as_int(value: Any) -> int:
    return value if isinstance(value, int) else 0


def parse_tool_arguments(raw: Any) -> dict[str, Any]:
    """Decode a tool call's JSON arguments. Anything other than a JSON object becomes ``{}``."""
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw) if raw else {}
    except (TypeError, ValueError):
        logger.warning(f"Malformed tool arguments, using empty object: {raw!r}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def build_user_content(
    prompt: str,
    kb_content: str | None = None,
    web_results: Sequence[WebSearchResult] | None = None,
) -> str:
    """Wrap the prompt with any retrieved knowledge base and web context."""
    content = prompt
    if kb_content:
        content = f"[Knowledge Base Context]\n{kb_content}\n\n---\n\nUser question: {prompt}"
    if web_results:
        content = f"{format_web_search_results(web_results)}\n\n{content}"
    return content


class ConversationOrchestrator:
    """
    Runs one conversational turn end to end.

    Args:
        settings: LLM configuration (model, token limit, temperature, tool rounds)
        system_template: System prompt text with the bot name already filled in
        session_store: Conversation memory; its ``max_messages`` bounds the history sent
        kb_resolver: Looks up a guild's vector store ID
        retriever: Knowledge base search
        web_search: Web search, used only when a run enables it
        tool_adapter: Executes model-requested tool calls
        tool_limiter: Per-user limit on tool invocations
        kb_timeout: Seconds allowed for the knowledge base search
        web_search_timeout: Seconds allowed for the web search
    """

    def __init__(
        self,
        settings: LLMSettings,
        system_template: str,
        session_store: SessionStore,
        kb_resolver: KnowledgeBaseResolver | None = None,
        retriever: Retriever | None = None,
        web_search: WebSearcher | None = None,
        tool_adapter: ToolAdapter | None = None,
        tool_limiter: RateLimiter | None = None,
        kb_timeout: float = 45.0,
        web_search_timeout: float = 20.0,
    ):
        self._settings = settings
        self._system_template = system_template
        self._sessions = session_store
        self._kb_resolver = kb_resolver
        self._retriever = retriever
        self._web_search = web_search
        self._tool_adapter = tool_adapter
        self._tool_limiter = tool_limiter
        self._kb_timeout = kb_timeout
        self._web_search_timeout = web_search_timeout
        self._capabilities = resolve_capabilities(settings.model)

    async def run(
        self,
        guild_id: str,
        user_id: str,
        channel_id: str,
        prompt: str,
        web_search_enabled: bool = False,
    ) -> RunResult:
        """
        Answer ``prompt`` for a user in a channel, continuing their conversation.

        Never raises. Completion or persistence failures produce
        ``RunResult(success=False)`` and leave the stored session untouched.
        """
        try:
            return await self._run(guild_id, user_id, channel_id, prompt, web_search_enabled)
        except Exception as e:
            logger.exception(f"Run failed for guild {guild_id}, user {user_id}")
            return RunResult.failure(str(e) or type(e).__name__)

    async def _run(
        self,
        guild_id: str,
        user_id: str,
        channel_id: str,
        prompt: str,
        web_search_enabled: bool,
    ) -> RunResult:
        if not self._settings.api_key:
            raise LLMError("API key not configured. Set LLM__API_KEY in your environment.")

        vector_store_id = await self._resolve_vector_store(guild_id)
        prior = await self._sessions.load(guild_id, user_id, channel_id) or []
        history = prior[-self._sessions.max_messages:]

        kb_result = None
        if vector_store_id:
            kb_result = await self._search_knowledge_base(vector_store_id, prompt, guild_id)

        web_results = None
        if web_search_enabled:
            web_results = await self._search_web(prompt)

        system_prompt = build_system_prompt(
            self._system_template,
            web_search_enabled=web_search_enabled,
            additional_context=detect_advisories(prompt),
        )
        user_content = build_user_content(
            prompt,
            kb_content=kb_result.content if kb_result else None,
            web_results=web_results,
        )
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": system_prompt},
            *(turn.to_message() for turn in history),
            {"role": "user", "content": user_content},
        ]

        usage = TokenUsage()
        records: list[ToolCallRecord] = []
        text = await self._complete_with_tools(messages, guild_id, user_id, usage, records)

        turns = [
            *history,
            ConversationTurn(role="user", content=prompt),
            ConversationTurn(role="assistant", content=text),
        ]
        await self._sessions.save(guild_id, user_id, channel_id, turns)

        return RunResult(
            success=True,
            response=text,
            used_file_search=kb_result is not None,
            used_web_search=bool(web_results),
            citations=kb_result.citations if kb_result else [],
            tool_calls=records,
            usage=usage,
        )

    # ------------------------------------------------------------------
    # Context gathering (all of these degrade to "no context")
    # ------------------------------------------------------------------

    async def _resolve_vector_store(self, guild_id: str) -> str | None:
        if self._kb_resolver is None:
            return None
        try:
            return await self._kb_resolver.get_vector_store_id(guild_id)
        except Exception as e:
            logger.warning(f"Could not resolve knowledge base for guild {guild_id}: {e}")
            return None

    async def _search_knowledge_base(
        self, vector_store_id: str, prompt: str, guild_id: str
    ) -> KnowledgeBaseResult | None:
        if self._retriever is None:
            return None
        try:
            result = await asyncio.wait_for(
                self._retriever.search(vector_store_id, prompt, guild_id),
                timeout=self._kb_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Knowledge base search timed out after {self._kb_timeout}s")
            return None
        except Exception as e:
            logger.warning(f"Knowledge base search failed: {e}")
            return None

        if not result.success or not result.content:
            logger.info(f"Continuing without knowledge base context: {result.error or 'no content'}")
            return None
        return result

    async def _search_web(self, prompt: str) -> list[WebSearchResult] | None:
        if self._web_search is None:
            return None
        try:
            response = await asyncio.wait_for(
                self._web_search.search(prompt), timeout=self._web_search_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Web search timed out after {self._web_search_timeout}s")
            return None
        except Exception as e:
            logger.warning(f"Web search failed: {e}")
            return None

        if not response.success or not response.results:
            logger.info(f"Continuing without web results: {response.error or 'no results'}")
            return None
        return response.results

    # ------------------------------------------------------------------
    # Completion and tool loop
    # ------------------------------------------------------------------

    async def _complete_with_tools(
        self,
        messages: list[dict[str, Any]],
        guild_id: str,
        user_id: str,
        usage: TokenUsage,
        records: list[ToolCallRecord],
    ) -> str:
        tool_definitions = self._tool_adapter.list_tools() if self._tool_adapter else None
        rounds_used = 0

        while True:
            # Tools are withheld once the round budget is spent
            offered = tool_definitions if rounds_used < self._settings.max_tool_rounds else None
            message = await self._complete(messages, offered, guild_id, usage)

            tool_calls = getattr(message, "tool_calls", None)
            if not tool_calls:
                break
            if not offered:
                logger.warning(
                    f"Ignoring {len(tool_calls)} tool call(s) after {rounds_used} round(s)"
                )
                break

            messages.append({
                "role": "assistant",
                "content": message.content,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.function.name,
                            "arguments": call.function.arguments,
                        },
                    }
                    for call in tool_calls
                ],
            })

            arguments = [parse_tool_arguments(call.function.arguments) for call in tool_calls]
            results = await asyncio.gather(*(
                self._execute_tool(user_id, call.function.name, args)
                for call, args in zip(tool_calls, arguments)
            ))

            for call, args, result in zip(tool_calls, arguments, results):
                payload = result.result if result.success else {"error": result.error}
                messages.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps(payload, default=str),
                })
                records.append(ToolCallRecord(
                    name=call.function.name,
                    arguments=args,
                    result=result.result,
                    error=None if result.success else result.error,
                ))

            rounds_used += 1

        return message.content or FALLBACK_RESPONSE

    async def _execute_tool(self, user_id: str, name: str, arguments: dict[str, Any]) -> ToolResult:
        if self._tool_limiter is not None:
            decision = self._tool_limiter.check(user_id, OperationClass.TOOLS)
            if decision.limited:
                return ToolResult.fail(
                    f"Tool rate limit exceeded, retry in {decision.retry_after_seconds}s"
                )

        logger.info(f"Tool call: {name}({arguments})")
        try:
            return await self._tool_adapter.execute(name, arguments)
        except Exception as e:
            # Passed back to the model so it can explain the failure
            logger.warning(f"Tool '{name}' raised: {e}")
            return ToolResult.fail(str(e) or "Tool execution failed")

    async def _complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
        guild_id: str,
        usage: TokenUsage,
    ) -> Any:
        call_kwargs: dict[str, Any] = {
            "model": self._settings.model,
            "messages": list(messages),
            "api_key": self._settings.api_key,
            "timeout": self._settings.request_timeout,
            "prompt_cache_key": f"epicgpt_{guild_id}",
            **self._capabilities.request_params(
                max_tokens=self._settings.max_tokens,
                temperature=self._settings.temperature,
                cache_retention=self._settings.prompt_cache_retention,
            ),
        }
        if tools:
            call_kwargs["tools"] = tools

        try:
            response = await acompletion(**call_kwargs)
        except Exception as e:
            raise LLMError(f"LLM API call failed: {e}", cause=e)

        self._accumulate_usage(usage, getattr(response, "usage", None))
        return response.choices[0].message

    @staticmethod
    def _accumulate_usage(usage: TokenUsage, raw: Any) -> None:
        if raw is None:
            return
        prompt_tokens = _as_int(getattr(raw, "prompt_tokens", 0))
        completion_tokens = _as_int(getattr(raw, "completion_tokens", 0))
        total_tokens = _as_int(getattr(raw, "total_tokens", 0)) or prompt_tokens + completion_tokens
        details = getattr(raw, "prompt_tokens_details", None)
        cached_tokens = _as_int(getattr(details, "cached_tokens", 0)) if details is not None else 0

        usage.prompt_tokens += prompt_tokens
        usage.completion_tokens += completion_tokens
        usage.total_tokens += total_tokens
        usage.cached_tokens += cached_tokens

        if cached_tokens:
            logger.info(f"Prompt cache hit: {cached_tokens}/{prompt_tokens} prompt tokens cached")

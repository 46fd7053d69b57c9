"""Text helpers for Discord replies."""

from __future__ import annotations

from epicgpt.llm.models import RunResult, TokenUsage

DISCORD_MESSAGE_LIMIT = 2000

GENERIC_ERROR = "❌ Sorry, something went wrong. Please try again later."


def split_message(content: str, max_length: int = DISCORD_MESSAGE_LIMIT) -> list[str]:
    """
    Split text into chunks no longer than ``max_length``.

    Prefers breaking after a newline, then after a space, as long as the
    break point falls in the second half of the chunk; otherwise cuts hard.
    """
    if len(content) <= max_length:
        return [content]

    chunks: list[str] = []
    remaining = content
    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        break_point = max_length
        last_newline = remaining.rfind("\n", 0, max_length)
        if last_newline > max_length * 0.5:
            break_point = last_newline + 1
        else:
            last_space = remaining.rfind(" ", 0, max_length)
            if last_space > max_length * 0.5:
                break_point = last_space + 1

        chunks.append(remaining[:break_point])
        remaining = remaining[break_point:]

    return chunks


def rate_limit_message(retry_after_seconds: int) -> str:
    plural = "" if retry_after_seconds == 1 else "s"
    return (
        "⏳ You're sending requests too fast. "
        f"Please wait {retry_after_seconds} second{plural} before trying again."
    )


def format_token_usage(usage: TokenUsage) -> str:
    line = (
        f"**Token Usage:** `{usage.total_tokens:,}` total "
        f"(`{usage.prompt_tokens:,}` prompt + `{usage.completion_tokens:,}` completion)"
    )
    if usage.cached_tokens:
        line += f", `{usage.cached_tokens:,}` cached"
    return line


def format_run_reply(result: RunResult) -> str:
    """Answer text followed by a sources line and the token usage footer."""
    parts = [result.response or ""]
    if result.citations:
        parts.append(f"**Sources:** {' '.join(result.citations)}")
    if result.usage is not None:
        parts.append(format_token_usage(result.usage))
    return "\n\n".join(parts)

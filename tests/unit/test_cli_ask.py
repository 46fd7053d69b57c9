"""
Tests for the 'ask' CLI command.

The ask command:
  epicgpt ask PROMPT [--web] [--guild ID]

It builds the same services the bot uses, runs one orchestrator turn and
prints the answer with its sources, tool calls and token usage.
"""

from argparse import Namespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from epicgpt.__main__ import CLI_SESSION_ID, cmd_ask, create_parser
from epicgpt.llm.models import RunResult, TokenUsage, ToolCallRecord


class TestAskCommandArgs:
    """Parser-level tests for the ask subcommand."""

    def test_prompt_is_positional(self):
        args = create_parser().parse_args(["ask", "What is OPX?"])
        assert args.command == "ask"
        assert args.prompt == "What is OPX?"

    def test_defaults(self):
        args = create_parser().parse_args(["ask", "Q?"])
        assert args.web is False
        assert args.guild == CLI_SESSION_ID

    def test_web_and_guild(self):
        args = create_parser().parse_args(["ask", "Q?", "--web", "--guild", "1234"])
        assert args.web is True
        assert args.guild == "1234"

    def test_prompt_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["ask"])


def _settings():
    settings = MagicMock()
    settings.bot.name = "EpicGPT"
    settings.llm.model = "openai/gpt-5-mini"
    return settings


def _services(result: RunResult):
    services = MagicMock()
    services.orchestrator.run = AsyncMock(return_value=result)
    return services


class TestAskCommandExecution:

    @pytest.mark.asyncio
    async def test_prints_answer_sources_and_tools(self, capsys):
        result = RunResult(
            success=True,
            response="The wallet holds 1.5 SOL.",
            used_file_search=True,
            citations=["(KB: Docs.md)"],
            tool_calls=[
                ToolCallRecord(name="get_solana_balance", arguments={"address": "abc"}, result={"balance": 1.5})
            ],
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )
        services = _services(result)
        args = Namespace(prompt="balance of abc?", web=True, guild="g1")

        with patch("epicgpt.services.create_services", AsyncMock(return_value=services)) as create:
            code = await cmd_ask(args, _settings())

        assert code == 0
        assert create.await_args.kwargs["start_sweepers"] is False
        services.orchestrator.run.assert_awaited_once_with(
            guild_id="g1",
            user_id=CLI_SESSION_ID,
            channel_id=CLI_SESSION_ID,
            prompt="balance of abc?",
            web_search_enabled=True,
        )
        out = capsys.readouterr().out
        assert "The wallet holds 1.5 SOL." in out
        assert "(KB: Docs.md)" in out
        assert "get_solana_balance" in out
        assert "Used: knowledge base" in out
        assert "Tokens: 15" in out

    @pytest.mark.asyncio
    async def test_failed_run_returns_nonzero(self, capsys):
        services = _services(RunResult.failure("LLM API key is not configured"))
        args = Namespace(prompt="Q?", web=False, guild="cli")

        with patch("epicgpt.services.create_services", AsyncMock(return_value=services)):
            code = await cmd_ask(args, _settings())

        assert code == 1
        assert "LLM API key is not configured" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_service_startup_failure_returns_nonzero(self):
        args = Namespace(prompt="Q?", web=False, guild="cli")
        with patch("epicgpt.services.create_services", AsyncMock(side_effect=OSError("disk"))):
            assert await cmd_ask(args, _settings()) == 1

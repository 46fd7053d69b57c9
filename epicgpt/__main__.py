"""
EpicGPT CLI entry point.

Provides command-line interface for running the bot and utility commands.
"""

import argparse
import asyncio
import sys
from contextlib import AsyncExitStack
from pathlib import Path

from epicgpt import __version__
from epicgpt.config.logging import get_logger, setup_logging
from epicgpt.config.settings import Settings, load_settings

CLI_SESSION_ID = "cli"


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="epicgpt",
        description="AI assistant Discord bot for the Epicentral Labs community",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"EpicGPT {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Run the Discord bot")
    subparsers.add_parser("config", help="Show current configuration")

    ask_parser = subparsers.add_parser(
        "ask",
        help="Ask a one-off question through the full orchestrator (no Discord)",
    )
    ask_parser.add_argument(
        "prompt",
        help='Question to ask, e.g. "What is the SOL balance of <address>?"',
    )
    ask_parser.add_argument(
        "--web",
        action="store_true",
        help="Enable web search for this question (like /search)",
    )
    ask_parser.add_argument(
        "--guild",
        default=CLI_SESSION_ID,
        help="Guild ID whose knowledge base and session to use (default: cli)",
    )

    return parser


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)

    logger.info("\n=== EpicGPT Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info(f"\nBot Name: {settings.bot.name}")
    logger.info(f"Bot Token: {'Set' if settings.bot.token else 'Not set'}")
    logger.info(f"Allowed Channels: {settings.bot.allowed_channel_ids or 'all'}")
    logger.info(f"\nLLM Model: {settings.llm.model}")
    logger.info(f"LLM API Key: {'Set' if settings.llm.api_key else 'Not set'}")
    logger.info(f"Max Tokens: {settings.llm.max_tokens}")
    logger.info(f"Max Tool Rounds: {settings.llm.max_tool_rounds}")
    logger.info(f"Prompt Cache Retention: {settings.llm.prompt_cache_retention}")
    logger.info(f"\nKB Assistant Model: {settings.kb.assistant_model}")
    logger.info(f"KB API Key: {'Set' if settings.kb.api_key or settings.llm.api_key else 'Not set'}")
    logger.info(f"\nSession DB: {settings.session.db_path}")
    logger.info(f"Session TTL: {settings.session.ttl_seconds}s, max {settings.session.max_messages} turns")
    logger.info(
        f"\nRate Limits: chat {settings.rate_limit.chat_max_requests}/"
        f"{settings.rate_limit.chat_window_seconds:g}s, search "
        f"{settings.rate_limit.search_max_requests}/{settings.rate_limit.search_window_seconds:g}s, "
        f"tools {settings.rate_limit.tools_max_requests}/{settings.rate_limit.tools_window_seconds:g}s"
    )
    logger.info(f"\nSolana RPC: {settings.tools.solana_rpc_url}")
    logger.info(f"Web Search: {'Enabled' if settings.tools.serper_api_key else 'Not configured'}")
    logger.info(f"Birdeye: {'Enabled' if settings.tools.birdeye_api_key else 'Not configured'}")

    return 0


def cmd_run(settings: Settings) -> int:
    """Start the Discord bot."""
    logger = get_logger(__name__)

    if not settings.bot.token:
        logger.error(
            "Discord bot token not set. Add BOT__TOKEN=<your-token> to your .env file."
        )
        return 1

    if not settings.llm.api_key:
        logger.warning(
            "LLM API key not set (LLM__API_KEY). "
            "The bot will start but /chat will fail until this is configured."
        )

    from epicgpt.bot import EpicGPTBot

    bot = EpicGPTBot(settings)
    logger.info(f"Starting {settings.bot.name}...")
    # log_handler=None: disable discord.py's default logging setup and use ours
    bot.run(settings.bot.token, log_handler=None)
    return 0


async def cmd_ask(args, settings: Settings) -> int:
    """
    Run one orchestrator turn from the terminal.

    Uses the same storage, knowledge base and tools as the bot, so follow-up
    questions continue the same CLI session until it expires.
    """
    logger = get_logger(__name__)

    from epicgpt.services import create_services

    try:
        async with AsyncExitStack() as stack:
            services = await create_services(settings, stack, start_sweepers=False)
            logger.info(f"Sending to {settings.llm.model}...")
            result = await services.orchestrator.run(
                guild_id=args.guild,
                user_id=CLI_SESSION_ID,
                channel_id=CLI_SESSION_ID,
                prompt=args.prompt,
                web_search_enabled=args.web,
            )
    except Exception as e:
        logger.error(f"Ask failed: {e}", exc_info=True)
        return 1

    if not result.success:
        print(f"\nError: {result.error}", file=sys.stderr)
        return 1

    print(f"\n=== {settings.bot.name} ===")
    print(f"Q: {args.prompt}\n")
    print(result.response)

    if result.citations:
        print(f"\n--- Sources ---\n  {' '.join(result.citations)}")

    if result.tool_calls:
        print("\n--- Tool Calls ---")
        for call in result.tool_calls:
            outcome = call.result if call.succeeded else f"error: {call.error}"
            print(f"  {call.name}({call.arguments}) → {outcome}")

    flags = []
    if result.used_file_search:
        flags.append("knowledge base")
    if result.used_web_search:
        flags.append("web search")
    if flags:
        print(f"\nUsed: {', '.join(flags)}")

    if result.usage:
        print(f"\nTokens: {result.usage.total_tokens} "
              f"(prompt {result.usage.prompt_tokens} "
              f"+ completion {result.usage.completion_tokens}, "
              f"cached {result.usage.cached_tokens})")

    return 0


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    # Load settings
    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Override log level if specified
    if args.log_level:
        settings.log_level = args.log_level

    setup_logging(settings)

    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "run":
        return cmd_run(settings)
    elif args.command == "ask":
        return asyncio.run(cmd_ask(args, settings))
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())

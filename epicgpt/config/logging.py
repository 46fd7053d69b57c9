"""
Logging configuration and setup.

Console output is colored by level; an optional log file receives the same
records with function and line information.
"""

import logging
import sys
from pathlib import Path

from epicgpt.config.settings import Settings


class ColoredFormatter(logging.Formatter):
    """Formatter that adds color to console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Color a copy so file handlers sharing the record see the plain level name
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(settings: Settings) -> None:
    """
    Configure the ``epicgpt`` logger tree and route discord.py logs through it.

    Args:
        settings: Application settings containing log configuration
    """
    level = getattr(logging, settings.log_level)
    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handlers.append(console_handler)

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handlers.append(file_handler)

    # discord.py stays at INFO so DEBUG mode doesn't dump gateway payloads
    for name, logger_level in (("epicgpt", level), ("discord", max(level, logging.INFO))):
        logger = logging.getLogger(name)
        logger.setLevel(logger_level)
        logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False

    # httpx logs every request at INFO; LiteLLM and openai are chatty at INFO too
    for name in ("httpx", "LiteLLM", "openai"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    root_logger = logging.getLogger("epicgpt")
    root_logger.info(f"Logging initialized - Level: {settings.log_level}")
    if settings.log_file:
        root_logger.info(f"Logging to file: {settings.log_file}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the ``epicgpt`` tree.

    Module names already under the package (``epicgpt.bot.client``) are used as-is.
    """
    if name == "epicgpt" or name.startswith("epicgpt."):
        return logging.getLogger(name)
    return logging.getLogger(f"epicgpt.{name}")

#!/usr/bin/env python3
"""
Discord Trivia Bot - Main Entry Point

Usage:
    python main.py

The bot reads config.json from the working directory, or the file named by
TRIVIA_BOT_CONFIG. The token comes from DISCORD_BOT_TOKEN when it is set,
otherwise from the config file's bot.token.

Environment Variables:
    DISCORD_BOT_TOKEN: Discord bot token (overrides config.json)
    TRIVIA_BOT_CONFIG: Path of the config file
    DEFAULT_QUESTION_TIMEOUT, DEFAULT_QUIZ_TIMEOUT, POINTS_PER_CORRECT_ANSWER,
    SPEED_BONUS_MULTIPLIER, STREAK_BONUS_MULTIPLIER: override quiz settings
"""

import asyncio
import sys
import os
import json
import logging
from pathlib import Path

from trivia_bot.bot import run_bot, setup_logging

PLACEHOLDER_TOKEN = "YOUR_DISCORD_BOT_TOKEN_HERE"


def load_config(config_path=None):
    """Load the bot configuration file, exiting with a message if it is unusable."""
    config_path = Path(config_path or os.getenv('TRIVIA_BOT_CONFIG', 'config.json'))

    if not config_path.exists():
        print(f"❌ Error: {config_path} not found!")
        print("Copy config.json next to main.py and set your Discord bot token.")
        sys.exit(1)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        print(f"❌ Error: Invalid JSON in {config_path}: {e}")
        sys.exit(1)
    except OSError as e:
        print(f"❌ Error reading {config_path}: {e}")
        sys.exit(1)

    if not isinstance(config, dict):
        print(f"❌ Error: {config_path} must contain a JSON object")
        sys.exit(1)
    return config


def get_bot_token(config):
    """Resolve the bot token; DISCORD_BOT_TOKEN wins over config.json."""
    token = os.getenv('DISCORD_BOT_TOKEN') or config.get('bot', {}).get('token')
    if token and token != PLACEHOLDER_TOKEN:
        return token

    print("❌ Error: Discord bot token not configured!")
    print("Either:")
    print("  1. Set DISCORD_BOT_TOKEN environment variable")
    print("  2. Update the 'token' field in config.json")
    sys.exit(1)


def setup_logging_from_config(config):
    """Set up logging from the config file's logging section."""
    log_config = config.get('logging', {})
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    return setup_logging(log_level, log_config.get('log_directory', './logs/'))


def report_quiz_directory(config, logger):
    """Log how many quiz files the bot will seed from at startup."""
    quiz_directory = Path(config.get('quiz', {}).get('quiz_directory', './quizzes/'))
    if not quiz_directory.is_dir():
        logger.warning(f"Quiz directory {quiz_directory} does not exist; no quizzes will be seeded")
        return 0

    quiz_files = sorted(quiz_directory.glob('*.json'))
    logger.info(f"Found {len(quiz_files)} quiz files in {quiz_directory}")
    return len(quiz_files)


async def run_bot_with_config():
    config = load_config()
    logger = setup_logging_from_config(config)
    token = get_bot_token(config)
    report_quiz_directory(config, logger)
    await run_bot(token, config)


if __name__ == "__main__":
    try:
        print("🤖 Starting Discord Trivia Bot...")
        asyncio.run(run_bot_with_config())
    except KeyboardInterrupt:
        print("\n👋 Bot stopped by user")

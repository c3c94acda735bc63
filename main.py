#!/usr/bin/env python3
"""
Trivia Quiz entry point.

Starts the Discord front end for the trivia quiz. The bot token comes from
DISCORD_BOT_TOKEN when set, otherwise from the "bot" section of the config
file (see config.example.json).

Usage:
    python main.py [--config PATH] [--check] [--verbose]

    --check validates the "quiz" section and prints the resulting settings
    without connecting to Discord.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

PLACEHOLDER_TOKEN = "YOUR_DISCORD_BOT_TOKEN_HERE"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Trivia Quiz Discord bot")
    parser.add_argument("--config", default="config.json", help="Path to the JSON config file")
    parser.add_argument("--check", action="store_true",
                        help="Validate the quiz settings and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level")
    return parser.parse_args(argv)


def read_config_file(config_path: Path) -> dict:
    """Parse the config file, exiting with a message if it is unusable."""
    if not config_path.is_file():
        print(f"❌ No config file at {config_path}")
        print("Start from config.example.json and fill in the bot token.")
        sys.exit(1)

    try:
        config = json.loads(config_path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        print(f"❌ {config_path} is not valid JSON (line {e.lineno}, column {e.colno})")
        sys.exit(1)
    except OSError as e:
        print(f"❌ Could not read {config_path}: {e}")
        sys.exit(1)

    if not isinstance(config, dict):
        print(f"❌ {config_path} must contain a JSON object")
        sys.exit(1)
    return config


def resolve_token(config: dict) -> str:
    """Pick the bot token, preferring the environment."""
    token = os.getenv('DISCORD_BOT_TOKEN') or config.get('bot', {}).get('token')
    if not token or token == PLACEHOLDER_TOKEN:
        print("❌ No Discord bot token available.")
        print("Export DISCORD_BOT_TOKEN or set bot.token in the config file.")
        sys.exit(1)
    return token


def configure_logging(config: dict, verbose: bool = False) -> None:
    log_config = config.get('logging', {})
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)

    handlers = [logging.StreamHandler()]
    log_directory = log_config.get('log_directory')
    if log_directory:
        log_directory = Path(log_directory)
        log_directory.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_directory / "trivia.log", encoding='utf-8'))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )

    # discord.py is chatty at INFO
    logging.getLogger('discord').setLevel(logging.WARNING)


def check_quiz_settings(config: dict) -> bool:
    """Apply the quiz section to a fresh ConfigManager and report the outcome."""
    from trivia_quiz.config_manager import ConfigManager

    manager = ConfigManager()
    rejected = manager.apply_config(config)
    for message in rejected:
        print(f"⚠️ {message}")
    print(manager.get_settings_summary())
    return not rejected


def main(argv=None):
    args = parse_args(argv)
    config = read_config_file(Path(args.config))
    configure_logging(config, args.verbose)

    if args.check:
        sys.exit(0 if check_quiz_settings(config) else 1)

    token = resolve_token(config)

    from trivia_quiz.bot import run_bot

    print("🧠 Trivia Quiz is connecting to Discord...")
    try:
        asyncio.run(run_bot(token, config))
    except KeyboardInterrupt:
        print("\n👋 Shut down")


if __name__ == "__main__":
    main()

"""Command line entry point for the project."""
from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from .clean import CleanCommand
from .config import Config, ConfigError, load_config
from .logging_config import get_or_create_logger, setup_logging


_LOGGER = logging.getLogger(__name__)


def _build_parser(config: Config) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hlx", description="hlx build tool helpers")
    parser.add_argument("--log-level", default=config.log_level, help="Console log level")
    parser.add_argument("--logs-dir", default=config.logs_dir, help="Directory for log files")
    parser.add_argument(
        "--log-file",
        action="append",
        default=None,
        help="Log target, '-' for stderr. May be given several times",
    )
    subparsers = parser.add_subparsers(dest="command")

    clean_parser = subparsers.add_parser(
        "clean", help="Remove the build output and cache directories"
    )
    clean_parser.add_argument(
        "--directory", type=Path, default=config.directory, help="Project directory"
    )
    clean_parser.add_argument("--target-dir", type=Path, help="Build output directory")
    clean_parser.add_argument("--cache-dir", type=Path, help="Cache directory")

    return parser


def _run_clean(args: argparse.Namespace, config: Config) -> None:
    config.log_level = args.log_level
    config.logs_dir = args.logs_dir
    if args.log_file:
        config.log_files = tuple(args.log_file)

    logger = get_or_create_logger(config.logger_config("cli"))
    command = (
        CleanCommand(logger)
        .with_directory(args.directory)
        .with_target_dir(args.target_dir)
        .with_cache_dir(args.cache_dir)
    )
    asyncio.run(command.run())


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    setup_logging()
    try:
        config = load_config()
    except ConfigError as exc:
        _LOGGER.error("%s", exc)
        return 1

    parser = _build_parser(config)
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "clean":
        _run_clean(args, config)
        return 0

    parser.print_help()
    return 0


__all__ = ["main"]

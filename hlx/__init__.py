"""Logging setup and clean command for the hlx build tool."""

from .clean import CleanCommand, CleanOptions, clean_directories
from .logging_config import (
    CategoryLogger,
    LoggerConfig,
    LoggerRegistry,
    default_registry,
    get_or_create_logger,
    setup_logging,
)

__all__ = [
    "CategoryLogger",
    "CleanCommand",
    "CleanOptions",
    "LoggerConfig",
    "LoggerRegistry",
    "clean_directories",
    "default_registry",
    "get_or_create_logger",
    "setup_logging",
]

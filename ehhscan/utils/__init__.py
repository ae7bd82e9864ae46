"""Utility modules for infrastructure and helpers."""

from .memory_monitor import MemoryMonitor
from .logging_setup import setup_logger
from .scheduler import SiteScheduler
from .validation import parse_indices, validate_cli_arguments

__all__ = [
    "MemoryMonitor",
    "setup_logger",
    "SiteScheduler",
    "parse_indices",
    "validate_cli_arguments",
]

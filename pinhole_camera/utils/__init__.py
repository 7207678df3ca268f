"""Utility modules."""

from .config_loader import load_config, merge_config, save_config, get_nested
from .logger import setup_logger, LoggerMixin

__all__ = [
    "load_config",
    "merge_config",
    "save_config",
    "get_nested",
    "setup_logger",
    "LoggerMixin",
]

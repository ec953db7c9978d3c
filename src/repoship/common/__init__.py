"""Common utilities for repoship."""

from .config import PublishConfig, load_config, load_typed_config, parse_config
from .logger import get_logger, setup_logger

__all__ = [
    "PublishConfig",
    "get_logger",
    "load_config",
    "load_typed_config",
    "parse_config",
    "setup_logger",
]

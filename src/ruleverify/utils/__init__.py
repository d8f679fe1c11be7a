"""Utility helpers shared across verification modules."""

from .helpers import (
    compile_name_pattern,
    from_epoch_seconds,
    md5_of_parts,
    normalize_dir_path,
    to_naive_utc,
)
from .logging import configure_logging, get_logger, log_timing, logging_context

__all__ = [
    "configure_logging",
    "get_logger",
    "logging_context",
    "log_timing",
    "md5_of_parts",
    "normalize_dir_path",
    "compile_name_pattern",
    "to_naive_utc",
    "from_epoch_seconds",
]

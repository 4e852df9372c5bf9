"""Logging utilities for the deduplication job."""

from common.logging.logger import setup_logger, get_logger, resolve_log_dir, JsonFormatter

__all__ = ['setup_logger', 'get_logger', 'resolve_log_dir', 'JsonFormatter']

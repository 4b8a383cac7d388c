# utils/logger.py - Centralized logging configuration for the extraction pipeline
import logging
import sys

# Log format with timestamp, level, module, and message
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Create a configured logger instance."""
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        logger.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(console_handler)

    return logger


def get_server_logger():
    """Logger for API server operations."""
    return setup_logger("extract.server")


def get_crawler_logger():
    """Logger for web crawling operations."""
    return setup_logger("extract.crawler")


def get_extractor_logger():
    """Logger for format-specific extractors."""
    return setup_logger("extract.extractors")


def get_pipeline_logger():
    """Logger for the per-request orchestration."""
    return setup_logger("extract.pipeline")


def get_store_logger():
    """Logger for cache and rate-limit store access."""
    return setup_logger("extract.store")

# utils/__init__.py
from .logger import (
    setup_logger,
    get_server_logger,
    get_crawler_logger,
    get_extractor_logger,
    get_pipeline_logger,
    get_store_logger,
)
from .validators import validate_url, validate_message, extract_urls, URLValidationError
from .store import KeyValueStore, RedisStore, InMemoryStore, Outcome, StoreUnavailable, create_store

__all__ = [
    "setup_logger",
    "get_server_logger",
    "get_crawler_logger",
    "get_extractor_logger",
    "get_pipeline_logger",
    "get_store_logger",
    "validate_url",
    "validate_message",
    "extract_urls",
    "URLValidationError",
    "KeyValueStore",
    "RedisStore",
    "InMemoryStore",
    "Outcome",
    "StoreUnavailable",
    "create_store",
]

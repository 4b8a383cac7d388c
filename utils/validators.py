# utils/validators.py - Input validation utilities
import re
from typing import List
from urllib.parse import urlparse

from config import MAX_MESSAGE_LENGTH, MAX_URL_LENGTH

URL_IN_TEXT_PATTERN = re.compile(r"https?://[^\s<>\"']+")


class URLValidationError(Exception):
    """Custom exception for URL validation errors."""
    pass


def validate_url(url: str) -> str:
    """
    Validate and normalize a URL.

    Args:
        url: The URL string to validate

    Returns:
        Normalized URL string

    Raises:
        URLValidationError: If URL is invalid
    """
    if not url or not isinstance(url, str):
        raise URLValidationError("URL is required and must be a string")

    url = url.strip()

    if not url:
        raise URLValidationError("URL cannot be empty")

    if len(url) < 10:
        raise URLValidationError("URL is too short to be valid")

    # Check for maximum length (prevent DoS)
    if len(url) > MAX_URL_LENGTH:
        raise URLValidationError(f"URL exceeds maximum allowed length ({MAX_URL_LENGTH} characters)")

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise URLValidationError(f"Failed to parse URL: {str(e)}")

    if not parsed.scheme:
        raise URLValidationError("URL must include a scheme (http:// or https://)")

    if parsed.scheme.lower() not in ("http", "https"):
        raise URLValidationError(f"Invalid URL scheme '{parsed.scheme}'. Only http and https are supported")

    if not parsed.netloc:
        raise URLValidationError("URL must include a valid domain")

    domain = parsed.netloc.lower()

    # Block localhost/internal hosts; the service fetches whatever it is given
    blocked_domains = ["localhost", "127.0.0.1", "0.0.0.0", "::1", "[::1]"]
    if any(domain.startswith(blocked) for blocked in blocked_domains):
        raise URLValidationError("Local/internal URLs are not allowed")

    domain_pattern = r'^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*\.[a-zA-Z]{2,}(:\d+)?$'
    ip_pattern = r'^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}(:\d+)?$'

    if not (re.match(domain_pattern, domain) or re.match(ip_pattern, domain)):
        raise URLValidationError(f"Invalid domain format: {domain}")

    return url


def validate_message(message: str) -> str:
    """
    Validate the user question sent alongside the URLs.

    Raises:
        ValueError: If the message is empty or too long
    """
    if not message or not isinstance(message, str) or not message.strip():
        raise ValueError("Message is required")

    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValueError(f"Message exceeds maximum length ({MAX_MESSAGE_LENGTH} characters)")

    return message.strip()


def extract_urls(text: str) -> List[str]:
    """Pull http(s) URLs out of free text, trailing punctuation removed, in order."""
    urls = []
    for match in URL_IN_TEXT_PATTERN.findall(text or ""):
        url = match.rstrip(".,;:!?)]}")
        if url not in urls:
            urls.append(url)
    return urls

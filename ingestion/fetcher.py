# ingestion/fetcher.py
"""Outbound HTTP GET shared by the crawler and the extractors."""

from typing import Optional

import requests

from config import CRAWL_TIMEOUT_SECONDS, MAX_RESPONSE_BYTES, USER_AGENT
from ingestion.errors import FetchError
from utils.logger import get_crawler_logger

logger = get_crawler_logger()

HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept-Language": "en-US,en;q=0.9",
}


def _read_body(response: requests.Response, url: str, max_bytes: int) -> None:
    """Read a streamed body into the response, refusing anything over max_bytes."""
    declared = response.headers.get("Content-Length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        response.close()
        raise FetchError(f"Response too large ({declared} bytes, max {max_bytes}): {url}")

    body = bytearray()
    try:
        for chunk in response.iter_content(chunk_size=64 * 1024):
            body.extend(chunk)
            if len(body) > max_bytes:
                response.close()
                raise FetchError(f"Response too large (over {max_bytes} bytes): {url}")
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Failed reading response from {url}: {e}")

    # Later .content / .text / .json() read from the capped body
    response._content = bytes(body)


def fetch(
    url: str,
    accept: Optional[str] = None,
    timeout: float = CRAWL_TIMEOUT_SECONDS,
    max_bytes: int = MAX_RESPONSE_BYTES,
) -> requests.Response:
    """
    GET a URL with the service User-Agent.

    Returns:
        The response, for any 2xx status

    Raises:
        FetchError: On network failures, non-2xx responses or bodies over max_bytes
    """
    headers = dict(HEADERS)
    if accept:
        headers["Accept"] = accept

    try:
        response = requests.get(url, headers=headers, timeout=timeout, allow_redirects=True, stream=True)
    except requests.exceptions.Timeout:
        raise FetchError(f"Request timeout: {url}")
    except requests.exceptions.TooManyRedirects:
        raise FetchError(f"Too many redirects: {url}")
    except requests.exceptions.SSLError as e:
        raise FetchError(f"SSL error for {url}: {e}")
    except requests.exceptions.ConnectionError as e:
        raise FetchError(f"Connection error for {url}: {e}")
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Request failed for {url}: {e}")

    if response.status_code == 429:
        response.close()
        raise FetchError(f"Rate limited ({response.status_code}): {url}")
    if not 200 <= response.status_code < 300:
        response.close()
        raise FetchError(f"HTTP {response.status_code}: {url}")

    _read_body(response, url, max_bytes)
    return response


def fetch_page(url: str) -> Optional[requests.Response]:
    """
    Fetch an HTML page for the crawler.

    Returns:
        Response object or None if the fetch failed or the body is not HTML
    """
    try:
        response = fetch(url, accept="text/html,application/xhtml+xml")
    except FetchError as e:
        logger.warning(str(e))
        return None

    content_type = response.headers.get("Content-Type", "")
    if content_type and "html" not in content_type:
        logger.debug(f"Non-HTML content type ({content_type}): {url}")
        return None

    return response

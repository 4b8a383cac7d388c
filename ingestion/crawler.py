# ingestion/crawler.py
"""
Breadth-first site crawler bounded by depth and page count.

The traversal is an explicit FIFO work queue. A URL enters the visited set
exactly once, right before it is fetched, so cycles and duplicate links
never cause a second fetch.
"""

import re
from collections import deque
from typing import Callable, Iterable, List, Optional, Pattern
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from config import MAX_CRAWL_DEPTH, MAX_PAGES_PER_CRAWL
from ingestion.cleaner import (
    clean_soup,
    extract_links,
    extract_media_links,
    extract_title,
    normalize_url,
)
from ingestion.fetcher import fetch_page
from ingestion.models import CrawlTask, PageResult
from utils.logger import get_crawler_logger

logger = get_crawler_logger()

SKIP_KEYWORDS = ["login", "signup", "register", "cart", "checkout", "privacy", "terms", "cookie"]
SKIP_KEYWORD_PATTERN = re.compile("|".join(SKIP_KEYWORDS), re.IGNORECASE)

PageFetcher = Callable[[str], Optional[requests.Response]]


def is_allowed_link(url: str, allowed_domains: Optional[Iterable[str]], exclude_patterns: Iterable[Pattern]) -> bool:
    """Check a discovered link against the domain allowlist and exclusion patterns."""
    if allowed_domains is not None:
        hostname = (urlparse(url).hostname or "").lower()
        if hostname not in allowed_domains:
            return False
    return not any(pattern.search(url) for pattern in exclude_patterns)


def parse_page(html: str, url: str, depth: int) -> PageResult:
    """Build a PageResult: links are read from the full document, text after stripping chrome."""
    soup = BeautifulSoup(html, "html.parser")
    title = extract_title(soup)
    links = extract_links(soup, url)
    media = extract_media_links(soup, url)
    text = clean_soup(soup)
    return PageResult(
        url=url,
        depth=depth,
        title=title,
        text_content=text,
        outbound_links=tuple(links),
        media_links=tuple(media),
    )


def crawl_site(
    seed_url: str,
    max_depth: int = MAX_CRAWL_DEPTH,
    max_pages: int = MAX_PAGES_PER_CRAWL,
    allowed_domains: Optional[Iterable[str]] = None,
    exclude_patterns: Iterable[Pattern] = (),
    fetch: PageFetcher = fetch_page,
) -> List[PageResult]:
    """
    Crawl a website breadth-first starting from seed_url.

    Args:
        seed_url: Starting URL, crawled at depth 0
        max_depth: Links are followed only from pages with depth < max_depth
        max_pages: Stop once this many pages have been fetched successfully
        allowed_domains: Hostnames a discovered link may point to (None = any)
        exclude_patterns: Regexes; discovered links matching any are ignored
        fetch: Page fetcher returning a response or None on failure

    Returns:
        PageResults in visit order; empty if nothing could be fetched.
        Never raises for network or parse problems.
    """
    if max_pages <= 0:
        return []

    logger.info(f"Starting crawl of {seed_url} (depth {max_depth}, pages {max_pages})")

    if allowed_domains is not None:
        allowed_domains = {domain.lower() for domain in allowed_domains}
    exclude_patterns = list(exclude_patterns)

    visited = set()
    queued = set()
    results: List[PageResult] = []
    failed_urls = []

    seed = normalize_url(seed_url)
    queue = deque([CrawlTask(seed, 0)])
    queued.add(seed)

    while queue and len(results) < max_pages:
        task = queue.popleft()

        if task.url in visited:
            continue
        visited.add(task.url)

        response = fetch(task.url)
        if response is None:
            failed_urls.append(task.url)
            continue

        try:
            page = parse_page(response.text, task.url, task.depth)
        except Exception as e:
            logger.warning(f"Failed to parse page {task.url}: {str(e)}")
            failed_urls.append(task.url)
            continue

        results.append(page)
        logger.debug(f"Crawled: {task.url} (depth {task.depth}, title: {page.title[:50]})")

        if task.depth >= max_depth:
            continue

        for link in page.outbound_links:
            if link in visited or link in queued:
                continue
            if not is_allowed_link(link, allowed_domains, exclude_patterns):
                logger.debug(f"Skipping URL (filtered): {link}")
                continue
            queued.add(link)
            queue.append(CrawlTask(link, task.depth + 1))

    logger.info(f"Crawl complete: {len(results)} pages crawled, {len(failed_urls)} failed, {len(visited)} visited")
    return results
